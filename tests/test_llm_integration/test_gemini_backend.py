"""
GeminiBackend tests against a mocked google-genai client.

Responses are built from SimpleNamespace rather than MagicMock so that absent
attributes (prompt_feedback, finish_reason) read as None, the way the SDK's
pydantic response types report them.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from google.genai import errors as genai_errors

from civic_router.exceptions import (
    APIKeyMissingError,
    RateLimitedError,
    ServiceUnavailableError,
    TransientModelError,
    TransportError,
)
from civic_router.llm.backend import GeminiBackend, map_api_error


def _gemini_response(text, finish_reason="STOP", block_reason=None):
    part = SimpleNamespace(text=text, thought=False)
    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=[part]),
        finish_reason=SimpleNamespace(name=finish_reason) if finish_reason else None,
    )
    feedback = SimpleNamespace(block_reason=SimpleNamespace(name=block_reason)) if block_reason else None
    return SimpleNamespace(candidates=[candidate], prompt_feedback=feedback)


def _mock_client(**kwargs):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(**kwargs)
    return client


class TestGeminiBackendConstruction:

    def test_missing_api_key_raises(self):
        with pytest.raises(APIKeyMissingError, match="GEMINI_API_KEY"):
            GeminiBackend(api_key=None)

    def test_injected_client_needs_no_key(self):
        backend = GeminiBackend(client=MagicMock())
        assert backend.model_id == "gemini-2.0-flash"

    def test_from_config(self, sample_config):
        sample_config["llm"]["gemini"]["model"] = "gemini-2.5-flash"
        backend = GeminiBackend.from_config(sample_config, client=MagicMock())
        assert backend.model_id == "gemini-2.5-flash"
        assert backend.temperature == 0.3

    def test_search_tool_only_when_grounded(self):
        backend = GeminiBackend(client=MagicMock())
        assert backend._build_config(use_search=False).tools is None
        tools = backend._build_config(use_search=True).tools
        assert len(tools) == 1
        assert tools[0].google_search is not None


class TestGeminiBackendGenerate:

    @pytest.mark.llm
    @pytest.mark.asyncio
    async def test_success(self):
        client = _mock_client(return_value=_gemini_response('{"topic": "pothole"}'))
        backend = GeminiBackend(client=client, model_id="gemini-test")

        completion = await backend.generate("classify", use_search=True)

        assert completion.text == '{"topic": "pothole"}'
        assert completion.finish_reason == "STOP"
        assert completion.block_reason is None
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"] == "classify"
        assert kwargs["config"].tools is not None

    @pytest.mark.llm
    @pytest.mark.asyncio
    async def test_max_tokens_finish_reason_reported(self):
        client = _mock_client(return_value=_gemini_response('{"subj', finish_reason="MAX_TOKENS"))
        completion = await GeminiBackend(client=client).generate("p", use_search=False)
        assert completion.finish_reason == "MAX_TOKENS"

    @pytest.mark.llm
    @pytest.mark.asyncio
    async def test_block_reason_reported(self):
        response = _gemini_response(None, finish_reason=None, block_reason="safety")
        client = _mock_client(return_value=response)
        completion = await GeminiBackend(client=client).generate("p", use_search=False)
        assert completion.block_reason == "SAFETY"
        assert completion.text is None

    @pytest.mark.llm
    @pytest.mark.asyncio
    async def test_rate_limit_mapped(self):
        error = genai_errors.ClientError(429, {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}})
        client = _mock_client(side_effect=error)

        with pytest.raises(RateLimitedError):
            await GeminiBackend(client=client).generate("p", use_search=False)

    @pytest.mark.llm
    @pytest.mark.asyncio
    async def test_server_error_mapped(self):
        error = genai_errors.ServerError(503, {"error": {"code": 503, "message": "Overloaded", "status": "UNAVAILABLE"}})
        client = _mock_client(side_effect=error)

        with pytest.raises(ServiceUnavailableError):
            await GeminiBackend(client=client).generate("p", use_search=False)

    @pytest.mark.llm
    @pytest.mark.asyncio
    async def test_network_error_is_transient(self):
        client = _mock_client(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(ServiceUnavailableError):
            await GeminiBackend(client=client).generate("p", use_search=False)


class TestMapApiError:

    def test_client_error_not_retryable(self):
        error = genai_errors.ClientError(400, {"error": {"code": 400, "message": "Bad request", "status": "INVALID_ARGUMENT"}})
        mapped = map_api_error(error)
        assert isinstance(mapped, TransportError)
        assert not isinstance(mapped, TransientModelError)
        assert mapped.last_reason == "http_400"

    @pytest.mark.parametrize("code", [500, 502, 503, 504])
    def test_retryable_server_codes(self, code):
        error = genai_errors.ServerError(code, {"error": {"code": code, "message": "x", "status": "x"}})
        assert isinstance(map_api_error(error), ServiceUnavailableError)

    def test_other_server_code_not_retryable(self):
        error = genai_errors.ServerError(501, {"error": {"code": 501, "message": "x", "status": "x"}})
        assert not isinstance(map_api_error(error), TransientModelError)
