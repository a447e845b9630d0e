"""
Model Gateway - one prompt in, one validated JSON object out.

Owns the two independent retry budgets:
- Transport: rate limits, 5xx, truncated output. Exponential backoff with
  jitter, bounded by RetryPolicy.max_retries, then TransportError.
- Malformed output: unparseable JSON or a response that fails its schema.
  Re-issues the same prompt with a strict JSON-only prefix, bounded by
  RetryPolicy.json_repair_retries, then MalformedOutputError.

Blocked / empty responses are terminal on first sight: re-sending an identical
refused prompt does not change the answer.

No caching: identical prompts are always re-sent.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from civic_router.exceptions import (
    MalformedOutputError,
    ModelBlockedError,
    TransientModelError,
    TransportError,
    TruncatedResponseError,
)
from civic_router.llm.backend import Completion, CompletionBackend
from civic_router.llm.parsing import parse_json_object
from civic_router.llm.retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

STRICT_JSON_PREFIX = (
    "IMPORTANT: Your previous answer could not be parsed. "
    "Return ONLY a single valid JSON object matching the requested format. "
    "No markdown, no backticks, no explanation.\n\n"
)

SAFETY_FINISH_REASONS = frozenset({
    "SAFETY",
    "PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
})


class ModelGateway:
    """
    Retrying, self-repairing front door to a CompletionBackend.

    Usage:
        gateway = ModelGateway(GeminiBackend(api_key=...))
        topic = await gateway.complete(prompt, schema=TopicResponse)
    """

    def __init__(
        self,
        backend: CompletionBackend,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        debug_responses: bool = False,
    ):
        self.backend = backend
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self.debug_responses = debug_responses

    async def complete(
        self,
        prompt: str,
        use_search_grounding: bool = False,
        schema: Optional[Type[T]] = None,
    ) -> Union[dict[str, Any], T]:
        """
        Run one logical completion.

        Args:
            prompt: Prompt with an embedded JSON format
            use_search_grounding: Let the backend consult live web search
            schema: Pydantic model to validate against; None returns the raw dict

        Returns:
            Parsed dict, or a schema instance when schema is given

        Raises:
            TransportError: Transport retries exhausted or non-retryable upstream error
            MalformedOutputError: JSON repair budget exhausted
            ModelBlockedError: Safety refusal or empty content
        """
        current_prompt = prompt
        last_error: Optional[Exception] = None
        last_text: Optional[str] = None
        repair_budget = self.retry_policy.json_repair_retries

        for repair_attempt in range(repair_budget + 1):
            completion = await self._generate_with_backoff(current_prompt, use_search_grounding)
            last_text = completion.text
            try:
                return self._decode(completion.text, schema)
            except (ValueError, ValidationError) as e:
                last_error = e
                if repair_attempt < repair_budget:
                    logger.warning(
                        f"Malformed model output ({e}); re-prompting for strict JSON "
                        f"(repair {repair_attempt + 1}/{repair_budget})"
                    )
                current_prompt = STRICT_JSON_PREFIX + prompt

        raise MalformedOutputError(
            f"Model output was not valid JSON after {repair_budget} repair attempts: {last_error}",
            raw_text=last_text,
        )

    async def _generate_with_backoff(self, prompt: str, use_search: bool) -> Completion:
        retries = 0
        total_delay = 0.0
        while True:
            try:
                completion = await self.backend.generate(prompt, use_search)
                self._check_completion(completion)
                return completion
            except TransientModelError as e:
                if not self.retry_policy.should_retry(retries):
                    logger.error(f"Model call failed after {retries + 1} attempts: {e}")
                    raise TransportError(
                        f"Model call failed after {retries + 1} attempts ({e.reason}): {e}",
                        attempts=retries + 1,
                        total_delay=total_delay,
                        last_reason=e.reason,
                    ) from e
                delay = self.retry_policy.delay(retries)
                logger.warning(
                    f"Model call failed ({e.reason}), retrying in {delay:.2f}s... "
                    f"(retry {retries + 1}/{self.retry_policy.max_retries})"
                )
                await self._sleep(delay)
                total_delay += delay
                retries += 1

    def _check_completion(self, completion: Completion) -> None:
        if completion.block_reason:
            raise ModelBlockedError(
                f"Prompt blocked by model: {completion.block_reason}",
                reason=completion.block_reason,
            )
        if completion.finish_reason == "MAX_TOKENS":
            raise TruncatedResponseError("Model output truncated before completion")
        if completion.text is None or not completion.text.strip():
            if completion.finish_reason in SAFETY_FINISH_REASONS:
                raise ModelBlockedError(
                    f"Response withheld by model: {completion.finish_reason}",
                    reason=completion.finish_reason,
                )
            raise ModelBlockedError("Empty response from model", reason="EMPTY_RESPONSE")

    def _decode(self, text: Optional[str], schema: Optional[Type[T]]) -> Union[dict[str, Any], T]:
        if self.debug_responses:
            logger.debug(f"Raw model output: {text[:500] if text else None}")
        data = parse_json_object(text)
        if schema is None:
            return data
        return schema.model_validate(data)
