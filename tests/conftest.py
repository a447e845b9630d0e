"""
Pytest fixtures and configuration.

Following TDD principles:
- Fixtures provide real-world-like routing data (Palo Alto contacts, real topics)
- Mocks used only when unavoidable (model backend, DNS)
- Each test should be independent and fast: backoff sleeps are recorded, never slept
"""
import copy
import json
from typing import Any

import pytest
from dotenv import load_dotenv

from civic_router.config import DEFAULT_CONFIG
from civic_router.llm.backend import Completion, CompletionBackend
from civic_router.llm.gateway import ModelGateway
from civic_router.llm.retry import RetryPolicy
from civic_router.models import DomainCheck

load_dotenv()


# =============================================================================
# STUB BACKENDS
# =============================================================================

def to_completion(item: Any) -> Completion:
    """dict -> JSON text, str -> raw text, Completion -> as is."""
    if isinstance(item, Completion):
        return item
    if isinstance(item, dict):
        return Completion(text=json.dumps(item), finish_reason="STOP")
    return Completion(text=item, finish_reason="STOP")


class ScriptedBackend(CompletionBackend):
    """
    Replays a fixed script of responses, one per call.

    Items may be dicts, raw strings, Completion objects or exceptions (raised).
    The last item repeats once the script runs out.
    """

    def __init__(self, script: list[Any]):
        self.script = list(script)
        self.calls: list[tuple[str, bool]] = []

    async def generate(self, prompt: str, use_search: bool) -> Completion:
        self.calls.append((prompt, use_search))
        index = min(len(self.calls) - 1, len(self.script) - 1)
        item = self.script[index]
        if isinstance(item, BaseException):
            raise item
        return to_completion(item)


# Marker text identifying each call site's prompt
CALL_SITE_MARKERS: dict[str, str] = {
    "geocode": "Determine the US city and state for these GPS coordinates",
    "location": "Analyze this civic issue report and determine the location",
    "topic": "Classify this civic issue report",
    "topic_specific": "specifically handles",
    "agency_main": "Search for the main public email address",
    "jurisdiction_general": "general citizen-services email address",
    "guess": "Give your best guess",
    "draft": "Write a professional, concise email",
    "revision": "The resident's requested change",
}


class CallSiteBackend(CompletionBackend):
    """
    Deterministic stub that answers by call site.

    responses maps a CALL_SITE_MARKERS key to a response item (same kinds as
    ScriptedBackend) or a list of items consumed in order.
    """

    def __init__(self, responses: dict[str, Any]):
        self.responses = dict(responses)
        self.calls: list[tuple[str, str, bool]] = []

    def site_of(self, prompt: str) -> str:
        for site, marker in CALL_SITE_MARKERS.items():
            if marker in prompt:
                return site
        raise AssertionError(f"Unrecognised prompt: {prompt[:80]}")

    def sites_called(self) -> list[str]:
        return [site for site, _, _ in self.calls]

    def grounding_for(self, site: str) -> list[bool]:
        return [use_search for s, _, use_search in self.calls if s == site]

    async def generate(self, prompt: str, use_search: bool) -> Completion:
        site = self.site_of(prompt)
        self.calls.append((site, prompt, use_search))
        item = self.responses[site]
        if isinstance(item, list):
            count = len([s for s in self.sites_called() if s == site])
            item = item[min(count - 1, len(item) - 1)]
        if isinstance(item, BaseException):
            raise item
        return to_completion(item)


class StubVerifier:
    """DomainVerifier stand-in that records the domains it was asked about."""

    def __init__(self, check: DomainCheck | None = None):
        self.check = check
        self.domains: list[str] = []

    async def check_deliverable(self, domain: str) -> DomainCheck:
        self.domains.append(domain)
        if self.check is not None:
            return self.check.model_copy(update={"domain": domain})
        return DomainCheck(domain=domain, exists=True, has_mail_records=True)


# =============================================================================
# RETRY / SLEEP FIXTURES
# =============================================================================

@pytest.fixture
def recorded_sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    """Async sleep replacement that records delays instead of waiting."""
    async def _sleep(delay: float) -> None:
        recorded_sleeps.append(delay)
    return _sleep


@pytest.fixture
def no_jitter_policy() -> RetryPolicy:
    """Deterministic policy: delays are exactly base * 2**n."""
    return RetryPolicy(max_retries=5, json_repair_retries=3, base_delay=1.0, max_jitter=0.3, rng=lambda: 0.0)


@pytest.fixture
def make_gateway(fake_sleep, no_jitter_policy):
    def _make(backend: CompletionBackend, policy: RetryPolicy | None = None) -> ModelGateway:
        return ModelGateway(backend, retry_policy=policy or no_jitter_policy, sleep=fake_sleep)
    return _make


# =============================================================================
# ROUTING RESPONSE FIXTURES
# =============================================================================

@pytest.fixture
def pothole_description() -> str:
    return "There's a deep pothole on University Ave near Emerson St that is damaging cars."


@pytest.fixture
def topic_tier_hit() -> dict[str, Any]:
    """Accepted TOPIC_SPECIFIC answer: quote contains the email verbatim."""
    return {
        "found": True,
        "email": "PWE-Work-Request@cityofpaloalto.org",
        "agencyName": "Public Works Engineering",
        "confidence": 0.9,
        "evidence": {
            "sourceTitle": "Report a Street Maintenance Problem | City of Palo Alto",
            "sourceUrl": "https://www.cityofpaloalto.org/Departments/Public-Works",
            "quotedSnippet": "To report potholes, email PWE-Work-Request@cityofpaloalto.org or call 650-496-6974.",
        },
        "websiteUrl": "https://www.cityofpaloalto.org/Departments/Public-Works",
    }


@pytest.fixture
def agency_tier_hit() -> dict[str, Any]:
    return {
        "found": True,
        "email": "utilities@cityofpaloalto.org",
        "agencyName": "Utilities Department",
        "confidence": 0.75,
        "evidence": {
            "sourceTitle": "Contact Utilities",
            "sourceUrl": "https://www.cityofpaloalto.org/Departments/Utilities",
            "quotedSnippet": "Customer service: utilities@cityofpaloalto.org",
        },
        "websiteUrl": None,
    }


@pytest.fixture
def general_tier_hit() -> dict[str, Any]:
    return {
        "found": True,
        "email": "city.hall@cityofpaloalto.org",
        "agencyName": "City Manager's Office",
        "confidence": 0.6,
        "evidence": {
            "sourceTitle": "Contact City Hall",
            "sourceUrl": "https://www.cityofpaloalto.org/contact",
            "quotedSnippet": "General inquiries: city.hall@cityofpaloalto.org",
        },
        "websiteUrl": "https://www.cityofpaloalto.org/contact",
    }


@pytest.fixture
def graffiti_tier_hit() -> dict[str, Any]:
    """Quotable but topically wrong for a pothole."""
    return {
        "found": True,
        "email": "graffiti@cityofpaloalto.org",
        "agencyName": "Graffiti Abatement Program",
        "confidence": 0.8,
        "evidence": {
            "sourceTitle": "Graffiti",
            "sourceUrl": "https://www.cityofpaloalto.org/graffiti",
            "quotedSnippet": "Report graffiti to graffiti@cityofpaloalto.org",
        },
    }


@pytest.fixture
def tier_miss() -> dict[str, Any]:
    return {"found": False, "email": "", "agencyName": "", "confidence": 0.0, "evidence": None}


@pytest.fixture
def null_tier_miss() -> dict[str, Any]:
    """The usual shape of a grounded 'not found': nulls instead of empty strings."""
    return {"found": False, "email": None, "agencyName": None, "confidence": None, "evidence": None}


@pytest.fixture
def guess_response() -> dict[str, Any]:
    return {
        "email": "info@cityofpaloalto.org",
        "agencyName": "City of Palo Alto",
        "websiteUrl": "https://www.cityofpaloalto.org",
    }


@pytest.fixture
def draft_response() -> dict[str, Any]:
    return {
        "subject": "Pothole on University Ave near Emerson St",
        "body": "Hello,\n\nI'd like to report a deep pothole on University Ave near Emerson St.\n\nThank you.",
    }


@pytest.fixture
def base_responses(draft_response, guess_response) -> dict[str, Any]:
    """Call-site answers for a report with no GPS and no location in the text."""
    return {
        "location": {"location": "Unknown", "city": "Unknown", "state": "Unknown", "hasExplicitLocation": False},
        "geocode": {"city": "Palo Alto", "state": "CA"},
        "topic": {"topic": "Pothole"},
        "guess": guess_response,
        "draft": draft_response,
    }


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================

@pytest.fixture
def sample_config() -> dict[str, Any]:
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["llm"]["retry"]["base_delay"] = 0.01
    return config
