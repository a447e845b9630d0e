"""
Unified API for the civic issue router.

Entry points for the UI collaborator:
- resolve: issue description (+ optional GPS) -> routed, drafted email with trust metadata
- revise: existing draft + free-text change request -> new draft

Design Philosophy:
- No file I/O required beyond the optional config file
- Credentials and configuration are passed in or read once here, never from
  module globals inside the pipeline
- build_router() wires the components so callers (and tests) can hold one
  Router and reuse it across requests

Usage:
    from civic_router import resolve, revise

    result = await resolve(
        description="Huge pothole on University Ave near the Caltrain station",
        location={"latitude": 37.4419, "longitude": -122.1430},
        has_photo=True,
    )
    if result.use_website_instead:
        ...  # show "verify before sending" / open official website

    revised = await revise(
        current_to=result.to,
        current_subject=result.subject,
        current_body=result.body,
        suggestion="Mention it has been there for two weeks",
    )
"""
import os
from dataclasses import dataclass
from typing import Any, Optional

from dotenv import load_dotenv

from civic_router.config import RoutingSettings, get_api_keys, load_config
from civic_router.drafting.composer import DraftComposer
from civic_router.llm.backend import CompletionBackend, GeminiBackend
from civic_router.llm.gateway import ModelGateway
from civic_router.llm.retry import RetryPolicy
from civic_router.models import Draft, IssueReport, RoutingResult
from civic_router.routing.pipeline import AddressResolutionPipeline
from civic_router.verification.domain import DomainVerifier

load_dotenv()


@dataclass
class Router:
    """Wired components. Holds no per-request state."""
    gateway: ModelGateway
    pipeline: AddressResolutionPipeline
    composer: DraftComposer

    async def resolve(self, report: IssueReport) -> RoutingResult:
        return await self.pipeline.resolve(report)

    async def revise(self, current: Draft, suggestion: str) -> Draft:
        return await self.composer.revise(current, suggestion)


def build_router(
    config: Optional[dict[str, Any]] = None,
    api_key: Optional[str] = None,
    backend: Optional[CompletionBackend] = None,
    verifier: Optional[DomainVerifier] = None,
) -> Router:
    """
    Wire backend -> gateway -> verifier/composer -> pipeline.

    Args:
        config: Configuration dict (loads config.yaml / defaults if None)
        api_key: Gemini API key (GEMINI_API_KEY / GOOGLE_API_KEY if None)
        backend: Completion backend override (e.g. a test stub)
        verifier: Domain verifier override

    Raises:
        APIKeyMissingError: No backend given and no API key available
    """
    config = config if config is not None else load_config(os.getenv("CIVIC_ROUTER_CONFIG", "config.yaml"))
    settings = RoutingSettings.from_config(config)

    if backend is None:
        backend = GeminiBackend.from_config(config, api_key=api_key or get_api_keys()["gemini"])

    gateway = ModelGateway(
        backend,
        retry_policy=RetryPolicy.from_config(config),
        debug_responses=config.get("debug", {}).get("llm_responses", False),
    )
    verifier = verifier or DomainVerifier(
        resolver_url=settings.dns_resolver_url,
        timeout=settings.dns_timeout,
    )
    composer = DraftComposer(gateway)
    pipeline = AddressResolutionPipeline(gateway, verifier, composer, settings=settings)
    return Router(gateway=gateway, pipeline=pipeline, composer=composer)


async def resolve(
    description: str,
    location: Any = None,
    has_photo: bool = False,
    router: Optional[Router] = None,
) -> RoutingResult:
    """
    Route an issue report to a department email and draft the message.

    Args:
        description: Resident's free-text description (non-empty)
        location: {"latitude": float, "longitude": float} or None; malformed
            values degrade to the default jurisdiction
        has_photo: Resident attached a photo
        router: Pre-built Router (built from config/env if None)

    Returns:
        RoutingResult with:
        - to / subject / body: the draft
        - fallback_level: which tier produced `to` (trust indicator)
        - confidence, evidence: provenance of the address
        - dns_verified: advisory MX/A check (None fields = unknown)
        - use_website_instead / website_url: weak-tier presentation hints

    Raises:
        ModelError: Model backend failed terminally (transport, blocked, malformed)
    """
    router = router or build_router()
    report = IssueReport(description=description, location=location, has_photo=has_photo)
    return await router.resolve(report)


async def revise(
    current_to: str,
    current_subject: str,
    current_body: str,
    suggestion: str,
    router: Optional[Router] = None,
) -> Draft:
    """
    Apply a free-text change request to an existing draft (search-grounded).

    Raises:
        ValueError: Empty suggestion
        ModelError: Model backend failed terminally
    """
    router = router or build_router()
    current = Draft(to=current_to, subject=current_subject, body=current_body)
    return await router.revise(current, suggestion)
