"""
Address Resolution Pipeline - free-text issue report to a routed email draft.

Pipeline Flow:
1. Jurisdiction: reverse geocode GPS, or extract a location from the text
2. Topic: short category from the description
3. Search tiers (grounded), in trust order, first accepted candidate wins:
   TOPIC_SPECIFIC -> AGENCY_MAIN -> JURISDICTION_GENERAL
4. UNVERIFIED_GUESS (ungrounded) when every tier was rejected
5. DNS sanity check on the chosen domain (metadata only)
6. Draft subject/body for the chosen agency

Design Decisions:
- Calls are strictly sequential: a tier only runs because the one before it failed
- The pipeline is stateless; all request state lives in locals, so one
  instance can serve concurrent resolve() calls
- Only TransportError (and a malformed/blocked guess or draft, which leave
  nothing to return) escape; every other degradation is recorded in the
  result's fallback level, confidence or dns metadata
"""
import logging
from typing import Optional

from civic_router.config import DEFAULT_SETTINGS, RoutingSettings
from civic_router.drafting.composer import DraftComposer
from civic_router.exceptions import MalformedOutputError, ModelBlockedError
from civic_router.llm.gateway import ModelGateway
from civic_router.models import CandidateAddress, FallbackLevel, IssueReport, RoutingResult
from civic_router.prompts import GUESS_PROMPT, sanitize_for_prompt
from civic_router.routing.jurisdiction import extract_topic, resolve_jurisdiction
from civic_router.routing.tiers import SEARCH_TIERS, SearchContext, SearchTier, evaluate_candidate
from civic_router.schemas import GuessResponse, SearchTierResponse
from civic_router.verification.domain import DomainVerifier, describe, domain_of

logger = logging.getLogger(__name__)


class AddressResolutionPipeline:
    """
    Orchestrates jurisdiction, topic, tiered search, guess, DNS and draft.

    Usage:
        pipeline = AddressResolutionPipeline(gateway, DomainVerifier(), DraftComposer(gateway))
        result = await pipeline.resolve(IssueReport(description="Pothole on Main St"))
        if result.fallback_level.is_weak:
            # show "verify before sending" / official website
    """

    def __init__(
        self,
        gateway: ModelGateway,
        verifier: DomainVerifier,
        composer: DraftComposer,
        settings: RoutingSettings = DEFAULT_SETTINGS,
        tiers: tuple[SearchTier, ...] = SEARCH_TIERS,
    ):
        self.gateway = gateway
        self.verifier = verifier
        self.composer = composer
        self.settings = settings
        self.tiers = tiers

    async def resolve(self, report: IssueReport) -> RoutingResult:
        jurisdiction = await resolve_jurisdiction(self.gateway, report, self.settings)
        topic = await extract_topic(self.gateway, report.description, self.settings)
        logger.info(f"Routing '{topic}' issue in {jurisdiction.label}")

        ctx = SearchContext(description=report.description, jurisdiction=jurisdiction, topic=topic)
        candidate, level = await self._search(ctx)
        if candidate is None:
            logger.info("All search tiers rejected; falling back to unverified guess")
            candidate = await self._guess(ctx)
            level = FallbackLevel.UNVERIFIED_GUESS

        dns_check = await self.verifier.check_deliverable(domain_of(candidate.email))
        draft = await self.composer.compose(report, jurisdiction, candidate.agency_name)

        return RoutingResult(
            to=candidate.email,
            subject=draft.subject,
            body=draft.body,
            jurisdiction=jurisdiction,
            agency_name=candidate.agency_name,
            topic=topic,
            confidence=candidate.confidence,
            fallback_level=level,
            evidence=candidate.evidence,
            dns_verified=dns_check,
            use_website_instead=level.is_weak,
            website_url=candidate.website_url,
            validation_note=describe(dns_check),
            has_photo=report.has_photo,
        )

    async def _search(self, ctx: SearchContext) -> tuple[Optional[CandidateAddress], Optional[FallbackLevel]]:
        for tier in self.tiers:
            candidate = await self._run_tier(tier, ctx)
            if candidate is None:
                continue
            reason = evaluate_candidate(candidate, ctx.topic)
            if reason is None:
                logger.info(f"{tier.level.value}: accepted {candidate.email} ({candidate.agency_name})")
                return candidate, tier.level
            logger.info(f"{tier.level.value}: rejected {candidate.email or '<none>'} - {reason}")
        return None, None

    async def _run_tier(self, tier: SearchTier, ctx: SearchContext) -> Optional[CandidateAddress]:
        try:
            response = await self.gateway.complete(
                tier.build_prompt(ctx),
                use_search_grounding=True,
                schema=SearchTierResponse,
            )
        except (MalformedOutputError, ModelBlockedError) as e:
            logger.warning(f"{tier.level.value}: tier discarded ({e.kind}): {e}")
            return None
        return response.to_candidate()

    async def _guess(self, ctx: SearchContext) -> CandidateAddress:
        prompt = GUESS_PROMPT.format(
            jurisdiction=ctx.jurisdiction.label,
            topic=ctx.topic,
            description=sanitize_for_prompt(ctx.description),
        )
        response = await self.gateway.complete(prompt, use_search_grounding=False, schema=GuessResponse)
        # Untrusted by construction: no evidence, no relevance check, fixed low confidence
        return CandidateAddress(
            found=False,
            email=response.email.strip(),
            agency_name=response.agency_name.strip(),
            evidence=None,
            confidence=self.settings.guess_confidence,
            website_url=response.website_url or None,
        )
