"""
Draft Composer - renders the email once an address is settled, and applies
free-text revision requests to an existing draft.

compose() never uses search: the address is already resolved and the text is
pure writing. revise() always uses search so that "send this to the county
instead" can land on a real address rather than a guess.
"""
import logging

from civic_router.llm.gateway import ModelGateway
from civic_router.models import Draft, IssueReport, Jurisdiction
from civic_router.prompts import (
    DRAFT_PROMPT,
    PHOTO_CONTEXT,
    REVISION_PROMPT,
    sanitize_for_prompt,
)
from civic_router.schemas import DraftResponse, RevisionResponse

logger = logging.getLogger(__name__)


class DraftComposer:
    """
    Usage:
        composer = DraftComposer(gateway)
        draft = await composer.compose(report, jurisdiction, "Public Works")
        revised = await composer.revise(current_draft, "make it more urgent")
    """

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    async def compose(
        self,
        report: IssueReport,
        jurisdiction: Jurisdiction,
        agency_name: str,
    ) -> DraftResponse:
        prompt = DRAFT_PROMPT.format(
            jurisdiction=jurisdiction.label,
            agency_name=agency_name or f"the {jurisdiction.label} city government",
            description=sanitize_for_prompt(report.description),
            photo_context=PHOTO_CONTEXT if report.has_photo else "",
        )
        return await self.gateway.complete(prompt, use_search_grounding=False, schema=DraftResponse)

    async def revise(self, current: Draft, suggestion: str) -> Draft:
        """
        Apply a resident's change request to the draft.

        The returned address is trusted as-is: unlike resolve(), no relevance
        or evidence gate runs here.

        Raises:
            ValueError: Empty suggestion
            ModelError: Gateway failure
        """
        if not suggestion or not suggestion.strip():
            raise ValueError("suggestion must not be empty")

        prompt = REVISION_PROMPT.format(
            current_to=current.to,
            current_subject=sanitize_for_prompt(current.subject),
            current_body=sanitize_for_prompt(current.body),
            suggestion=sanitize_for_prompt(suggestion.strip()),
        )
        result = await self.gateway.complete(prompt, use_search_grounding=True, schema=RevisionResponse)
        if result.to.strip() != current.to:
            logger.info(f"Revision changed recipient: {current.to} -> {result.to.strip()}")
        return Draft(to=result.to.strip(), subject=result.subject, body=result.body)
