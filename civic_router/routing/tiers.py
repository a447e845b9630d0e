"""
Search tier definitions and the candidate acceptance predicate.

The cascade is a linear state machine: tiers are tried in trust order and the
first accepted candidate ends it. Each tier is data (level + prompt builder),
so the pipeline iterates SEARCH_TIERS instead of repeating call sites, and a
single tier can be tested in isolation.

Acceptance requires all of:
(a) the tier reports found=true
(b) the email has the shape local@domain.tld
(c) the evidence quote literally contains the email
(d) the relevance filter accepts the agency/email for the topic
"""
import re
from dataclasses import dataclass
from typing import Callable, Optional

from civic_router.models import CandidateAddress, FallbackLevel, Jurisdiction
from civic_router.prompts import (
    AGENCY_MAIN_PROMPT,
    JURISDICTION_GENERAL_PROMPT,
    TOPIC_SPECIFIC_PROMPT,
    directory_hint,
    sanitize_for_prompt,
)
from civic_router.routing.relevance import rejection_reason

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")

DEFAULT_DEPARTMENT = "Public Works / City Services"

# Topic keyword -> department that usually owns it. First match wins: the
# narrower groups sit above roads so that "street flooding" goes to Utilities
# and "parking" lands with vehicles before "park" can send it to Parks.
DEPARTMENT_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("water", "sewer", "flood", "drain", "storm", "leak", "hydrant"),
     "Utilities / Public Works"),
    (("trash", "garbage", "dumping", "litter", "recycling", "waste"),
     "Sanitation / Environmental Services"),
    (("animal", "roadkill", "stray", "wildlife"),
     "Animal Services"),
    (("noise", "vehicle", "abandoned", "parking", "speeding", "safety", "loitering"),
     "Police (non-emergency) / Code Enforcement"),
    (("pothole", "road", "street", "sidewalk", "crosswalk", "traffic signal", "sign"),
     "Public Works / Transportation"),
    (("property", "building", "blight", "vacant", "overgrown", "housing"),
     "Code Enforcement / Building"),
    (("park", "tree", "playground", "trail"),
     "Parks"),
)


def _starts_word(text: str, keyword: str) -> bool:
    return re.search(r"(?<![a-z0-9])" + re.escape(keyword), text) is not None


def department_hint(topic: str) -> str:
    """Heuristic department for the AGENCY_MAIN tier."""
    normalized = (topic or "").lower()
    for keywords, department in DEPARTMENT_HINTS:
        if any(_starts_word(normalized, keyword) for keyword in keywords):
            return department
    return DEFAULT_DEPARTMENT


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def evidence_contains_email(candidate: CandidateAddress) -> bool:
    """The quote must contain the email verbatim; paraphrased evidence does not count."""
    if candidate.evidence is None or not candidate.email:
        return False
    return candidate.email in candidate.evidence.quoted_snippet


def evaluate_candidate(candidate: CandidateAddress, topic: str) -> Optional[str]:
    """
    Apply all acceptance gates.

    Returns:
        None when accepted, otherwise the first failed gate (for logging)
    """
    if not candidate.found:
        return "not found"
    if not is_valid_email(candidate.email):
        return f"invalid email '{candidate.email}'"
    if not evidence_contains_email(candidate):
        return "evidence does not quote the email"
    reason = rejection_reason(topic, candidate.agency_name, candidate.email)
    if reason:
        return f"irrelevant: {reason}"
    return None


@dataclass(frozen=True)
class SearchContext:
    """Everything a tier prompt needs. Built once per resolve() call."""
    description: str
    jurisdiction: Jurisdiction
    topic: str


@dataclass(frozen=True)
class SearchTier:
    level: FallbackLevel
    build_prompt: Callable[[SearchContext], str]


def _topic_specific_prompt(ctx: SearchContext) -> str:
    return TOPIC_SPECIFIC_PROMPT.format(
        jurisdiction=ctx.jurisdiction.label,
        topic=ctx.topic,
        description=sanitize_for_prompt(ctx.description),
        directory=directory_hint(ctx.jurisdiction),
    )


def _agency_main_prompt(ctx: SearchContext) -> str:
    return AGENCY_MAIN_PROMPT.format(
        jurisdiction=ctx.jurisdiction.label,
        topic=ctx.topic,
        description=sanitize_for_prompt(ctx.description),
        department=department_hint(ctx.topic),
        directory=directory_hint(ctx.jurisdiction),
    )


def _jurisdiction_general_prompt(ctx: SearchContext) -> str:
    return JURISDICTION_GENERAL_PROMPT.format(
        jurisdiction=ctx.jurisdiction.label,
        topic=ctx.topic,
    )


# Strictly decreasing trust. UNVERIFIED_GUESS is not a search tier: it is
# the pipeline's ungrounded last resort.
SEARCH_TIERS: tuple[SearchTier, ...] = (
    SearchTier(FallbackLevel.TOPIC_SPECIFIC, _topic_specific_prompt),
    SearchTier(FallbackLevel.AGENCY_MAIN, _agency_main_prompt),
    SearchTier(FallbackLevel.JURISDICTION_GENERAL, _jurisdiction_general_prompt),
)
