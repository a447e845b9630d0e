"""
Typed contracts for every Model Gateway call site.

Each prompt embeds a JSON shape; these models are the validating decoders for
those shapes. A missing or mistyped required field raises pydantic's
ValidationError, which the gateway treats as malformed output (repair re-prompt,
then MalformedOutputError). Field names mirror the camelCase keys the prompts ask
for; Python attributes stay snake_case.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from civic_router.models import CandidateAddress, Evidence

UNKNOWN = "unknown"


class _Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GeocodeResponse(_Response):
    """Reverse geocode: GPS -> city/state."""
    city: str
    state: str


class LocationExtraction(_Response):
    """Implied location pulled from the free-text description."""
    location: str
    city: str
    state: str
    has_explicit_location: bool = Field(..., alias="hasExplicitLocation")


class TopicResponse(_Response):
    topic: str


class EvidencePayload(_Response):
    source_title: str = Field("", alias="sourceTitle")
    source_url: str = Field("", alias="sourceUrl")
    quoted_snippet: str = Field(..., alias="quotedSnippet")

    @field_validator("source_title", "source_url", "quoted_snippet", mode="before")
    @classmethod
    def null_to_empty(cls, v):
        return "" if v is None else v

    def to_evidence(self) -> Evidence:
        return Evidence(
            source_title=self.source_title,
            source_url=self.source_url,
            quoted_snippet=self.quoted_snippet,
        )


def _clamp_unit(v: float) -> float:
    return min(1.0, max(0.0, v))


DEFAULT_TIER_CONFIDENCE = 0.5


class SearchTierResponse(_Response):
    """
    Shared shape of all three grounded search tiers.

    Only `found` is required. A miss commonly comes back with null email,
    agencyName and confidence; that is a valid "not found", not malformed output.
    """
    found: bool
    email: Optional[str] = ""
    agency_name: Optional[str] = Field("", alias="agencyName")
    confidence: Optional[float] = DEFAULT_TIER_CONFIDENCE
    evidence: Optional[EvidencePayload] = None
    website_url: Optional[str] = Field(None, alias="websiteUrl")

    @field_validator("email", "agency_name", mode="before")
    @classmethod
    def null_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("confidence", mode="before")
    @classmethod
    def null_confidence_to_default(cls, v):
        return DEFAULT_TIER_CONFIDENCE if v is None else v

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v):
        return _clamp_unit(v)

    def to_candidate(self) -> CandidateAddress:
        return CandidateAddress(
            found=self.found,
            email=(self.email or "").strip(),
            agency_name=(self.agency_name or "").strip(),
            evidence=self.evidence.to_evidence() if self.evidence else None,
            confidence=self.confidence,
            website_url=self.website_url or None,
        )


class GuessResponse(_Response):
    """Ungrounded best guess, used only when every search tier is rejected."""
    email: str
    agency_name: str = Field(..., alias="agencyName")
    website_url: Optional[str] = Field(None, alias="websiteUrl")


class DraftResponse(_Response):
    subject: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)


class RevisionResponse(_Response):
    to: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)


def is_unknown(value: Optional[str]) -> bool:
    """True for empty / placeholder values the model uses when it has no answer."""
    if value is None:
        return True
    cleaned = value.strip().lower()
    return cleaned in ("", UNKNOWN, "n/a", "none", "null")
