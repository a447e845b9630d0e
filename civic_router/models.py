# civic_router/models.py
"""
Domain models for civic issue routing.

Design Decisions:
- Pydantic BaseModel for runtime validation and JSON serialization
- IssueReport keeps the raw location so malformed GPS never fails construction;
  coordinates() is the single place that decides whether GPS is usable
- FallbackLevel carries an explicit rank: downstream presentation keys off the
  trust order, so it must never depend on enum declaration order alone
- Everything here is created per request and discarded with the result
"""
import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FallbackLevel(str, Enum):
    """Which tier produced the returned address, highest trust first."""

    TOPIC_SPECIFIC = "TOPIC_SPECIFIC"
    AGENCY_MAIN = "AGENCY_MAIN"
    JURISDICTION_GENERAL = "JURISDICTION_GENERAL"
    UNVERIFIED_GUESS = "UNVERIFIED_GUESS"

    @property
    def rank(self) -> int:
        """0 is most trusted."""
        return _FALLBACK_RANK[self]

    @property
    def is_weak(self) -> bool:
        """Weak tiers should be shown with a 'verify / use website' affordance."""
        return self.rank >= _FALLBACK_RANK[FallbackLevel.JURISDICTION_GENERAL]


_FALLBACK_RANK: dict[FallbackLevel, int] = {
    FallbackLevel.TOPIC_SPECIFIC: 0,
    FallbackLevel.AGENCY_MAIN: 1,
    FallbackLevel.JURISDICTION_GENERAL: 2,
    FallbackLevel.UNVERIFIED_GUESS: 3,
}


class GeoPoint(BaseModel):
    latitude: float
    longitude: float


def _is_coordinate(value: Any) -> bool:
    # bool is an int subclass; True/False are not coordinates
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class IssueReport(BaseModel):
    """
    Input from the UI collaborator.

    location is accepted as-is (dict, object, garbage). Absence (None) and a
    malformed value both degrade to "no GPS", but the pipeline treats them
    differently: absence triggers location extraction from the description.
    """
    description: str = Field(..., min_length=1, description="Free-text issue description")
    location: Optional[Any] = Field(None, description="Raw {latitude, longitude} from the device")
    has_photo: bool = Field(default=False, description="User attached a photo")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        if not v.strip():
            raise ValueError("description must not be blank")
        return v

    @property
    def has_location(self) -> bool:
        return self.location is not None

    def coordinates(self) -> Optional[GeoPoint]:
        """Return GPS coordinates only when both fields are real numbers."""
        loc = self.location
        if loc is None:
            return None
        if isinstance(loc, GeoPoint):
            return loc
        if isinstance(loc, dict):
            lat, lng = loc.get("latitude"), loc.get("longitude")
        else:
            lat, lng = getattr(loc, "latitude", None), getattr(loc, "longitude", None)
        if not (_is_coordinate(lat) and _is_coordinate(lng)):
            return None
        return GeoPoint(latitude=float(lat), longitude=float(lng))


class Jurisdiction(BaseModel):
    """City/state responsible for the issue. Immutable once resolved."""
    model_config = ConfigDict(frozen=True)

    city: str
    state: str
    is_default: bool = False

    @property
    def label(self) -> str:
        return f"{self.city}, {self.state}" if self.state else self.city


class Evidence(BaseModel):
    """Provenance for a candidate address. Passed through untouched."""
    source_title: str = ""
    source_url: str = ""
    quoted_snippet: str = ""


class CandidateAddress(BaseModel):
    """Output of one search tier (or the last-resort guess)."""
    found: bool
    email: str = ""
    agency_name: str = ""
    evidence: Optional[Evidence] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    website_url: Optional[str] = None


class DomainCheck(BaseModel):
    """
    Advisory mail-domain sanity check.

    None means unknown (lookup failed or timed out), never "invalid".
    """
    domain: str = ""
    exists: Optional[bool] = None
    has_mail_records: Optional[bool] = None

    @property
    def verified(self) -> bool:
        return bool(self.exists and self.has_mail_records)

    @property
    def is_unknown(self) -> bool:
        return self.exists is None and self.has_mail_records is None


class Draft(BaseModel):
    """Email draft as edited by the user."""
    to: str
    subject: str
    body: str


class RoutingResult(BaseModel):
    """
    Terminal output of resolve().

    fallback_level is the audit field: it tells the caller how much trust to
    place in `to`. use_website_instead mirrors is_weak so the UI does not have
    to know the tier ordering.
    """
    to: str
    subject: str
    body: str
    jurisdiction: Jurisdiction
    agency_name: str
    topic: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    fallback_level: FallbackLevel
    evidence: Optional[Evidence] = None
    dns_verified: DomainCheck
    use_website_instead: bool = False
    website_url: Optional[str] = None
    validation_note: str = ""
    has_photo: bool = False

    def to_draft(self) -> Draft:
        return Draft(to=self.to, subject=self.subject, body=self.body)
