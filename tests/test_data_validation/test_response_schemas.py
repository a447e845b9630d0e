"""
Schema validation tests for model responses.

Tests that each call site's decoder accepts the camelCase shape the prompts
ask for and rejects structurally broken answers.
"""
import pytest
from pydantic import ValidationError

from civic_router.schemas import (
    DraftResponse,
    GuessResponse,
    LocationExtraction,
    RevisionResponse,
    SearchTierResponse,
    TopicResponse,
    is_unknown,
)


class TestSearchTierResponse:
    """Tests for the shared search tier schema."""

    def test_full_answer(self, topic_tier_hit):
        response = SearchTierResponse.model_validate(topic_tier_hit)
        assert response.found is True
        assert response.agency_name == "Public Works Engineering"
        assert response.evidence.quoted_snippet.startswith("To report potholes")

    def test_to_candidate(self, topic_tier_hit):
        candidate = SearchTierResponse.model_validate({
            **topic_tier_hit,
            "email": "  PWE-Work-Request@cityofpaloalto.org ",
        }).to_candidate()
        assert candidate.email == "PWE-Work-Request@cityofpaloalto.org"
        assert candidate.evidence.source_title.startswith("Report a Street")
        assert candidate.website_url == topic_tier_hit["websiteUrl"]

    def test_not_found_with_null_evidence(self, tier_miss):
        candidate = SearchTierResponse.model_validate(tier_miss).to_candidate()
        assert candidate.found is False
        assert candidate.evidence is None

    def test_missing_confidence_defaults(self, topic_tier_hit):
        data = {k: v for k, v in topic_tier_hit.items() if k != "confidence"}
        assert SearchTierResponse.model_validate(data).confidence == 0.5

    @pytest.mark.parametrize("raw,expected", [(1.7, 1.0), (-0.2, 0.0), (0.42, 0.42)])
    def test_confidence_clamped(self, topic_tier_hit, raw, expected):
        response = SearchTierResponse.model_validate({**topic_tier_hit, "confidence": raw})
        assert response.confidence == expected

    def test_empty_website_url_becomes_none(self, topic_tier_hit):
        candidate = SearchTierResponse.model_validate({**topic_tier_hit, "websiteUrl": ""}).to_candidate()
        assert candidate.website_url is None

    def test_evidence_without_quote_is_invalid(self, topic_tier_hit):
        with pytest.raises(ValidationError):
            SearchTierResponse.model_validate({**topic_tier_hit, "evidence": {"sourceUrl": "https://x"}})

    def test_found_is_required(self, topic_tier_hit):
        data = {k: v for k, v in topic_tier_hit.items() if k != "found"}
        with pytest.raises(ValidationError):
            SearchTierResponse.model_validate(data)

    @pytest.mark.parametrize("missing", ["email", "agencyName", "confidence"])
    def test_optional_fields_default(self, topic_tier_hit, missing):
        data = {k: v for k, v in topic_tier_hit.items() if k != missing}
        response = SearchTierResponse.model_validate(data)
        assert response.found is True

    def test_null_field_miss_is_valid(self, null_tier_miss):
        response = SearchTierResponse.model_validate(null_tier_miss)
        candidate = response.to_candidate()
        assert candidate.found is False
        assert candidate.email == ""
        assert candidate.agency_name == ""
        assert candidate.confidence == 0.5
        assert candidate.evidence is None

    def test_null_evidence_fields_become_empty(self, tier_miss):
        response = SearchTierResponse.model_validate({**tier_miss, "evidence": {
            "sourceTitle": None, "sourceUrl": None, "quotedSnippet": None,
        }})
        assert response.evidence.quoted_snippet == ""

    def test_extra_keys_ignored(self, topic_tier_hit):
        response = SearchTierResponse.model_validate({**topic_tier_hit, "phone": "650-496-6974"})
        assert not hasattr(response, "phone")


class TestOtherResponses:

    def test_location_extraction_alias(self):
        response = LocationExtraction.model_validate({
            "location": "Castro St", "city": "Mountain View", "state": "CA", "hasExplicitLocation": True,
        })
        assert response.has_explicit_location is True

    def test_topic_requires_key(self):
        with pytest.raises(ValidationError):
            TopicResponse.model_validate({"category": "pothole"})

    def test_guess_website_optional(self):
        response = GuessResponse.model_validate({"email": "info@city.gov", "agencyName": "City"})
        assert response.website_url is None

    def test_draft_requires_non_empty_body(self):
        with pytest.raises(ValidationError):
            DraftResponse.model_validate({"subject": "Pothole", "body": ""})

    def test_revision_requires_to(self):
        with pytest.raises(ValidationError):
            RevisionResponse.model_validate({"subject": "s", "body": "b"})


class TestIsUnknown:

    @pytest.mark.parametrize("value", [None, "", "  ", "Unknown", "UNKNOWN", "n/a", "None", "null"])
    def test_placeholders(self, value):
        assert is_unknown(value)

    @pytest.mark.parametrize("value", ["Palo Alto", "CA", "pothole"])
    def test_real_values(self, value):
        assert not is_unknown(value)
