"""
Jurisdiction resolution and topic extraction - the first two pipeline steps.

Both steps degrade instead of failing: malformed GPS, an unusable model answer
or a refusal all fall back to the configured default jurisdiction / generic
topic. TransportError is the exception: the upstream is down, so later steps
would fail the same way and the error propagates to the caller.
"""
import logging

from civic_router.config import DEFAULT_SETTINGS, RoutingSettings
from civic_router.exceptions import MalformedOutputError, ModelBlockedError
from civic_router.llm.gateway import ModelGateway
from civic_router.models import GeoPoint, IssueReport, Jurisdiction
from civic_router.prompts import (
    GEOCODE_PROMPT,
    LOCATION_EXTRACTION_PROMPT,
    TOPIC_EXTRACTION_PROMPT,
    sanitize_for_prompt,
)
from civic_router.schemas import GeocodeResponse, LocationExtraction, TopicResponse, is_unknown

logger = logging.getLogger(__name__)


def default_jurisdiction(settings: RoutingSettings = DEFAULT_SETTINGS) -> Jurisdiction:
    return Jurisdiction(city=settings.default_city, state=settings.default_state, is_default=True)


async def resolve_jurisdiction(
    gateway: ModelGateway,
    report: IssueReport,
    settings: RoutingSettings = DEFAULT_SETTINGS,
) -> Jurisdiction:
    """
    Determine the city/state responsible for the report.

    GPS present and numeric -> reverse geocode (no search grounding).
    GPS present but malformed -> default, no model call.
    No GPS -> extract an implied location from the description.
    """
    if report.has_location:
        point = report.coordinates()
        if point is None:
            logger.warning(f"Malformed location {report.location!r}; using default jurisdiction")
            return default_jurisdiction(settings)
        return await _reverse_geocode(gateway, point, settings)
    return await _extract_from_description(gateway, report.description, settings)


async def _reverse_geocode(
    gateway: ModelGateway,
    point: GeoPoint,
    settings: RoutingSettings,
) -> Jurisdiction:
    prompt = GEOCODE_PROMPT.format(latitude=point.latitude, longitude=point.longitude)
    try:
        result = await gateway.complete(prompt, use_search_grounding=False, schema=GeocodeResponse)
    except (MalformedOutputError, ModelBlockedError) as e:
        logger.warning(f"Reverse geocoding failed ({e}); using default jurisdiction")
        return default_jurisdiction(settings)

    if is_unknown(result.city) or is_unknown(result.state):
        logger.info(f"Reverse geocoding incomplete ({result.city!r}, {result.state!r}); using default")
        return default_jurisdiction(settings)
    return Jurisdiction(city=result.city.strip(), state=result.state.strip())


async def _extract_from_description(
    gateway: ModelGateway,
    description: str,
    settings: RoutingSettings,
) -> Jurisdiction:
    prompt = LOCATION_EXTRACTION_PROMPT.format(description=sanitize_for_prompt(description))
    try:
        result = await gateway.complete(prompt, use_search_grounding=False, schema=LocationExtraction)
    except (MalformedOutputError, ModelBlockedError) as e:
        logger.warning(f"Location extraction failed ({e}); using default jurisdiction")
        return default_jurisdiction(settings)

    if not result.has_explicit_location or is_unknown(result.city):
        return default_jurisdiction(settings)
    # A city without a state is still better than the default city
    state = "" if is_unknown(result.state) else result.state.strip()
    return Jurisdiction(city=result.city.strip(), state=state)


async def extract_topic(
    gateway: ModelGateway,
    description: str,
    settings: RoutingSettings = DEFAULT_SETTINGS,
) -> str:
    """Map the description to a short lower-case topic ("pothole", "graffiti", ...)."""
    prompt = TOPIC_EXTRACTION_PROMPT.format(description=sanitize_for_prompt(description))
    try:
        result = await gateway.complete(prompt, use_search_grounding=False, schema=TopicResponse)
    except (MalformedOutputError, ModelBlockedError) as e:
        logger.warning(f"Topic extraction failed ({e}); using '{settings.fallback_topic}'")
        return settings.fallback_topic

    topic = " ".join(result.topic.split()).lower()
    if is_unknown(topic):
        return settings.fallback_topic
    return topic
