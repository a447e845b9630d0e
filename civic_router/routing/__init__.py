"""
Address resolution.

Components:
- AddressResolutionPipeline: jurisdiction -> topic -> tiered search -> guess -> DNS -> draft
- is_relevant: rule-based rejection of topically wrong inboxes
- SEARCH_TIERS: ordered tier definitions
"""
from civic_router.routing.pipeline import AddressResolutionPipeline
from civic_router.routing.relevance import is_relevant
from civic_router.routing.tiers import SEARCH_TIERS, evaluate_candidate

__all__ = ["AddressResolutionPipeline", "is_relevant", "SEARCH_TIERS", "evaluate_candidate"]
