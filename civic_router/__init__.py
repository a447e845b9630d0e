# Civic Router Core Library
# Main entry points: from civic_router import resolve, revise

from .config import load_config, RoutingSettings
from .api import build_router, resolve, revise, Router

from .models import (
    IssueReport,
    GeoPoint,
    Jurisdiction,
    Evidence,
    CandidateAddress,
    DomainCheck,
    Draft,
    FallbackLevel,
    RoutingResult,
)

from .exceptions import (
    CivicRouterError,
    APIKeyMissingError,
    ModelError,
    TransportError,
    MalformedOutputError,
    ModelBlockedError,
)

__all__ = [
    # Main entry points
    "resolve",
    "revise",
    "build_router",
    "Router",
    "load_config",
    "RoutingSettings",
    # Models
    "IssueReport",
    "GeoPoint",
    "Jurisdiction",
    "Evidence",
    "CandidateAddress",
    "DomainCheck",
    "Draft",
    "FallbackLevel",
    "RoutingResult",
    # Errors
    "CivicRouterError",
    "APIKeyMissingError",
    "ModelError",
    "TransportError",
    "MalformedOutputError",
    "ModelBlockedError",
]
