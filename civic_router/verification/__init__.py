"""Advisory checks on resolved addresses."""
from civic_router.verification.domain import DomainVerifier, describe, domain_of

__all__ = ["DomainVerifier", "describe", "domain_of"]
