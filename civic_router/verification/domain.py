"""
Domain Verifier - advisory check that a mail domain can receive email.

Queries a DNS-over-HTTPS JSON resolver (dns.google by default) for MX records,
falling back to an A lookup only to learn whether the domain exists at all.
A domain with a website but no MX is reported as existing, not deliverable.

The result is metadata: any failure (network, HTTP status, bad JSON, SERVFAIL,
timeout) yields exists=None / has_mail_records=None and never raises.
"""
import asyncio
import logging
import re
from typing import Optional

import httpx

from civic_router.models import DomainCheck

logger = logging.getLogger(__name__)

DEFAULT_RESOLVER_URL = "https://dns.google/resolve"
DEFAULT_TIMEOUT = 5.0

# RFC 1035 record type codes as reported in DoH JSON answers
RECORD_TYPES: dict[str, int] = {"A": 1, "MX": 15}

DNS_NOERROR = 0
DNS_NXDOMAIN = 3

_DOMAIN_RE = re.compile(r"^(?=.{1,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")


class DNSLookupError(Exception):
    """Resolver answered but could not give a definite result (e.g. SERVFAIL)."""
    pass


def domain_of(email: str) -> str:
    """Domain part of an email address ('' when there is no @)."""
    if not email or "@" not in email:
        return ""
    return email.rsplit("@", 1)[1].strip().lower().rstrip(".")


def describe(check: DomainCheck) -> str:
    """Human-readable note for the UI."""
    if check.is_unknown:
        return "Warning: Could not verify email domain. Please double-check the address."
    if check.verified:
        return f"Domain {check.domain} verified - has valid MX records"
    if check.exists:
        return f"Domain {check.domain} exists but has no mail servers. Please double-check the address."
    return f"Domain {check.domain} does not appear to exist. Please double-check the address."


class DomainVerifier:
    """
    Check MX/A records for a domain with a hard overall timeout.

    Usage:
        verifier = DomainVerifier()
        check = await verifier.check_deliverable("cityofpaloalto.org")
        if check.verified:
            ...
    """

    def __init__(
        self,
        resolver_url: str = DEFAULT_RESOLVER_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            resolver_url: DoH JSON endpoint
            timeout: Hard limit in seconds for the whole check (both lookups)
            client: Shared httpx client; a short-lived one is created per check if None
        """
        self.resolver_url = resolver_url
        self.timeout = timeout
        self._client = client

    async def check_deliverable(self, domain: str) -> DomainCheck:
        domain = (domain or "").strip().lower().rstrip(".")
        if not _DOMAIN_RE.match(domain):
            logger.warning(f"Skipping DNS check for invalid domain '{domain}'")
            return DomainCheck(domain=domain)

        try:
            return await asyncio.wait_for(self._lookup(domain), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"DNS check for {domain} timed out after {self.timeout}s")
        except (httpx.HTTPError, DNSLookupError, ValueError) as e:
            logger.warning(f"DNS check for {domain} failed: {e}")
        return DomainCheck(domain=domain)

    async def _lookup(self, domain: str) -> DomainCheck:
        if self._client is not None:
            return await self._lookup_with(self._client, domain)
        async with httpx.AsyncClient(timeout=self.timeout) as http:
            return await self._lookup_with(http, domain)

    async def _lookup_with(self, http: httpx.AsyncClient, domain: str) -> DomainCheck:
        status, mx_records = await self._query(http, domain, "MX")
        if status == DNS_NXDOMAIN:
            return DomainCheck(domain=domain, exists=False, has_mail_records=False)
        if mx_records:
            return DomainCheck(domain=domain, exists=True, has_mail_records=True)

        # No MX: an A record only proves the domain exists (web presence)
        status, a_records = await self._query(http, domain, "A")
        exists = status == DNS_NOERROR and bool(a_records)
        return DomainCheck(domain=domain, exists=exists, has_mail_records=False)

    async def _query(self, http: httpx.AsyncClient, domain: str, record_type: str) -> tuple[int, list[dict]]:
        response = await http.get(
            self.resolver_url,
            params={"name": domain, "type": record_type},
            headers={"accept": "application/dns-json"},
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Unexpected DoH payload")

        status = data.get("Status")
        if status not in (DNS_NOERROR, DNS_NXDOMAIN):
            raise DNSLookupError(f"{record_type} lookup returned DNS status {status}")

        # Answers can include CNAME hops; count only the requested type
        wanted = RECORD_TYPES[record_type]
        answers = [a for a in data.get("Answer") or [] if isinstance(a, dict) and a.get("type") == wanted]
        return status, answers
