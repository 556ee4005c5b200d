"""
Destination validation for outbound webhooks.

Checks are purely lexical: the hostname string is matched against the
blocked address patterns and the domain allowlist, and no DNS lookup is
made. The allowlist is the primary control; the blocklist catches literal
private, loopback, link-local and cloud-metadata targets even if an
allowlist entry is misconfigured.
"""

import re
from typing import Iterable, Optional, Pattern, Sequence, Tuple

import httpx

from ..config.settings import DEFAULT_ALLOWED_DOMAINS
from ..models.webhook import ValidationVerdict

INVALID_FORMAT = "Invalid URL format"
HTTPS_ONLY = "Only HTTPS URLs are allowed"
BLOCKED_ADDRESS = "URL targets a blocked address space"

# RFC1918, loopback, link-local, unspecified, IPv6 local ranges and cloud metadata
BLOCKED_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"^localhost$", re.IGNORECASE),
    re.compile(r"^127\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[0-1])\."),
    re.compile(r"^192\.168\."),
    re.compile(r"^169\.254\."),
    re.compile(r"^0\."),
    re.compile(r"^::1$"),
    re.compile(r"^fe80:", re.IGNORECASE),
    re.compile(r"^fc00:", re.IGNORECASE),
    re.compile(r"^fd00:", re.IGNORECASE),
    re.compile(r"metadata\.google\.internal", re.IGNORECASE),
    re.compile(r"169\.254\.169\.254"),
    re.compile(r"metadata\.aws\.internal", re.IGNORECASE),
)


def is_blocked_host(hostname: str) -> bool:
    """True if hostname falls in a blocked address space."""
    return any(pattern.search(hostname) for pattern in BLOCKED_PATTERNS)


def _normalize_host(host: str) -> str:
    return host.strip("[]").rstrip(".").lower()


class DestinationValidator:
    """Validates webhook destination URLs against the SSRF rules."""

    def __init__(self, allowed_domains: Optional[Iterable[str]] = None):
        domains = DEFAULT_ALLOWED_DOMAINS if allowed_domains is None else allowed_domains
        self.allowed_domains: Sequence[str] = tuple(
            _normalize_host(d) for d in domains if d and d.strip()
        )

    def is_allowed_host(self, hostname: str) -> bool:
        """True if hostname is an allowlisted domain or a subdomain of one."""
        return any(
            hostname == domain or hostname.endswith("." + domain)
            for domain in self.allowed_domains
        )

    def validate(self, url_string) -> ValidationVerdict:
        """
        Validate a candidate webhook URL

        Args:
            url_string: Absolute URL supplied by the caller

        Returns:
            ValidationVerdict carrying the parsed URL when valid
        """
        if not isinstance(url_string, str) or not url_string.strip():
            return ValidationVerdict.reject(INVALID_FORMAT)

        try:
            url = httpx.URL(url_string.strip())
        except (httpx.InvalidURL, TypeError, ValueError):
            return ValidationVerdict.reject(INVALID_FORMAT)

        if url.scheme != "https":
            return ValidationVerdict.reject(HTTPS_ONLY)

        hostname = _normalize_host(url.host)
        if not hostname:
            return ValidationVerdict.reject(INVALID_FORMAT)

        if is_blocked_host(hostname):
            return ValidationVerdict.reject(BLOCKED_ADDRESS)

        if not self.is_allowed_host(hostname):
            return ValidationVerdict.reject(
                f"Domain '{hostname}' is not in the allowed webhook domains list. "
                f"Allowed domains: {', '.join(self.allowed_domains)}"
            )

        return ValidationVerdict.accept(url)
