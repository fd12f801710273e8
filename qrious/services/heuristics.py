"""
Static heuristic checks run against a resolved URL.

Each check carries a fixed weight that is deducted from the trust score when it
fails. None of them touch the network.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import SplitResult, urlsplit

from qrious.core.domains import (
    SUSPICIOUS_TLDS, WELL_KNOWN_DOMAINS, is_ipv4_literal, matches_known_bad_pattern
)
from qrious.schemas.analysis import RedirectChainItem


@dataclass(frozen=True)
class HeuristicCheck:
    """Result of one heuristic"""
    name: str
    weight: int
    passed: bool
    reason: Optional[str] = None


HTTPS = "HTTPS"
SUSPICIOUS_TLD = "TLD"
IP_ADDRESS = "IP Address"
URL_PATTERN = "URL Pattern"
REDIRECT_DEPTH = "Redirect Depth"
OBFUSCATION = "Obfuscation"
DOMAIN_REPUTATION = "Domain Reputation"
URL_VALIDITY = "URL Validity"

MAX_REDIRECT_CHAIN = 3
MAX_PATH_LENGTH = 200
MAX_SPECIAL_CHARS = 10
OBFUSCATION_CHARS = frozenset("%&?=")


def parse_url(url: str) -> Optional[SplitResult]:
    """Parse url, or None if it has no usable scheme and host."""
    try:
        parts = urlsplit(url)
        # Accessing .port validates it
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts


def _check(name: str, weight: int, passed: bool, reason: str) -> HeuristicCheck:
    return HeuristicCheck(name=name, weight=weight, passed=passed, reason=None if passed else reason)


def check_https(parts: SplitResult) -> HeuristicCheck:
    return _check(HTTPS, 20, parts.scheme.lower() == "https", "URL does not use HTTPS")


def check_suspicious_tld(parts: SplitResult) -> HeuristicCheck:
    tld = parts.hostname.rstrip(".").rsplit(".", 1)[-1].lower()
    return _check(SUSPICIOUS_TLD, 15, tld not in SUSPICIOUS_TLDS, f"Suspicious TLD: .{tld}")


def check_ip_address(parts: SplitResult) -> HeuristicCheck:
    return _check(
        IP_ADDRESS, 25, not is_ipv4_literal(parts.hostname),
        "URL uses IP address instead of domain name"
    )


def check_url_pattern(url: str) -> HeuristicCheck:
    return _check(
        URL_PATTERN, 10, not matches_known_bad_pattern(url),
        "URL matches known suspicious patterns"
    )


def check_redirect_depth(redirect_chain: Sequence[RedirectChainItem]) -> HeuristicCheck:
    hops = len(redirect_chain)
    return _check(
        REDIRECT_DEPTH, 10, hops <= MAX_REDIRECT_CHAIN,
        f"Deep redirect chain ({hops} hops)"
    )


def check_obfuscation(url: str, parts: SplitResult) -> HeuristicCheck:
    too_long = len(parts.path) > MAX_PATH_LENGTH
    special = sum(1 for c in url if c in OBFUSCATION_CHARS)
    return _check(
        OBFUSCATION, 10, not too_long and special <= MAX_SPECIAL_CHARS,
        "URL appears obfuscated"
    )


def check_domain_reputation(parts: SplitResult) -> HeuristicCheck:
    # Only an allow-list; failing it costs the weight but adds no reason
    host = parts.hostname.lower()
    known = any(domain in host for domain in WELL_KNOWN_DOMAINS)
    return HeuristicCheck(name=DOMAIN_REPUTATION, weight=10, passed=known)


def run_heuristic_checks(url: str, redirect_chain: Sequence[RedirectChainItem]) -> List[HeuristicCheck]:
    """Run every heuristic in evaluation order."""
    parts = parse_url(url)
    if parts is None:
        return [HeuristicCheck(name=URL_VALIDITY, weight=100, passed=False, reason="Invalid URL format")]

    return [
        check_https(parts),
        check_suspicious_tld(parts),
        check_ip_address(parts),
        check_url_pattern(url),
        check_redirect_depth(redirect_chain),
        check_obfuscation(url, parts),
        check_domain_reputation(parts),
    ]
