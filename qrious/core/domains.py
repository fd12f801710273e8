"""
Static domain classification tables.

The resolver's shortener set decides transport behaviour (GET instead of HEAD,
longer timeout, body scanning). The scorer's known-bad patterns are a separate,
smaller list used only as a mild negative signal.
"""

import re
from typing import FrozenSet, Iterable, List, Optional, Pattern


# Hosts whose only job is to redirect somewhere else
URL_SHORTENERS: FrozenSet[str] = frozenset({
    "bit.ly", "bitly.com", "tinyurl.com", "t.co", "goo.gl", "ow.ly", "is.gd",
    "buff.ly", "v.gd", "cutt.ly", "shorturl.at", "rebrand.ly", "t.ly", "tiny.cc",
    "rb.gy", "bl.ink", "s.id", "lnkd.in", "soo.gd", "clck.ru", "qrco.de",
    "qr.net", "short.link", "shorte.st", "adf.ly", "trib.al", "dlvr.it",
})

SUSPICIOUS_TLDS: FrozenSet[str] = frozenset({
    "tk", "ml", "ga", "cf", "gq", "xyz", "top", "click", "download", "stream",
})

WELL_KNOWN_DOMAINS: tuple = (
    "google.com", "github.com", "microsoft.com", "apple.com",
)

KNOWN_BAD_HOSTS: tuple = (
    "bit.ly", "tinyurl.com", "t.co", "goo.gl", "ow.ly",
)

IPV4_HOST_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")


def _host_pattern(host: str) -> Pattern:
    # Whole host labels only: t.co must not match microsoft.com
    return re.compile(
        r"(?:^|[/.@])" + re.escape(host) + r"(?=[/:?#]|$)",
        re.IGNORECASE,
    )


KNOWN_BAD_PATTERNS: List[Pattern] = [_host_pattern(h) for h in KNOWN_BAD_HOSTS]


def host_matches(host: Optional[str], domains: Iterable[str]) -> bool:
    """True if host is one of domains or a subdomain of one."""
    if not host:
        return False
    host = host.lower().rstrip(".")
    for domain in domains:
        if host == domain or host.endswith("." + domain):
            return True
    return False


def is_ipv4_literal(host: Optional[str]) -> bool:
    return bool(host) and bool(IPV4_HOST_RE.match(host))


def matches_known_bad_pattern(url: str) -> bool:
    return any(pattern.search(url) for pattern in KNOWN_BAD_PATTERNS)
