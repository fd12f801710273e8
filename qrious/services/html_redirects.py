"""
Client-side redirect detection in HTML bodies.

Best effort only: a handful of regular expressions tried in order, first match
wins. This is not an HTML or JavaScript parser and will miss anything built
dynamically.
"""

import html
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Pattern, Sequence, Tuple

from .redirect_interfaces import RedirectType


class RedirectExtractor(ABC):
    """One strategy for spotting a client-side redirect"""

    redirect_type: RedirectType

    @abstractmethod
    def extract(self, content: str) -> Optional[str]:
        """Return the raw redirect target, or None"""


class MetaRefreshExtractor(RedirectExtractor):
    """<meta http-equiv="refresh" content="0; url=...">"""

    redirect_type = RedirectType.META_REFRESH

    _META_TAG = re.compile(r'<meta\b[^>]*>', re.IGNORECASE)
    _HTTP_EQUIV = re.compile(r'http-equiv\s*=\s*["\']?refresh["\']?', re.IGNORECASE)
    _CONTENT = re.compile(r'content\s*=\s*(?:"([^"]*)"|\'([^\']*)\')', re.IGNORECASE)
    _URL_PARAM = re.compile(r'url\s*=\s*["\']?([^"\'>\s]+)', re.IGNORECASE)

    def extract(self, content: str) -> Optional[str]:
        for tag in self._META_TAG.finditer(content):
            tag_text = tag.group(0)
            if not self._HTTP_EQUIV.search(tag_text):
                continue
            content_attr = self._CONTENT.search(tag_text)
            if not content_attr:
                continue
            value = content_attr.group(1) if content_attr.group(1) is not None else content_attr.group(2)
            url_param = self._URL_PARAM.search(value)
            if url_param:
                return html.unescape(url_param.group(1).strip())
        return None


class JavaScriptRedirectExtractor(RedirectExtractor):
    """window.location / location.href / location.replace assignments"""

    redirect_type = RedirectType.JAVASCRIPT

    PATTERNS: Sequence[Tuple[str, Pattern]] = (
        ('window_location_href', re.compile(r'window\.location\.href\s*=\s*["\']([^"\']+)["\']')),
        ('window_location_replace', re.compile(r'window\.location\.replace\s*\(\s*["\']([^"\']+)["\']\s*\)')),
        ('window_location', re.compile(r'window\.location\s*=\s*["\']([^"\']+)["\']')),
        ('location_href', re.compile(r'(?<![\w.])location\.href\s*=\s*["\']([^"\']+)["\']')),
        ('location_replace', re.compile(r'(?<![\w.])location\.replace\s*\(\s*["\']([^"\']+)["\']\s*\)')),
    )

    def extract(self, content: str) -> Optional[str]:
        for _name, pattern in self.PATTERNS:
            match = pattern.search(content)
            if match:
                return html.unescape(match.group(1).strip())
        return None


DEFAULT_EXTRACTORS: List[RedirectExtractor] = [
    MetaRefreshExtractor(),
    JavaScriptRedirectExtractor(),
]


def find_client_redirect(
    content: Optional[str],
    extractors: Sequence[RedirectExtractor] = DEFAULT_EXTRACTORS
) -> Optional[Tuple[RedirectType, str]]:
    """Run extractors in order and return the first (type, target) found."""
    if not content:
        return None
    for extractor in extractors:
        target = extractor.extract(content)
        if target:
            return extractor.redirect_type, target
    return None
