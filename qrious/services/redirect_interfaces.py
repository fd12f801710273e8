"""
Redirect Resolver Interface and Data Structures

Defines the transport contract the resolver drives, the raw response it gets
back for each hop, and the states a resolution can end in.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class HttpMethod(str, Enum):
    HEAD = "HEAD"
    GET = "GET"


class ResolutionState(Enum):
    """Where the hop-following loop currently is, or why it stopped"""
    FOLLOWING = "following"
    TERMINAL_REDIRECT_FOUND = "terminal_redirect_found"
    TERMINAL_NO_REDIRECT = "terminal_no_redirect"
    CYCLE_DETECTED = "cycle_detected"
    SELF_REDIRECT_DETECTED = "self_redirect_detected"
    MAX_DEPTH_REACHED = "max_depth_reached"
    REQUEST_FAILED = "request_failed"


class RedirectType(Enum):
    """How a hop pointed at the next URL"""
    HTTP = "http"
    META_REFRESH = "meta_refresh"
    JAVASCRIPT = "javascript"


@dataclass
class HopResponse:
    """Raw response for a single request in the chain"""
    url: str
    method: HttpMethod
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup"""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def location(self) -> Optional[str]:
        return self.header("location")

    @property
    def content_type(self) -> str:
        return (self.header("content-type") or "").lower()

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type or "application/xhtml" in self.content_type


class TransportError(Exception):
    """Raised by a transport when a request could not complete"""

    def __init__(self, message: str, url: str, timed_out: bool = False):
        super().__init__(message)
        self.url = url
        self.timed_out = timed_out


class HttpTransport(ABC):
    """HTTP collaborator used by the resolver. Must never follow redirects itself."""

    @abstractmethod
    async def fetch(
        self,
        url: str,
        method: HttpMethod,
        timeout_seconds: float,
        read_body: bool = False
    ) -> HopResponse:
        """
        Issue one request.

        Args:
            url: Absolute URL to request
            method: HEAD or GET
            timeout_seconds: Total budget; the request is aborted when it runs out
            read_body: Read the body even if the response is not HTML (GET only)

        Raises:
            TransportError: on network failure or timeout
        """

    async def close(self) -> None:
        """Release pooled connections."""
