"""
Redirect Resolver

Follows HTTP redirects, plus meta-refresh and JavaScript redirects served by
shorteners, one hop at a time until it reaches the final destination. Never
raises for reachability problems: every exit path returns the furthest URL it
got to.
"""

import time
from typing import Iterable, List, Optional, Sequence, Set
from urllib.parse import urljoin, urlsplit, urlunsplit

from qrious.config.logging import get_logger
from qrious.config.settings import Settings
from qrious.core.domains import URL_SHORTENERS, host_matches
from qrious.schemas.analysis import RedirectChainItem, ResolutionResult
from .html_redirects import DEFAULT_EXTRACTORS, RedirectExtractor, find_client_redirect
from .http_transport import AiohttpTransport
from .redirect_interfaces import (
    HopResponse, HttpMethod, HttpTransport, RedirectType, ResolutionState, TransportError
)

logger = get_logger(__name__)

# Servers that refuse HEAD outright get the same hop again as GET
HEAD_REJECTED_STATUS_CODES = frozenset({405, 501})


class RedirectResolver:
    """Resolves a URL to its final destination and records every hop taken"""

    def __init__(
        self,
        transport: HttpTransport,
        max_depth: int = 10,
        timeout_ms: int = 5000,
        shortener_domains: Iterable[str] = URL_SHORTENERS,
        extractors: Sequence[RedirectExtractor] = DEFAULT_EXTRACTORS
    ):
        self.transport = transport
        self.max_depth = max_depth
        self.timeout_ms = timeout_ms
        self.shortener_domains = frozenset(d.lower() for d in shortener_domains)
        self.extractors = list(extractors)

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[HttpTransport] = None) -> "RedirectResolver":
        if transport is None:
            transport = AiohttpTransport(
                user_agent=settings.USER_AGENT,
                max_body_bytes=settings.MAX_BODY_BYTES
            )
        return cls(
            transport=transport,
            max_depth=settings.MAX_REDIRECT_DEPTH,
            timeout_ms=settings.REQUEST_TIMEOUT_MS,
            shortener_domains=URL_SHORTENERS | set(settings.get_shortener_domains())
        )

    @staticmethod
    def normalize(url: str) -> str:
        """Give scheme-less input an https:// prefix."""
        url = url.strip()
        if not url.lower().startswith(('http://', 'https://')):
            url = 'https://' + url
        return url

    @staticmethod
    def canonicalize(url: str) -> Optional[str]:
        """Parse and re-serialize a URL for visited-set comparison. None if unparseable."""
        try:
            parts = urlsplit(url)
            if not parts.scheme or not parts.netloc:
                return None
            return urlunsplit((
                parts.scheme.lower(),
                parts.netloc.lower(),
                parts.path or '/',
                parts.query,
                ''
            ))
        except ValueError:
            return None

    def is_shortener(self, url: str) -> bool:
        try:
            host = urlsplit(url).hostname
        except ValueError:
            return False
        return host_matches(host, self.shortener_domains)

    def timeout_for(self, url: str) -> float:
        """Per-hop timeout in seconds; shorteners get twice as long."""
        timeout_ms = self.timeout_ms * 2 if self.is_shortener(url) else self.timeout_ms
        return timeout_ms / 1000.0

    async def resolve(self, url: str) -> ResolutionResult:
        """
        Follow redirects from url until the destination stops redirecting.

        Args:
            url: Raw input, scheme optional

        Returns:
            ResolutionResult with the final URL, every request made, and the
            number of redirect transitions followed
        """
        current = self.normalize(url)
        chain: List[RedirectChainItem] = []
        visited: Set[str] = set()
        depth = 0
        state = ResolutionState.FOLLOWING
        start_time = time.time()

        try:
            while state is ResolutionState.FOLLOWING:
                if depth >= self.max_depth:
                    state = ResolutionState.MAX_DEPTH_REACHED
                    break

                key = self.canonicalize(current)
                if key is None:
                    logger.debug("Unparseable URL in chain", url=current)
                    state = ResolutionState.REQUEST_FAILED
                    break
                visited.add(key)

                response = await self._request_hop(current, chain)
                if response is None:
                    state = ResolutionState.REQUEST_FAILED
                    break

                candidate, redirect_type = self._next_candidate(current, response)
                if candidate is None:
                    state = (
                        ResolutionState.TERMINAL_REDIRECT_FOUND if redirect_type
                        else ResolutionState.TERMINAL_NO_REDIRECT
                    )
                    break
                if candidate == current:
                    state = ResolutionState.SELF_REDIRECT_DETECTED
                    break
                if self.canonicalize(candidate) in visited:
                    state = ResolutionState.CYCLE_DETECTED
                    break

                logger.debug(
                    "Following redirect",
                    hop=depth,
                    redirect_type=redirect_type.value,
                    status_code=response.status_code,
                    target=candidate
                )
                current = candidate
                depth += 1

        except Exception:
            # Resolution only narrows down to "this is as far as we got"
            logger.exception("Unexpected error while resolving redirects", url=current)
            state = ResolutionState.REQUEST_FAILED

        logger.debug(
            "Redirect resolution finished",
            state=state.value,
            final_url=current,
            depth=depth,
            requests=len(chain),
            duration_ms=int((time.time() - start_time) * 1000)
        )

        return ResolutionResult(final_url=current, redirect_chain=chain, depth=depth)

    async def _request_hop(self, url: str, chain: List[RedirectChainItem]) -> Optional[HopResponse]:
        """
        Request url and record exactly one chain entry for the hop.

        A HEAD answered with 405/501 is repeated as GET and only the GET
        response is recorded.
        """
        shortener = self.is_shortener(url)
        timeout = self.timeout_for(url)
        # Some shorteners misbehave on HEAD
        method = HttpMethod.GET if shortener else HttpMethod.HEAD

        try:
            response = await self.transport.fetch(url, method, timeout, read_body=shortener)
        except TransportError as e:
            if method is HttpMethod.HEAD and not chain:
                logger.debug("HEAD failed on first hop, retrying with GET", url=url, error=str(e))
                response = await self._get_or_none(url, timeout)
                if response is not None:
                    chain.append(self._chain_item(response))
                return response
            logger.debug("Request failed mid-chain", url=url, error=str(e), timed_out=e.timed_out)
            return None

        if method is HttpMethod.HEAD and response.status_code in HEAD_REJECTED_STATUS_CODES:
            retried = await self._get_or_none(url, timeout)
            if retried is not None:
                response = retried

        chain.append(self._chain_item(response))
        return response

    async def _get_or_none(self, url: str, timeout: float) -> Optional[HopResponse]:
        try:
            return await self.transport.fetch(url, HttpMethod.GET, timeout)
        except TransportError as e:
            logger.debug("GET failed", url=url, error=str(e), timed_out=e.timed_out)
            return None

    def _next_candidate(self, current: str, response: HopResponse):
        """
        Work out where this hop points.

        Returns:
            (candidate, redirect_type). candidate is None when there is nothing
            to follow; redirect_type is still set if a target was found but is
            not an http(s) URL.
        """
        if response.is_redirect and response.location:
            return self._resolve_location(current, response.location), RedirectType.HTTP

        if response.method is HttpMethod.GET and (response.is_html or self.is_shortener(current)):
            found = find_client_redirect(response.body, self.extractors)
            if found:
                redirect_type, target = found
                return self._resolve_location(current, target), redirect_type

        return None, None

    @staticmethod
    def _resolve_location(base: str, location: str) -> Optional[str]:
        """Resolve a relative or absolute redirect target against the current URL."""
        try:
            resolved = urljoin(base, location.strip())
            scheme = urlsplit(resolved).scheme.lower()
        except ValueError:
            return None
        if scheme not in ('http', 'https'):
            return None
        return resolved

    @staticmethod
    def _chain_item(response: HopResponse) -> RedirectChainItem:
        return RedirectChainItem(
            url=response.url,
            status_code=response.status_code,
            method=response.method.value
        )

    async def close(self) -> None:
        await self.transport.close()
