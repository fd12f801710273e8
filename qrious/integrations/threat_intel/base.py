"""
Base classes for third-party threat intelligence checks.

Every provider answers the same question for a URL - flagged or not - and
gives the benefit of the doubt whenever it cannot get an answer.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import aiohttp

from qrious.config.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExternalCheckResult:
    """Normalized outcome of one provider lookup."""
    passed: bool
    reason: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def clean(cls, source: Optional[str] = None) -> "ExternalCheckResult":
        return cls(passed=True, source=source)

    @classmethod
    def flagged(cls, reason: str, source: Optional[str] = None) -> "ExternalCheckResult":
        return cls(passed=False, reason=reason, source=source)


class ProviderError(Exception):
    """Raised inside a provider when the lookup cannot produce an answer."""


class ExternalCheckProvider(ABC):
    """A pluggable external check with a uniform invoke(url) contract."""

    def __init__(self, name: str, api_key: str, timeout_seconds: float,
                 session: Optional[aiohttp.ClientSession] = None):
        self.name = name
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={
                    'Accept': 'application/json',
                    'User-Agent': 'QRious-ThreatIntel/1.0'
                }
            )
            self._owns_session = True
        return self.session

    async def invoke(self, url: str) -> ExternalCheckResult:
        """Check url; provider or transport failures always resolve to a pass."""
        try:
            return await self.check(url)
        except (ProviderError, aiohttp.ClientError, ValueError) as e:
            logger.warning("Threat intel lookup failed, not penalizing", provider=self.name, error=str(e))
        except asyncio.TimeoutError:
            logger.warning("Threat intel lookup timed out, not penalizing", provider=self.name)
        return ExternalCheckResult.clean(self.name)

    @abstractmethod
    async def check(self, url: str) -> ExternalCheckResult:
        """Provider-specific lookup. May raise ProviderError or aiohttp errors."""

    async def close(self):
        """Close HTTP session."""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
