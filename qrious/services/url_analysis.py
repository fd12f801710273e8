"""
URL analysis entry point.

Resolves a URL, scores where it ends up and caches both results per canonical URL.
"""

from typing import Optional

from qrious.config.logging import get_logger
from qrious.config.settings import Settings
from qrious.core.cache import CacheKey, ResultCache
from qrious.integrations.threat_intel import build_external_checks
from qrious.schemas.analysis import AnalysisResult, ResolutionResult
from .redirect_resolver import RedirectResolver
from .trust_scorer import TrustScorer

logger = get_logger(__name__)


class UrlAnalysisService:
    """Composes the resolver and the scorer behind an optional result cache"""

    def __init__(
        self,
        resolver: RedirectResolver,
        scorer: TrustScorer,
        cache: Optional[ResultCache] = None
    ):
        self.resolver = resolver
        self.scorer = scorer
        self.cache = cache

    @classmethod
    def from_settings(cls, settings: Settings, cache: Optional[ResultCache] = None) -> "UrlAnalysisService":
        return cls(
            resolver=RedirectResolver.from_settings(settings),
            scorer=TrustScorer(build_external_checks(settings)),
            cache=cache
        )

    @staticmethod
    def cache_url(url: str) -> str:
        """Spellings of the same location share one cache entry."""
        normalized = RedirectResolver.normalize(url)
        return RedirectResolver.canonicalize(normalized) or normalized

    async def expand(self, url: str) -> ResolutionResult:
        """Resolve url to its final destination."""
        key = CacheKey.resolve(self.cache_url(url))
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit", key=key)
                return cached

        result = await self.resolver.resolve(url)

        if self.cache is not None:
            await self.cache.set(key, result)
        return result

    async def analyze(self, url: str) -> AnalysisResult:
        """Resolve url, then score the final destination."""
        key = CacheKey.analyze(self.cache_url(url))
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit", key=key)
                return cached

        resolution = await self.resolver.resolve(url)
        scored = await self.scorer.score(resolution.final_url, resolution.redirect_chain)

        result = AnalysisResult(
            trust_score=scored.trust_score,
            verdict=scored.verdict,
            reasons=scored.reasons,
            expanded_url=resolution.final_url,
            redirect_chain=resolution.redirect_chain
        )

        logger.info(
            "URL analyzed",
            url=url,
            final_url=resolution.final_url,
            depth=resolution.depth,
            trust_score=result.trust_score,
            verdict=result.verdict.value
        )

        if self.cache is not None:
            await self.cache.set(key, result)
        return result

    async def close(self) -> None:
        await self.resolver.close()
        await self.scorer.close()
