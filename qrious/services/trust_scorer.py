"""
Trust Scorer

Combines the static heuristics with whichever external threat checks are
configured into a 0-100 trust score, a verdict and the reasons behind it.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from qrious.config.logging import get_logger
from qrious.integrations.threat_intel import ExternalCheckProvider, ExternalCheckResult
from qrious.schemas.analysis import RedirectChainItem, Verdict
from .heuristics import (
    HTTPS, IP_ADDRESS, SUSPICIOUS_TLD, URL_VALIDITY, HeuristicCheck, run_heuristic_checks
)

logger = get_logger(__name__)

STARTING_SCORE = 100
EXTERNAL_CHECK_PENALTY = 30
HIGH_WEIGHT_THRESHOLD = 20
SAFE_THRESHOLD = 80
SUSPICIOUS_THRESHOLD = 50


@dataclass
class ScoreResult:
    """Score, verdict and explanation for a single URL"""
    trust_score: int
    verdict: Verdict
    reasons: List[str] = field(default_factory=list)
    heuristic_checks: List[HeuristicCheck] = field(default_factory=list)
    external_checks: List[ExternalCheckResult] = field(default_factory=list)


def calculate_trust_score(
    heuristic_checks: Sequence[HeuristicCheck],
    external_checks: Sequence[ExternalCheckResult]
) -> int:
    """Deduct failed check weights from 100 and clamp to [0, 100]."""
    score = STARTING_SCORE
    for check in heuristic_checks:
        if not check.passed:
            score -= check.weight
    for check in external_checks:
        if not check.passed:
            score -= EXTERNAL_CHECK_PENALTY
    return max(0, min(100, score))


def determine_verdict(
    trust_score: int,
    heuristic_checks: Sequence[HeuristicCheck],
    external_checks: Sequence[ExternalCheckResult]
) -> Verdict:
    """First match wins: external failure, then high-weight heuristic failure, then thresholds."""
    if any(not c.passed for c in external_checks):
        return Verdict.DANGEROUS
    if any(not c.passed and c.weight >= HIGH_WEIGHT_THRESHOLD for c in heuristic_checks):
        return Verdict.DANGEROUS
    if trust_score >= SAFE_THRESHOLD:
        return Verdict.SAFE
    if trust_score >= SUSPICIOUS_THRESHOLD:
        return Verdict.SUSPICIOUS
    return Verdict.DANGEROUS


def collect_reasons(
    heuristic_checks: Sequence[HeuristicCheck],
    external_checks: Sequence[ExternalCheckResult],
    verdict: Verdict
) -> List[str]:
    """Failed heuristic reasons in evaluation order, then external reasons."""
    reasons = [c.reason for c in heuristic_checks if not c.passed and c.reason]
    reasons.extend(c.reason for c in external_checks if not c.passed and c.reason)

    if verdict is Verdict.SAFE and not reasons:
        # Affirmations only for what the checks actually confirmed
        passed = {c.name for c in heuristic_checks if c.passed}
        reasons.append("No security issues detected")
        if HTTPS in passed:
            reasons.append("HTTPS enabled")
        if IP_ADDRESS in passed and SUSPICIOUS_TLD in passed:
            reasons.append("Valid domain name")

    return reasons


class TrustScorer:
    """Scores a resolved URL. Never raises."""

    def __init__(self, external_checks: Optional[Sequence[ExternalCheckProvider]] = None):
        self.external_checks = list(external_checks or [])

    async def run_external_checks(self, url: str) -> List[ExternalCheckResult]:
        """Run every configured provider concurrently, each under its own timeout."""
        if not self.external_checks:
            return []
        return list(await asyncio.gather(
            *(self._invoke(provider, url) for provider in self.external_checks)
        ))

    async def _invoke(self, provider: ExternalCheckProvider, url: str) -> ExternalCheckResult:
        try:
            return await asyncio.wait_for(provider.invoke(url), timeout=provider.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("External check timed out, not penalizing", provider=provider.name)
        except Exception:
            logger.warning("External check raised, not penalizing", provider=provider.name, exc_info=True)
        return ExternalCheckResult.clean(provider.name)

    async def score(self, url: str, redirect_chain: Sequence[RedirectChainItem] = ()) -> ScoreResult:
        """
        Score a URL.

        Args:
            url: Final URL after redirect resolution
            redirect_chain: Hops taken to reach it

        Returns:
            ScoreResult; a malformed URL scores 0 instead of raising
        """
        heuristic_checks = run_heuristic_checks(url, redirect_chain)
        if any(c.name == URL_VALIDITY for c in heuristic_checks):
            external_checks = []
        else:
            external_checks = await self.run_external_checks(url)

        trust_score = calculate_trust_score(heuristic_checks, external_checks)
        verdict = determine_verdict(trust_score, heuristic_checks, external_checks)
        reasons = collect_reasons(heuristic_checks, external_checks, verdict)

        logger.debug(
            "URL scored",
            url=url,
            trust_score=trust_score,
            verdict=verdict.value,
            failed_checks=[c.name for c in heuristic_checks if not c.passed],
            external_failures=sum(1 for c in external_checks if not c.passed)
        )

        return ScoreResult(
            trust_score=trust_score,
            verdict=verdict,
            reasons=reasons,
            heuristic_checks=heuristic_checks,
            external_checks=external_checks
        )

    async def close(self) -> None:
        for provider in self.external_checks:
            await provider.close()
