"""Redirect resolution and trust scoring services."""

from .redirect_resolver import RedirectResolver
from .trust_scorer import ScoreResult, TrustScorer
from .url_analysis import UrlAnalysisService

__all__ = ["RedirectResolver", "ScoreResult", "TrustScorer", "UrlAnalysisService"]
