"""Wire models shared by the services and the API."""

from .analysis import (
    AnalysisResult,
    AnalyzeRequest,
    ApiError,
    ExpandRequest,
    RedirectChainItem,
    ResolutionResult,
    ScanAndAnalyzeResponse,
    ScanRequest,
    ScanResponse,
    Verdict,
)

__all__ = [
    "AnalysisResult",
    "AnalyzeRequest",
    "ApiError",
    "ExpandRequest",
    "RedirectChainItem",
    "ResolutionResult",
    "ScanAndAnalyzeResponse",
    "ScanRequest",
    "ScanResponse",
    "Verdict",
]
