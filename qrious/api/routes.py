"""
QR scan and URL analysis endpoints.

Thin handlers over UrlAnalysisService; the service itself never raises for
an unreachable or malformed URL, so the only client errors here come from
request validation.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from qrious.config.logging import get_logger
from qrious.schemas.analysis import (
    AnalysisResult,
    AnalyzeRequest,
    ExpandRequest,
    ResolutionResult,
    ScanAndAnalyzeResponse,
    ScanRequest,
    ScanResponse,
)
from qrious.services.url_analysis import UrlAnalysisService
from .errors import error_response
from .validators import sanitize_url

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


def _service(request: Request) -> UrlAnalysisService:
    return request.app.state.analysis_service


def _invalid_qr_data() -> JSONResponse:
    return error_response(400, "Invalid QR data", "Could not extract URL from QR code data")


def _extract_url(body: ScanRequest) -> str:
    """URL from the explicit field, else from the decoded QR payload."""
    return sanitize_url(body.url if body.url else body.qr_data)


@router.post("/scan", response_model=ScanResponse)
async def scan(body: ScanRequest):
    try:
        url = _extract_url(body)
    except ValueError:
        return _invalid_qr_data()
    return ScanResponse(url=url)


@router.post("/expand", response_model=ResolutionResult)
async def expand(body: ExpandRequest, request: Request):
    url = sanitize_url(body.url)
    return await _service(request).expand(url)


@router.post("/analyze", response_model=AnalysisResult)
async def analyze(body: AnalyzeRequest, request: Request):
    url = sanitize_url(body.url)
    return await _service(request).analyze(url)


@router.post("/scan-and-analyze", response_model=ScanAndAnalyzeResponse)
async def scan_and_analyze(body: ScanRequest, request: Request):
    try:
        url = _extract_url(body)
    except ValueError:
        return _invalid_qr_data()

    result = await _service(request).analyze(url)
    return ScanAndAnalyzeResponse(url=url, **result.model_dump())
