"""Schemas for redirect resolution, trust analysis and the API requests around them."""

from enum import Enum
from typing import List, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Verdict(str, Enum):
    """Categorical safety classification of a URL."""
    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    DANGEROUS = "dangerous"


class RedirectChainItem(_WireModel):
    """One HTTP attempt made while resolving a URL."""
    model_config = ConfigDict(frozen=True)

    url: str
    status_code: int
    method: str  # HEAD or GET


class ResolutionResult(_WireModel):
    """Where a URL ended up and how it got there."""
    final_url: str
    redirect_chain: List[RedirectChainItem] = Field(default_factory=list)
    depth: int = Field(0, ge=0)


class AnalysisResult(_WireModel):
    """Trust verdict for a resolved URL."""
    trust_score: int = Field(..., ge=0, le=100)
    verdict: Verdict
    reasons: List[str] = Field(default_factory=list)
    expanded_url: str
    redirect_chain: List[RedirectChainItem] = Field(default_factory=list)


def _require_http_url(value: str) -> str:
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        raise ValueError("Invalid URL")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError("Invalid URL")
    return value.strip()


class ExpandRequest(_WireModel):
    """Request body for URL expansion."""
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _require_http_url(v)


class AnalyzeRequest(ExpandRequest):
    """Request body for URL analysis."""


class ScanRequest(_WireModel):
    """Scanned QR payload, or a URL typed in directly."""
    qr_data: Optional[str] = None
    url: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _require_http_url(v)

    @model_validator(mode="after")
    def require_payload(self) -> "ScanRequest":
        if not self.qr_data and not self.url:
            raise ValueError("Either qrData or url must be provided")
        return self


class ScanResponse(_WireModel):
    url: str
    message: str = "URL extracted successfully"


class ScanAndAnalyzeResponse(AnalysisResult):
    url: str


class ApiError(BaseModel):
    error: str
    message: str
    code: Optional[str] = None
