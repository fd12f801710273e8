"""Error responses shared by the routes, the exception handlers and the middleware."""

from typing import Mapping, Optional

from starlette.responses import JSONResponse

from qrious.schemas.analysis import ApiError


def error_response(
    status_code: int,
    error: str,
    message: str,
    code: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None
) -> JSONResponse:
    """JSON error body in the {error, message[, code]} shape."""
    body = ApiError(error=error, message=message, code=code)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=dict(headers) if headers else None
    )
