"""
Shared fixtures for the QRious test suite.
"""

import os

# Quiet, deterministic settings before anything imports the app module
test_env_vars = {
    'ENVIRONMENT': 'development',
    'LOG_LEVEL': 'ERROR',
    'LOG_FORMAT': 'console',
}
for key, value in test_env_vars.items():
    os.environ[key] = value
for key in ('GOOGLE_SAFE_BROWSING_API_KEY', 'VIRUSTOTAL_API_KEY', 'SHORTENER_DOMAINS'):
    os.environ.pop(key, None)

from typing import Dict, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402

from qrious.config.settings import Settings  # noqa: E402
from qrious.integrations.threat_intel import ExternalCheckProvider, ExternalCheckResult  # noqa: E402
from qrious.services.redirect_interfaces import (  # noqa: E402
    HopResponse, HttpMethod, HttpTransport, TransportError
)

HTML = {'Content-Type': 'text/html; charset=utf-8'}


class FakeTransport(HttpTransport):
    """In-memory transport: canned responses keyed by (url, method)."""

    def __init__(self):
        self.routes: Dict[Tuple[str, HttpMethod], object] = {}
        self.calls: List[Tuple[str, HttpMethod, float, bool]] = []
        self.closed = False

    def add(self, url: str, status: int = 200, method: Optional[HttpMethod] = None,
            headers: Optional[Dict[str, str]] = None, body: Optional[str] = None):
        for m in ([method] if method else [HttpMethod.HEAD, HttpMethod.GET]):
            self.routes[(url, m)] = (status, dict(headers or {}), body)
        return self

    def redirect(self, url: str, location: str, status: int = 301, method: Optional[HttpMethod] = None):
        return self.add(url, status=status, method=method, headers={'Location': location})

    def html(self, url: str, body: str, status: int = 200):
        return self.add(url, status=status, method=HttpMethod.GET, headers=HTML, body=body)

    def fail(self, url: str, error: Exception, method: Optional[HttpMethod] = None):
        for m in ([method] if method else [HttpMethod.HEAD, HttpMethod.GET]):
            self.routes[(url, m)] = error
        return self

    async def fetch(self, url, method, timeout_seconds, read_body=False):
        self.calls.append((url, method, timeout_seconds, read_body))
        route = self.routes.get((url, method))
        if route is None:
            raise TransportError("Connection refused", url)
        if isinstance(route, Exception):
            raise route
        status, headers, body = route
        return HopResponse(
            url=url,
            method=method,
            status_code=status,
            headers=headers,
            body=body if method is HttpMethod.GET else None,
        )

    async def close(self):
        self.closed = True


class StaticCheck(ExternalCheckProvider):
    """External check with a fixed answer."""

    def __init__(self, name: str = "static", passed: bool = True, reason: Optional[str] = None,
                 timeout_seconds: float = 1.0):
        super().__init__(name=name, api_key="test-key", timeout_seconds=timeout_seconds)
        self.result = ExternalCheckResult(passed=passed, reason=reason, source=name)
        self.calls: List[str] = []
        self.closed = False

    async def check(self, url: str) -> ExternalCheckResult:
        self.calls.append(url)
        return self.result

    async def close(self):
        self.closed = True


@pytest.fixture
def settings():
    """Settings isolated from any .env file."""
    return Settings(_env_file=None, LOG_LEVEL='ERROR', LOG_FORMAT='console')


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def static_check():
    """Factory for fixed-answer external checks."""
    return StaticCheck
