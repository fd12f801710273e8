"""
VirusTotal API v3 reputation scan.

Two phases: submit the URL for scanning, then read the URL report. A URL
VirusTotal has never analysed has no report yet, which counts as a pass.
"""

import base64
from typing import Any, Dict, Optional

import aiohttp

from .base import ExternalCheckProvider, ExternalCheckResult, ProviderError


class VirusTotalClient(ExternalCheckProvider):
    """Multi-engine URL reputation lookup."""

    BASE_URL = "https://www.virustotal.com/api/v3"

    def __init__(self, api_key: str, timeout_seconds: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None):
        super().__init__(
            name="virustotal",
            api_key=api_key,
            timeout_seconds=timeout_seconds,
            session=session
        )

    @property
    def _headers(self) -> Dict[str, str]:
        return {'x-apikey': self.api_key}

    @staticmethod
    def encode_url_id(url: str) -> str:
        """URL identifier for the /urls/{id} endpoint (base64 without padding)."""
        return base64.urlsafe_b64encode(url.encode('utf-8')).decode('utf-8').rstrip('=')

    async def submit(self, url: str) -> None:
        session = await self._get_session()
        async with session.post(
            f"{self.BASE_URL}/urls",
            data={'url': url},
            headers=self._headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
        ) as response:
            if response.status == 401:
                raise ProviderError("Invalid VirusTotal API key")
            if response.status == 429:
                raise ProviderError("VirusTotal rate limit exceeded")
            if response.status >= 300:
                raise ProviderError(f"VirusTotal submit error {response.status}")

    async def fetch_report(self, url: str) -> Optional[Dict[str, Any]]:
        """URL report, or None when VirusTotal has not scanned it yet."""
        session = await self._get_session()
        async with session.get(
            f"{self.BASE_URL}/urls/{self.encode_url_id(url)}",
            headers=self._headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
        ) as response:
            if response.status == 404:
                return None
            if response.status != 200:
                raise ProviderError(f"VirusTotal report error {response.status}")
            return await response.json(content_type=None)

    async def check(self, url: str) -> ExternalCheckResult:
        await self.submit(url)
        report = await self.fetch_report(url)
        return self.normalize_response(report)

    def normalize_response(self, report: Optional[Dict[str, Any]]) -> ExternalCheckResult:
        """Fail when one or more engines flag the URL; anything inconclusive passes."""
        if not report:
            return ExternalCheckResult.clean(self.name)

        attributes = (report.get("data") or {}).get("attributes") or {}
        stats = attributes.get("last_analysis_stats") or {}
        try:
            flagged = int(stats.get("malicious", 0)) + int(stats.get("suspicious", 0))
        except (TypeError, ValueError):
            return ExternalCheckResult.clean(self.name)

        if flagged > 0:
            return ExternalCheckResult.flagged(
                f"Flagged by {flagged} security vendors on VirusTotal",
                self.name
            )
        return ExternalCheckResult.clean(self.name)
