"""
Google Safe Browsing v4 threat-list lookup.
"""

from typing import Any, Dict, List, Optional

import aiohttp

from .base import ExternalCheckProvider, ExternalCheckResult, ProviderError


class SafeBrowsingClient(ExternalCheckProvider):
    """threatMatches:find lookup for a single URL."""

    BASE_URL = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
    THREAT_TYPES = ["MALWARE", "SOCIAL_ENGINEERING", "UNWANTED_SOFTWARE"]

    def __init__(self, api_key: str, timeout_seconds: float = 5.0,
                 session: Optional[aiohttp.ClientSession] = None,
                 client_id: str = "qrious", client_version: str = "1.0"):
        super().__init__(
            name="safe_browsing",
            api_key=api_key,
            timeout_seconds=timeout_seconds,
            session=session
        )
        self.client_id = client_id
        self.client_version = client_version

    def build_payload(self, url: str) -> Dict[str, Any]:
        return {
            "client": {
                "clientId": self.client_id,
                "clientVersion": self.client_version,
            },
            "threatInfo": {
                "threatTypes": self.THREAT_TYPES,
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}],
            },
        }

    async def check(self, url: str) -> ExternalCheckResult:
        session = await self._get_session()
        async with session.post(
            self.BASE_URL,
            params={"key": self.api_key},
            json=self.build_payload(url),
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
        ) as response:
            if response.status != 200:
                raise ProviderError(f"Safe Browsing API error {response.status}")
            data = await response.json(content_type=None)

        return self.normalize_response(data)

    def normalize_response(self, data: Any) -> ExternalCheckResult:
        """Turn a threatMatches response into a pass/fail."""
        matches: List[Dict[str, Any]] = (data or {}).get("matches") or []
        if not matches:
            return ExternalCheckResult.clean(self.name)

        threat_types: List[str] = []
        for match in matches:
            threat_type = match.get("threatType")
            if threat_type and threat_type not in threat_types:
                threat_types.append(threat_type)

        return ExternalCheckResult.flagged(
            f"Flagged by Google Safe Browsing: {', '.join(threat_types) or 'UNKNOWN'}",
            self.name
        )
