"""
Threat Intelligence Integration Package.

External checks are configured independently: a provider exists only when its
API key is set, and an absent provider contributes nothing to a score.
"""

from typing import List

from qrious.config.settings import Settings

from .base import ExternalCheckProvider, ExternalCheckResult, ProviderError
from .safe_browsing import SafeBrowsingClient
from .virustotal import VirusTotalClient


def build_external_checks(settings: Settings) -> List[ExternalCheckProvider]:
    """Instantiate every provider that has a credential configured."""
    providers: List[ExternalCheckProvider] = []

    safe_browsing_key = settings.get_safe_browsing_api_key()
    if safe_browsing_key:
        providers.append(SafeBrowsingClient(
            api_key=safe_browsing_key,
            timeout_seconds=settings.SAFE_BROWSING_TIMEOUT_MS / 1000.0
        ))

    virustotal_key = settings.get_virustotal_api_key()
    if virustotal_key:
        providers.append(VirusTotalClient(
            api_key=virustotal_key,
            timeout_seconds=settings.VIRUSTOTAL_TIMEOUT_MS / 1000.0
        ))

    return providers


__all__ = [
    'ExternalCheckProvider',
    'ExternalCheckResult',
    'ProviderError',
    'SafeBrowsingClient',
    'VirusTotalClient',
    'build_external_checks',
]
