"""
HTTP transport for redirect resolution.

Issues single requests with aiohttp and never lets the client follow redirects;
the resolver inspects every hop itself.
"""

import asyncio
import ssl
from typing import Optional

import aiohttp
import certifi

from qrious.config.logging import get_logger
from .redirect_interfaces import HopResponse, HttpMethod, HttpTransport, TransportError

logger = get_logger(__name__)


class AiohttpTransport(HttpTransport):
    """aiohttp-backed transport with a lazily created, reusable session"""

    def __init__(
        self,
        user_agent: str = "QRious/1.0",
        max_body_bytes: int = 512 * 1024,
        verify_ssl: bool = True,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.user_agent = user_agent
        self.max_body_bytes = max_body_bytes
        self.session = session
        self._owns_session = session is None

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())
        if not verify_ssl:
            self.ssl_context.check_hostname = False
            self.ssl_context.verify_mode = ssl.CERT_NONE

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            headers = {
                'User-Agent': self.user_agent,
                'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
                'Accept-Language': 'en-US,en;q=0.5',
            }
            self.session = aiohttp.ClientSession(
                headers=headers,
                connector=aiohttp.TCPConnector(ssl=self.ssl_context)
            )
            self._owns_session = True
        return self.session

    async def fetch(
        self,
        url: str,
        method: HttpMethod,
        timeout_seconds: float,
        read_body: bool = False
    ) -> HopResponse:
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        try:
            async with session.request(
                method.value,
                url,
                allow_redirects=False,  # We handle redirects manually
                timeout=timeout
            ) as response:
                hop = HopResponse(
                    url=url,
                    method=method,
                    status_code=response.status,
                    headers={k: v for k, v in response.headers.items()},
                )

                if method == HttpMethod.GET and (read_body or hop.is_html):
                    raw = await self._read_capped(response)
                    hop.body = raw.decode(response.charset or 'utf-8', errors='replace')

                return hop

        except asyncio.TimeoutError:
            raise TransportError("Request timeout", url, timed_out=True)
        except aiohttp.ClientError as e:
            raise TransportError(f"HTTP client error: {str(e)}", url)
        except (ValueError, LookupError) as e:
            # Unusable URL or unknown charset
            raise TransportError(f"Invalid request: {str(e)}", url)

    async def _read_capped(self, response: aiohttp.ClientResponse) -> bytes:
        """Read at most max_body_bytes of the body."""
        chunks = []
        remaining = self.max_body_bytes
        while remaining > 0:
            chunk = await response.content.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b''.join(chunks)

    async def close(self) -> None:
        """Close HTTP session."""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
