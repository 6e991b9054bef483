"""HTTP transport: one authenticated GET per call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from ..errors import TransportError
from ..session import Session

logger = logging.getLogger(__name__)

USER_AGENT = "nimbus-reports/0.1 (httpx)"


@dataclass(frozen=True)
class TransportResponse:
    """Raw response of a GET: status code and undecoded body."""

    status: int
    body: str


class Transport(Protocol):
    """Anything that can execute a GET for a URL."""

    async def execute_get(self, url: str) -> TransportResponse: ...


class HttpTransport:
    """httpx-backed transport bound to one session."""

    def __init__(
        self,
        session: Session,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the transport.

        Args:
            session: Credentials used for every request
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to mock the network in tests)
        """
        self.session = session
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = self.session.headers()
            headers["User-Agent"] = USER_AGENT
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def execute_get(self, url: str) -> TransportResponse:
        """Execute a GET and return the raw body.

        Raises:
            TransportError: On network failure or an HTTP error status
        """
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"GET request failed: {e}") from e

        if response.status_code == 401:
            raise TransportError("Unauthorized - check your credentials", 401)
        if response.status_code == 403:
            raise TransportError("Forbidden - access denied or network not whitelisted", 403)
        if response.status_code >= 400:
            raise TransportError(
                f"API error: {response.status_code}",
                response.status_code,
                response.text,
            )

        return TransportResponse(status=response.status_code, body=response.text)
