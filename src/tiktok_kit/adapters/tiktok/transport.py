"""Authenticated HTTP transport for the TikTok v2 API.

Transport-level failures (DNS, TLS, timeouts, dropped connections) come back
as a failed ``TransportResult`` instead of an exception. Callers turn results
into JSON with ``TransportResult.json()``, which is where ``TransportError`` and
``ParseError`` are raised with the name of the stage that failed.
"""

import json
from collections.abc import AsyncIterable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

import httpx

from tiktok_kit.config import settings
from tiktok_kit.domain.models import Credentials
from tiktok_kit.errors import ParseError, TransportError
from tiktok_kit.logging import get_logger

logger = get_logger(__name__)

# Profile links only redirect to the web profile for browser-like clients
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class TransportResult:
    """Raw outcome of one HTTP call."""

    ok: bool
    text: str = ""
    status_code: int | None = None
    error: str = ""
    url: str = ""

    def json(self, stage: str) -> dict[str, Any]:
        """Decode the body as a JSON object.

        Raises:
            TransportError: If the call itself failed.
            ParseError: If the body is not a JSON object.
        """
        if not self.ok:
            raise TransportError(
                f"Request to {self.url} failed: {self.error}",
                stage=stage,
            )
        try:
            data = json.loads(self.text)
        except ValueError as e:
            raise ParseError(
                f"Invalid JSON from {self.url} (HTTP {self.status_code}): {self.text[:200]!r}",
                stage=stage,
            ) from e
        if not isinstance(data, dict):
            raise ParseError(
                f"Expected a JSON object from {self.url}, got {type(data).__name__}",
                stage=stage,
            )
        return data


class Transport:
    """Sends authenticated requests on behalf of one set of credentials.

    The credentials are fixed for the lifetime of the instance. After a token
    refresh, build a new transport with ``with_credentials`` rather than
    mutating this one; both share the same connection pool.
    """

    def __init__(
        self,
        credentials: Credentials,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.credentials = credentials
        self.base_url = base_url or settings.tiktok_api_base_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    def with_credentials(self, credentials: Credentials) -> "Transport":
        """Return a transport for new credentials sharing this HTTP client."""
        return Transport(credentials, client=self._client, base_url=self.base_url)

    def url(self, path: str) -> str:
        """Resolve an endpoint path against the API base URL."""
        return urljoin(self.base_url, path)

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"{self.credentials.token_type} {self.credentials.access_token}",
            "Cache-Control": "no-cache",
        }

    async def send(
        self,
        method: str,
        url: str,
        body: Mapping[str, Any] | None = None,
        as_json: bool = True,
    ) -> TransportResult:
        """Perform an authenticated call.

        Args:
            method: ``GET`` or ``POST``.
            url: Absolute URL (see ``url()``).
            body: POST payload. Ignored for GET.
            as_json: Encode the body as JSON; otherwise form-urlencoded.

        Returns:
            TransportResult with the raw response text, or ``ok=False`` if the
            request never produced a response.
        """
        method = method.upper()
        headers = self._auth_headers()
        kwargs: dict[str, Any] = {}

        if method == "POST":
            if as_json:
                headers["Content-Type"] = "application/json; charset=UTF-8"
                # TikTok expects a zero-length body, not "{}", for no-argument POSTs
                kwargs["content"] = json.dumps(body) if body else ""
            else:
                headers["Content-Type"] = "application/x-www-form-urlencoded"
                kwargs["data"] = dict(body or {})

        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("tiktok_request_failed", method=method, url=url, error=str(e))
            return TransportResult(ok=False, error=str(e) or type(e).__name__, url=url)

        logger.debug(
            "tiktok_request_completed",
            method=method,
            url=url,
            status_code=response.status_code,
        )
        return TransportResult(
            ok=True,
            text=response.text,
            status_code=response.status_code,
            url=url,
        )

    async def get(self, path: str) -> TransportResult:
        return await self.send("GET", self.url(path))

    async def post(self, path: str, body: Mapping[str, Any] | None = None) -> TransportResult:
        return await self.send("POST", self.url(path), body, as_json=True)

    async def put_bytes(
        self,
        url: str,
        content: AsyncIterable[bytes],
        headers: Mapping[str, str],
        timeout: float | None = None,
    ) -> httpx.Response:
        """Stream raw bytes to a pre-signed upload URL.

        The upload URL carries its own authorization, so no bearer token is sent.
        Unlike ``send``, transport failures propagate as ``httpx.HTTPError`` so
        the uploader can report them as upload failures.
        """
        return await self._client.put(
            url,
            content=content,
            headers=dict(headers),
            timeout=timeout if timeout is not None else settings.upload_timeout_seconds,
        )

    async def resolve_url(self, url: str) -> str:
        """Follow redirects from ``url`` and return where they end.

        Sent without the bearer token, since the target is a public web page.
        Returns an empty string if the request fails.
        """
        try:
            response = await self._client.get(
                url,
                headers={"User-Agent": BROWSER_USER_AGENT},
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.warning("tiktok_redirect_failed", url=url, error=str(e))
            return ""
        return str(response.url)
