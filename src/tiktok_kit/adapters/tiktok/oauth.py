"""TikTok OAuth 2.0 flow (Login Kit v2).

Handles the authorization redirect, code exchange, refresh and revocation.
Refreshing never mutates existing credentials: it returns a new
``Credentials`` value which callers thread into a new ``Transport``.
"""

import configparser
import secrets
import webbrowser
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from tiktok_kit.config import settings
from tiktok_kit.domain.models import Credentials
from tiktok_kit.errors import OAuthError, ValidationError
from tiktok_kit.logging import get_logger

logger = get_logger(__name__)

# TikTok OAuth endpoints
TIKTOK_AUTH_URL = "https://www.tiktok.com/v2/auth/authorize/"
TOKEN_PATH = "oauth/token/"
REVOKE_PATH = "oauth/revoke/"

SCOPE_USER_BASIC = "user.info.basic"
SCOPE_USER_PROFILE = "user.info.profile"
SCOPE_USER_STATS = "user.info.stats"
SCOPE_VIDEO_LIST = "video.list"
SCOPE_VIDEO_PUBLISH = "video.publish"  # Required for Direct Post
SCOPE_VIDEO_UPLOAD = "video.upload"
SCOPE_SHARE_SOUND = "share.sound.create"

VALID_SCOPES = frozenset(
    {
        SCOPE_USER_BASIC,
        SCOPE_USER_PROFILE,
        SCOPE_USER_STATS,
        SCOPE_VIDEO_LIST,
        SCOPE_VIDEO_PUBLISH,
        SCOPE_VIDEO_UPLOAD,
        SCOPE_SHARE_SOUND,
    }
)
PUBLISH_SCOPES = (SCOPE_USER_BASIC, SCOPE_VIDEO_PUBLISH, SCOPE_VIDEO_UPLOAD)

# Keys of the .ini configuration file
INI_REQUIRED_KEYS = ("client_id", "client_secret", "redirect_uri")

DEFAULT_EXPIRES_IN = 86400  # 24 hours
DEFAULT_REFRESH_EXPIRES_IN = 31536000  # 365 days


@dataclass(frozen=True)
class OAuthConfig:
    """Client registration from the TikTok developer portal."""

    client_key: str
    client_secret: str
    redirect_uri: str = "http://localhost:8085/tiktok/callback"


def get_oauth_config() -> OAuthConfig:
    """Build the OAuth config from settings / environment variables."""
    if not settings.tiktok_client_key or not settings.tiktok_client_secret:
        raise OAuthError(
            "TIKTOK_CLIENT_KEY and TIKTOK_CLIENT_SECRET environment variables are required. "
            "Create an app at https://developers.tiktok.com/apps and enable Login Kit + "
            "Content Posting API.",
            stage="oauth",
        )
    return OAuthConfig(
        client_key=settings.tiktok_client_key,
        client_secret=settings.tiktok_client_secret,
        redirect_uri=settings.tiktok_redirect_uri,
    )


def load_oauth_config(path: Path | str) -> OAuthConfig:
    """Read the OAuth config from an .ini file.

    Keys may live in the DEFAULT section or in any section; the first section
    that defines a key wins.
    """
    path = Path(path)
    if not path.is_file():
        raise OAuthError(f"Ini file not found: {path}", stage="oauth")

    parser = configparser.ConfigParser(interpolation=None)
    # Accept files without any [section] header
    parser.read_string(f"[{configparser.DEFAULTSECT}]\n" + path.read_text(encoding="utf-8"))

    values: dict[str, str] = {}
    for section in [configparser.DEFAULTSECT, *parser.sections()]:
        for key in INI_REQUIRED_KEYS:
            if key not in values and parser.has_option(section, key):
                values[key] = parser.get(section, key).strip().strip('"')

    missing = [key for key in INI_REQUIRED_KEYS if not values.get(key)]
    if missing:
        raise OAuthError(f"Ini file {path} is missing: {', '.join(missing)}", stage="oauth")

    return OAuthConfig(
        client_key=values["client_id"],
        client_secret=values["client_secret"],
        redirect_uri=values["redirect_uri"],
    )


def build_authorization_url(
    config: OAuthConfig,
    scopes: Iterable[str] = (SCOPE_USER_BASIC,),
    state: str | None = None,
) -> tuple[str, str]:
    """Generate the TikTok authorization URL.

    Returns:
        Tuple of (authorization_url, state). Keep the state to verify the
        callback and prevent CSRF.

    Raises:
        ValidationError: If a scope is not a known TikTok scope.
    """
    scopes = list(scopes)
    invalid = [scope for scope in scopes if scope not in VALID_SCOPES]
    if invalid:
        raise ValidationError(
            f"Invalid scopes {', '.join(invalid)}. Valid scopes are: "
            f"{', '.join(sorted(VALID_SCOPES))}",
            stage="oauth",
        )

    state = state or secrets.token_urlsafe(32)
    params = {
        "client_key": config.client_key,
        "scope": ",".join(scopes),
        "response_type": "code",
        "redirect_uri": config.redirect_uri,
        "state": state,
    }
    return f"{TIKTOK_AUTH_URL}?{urlencode(params)}", state


def verify_state(expected: str | None, received: str | None) -> None:
    """Check the callback state against the one sent with the redirect."""
    if not expected:
        raise OAuthError("Missing expected OAuth state", stage="oauth")
    if not received:
        raise OAuthError("Missing state parameter in OAuth callback", stage="oauth")
    if not secrets.compare_digest(expected, received):
        raise OAuthError("OAuth state mismatch", stage="oauth")


def credentials_from_token_response(data: dict[str, Any]) -> Credentials:
    """Build credentials from an oauth/token response body."""
    if data.get("error"):
        error_desc = data.get("error_description") or data.get("error")
        raise OAuthError(
            f"Token request failed: {error_desc}",
            code=str(data.get("error")),
            remote_message=str(error_desc),
            log_id=str(data.get("log_id") or ""),
            stage="oauth",
        )
    if not data.get("access_token"):
        raise OAuthError("Token response has no access_token", stage="oauth")

    now = datetime.now(UTC)
    return Credentials(
        access_token=data["access_token"],
        open_id=data.get("open_id") or "",
        refresh_token=data.get("refresh_token") or "",
        expires_at=now + timedelta(seconds=int(data.get("expires_in") or DEFAULT_EXPIRES_IN)),
        refresh_expires_at=now
        + timedelta(seconds=int(data.get("refresh_expires_in") or DEFAULT_REFRESH_EXPIRES_IN)),
        scope=data.get("scope") or "",
        token_type=data.get("token_type") or "Bearer",
    )


class OAuthClient:
    """Token endpoint calls for one registered app."""

    def __init__(
        self,
        config: OAuthConfig,
        client: httpx.Client | None = None,
        base_url: str | None = None,
    ) -> None:
        self.config = config
        self.client = client or httpx.Client(timeout=settings.http_timeout_seconds)
        self.base_url = base_url or settings.tiktok_api_base_url

    def _post_form(self, path: str, data: dict[str, str]) -> dict[str, Any]:
        try:
            response = self.client.post(
                self.base_url + path,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Cache-Control": "no-cache",
                },
            )
        except httpx.HTTPError as e:
            raise OAuthError(f"Request to {path} failed: {e}", stage="oauth") from e

        try:
            body = response.json()
        except ValueError as e:
            raise OAuthError(
                f"Invalid response from {path} (HTTP {response.status_code}): "
                f"{response.text[:200]}",
                stage="oauth",
            ) from e
        if not isinstance(body, dict):
            raise OAuthError(f"Unexpected response from {path}", stage="oauth")
        return body

    def exchange_code(self, code: str) -> Credentials:
        """Exchange an authorization code for credentials."""
        data = self._post_form(
            TOKEN_PATH,
            {
                "client_key": self.config.client_key,
                "client_secret": self.config.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.config.redirect_uri,
            },
        )
        credentials = credentials_from_token_response(data)
        logger.info("tiktok_code_exchanged", open_id=credentials.open_id, scope=credentials.scope)
        return credentials

    def refresh(self, credentials: Credentials) -> Credentials:
        """Return new credentials obtained with the refresh token.

        The passed credentials are left untouched. TikTok may omit the refresh
        token from the response, in which case the old one is kept.
        """
        if not credentials.refresh_token:
            raise OAuthError("Credentials have no refresh token", stage="oauth")

        data = self._post_form(
            TOKEN_PATH,
            {
                "client_key": self.config.client_key,
                "client_secret": self.config.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": credentials.refresh_token,
            },
        )
        refreshed = credentials_from_token_response(
            {
                "refresh_token": credentials.refresh_token,
                "open_id": credentials.open_id,
                "scope": credentials.scope,
                **{key: value for key, value in data.items() if value not in (None, "")},
            }
        )
        logger.info("tiktok_token_refreshed", open_id=refreshed.open_id)
        return refreshed

    def revoke(self, credentials: Credentials) -> bool:
        """Revoke an access token. Returns False if TikTok reports an error."""
        data = self._post_form(
            REVOKE_PATH,
            {
                "client_key": self.config.client_key,
                "client_secret": self.config.client_secret,
                "token": credentials.access_token,
            },
        )
        if data.get("error"):
            logger.warning(
                "tiktok_token_revoke_failed",
                error=data.get("error"),
                description=data.get("error_description"),
            )
            return False
        return True

    def close(self) -> None:
        self.client.close()


def wait_for_callback(
    expected_state: str,
    port: int = 8085,
    timeout: int = 300,
) -> str:
    """Run a one-shot local server that receives the OAuth redirect.

    Returns:
        The authorization code.

    Raises:
        OAuthError: If TikTok reports an error, the state does not match or no
            code arrives before ``timeout``.
    """
    received: dict[str, str] = {}

    class CallbackHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            parsed = urlparse(self.path)
            if not parsed.path.endswith("/callback"):
                self.send_response(404)
                self.end_headers()
                return

            params = {key: values[0] for key, values in parse_qs(parsed.query).items()}
            received.update(params)
            ok = "code" in params and "error" not in params
            self.send_response(200 if ok else 400)
            self.send_header("Content-type", "text/html")
            self.end_headers()
            message = b"Authorization successful" if ok else b"Authorization failed"
            self.wfile.write(
                b"<html><body><h1>" + message + b"</h1>"
                b"<p>You can close this window.</p></body></html>"
            )

        def log_message(self, format: str, *args: Any) -> None:
            pass

    server = HTTPServer(("localhost", port), CallbackHandler)
    server.timeout = timeout
    try:
        server.handle_request()
    finally:
        server.server_close()

    if "error" in received:
        raise OAuthError(
            f"Authorization failed: {received.get('error_description', received['error'])}",
            code=received["error"],
            stage="oauth",
        )
    if "code" not in received:
        raise OAuthError("No authorization code received", stage="oauth")

    verify_state(expected_state, received.get("state"))
    return received["code"]


def run_local_login(
    config: OAuthConfig,
    scopes: Iterable[str] = PUBLISH_SCOPES,
    port: int = 8085,
) -> Credentials:
    """Run the complete authorization flow against a local callback server."""
    config = OAuthConfig(
        client_key=config.client_key,
        client_secret=config.client_secret,
        redirect_uri=f"http://localhost:{port}/tiktok/callback",
    )
    auth_url, state = build_authorization_url(config, scopes)

    logger.info("tiktok_authorization_started", url=auth_url, port=port)
    webbrowser.open(auth_url)

    code = wait_for_callback(state, port=port)
    client = OAuthClient(config)
    try:
        return client.exchange_code(code)
    finally:
        client.close()
