"""Pytest configuration and fixtures."""

import json
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

# Set test environment before importing app modules
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["TIKTOK_CLIENT_KEY"] = "test_client_key"
os.environ["TIKTOK_CLIENT_SECRET"] = "test_client_secret"
os.environ.pop("TIKTOK_ACCESS_TOKEN", None)

from tiktok_kit.adapters.tiktok.transport import Transport  # noqa: E402
from tiktok_kit.domain.enums import PrivacyLevel  # noqa: E402
from tiktok_kit.domain.models import CapabilitySnapshot, Credentials  # noqa: E402

BASE_URL = "https://open.tiktokapis.com/v2/"
UPLOAD_URL = "https://open-upload.tiktokapis.com/video/?upload_id=123&upload_token=abc"


def envelope(data: dict[str, Any] | None = None, code: str = "ok", message: str = "") -> dict:
    """Build a TikTok response body."""
    return {
        "data": data or {},
        "error": {"code": code, "message": message, "log_id": "202401010000000000000000"},
    }


def creator_info(**overrides: Any) -> dict[str, Any]:
    """creator_info/query data for a creator with no restrictions."""
    data = {
        "creator_avatar_url": "https://p16.tiktokcdn.com/avatar.jpeg",
        "creator_username": "tiktok",
        "creator_nickname": "TikTok Official",
        "privacy_level_options": ["PUBLIC_TO_EVERYONE", "MUTUAL_FOLLOW_FRIENDS", "SELF_ONLY"],
        "comment_disabled": False,
        "duet_disabled": False,
        "stitch_disabled": False,
        "max_video_post_duration_sec": 300,
    }
    data.update(overrides)
    return data


class FakeTikTok:
    """Routes requests to canned responses and records what was sent.

    Responses are registered per path (and optionally per method). A list of
    responses is consumed in order; the last one repeats. A response is a
    JSON dict, a ``(status, content)`` or ``(status, content, headers)`` tuple,
    or an exception to raise.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[tuple | Exception]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        path: str,
        *responses: dict[str, Any] | tuple | Exception,
        method: str = "POST",
    ) -> None:
        queue = self.routes.setdefault((method, path), [])
        for response in responses:
            if isinstance(response, dict):
                response = (200, response)
            queue.append(response)

    def calls(self, path: str, method: str | None = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.url.path.endswith(path) and (method is None or request.method == method)
        ]

    def body(self, request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for (method, path), queue in self.routes.items():
            if request.method == method and request.url.path.endswith(path):
                response = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(response, Exception):
                    raise response
                status_code, content, *rest = response
                headers = rest[0] if rest else None
                if isinstance(content, (bytes, str)):
                    return httpx.Response(status_code, content=content, headers=headers)
                return httpx.Response(status_code, json=content, headers=headers)
        return httpx.Response(404, json=envelope(code="not_found", message="no route"))


@pytest.fixture
def fake_tiktok() -> FakeTikTok:
    return FakeTikTok()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(access_token="act.test_token", open_id="open_123")


@pytest.fixture
def make_transport(credentials: Credentials) -> Callable[[FakeTikTok], Transport]:
    """Build a Transport whose HTTP client talks to a FakeTikTok."""

    def factory(fake: FakeTikTok) -> Transport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
        return Transport(credentials, client=client, base_url=BASE_URL)

    return factory


@pytest.fixture
def transport(make_transport, fake_tiktok: FakeTikTok) -> Transport:
    return make_transport(fake_tiktok)


@pytest.fixture
def capabilities() -> CapabilitySnapshot:
    """A creator who may post publicly with every interaction enabled."""
    return CapabilitySnapshot(
        avatar_url="https://p16.tiktokcdn.com/avatar.jpeg",
        nickname="TikTok Official",
        username="tiktok",
        duet_disabled=False,
        stitch_disabled=False,
        comment_disabled=False,
        max_video_duration_sec=300,
        privacy_levels=frozenset(
            {
                PrivacyLevel.PUBLIC_TO_EVERYONE,
                PrivacyLevel.MUTUAL_FOLLOW_FRIENDS,
                PrivacyLevel.SELF_ONLY,
            }
        ),
    )


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"x" * 1012)  # 1024 bytes
    return path
