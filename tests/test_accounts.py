"""Tests for profile and video list queries."""

from datetime import UTC, datetime

import httpx
import pytest
from conftest import envelope

from tiktok_kit.adapters.tiktok.accounts import (
    USER_INFO_PATH,
    VIDEO_LIST_PATH,
    VIDEO_QUERY_PATH,
    AccountClient,
    UserProfile,
    VideoInfo,
    parse_handle,
)
from tiktok_kit.errors import TikTokError, ValidationError

DEEP_LINK = "https://vm.tiktok.com/ZMabc123/"


def video(video_id: str, **fields) -> dict:
    return {"id": video_id, "title": f"video {video_id}", **fields}


@pytest.fixture
def accounts(transport) -> AccountClient:
    return AccountClient(transport)


class TestUserProfile:
    """Tests for UserProfile parsing."""

    def test_parses_requested_fields(self):
        payload = envelope(
            {
                "user": {
                    "open_id": "open_123",
                    "display_name": "Creator",
                    "avatar_url_100": "https://cdn/100.jpg",
                    "follower_count": 42,
                    "is_verified": True,
                }
            }
        )

        profile = UserProfile.from_json(payload)

        assert profile.open_id == "open_123"
        assert profile.display_name == "Creator"
        assert profile.follower_count == 42
        assert profile.is_verified is True
        assert profile.bio == ""
        assert profile.best_avatar == "https://cdn/100.jpg"

    def test_best_avatar_prefers_large(self):
        profile = UserProfile(avatar_url="small", avatar_large_url="large")

        assert profile.best_avatar == "large"


class TestParseHandle:
    """Tests for extracting the @handle from a profile URL."""

    def test_web_profile_url(self):
        assert parse_handle("https://www.tiktok.com/@creator.name?lang=en") == "creator.name"

    def test_encoded_redirect_parameter(self):
        url = (
            "https://www.tiktok.com/login?redirect_url="
            "https%3A%2F%2Fwww.tiktok.com%2F%40creator_1%3Flang%3Den"
        )

        assert parse_handle(url) == "creator_1"

    def test_unrelated_url(self):
        assert parse_handle("https://vm.tiktok.com/ZMabc123/") == ""
        assert parse_handle("") == ""


class TestVideoInfo:
    """Tests for VideoInfo parsing."""

    def test_create_time_is_utc_datetime(self):
        info = VideoInfo.from_json(video("7301", create_time=1700000000, view_count=10))

        assert info.created_at == datetime.fromtimestamp(1700000000, UTC)
        assert info.view_count == 10

    def test_missing_create_time(self):
        assert VideoInfo.from_json(video("7301")).created_at is None


class TestAccountClient:
    """Tests for AccountClient."""

    @pytest.mark.asyncio
    async def test_get_user(self, accounts, fake_tiktok):
        fake_tiktok.add(
            USER_INFO_PATH,
            envelope({"user": {"open_id": "open_123", "display_name": "Creator"}}),
            method="GET",
        )

        profile = await accounts.get_user(["open_id", "display_name"])

        assert profile.display_name == "Creator"
        request = fake_tiktok.requests[0]
        assert request.url.params["fields"] == "open_id,display_name"

    @pytest.mark.asyncio
    async def test_get_user_unknown_field(self, accounts, fake_tiktok):
        with pytest.raises(ValidationError, match="password"):
            await accounts.get_user(["open_id", "password"])

        assert fake_tiktok.requests == []

    @pytest.mark.asyncio
    async def test_get_user_error(self, accounts, fake_tiktok):
        fake_tiktok.add(
            USER_INFO_PATH,
            envelope(code="scope_not_authorized", message="missing scope"),
            method="GET",
        )

        with pytest.raises(TikTokError) as exc_info:
            await accounts.get_user()

        assert exc_info.value.code == "scope_not_authorized"
        assert exc_info.value.stage == "user"

    @pytest.mark.asyncio
    async def test_get_user_resolves_handle(self, accounts, fake_tiktok):
        fake_tiktok.add(
            USER_INFO_PATH,
            envelope({"user": {"open_id": "open_123", "profile_deep_link": DEEP_LINK}}),
            method="GET",
        )
        fake_tiktok.add(
            "ZMabc123/",
            (302, "", {"location": "https://www.tiktok.com/@creator?lang=en"}),
            method="GET",
        )

        profile = await accounts.get_user(["open_id"], resolve_username=True)

        assert profile.handle == "creator"
        assert profile.profile_url == DEEP_LINK
        assert fake_tiktok.requests[0].url.params["fields"] == "open_id,profile_deep_link"
        redirect = fake_tiktok.requests[1]
        assert "authorization" not in redirect.headers
        assert "Mozilla" in redirect.headers["user-agent"]

    @pytest.mark.asyncio
    async def test_get_user_handle_not_resolved_by_default(self, accounts, fake_tiktok):
        fake_tiktok.add(
            USER_INFO_PATH,
            envelope({"user": {"open_id": "open_123", "profile_deep_link": DEEP_LINK}}),
            method="GET",
        )

        profile = await accounts.get_user(["open_id", "profile_deep_link"])

        assert profile.handle == ""
        assert len(fake_tiktok.requests) == 1

    @pytest.mark.asyncio
    async def test_get_user_without_deep_link_skips_redirect(self, accounts, fake_tiktok):
        fake_tiktok.add(USER_INFO_PATH, envelope({"user": {"open_id": "open_123"}}), method="GET")

        profile = await accounts.get_user(resolve_username=True)

        assert profile.handle == ""
        assert len(fake_tiktok.requests) == 1

    @pytest.mark.asyncio
    async def test_get_user_redirect_failure_leaves_handle_empty(self, accounts, fake_tiktok):
        fake_tiktok.add(
            USER_INFO_PATH,
            envelope({"user": {"open_id": "open_123", "profile_deep_link": DEEP_LINK}}),
            method="GET",
        )
        fake_tiktok.add("ZMabc123/", httpx.ConnectError("down"), method="GET")

        profile = await accounts.get_user(resolve_username=True)

        assert profile.handle == ""
        assert profile.open_id == "open_123"

    @pytest.mark.asyncio
    async def test_list_videos(self, accounts, fake_tiktok):
        fake_tiktok.add(
            VIDEO_LIST_PATH,
            envelope({"videos": [video("1"), video("2")], "cursor": 1700, "has_more": True}),
        )

        page = await accounts.list_videos(max_count=2, fields=["id", "title"])

        assert [info.id for info in page.videos] == ["1", "2"]
        assert page.cursor == 1700
        assert page.has_more is True
        request = fake_tiktok.calls(VIDEO_LIST_PATH)[0]
        assert request.url.params["fields"] == "id,title"
        assert fake_tiktok.body(request) == {"cursor": 0, "max_count": 2}

    @pytest.mark.asyncio
    async def test_list_videos_defaults_page_size(self, accounts, fake_tiktok):
        fake_tiktok.add(VIDEO_LIST_PATH, envelope({"videos": []}))

        await accounts.list_videos(max_count=0)

        body = fake_tiktok.body(fake_tiktok.calls(VIDEO_LIST_PATH)[0])
        assert body["max_count"] == 20

    @pytest.mark.asyncio
    async def test_get_video(self, accounts, fake_tiktok):
        fake_tiktok.add(VIDEO_QUERY_PATH, envelope({"videos": [video("7301")]}))

        info = await accounts.get_video(7301)

        assert info.id == "7301"
        body = fake_tiktok.body(fake_tiktok.calls(VIDEO_QUERY_PATH)[0])
        assert body == {"filters": {"video_ids": ["7301"]}}

    @pytest.mark.asyncio
    async def test_get_video_not_found(self, accounts, fake_tiktok):
        fake_tiktok.add(VIDEO_QUERY_PATH, envelope({"videos": []}))

        assert await accounts.get_video("missing") is None

    @pytest.mark.asyncio
    async def test_iter_videos_follows_cursor(self, accounts, fake_tiktok):
        fake_tiktok.add(
            VIDEO_LIST_PATH,
            envelope({"videos": [video("1"), video("2")], "cursor": 100, "has_more": True}),
            envelope({"videos": [video("3")], "cursor": 200, "has_more": False}),
        )

        ids = [info.id async for info in accounts.iter_videos()]

        assert ids == ["1", "2", "3"]
        cursors = [fake_tiktok.body(call)["cursor"] for call in fake_tiktok.calls(VIDEO_LIST_PATH)]
        assert cursors == [0, 100]

    @pytest.mark.asyncio
    async def test_iter_videos_page_limit(self, accounts, fake_tiktok):
        fake_tiktok.add(
            VIDEO_LIST_PATH,
            envelope({"videos": [video("1")], "cursor": 100, "has_more": True}),
        )

        ids = [info.id async for info in accounts.iter_videos(max_pages=2)]

        assert ids == ["1", "1"]
        assert len(fake_tiktok.calls(VIDEO_LIST_PATH)) == 2
