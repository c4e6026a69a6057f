"""Read-only user profile and video list endpoints."""

import re
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from tiktok_kit.adapters.tiktok.transport import Transport
from tiktok_kit.domain.models import NO_ERROR_CODE
from tiktok_kit.errors import TikTokError, ValidationError
from tiktok_kit.logging import get_logger

logger = get_logger(__name__)

USER_INFO_PATH = "user/info/"
VIDEO_LIST_PATH = "video/list/"
VIDEO_QUERY_PATH = "video/query/"

DEFAULT_PAGE_SIZE = 20

USER_FIELDS = (
    "open_id",
    "union_id",
    "avatar_url",
    "avatar_url_100",
    "avatar_large_url",
    "display_name",
    "bio_description",
    "profile_deep_link",
    "is_verified",
    "follower_count",
    "following_count",
    "likes_count",
    "video_count",
)
DEFAULT_USER_FIELDS = ("open_id", "union_id", "avatar_url", "display_name")

# The final profile URL is either the web profile itself or a login page that
# carries it URL-encoded in a redirect parameter
HANDLE_PATTERNS = (
    re.compile(r"www\.tiktok\.com%2F%40([^%&]+)"),
    re.compile(r"www\.tiktok\.com/@([^?/#]+)"),
)

VIDEO_FIELDS = (
    "id",
    "width",
    "height",
    "duration",
    "video_description",
    "share_url",
    "cover_image_url",
    "create_time",
    "embed_html",
    "embed_link",
    "like_count",
    "comment_count",
    "share_count",
    "view_count",
    "title",
)


def _check_fields(requested: Iterable[str], known: tuple[str, ...]) -> list[str]:
    fields = list(requested)
    unknown = [name for name in fields if name not in known]
    if unknown:
        raise ValidationError(f"Unknown fields requested: {', '.join(unknown)}")
    return fields


def parse_handle(url: str) -> str:
    """Extract the @handle from a TikTok profile URL, or return an empty string."""
    for pattern in HANDLE_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return ""


def _raise_for_error(payload: dict[str, Any], stage: str) -> None:
    error = payload.get("error")
    if not isinstance(error, dict):
        return
    code = str(error.get("code") or "")
    if code and code != NO_ERROR_CODE:
        raise TikTokError(
            f"TikTok API error: {error.get('message') or code}",
            code=code,
            remote_message=str(error.get("message") or ""),
            log_id=str(error.get("log_id") or ""),
            stage=stage,
        )


@dataclass(frozen=True)
class UserProfile:
    """TikTok user profile. Fields that were not requested are empty/zero."""

    open_id: str = ""
    union_id: str = ""
    avatar_url: str = ""
    avatar_thumb_url: str = ""
    avatar_large_url: str = ""
    display_name: str = ""
    bio: str = ""
    profile_url: str = ""
    is_verified: bool = False
    follower_count: int = 0
    following_count: int = 0
    likes_count: int = 0
    video_count: int = 0
    handle: str = ""  # Only set by get_user(resolve_username=True)

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> "UserProfile":
        user = (payload.get("data") or {}).get("user") or {}
        return cls(
            open_id=user.get("open_id") or "",
            union_id=user.get("union_id") or "",
            avatar_url=user.get("avatar_url") or "",
            avatar_thumb_url=user.get("avatar_url_100") or "",
            avatar_large_url=user.get("avatar_large_url") or "",
            display_name=user.get("display_name") or "",
            bio=user.get("bio_description") or "",
            profile_url=user.get("profile_deep_link") or "",
            is_verified=bool(user.get("is_verified")),
            follower_count=int(user.get("follower_count") or 0),
            following_count=int(user.get("following_count") or 0),
            likes_count=int(user.get("likes_count") or 0),
            video_count=int(user.get("video_count") or 0),
        )

    @property
    def best_avatar(self) -> str:
        """Largest available avatar URL, or an empty string."""
        return self.avatar_large_url or self.avatar_url or self.avatar_thumb_url


@dataclass(frozen=True)
class VideoInfo:
    """A published TikTok video."""

    id: str
    title: str = ""
    description: str = ""
    share_url: str = ""
    cover_image_url: str = ""
    embed_html: str = ""
    embed_link: str = ""
    width: int = 0
    height: int = 0
    duration: int = 0
    like_count: int = 0
    comment_count: int = 0
    share_count: int = 0
    view_count: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_json(cls, video: dict[str, Any]) -> "VideoInfo":
        create_time = video.get("create_time")
        return cls(
            id=str(video.get("id") or ""),
            title=video.get("title") or "",
            description=video.get("video_description") or "",
            share_url=video.get("share_url") or "",
            cover_image_url=video.get("cover_image_url") or "",
            embed_html=video.get("embed_html") or "",
            embed_link=video.get("embed_link") or "",
            width=int(video.get("width") or 0),
            height=int(video.get("height") or 0),
            duration=int(video.get("duration") or 0),
            like_count=int(video.get("like_count") or 0),
            comment_count=int(video.get("comment_count") or 0),
            share_count=int(video.get("share_count") or 0),
            view_count=int(video.get("view_count") or 0),
            created_at=datetime.fromtimestamp(int(create_time), UTC) if create_time else None,
        )


@dataclass(frozen=True)
class VideoPage:
    """One page of the creator's videos."""

    videos: list[VideoInfo] = field(default_factory=list)
    cursor: int = 0
    has_more: bool = False


class AccountClient:
    """Profile and video queries for the authenticated user."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def get_user(
        self,
        fields: Iterable[str] = DEFAULT_USER_FIELDS,
        resolve_username: bool = False,
    ) -> UserProfile:
        """Fetch the user's profile with the requested fields.

        Args:
            fields: Profile fields to request.
            resolve_username: Also follow ``profile_deep_link`` to learn the
                user's @handle. Adds ``profile_deep_link`` to ``fields`` and
                costs one extra unauthenticated request.
        """
        fields = _check_fields(fields, USER_FIELDS)
        if resolve_username and "profile_deep_link" not in fields:
            fields.append("profile_deep_link")

        result = await self.transport.get(f"{USER_INFO_PATH}?fields={','.join(fields)}")
        payload = result.json(stage="user")
        _raise_for_error(payload, stage="user")
        profile = UserProfile.from_json(payload)

        if resolve_username and profile.profile_url:
            final_url = await self.transport.resolve_url(profile.profile_url)
            handle = parse_handle(final_url)
            if not handle:
                logger.info("tiktok_handle_not_found", open_id=profile.open_id)
            profile = replace(profile, handle=handle)
        return profile

    async def list_videos(
        self,
        cursor: int = 0,
        max_count: int = DEFAULT_PAGE_SIZE,
        fields: Iterable[str] = VIDEO_FIELDS,
    ) -> VideoPage:
        """Fetch one page of videos, newest first."""
        fields = _check_fields(fields, VIDEO_FIELDS)
        if max_count < 1:
            max_count = DEFAULT_PAGE_SIZE

        result = await self.transport.post(
            f"{VIDEO_LIST_PATH}?fields={','.join(fields)}",
            {"cursor": cursor, "max_count": max_count},
        )
        payload = result.json(stage="videos")
        _raise_for_error(payload, stage="videos")

        data = payload.get("data") or {}
        return VideoPage(
            videos=[VideoInfo.from_json(video) for video in data.get("videos") or []],
            cursor=int(data.get("cursor") or 0),
            has_more=bool(data.get("has_more")),
        )

    async def get_video(
        self,
        video_id: str | int,
        fields: Iterable[str] = VIDEO_FIELDS,
    ) -> VideoInfo | None:
        """Fetch a single video, or None if TikTok does not return it."""
        fields = _check_fields(fields, VIDEO_FIELDS)
        result = await self.transport.post(
            f"{VIDEO_QUERY_PATH}?fields={','.join(fields)}",
            {"filters": {"video_ids": [str(video_id)]}},
        )
        payload = result.json(stage="videos")
        _raise_for_error(payload, stage="videos")

        videos = (payload.get("data") or {}).get("videos") or []
        if not videos:
            return None
        return VideoInfo.from_json(videos[0])

    async def iter_videos(
        self,
        max_pages: int = 0,
        fields: Iterable[str] = VIDEO_FIELDS,
    ) -> AsyncIterator[VideoInfo]:
        """Yield videos across pages.

        Args:
            max_pages: Stop after this many pages. 0 means no limit.
        """
        fields = list(fields)
        cursor = 0
        pages = 0
        while True:
            page = await self.list_videos(cursor, DEFAULT_PAGE_SIZE, fields)
            pages += 1
            for video in page.videos:
                yield video

            if not page.has_more or (max_pages and pages >= max_pages):
                logger.debug("video_pagination_finished", pages=pages, has_more=page.has_more)
                return
            cursor = page.cursor
