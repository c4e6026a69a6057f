"""Domain models - pure Python classes independent of the HTTP layer.

Parsing follows one rule: a field that TikTok omits is filled with an explicit
fallback (``""`` for strings, ``0`` for counters, ``False`` for flags) instead
of failing, unless the field is required to interpret the response at all.
Required fields raise ``ParseError``.
"""

import mimetypes
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from tiktok_kit.domain.enums import (
    MediaType,
    PostMode,
    PrivacyLevel,
    PublishState,
    SourceType,
)
from tiktok_kit.errors import ParseError

# Error code TikTok returns when a call succeeded
NO_ERROR_CODE = "ok"

DEFAULT_MIME_TYPE = "video/mp4"
DEFAULT_COVER_TIMESTAMP_MS = 1000


def _section(payload: dict[str, Any], key: str) -> dict[str, Any]:
    """Return ``payload[key]`` as a dict; absent or null sections become ``{}``."""
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _text(section: dict[str, Any], key: str) -> str:
    value = section.get(key)
    return "" if value is None else str(value)


def _number(section: dict[str, Any], key: str) -> int:
    try:
        return int(section.get(key) or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class Credentials:
    """An access token and the identity it belongs to.

    Immutable: a refresh produces a new instance instead of mutating this one.
    """

    access_token: str
    open_id: str = ""
    refresh_token: str = ""
    expires_at: datetime | None = None
    refresh_expires_at: datetime | None = None
    scope: str = ""
    token_type: str = "Bearer"

    def is_expired(self, margin: timedelta = timedelta(0)) -> bool:
        """Check whether the token expires within ``margin`` from now."""
        if self.expires_at is None:
            return False
        return self.expires_at <= datetime.now(UTC) + margin


@dataclass(frozen=True)
class CapabilitySnapshot:
    """What the current creator account is allowed to publish right now.

    Capabilities can change between attempts, so a snapshot is fetched for each
    publish and never cached.
    """

    avatar_url: str
    nickname: str
    username: str
    duet_disabled: bool
    stitch_disabled: bool
    comment_disabled: bool
    max_video_duration_sec: int
    privacy_levels: frozenset[PrivacyLevel]

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> "CapabilitySnapshot":
        """Build a snapshot from a creator_info/query response.

        Privacy options TikTok may add in the future are dropped rather than
        offered to the caller.
        """
        data = payload.get("data")
        if not isinstance(data, dict) or not data.get("creator_nickname"):
            raise ParseError("Creator info response has no creator data", stage="capabilities")

        options = data.get("privacy_level_options")
        if not isinstance(options, list):
            raise ParseError(
                "Creator info response has no privacy_level_options", stage="capabilities"
            )

        levels = frozenset(
            level for level in (PrivacyLevel.parse(str(option)) for option in options) if level
        )
        if not levels:
            raise ParseError(
                f"Creator info response has no known privacy level: {options}",
                stage="capabilities",
            )

        return cls(
            avatar_url=_text(data, "creator_avatar_url"),
            nickname=_text(data, "creator_nickname"),
            username=_text(data, "creator_username"),
            duet_disabled=bool(data.get("duet_disabled")),
            stitch_disabled=bool(data.get("stitch_disabled")),
            comment_disabled=bool(data.get("comment_disabled")),
            max_video_duration_sec=_number(data, "max_video_post_duration_sec"),
            privacy_levels=levels,
        )

    def allows(self, level: PrivacyLevel | str) -> bool:
        """Check whether the creator may post with the given privacy level."""
        return level in self.privacy_levels


@dataclass(frozen=True)
class LocalFileSource:
    """A video on local disk, pushed to TikTok in a single chunk."""

    path: Path
    size: int
    mime_type: str = DEFAULT_MIME_TYPE

    @classmethod
    def from_path(cls, path: Path | str, mime_type: str | None = None) -> "LocalFileSource":
        """Describe a local file, detecting its size and media type."""
        path = Path(path)
        size = path.stat().st_size if path.exists() else 0
        if mime_type is None:
            guessed, _ = mimetypes.guess_type(path.name)
            mime_type = guessed or DEFAULT_MIME_TYPE
        return cls(path=path, size=size, mime_type=mime_type)


@dataclass(frozen=True)
class VideoUrlSource:
    """A video TikTok downloads from a verified remote URL."""

    url: str


@dataclass(frozen=True)
class PhotoUrlSource:
    """One or more photos TikTok downloads from remote URLs."""

    urls: tuple[str, ...]
    cover_index: int = 0


MediaSource = LocalFileSource | VideoUrlSource | PhotoUrlSource


@dataclass
class PostRequest:
    """A post the caller wants to publish.

    Owned by the caller until handed to the orchestrator. Only the coercing
    publish path mutates it, and only the privacy level and interaction flags.
    """

    source: MediaSource
    title: str = ""
    description: str = ""  # Photo posts only
    privacy_level: PrivacyLevel = PrivacyLevel.SELF_ONLY
    disable_comment: bool = False
    disable_duet: bool = False
    disable_stitch: bool = False
    video_cover_timestamp_ms: int = DEFAULT_COVER_TIMESTAMP_MS
    auto_add_music: bool = False  # Photo posts only
    post_mode: PostMode = PostMode.DIRECT_POST  # Photo posts only

    @property
    def media_type(self) -> MediaType:
        if isinstance(self.source, PhotoUrlSource):
            return MediaType.PHOTO
        return MediaType.VIDEO

    @property
    def source_type(self) -> SourceType:
        if isinstance(self.source, LocalFileSource):
            return SourceType.FILE_UPLOAD
        return SourceType.PULL_FROM_URL

    @property
    def is_local(self) -> bool:
        return isinstance(self.source, LocalFileSource)


@dataclass(frozen=True)
class PublishSession:
    """Handle returned by TikTok when a publish job is initialized.

    ``upload_url`` is only set for local-file uploads; URL and photo posts are
    already queued on TikTok's side.
    """

    success: bool
    publish_id: str = ""
    upload_url: str = ""
    error_code: str = ""  # Empty means no error
    error_message: str = ""
    log_id: str = ""

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> "PublishSession":
        """Parse a video/init or content/init response."""
        error = _section(payload, "error")
        code = _text(error, "code")
        if not code:
            raise ParseError("Publish init response has no error code", stage="session")

        data = _section(payload, "data")
        success = code == NO_ERROR_CODE
        return cls(
            success=success,
            publish_id=_text(data, "publish_id"),
            upload_url=_text(data, "upload_url") if success else "",
            error_code="" if success else code,
            error_message=_text(error, "message"),
            log_id=_text(error, "log_id"),
        )


@dataclass(frozen=True)
class PublishStatus:
    """One snapshot of an asynchronous publish job.

    ``state`` is a ``PublishState`` when TikTok returns a known label and the
    raw string otherwise; unknown labels are treated as still in progress.
    """

    state: PublishState | str
    publish_id: str
    fail_reason: str = ""
    error_code: str = ""
    error_message: str = ""
    log_id: str = field(default="", compare=False)  # New per request
    post_ids: tuple[str, ...] = field(default_factory=tuple)
    uploaded_bytes: int = 0
    downloaded_bytes: int = 0

    @classmethod
    def from_json(cls, payload: dict[str, Any], publish_id: str) -> "PublishStatus":
        """Parse a status/fetch response.

        A non-``ok`` error code means the job cannot be tracked any further, so
        it is reported as ``FAILED`` with the remote error attached.
        """
        error = _section(payload, "error")
        code = _text(error, "code")
        if not code:
            raise ParseError("Publish status response has no error code", stage="status")

        data = _section(payload, "data")
        raw_state = _text(data, "status")
        if code != NO_ERROR_CODE:
            state: PublishState | str = PublishState.FAILED
        else:
            try:
                state = PublishState(raw_state)
            except ValueError:
                state = raw_state

        post_ids = data.get("publicaly_available_post_id") or []
        if not isinstance(post_ids, list):
            post_ids = [post_ids]

        return cls(
            state=state,
            publish_id=publish_id,
            fail_reason=_text(data, "fail_reason"),
            error_code="" if code == NO_ERROR_CODE else code,
            error_message=_text(error, "message"),
            log_id=_text(error, "log_id"),
            post_ids=tuple(str(post_id) for post_id in post_ids),
            uploaded_bytes=_number(data, "uploaded_bytes"),
            downloaded_bytes=_number(data, "downloaded_bytes"),
        )

    @property
    def is_terminal(self) -> bool:
        return self.state in (PublishState.PUBLISH_COMPLETE, PublishState.FAILED)

    @property
    def is_complete(self) -> bool:
        return self.state == PublishState.PUBLISH_COMPLETE

    @property
    def is_failed(self) -> bool:
        return self.state == PublishState.FAILED
