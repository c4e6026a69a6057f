"""Domain models and enumerations."""

from tiktok_kit.domain.enums import (
    MediaType,
    PostMode,
    PrivacyLevel,
    PublishPolicy,
    PublishState,
    SourceType,
)
from tiktok_kit.domain.models import (
    CapabilitySnapshot,
    Credentials,
    LocalFileSource,
    MediaSource,
    PhotoUrlSource,
    PostRequest,
    PublishSession,
    PublishStatus,
    VideoUrlSource,
)

__all__ = [
    "CapabilitySnapshot",
    "Credentials",
    "LocalFileSource",
    "MediaSource",
    "MediaType",
    "PhotoUrlSource",
    "PostMode",
    "PostRequest",
    "PrivacyLevel",
    "PublishPolicy",
    "PublishSession",
    "PublishState",
    "PublishStatus",
    "SourceType",
    "VideoUrlSource",
]
