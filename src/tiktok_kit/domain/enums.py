"""Domain enumerations."""

from enum import StrEnum


class PrivacyLevel(StrEnum):
    """Who can view a published post."""

    PUBLIC_TO_EVERYONE = "PUBLIC_TO_EVERYONE"
    MUTUAL_FOLLOW_FRIENDS = "MUTUAL_FOLLOW_FRIENDS"
    FOLLOWER_OF_CREATOR = "FOLLOWER_OF_CREATOR"
    SELF_ONLY = "SELF_ONLY"  # Most restrictive

    @classmethod
    def parse(cls, value: str) -> "PrivacyLevel | None":
        """Return the matching level, or None for values TikTok may add later."""
        try:
            return cls(value)
        except ValueError:
            return None


class PublishState(StrEnum):
    """Status labels returned by the publish status endpoint."""

    PROCESSING_UPLOAD = "PROCESSING_UPLOAD"  # Waiting for / receiving the file upload
    PROCESSING_DOWNLOAD = "PROCESSING_DOWNLOAD"  # TikTok pulling from a URL
    SEND_TO_USER_INBOX = "SEND_TO_USER_INBOX"  # Processing, draft sent to the inbox
    PUBLISH_COMPLETE = "PUBLISH_COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (PublishState.PUBLISH_COMPLETE, PublishState.FAILED)


class SourceType(StrEnum):
    """How TikTok receives the media."""

    FILE_UPLOAD = "FILE_UPLOAD"
    PULL_FROM_URL = "PULL_FROM_URL"


class MediaType(StrEnum):
    """Kind of content being posted."""

    VIDEO = "VIDEO"
    PHOTO = "PHOTO"


class PostMode(StrEnum):
    """Whether a photo post is published directly or sent to the inbox."""

    DIRECT_POST = "DIRECT_POST"
    MEDIA_UPLOAD = "MEDIA_UPLOAD"


class PublishPolicy(StrEnum):
    """How a post request is reconciled with creator capabilities."""

    STRICT = "strict"  # Reject violations
    COERCE = "coerce"  # Overwrite offending fields
    UNCHECKED = "unchecked"  # Skip the capability query
