"""Publish workflow: capabilities -> validation -> session -> upload -> status.

Three entry points differ only in how the post request is reconciled with the
creator's capabilities:

- ``publish``: reject a non-compliant request with ``CapabilityError``
- ``publish_coercing``: rewrite the offending fields in place
- ``publish_unchecked``: skip the capability query

All of them then create the session and, for local files, upload the bytes.
Any failure aborts the attempt; there is no partial state to resume from.
"""

import asyncio
from dataclasses import dataclass

from tiktok_kit.adapters.tiktok.capabilities import fetch_capabilities
from tiktok_kit.adapters.tiktok.sessions import create_session
from tiktok_kit.adapters.tiktok.status import PublishStatusPoller
from tiktok_kit.adapters.tiktok.transport import Transport
from tiktok_kit.adapters.tiktok.uploader import MediaUploader
from tiktok_kit.domain.enums import MediaType, PrivacyLevel, PublishPolicy
from tiktok_kit.domain.models import (
    CapabilitySnapshot,
    LocalFileSource,
    PhotoUrlSource,
    PostRequest,
    PublishSession,
    PublishStatus,
)
from tiktok_kit.errors import CapabilityError, SessionError, TikTokError, ValidationError
from tiktok_kit.logging import get_logger, publish_context

logger = get_logger(__name__)

MAX_TITLE_LENGTH = 2200
MAX_PHOTO_COUNT = 35

# Most restrictive first; coercion picks the first one the creator allows
PRIVACY_FALLBACK_ORDER = (
    PrivacyLevel.SELF_ONLY,
    PrivacyLevel.MUTUAL_FOLLOW_FRIENDS,
    PrivacyLevel.FOLLOWER_OF_CREATOR,
    PrivacyLevel.PUBLIC_TO_EVERYONE,
)


def validate_request(request: PostRequest) -> None:
    """Reject requests TikTok would refuse, before any network call.

    Raises:
        ValidationError: On an invalid title, cover timestamp or media source.
    """
    if len(request.title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title is {len(request.title)} characters, max is {MAX_TITLE_LENGTH}"
        )
    if request.video_cover_timestamp_ms < 0:
        raise ValidationError("Cover timestamp must not be negative")

    source = request.source
    if isinstance(source, LocalFileSource):
        if not source.path.is_file():
            raise ValidationError(f"Video file not found: {source.path}")
        if source.size <= 0:
            raise ValidationError(f"Video file is empty: {source.path}")
    elif isinstance(source, PhotoUrlSource):
        if not source.urls:
            raise ValidationError("Photo post needs at least one image URL")
        if len(source.urls) > MAX_PHOTO_COUNT:
            raise ValidationError(
                f"Photo post has {len(source.urls)} images, max is {MAX_PHOTO_COUNT}"
            )
        if not 0 <= source.cover_index < len(source.urls):
            raise ValidationError(f"Cover index {source.cover_index} is out of range")


def find_violations(request: PostRequest, capabilities: CapabilitySnapshot) -> list[str]:
    """List the request fields that break the creator's capabilities.

    Duet and stitch do not exist for photo posts and are not checked there.
    """
    violations = []
    if not capabilities.allows(request.privacy_level):
        violations.append("privacy_level")
    if capabilities.comment_disabled and not request.disable_comment:
        violations.append("disable_comment")
    if request.media_type == MediaType.VIDEO:
        if capabilities.duet_disabled and not request.disable_duet:
            violations.append("disable_duet")
        if capabilities.stitch_disabled and not request.disable_stitch:
            violations.append("disable_stitch")
    return violations


def check_capabilities(request: PostRequest, capabilities: CapabilitySnapshot) -> None:
    """Raise CapabilityError if the request breaks any creator capability."""
    violations = find_violations(request, capabilities)
    if not violations:
        return

    reasons = []
    for violation in violations:
        if violation == "privacy_level":
            allowed = ", ".join(sorted(capabilities.privacy_levels)) or "none"
            reasons.append(
                f"privacy level {request.privacy_level} is not allowed (allowed: {allowed})"
            )
        else:
            feature = violation.removeprefix("disable_")
            reasons.append(f"this creator can only post with {feature} turned off")
    raise CapabilityError("; ".join(reasons), stage="capabilities")


def fallback_privacy_level(capabilities: CapabilitySnapshot) -> PrivacyLevel:
    """Most restrictive privacy level in ``capabilities``.

    Raises:
        CapabilityError: If the snapshot allows no privacy level at all.
    """
    for level in PRIVACY_FALLBACK_ORDER:
        if capabilities.allows(level):
            return level
    raise CapabilityError("Creator allows no privacy level", stage="capabilities")


def coerce_to_capabilities(request: PostRequest, capabilities: CapabilitySnapshot) -> list[str]:
    """Rewrite non-compliant fields of ``request`` in place.

    Privacy falls back to the most restrictive level the creator allows;
    interaction flags are forced off.

    Returns:
        Names of the fields that were changed.
    """
    violations = find_violations(request, capabilities)
    for violation in violations:
        if violation == "privacy_level":
            request.privacy_level = fallback_privacy_level(capabilities)
        else:
            setattr(request, violation, True)
    return violations


@dataclass(frozen=True)
class PublishOutcome:
    """Result of ``try_publish``: exactly one of ``session`` and ``error`` is set."""

    session: PublishSession | None = None
    error: TikTokError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PublishOrchestrator:
    """Drives one publish attempt end to end.

    Example:
        async with Transport(credentials) as transport:
            orchestrator = PublishOrchestrator(transport)
            session = await orchestrator.publish_coercing(request)
            status = await orchestrator.poller.wait_until_terminal(session.publish_id)
    """

    def __init__(
        self,
        transport: Transport,
        uploader: MediaUploader | None = None,
        poller: PublishStatusPoller | None = None,
    ) -> None:
        self.transport = transport
        self.uploader = uploader or MediaUploader(transport)
        self.poller = poller or PublishStatusPoller(transport)

    async def publish(
        self,
        request: PostRequest,
        capabilities: CapabilitySnapshot | None = None,
    ) -> PublishSession:
        """Publish after checking the request against the creator's capabilities.

        Args:
            request: The post. Not modified.
            capabilities: Snapshot to check against; fetched fresh if omitted.

        Raises:
            ValidationError: Invalid request, before any network call.
            CapabilityError: The request breaks a creator capability.
            SessionError, UploadError, TransportError, ParseError: Downstream failures.
        """
        validate_request(request)
        if capabilities is None:
            capabilities = await fetch_capabilities(self.transport)
        check_capabilities(request, capabilities)
        return await self._create_and_upload(request)

    async def publish_coercing(
        self,
        request: PostRequest,
        capabilities: CapabilitySnapshot | None = None,
    ) -> PublishSession:
        """Publish after rewriting fields the creator is not allowed to use.

        Never raises CapabilityError for a non-compliant request; ``request`` is
        updated in place instead.
        """
        validate_request(request)
        if capabilities is None:
            capabilities = await fetch_capabilities(self.transport)
        changed = coerce_to_capabilities(request, capabilities)
        if changed:
            logger.info(
                "post_request_coerced",
                fields=changed,
                privacy_level=str(request.privacy_level),
            )
        return await self._create_and_upload(request)

    async def publish_unchecked(self, request: PostRequest) -> PublishSession:
        """Publish without querying creator capabilities."""
        validate_request(request)
        return await self._create_and_upload(request)

    async def publish_with_policy(
        self,
        request: PostRequest,
        policy: PublishPolicy = PublishPolicy.STRICT,
        capabilities: CapabilitySnapshot | None = None,
    ) -> PublishSession:
        """Dispatch to the publish variant selected by ``policy``."""
        if policy == PublishPolicy.COERCE:
            return await self.publish_coercing(request, capabilities)
        if policy == PublishPolicy.UNCHECKED:
            return await self.publish_unchecked(request)
        return await self.publish(request, capabilities)

    async def try_publish(
        self,
        request: PostRequest,
        policy: PublishPolicy = PublishPolicy.STRICT,
        capabilities: CapabilitySnapshot | None = None,
    ) -> PublishOutcome:
        """Like ``publish_with_policy`` but returns errors instead of raising them.

        Only errors from this package are captured; anything else propagates.
        """
        try:
            session = await self.publish_with_policy(request, policy, capabilities)
        except TikTokError as e:
            logger.warning("publish_attempt_failed", policy=str(policy), **e.details())
            return PublishOutcome(error=e)
        return PublishOutcome(session=session)

    async def publish_and_wait(
        self,
        request: PostRequest,
        policy: PublishPolicy = PublishPolicy.STRICT,
        interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PublishStatus:
        """Publish, then poll until the job is complete or failed."""
        session = await self.publish_with_policy(request, policy)
        with publish_context(publish_id=session.publish_id):
            return await self.poller.wait_until_terminal(
                session.publish_id,
                interval=interval,
                timeout=timeout,
                cancel=cancel,
            )

    async def _create_and_upload(self, request: PostRequest) -> PublishSession:
        session = await create_session(self.transport, request)

        if isinstance(request.source, LocalFileSource):
            # Surface a job TikTok already gave up on before sending any bytes
            status = await self.poller.check_once(session.publish_id)
            if status.is_failed:
                raise SessionError(
                    f"Publish {session.publish_id} failed before upload: "
                    f"{status.fail_reason or status.error_message or status.error_code}",
                    code=status.error_code,
                    remote_message=status.error_message,
                    log_id=status.log_id,
                    stage="session",
                )
            with publish_context(publish_id=session.publish_id):
                await self.uploader.upload(request.source, session)

        return session
