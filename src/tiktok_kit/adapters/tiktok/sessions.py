"""Publish session creation (post/publish/*/init).

Publishing Flow:
1. POST /v2/post/publish/video/init/ (video) or /content/init/ (photos)
2. PUT upload_url - local files only, see ``uploader``
3. POST /v2/post/publish/status/fetch/ - see ``status``
"""

from dataclasses import replace
from typing import Any

from tiktok_kit.adapters.tiktok.transport import Transport
from tiktok_kit.domain.enums import MediaType, SourceType
from tiktok_kit.domain.models import (
    LocalFileSource,
    PhotoUrlSource,
    PostRequest,
    PublishSession,
    VideoUrlSource,
)
from tiktok_kit.errors import ParseError, SessionError
from tiktok_kit.logging import get_logger

logger = get_logger(__name__)

VIDEO_INIT_PATH = "post/publish/video/init/"
CONTENT_INIT_PATH = "post/publish/content/init/"


def init_path_for(request: PostRequest) -> str:
    """Photos go through the content endpoint, videos through the video one."""
    if request.media_type == MediaType.PHOTO:
        return CONTENT_INIT_PATH
    return VIDEO_INIT_PATH


def build_session_payload(request: PostRequest) -> dict[str, Any]:
    """Build the init request body for a post.

    Local files are always declared as a single chunk covering the whole file.
    """
    source = request.source

    if isinstance(source, PhotoUrlSource):
        return {
            "post_info": {
                "title": request.title,
                "description": request.description,
                "privacy_level": str(request.privacy_level),
                "disable_comment": request.disable_comment,
                "auto_add_music": request.auto_add_music,
            },
            "source_info": {
                "source": str(SourceType.PULL_FROM_URL),
                "photo_cover_index": source.cover_index,
                "photo_images": list(source.urls),
            },
            "post_mode": str(request.post_mode),
            "media_type": str(MediaType.PHOTO),
        }

    post_info = {
        "title": request.title,
        "privacy_level": str(request.privacy_level),
        "disable_comment": request.disable_comment,
        "disable_duet": request.disable_duet,
        "disable_stitch": request.disable_stitch,
        "video_cover_timestamp_ms": request.video_cover_timestamp_ms,
    }

    if isinstance(source, LocalFileSource):
        source_info: dict[str, Any] = {
            "source": str(SourceType.FILE_UPLOAD),
            "video_size": source.size,
            "chunk_size": source.size,
            "total_chunk_count": 1,
        }
    elif isinstance(source, VideoUrlSource):
        source_info = {
            "source": str(SourceType.PULL_FROM_URL),
            "video_url": source.url,
        }
    else:
        raise TypeError(f"Unsupported media source: {type(source).__name__}")

    return {"post_info": post_info, "source_info": source_info}


async def create_session(transport: Transport, request: PostRequest) -> PublishSession:
    """Open a publish session for a post.

    Returns:
        A successful PublishSession. For local files it always has an upload URL.

    Raises:
        TransportError: If the request never got a response.
        SessionError: If TikTok rejected the post, the response could not be
            parsed, or a local-file session came back without an upload URL.
    """
    path = init_path_for(request)
    result = await transport.post(path, build_session_payload(request))
    payload = result.json(stage="session")

    try:
        session = PublishSession.from_json(payload)
    except ParseError as e:
        raise SessionError(f"Invalid publish init response: {e}", stage="session") from e

    if not session.success:
        logger.warning(
            "publish_session_rejected",
            code=session.error_code,
            message=session.error_message,
            log_id=session.log_id,
        )
        raise SessionError(
            f"Publish init failed: {session.error_message or session.error_code}",
            code=session.error_code,
            remote_message=session.error_message,
            log_id=session.log_id,
            stage="session",
        )

    if request.is_local and not session.upload_url:
        raise SessionError(
            "Publish init succeeded but returned no upload URL",
            log_id=session.log_id,
            stage="session",
        )
    if not request.is_local and session.upload_url:
        # Only the file upload flow has somewhere to send bytes
        session = replace(session, upload_url="")

    logger.info(
        "publish_session_created",
        publish_id=session.publish_id,
        source=str(request.source_type),
        media_type=str(request.media_type),
        log_id=session.log_id,
    )
    return session
