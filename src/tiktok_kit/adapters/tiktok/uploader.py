"""Single-chunk media upload to a publish session's upload URL."""

from collections.abc import AsyncIterator
from typing import BinaryIO

import httpx

from tiktok_kit.adapters.tiktok.transport import Transport
from tiktok_kit.domain.models import LocalFileSource, PublishSession
from tiktok_kit.errors import UploadError, ValidationError
from tiktok_kit.logging import get_logger

logger = get_logger(__name__)

READ_SIZE = 1024 * 1024  # 1 MB reads while streaming the single chunk


async def _read_chunks(handle: BinaryIO, read_size: int = READ_SIZE) -> AsyncIterator[bytes]:
    while chunk := handle.read(read_size):
        yield chunk


class MediaUploader:
    """Sends a local file to TikTok in exactly one PUT.

    TikTok accepts files up to 64 MB as a single chunk. Larger files need
    multi-chunk upload, which is not supported here.
    """

    def __init__(self, transport: Transport, timeout: float | None = None) -> None:
        self.transport = transport
        self.timeout = timeout

    @staticmethod
    def build_headers(source: LocalFileSource) -> dict[str, str]:
        """Headers describing the whole file as one byte range."""
        return {
            "Content-Range": f"bytes 0-{source.size - 1}/{source.size}",
            "Content-Length": str(source.size),
            "Content-Type": source.mime_type,
        }

    def _validate(self, source: LocalFileSource, session: PublishSession) -> None:
        if not source.path.is_file():
            raise ValidationError(f"Video file not found: {source.path}", stage="upload")
        if source.size <= 0:
            raise ValidationError(f"Video file is empty: {source.path}", stage="upload")
        actual_size = source.path.stat().st_size
        if actual_size != source.size:
            raise ValidationError(
                f"Video file changed size since the session was created "
                f"({source.size} -> {actual_size} bytes)",
                stage="upload",
            )
        if not session.upload_url:
            raise UploadError(
                "Publish session has no upload URL",
                log_id=session.log_id,
                stage="upload",
            )

    async def upload(self, source: LocalFileSource, session: PublishSession) -> None:
        """Upload the file to ``session.upload_url``.

        Raises:
            ValidationError: If the file is missing, empty or changed size.
            UploadError: If the PUT failed or TikTok answered with a non-2xx status.
        """
        self._validate(source, session)
        headers = self.build_headers(source)

        logger.info(
            "media_upload_started",
            publish_id=session.publish_id,
            path=str(source.path),
            size=source.size,
            mime_type=source.mime_type,
        )

        try:
            with source.path.open("rb") as handle:
                response = await self.transport.put_bytes(
                    session.upload_url,
                    _read_chunks(handle),
                    headers,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error("media_upload_failed", publish_id=session.publish_id, error=str(e))
            raise UploadError(
                f"Upload request failed: {e}",
                log_id=session.log_id,
                stage="upload",
            ) from e

        if not response.is_success:
            logger.error(
                "media_upload_rejected",
                publish_id=session.publish_id,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UploadError(
                f"Upload rejected with HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                log_id=session.log_id,
                stage="upload",
            )

        logger.info(
            "media_upload_completed",
            publish_id=session.publish_id,
            status_code=response.status_code,
        )
