"""Publish status polling."""

import asyncio
import time
from collections.abc import Awaitable, Callable

from tiktok_kit.adapters.tiktok.transport import Transport
from tiktok_kit.config import settings
from tiktok_kit.domain.models import PublishStatus
from tiktok_kit.errors import ParseError, PollCancelledError, PollTimeoutError, TransportError
from tiktok_kit.logging import get_logger

logger = get_logger(__name__)

STATUS_FETCH_PATH = "post/publish/status/fetch/"


class PublishStatusPoller:
    """Queries the status of an asynchronous publish job.

    ``sleep`` and ``clock`` are injectable so the wait loop can be driven
    without real time passing.
    """

    def __init__(
        self,
        transport: Transport,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self._sleep = sleep
        self._clock = clock

    async def check_once(self, publish_id: str) -> PublishStatus:
        """Fetch the current status of a publish job.

        Raises:
            TransportError: If the request failed, or the response is not JSON
                or has no error code (the ParseError is kept as ``__cause__``).
        """
        result = await self.transport.post(STATUS_FETCH_PATH, {"publish_id": publish_id})
        try:
            status = PublishStatus.from_json(result.json(stage="status"), publish_id)
        except ParseError as e:
            raise TransportError(
                f"Unreadable status response for {publish_id}: {e}",
                stage="status",
            ) from e

        if status.error_code:
            logger.warning(
                "publish_status_error",
                publish_id=publish_id,
                code=status.error_code,
                message=status.error_message,
                log_id=status.log_id,
            )
        return status

    async def wait_until_terminal(
        self,
        publish_id: str,
        interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PublishStatus:
        """Poll until the job completes or fails.

        Each cycle sleeps ``interval`` seconds and then checks the status once.

        Args:
            publish_id: Job to track.
            interval: Seconds between checks (defaults to settings).
            timeout: Give up after this many seconds. None waits forever.
            cancel: Event checked before every sleep.

        Returns:
            The terminal PublishStatus (complete or failed).

        Raises:
            PollTimeoutError: If ``timeout`` elapses first.
            PollCancelledError: If ``cancel`` is set.
        """
        if interval is None:
            interval = settings.publish_poll_interval_seconds
        deadline = self._clock() + timeout if timeout is not None else None
        last_state = ""
        attempt = 0

        while True:
            if cancel is not None and cancel.is_set():
                logger.info("publish_polling_cancelled", publish_id=publish_id, attempts=attempt)
                raise PollCancelledError(
                    f"Polling cancelled for {publish_id} (last state: {last_state or 'unknown'})",
                    stage="status",
                )
            if deadline is not None and self._clock() >= deadline:
                logger.warning(
                    "publish_polling_timed_out",
                    publish_id=publish_id,
                    attempts=attempt,
                    last_state=last_state,
                )
                raise PollTimeoutError(
                    f"Publish {publish_id} not finished after {timeout}s "
                    f"(last state: {last_state or 'unknown'})",
                    stage="status",
                )

            await self._sleep(interval)
            attempt += 1
            status = await self.check_once(publish_id)
            last_state = str(status.state)

            if status.is_terminal:
                logger.info(
                    "publish_finished",
                    publish_id=publish_id,
                    state=last_state,
                    post_ids=list(status.post_ids),
                    fail_reason=status.fail_reason,
                    attempts=attempt,
                )
                return status

            logger.debug(
                "publish_processing",
                publish_id=publish_id,
                state=last_state,
                attempt=attempt,
            )
