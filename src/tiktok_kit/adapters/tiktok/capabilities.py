"""Creator capability query.

TikTok requires clients to query the creator's posting options before every
post and to honour them in the UI and in the request.
"""

from tiktok_kit.adapters.tiktok.transport import Transport
from tiktok_kit.domain.models import NO_ERROR_CODE, CapabilitySnapshot
from tiktok_kit.errors import CapabilityError
from tiktok_kit.logging import get_logger

logger = get_logger(__name__)

CREATOR_INFO_PATH = "post/publish/creator_info/query/"


async def fetch_capabilities(transport: Transport) -> CapabilitySnapshot:
    """Fetch what the authenticated creator may publish right now.

    Args:
        transport: Authenticated transport for the creator.

    Returns:
        A fresh CapabilitySnapshot.

    Raises:
        TransportError: If the request failed.
        ParseError: If the response has no creator info or privacy options.
        CapabilityError: If TikTok refused the query (e.g. the creator has hit
            the posting cap).
    """
    result = await transport.post(CREATOR_INFO_PATH)
    payload = result.json(stage="capabilities")

    error = payload.get("error")
    if not isinstance(error, dict):
        error = {}
    code = str(error.get("code") or "")
    if code and code != NO_ERROR_CODE:
        logger.warning(
            "creator_info_rejected",
            code=code,
            message=error.get("message", ""),
            log_id=error.get("log_id", ""),
        )
        raise CapabilityError(
            f"Creator info query rejected: {error.get('message') or code}",
            code=code,
            remote_message=str(error.get("message") or ""),
            log_id=str(error.get("log_id") or ""),
            stage="capabilities",
        )

    snapshot = CapabilitySnapshot.from_json(payload)

    dropped = [
        option
        for option in payload["data"]["privacy_level_options"]
        if not snapshot.allows(str(option))
    ]
    if dropped:
        logger.info("unknown_privacy_options_dropped", options=dropped)

    logger.info(
        "creator_capabilities_fetched",
        username=snapshot.username,
        privacy_levels=sorted(snapshot.privacy_levels),
        comment_disabled=snapshot.comment_disabled,
        duet_disabled=snapshot.duet_disabled,
        stitch_disabled=snapshot.stitch_disabled,
        max_video_duration_sec=snapshot.max_video_duration_sec,
    )
    return snapshot
