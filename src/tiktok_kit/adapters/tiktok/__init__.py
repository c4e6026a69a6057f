"""TikTok Login Kit and Content Posting API adapter."""

from tiktok_kit.adapters.tiktok.accounts import (
    AccountClient,
    UserProfile,
    VideoInfo,
    VideoPage,
)
from tiktok_kit.adapters.tiktok.capabilities import fetch_capabilities
from tiktok_kit.adapters.tiktok.oauth import (
    OAuthClient,
    OAuthConfig,
    build_authorization_url,
    get_oauth_config,
    load_oauth_config,
    run_local_login,
    verify_state,
)
from tiktok_kit.adapters.tiktok.orchestrator import (
    PublishOrchestrator,
    PublishOutcome,
    check_capabilities,
    coerce_to_capabilities,
    validate_request,
)
from tiktok_kit.adapters.tiktok.sessions import build_session_payload, create_session
from tiktok_kit.adapters.tiktok.status import PublishStatusPoller
from tiktok_kit.adapters.tiktok.transport import Transport, TransportResult
from tiktok_kit.adapters.tiktok.uploader import MediaUploader

__all__ = [
    # Transport
    "Transport",
    "TransportResult",
    # Publishing
    "PublishOrchestrator",
    "PublishOutcome",
    "PublishStatusPoller",
    "MediaUploader",
    "fetch_capabilities",
    "create_session",
    "build_session_payload",
    "check_capabilities",
    "coerce_to_capabilities",
    "validate_request",
    # OAuth
    "OAuthClient",
    "OAuthConfig",
    "build_authorization_url",
    "get_oauth_config",
    "load_oauth_config",
    "run_local_login",
    "verify_state",
    # Accounts
    "AccountClient",
    "UserProfile",
    "VideoInfo",
    "VideoPage",
]
