"""Error taxonomy for TikTok API calls and the publish workflow."""

from typing import Any


class TikTokError(Exception):
    """Base class for every error raised by this package.

    Remote-originating errors keep the error code, message and log id returned
    by TikTok so support requests can be correlated.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        remote_message: str = "",
        log_id: str = "",
        stage: str = "",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.remote_message = remote_message
        self.log_id = log_id
        self.stage = stage

    def __str__(self) -> str:
        base = super().__str__()
        if self.stage:
            base = f"[{self.stage}] {base}"
        if self.code:
            base = f"{base} (code={self.code}"
            if self.log_id:
                base = f"{base}, log_id={self.log_id}"
            base = f"{base})"
        return base

    def details(self) -> dict[str, Any]:
        """Return the error context as keyword arguments for structured logging."""
        return {
            "error_type": type(self).__name__,
            "error": super().__str__(),
            "stage": self.stage,
            "code": self.code,
            "remote_message": self.remote_message,
            "log_id": self.log_id,
        }


class CapabilityError(TikTokError):
    """Raised when a post request violates the creator's publishing capabilities."""


class SessionError(TikTokError):
    """Raised when TikTok rejects session creation or returns an invalid session."""


class UploadError(TikTokError):
    """Raised when transferring media bytes to the upload URL fails."""

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code

    def details(self) -> dict[str, Any]:
        return {**super().details(), "status_code": self.status_code}


class TransportError(TikTokError):
    """Raised when a network/HTTP-level failure leaves nothing to interpret."""


class ParseError(TikTokError):
    """Raised when a response does not match the expected schema."""


class ValidationError(TikTokError):
    """Raised when local input is rejected before any network call."""


class PollTimeoutError(TikTokError):
    """Raised when a publish job does not reach a terminal state in time."""


class PollCancelledError(TikTokError):
    """Raised when status polling is cancelled by the caller."""


class OAuthError(TikTokError):
    """Raised when the OAuth flow fails."""
