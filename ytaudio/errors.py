from typing import Any, Optional


class ConvertError(Exception):
    """Base error rendered as ``{"success": false, "error": ...}``."""

    status_code = 500
    default_message = "Failed to process video. Please try again."

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(ConvertError):
    status_code = 400
    default_message = "Invalid request"


class AuthRequiredError(ConvertError):
    status_code = 403
    default_message = "This video requires sign-in verification and cannot be accessed."


class NotFoundError(ConvertError):
    status_code = 404
    default_message = "This video is unavailable or has been deleted."


class MethodNotAllowedError(ConvertError):
    status_code = 405
    default_message = "Method not allowed. Use GET or POST."


class InternalError(ConvertError):
    status_code = 500


class UpstreamError(ConvertError):
    """A single provider failed. The resolver moves on to the next one."""

    status_code = 502
    default_message = "Upstream provider failed"


class ExhaustionError(ConvertError):
    status_code = 503
    default_message = "Unable to fetch video info. Please try again later."
