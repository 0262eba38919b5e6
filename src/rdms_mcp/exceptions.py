"""Error taxonomy for the RDMS client.

Each error carries a machine-readable ``code`` so the operation boundary can
turn it into a structured ``{"error": ..., "code": ...}`` reply.
"""

from typing import Any, Dict


class RDMSError(Exception):
    """Base class for all client errors."""

    code = "RDMSError"

    def __init__(self, message: str = ""):
        message = message or (self.__class__.__doc__ or self.code).strip()
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the error reply shape."""
        return {"error": self.message, "code": self.code}


# =============================================================================
# Authentication
# =============================================================================

class AuthError(RDMSError):
    """Authentication failed."""

    code = "AuthError"


class InvalidCredentials(AuthError):
    """Login failed - invalid username or password."""

    code = "InvalidCredentials"


class CaptchaRequired(AuthError):
    """Login requires a verification code; log in through a browser first."""

    code = "CaptchaRequired"


class UnknownLoginFailure(AuthError):
    """Login failed - unrecognized response from the server."""

    code = "UnknownLoginFailure"


class NotAuthenticated(AuthError):
    """Not logged in. Configure RDMS_* environment variables or call rdms_login."""

    code = "NotAuthenticated"


class SessionExpired(AuthError):
    """Session expired, please login again."""

    code = "SessionExpired"


# =============================================================================
# Network
# =============================================================================

class NetworkError(RDMSError):
    """Connection-level failure talking to the server."""

    code = "NetworkError"


class NetworkTimeout(NetworkError):
    """Request timed out."""

    code = "NetworkTimeout"


class ImageFetchFailed(RDMSError):
    """Image could not be downloaded."""

    code = "ImageFetchFailed"


# =============================================================================
# Protocol
# =============================================================================

class ToolNotFoundError(RDMSError):
    """Unknown tool name."""

    code = "ToolNotFound"
