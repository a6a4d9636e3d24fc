"""Exception classes for Netatmo API interactions.

Every failure raised inside the historical package derives from
NetatmoError, so callers can stop a run on any of them with one handler.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class NetatmoError(Exception):
    """Base class for all errors raised by the historical package."""


class ValidationError(NetatmoError):
    """Raised when an operation receives input of the wrong shape."""


class DataError(NetatmoError):
    """Raised when a response is well formed but unusable (e.g. empty)."""


class ApiError(NetatmoError):
    """Error status or error body returned by the Netatmo API.

    Includes the HTTP status code and, when available, the decoded
    response body for debugging.
    """

    def __init__(
        self, code: int, message: str, response: Optional[Dict[str, Any]] = None
    ) -> None:
        """Initialize the exception.

        Args:
            code: HTTP status code (0 if the error was found in a 200 body)
            message: Human-readable error message
            response: Optional decoded API response
        """
        super().__init__(f"[{code}] {message}")
        self.code: int = code
        self.message: str = message
        self.response: Optional[Dict[str, Any]] = response


class AuthError(ApiError):
    """Raised when a token cannot be obtained or is rejected (missing, invalid, expired)."""


class NetworkError(NetatmoError):
    """Raised when a transport issue prevents API communication."""

    def __init__(
        self, message: str, original_error: Optional[Exception] = None
    ) -> None:
        """Initialize with network error details.

        Args:
            message: Description of the network error
            original_error: The original exception that was caught
        """
        super().__init__(message)
        self.original_error = original_error
