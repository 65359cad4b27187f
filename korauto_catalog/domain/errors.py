"""Catalog error classes.

Protocol-agnostic errors raised by the filter engine and its collaborators.
Inbound adapters translate them to HTTP responses; fetch-related errors are
absorbed by the use cases and turned into status flags.
"""

from typing import Any, Optional


class CatalogError(Exception):
    """Base class for all catalog errors."""

    error_code: str = "CATALOG_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        """
        Create a catalog error.

        Args:
            message: Human-readable error message
            **context: Additional context (e.g., dimension, value)
        """
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured format for protocol translation."""
        return {
            "message": self.message,
            "code": self.error_code,
            **self.context,
        }


class ValidationError(CatalogError):
    """Direct misuse of the public API (unknown dimension, malformed value).

    Rejected synchronously; the session state is left untouched.
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list[dict[str, str]]] = None,
        **context: Any,
    ) -> None:
        """
        Create a validation error.

        Args:
            message: Overall message (optional if errors provided)
            errors: Field-level errors, each with 'field' and 'message'
            **context: Additional context
        """
        self.errors = errors or None
        if errors:
            msg = message or "Validation failed"
        else:
            msg = message or "Validation error"
        super().__init__(msg, **context)

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured format."""
        if self.errors:
            return {
                "message": self.message,
                "code": self.error_code,
                "errors": self.errors,
                **self.context,
            }
        return super().to_dict()


class StaleResponse(CatalogError):
    """A response arrived for a superseded request. Never surfaced to callers."""

    error_code: str = "STALE_RESPONSE"


class RemoteCatalogError(CatalogError):
    """Terminal failure reported by the remote catalog source."""

    error_code: str = "REMOTE_CATALOG_ERROR"


class NetworkError(RemoteCatalogError):
    """Transport failure, server error or unreadable payload."""

    error_code: str = "NETWORK_ERROR"


class RateLimited(RemoteCatalogError):
    """The remote API kept answering 429 after all retry attempts."""

    error_code: str = "RATE_LIMITED"

    def __init__(self, retry_after_ms: Optional[int] = None, message: Optional[str] = None) -> None:
        """
        Create a rate-limit error.

        Args:
            retry_after_ms: Server hint for when to retry, if any
            message: Optional message override
        """
        self.retry_after_ms = retry_after_ms
        super().__init__(message or "Remote catalog rate limit exceeded", retry_after_ms=retry_after_ms)


class SessionNotFound(CatalogError):
    """No live catalog session has the requested identifier."""

    error_code: str = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        """
        Create a session lookup error.

        Args:
            session_id: Identifier that was looked up
        """
        super().__init__(f"Catalog session '{session_id}' not found", session_id=session_id)
