"""Shared exceptions for service layer operations."""
from enum import StrEnum

import httpx
from postgrest.exceptions import APIError
from supabase_auth.errors import AuthApiError, AuthError, AuthRetryableError

# PostgREST error codes that mean the caller's token or row-level policy refused the call
UNAUTHORIZED_CODES = frozenset({"PGRST301", "PGRST302", "42501"})


class BackendErrorKind(StrEnum):
    """Closed set of failure kinds at the backend boundary."""

    UNAUTHORIZED = "unauthorized"
    VALIDATION = "validation"
    TRANSIENT_NETWORK = "transient_network"
    UNKNOWN = "unknown"


class BackendError(Exception):
    """
    Raised when a call into the backend platform fails.

    `message` is the platform's own message, suitable for showing to the user
    as-is. Only transient network failures are marked retryable.
    """

    def __init__(self, kind: BackendErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Whether repeating the same call later may succeed."""
        return self.kind == BackendErrorKind.TRANSIENT_NETWORK


class BookmarkValidationError(BackendError):
    """Raised when bookmark fields fail validation before reaching the backend."""

    def __init__(self, message: str) -> None:
        super().__init__(BackendErrorKind.VALIDATION, message)


class SubmissionInProgressError(Exception):
    """Raised when a bookmark form is submitted while a previous submission is in flight."""

    def __init__(self) -> None:
        super().__init__("A bookmark is already being added")


def _classify_api_error(exc: APIError) -> BackendErrorKind:
    code = exc.code or ""
    if code in UNAUTHORIZED_CODES:
        return BackendErrorKind.UNAUTHORIZED
    if code.startswith(("22", "23", "PGRST1")):
        return BackendErrorKind.VALIDATION
    return BackendErrorKind.UNKNOWN


def _classify_auth_error(exc: AuthError) -> BackendErrorKind:
    if isinstance(exc, AuthRetryableError):
        return BackendErrorKind.TRANSIENT_NETWORK
    if isinstance(exc, AuthApiError) and exc.status in (401, 403):
        return BackendErrorKind.UNAUTHORIZED
    return BackendErrorKind.UNKNOWN


def classify_backend_error(exc: Exception) -> BackendError:
    """
    Translate an exception raised by the platform client into a BackendError.

    Args:
        exc: Exception raised by the Supabase client (PostgREST, auth, realtime)
            or by the underlying HTTP transport.

    Returns:
        BackendError carrying the kind and the original message.
    """
    if isinstance(exc, BackendError):
        return exc
    if isinstance(exc, APIError):
        return BackendError(_classify_api_error(exc), exc.message or str(exc))
    if isinstance(exc, AuthError):
        return BackendError(_classify_auth_error(exc), exc.message or str(exc))
    if isinstance(exc, httpx.TransportError):
        return BackendError(BackendErrorKind.TRANSIENT_NETWORK, str(exc) or "Network error")
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in (401, 403):
            return BackendError(BackendErrorKind.UNAUTHORIZED, str(exc))
        if status >= 500:
            return BackendError(BackendErrorKind.TRANSIENT_NETWORK, str(exc))
        return BackendError(BackendErrorKind.UNKNOWN, str(exc))
    return BackendError(BackendErrorKind.UNKNOWN, str(exc) or type(exc).__name__)
