"""Tests for backend error classification."""
import httpx
import pytest
from postgrest.exceptions import APIError
from supabase_auth.errors import AuthApiError, AuthRetryableError

from services.exceptions import (
    BackendError,
    BackendErrorKind,
    BookmarkValidationError,
    SubmissionInProgressError,
    classify_backend_error,
)


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://test-project.supabase.co/rest/v1/bookmarks")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("42501", BackendErrorKind.UNAUTHORIZED),
        ("PGRST301", BackendErrorKind.UNAUTHORIZED),
        ("23502", BackendErrorKind.VALIDATION),
        ("22P02", BackendErrorKind.VALIDATION),
        ("PGRST102", BackendErrorKind.VALIDATION),
        ("XX000", BackendErrorKind.UNKNOWN),
    ],
)
def test__classify_backend_error__postgrest_codes(code: str, expected: BackendErrorKind) -> None:
    """PostgREST error codes map to the closed set of kinds."""
    error = classify_backend_error(APIError({"message": "refused", "code": code}))
    assert error.kind == expected
    assert error.message == "refused"


def test__classify_backend_error__auth_errors() -> None:
    """Auth API 401s are unauthorized; retryable auth errors are transient."""
    unauthorized = classify_backend_error(AuthApiError("JWT expired", 401, None))
    transient = classify_backend_error(AuthRetryableError("Service unavailable", 503))

    assert unauthorized.kind == BackendErrorKind.UNAUTHORIZED
    assert unauthorized.message == "JWT expired"
    assert transient.kind == BackendErrorKind.TRANSIENT_NETWORK


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (401, BackendErrorKind.UNAUTHORIZED),
        (403, BackendErrorKind.UNAUTHORIZED),
        (502, BackendErrorKind.TRANSIENT_NETWORK),
        (404, BackendErrorKind.UNKNOWN),
    ],
)
def test__classify_backend_error__http_status(status: int, expected: BackendErrorKind) -> None:
    """HTTP status failures are classified by status code."""
    assert classify_backend_error(_status_error(status)).kind == expected


def test__classify_backend_error__transport_and_unknown() -> None:
    """Transport errors are retryable; anything else is unknown and not retryable."""
    transient = classify_backend_error(httpx.ReadTimeout("timed out"))
    unknown = classify_backend_error(RuntimeError())

    assert transient.retryable is True
    assert unknown.kind == BackendErrorKind.UNKNOWN
    assert unknown.message == "RuntimeError"
    assert unknown.retryable is False


def test__classify_backend_error__passes_through_backend_error() -> None:
    """Already-classified errors are returned unchanged."""
    error = BookmarkValidationError("Please enter both title and URL")
    assert classify_backend_error(error) is error
    assert error.kind == BackendErrorKind.VALIDATION
    assert isinstance(error, BackendError)


def test__submission_in_progress_error__message() -> None:
    assert str(SubmissionInProgressError()) == "A bookmark is already being added"
