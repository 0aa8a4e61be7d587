"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import auth, bookmarks, health, pages
from core.config import get_settings
from schemas.bookmark import ErrorResponse
from services.bookmark_form import BookmarkFormRegistry, set_form_registry
from services.exceptions import BackendError, BackendErrorKind, SubmissionInProgressError

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    BackendErrorKind.UNAUTHORIZED: 401,
    BackendErrorKind.VALIDATION: 422,
    BackendErrorKind.TRANSIENT_NETWORK: 503,
    BackendErrorKind.UNKNOWN: 502,
}


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: one form registry per process so the busy flag spans requests
    set_form_registry(
        BookmarkFormRegistry(settle_delay=app_settings.submit_settle_delay_seconds),
    )
    logger.info(
        "Bookmark manager started (backend=%s, sync=%s)",
        app_settings.supabase_url,
        app_settings.sync_strategy,
    )

    yield

    # Shutdown
    set_form_registry(None)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        return response


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Write auth session changes made during the request back to the browser."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and apply pending session cookie writes to the response."""
        response = await call_next(request)
        storage = getattr(request.state, "session_cookies", None)
        if storage is not None and storage.has_changes:
            storage.apply(response)
        return response


app_settings = get_settings()

app = FastAPI(
    title="Smart Bookmark",
    description="A personal bookmark manager backed by Supabase.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(BackendError)
async def backend_error_handler(_request: Request, exc: BackendError) -> JSONResponse:
    """Map backend failure kinds to HTTP status codes, passing the message through."""
    return JSONResponse(
        status_code=ERROR_STATUS_CODES[exc.kind],
        content=ErrorResponse(
            detail=exc.message, kind=exc.kind.value, retryable=exc.retryable,
        ).model_dump(),
    )


@app.exception_handler(SubmissionInProgressError)
async def submission_in_progress_handler(
    _request: Request, exc: SubmissionInProgressError,
) -> JSONResponse:
    """Reject duplicate submissions while one is in flight."""
    return JSONResponse(
        status_code=409,
        content=ErrorResponse(detail=str(exc), kind="conflict", retryable=True).model_dump(),
    )


app.add_middleware(SessionCookieMiddleware)

# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(bookmarks.router)
