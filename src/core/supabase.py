"""Supabase client factory."""
from fastapi import Depends, Request
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions
from supabase_auth import AsyncSupportedStorage

from core.config import Settings, get_settings
from core.session_cookies import CookieStorage


async def create_supabase_client(
    settings: Settings,
    storage: AsyncSupportedStorage | None = None,
) -> AsyncClient:
    """
    Build an async Supabase client for the configured project.

    Uses the PKCE OAuth flow and disables background token refresh: each
    client serves a single request or stream, and expired sessions are
    refreshed on read. A stream outliving its access token ends, and the
    browser's reconnect reads a refreshed session.
    """
    options = AsyncClientOptions(
        flow_type="pkce",
        auto_refresh_token=False,
        persist_session=True,
    )
    if storage is not None:
        options.storage = storage
    return await acreate_client(settings.supabase_url, settings.supabase_anon_key, options=options)


async def get_supabase_client(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AsyncClient:
    """
    Dependency that builds a Supabase client bound to the request's session cookies.

    Session writes made through the client are recorded on request.state and
    written to the response by SessionCookieMiddleware.
    """
    storage = CookieStorage(request.cookies, secure=settings.cookie_secure)
    request.state.session_cookies = storage
    return await create_supabase_client(settings, storage)
