"""OAuth login, callback and logout endpoints."""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from supabase import AsyncClient
from supabase_auth.errors import AuthError

from api.dependencies import get_settings, get_supabase_client
from core import auth
from core.config import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

LANDING_PATH = "/"
DASHBOARD_PATH = "/dashboard"


def build_redirect_target(request: Request, settings: Settings) -> str:
    """Get the OAuth callback URL, based on SITE_URL or the current request origin."""
    if settings.site_url:
        return f"{settings.site_url.rstrip('/')}/auth/callback"
    return str(request.url_for("auth_callback"))


@router.get("/login")
async def login(
    request: Request,
    client: AsyncClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Start the OAuth flow with the configured provider."""
    redirect_to = build_redirect_target(request, settings)
    try:
        provider_url = await auth.start_oauth_login(client, settings.oauth_provider, redirect_to)
    except AuthError as e:
        logger.warning("Could not start %s login: %s", settings.oauth_provider, e.message)
        return RedirectResponse(LANDING_PATH, status_code=status.HTTP_302_FOUND)
    return RedirectResponse(provider_url, status_code=status.HTTP_302_FOUND)


@router.get("/callback", name="auth_callback")
async def callback(
    code: str | None = None,
    client: AsyncClient = Depends(get_supabase_client),
) -> RedirectResponse:
    """Finish the OAuth flow: exchange the code for a session cookie."""
    if not code:
        return RedirectResponse(LANDING_PATH, status_code=status.HTTP_302_FOUND)
    identity = await auth.complete_oauth_login(client, code)
    target = DASHBOARD_PATH if identity is not None else LANDING_PATH
    return RedirectResponse(target, status_code=status.HTTP_302_FOUND)


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(
    request: Request,
    client: AsyncClient = Depends(get_supabase_client),
) -> RedirectResponse:
    """Sign out, clear session cookies and navigate to the landing page."""
    await auth.sign_out(client)
    storage = getattr(request.state, "session_cookies", None)
    if storage is not None:
        storage.clear()
    return RedirectResponse(LANDING_PATH, status_code=status.HTTP_303_SEE_OTHER)
