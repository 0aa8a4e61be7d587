"""Session gate and OAuth actions backed by the Supabase auth service."""
import logging

from fastapi import Depends, HTTPException, status
from supabase import AsyncClient
from supabase_auth.errors import AuthError

from core.supabase import get_supabase_client
from models.identity import Identity
from services.bookmark_gateway import SupabaseBookmarkGateway

logger = logging.getLogger(__name__)


async def get_current_identity(client: AsyncClient) -> Identity | None:
    """
    Resolve the signed-in user from the client's stored session.

    The session is validated against the auth service rather than trusted
    locally. Any failure (no session, expired or revoked token, network error)
    is treated as "not signed in".
    """
    try:
        session = await client.auth.get_session()
        if session is None:
            return None
        response = await client.auth.get_user(session.access_token)
    except AuthError as e:
        logger.info("Session lookup failed, treating as signed out: %s", e.message)
        return None

    if response is None or response.user is None:
        return None
    return Identity(
        id=response.user.id,
        email=response.user.email,
        access_token=session.access_token,
    )


async def start_oauth_login(client: AsyncClient, provider: str, redirect_to: str) -> str:
    """
    Begin an OAuth login and return the provider URL to send the browser to.

    The PKCE code verifier is written to the client's storage.
    """
    response = await client.auth.sign_in_with_oauth(
        {"provider": provider, "options": {"redirect_to": redirect_to}},
    )
    return response.url


async def complete_oauth_login(client: AsyncClient, code: str) -> Identity | None:
    """
    Exchange the OAuth callback code for a session.

    Returns the new identity, or None if the exchange failed.
    """
    try:
        response = await client.auth.exchange_code_for_session({"auth_code": code})
    except AuthError as e:
        logger.warning("OAuth code exchange failed: %s", e.message)
        return None
    if response.session is None or response.user is None:
        return None
    logger.info("User %s signed in", response.user.id)
    return Identity(
        id=response.user.id,
        email=response.user.email,
        access_token=response.session.access_token,
    )


async def sign_out(client: AsyncClient) -> None:
    """Sign out of the current session. Failures are logged, not raised."""
    try:
        await client.auth.sign_out()
    except AuthError as e:
        logger.warning("Sign-out failed: %s", e.message)


async def get_optional_user(
    client: AsyncClient = Depends(get_supabase_client),
) -> Identity | None:
    """Dependency returning the signed-in identity, or None."""
    return await get_current_identity(client)


async def get_current_user(
    identity: Identity | None = Depends(get_optional_user),
) -> Identity:
    """Dependency that requires a signed-in identity."""
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return identity


async def get_bookmark_gateway(
    client: AsyncClient = Depends(get_supabase_client),
    current_user: Identity = Depends(get_current_user),
) -> SupabaseBookmarkGateway:
    """Dependency returning a gateway whose calls run as the current user."""
    return SupabaseBookmarkGateway(client, access_token=current_user.access_token)
