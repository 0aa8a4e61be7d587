"""HTML pages: public landing page and the protected dashboard."""
from pathlib import Path

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from api.dependencies import get_optional_user, get_settings
from core.config import Settings
from models.identity import Identity

router = APIRouter(tags=["pages"], include_in_schema=False)

templates = Jinja2Templates(directory=Path(__file__).resolve().parent.parent / "templates")


@router.get("/", response_class=HTMLResponse)
async def landing(request: Request) -> Response:
    """Public landing page with the login button."""
    return templates.TemplateResponse(request, "landing.html", {})


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    current_user: Identity | None = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Bookmark dashboard. Visitors without a session are sent to the landing page."""
    if current_user is None:
        return RedirectResponse("/", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "user": current_user,
            "strategy": settings.sync_strategy,
        },
    )
