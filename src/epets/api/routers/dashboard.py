"""Admin dashboard: the landing page for signed-in moderators."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from epets.api.dependencies import Templates
from epets.api.middleware.auth import AuthenticatedUser, require_moderator
from epets.api.templates import build_template_context

router = APIRouter(tags=["dashboard"], dependencies=[Depends(require_moderator)])


@router.get("/admin", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    user: Annotated[AuthenticatedUser, Depends(require_moderator)],
    templates: Templates,
) -> HTMLResponse:
    """Render the dashboard, consuming any flash messages."""
    context = build_template_context(request, active_page="dashboard", user=user)
    return templates.TemplateResponse(request, "admin/dashboard.html", context)
