"""Archived petitions router.

Moderator-only pages for the petition archive:
- GET /admin/archived/petitions - listing and search, or CSV with ?format=csv
- GET /admin/archived/petitions.csv - CSV export of the whole archive
- GET /admin/archived/petitions/{petition_id} - one archived petition

Every route runs the moderator guard first; callers who are not signed in
are sent to the login page and callers who must change their password are
sent to their profile edit page.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from starlette.responses import StreamingResponse

from epets.api.dependencies import (
    AppSettings,
    Templates,
    get_archive_exporter,
    get_archive_service,
)
from epets.api.flash import ALERT, flash
from epets.api.i18n import get_language, translate
from epets.api.middleware.auth import AuthenticatedUser, require_moderator
from epets.api.middleware.errors import APIError
from epets.api.templates import build_template_context
from epets.db.models.base import ArchivedPetitionState
from epets.services.archive import ArchivedPetitionService, ArchiveQuery
from epets.services.csv_export import ArchiveExporter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/archived",
    tags=["archived-petitions"],
    dependencies=[Depends(require_moderator)],
)

Moderator = Annotated[AuthenticatedUser, Depends(require_moderator)]
ArchiveService = Annotated[ArchivedPetitionService, Depends(get_archive_service)]
Exporter = Annotated[ArchiveExporter, Depends(get_archive_exporter)]

HTML_FORMATS = (None, "", "html")
CSV_FORMAT = "csv"


@router.get("/petitions", response_class=HTMLResponse)
async def index(
    request: Request,
    user: Moderator,
    settings: AppSettings,
    templates: Templates,
    archive: ArchiveService,
    exporter: Exporter,
    q: str | None = Query(default=None),
    state: str | None = Query(default=None),
    page: str | None = Query(default=None),
    response_format: str | None = Query(default=None, alias="format"),
) -> Response:
    """List and search archived petitions.

    - format=csv streams the whole archive (q, state and page are ignored)
    - a q naming an existing petition id redirects to that petition
    - anything else renders one page of matching petitions
    """
    if response_format == CSV_FORMAT:
        return exporter.response()

    if response_format not in HTML_FORMATS:
        raise APIError(
            error="not_acceptable",
            message=f"Unsupported format: {response_format}",
            status_code=406,
        )

    query = ArchiveQuery.from_params(q=q, state=state, page=page)

    petition_id = await archive.resolve_id(query.q)
    if petition_id is not None:
        return RedirectResponse(
            url=settings.admin_url(f"archived/petitions/{petition_id}"),
            status_code=302,
        )

    results = await archive.search(query)

    context = build_template_context(
        request,
        active_page="archived_petitions",
        user=user,
        query=query,
        results=results,
        states=list(ArchivedPetitionState),
    )
    return templates.TemplateResponse(request, "admin/archived/petitions/index.html", context)


@router.get("/petitions.csv")
async def export_csv(user: Moderator, exporter: Exporter) -> StreamingResponse:
    """Stream the whole archive as CSV."""
    return exporter.response()


@router.get("/petitions/{petition_id}", response_class=HTMLResponse)
async def show(
    request: Request,
    petition_id: str,
    user: Moderator,
    settings: AppSettings,
    templates: Templates,
    archive: ArchiveService,
) -> Response:
    """Show one archived petition.

    An unknown or malformed id redirects to the dashboard with an alert
    naming the id exactly as requested.
    """
    petition = await archive.find(petition_id)

    if petition is None:
        logger.info("Archived petition not found: %s", petition_id)
        flash(
            request,
            ALERT,
            translate("archive.not_found", get_language(request), id=petition_id),
        )
        return RedirectResponse(url=settings.admin_url(), status_code=302)

    context = build_template_context(
        request,
        active_page="archived_petitions",
        user=user,
        petition=petition,
    )
    return templates.TemplateResponse(request, "admin/archived/petitions/show.html", context)
