"""Streamed CSV export of the petition archive.

The export is generated while it is being sent: rows are read from a
server-side cursor and written out in chunks of complete CSV rows. Nothing
is buffered beyond one chunk, so the response has no Content-Length.

If reading rows fails part-way through, the error is logged and re-raised
so the ASGI server aborts the connection. Because chunks always end on a
row boundary, whatever the client did receive is still valid CSV.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from starlette.responses import StreamingResponse

from epets.services.archive import DEFAULT_BATCH_SIZE, ArchivedPetitionService

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager
    from zoneinfo import ZoneInfo

    from sqlalchemy.ext.asyncio import AsyncSession

    from epets.db.models.archive import ArchivedPetition

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv"
FILENAME_PREFIX = "all-petitions"
DEFAULT_CHUNK_ROWS = 100

# Characters that make spreadsheet applications evaluate a cell
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

ARCHIVE_CSV_COLUMNS = (
    "ID",
    "Action",
    "Background",
    "Additional details",
    "State",
    "Signature count",
    "Opened at",
    "Closed at",
    "Rejected at",
    "Rejection code",
    "Rejection details",
    "Government response at",
    "Debate outcome at",
    "Parliament",
)

STREAMING_HEADERS = {
    "Cache-Control": "no-cache",
    # Stop nginx from buffering the whole response before relaying it
    "X-Accel-Buffering": "no",
}


def sanitize_cell(value: str) -> str:
    """Neutralise values a spreadsheet would treat as a formula."""
    if value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


def _timestamp(value: datetime | None, tz: ZoneInfo) -> str:
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(tz).isoformat()


def petition_row(petition: ArchivedPetition, tz: ZoneInfo) -> list[str]:
    """Convert one petition into CSV cells, in ARCHIVE_CSV_COLUMNS order."""
    return [
        str(petition.id),
        sanitize_cell(petition.action),
        sanitize_cell(petition.background or ""),
        sanitize_cell(petition.additional_details or ""),
        petition.state.value,
        str(petition.signature_count),
        _timestamp(petition.opened_at, tz),
        _timestamp(petition.closed_at, tz),
        _timestamp(petition.rejected_at, tz),
        petition.rejection_code or "",
        sanitize_cell(petition.rejection_details or ""),
        _timestamp(petition.government_response_at, tz),
        _timestamp(petition.debate_outcome_at, tz),
        petition.parliament_period or "",
    ]


def export_filename(now: datetime) -> str:
    """Attachment filename, e.g. all-petitions-20261019143005.csv."""
    return f"{FILENAME_PREFIX}-{now.strftime('%Y%m%d%H%M%S')}.csv"


async def generate_csv(
    petitions: AsyncIterable[ArchivedPetition],
    *,
    tz: ZoneInfo,
    chunk_rows: int = DEFAULT_CHUNK_ROWS,
) -> AsyncIterator[str]:
    """Render petitions as CSV text, chunk_rows complete rows per chunk.

    The header row is sent as the first chunk on its own so the client sees
    the download start immediately.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    def drain() -> str:
        text = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return text

    writer.writerow(ARCHIVE_CSV_COLUMNS)
    yield drain()

    count = 0
    pending = 0
    try:
        async for petition in petitions:
            writer.writerow(petition_row(petition, tz))
            count += 1
            pending += 1
            if pending >= chunk_rows:
                yield drain()
                pending = 0
    except Exception:
        logger.exception("Archived petition export failed after %d rows", count)
        raise

    if pending:
        yield drain()

    logger.info("Archived petition export finished", extra={"rows": count})


def csv_streaming_response(body: AsyncIterator[str], filename: str) -> StreamingResponse:
    """Wrap a CSV body in a non-buffered attachment response.

    Content-Type is passed as a header rather than a media type so that no
    charset parameter is appended.
    """
    return StreamingResponse(
        body,
        headers={
            "Content-Type": CSV_CONTENT_TYPE,
            "Content-Disposition": f"attachment; filename={filename}",
            **STREAMING_HEADERS,
        },
    )


class ArchiveExporter:
    """Streams the entire archive as CSV.

    The exporter opens its own database session when iteration starts and
    holds it until the last row is sent, independently of the request's
    session.
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        *,
        tz: ZoneInfo,
        batch_size: int = DEFAULT_BATCH_SIZE,
        chunk_rows: int = DEFAULT_CHUNK_ROWS,
    ) -> None:
        self._session_factory = session_factory
        self._tz = tz
        self._batch_size = batch_size
        self._chunk_rows = chunk_rows

    async def petitions(self) -> AsyncIterator[ArchivedPetition]:
        """Every archived petition in id order."""
        async with self._session_factory() as db:
            service = ArchivedPetitionService(db)
            async for petition in service.iter_all(batch_size=self._batch_size):
                yield petition

    def filename(self, now: datetime | None = None) -> str:
        """Attachment filename stamped with the export start time."""
        return export_filename(now or datetime.now(self._tz))

    def response(self) -> StreamingResponse:
        """Start an export and return the streaming response."""
        filename = self.filename()
        logger.info("Archived petition export started", extra={"export_filename": filename})
        body = generate_csv(self.petitions(), tz=self._tz, chunk_rows=self._chunk_rows)
        return csv_streaming_response(body, filename)
