"""Tests for the streamed CSV export.

Tests cover:
- Cell formatting (timestamps, formula neutralisation)
- Chunking on row boundaries
- Failure part-way through the stream
- The exporter's response headers and its use of a server-side cursor
"""

import csv
import io
import re
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from epets.db.models.base import ArchivedPetitionState
from epets.services.csv_export import (
    ARCHIVE_CSV_COLUMNS,
    ArchiveExporter,
    export_filename,
    generate_csv,
    petition_row,
    sanitize_cell,
)
from tests.conftest import StreamingSessionStub, session_factory_for
from tests.factories import create_archived_petition

LONDON = ZoneInfo("Europe/London")


async def _rows(petitions, fail_after: int | None = None):
    for index, petition in enumerate(petitions):
        if fail_after is not None and index == fail_after:
            raise RuntimeError("connection lost")
        yield petition


async def _collect(body) -> list[str]:
    return [chunk async for chunk in body]


def _petitions(count: int) -> list:
    return [create_archived_petition(100000 + i) for i in range(count)]


class TestSanitizeCell:
    """Spreadsheet formula neutralisation."""

    @pytest.mark.parametrize("value", ["=1+1", "+44 20", "-5", "@SUM(A1)", "\tx", "\rx"])
    def test_formula_prefixes_are_quoted(self, value):
        assert sanitize_cell(value) == "'" + value

    @pytest.mark.parametrize("value", ["", "Save the bees", "100%", "a=b"])
    def test_plain_values_are_unchanged(self, value):
        assert sanitize_cell(value) == value


class TestPetitionRow:
    """Tests for converting a petition to CSV cells."""

    def test_columns_line_up_with_header(self):
        row = petition_row(create_archived_petition(), LONDON)

        assert len(row) == len(ARCHIVE_CSV_COLUMNS)
        assert row[0] == "100000"
        assert row[4] == "closed"
        assert row[5] == "12345"
        assert row[13] == "2015-2017"

    def test_timestamps_are_iso8601_in_local_time(self):
        petition = create_archived_petition(
            opened_at=datetime(2016, 7, 1, 9, 30, tzinfo=UTC),
            closed_at=datetime(2016, 12, 30, 9, 30, tzinfo=UTC),
        )

        row = petition_row(petition, LONDON)

        assert row[6] == "2016-07-01T10:30:00+01:00"
        assert row[7] == "2016-12-30T09:30:00+00:00"

    def test_missing_values_are_empty_cells(self):
        petition = create_archived_petition(background=None, closed_at=None)

        row = petition_row(petition, LONDON)

        assert row[2] == ""
        assert row[7] == ""
        assert row[8] == ""

    def test_free_text_is_sanitized(self):
        petition = create_archived_petition(
            action="=HYPERLINK(\"http://evil\")",
            state=ArchivedPetitionState.REJECTED,
            rejection_details="-duplicate",
        )

        row = petition_row(petition, LONDON)

        assert row[1].startswith("'=")
        assert row[10] == "'-duplicate"


class TestExportFilename:
    def test_timestamp_format(self):
        assert export_filename(datetime(2026, 10, 19, 14, 30, 5)) == (
            "all-petitions-20261019143005.csv"
        )


class TestGenerateCsv:
    """Tests for chunked CSV generation."""

    @pytest.mark.asyncio
    async def test_header_is_sent_first_on_its_own(self):
        chunks = await _collect(generate_csv(_rows(_petitions(3)), tz=LONDON, chunk_rows=10))

        assert next(csv.reader(io.StringIO(chunks[0]))) == list(ARCHIVE_CSV_COLUMNS)
        assert chunks[0].count("\n") == 1

    @pytest.mark.asyncio
    async def test_rows_are_grouped_into_chunks(self):
        chunks = await _collect(generate_csv(_rows(_petitions(5)), tz=LONDON, chunk_rows=2))

        # header, 2 rows, 2 rows, 1 row
        assert len(chunks) == 4
        assert all(chunk.endswith("\r\n") for chunk in chunks)
        assert [chunk.count("\r\n") for chunk in chunks] == [1, 2, 2, 1]

    @pytest.mark.asyncio
    async def test_empty_archive_is_header_only(self):
        chunks = await _collect(generate_csv(_rows([]), tz=LONDON))

        assert len(chunks) == 1

    @pytest.mark.asyncio
    async def test_multiline_text_stays_in_one_row(self):
        petition = create_archived_petition(background="First line\nSecond line")

        body = "".join(await _collect(generate_csv(_rows([petition]), tz=LONDON)))

        rows = list(csv.reader(io.StringIO(body)))
        assert len(rows) == 2
        assert rows[1][2] == "First line\nSecond line"

    @pytest.mark.asyncio
    async def test_failure_mid_stream_reraises_after_complete_rows(self, caplog):
        received: list[str] = []
        body = generate_csv(_rows(_petitions(5), fail_after=3), tz=LONDON, chunk_rows=2)

        with pytest.raises(RuntimeError, match="connection lost"):
            async for chunk in body:
                received.append(chunk)

        rows = list(csv.reader(io.StringIO("".join(received))))
        # header plus the first full chunk; the pending third row is never sent
        assert len(rows) == 3
        assert all(len(row) == len(ARCHIVE_CSV_COLUMNS) for row in rows)
        assert "export failed after 3 rows" in caplog.text


class TestArchiveExporter:
    """Tests for the exporter wiring."""

    def test_filename_uses_configured_time_zone(self):
        exporter = ArchiveExporter(session_factory_for(StreamingSessionStub()), tz=LONDON)

        # 23:30 UTC on 31 July is already 1 August in London
        now = datetime(2026, 7, 31, 23, 30, tzinfo=UTC).astimezone(LONDON)

        assert exporter.filename(now) == "all-petitions-20260801003000.csv"

    def test_response_headers(self):
        exporter = ArchiveExporter(session_factory_for(StreamingSessionStub()), tz=LONDON)

        response = exporter.response()

        assert response.headers["content-type"] == "text/csv"
        assert "content-length" not in response.headers
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"
        assert re.fullmatch(
            r"attachment; filename=all-petitions-\d{14}\.csv",
            response.headers["content-disposition"],
        )

    @pytest.mark.asyncio
    async def test_reads_with_server_side_cursor_in_batches(self):
        session = StreamingSessionStub(_petitions(2))
        exporter = ArchiveExporter(session_factory_for(session), tz=LONDON, batch_size=250)

        petitions = [p async for p in exporter.petitions()]

        assert [p.id for p in petitions] == [100000, 100001]
        assert len(session.statements) == 1
        assert session.statements[0].get_execution_options()["yield_per"] == 250
