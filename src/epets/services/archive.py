"""Archived petition lookup and search.

The archive is read-only: nothing in this module writes to it.

Search semantics:
- A query made only of digits that names an existing petition resolves
  to that petition (the listing redirects straight to it).
- Otherwise the stripped query is matched case-insensitively as a
  substring of the action, background and additional details.
- An optional state narrows the results to one final state.
- Results are ordered newest petition first (id descending).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from sqlalchemy import Select, func, or_, select

from epets.db.models.archive import ArchivedPetition
from epets.db.models.base import ArchivedPetitionState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Largest value of a PostgreSQL integer column
MAX_PETITION_ID = 2**31 - 1

# Keeps (page - 1) * per_page inside a bigint OFFSET for any configured page size
MAX_PAGE = 2**31 - 1

DEFAULT_PER_PAGE = 50
DEFAULT_BATCH_SIZE = 500


def parse_petition_id(value: str | int | None) -> int | None:
    """Interpret a value as a petition id.

    Args:
        value: Raw id from a URL or search box.

    Returns:
        The id, or None if the value is not a plain positive integer that
        fits the id column.
    """
    if value is None:
        return None
    if isinstance(value, int):
        petition_id = value
    else:
        value = value.strip()
        if not value.isascii() or not value.isdigit():
            return None
        petition_id = int(value)
    if petition_id < 1 or petition_id > MAX_PETITION_ID:
        return None
    return petition_id


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return (
        value.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )


@dataclass(frozen=True, slots=True)
class ArchiveQuery:
    """Normalised listing parameters.

    Attributes:
        q: Stripped search text, None when blank
        state: State filter, None for all states
        page: 1-based page number
    """

    q: str | None = None
    state: ArchivedPetitionState | None = None
    page: int = 1

    @classmethod
    def from_params(
        cls,
        q: str | None = None,
        state: str | None = None,
        page: int | str | None = None,
    ) -> ArchiveQuery:
        """Build a query from raw request parameters.

        Blank text becomes None, unknown states are ignored and page
        numbers below 1 (or unparseable) become 1. Pages above MAX_PAGE
        become MAX_PAGE.
        """
        text = q.strip() if q else None
        try:
            parsed_state = ArchivedPetitionState(state) if state else None
        except ValueError:
            logger.debug("Ignoring unknown archived petition state filter: %s", state)
            parsed_state = None
        try:
            page_number = min(max(int(page), 1), MAX_PAGE) if page is not None else 1
        except (TypeError, ValueError):
            page_number = 1
        return cls(q=text or None, state=parsed_state, page=page_number)

    @property
    def is_blank(self) -> bool:
        """True when no filter is applied."""
        return self.q is None and self.state is None


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One page of results."""

    items: list[T] = field(default_factory=list)
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE
    total: int = 0

    @property
    def total_pages(self) -> int:
        return max(math.ceil(self.total / self.per_page), 1)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def previous_page(self) -> int | None:
        return self.page - 1 if self.has_previous else None

    @property
    def next_page(self) -> int | None:
        return self.page + 1 if self.has_next else None


def build_search_statement(query: ArchiveQuery) -> Select:
    """Build the filtered (unordered, unpaginated) archive query."""
    stmt = select(ArchivedPetition)

    if query.q is not None:
        pattern = f"%{escape_like(query.q)}%"
        stmt = stmt.where(
            or_(
                ArchivedPetition.action.ilike(pattern, escape="\\"),
                ArchivedPetition.background.ilike(pattern, escape="\\"),
                ArchivedPetition.additional_details.ilike(pattern, escape="\\"),
            )
        )

    if query.state is not None:
        stmt = stmt.where(ArchivedPetition.state == query.state)

    return stmt


class ArchivedPetitionService:
    """Read access to the petition archive.

    Example:
        service = ArchivedPetitionService(db, per_page=50)

        petition = await service.find("100000")
        page = await service.search(ArchiveQuery.from_params(q="nhs"))
    """

    def __init__(self, db_session: AsyncSession, *, per_page: int = DEFAULT_PER_PAGE) -> None:
        """Initialize the service.

        Args:
            db_session: SQLAlchemy async session for database operations.
            per_page: Listing page size.
        """
        self._db = db_session
        self._per_page = per_page

    @property
    def per_page(self) -> int:
        return self._per_page

    async def find(self, petition_id: str | int) -> ArchivedPetition | None:
        """Look up one archived petition.

        Args:
            petition_id: The id as given in the URL.

        Returns:
            The petition, or None if the id is malformed or unknown.
        """
        parsed = parse_petition_id(petition_id)
        if parsed is None:
            return None
        return await self._db.get(ArchivedPetition, parsed)

    async def resolve_id(self, q: str | None) -> int | None:
        """Resolve a search query to a petition id.

        Args:
            q: The raw search text.

        Returns:
            The id if q is a plain integer naming an archived petition.
        """
        parsed = parse_petition_id(q)
        if parsed is None:
            return None
        result = await self._db.execute(
            select(ArchivedPetition.id).where(ArchivedPetition.id == parsed)
        )
        return result.scalar_one_or_none()

    async def search(self, query: ArchiveQuery) -> Page[ArchivedPetition]:
        """Return one page of petitions matching the query."""
        stmt = build_search_statement(query)

        total_result = await self._db.execute(
            select(func.count()).select_from(stmt.subquery())
        )
        total = total_result.scalar_one()

        result = await self._db.execute(
            stmt.order_by(ArchivedPetition.id.desc())
            .offset((query.page - 1) * self._per_page)
            .limit(self._per_page)
        )

        return Page(
            items=list(result.scalars().all()),
            page=query.page,
            per_page=self._per_page,
            total=total,
        )

    async def iter_all(
        self, *, batch_size: int = DEFAULT_BATCH_SIZE
    ) -> AsyncIterator[ArchivedPetition]:
        """Iterate over the whole archive in id order.

        Rows are fetched with a server-side cursor, batch_size at a time,
        so memory use does not grow with the size of the archive.
        """
        result = await self._db.stream_scalars(
            select(ArchivedPetition)
            .order_by(ArchivedPetition.id.asc())
            .execution_options(yield_per=batch_size)
        )
        async for petition in result:
            yield petition
