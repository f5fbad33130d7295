"""Archived petitions.

When a parliament is dissolved its petitions are copied into this table and
never modified again. The moderation service only reads from it.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from epets.db.models.base import (
    ArchivedPetitionState,
    Base,
    OptionalTimestampTZ,
    TimestampTZ,
)


class ArchivedPetition(Base):
    """A petition from a previous parliament.

    The id is the petition's original public id, so links such as
    /petitions/100000 keep identifying the same petition after archiving.
    """

    __tablename__ = "archived_petitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    action: Mapped[str] = mapped_column(String(255), nullable=False)
    background: Mapped[str | None] = mapped_column(String(500), nullable=True)
    additional_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    state: Mapped[ArchivedPetitionState] = mapped_column(
        Enum(
            ArchivedPetitionState,
            name="archived_petition_state",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    signature_count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    opened_at: Mapped[OptionalTimestampTZ]
    closed_at: Mapped[OptionalTimestampTZ]
    rejected_at: Mapped[OptionalTimestampTZ]
    government_response_at: Mapped[OptionalTimestampTZ]
    debate_outcome_at: Mapped[OptionalTimestampTZ]

    rejection_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rejection_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # e.g. "2010-2015"
    parliament_period: Mapped[str | None] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        Index("ix_archived_petitions_state", "state"),
        Index("ix_archived_petitions_signature_count", "signature_count"),
    )

    def to_param(self) -> str:
        """Value used in URLs for this petition."""
        return str(self.id)
