"""Base model definitions and common types.

This module provides:
- SQLAlchemy declarative base with naming conventions
- Common column type annotations
- Enum types used across multiple models
"""

import enum
import uuid
from datetime import datetime
from typing import Annotated

from sqlalchemy import DateTime, MetaData, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, mapped_column, registry

# Naming convention for constraints ensures consistent migration generation.
# See: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)

type_registry = registry()

# UUID primary key with server-side default generation
UUIDPrimaryKey = Annotated[
    uuid.UUID,
    mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
]

# Timestamp with timezone, defaults to now
TimestampTZ = Annotated[
    datetime,
    mapped_column(DateTime(timezone=True), server_default=text("now()")),
]

# Optional timestamp with timezone
OptionalTimestampTZ = Annotated[
    datetime | None,
    mapped_column(DateTime(timezone=True), nullable=True),
]

ShortString = Annotated[str, mapped_column(String(100))]
MediumString = Annotated[str, mapped_column(String(255))]


class Base(DeclarativeBase):
    """Declarative base for all models."""

    metadata = metadata
    registry = type_registry


# =============================================================================
# Common Enums
# =============================================================================


class AdminRole(enum.Enum):
    """Roles an admin user can hold.

    Values:
        SYSADMIN: Manages users and settings; may also moderate
        MODERATOR: Reviews and moderates petitions
    """

    SYSADMIN = "sysadmin"
    MODERATOR = "moderator"


class ArchivedPetitionState(enum.Enum):
    """Final state a petition had when its parliament was dissolved.

    States:
        OPEN: Was still collecting signatures at dissolution
        CLOSED: Finished its signature period
        REJECTED: Rejected by moderators
        HIDDEN: Rejected and hidden from the public site
    """

    OPEN = "open"
    CLOSED = "closed"
    REJECTED = "rejected"
    HIDDEN = "hidden"
