"""SQLAlchemy ORM models.

- base: Common metadata, type annotations and enums
- auth: Admin user accounts
- session: Admin sessions
- archive: Archived petitions
"""

from epets.db.models.archive import ArchivedPetition
from epets.db.models.auth import AdminUser
from epets.db.models.base import AdminRole, ArchivedPetitionState, Base, metadata
from epets.db.models.session import AdminSession

__all__ = [
    "AdminRole",
    "AdminSession",
    "AdminUser",
    "ArchivedPetition",
    "ArchivedPetitionState",
    "Base",
    "metadata",
]
