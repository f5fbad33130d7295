"""Service layer.

- accounts: sign-in checks and password changes
- archive: archived petition lookup, search and iteration
- csv_export: streamed CSV export of the archive
- passwords: password hashing
- session: database-backed admin sessions
"""

from epets.services.accounts import (
    AccountError,
    AccountLockedError,
    AccountService,
    AuthenticationFailedError,
    PasswordChangeError,
)
from epets.services.archive import (
    ArchivedPetitionService,
    ArchiveQuery,
    Page,
    parse_petition_id,
)
from epets.services.csv_export import ArchiveExporter, generate_csv
from epets.services.session import DeviceInfo, SessionService, SessionToken

__all__ = [
    "AccountError",
    "AccountLockedError",
    "AccountService",
    "ArchiveExporter",
    "ArchiveQuery",
    "ArchivedPetitionService",
    "AuthenticationFailedError",
    "DeviceInfo",
    "Page",
    "PasswordChangeError",
    "SessionService",
    "SessionToken",
    "generate_csv",
    "parse_petition_id",
]
