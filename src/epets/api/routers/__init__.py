"""API routers.

- archived_petitions: archive listing, search, detail and CSV export
- auth: login, logout and password change
- dashboard: the admin landing page
"""

from epets.api.routers.archived_petitions import router as archived_petitions_router
from epets.api.routers.auth import router as auth_router
from epets.api.routers.dashboard import router as dashboard_router

__all__ = [
    "archived_petitions_router",
    "auth_router",
    "dashboard_router",
]
