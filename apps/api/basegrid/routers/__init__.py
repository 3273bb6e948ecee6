"""API routers."""

from basegrid.routers.audit import router as audit_router
from basegrid.routers.bases import router as bases_router
from basegrid.routers.comments import router as comments_router
from basegrid.routers.fields import router as fields_router
from basegrid.routers.internal import router as internal_router
from basegrid.routers.me import router as me_router
from basegrid.routers.members import router as members_router
from basegrid.routers.records import router as records_router
from basegrid.routers.tables import router as tables_router
from basegrid.routers.trash import router as trash_router
from basegrid.routers.users import router as users_router
from basegrid.routers.workspaces import router as workspaces_router

__all__ = [
    "audit_router",
    "bases_router",
    "comments_router",
    "fields_router",
    "internal_router",
    "me_router",
    "members_router",
    "records_router",
    "tables_router",
    "trash_router",
    "users_router",
    "workspaces_router",
]
