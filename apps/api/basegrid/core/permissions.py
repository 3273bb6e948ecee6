"""Action registry and authorization contexts.

Authorization requests come in two shapes:
- PermissionContext: scoped to one base (ownership, visibility, membership)
- PlatformContext: platform-wide actions such as creating a base

Precedence: SYSADMIN > platform grants > owner > base role
"""

from dataclasses import dataclass
from enum import Enum

from basegrid.db.enums import BASE_ROLE_RANK, BaseRole, BaseVisibility, PlatformRole


class Action(str, Enum):
    """Every action the authorization engine knows about."""
    # Platform scoped
    BASES_CREATE = "bases:create"
    PLATFORM_USERS_MANAGE = "platform:users:manage"

    # Base scoped
    BASE_VIEW = "base:view"
    BASE_DELETE = "base:delete"
    BASE_VISIBILITY = "base:visibility"
    SCHEMA_MANAGE = "schema:manage"
    MEMBERS_MANAGE = "members:manage"
    RECORDS_READ = "records:read"
    RECORDS_CREATE = "records:create"
    RECORDS_UPDATE = "records:update"
    RECORDS_DELETE = "records:delete"
    COMMENTS_CREATE = "comments:create"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


PLATFORM_ACTIONS = frozenset({Action.BASES_CREATE, Action.PLATFORM_USERS_MANAGE})

# Administrative actions reserved to the owner (and SYSADMIN).
OWNER_ACTIONS = frozenset({
    Action.SCHEMA_MANAGE,
    Action.MEMBERS_MANAGE,
    Action.BASE_DELETE,
    Action.BASE_VISIBILITY,
})

# Minimum effective role for role-gated actions.
MIN_ROLE: dict[Action, BaseRole] = {
    Action.RECORDS_READ: BaseRole.VIEWER,
    Action.COMMENTS_CREATE: BaseRole.COMMENTER,
    Action.RECORDS_CREATE: BaseRole.EDITOR,
    Action.RECORDS_UPDATE: BaseRole.EDITOR,
    Action.RECORDS_DELETE: BaseRole.EDITOR,
}

FORBIDDEN_MESSAGES: dict[Action, str] = {
    Action.BASES_CREATE: "You are not allowed to create bases",
    Action.PLATFORM_USERS_MANAGE: "Only a system administrator can manage users",
    Action.BASE_VIEW: "You do not have access to this base",
    Action.BASE_DELETE: "Only the owner can delete this base",
    Action.BASE_VISIBILITY: "Only the owner can change the visibility of this base",
    Action.SCHEMA_MANAGE: "Only the owner can change the schema of this base",
    Action.MEMBERS_MANAGE: "Only the owner can manage members of this base",
    Action.RECORDS_READ: "You cannot read records in this base",
    Action.RECORDS_CREATE: "You need editor access to create records",
    Action.RECORDS_UPDATE: "You need editor access to edit records",
    Action.RECORDS_DELETE: "You need editor access to delete records",
    Action.COMMENTS_CREATE: "You need commenter access to comment",
}


@dataclass(frozen=True)
class PlatformContext:
    """Actor summary for actions that are not tied to a base."""
    user_id: int
    platform_role: PlatformRole
    can_create_bases: bool = False


@dataclass(frozen=True)
class PermissionContext:
    """Actor summary resolved against one base."""
    user_id: int
    platform_role: PlatformRole
    can_create_bases: bool
    base_id: int
    base_visibility: BaseVisibility
    is_owner: bool
    membership_role: BaseRole | None = None


AuthContext = PermissionContext | PlatformContext


def is_sysadmin(ctx: AuthContext) -> bool:
    return ctx.platform_role == PlatformRole.SYSADMIN


def is_role_at_least(role: BaseRole, minimum: BaseRole) -> bool:
    return BASE_ROLE_RANK[role] >= BASE_ROLE_RANK[minimum]


def resolve_effective_base_role(ctx: PermissionContext) -> BaseRole | None:
    """
    Effective role on the context's base.

    SYSADMIN and owner get the ceiling role (EDITOR). Otherwise the explicit
    membership wins, then PUBLIC visibility grants VIEWER. None means no access.
    """
    if is_sysadmin(ctx) or ctx.is_owner:
        return BaseRole.EDITOR
    if ctx.membership_role is not None:
        return ctx.membership_role
    if ctx.base_visibility == BaseVisibility.PUBLIC:
        return BaseRole.VIEWER
    return None


def forbidden_message(action: Action | str) -> str:
    try:
        return FORBIDDEN_MESSAGES[Action(action)]
    except ValueError:
        return "Forbidden"
