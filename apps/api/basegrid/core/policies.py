"""Authorization decisions.

`can` is a pure function of (context, action): no I/O, never raises.
"""

from basegrid.core.permissions import (
    MIN_ROLE,
    OWNER_ACTIONS,
    Action,
    AuthContext,
    PermissionContext,
    is_role_at_least,
    is_sysadmin,
    resolve_effective_base_role,
)
from basegrid.db.enums import BaseVisibility


def _parse_action(action: Action | str) -> Action | None:
    if isinstance(action, Action):
        return action
    if isinstance(action, str) and Action.has_value(action):
        return Action(action)
    return None


def can(ctx: AuthContext, action: Action | str) -> bool:
    """Return True if the actor described by ``ctx`` may perform ``action``."""
    parsed = _parse_action(action)
    if parsed is None:
        return False

    if is_sysadmin(ctx):
        return True

    if parsed == Action.BASES_CREATE:
        return ctx.can_create_bases is True
    if parsed == Action.PLATFORM_USERS_MANAGE:
        return False

    # Everything below needs a base
    if not isinstance(ctx, PermissionContext):
        return False

    if ctx.is_owner and parsed in OWNER_ACTIONS:
        return True

    if parsed == Action.BASE_VIEW:
        if ctx.base_visibility == BaseVisibility.PUBLIC:
            return True
        return ctx.is_owner or ctx.membership_role is not None

    role = resolve_effective_base_role(ctx)
    if role is None:
        return False

    if parsed in OWNER_ACTIONS:
        return False

    minimum = MIN_ROLE.get(parsed)
    if minimum is None:
        return False
    return is_role_at_least(role, minimum)
