"""Enum definitions for application constants."""

from enum import Enum


class PlatformRole(str, Enum):
    """
    Platform-wide role.

    - USER: regular account, access comes from ownership and base membership
    - SYSADMIN: platform administrator, allowed every action on every base
    """
    USER = "USER"
    SYSADMIN = "SYSADMIN"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class BaseRole(str, Enum):
    """
    Delegated role on a single base, ordered least to most capable.

    - VIEWER: read records
    - COMMENTER: read records and comment
    - EDITOR: create, update and delete records
    """
    VIEWER = "VIEWER"
    COMMENTER = "COMMENTER"
    EDITOR = "EDITOR"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


BASE_ROLE_RANK: dict[BaseRole, int] = {
    BaseRole.VIEWER: 1,
    BaseRole.COMMENTER: 2,
    BaseRole.EDITOR: 3,
}


class BaseVisibility(str, Enum):
    """PUBLIC bases are readable by every authenticated user."""
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class FieldType(str, Enum):
    """Value kind stored by a field's cells."""
    TEXT = "TEXT"
    LONG_TEXT = "LONG_TEXT"
    NUMBER = "NUMBER"
    CURRENCY = "CURRENCY"
    CHECKBOX = "CHECKBOX"
    DATE = "DATE"
    DATETIME = "DATETIME"
    TIME = "TIME"
    SINGLE_SELECT = "SINGLE_SELECT"
    MULTI_SELECT = "MULTI_SELECT"

    @property
    def is_select(self) -> bool:
        return self in SELECT_FIELD_TYPES

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


SELECT_FIELD_TYPES = frozenset({FieldType.SINGLE_SELECT, FieldType.MULTI_SELECT})


class TrashEntity(str, Enum):
    """Entity types handled by the trash lifecycle."""
    WORKSPACE = "workspace"
    BASE = "base"
    TABLE = "table"
    FIELD = "field"
    OPTION = "option"
    RECORD = "record"
    COMMENT = "comment"


# Hard-delete order for scheduled purges: descendants before ancestors.
PURGE_ORDER: tuple[TrashEntity, ...] = (
    TrashEntity.COMMENT,
    TrashEntity.OPTION,
    TrashEntity.RECORD,
    TrashEntity.FIELD,
    TrashEntity.TABLE,
    TrashEntity.BASE,
    TrashEntity.WORKSPACE,
)


class AuditAction(str, Enum):
    """Types of events recorded in a base's audit log."""
    # Base
    BASE_CREATED = "BASE_CREATED"
    BASE_RENAMED = "BASE_RENAMED"
    BASE_VISIBILITY_CHANGED = "BASE_VISIBILITY_CHANGED"
    BASE_MOVED = "BASE_MOVED"
    BASE_TRASHED = "BASE_TRASHED"
    BASE_RESTORED = "BASE_RESTORED"

    # Members
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_ROLE_CHANGED = "MEMBER_ROLE_CHANGED"
    MEMBER_REMOVED = "MEMBER_REMOVED"

    # Tables
    TABLE_CREATED = "TABLE_CREATED"
    TABLE_RENAMED = "TABLE_RENAMED"
    TABLE_REORDERED = "TABLE_REORDERED"
    TABLE_TRASHED = "TABLE_TRASHED"
    TABLE_RESTORED = "TABLE_RESTORED"
    TABLE_DELETED = "TABLE_DELETED"

    # Fields and options
    FIELD_CREATED = "FIELD_CREATED"
    FIELD_UPDATED = "FIELD_UPDATED"
    FIELD_TYPE_CHANGED = "FIELD_TYPE_CHANGED"
    FIELD_TRASHED = "FIELD_TRASHED"
    FIELD_RESTORED = "FIELD_RESTORED"
    FIELD_DELETED = "FIELD_DELETED"
    OPTION_CREATED = "OPTION_CREATED"
    OPTION_UPDATED = "OPTION_UPDATED"
    OPTION_TRASHED = "OPTION_TRASHED"
    OPTION_RESTORED = "OPTION_RESTORED"
    OPTION_DELETED = "OPTION_DELETED"

    # Records and cells
    RECORD_CREATED = "RECORD_CREATED"
    RECORD_UPDATED = "RECORD_UPDATED"
    RECORD_TRASHED = "RECORD_TRASHED"
    RECORD_RESTORED = "RECORD_RESTORED"
    RECORD_DELETED = "RECORD_DELETED"
    CELL_UPDATED = "CELL_UPDATED"

    # Comments
    COMMENT_CREATED = "COMMENT_CREATED"
    COMMENT_EDITED = "COMMENT_EDITED"
    COMMENT_TRASHED = "COMMENT_TRASHED"
    COMMENT_RESTORED = "COMMENT_RESTORED"
    COMMENT_DELETED = "COMMENT_DELETED"
