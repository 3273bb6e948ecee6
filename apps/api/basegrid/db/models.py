"""SQLAlchemy ORM models for users, workspaces, bases and their dynamic tables."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON, BigInteger, CheckConstraint, Date, ForeignKey, Index, Integer,
    Numeric, String, Text, UniqueConstraint, false, func, true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from basegrid.db.base import TRASH_STATE_CHECK, Base, TrashMixin
from basegrid.db.enums import BaseVisibility, PlatformRole
from basegrid.utils.clock import utcnow


JSONType = JSON().with_variant(JSONB(), "postgresql")
# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


def _created_at() -> Mapped[datetime]:
    return mapped_column(default=utcnow, server_default=func.now(), nullable=False)


def _updated_at() -> Mapped[datetime]:
    return mapped_column(
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


# =============================================================================
# Users
# =============================================================================

class User(Base):
    """
    Platform account.

    Authentication is token based; password storage lives outside this service.
    `can_create_bases` lets a regular USER create bases without being SYSADMIN.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    platform_role: Mapped[str] = mapped_column(
        String(20),
        default=PlatformRole.USER.value,
        server_default=PlatformRole.USER.value,
        nullable=False,
    )
    can_create_bases: Mapped[bool] = mapped_column(
        default=False, server_default=false(), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        default=True, server_default=true(), nullable=False
    )
    token_version: Mapped[int] = mapped_column(
        Integer, default=1, server_default="1", nullable=False
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    @property
    def is_sysadmin(self) -> bool:
        return self.platform_role == PlatformRole.SYSADMIN.value


# =============================================================================
# Workspaces & Bases
# =============================================================================

class Workspace(TrashMixin, Base):
    """
    Owned container of bases.

    Name is unique per owner among non-trashed workspaces.
    Trashing a workspace cascades to its bases and their tables.
    """
    __tablename__ = "workspaces"
    __table_args__ = (
        CheckConstraint(TRASH_STATE_CHECK, name="trash_state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    owner: Mapped["User"] = relationship()


class BaseDef(TrashMixin, Base):
    """
    A logical database ("base").

    The owner has full administrative capability regardless of membership rows.
    Name is unique per owner among non-trashed bases.
    """
    __tablename__ = "bases"
    __table_args__ = (
        CheckConstraint(TRASH_STATE_CHECK, name="trash_state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    workspace_id: Mapped[int | None] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    visibility: Mapped[str] = mapped_column(
        String(10),
        default=BaseVisibility.PRIVATE.value,
        server_default=BaseVisibility.PRIVATE.value,
        nullable=False,
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    owner: Mapped["User"] = relationship()
    workspace: Mapped["Workspace | None"] = relationship()


class BaseMember(Base):
    """Delegated access to a base. Never created for the base owner."""
    __tablename__ = "base_members"
    __table_args__ = (
        UniqueConstraint("base_id", "user_id", name="uq_base_members_base_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    base_id: Mapped[int] = mapped_column(
        ForeignKey("bases.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # BaseRole
    created_at: Mapped[datetime] = _created_at()

    user: Mapped["User"] = relationship()


# =============================================================================
# Schema: tables, fields, options
# =============================================================================

class TableDef(TrashMixin, Base):
    """
    A table inside a base.

    Active tables of a base keep dense 1..N positions.
    """
    __tablename__ = "table_defs"
    __table_args__ = (
        CheckConstraint(TRASH_STATE_CHECK, name="trash_state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    base_id: Mapped[int] = mapped_column(
        ForeignKey("bases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    base: Mapped["BaseDef"] = relationship()


class Field(TrashMixin, Base):
    """
    A typed column of a table.

    The type may not change while any cell of the field holds data.
    Name is unique per table (case-insensitive) among non-trashed fields.
    """
    __tablename__ = "fields"
    __table_args__ = (
        CheckConstraint(TRASH_STATE_CHECK, name="trash_state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    table_id: Mapped[int] = mapped_column(
        ForeignKey("table_defs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # FieldType
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    config: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    table: Mapped["TableDef"] = relationship()


class SelectOption(TrashMixin, Base):
    """Choice of a SINGLE_SELECT / MULTI_SELECT field."""
    __tablename__ = "select_options"
    __table_args__ = (
        CheckConstraint(TRASH_STATE_CHECK, name="trash_state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    field_id: Mapped[int] = mapped_column(
        ForeignKey("fields.id", ondelete="CASCADE"), nullable=False, index=True
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    field: Mapped["Field"] = relationship()


# =============================================================================
# Data: records, cells, comments
# =============================================================================

class RecordRow(TrashMixin, Base):
    """A row of a table. Values live in RecordCell, one per field with data."""
    __tablename__ = "record_rows"
    __table_args__ = (
        CheckConstraint(TRASH_STATE_CHECK, name="trash_state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    table_id: Mapped[int] = mapped_column(
        ForeignKey("table_defs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    table: Mapped["TableDef"] = relationship()


class RecordCell(Base):
    """
    One (record, field) value.

    Exactly one typed slot is set, chosen by the field's type; every other
    slot is null. MULTI_SELECT keeps its choices in RecordCellOption instead.
    """
    __tablename__ = "record_cells"
    __table_args__ = (
        UniqueConstraint("record_id", "field_id", name="uq_record_cells_record_field"),
        Index("idx_record_cells_field", "field_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("record_rows.id", ondelete="CASCADE"), nullable=False
    )
    field_id: Mapped[int] = mapped_column(
        ForeignKey("fields.id", ondelete="CASCADE"), nullable=False
    )

    # Typed slots
    string_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    number_value: Mapped[Decimal | None] = mapped_column(Numeric(24, 6), nullable=True)
    bool_value: Mapped[bool | None] = mapped_column(nullable=True)
    date_value: Mapped[date | None] = mapped_column(Date, nullable=True)
    datetime_value: Mapped[datetime | None] = mapped_column(nullable=True)
    time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    select_option_id: Mapped[int | None] = mapped_column(
        ForeignKey("select_options.id", ondelete="SET NULL"), nullable=True
    )

    created_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    options: Mapped[list["RecordCellOption"]] = relationship(
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RecordCellOption.option_id",
    )


class RecordCellOption(Base):
    """One selected option of a MULTI_SELECT cell."""
    __tablename__ = "record_cell_options"
    __table_args__ = (
        UniqueConstraint("record_cell_id", "option_id", name="uq_record_cell_options_cell_option"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    record_cell_id: Mapped[int] = mapped_column(
        ForeignKey("record_cells.id", ondelete="CASCADE"), nullable=False
    )
    option_id: Mapped[int] = mapped_column(
        ForeignKey("select_options.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = _created_at()


class Comment(TrashMixin, Base):
    """Free-text comment on a record."""
    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint(TRASH_STATE_CHECK, name="trash_state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("record_rows.id", ondelete="CASCADE"), nullable=False, index=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    record: Mapped["RecordRow"] = relationship()
    author: Mapped["User | None"] = relationship(foreign_keys=[created_by_id])


# =============================================================================
# Audit
# =============================================================================

class AuditEvent(Base):
    """
    Append-only audit log of a base.

    Rows are never updated. `ip` is stored for investigations but never
    serialized to clients.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        Index("idx_audit_events_base_created", "base_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    created_at: Mapped[datetime] = _created_at()
    action: Mapped[str] = mapped_column(String(40), nullable=False)  # AuditAction
    summary: Mapped[str] = mapped_column(String(500), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    ip: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 max length

    base_id: Mapped[int] = mapped_column(
        ForeignKey("bases.id", ondelete="CASCADE"), nullable=False
    )
    table_id: Mapped[int | None] = mapped_column(
        ForeignKey("table_defs.id", ondelete="SET NULL"), nullable=True
    )
    record_id: Mapped[int | None] = mapped_column(
        ForeignKey("record_rows.id", ondelete="SET NULL"), nullable=True
    )
    field_id: Mapped[int | None] = mapped_column(
        ForeignKey("fields.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    user: Mapped["User | None"] = relationship()
    table: Mapped["TableDef | None"] = relationship()
    field: Mapped["Field | None"] = relationship()


# =============================================================================
# Partial unique indexes (active rows only)
# =============================================================================

Index(
    "uq_workspaces_owner_name_active",
    Workspace.owner_id,
    Workspace.name,
    unique=True,
    sqlite_where=Workspace.is_trashed.is_(False),
    postgresql_where=Workspace.is_trashed.is_(False),
)
Index(
    "uq_bases_owner_name_active",
    BaseDef.owner_id,
    BaseDef.name,
    unique=True,
    sqlite_where=BaseDef.is_trashed.is_(False),
    postgresql_where=BaseDef.is_trashed.is_(False),
)
Index(
    "uq_table_defs_base_name_active",
    TableDef.base_id,
    TableDef.name,
    unique=True,
    sqlite_where=TableDef.is_trashed.is_(False),
    postgresql_where=TableDef.is_trashed.is_(False),
)
Index(
    "uq_fields_table_lower_name_active",
    Field.table_id,
    func.lower(Field.name),
    unique=True,
    sqlite_where=Field.is_trashed.is_(False),
    postgresql_where=Field.is_trashed.is_(False),
)
Index(
    "uq_select_options_field_lower_label_active",
    SelectOption.field_id,
    func.lower(SelectOption.label),
    unique=True,
    sqlite_where=SelectOption.is_trashed.is_(False),
    postgresql_where=SelectOption.is_trashed.is_(False),
)
