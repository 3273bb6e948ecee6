from datetime import datetime

from sqlalchemy import DateTime, MetaData, false
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# isTrashed == (trashedAt != null), enforced by every soft-deletable table.
TRASH_STATE_CHECK = (
    "(is_trashed AND trashed_at IS NOT NULL) OR (NOT is_trashed AND trashed_at IS NULL)"
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class TrashMixin:
    """Soft-delete columns shared by every entity that can go to the trash."""

    is_trashed: Mapped[bool] = mapped_column(
        default=False,
        server_default=false(),
        nullable=False,
    )
    trashed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def mark_trashed(self, now: datetime) -> None:
        self.is_trashed = True
        self.trashed_at = now

    def mark_active(self) -> None:
        self.is_trashed = False
        self.trashed_at = None
