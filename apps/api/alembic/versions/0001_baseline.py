"""Baseline migration - users, workspaces, bases, dynamic tables, audit

Revision ID: 0001_baseline
Revises: 
Create Date: 2026-10-19

Creates every table of the service. Uniqueness among non-trashed rows is
enforced with partial unique indexes; soft-deletable tables carry the
is_trashed/trashed_at consistency check.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


TRASH_COLUMNS = '''
            is_trashed BOOLEAN NOT NULL DEFAULT false,
            trashed_at TIMESTAMPTZ,
'''


def _trash_check(table: str) -> str:
    return (
        f'CONSTRAINT ck_{table}_trash_state CHECK ('
        '(is_trashed AND trashed_at IS NOT NULL) OR (NOT is_trashed AND trashed_at IS NULL))'
    )


def upgrade() -> None:
    """Create all tables, indexes and constraints."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.execute('''
        CREATE TABLE users (
            id SERIAL CONSTRAINT pk_users PRIMARY KEY,
            email VARCHAR(255) NOT NULL CONSTRAINT uq_users_email UNIQUE,
            full_name VARCHAR(255) NOT NULL,
            platform_role VARCHAR(20) NOT NULL DEFAULT 'USER',
            can_create_bases BOOLEAN NOT NULL DEFAULT false,
            is_active BOOLEAN NOT NULL DEFAULT true,
            token_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    # ==========================================================================
    # Workspaces & bases
    # ==========================================================================
    op.execute(f'''
        CREATE TABLE workspaces (
            id SERIAL CONSTRAINT pk_workspaces PRIMARY KEY,
            owner_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name VARCHAR(255) NOT NULL,
            {TRASH_COLUMNS}
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            {_trash_check('workspaces')}
        )
    ''')
    op.execute('CREATE INDEX ix_workspaces_owner_id ON workspaces(owner_id)')
    op.execute('''
        CREATE UNIQUE INDEX uq_workspaces_owner_name_active
        ON workspaces(owner_id, name) WHERE is_trashed = false
    ''')

    op.execute(f'''
        CREATE TABLE bases (
            id SERIAL CONSTRAINT pk_bases PRIMARY KEY,
            owner_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            workspace_id INTEGER REFERENCES workspaces(id) ON DELETE CASCADE,
            name VARCHAR(255) NOT NULL,
            visibility VARCHAR(10) NOT NULL DEFAULT 'PRIVATE',
            {TRASH_COLUMNS}
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            {_trash_check('bases')}
        )
    ''')
    op.execute('CREATE INDEX ix_bases_owner_id ON bases(owner_id)')
    op.execute('CREATE INDEX ix_bases_workspace_id ON bases(workspace_id)')
    op.execute('''
        CREATE UNIQUE INDEX uq_bases_owner_name_active
        ON bases(owner_id, name) WHERE is_trashed = false
    ''')

    op.execute('''
        CREATE TABLE base_members (
            id SERIAL CONSTRAINT pk_base_members PRIMARY KEY,
            base_id INTEGER NOT NULL REFERENCES bases(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            role VARCHAR(20) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_base_members_base_user UNIQUE (base_id, user_id)
        )
    ''')
    op.execute('CREATE INDEX ix_base_members_user_id ON base_members(user_id)')

    # ==========================================================================
    # Schema: tables, fields, options
    # ==========================================================================
    op.execute(f'''
        CREATE TABLE table_defs (
            id SERIAL CONSTRAINT pk_table_defs PRIMARY KEY,
            base_id INTEGER NOT NULL REFERENCES bases(id) ON DELETE CASCADE,
            name VARCHAR(255) NOT NULL,
            position INTEGER NOT NULL DEFAULT 1,
            {TRASH_COLUMNS}
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            {_trash_check('table_defs')}
        )
    ''')
    op.execute('CREATE INDEX ix_table_defs_base_id ON table_defs(base_id)')
    op.execute('''
        CREATE UNIQUE INDEX uq_table_defs_base_name_active
        ON table_defs(base_id, name) WHERE is_trashed = false
    ''')

    op.execute(f'''
        CREATE TABLE fields (
            id SERIAL CONSTRAINT pk_fields PRIMARY KEY,
            table_id INTEGER NOT NULL REFERENCES table_defs(id) ON DELETE CASCADE,
            name VARCHAR(255) NOT NULL,
            type VARCHAR(20) NOT NULL,
            position INTEGER NOT NULL DEFAULT 1,
            config JSONB,
            created_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            updated_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            {TRASH_COLUMNS}
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            {_trash_check('fields')}
        )
    ''')
    op.execute('CREATE INDEX ix_fields_table_id ON fields(table_id)')
    op.execute('''
        CREATE UNIQUE INDEX uq_fields_table_lower_name_active
        ON fields(table_id, lower(name)) WHERE is_trashed = false
    ''')

    op.execute(f'''
        CREATE TABLE select_options (
            id SERIAL CONSTRAINT pk_select_options PRIMARY KEY,
            field_id INTEGER NOT NULL REFERENCES fields(id) ON DELETE CASCADE,
            label VARCHAR(255) NOT NULL,
            color VARCHAR(32),
            position INTEGER NOT NULL DEFAULT 1,
            {TRASH_COLUMNS}
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            {_trash_check('select_options')}
        )
    ''')
    op.execute('CREATE INDEX ix_select_options_field_id ON select_options(field_id)')
    op.execute('''
        CREATE UNIQUE INDEX uq_select_options_field_lower_label_active
        ON select_options(field_id, lower(label)) WHERE is_trashed = false
    ''')

    # ==========================================================================
    # Data: records, cells, comments
    # ==========================================================================
    op.execute(f'''
        CREATE TABLE record_rows (
            id SERIAL CONSTRAINT pk_record_rows PRIMARY KEY,
            table_id INTEGER NOT NULL REFERENCES table_defs(id) ON DELETE CASCADE,
            created_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            updated_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            {TRASH_COLUMNS}
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            {_trash_check('record_rows')}
        )
    ''')
    op.execute('CREATE INDEX ix_record_rows_table_id ON record_rows(table_id)')

    op.execute('''
        CREATE TABLE record_cells (
            id SERIAL CONSTRAINT pk_record_cells PRIMARY KEY,
            record_id INTEGER NOT NULL REFERENCES record_rows(id) ON DELETE CASCADE,
            field_id INTEGER NOT NULL REFERENCES fields(id) ON DELETE CASCADE,
            string_value TEXT,
            number_value NUMERIC(24, 6),
            bool_value BOOLEAN,
            date_value DATE,
            datetime_value TIMESTAMPTZ,
            time_minutes INTEGER,
            select_option_id INTEGER REFERENCES select_options(id) ON DELETE SET NULL,
            created_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            updated_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_record_cells_record_field UNIQUE (record_id, field_id)
        )
    ''')
    op.execute('CREATE INDEX idx_record_cells_field ON record_cells(field_id)')

    op.execute('''
        CREATE TABLE record_cell_options (
            id SERIAL CONSTRAINT pk_record_cell_options PRIMARY KEY,
            record_cell_id INTEGER NOT NULL REFERENCES record_cells(id) ON DELETE CASCADE,
            option_id INTEGER NOT NULL REFERENCES select_options(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_record_cell_options_cell_option UNIQUE (record_cell_id, option_id)
        )
    ''')
    op.execute('CREATE INDEX ix_record_cell_options_option_id ON record_cell_options(option_id)')

    op.execute(f'''
        CREATE TABLE comments (
            id SERIAL CONSTRAINT pk_comments PRIMARY KEY,
            record_id INTEGER NOT NULL REFERENCES record_rows(id) ON DELETE CASCADE,
            body TEXT NOT NULL,
            created_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            updated_by_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            {TRASH_COLUMNS}
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            {_trash_check('comments')}
        )
    ''')
    op.execute('CREATE INDEX ix_comments_record_id ON comments(record_id)')

    # ==========================================================================
    # Audit
    # ==========================================================================
    op.execute('''
        CREATE TABLE audit_events (
            id BIGSERIAL CONSTRAINT pk_audit_events PRIMARY KEY,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            action VARCHAR(40) NOT NULL,
            summary VARCHAR(500) NOT NULL,
            details JSONB,
            ip VARCHAR(45),
            base_id INTEGER NOT NULL REFERENCES bases(id) ON DELETE CASCADE,
            table_id INTEGER REFERENCES table_defs(id) ON DELETE SET NULL,
            record_id INTEGER REFERENCES record_rows(id) ON DELETE SET NULL,
            field_id INTEGER REFERENCES fields(id) ON DELETE SET NULL,
            user_id INTEGER REFERENCES users(id) ON DELETE SET NULL
        )
    ''')
    op.execute('CREATE INDEX idx_audit_events_base_created ON audit_events(base_id, created_at)')


def downgrade() -> None:
    """Drop all tables (reverse dependency order)."""
    for table in (
        'audit_events',
        'comments',
        'record_cell_options',
        'record_cells',
        'record_rows',
        'select_options',
        'fields',
        'table_defs',
        'base_members',
        'bases',
        'workspaces',
        'users',
    ):
        op.execute(f'DROP TABLE IF EXISTS {table} CASCADE')
