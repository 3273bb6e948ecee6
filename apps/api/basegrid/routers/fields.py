"""Field and select-option endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from basegrid.core.deps import (
    get_client_ip,
    get_current_session,
    get_db,
    get_direct_db,
    require_base_action,
    require_csrf_header,
)
from basegrid.core.permissions import Action, PermissionContext
from basegrid.schemas.auth import UserSession
from basegrid.schemas.field import (
    FieldCreate,
    FieldRead,
    FieldTypeChange,
    FieldUpdate,
    OptionInput,
    OptionRead,
    OptionUpdate,
)
from basegrid.schemas.table import ReorderRequest
from basegrid.services import field_service, table_service

router = APIRouter(prefix="/bases/{base_id}/tables/{table_id}/fields", tags=["fields"])


def _option_specs(options: list[OptionInput] | None) -> list[dict] | None:
    if options is None:
        return None
    return [option.model_dump() for option in options]


# =============================================================================
# Fields
# =============================================================================

@router.get("", response_model=list[FieldRead])
def list_fields(
    base_id: int,
    table_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
):
    table_service.get_table(db, base_id, table_id)
    return field_service.list_fields(db, table_id)


@router.post(
    "",
    response_model=FieldRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_field(
    base_id: int,
    table_id: int,
    data: FieldCreate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return field_service.create_field(
        db,
        base_id,
        table_id,
        session,
        name=data.name,
        field_type=data.type,
        config=data.config,
        options=_option_specs(data.options),
        ip=ip,
    )


@router.put(
    "/order",
    response_model=list[FieldRead],
    dependencies=[Depends(require_csrf_header)],
)
def reorder_fields(
    base_id: int,
    table_id: int,
    data: ReorderRequest,
    db: Session = Depends(get_direct_db),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
):
    return field_service.reorder_fields(db, base_id, table_id, data.ids)


@router.get("/{field_id}", response_model=FieldRead)
def get_field(
    base_id: int,
    table_id: int,
    field_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
):
    table_service.get_table(db, base_id, table_id)
    return field_service.get_field(db, table_id, field_id)


@router.patch(
    "/{field_id}",
    response_model=FieldRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_field(
    base_id: int,
    table_id: int,
    field_id: int,
    data: FieldUpdate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return field_service.update_field(
        db, base_id, table_id, field_id, session, name=data.name, config=data.config, ip=ip
    )


@router.post(
    "/{field_id}/type",
    response_model=FieldRead,
    dependencies=[Depends(require_csrf_header)],
)
def change_field_type(
    base_id: int,
    table_id: int,
    field_id: int,
    data: FieldTypeChange,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    """
    Change the field type.

    Rejected with 409 while any cell holds data. Switching into a select
    type needs initial options.
    """
    return field_service.change_field_type(
        db, base_id, table_id, field_id, data.type, session,
        options=_option_specs(data.options),
        ip=ip,
    )


@router.delete(
    "/{field_id}",
    response_model=FieldRead,
    dependencies=[Depends(require_csrf_header)],
)
def trash_field(
    base_id: int,
    table_id: int,
    field_id: int,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return field_service.trash_field(db, base_id, table_id, field_id, session, ip=ip)


# =============================================================================
# Options
# =============================================================================

@router.get("/{field_id}/options", response_model=list[OptionRead])
def list_options(
    base_id: int,
    table_id: int,
    field_id: int,
    db: Session = Depends(get_db),
    ctx: PermissionContext = Depends(require_base_action(Action.RECORDS_READ)),
):
    table_service.get_table(db, base_id, table_id)
    field_service.get_field(db, table_id, field_id)
    return field_service.list_options(db, field_id)


@router.post(
    "/{field_id}/options",
    response_model=OptionRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_option(
    base_id: int,
    table_id: int,
    field_id: int,
    data: OptionInput,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return field_service.create_option(
        db, base_id, table_id, field_id, session, label=data.label, color=data.color, ip=ip
    )


@router.put(
    "/{field_id}/options/order",
    response_model=list[OptionRead],
    dependencies=[Depends(require_csrf_header)],
)
def reorder_options(
    base_id: int,
    table_id: int,
    field_id: int,
    data: ReorderRequest,
    db: Session = Depends(get_direct_db),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
):
    return field_service.reorder_options(db, base_id, table_id, field_id, data.ids)


@router.patch(
    "/{field_id}/options/{option_id}",
    response_model=OptionRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_option(
    base_id: int,
    table_id: int,
    field_id: int,
    option_id: int,
    data: OptionUpdate,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return field_service.update_option(
        db, base_id, table_id, field_id, option_id, session,
        label=data.label,
        color=data.color,
        ip=ip,
    )


@router.delete(
    "/{field_id}/options/{option_id}",
    response_model=OptionRead,
    dependencies=[Depends(require_csrf_header)],
)
def trash_option(
    base_id: int,
    table_id: int,
    field_id: int,
    option_id: int,
    db: Session = Depends(get_direct_db),
    session: UserSession = Depends(get_current_session),
    ctx: PermissionContext = Depends(require_base_action(Action.SCHEMA_MANAGE)),
    ip: str | None = Depends(get_client_ip),
):
    return field_service.trash_option(db, base_id, table_id, field_id, option_id, session, ip=ip)
