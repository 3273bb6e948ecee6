"""Cell values as a tagged union, and coercion of raw client input into it.

Pure module: no database access. Select fields receive the set of valid
(non-trashed) option ids from the caller.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from basegrid.core.errors import BadRequestError
from basegrid.db.enums import FieldType
from basegrid.utils.datetime_parsing import parse_datetime_utc


# =============================================================================
# Value union
# =============================================================================

@dataclass(frozen=True)
class TextValue:
    value: str


@dataclass(frozen=True)
class NumberValue:
    value: Decimal


@dataclass(frozen=True)
class BoolValue:
    value: bool


@dataclass(frozen=True)
class DateValue:
    value: date


@dataclass(frozen=True)
class DateTimeValue:
    value: datetime


@dataclass(frozen=True)
class MinutesValue:
    value: int


@dataclass(frozen=True)
class SingleOptionValue:
    option_id: int


@dataclass(frozen=True)
class MultiOptionValue:
    option_ids: tuple[int, ...]


CellValue = Union[
    TextValue,
    NumberValue,
    BoolValue,
    DateValue,
    DateTimeValue,
    MinutesValue,
    SingleOptionValue,
    MultiOptionValue,
]

TRUE_TOKENS = frozenset({"1", "true", "sí", "si", "on", "y"})
FALSE_TOKENS = frozenset({"0", "false", "no", "off", "n"})

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
MINUTES_PER_DAY = 24 * 60


# =============================================================================
# Coercion
# =============================================================================

def coerce_value(
    field_type: FieldType,
    raw: Any,
    *,
    valid_option_ids: set[int] | frozenset[int] = frozenset(),
) -> CellValue | None:
    """
    Convert raw input for a field of ``field_type`` into a CellValue.

    None clears the cell (returns None). MULTI_SELECT returns an empty
    MultiOptionValue for None so the caller can unlink every option.

    Raises:
        BadRequestError: value cannot be coerced to the field's type
    """
    field_type = FieldType(field_type)

    if field_type == FieldType.MULTI_SELECT:
        return _coerce_multi_select(raw, valid_option_ids)

    if raw is None:
        return None

    if field_type in (FieldType.TEXT, FieldType.LONG_TEXT):
        return TextValue(_stringify(raw))

    # Blank input clears non-text cells
    if isinstance(raw, str) and not raw.strip():
        return None

    if field_type in (FieldType.NUMBER, FieldType.CURRENCY):
        return NumberValue(coerce_decimal(raw))
    if field_type == FieldType.CHECKBOX:
        return BoolValue(coerce_bool(raw))
    if field_type == FieldType.DATE:
        return DateValue(coerce_date(raw))
    if field_type == FieldType.DATETIME:
        return DateTimeValue(coerce_datetime(raw))
    if field_type == FieldType.TIME:
        return MinutesValue(coerce_minutes(raw))
    if field_type == FieldType.SINGLE_SELECT:
        option_id = coerce_option_id(raw)
        if option_id not in valid_option_ids:
            raise BadRequestError(
                f"Option {option_id} does not belong to this field",
                details={"option_id": option_id},
            )
        return SingleOptionValue(option_id)

    raise BadRequestError(f"Unsupported field type: {field_type.value}")


def _stringify(raw: Any) -> str:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


def coerce_decimal(raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise BadRequestError("Value must be numeric")
    if isinstance(raw, Decimal):
        number = raw
    elif isinstance(raw, (int, float)):
        number = Decimal(str(raw))
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            number = Decimal(text)
        except InvalidOperation:
            try:
                number = Decimal(text.replace(",", "."))
            except InvalidOperation:
                raise BadRequestError("Value must be numeric")
    else:
        raise BadRequestError("Value must be numeric")

    if not number.is_finite():
        raise BadRequestError("Value must be a finite number")
    return number


def coerce_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    token = str(raw).strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise BadRequestError("Value must be a boolean")


def coerce_date(raw: Any) -> date:
    if isinstance(raw, date) and not isinstance(raw, datetime):
        return raw
    parsed = parse_datetime_utc(raw)
    if parsed is None:
        raise BadRequestError("Invalid date")
    return parsed.date()


def coerce_datetime(raw: Any) -> datetime:
    parsed = parse_datetime_utc(raw)
    if parsed is None:
        raise BadRequestError("Invalid datetime")
    return parsed


def coerce_minutes(raw: Any) -> int:
    """Minutes since midnight from an int 0..1439 or an "HH:mm" string."""
    if isinstance(raw, bool):
        raise BadRequestError('Invalid TIME, use "HH:mm" or minutes')
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            raise BadRequestError("Invalid TIME (minutes 0..1439)")
        minutes = math.trunc(raw)
        if minutes < 0 or minutes >= MINUTES_PER_DAY:
            raise BadRequestError("Invalid TIME (minutes 0..1439)")
        return minutes

    match = TIME_PATTERN.match(str(raw).strip())
    if not match:
        raise BadRequestError('Invalid TIME, use "HH:mm" or minutes')
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise BadRequestError("Invalid TIME")
    return hours * 60 + minutes


def coerce_option_id(raw: Any) -> int:
    if isinstance(raw, bool):
        raise BadRequestError("Invalid option id")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    raise BadRequestError("Invalid option id")


def _coerce_multi_select(raw: Any, valid_option_ids) -> MultiOptionValue:
    if raw is None:
        return MultiOptionValue(())
    if not isinstance(raw, (list, tuple)):
        raise BadRequestError("MULTI_SELECT expects a list of option ids")

    option_ids: list[int] = []
    for item in raw:
        option_id = coerce_option_id(item)
        if option_id not in option_ids:
            option_ids.append(option_id)

    invalid = [option_id for option_id in option_ids if option_id not in valid_option_ids]
    if invalid:
        raise BadRequestError(
            "Options do not belong to this field",
            details={"invalid_option_ids": invalid},
        )
    return MultiOptionValue(tuple(option_ids))


# =============================================================================
# Presentation
# =============================================================================

def to_json(value: CellValue | None) -> Any:
    """JSON-friendly form of a cell value (what the records API returns)."""
    if value is None:
        return None
    if isinstance(value, NumberValue):
        # Drop storage scale: Decimal("12.500000") -> 12.5
        normalized = value.value.normalize()
        if normalized == normalized.to_integral_value():
            return int(normalized)
        return float(normalized)
    if isinstance(value, (DateValue, DateTimeValue)):
        return value.value.isoformat()
    if isinstance(value, SingleOptionValue):
        return value.option_id
    if isinstance(value, MultiOptionValue):
        return list(value.option_ids)
    return value.value
