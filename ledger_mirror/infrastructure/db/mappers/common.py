from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.exceptions import RecordShapeError
from ledger_mirror.infrastructure.clients.ledger_schemas import record_id


M = TypeVar("M", bound=BaseModel)

EPOCH = datetime(1970, 1, 1)


def validate_record(kind: EntityKind, model: type[M], record: Any) -> M:
    try:
        return model.model_validate(record)
    except ValidationError as exc:
        raise RecordShapeError(kind.value, record_id(kind, record), _summarize(exc)) from exc


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors()[:3]:
        location = ".".join(str(item) for item in error.get("loc", ())) or "record"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def nanos_to_datetime(value: int) -> datetime:
    """Ledger timestamps are nanoseconds since the epoch; store naive UTC at microsecond precision."""
    return EPOCH + timedelta(microseconds=value // 1000)


def optional_nanos_to_datetime(value: int | None) -> datetime | None:
    if value is None:
        return None
    return nanos_to_datetime(value)


def to_float(value: Decimal) -> float:
    return float(value)


def optional_float(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)


def raw_copy(record: Mapping[str, Any]) -> dict[str, Any]:
    return dict(record)
