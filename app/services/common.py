import uuid
from datetime import date, datetime
from enum import Enum
from typing import TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Query, Session

EnumT = TypeVar("EnumT", bound=Enum)


def coerce_uuid(value) -> uuid.UUID:
    """Convert a path/body identifier to UUID, raising 404 when malformed."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise HTTPException(status_code=404, detail="Not found") from None


def parse_uuid(value) -> uuid.UUID | None:
    """Lenient variant of coerce_uuid for optional client input."""
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def parse_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def validate_enum(value, enum_cls: type[EnumT], label: str) -> EnumT | None:
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label}") from None


def apply_ordering(query: Query, order_by: str, order_dir: str, allowed_columns: dict) -> Query:
    if order_by not in allowed_columns:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}",
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query: Query, limit: int, offset: int) -> Query:
    return query.limit(limit).offset(offset)


def ensure_exists(db: Session, model, model_id, detail: str):
    record = db.get(model, coerce_uuid(model_id))
    if not record:
        raise HTTPException(status_code=404, detail=detail)
    return record
