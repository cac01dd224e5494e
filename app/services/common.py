import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException

_FOUR_PLACES = Decimal("0.0001")


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(status_code=404, detail="Invalid identifier")


def apply_ordering(query, order_by, order_dir, allowed_columns):
    if order_by not in allowed_columns:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}",
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)


def round4(value) -> float:
    """Round half away from zero to 4 decimal places."""
    return float(Decimal(str(value)).quantize(_FOUR_PLACES, rounding=ROUND_HALF_UP))


def period_label(moment: datetime) -> str:
    return moment.strftime("%B %Y")


def month_diff(later: datetime, earlier: datetime) -> int:
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)
