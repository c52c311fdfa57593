from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from flask import request

from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_date, parse_timestamp
from .validators import require_positive_id


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_field(data: dict, name: str) -> Any:
    value = data.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required")
    return value


def int_field(data: dict, name: str, *, required: bool = True) -> Optional[int]:
    value = require_field(data, name) if required else data.get(name)
    if value is None:
        return None
    return require_positive_id(value, name)


def date_value(value: str, name: str) -> date:
    try:
        return parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format")


def timestamp_value(value: Optional[str], name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an ISO-8601 timestamp")
