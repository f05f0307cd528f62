"""
Shared helpers for API blueprints: current user, services and request parsing.
"""

from typing import Any, Dict, Optional

from flask import current_app, request

from applyops.errors import AuthenticationError, ValidationError
from applyops.models import parse_datetime

USER_HEADER = "X-User-Id"


def get_services():
    return current_app.config["APPLYOPS_SERVICES"]


def current_user_id() -> str:
    """
    Return the id of the user making the request.

    The fronting auth layer sets X-User-Id; the user row is created on first
    sight.
    """
    user_id = (request.headers.get(USER_HEADER) or "").strip()
    if not user_id:
        raise AuthenticationError("Authentication required")

    get_services().store.ensure_user(user_id)
    return user_id


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_string(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def required_string(data: Dict[str, Any], key: str) -> str:
    value = optional_string(data, key)
    if not value or not value.strip():
        raise ValidationError(f"{key} is required")
    return value.strip()


def optional_datetime(data: Dict[str, Any], key: str):
    raw = data.get(key)
    if raw in (None, ""):
        return None
    try:
        return parse_datetime(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} is not a valid date")


def positive_int_arg(name: str, default: int) -> int:
    """Integer query argument; missing, invalid or non-positive values give the default."""
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default
