from __future__ import annotations

from datetime import date, datetime
from functools import wraps
from typing import Any, Dict, Optional

from flask import Flask, g, jsonify, request, session

from ..core.exceptions import AuthorizationError, DomainError, ValidationError
from ..users.model import Actor
from ..users.repository import UserRepository
from .datetime_utils import localize, parse_iso_date


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify({"success": False, "message": str(e)}), e.status_code


def login_required(users: UserRepository):
    """Load the session user into `g.actor`; 401 when nobody is logged in."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user_id = session.get("user_id")
            user = users.get_by_id(int(user_id)) if user_id is not None else None
            if user is None:
                return jsonify({"success": False, "message": "Please log in to continue"}), 401
            g.user = user
            g.actor = Actor.from_user(user)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def require_admin() -> Actor:
    actor: Actor = g.actor
    if not actor.is_admin:
        raise AuthorizationError("Only admins can perform this action")
    return actor


def json_body() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def optional_date(data: Dict[str, Any], key: str) -> Optional[date]:
    value = data.get(key)
    if not value:
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be a YYYY-MM-DD date")


def required_date(data: Dict[str, Any], key: str) -> date:
    value = optional_date(data, key)
    if value is None:
        raise ValidationError(f"{key} is required")
    return value


def parse_timestamp(value: Any, key: str, timezone: str) -> Optional[datetime]:
    """ISO-8601 timestamp; values without an offset are wall-clock time in `timezone`."""
    if value is None or value == "":
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 timestamp")
    return localize(parsed, timezone)


def parse_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a whole number")


def parse_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")


def client_ip() -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr
