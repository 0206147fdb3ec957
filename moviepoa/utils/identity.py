"""Identity helpers: resolve the calling owner for a request."""
from __future__ import annotations

from functools import wraps
from typing import Callable, Optional

from flask import g, jsonify, request, session

from moviepoa.services import auth_token_service
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.identity")

SESSION_USER_KEY = "user_id"
SESSION_EMAIL_KEY = "email"


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    value = value.strip()
    return value or None


def get_current_user_id() -> Optional[int]:
    token = _bearer_token()
    if token:
        try:
            return auth_token_service.decode_token(token)["user_id"]
        except auth_token_service.AuthTokenError as exc:
            LOG.debug("Bearer token rejected: %s", exc)
            return None
    uid = session.get(SESSION_USER_KEY)
    if uid is None:
        return None
    try:
        return int(uid)
    except (TypeError, ValueError):
        return None


def remember_identity(user_id: int, email: str) -> None:
    session[SESSION_USER_KEY] = user_id
    session[SESSION_EMAIL_KEY] = email


def clear_identity_session() -> None:
    session.pop(SESSION_USER_KEY, None)
    session.pop(SESSION_EMAIL_KEY, None)


def login_required(view: Callable) -> Callable:
    """Reject anonymous callers with 401; expose the owner as ``g.owner_id``."""

    @wraps(view)
    def _wrapped(*args, **kwargs):
        owner_id = get_current_user_id()
        if owner_id is None:
            return jsonify({"error": "auth_required", "message": "Authentication required."}), 401
        g.owner_id = owner_id
        return view(*args, **kwargs)

    return _wrapped


def current_owner_id() -> int:
    return g.owner_id


__all__ = [
    "get_current_user_id",
    "remember_identity",
    "clear_identity_session",
    "login_required",
    "current_owner_id",
    "SESSION_USER_KEY",
    "SESSION_EMAIL_KEY",
]
