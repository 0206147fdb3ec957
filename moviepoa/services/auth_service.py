"""Account registration, login and profile helpers."""
from __future__ import annotations

from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from moviepoa.db.repositories import users_repo
from moviepoa.services.validators import normalize_email
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.auth_service")

MIN_PASSWORD_LENGTH = 8
MAX_DISPLAY_NAME_LENGTH = 120


class AuthError(RuntimeError):
    """Base error for account workflows; message is a stable code."""


class InvalidCredentialsError(AuthError):
    """Raised when email/password do not match a stored account."""


class UserAlreadyExistsError(AuthError):
    """Raised when registering an email that already has an account."""


class UserNotFoundError(AuthError):
    """Raised when a user id no longer resolves to an account."""


def _require_email(email: Any) -> str:
    normalized = normalize_email(email)
    if not normalized or "@" not in normalized:
        raise AuthError("email_invalid")
    return normalized


def _clean_display_name(display_name: Any) -> Optional[str]:
    if display_name is None:
        return None
    if not isinstance(display_name, str):
        raise AuthError("display_name_invalid")
    cleaned = display_name.strip()
    if len(cleaned) > MAX_DISPLAY_NAME_LENGTH:
        raise AuthError("display_name_too_long")
    return cleaned or None


def register(*, email: Any, password: Any, display_name: Any = None) -> Dict[str, Any]:
    normalized = _require_email(email)
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError("password_too_short")
    name = _clean_display_name(display_name)
    try:
        user = users_repo.create_user(normalized, generate_password_hash(password), name)
    except users_repo.UserExistsError as exc:
        raise UserAlreadyExistsError("user_exists") from exc
    LOG.info("Registered user id=%s email=%s", user.id, normalized)
    return user.as_dict()


def authenticate(*, email: Any, password: Any) -> Dict[str, Any]:
    normalized = normalize_email(email)
    if not normalized or not isinstance(password, str) or not password:
        raise InvalidCredentialsError("invalid_credentials")
    user = users_repo.get_user_by_email(normalized)
    if user is None or not check_password_hash(user.password_hash, password):
        LOG.info("Login rejected email=%s", normalized)
        raise InvalidCredentialsError("invalid_credentials")
    return user.as_dict()


def get_profile(user_id: int) -> Dict[str, Any]:
    user = users_repo.get_user(user_id)
    if user is None:
        raise UserNotFoundError("user_not_found")
    return user.as_dict()


def update_profile(user_id: int, *, display_name: Any) -> Dict[str, Any]:
    name = _clean_display_name(display_name)
    user = users_repo.update_display_name(user_id, name)
    if user is None:
        raise UserNotFoundError("user_not_found")
    return user.as_dict()


__all__ = [
    "AuthError",
    "InvalidCredentialsError",
    "UserAlreadyExistsError",
    "UserNotFoundError",
    "register",
    "authenticate",
    "get_profile",
    "update_profile",
]
