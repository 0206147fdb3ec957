"""Repository helpers for registered accounts."""
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError

from moviepoa.db import app_session
from moviepoa.db.models import User


class UserExistsError(Exception):
    """Raised when attempting to insert a duplicate email."""


def create_user(email: str, password_hash: str, display_name: Optional[str] = None) -> User:
    user = User(email=email, password_hash=password_hash, display_name=display_name)
    try:
        with app_session() as session:
            session.add(user)
    except IntegrityError as exc:
        raise UserExistsError("User already exists for email") from exc
    return user


def get_user(user_id: int) -> Optional[User]:
    with app_session(read_only=True) as session:
        return session.query(User).filter(User.id == user_id).one_or_none()


def get_user_by_email(email: str) -> Optional[User]:
    with app_session(read_only=True) as session:
        return session.query(User).filter(User.email == email).one_or_none()


def update_display_name(user_id: int, display_name: Optional[str]) -> Optional[User]:
    with app_session() as session:
        user = session.query(User).filter(User.id == user_id).one_or_none()
        if not user:
            return None
        user.display_name = display_name
        return user


__all__ = [
    "UserExistsError",
    "create_user",
    "get_user",
    "get_user_by_email",
    "update_display_name",
]
