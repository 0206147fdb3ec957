"""Bearer token helpers for API clients.

Tokens are Fernet-encrypted JSON documents keyed from the Flask SECRET_KEY,
so rotating the secret invalidates every outstanding token.
"""
from __future__ import annotations

import base64
import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app

from moviepoa import config as app_config
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.auth_token_service")


class AuthTokenError(RuntimeError):
    """Base error for bearer token failures."""


class SecretKeyUnavailableError(AuthTokenError):
    """Raised when the Flask SECRET_KEY is missing."""


class TokenDecodeError(AuthTokenError):
    """Raised when a provided token cannot be decoded."""


class TokenExpiredError(AuthTokenError):
    """Raised when a token exceeded its allowed lifetime."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def _parse_timestamp(raw: str) -> datetime:
    candidate = raw
    if raw.endswith("Z"):
        candidate = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise TokenDecodeError("invalid_timestamp") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _derive_fernet_key(secret_value: Any) -> bytes:
    if not secret_value:
        raise SecretKeyUnavailableError("secret_key_missing")
    if isinstance(secret_value, bytes):
        secret_bytes = secret_value
    else:
        secret_bytes = str(secret_value).encode("utf-8")
    digest = hashlib.sha256(secret_bytes).digest()
    return base64.urlsafe_b64encode(digest)


def _fernet() -> Fernet:
    secret = current_app.config.get("SECRET_KEY")
    return Fernet(_derive_fernet_key(secret))


def _token_ttl() -> timedelta:
    return timedelta(hours=app_config.token_ttl_hours())


def issue_token(user_id: int, email: str, *, issued_at: Optional[str] = None) -> str:
    """Encrypt the identity document into a bearer token."""

    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise TokenDecodeError("user_id_invalid")
    if issued_at is None:
        issued_at = _format_timestamp(_utcnow())
    else:
        _parse_timestamp(issued_at)
    document = {"user_id": user_id, "email": email, "issued_at": issued_at}
    encoded = _fernet().encrypt(
        json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")
    )
    return encoded.decode("utf-8")


def decode_token(token: str) -> Dict[str, Any]:
    """Return the decrypted identity document, enforcing the token TTL."""

    if not token or not isinstance(token, str):
        raise TokenDecodeError("token_required")

    try:
        decrypted = _fernet().decrypt(token.encode("utf-8"))
    except InvalidToken as exc:
        LOG.warning("Rejected invalid bearer token")
        raise TokenDecodeError("invalid_token") from exc

    try:
        payload = json.loads(decrypted.decode("utf-8"))
    except json.JSONDecodeError as exc:
        raise TokenDecodeError("invalid_payload") from exc

    user_id = payload.get("user_id")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise TokenDecodeError("user_id_missing")

    issued_at_raw = payload.get("issued_at")
    if not isinstance(issued_at_raw, str):
        raise TokenDecodeError("issued_at_missing")
    if _utcnow() - _parse_timestamp(issued_at_raw) > _token_ttl():
        raise TokenExpiredError("token_expired")

    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "issued_at": issued_at_raw,
    }


__all__ = [
    "issue_token",
    "decode_token",
    "AuthTokenError",
    "SecretKeyUnavailableError",
    "TokenDecodeError",
    "TokenExpiredError",
]
