"""Account routes: register, login, logout and the caller's profile.

Register and login return ``{"token", "user"}``; the token is a bearer
token for API clients and the same identity is remembered in the Flask
session for browser clients.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, jsonify, request

from moviepoa.services import auth_service, auth_token_service
from moviepoa.utils.identity import (
    clear_identity_session,
    current_owner_id,
    login_required,
    remember_identity,
)
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.auth.routes")

bp = Blueprint("auth", __name__, url_prefix="/auth")

_ERROR_MESSAGES = {
    "email_invalid": "A valid email address is required.",
    "password_too_short": f"Password must be at least {auth_service.MIN_PASSWORD_LENGTH} characters.",
    "display_name_invalid": "Display name must be a string.",
    "display_name_too_long": "Display name is too long.",
    "user_exists": "An account with this email already exists.",
    "invalid_credentials": "Invalid email or password.",
    "user_not_found": "Account not found.",
    "secret_key_missing": "Server is missing SECRET_KEY.",
}

_STATUS_BY_ERROR = {
    auth_service.UserAlreadyExistsError: 409,
    auth_service.InvalidCredentialsError: 401,
    auth_service.UserNotFoundError: 404,
}


def _json_error(code: str, status: int = 400, *, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
    payload: Dict[str, Any] = {"error": code}
    final = message or _ERROR_MESSAGES.get(code)
    if final:
        payload["message"] = final
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status


def _auth_error(exc: auth_service.AuthError):
    return _json_error(str(exc), _STATUS_BY_ERROR.get(type(exc), 400))


def _issue(user: Dict[str, Any], status: int):
    try:
        token = auth_token_service.issue_token(user["id"], user["email"])
    except auth_token_service.SecretKeyUnavailableError:
        LOG.error("Cannot issue token: SECRET_KEY not configured")
        return _json_error("secret_key_missing", 500)
    remember_identity(user["id"], user["email"])
    return jsonify({"token": token, "user": user}), status


@bp.route("/register", methods=["POST"])
def register():
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        user = auth_service.register(
            email=data.get("email"),
            password=data.get("password"),
            display_name=data.get("display_name"),
        )
    except auth_service.AuthError as exc:
        return _auth_error(exc)
    return _issue(user, 201)


@bp.route("/login", methods=["POST"])
def login():
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        user = auth_service.authenticate(email=data.get("email"), password=data.get("password"))
    except auth_service.AuthError as exc:
        return _auth_error(exc)
    LOG.info("Login user id=%s", user["id"])
    return _issue(user, 200)


@bp.route("/logout", methods=["POST"])
def logout():
    clear_identity_session()
    return jsonify({"ok": True})


@bp.route("/me", methods=["GET"])
@login_required
def me():
    try:
        return jsonify(auth_service.get_profile(current_owner_id()))
    except auth_service.AuthError as exc:
        return _auth_error(exc)


@bp.route("/me", methods=["PUT"])
@login_required
def update_me():
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_profile(current_owner_id(), display_name=data.get("display_name"))
    except auth_service.AuthError as exc:
        return _auth_error(exc)
    return jsonify(user)


def register_auth(app: Any) -> None:
    if getattr(app, "_auth_bp", None):
        return
    app.register_blueprint(bp)
    setattr(app, "_auth_bp", bp)
    LOG.debug("auth blueprint registered")


__all__ = ["register_auth"]
