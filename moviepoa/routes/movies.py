"""Movie collection routes.

API (authenticated, scoped to the caller):
    /movies             GET list, POST create
    /movies/top         GET ranked list
    /movies/<id>        GET, PUT (full), PATCH (partial), DELETE
    /movies/<id>/rank   PATCH set rank, DELETE unrank
    /movies/reorder     POST {"ordered_ids": [...]}
Public:
    /users/<id>/top     GET another user's ranked list
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request

from moviepoa.db.repositories import (
    MovieNotFoundError,
    MovieValidationError,
    RankConflictError,
    RankedCollectionStore,
    StorageFaultError,
    users_repo,
)
from moviepoa.services import movies_service
from moviepoa.services.validators import (
    validate_movie_payload,
    validate_rank_payload,
    validate_reorder_payload,
)
from moviepoa.utils.identity import current_owner_id, login_required
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.movies.routes")

STORE_EXTENSION = "moviepoa_store"

bp = Blueprint("movies", __name__, url_prefix="/movies")
public_bp = Blueprint("movies_public", __name__)

_ERROR_MESSAGES = {
    "validation_failed": "Movie payload is invalid.",
    "movie_not_found": "Movie not found.",
    "user_not_found": "User not found.",
    "rank_conflict": "Could not place the movie at that rank.",
    "storage_unavailable": "Movie storage is unavailable.",
}


def _json_error(code: str, status: int = 400, *, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
    payload: Dict[str, Any] = {"error": code}
    final = message or _ERROR_MESSAGES.get(code)
    if final:
        payload["message"] = final
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status


def _store() -> RankedCollectionStore:
    return current_app.extensions[STORE_EXTENSION]


def _store_error(exc: Exception):
    if isinstance(exc, MovieValidationError):
        return _json_error("validation_failed", 400, details={"errors": exc.errors})
    if isinstance(exc, MovieNotFoundError):
        return _json_error("movie_not_found", 404)
    if isinstance(exc, RankConflictError):
        return _json_error("rank_conflict", 500)
    return _json_error("storage_unavailable", 500)


_STORE_ERRORS = (MovieValidationError, MovieNotFoundError, RankConflictError, StorageFaultError)


@bp.route("", methods=["GET"])
@login_required
def list_movies():
    try:
        movies = _store().list(current_owner_id())
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movies_service.serialize(movies))


@bp.route("/top", methods=["GET"])
@login_required
def list_top():
    try:
        movies = _store().list_ranked(current_owner_id())
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movies_service.serialize(movies))


@bp.route("/<int:item_id>", methods=["GET"])
@login_required
def get_movie(item_id: int):
    try:
        movie = _store().get(current_owner_id(), item_id)
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movie.as_dict())


@bp.route("", methods=["POST"])
@login_required
def create_movie():
    try:
        fields = validate_movie_payload(request.get_json(silent=True))
        movie = _store().create(current_owner_id(), fields)
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movie.as_dict()), 201


@bp.route("/<int:item_id>", methods=["PUT", "PATCH"])
@login_required
def update_movie(item_id: int):
    partial = request.method == "PATCH"
    try:
        fields = validate_movie_payload(request.get_json(silent=True), partial=partial)
        movie = _store().update(current_owner_id(), item_id, fields)
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movie.as_dict())


@bp.route("/<int:item_id>/rank", methods=["PATCH"])
@login_required
def set_rank(item_id: int):
    try:
        rank = validate_rank_payload(request.get_json(silent=True))
        movie = _store().set_rank(current_owner_id(), item_id, rank)
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movie.as_dict())


@bp.route("/<int:item_id>/rank", methods=["DELETE"])
@login_required
def clear_rank(item_id: int):
    try:
        movie = _store().set_rank(current_owner_id(), item_id, None)
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movie.as_dict())


@bp.route("/<int:item_id>", methods=["DELETE"])
@login_required
def delete_movie(item_id: int):
    try:
        _store().delete(current_owner_id(), item_id)
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return "", 204


@bp.route("/reorder", methods=["POST"])
@login_required
def reorder():
    try:
        ordered_ids = validate_reorder_payload(request.get_json(silent=True))
        movies = _store().reorder(current_owner_id(), ordered_ids)
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movies_service.serialize(movies))


@public_bp.route("/users/<int:user_id>/top", methods=["GET"])
def public_top(user_id: int):
    if users_repo.get_user(user_id) is None:
        return _json_error("user_not_found", 404)
    try:
        movies = _store().list_ranked(user_id)
    except _STORE_ERRORS as exc:
        return _store_error(exc)
    return jsonify(movies_service.serialize(movies))


def register_blueprints(app: Any) -> None:
    if getattr(app, "_movies_bp", None):
        return
    app.register_blueprint(bp)
    app.register_blueprint(public_bp)
    setattr(app, "_movies_bp", bp)
    LOG.debug("movies blueprints registered")


__all__ = ["register_blueprints", "STORE_EXTENSION", "bp", "public_bp"]
