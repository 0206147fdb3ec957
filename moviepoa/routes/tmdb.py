"""TMDB proxy routes plus import into the caller's collection.

Upstream failures are forwarded with TMDB's status code (500 when the API
token is not configured).
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, current_app, jsonify, request

from moviepoa.db.repositories import (
    MovieValidationError,
    RankConflictError,
    StorageFaultError,
)
from moviepoa.routes.movies import STORE_EXTENSION
from moviepoa.services import movies_service, tmdb_service
from moviepoa.services.validators import to_int, validate_import_payload
from moviepoa.utils.identity import current_owner_id, login_required
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.tmdb.routes")

MAX_SEARCH_PAGE = 50

bp = Blueprint("tmdb", __name__, url_prefix="/tmdb")

_ERROR_MESSAGES = {
    "query_required": "Search query is required.",
    "page_invalid": f"Page must be between 1 and {MAX_SEARCH_PAGE}.",
    "validation_failed": "Import payload is invalid.",
    "rank_conflict": "Could not place the movie at that rank.",
    "storage_unavailable": "Movie storage is unavailable.",
    "api_token_missing": "TMDB API token is not configured.",
    "not_found": "Movie not found on TMDB.",
}


def _json_error(code: str, status: int = 400, *, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
    payload: Dict[str, Any] = {"error": code}
    final = message or _ERROR_MESSAGES.get(code)
    if final:
        payload["message"] = final
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status


def _upstream(result: Tuple[bool, Dict[str, Any]]):
    ok, payload = result
    if ok:
        return jsonify(payload)
    status = int(payload.get("status") or 502)
    return _json_error(
        payload.get("error") or "tmdb_error",
        status,
        message=payload.get("message"),
        details=payload.get("details"),
    )


def _page_arg() -> Optional[int]:
    raw = request.args.get("page")
    if raw is None or raw == "":
        return 1
    page = to_int(raw)
    if page is None or not 1 <= page <= MAX_SEARCH_PAGE:
        return None
    return page


@bp.route("/search", methods=["GET"])
def search():
    query = (request.args.get("q") or "").strip()
    if not query:
        return _json_error("query_required", 400)
    page = _page_arg()
    if page is None:
        return _json_error("page_invalid", 400)
    return _upstream(tmdb_service.search_movies(query, page))


@bp.route("/movie/<int:tmdb_id>", methods=["GET"])
def movie_details(tmdb_id: int):
    return _upstream(tmdb_service.get_movie(tmdb_id))


@bp.route("/movie/<int:tmdb_id>/videos", methods=["GET"])
def movie_videos(tmdb_id: int):
    return _upstream(tmdb_service.get_movie_videos(tmdb_id))


@bp.route("/genres", methods=["GET"])
def genres():
    return _upstream(tmdb_service.get_genres())


@bp.route("/genre/<int:genre_id>/movies", methods=["GET"])
def genre_movies(genre_id: int):
    page = _page_arg()
    if page is None:
        return _json_error("page_invalid", 400)
    return _upstream(tmdb_service.discover_by_genre(genre_id, page))


@bp.route("/import", methods=["POST"])
@login_required
def import_movie():
    try:
        data = validate_import_payload(request.get_json(silent=True))
        movie = movies_service.import_from_tmdb(
            current_app.extensions[STORE_EXTENSION],
            current_owner_id(),
            data["tmdb_id"],
            rank=data["rank"],
        )
    except movies_service.MetadataImportError as exc:
        return _json_error(str(exc), exc.status, details=exc.payload.get("details"))
    except MovieValidationError as exc:
        return _json_error("validation_failed", 400, details={"errors": exc.errors})
    except RankConflictError:
        return _json_error("rank_conflict", 500)
    except StorageFaultError:
        return _json_error("storage_unavailable", 500)
    return jsonify(movie.as_dict()), 201


def register_tmdb(app: Any) -> None:
    if getattr(app, "_tmdb_bp", None):
        return
    app.register_blueprint(bp)
    setattr(app, "_tmdb_bp", bp)
    LOG.debug("tmdb blueprint registered")


__all__ = ["register_tmdb", "MAX_SEARCH_PAGE"]
