"""TMDB (The Movie Database) integration.

Responsibilities:
    * Authenticated GET requests against the TMDB v3 API
    * Search, details, genres, discover-by-genre and trailer lookups
    * Map a TMDB movie document onto the fields the movie store accepts

Every public fetch returns ``(ok, payload)``. On failure the payload is
``{"error": code, "status": http_status, ...}`` so routes can forward the
upstream status.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import requests

from moviepoa import config
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.tmdb_service")


def _api_headers() -> Optional[Dict[str, str]]:
    token = config.tmdb_api_read_token()
    if not token:
        return None
    return {"Authorization": f"Bearer {token}", "Accept": "application/json"}


def _api_url(path: str) -> str:
    return f"{config.tmdb_api_base()}/{path.lstrip('/')}"


def _clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (params or {}).items() if v is not None and v != ""}


def _get(path: str, params: Optional[Dict[str, Any]] = None) -> Tuple[bool, Dict[str, Any]]:
    headers = _api_headers()
    if not headers:
        return False, {
            "error": "api_token_missing",
            "status": 500,
            "message": "TMDB_API_READ_TOKEN is not configured",
        }
    try:
        r = requests.get(
            _api_url(path),
            headers=headers,
            params=_clean_params(params),
            timeout=config.tmdb_timeout_seconds(),
        )
    except requests.RequestException as exc:
        LOG.warning("TMDB request failed path=%s error=%s", path, exc)
        return False, {"error": "request_failed", "status": 502, "message": str(exc)}
    if r.status_code == 404:
        return False, {"error": "not_found", "status": 404, "details": r.text}
    if r.status_code != 200:
        LOG.info("TMDB request rejected path=%s status=%s", path, r.status_code)
        return False, {
            "error": "http_error",
            "status": r.status_code,
            "message": f"TMDB request failed: {r.status_code}",
            "details": r.text,
        }
    try:
        return True, r.json()
    except ValueError:
        return False, {"error": "invalid_json", "status": 502, "details": r.text}


def search_movies(query: str, page: int = 1) -> Tuple[bool, Dict[str, Any]]:
    ok, data = _get("/search/movie", {"query": query, "page": page, "include_adult": "false"})
    if not ok:
        return ok, data
    return True, {
        "page": data.get("page"),
        "total_pages": data.get("total_pages"),
        "total_results": data.get("total_results"),
        "results": data.get("results") or [],
    }


def get_movie(tmdb_id: int) -> Tuple[bool, Dict[str, Any]]:
    return _get(f"/movie/{int(tmdb_id)}")


def get_movie_videos(tmdb_id: int) -> Tuple[bool, Dict[str, Any]]:
    return _get(f"/movie/{int(tmdb_id)}/videos")


def get_genres() -> Tuple[bool, Dict[str, Any]]:
    return _get("/genre/movie/list")


def discover_by_genre(genre_id: int, page: int = 1) -> Tuple[bool, Dict[str, Any]]:
    ok, data = _get(
        "/discover/movie",
        {
            "with_genres": int(genre_id),
            "page": page,
            "sort_by": "popularity.desc",
            "include_adult": "false",
        },
    )
    if not ok:
        return ok, data
    return True, {
        "page": data.get("page"),
        "total_pages": data.get("total_pages"),
        "total_results": data.get("total_results"),
        "results": data.get("results") or [],
    }


def _release_year(release_date: Any) -> Optional[int]:
    if not isinstance(release_date, str) or len(release_date) < 4:
        return None
    head = release_date[:4]
    return int(head) if head.isdigit() else None


def movie_fields_from_details(details: Dict[str, Any]) -> Dict[str, Any]:
    """Map a TMDB movie document to movie store fields (rank not included)."""
    fields: Dict[str, Any] = {
        "tmdb_id": details.get("id"),
        "title": details.get("title") or details.get("original_title"),
        "overview": details.get("overview"),
        "poster_path": details.get("poster_path"),
    }
    year = _release_year(details.get("release_date"))
    if year is not None:
        fields["release_year"] = year
    return fields


__all__ = [
    "search_movies",
    "get_movie",
    "get_movie_videos",
    "get_genres",
    "discover_by_genre",
    "movie_fields_from_details",
]
