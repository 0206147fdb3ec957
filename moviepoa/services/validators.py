"""Request payload validation for movie endpoints.

Validators return only the fields the caller supplied, normalized, and
raise `MovieValidationError` listing every problem at once. The store relies
on these shapes: ``title`` is a trimmed non-empty string and ``rank`` is an
integer in 1..MAX_RANK or an explicit ``None`` (unrank).
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from moviepoa.db.repositories.movies_repo import MovieValidationError
from moviepoa.db.repositories.rank_allocator import MAX_RANK

MIN_YEAR = 1870
MAX_YEAR = 2100

_UNSET = object()


def normalize_email(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip().lower()
    return cleaned or None


def to_int(value: Any) -> Optional[int]:
    """Coerce JSON-ish input to int; None when missing or not integral."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if math.isfinite(number) and number.is_integer() else None
    return None


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise MovieValidationError("body_not_object")
    return payload


def _optional_text(payload: Dict[str, Any], key: str, errors: List[str]) -> Any:
    if key not in payload:
        return _UNSET
    value = payload[key]
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    errors.append(f"{key}_invalid")
    return _UNSET


def _rank_value(raw: Any, errors: List[str]) -> Any:
    rank = to_int(raw)
    if rank is None or not 1 <= rank <= MAX_RANK:
        errors.append("rank_out_of_range")
        return _UNSET
    return rank


def validate_movie_payload(payload: Any, *, partial: bool = False) -> Dict[str, Any]:
    """Validate a create/update body; ``partial`` makes ``title`` optional."""
    data = _require_object(payload)
    errors: List[str] = []
    movie: Dict[str, Any] = {}

    if "title" in data or not partial:
        raw_title = data.get("title")
        title = raw_title.strip() if isinstance(raw_title, str) else ""
        if title:
            movie["title"] = title
        else:
            errors.append("title_required")

    if "tmdb_id" in data:
        if data["tmdb_id"] is None:
            movie["tmdb_id"] = None
        else:
            tmdb_id = to_int(data["tmdb_id"])
            if tmdb_id is None or tmdb_id < 1:
                errors.append("tmdb_id_invalid")
            else:
                movie["tmdb_id"] = tmdb_id

    if "release_year" in data:
        if data["release_year"] is None:
            movie["release_year"] = None
        else:
            year = to_int(data["release_year"])
            if year is None or not MIN_YEAR <= year <= MAX_YEAR:
                errors.append("release_year_invalid")
            else:
                movie["release_year"] = year

    for key in ("overview", "poster_path"):
        value = _optional_text(data, key, errors)
        if value is not _UNSET:
            movie[key] = value or None

    if "rank" in data:
        if data["rank"] is None:
            movie["rank"] = None
        else:
            rank = _rank_value(data["rank"], errors)
            if rank is not _UNSET:
                movie["rank"] = rank

    if errors:
        raise MovieValidationError(errors)
    return movie


def validate_rank_payload(payload: Any) -> int:
    data = _require_object(payload)
    errors: List[str] = []
    rank = _rank_value(data.get("rank"), errors)
    if errors:
        raise MovieValidationError(errors)
    return rank


def validate_reorder_payload(payload: Any) -> List[int]:
    data = _require_object(payload)
    raw_ids = data.get("ordered_ids")
    if not isinstance(raw_ids, list):
        raise MovieValidationError("ordered_ids_invalid")
    ids = [to_int(value) for value in raw_ids]
    if any(value is None or value < 1 for value in ids):
        raise MovieValidationError("ordered_ids_invalid")
    if len(ids) > MAX_RANK:
        raise MovieValidationError("ordered_ids_too_many")
    if len(set(ids)) != len(ids):
        raise MovieValidationError("ordered_ids_duplicate")
    return ids  # type: ignore[return-value]


def validate_import_payload(payload: Any) -> Dict[str, Any]:
    """Validate ``{"tmdb_id": int, "rank": int?}`` for TMDB imports."""
    data = _require_object(payload)
    errors: List[str] = []
    tmdb_id = to_int(data.get("tmdb_id"))
    if tmdb_id is None or tmdb_id < 1:
        errors.append("tmdb_id_invalid")
    rank: Any = None
    if data.get("rank") is not None:
        rank = _rank_value(data["rank"], errors)
    if errors:
        raise MovieValidationError(errors)
    return {"tmdb_id": tmdb_id, "rank": rank}


__all__ = [
    "MIN_YEAR",
    "MAX_YEAR",
    "normalize_email",
    "to_int",
    "validate_movie_payload",
    "validate_rank_payload",
    "validate_reorder_payload",
    "validate_import_payload",
]
