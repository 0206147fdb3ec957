"""Movie workflows that combine the store with request payloads or TMDB."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from moviepoa.db.models import Movie
from moviepoa.db.repositories.movies_repo import RankedCollectionStore
from moviepoa.services import tmdb_service
from moviepoa.services.validators import validate_movie_payload
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.movies_service")


class MetadataImportError(RuntimeError):
    """Raised when TMDB cannot supply details for an import.

    ``payload`` is the ``{"error", "status", ...}`` dict from `tmdb_service`.
    """

    def __init__(self, payload: Dict[str, Any]):
        self.payload = dict(payload)
        self.status = int(self.payload.get("status") or 502)
        super().__init__(str(self.payload.get("error") or "tmdb_error"))


def serialize(movies: List[Movie]) -> Dict[str, Any]:
    return {"count": len(movies), "movies": [m.as_dict() for m in movies]}


def import_from_tmdb(
    store: RankedCollectionStore,
    owner_id: int,
    tmdb_id: int,
    rank: Optional[int] = None,
) -> Movie:
    """Create a movie from TMDB details, optionally at ``rank``."""
    ok, details = tmdb_service.get_movie(tmdb_id)
    if not ok:
        LOG.info("TMDB import failed tmdb_id=%s error=%s", tmdb_id, details.get("error"))
        raise MetadataImportError(details)
    payload = tmdb_service.movie_fields_from_details(details)
    if rank is not None:
        payload["rank"] = rank
    fields = validate_movie_payload(payload)
    movie = store.create(owner_id, fields)
    LOG.info("Imported tmdb_id=%s as movie id=%s owner=%s", tmdb_id, movie.id, owner_id)
    return movie


__all__ = ["MetadataImportError", "serialize", "import_from_tmdb"]
