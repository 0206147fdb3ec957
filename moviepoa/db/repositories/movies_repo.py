"""Ranked movie collection store (per-owner CRUD with rank maintenance).

Every write that changes a rank frees the target slot through
`rank_allocator.make_rank_available` inside the same unit of work as the
write itself, so the cascade and the write commit or roll back together.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from moviepoa.db.engine import unit_of_work
from moviepoa.db.models import Movie, utcnow
from moviepoa.db.repositories.rank_allocator import MAX_RANK, make_rank_available
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.movies_repo")

EDITABLE_FIELDS = ("tmdb_id", "title", "release_year", "overview", "poster_path", "rank")

# SQLite names the indexed columns, PostgreSQL the index.
_RANK_CONSTRAINT_MARKERS = ("uq_movies_owner_rank", "movies.owner_id, movies.rank")


class MovieValidationError(ValueError):
    """Raised when movie input fails validation; ``errors`` lists the codes."""

    def __init__(self, errors: Iterable[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors: List[str] = list(errors)
        super().__init__(", ".join(self.errors))


class MovieNotFoundError(LookupError):
    """Raised when a movie id does not exist for the calling owner."""


class RankConflictError(RuntimeError):
    """Raised when storage rejects a write on the (owner, rank) unique index."""


class StorageFaultError(RuntimeError):
    """Raised when the underlying store is unavailable or a transaction fails."""


def _is_rank_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in _RANK_CONSTRAINT_MARKERS)


def _clean_title(value: Any) -> str:
    title = value.strip() if isinstance(value, str) else ""
    if not title:
        raise MovieValidationError("title_required")
    return title


def _clean_rank(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= MAX_RANK:
        raise MovieValidationError("rank_out_of_range")
    return value


class RankedCollectionStore:
    """Durable per-owner collection of ranked and unranked movies."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @contextmanager
    def _atomic(self, operation: str, owner_id: int, *, read_only: bool = False) -> Iterator[Session]:
        try:
            with unit_of_work(self._session_factory, read_only=read_only) as session:
                yield session
        except IntegrityError as exc:
            if not _is_rank_conflict(exc):
                LOG.error("Integrity failure op=%s owner=%s", operation, owner_id, exc_info=True)
                raise StorageFaultError(f"{operation}: integrity failure") from exc
            LOG.error("Rank constraint violated op=%s owner=%s", operation, owner_id, exc_info=True)
            raise RankConflictError(f"{operation}: rank uniqueness violated") from exc
        except SQLAlchemyError as exc:
            LOG.error("Storage failure op=%s owner=%s", operation, owner_id, exc_info=True)
            raise StorageFaultError(f"{operation}: storage failure") from exc

    @staticmethod
    def _owned(session: Session, owner_id: int):
        return session.query(Movie).filter(Movie.owner_id == owner_id)

    def _load(self, session: Session, owner_id: int, item_id: int) -> Movie:
        movie = self._owned(session, owner_id).filter(Movie.id == item_id).one_or_none()
        if movie is None:
            raise MovieNotFoundError(f"movie {item_id} not found")
        return movie

    # ---------------------------------------------------------------- reads

    def list(self, owner_id: int) -> List[Movie]:
        """All movies: ranked ascending, then unranked; ties by title."""
        with self._atomic("list", owner_id, read_only=True) as session:
            return (
                self._owned(session, owner_id)
                .order_by(
                    case((Movie.rank.is_(None), 1), else_=0),
                    Movie.rank.asc(),
                    Movie.title.asc(),
                )
                .all()
            )

    def list_ranked(self, owner_id: int) -> List[Movie]:
        with self._atomic("list_ranked", owner_id, read_only=True) as session:
            return (
                self._owned(session, owner_id)
                .filter(Movie.rank.isnot(None))
                .order_by(Movie.rank.asc())
                .all()
            )

    def get(self, owner_id: int, item_id: int) -> Movie:
        with self._atomic("get", owner_id, read_only=True) as session:
            return self._load(session, owner_id, item_id)

    def count(self, owner_id: int) -> int:
        with self._atomic("count", owner_id, read_only=True) as session:
            return self._owned(session, owner_id).count()

    # --------------------------------------------------------------- writes

    def make_rank_available(self, owner_id: int, rank: int, exclude_item_id: Optional[int] = None) -> int:
        """Run the allocator alone as one atomic operation."""
        with self._atomic("make_rank_available", owner_id) as session:
            return make_rank_available(session, owner_id, rank, exclude_item_id)

    def create(self, owner_id: int, fields: Mapping[str, Any]) -> Movie:
        values: Dict[str, Any] = {k: fields[k] for k in EDITABLE_FIELDS if k in fields}
        values["title"] = _clean_title(values.get("title"))
        rank = values["rank"] = _clean_rank(values.get("rank"))
        with self._atomic("create", owner_id) as session:
            if rank is not None:
                make_rank_available(session, owner_id, rank)
            now = utcnow()
            movie = Movie(owner_id=owner_id, created_at=now, updated_at=now, **values)
            session.add(movie)
            session.flush()
        LOG.info("Created movie id=%s owner=%s rank=%s", movie.id, owner_id, movie.rank)
        return movie

    def update(self, owner_id: int, item_id: int, fields: Mapping[str, Any]) -> Movie:
        """Merge supplied fields over the stored ones.

        Keys missing from ``fields`` keep their value; ``rank: None`` unranks.
        """
        changes: Dict[str, Any] = {k: fields[k] for k in EDITABLE_FIELDS if k in fields}
        if "title" in changes:
            changes["title"] = _clean_title(changes["title"])
        if "rank" in changes:
            changes["rank"] = _clean_rank(changes["rank"])
        with self._atomic("update", owner_id) as session:
            movie = self._load(session, owner_id, item_id)
            if "rank" in changes:
                self._assign_rank(session, movie, changes.pop("rank"))
            for key, value in changes.items():
                setattr(movie, key, value)
            movie.updated_at = utcnow()
            session.flush()
        LOG.info("Updated movie id=%s owner=%s rank=%s", item_id, owner_id, movie.rank)
        return movie

    def set_rank(self, owner_id: int, item_id: int, rank: Optional[int]) -> Movie:
        rank = _clean_rank(rank)
        with self._atomic("set_rank", owner_id) as session:
            movie = self._load(session, owner_id, item_id)
            if self._assign_rank(session, movie, rank):
                session.flush()
        LOG.info("Set rank movie id=%s owner=%s rank=%s", item_id, owner_id, rank)
        return movie

    def delete(self, owner_id: int, item_id: int) -> bool:
        """Remove the movie; surviving ranks keep their gaps."""
        with self._atomic("delete", owner_id) as session:
            movie = self._load(session, owner_id, item_id)
            session.delete(movie)
        LOG.info("Deleted movie id=%s owner=%s", item_id, owner_id)
        return True

    def reorder(self, owner_id: int, ordered_ids: Iterable[int]) -> List[Movie]:
        """Rank ``ordered_ids`` as 1..n and unrank the owner's other movies."""
        ids = [int(i) for i in ordered_ids]
        if len(set(ids)) != len(ids):
            raise MovieValidationError("ordered_ids_duplicate")
        if len(ids) > MAX_RANK:
            raise MovieValidationError("ordered_ids_too_many")
        with self._atomic("reorder", owner_id) as session:
            found = {m.id for m in self._owned(session, owner_id).filter(Movie.id.in_(ids)).all()}
            missing = [i for i in ids if i not in found]
            if missing:
                raise MovieNotFoundError(f"movies not found: {missing}")
            now = utcnow()
            self._owned(session, owner_id).filter(Movie.rank.isnot(None)).update(
                {Movie.rank: None, Movie.updated_at: now},
                synchronize_session=False,
            )
            for position, movie_id in enumerate(ids, start=1):
                self._owned(session, owner_id).filter(Movie.id == movie_id).update(
                    {Movie.rank: position, Movie.updated_at: now},
                    synchronize_session=False,
                )
            session.expire_all()
            ranked = (
                self._owned(session, owner_id)
                .filter(Movie.rank.isnot(None))
                .order_by(Movie.rank.asc())
                .all()
            )
        LOG.info("Reordered owner=%s ranked=%s", owner_id, len(ids))
        return ranked

    @staticmethod
    def _assign_rank(session: Session, movie: Movie, rank: Optional[int]) -> bool:
        """Give ``movie`` a new rank, cascading first; False when unchanged."""
        if rank == movie.rank:
            return False
        if rank is not None:
            make_rank_available(session, movie.owner_id, rank, exclude_item_id=movie.id)
        movie.rank = rank
        movie.updated_at = utcnow()
        return True


__all__ = [
    "EDITABLE_FIELDS",
    "MovieValidationError",
    "MovieNotFoundError",
    "RankConflictError",
    "StorageFaultError",
    "RankedCollectionStore",
]
