"""ORM models for the moviepoa DB (accounts + ranked movies)."""
from __future__ import annotations

import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp (SQLite stores no tz info)."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class User(Base):
    """Registered account; every movie row is partitioned by its id."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(120), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def as_dict(self) -> dict:
        # password_hash never leaves the model
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email}>"


class Movie(Base):
    """One movie in an owner's collection, optionally holding a rank slot.

    At most one movie per (owner_id, rank) when rank is set; the partial
    unique index below is the storage-level backstop for that rule.
    """

    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    tmdb_id = Column(Integer, nullable=True, index=True)
    title = Column(String(500), nullable=False)
    release_year = Column(Integer, nullable=True)
    overview = Column(Text, nullable=True)
    poster_path = Column(String(500), nullable=True)
    rank = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index(
            "uq_movies_owner_rank",
            "owner_id",
            "rank",
            unique=True,
            sqlite_where=text("rank IS NOT NULL"),
            postgresql_where=text("rank IS NOT NULL"),
        ),
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "tmdb_id": self.tmdb_id,
            "title": self.title,
            "release_year": self.release_year,
            "overview": self.overview,
            "poster_path": self.poster_path,
            "rank": self.rank,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return "<Movie id={0} owner={1} rank={2} title={3!r}>".format(
            self.id,
            self.owner_id,
            self.rank,
            self.title,
        )


__all__ = ["Base", "User", "Movie", "utcnow"]
