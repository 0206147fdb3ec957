"""Rank slot allocation for an owner's top list.

`make_rank_available` frees one rank slot by pushing every movie at or
below it down by one and dropping the rank of anything pushed past
MAX_RANK (the movie stays in the collection, unranked). It runs inside the
caller's session so the cascade and the caller's own write commit or roll
back together.

The shift is two bulk statements: ranks in the range are first staged as
``-(rank + 1)`` and then flipped positive. Both SQLite and PostgreSQL check
the (owner_id, rank) unique index row by row, so a single
``rank = rank + 1`` can collide with the not-yet-shifted neighbour.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from moviepoa.db.models import Movie, utcnow
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.rank_allocator")

MAX_RANK = 100


def make_rank_available(
    session: Session,
    owner_id: int,
    rank: int,
    exclude_item_id: Optional[int] = None,
) -> int:
    """Free ``rank`` for ``owner_id``; return how many movies were shifted."""
    if not 1 <= rank <= MAX_RANK:
        raise ValueError(f"rank must be within 1..{MAX_RANK}")
    now = utcnow()
    owned = session.query(Movie).filter(Movie.owner_id == owner_id)

    if exclude_item_id is not None:
        # The excluded movie gets its new rank from the caller afterwards;
        # leaving it inside the range would block the neighbour moving into its slot.
        owned.filter(
            Movie.id == exclude_item_id,
            Movie.rank >= rank,
            Movie.rank <= MAX_RANK,
        ).update({Movie.rank: None, Movie.updated_at: now}, synchronize_session=False)
        others = owned.filter(Movie.id != exclude_item_id)
    else:
        others = owned

    shifted = others.filter(Movie.rank >= rank, Movie.rank <= MAX_RANK).update(
        {Movie.rank: -(Movie.rank + 1), Movie.updated_at: now},
        synchronize_session=False,
    )
    if not shifted:
        return 0
    others.filter(Movie.rank < 0).update(
        {Movie.rank: -Movie.rank},
        synchronize_session=False,
    )

    dropped = owned.filter(Movie.rank > MAX_RANK).update(
        {Movie.rank: None, Movie.updated_at: now},
        synchronize_session=False,
    )
    if dropped:
        LOG.info("Rank overflow owner=%s: %s movie(s) pushed past %s became unranked", owner_id, dropped, MAX_RANK)
    LOG.debug("Freed rank owner=%s rank=%s shifted=%s", owner_id, rank, shifted)
    return int(shifted)


__all__ = ["MAX_RANK", "make_rank_available"]
