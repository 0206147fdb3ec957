"""Repository exports."""

from . import rank_allocator, users_repo
from .movies_repo import (
    MovieNotFoundError,
    MovieValidationError,
    RankConflictError,
    RankedCollectionStore,
    StorageFaultError,
)
from .rank_allocator import MAX_RANK, make_rank_available

__all__ = [
    "MAX_RANK",
    "make_rank_available",
    "rank_allocator",
    "users_repo",
    "RankedCollectionStore",
    "MovieNotFoundError",
    "MovieValidationError",
    "RankConflictError",
    "StorageFaultError",
]
