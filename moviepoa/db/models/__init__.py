"""ORM models aggregate exports."""
from .movies import (  # noqa: F401
	Base,
	Movie,
	User,
	utcnow,
)

__all__ = [
	"Base",
	"Movie",
	"User",
	"utcnow",
]
