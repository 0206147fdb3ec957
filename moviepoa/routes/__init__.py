"""HTTP routes package."""

from .inject import register_all

__all__ = ["register_all"]
