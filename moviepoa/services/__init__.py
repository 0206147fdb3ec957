"""Service exports."""

from . import validators, auth_token_service, auth_service, tmdb_service, movies_service
from .auth_service import (
    AuthError,
    InvalidCredentialsError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from .movies_service import MetadataImportError, import_from_tmdb

__all__ = [
    "validators",
    "auth_token_service",
    "auth_service",
    "tmdb_service",
    "movies_service",
    "AuthError",
    "InvalidCredentialsError",
    "UserAlreadyExistsError",
    "UserNotFoundError",
    "MetadataImportError",
    "import_from_tmdb",
]
