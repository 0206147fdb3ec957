"""Route registration.

Called from startup to register every blueprint on the Flask app.
"""
from __future__ import annotations

from typing import Any

from .auth import register_auth
from .health import register_health
from .movies import register_blueprints as register_movies_bps
from .tmdb import register_tmdb


def register_all(app: Any) -> None:
    register_health(app)
    register_auth(app)
    register_movies_bps(app)
    register_tmdb(app)


__all__ = ["register_all"]
