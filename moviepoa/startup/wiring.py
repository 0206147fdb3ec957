"""Application initialization / wiring.

Orchestrates: environment loading, DB init, store construction, route
registration and JSON error handling.
"""
from __future__ import annotations

import secrets
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from moviepoa import config as app_config
from moviepoa.db import get_scoped_session, init_engine_once
from moviepoa.db.repositories import RankedCollectionStore
from moviepoa.routes.inject import register_all as register_routes
from moviepoa.routes.movies import STORE_EXTENSION
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.startup")


def _register_error_handlers(app: Any) -> None:
    def _http_error(exc: HTTPException):
        code = (exc.name or "http_error").lower().replace(" ", "_")
        return jsonify({"error": code, "message": exc.description}), exc.code

    def _unexpected_error(exc: Exception):
        LOG.exception("Unhandled error: %s", exc)
        return jsonify({"error": "internal_error", "message": "Internal server error."}), 500

    app.register_error_handler(HTTPException, _http_error)
    app.register_error_handler(Exception, _unexpected_error)


def init_app(app: Any) -> None:
    LOG.debug("init_app starting")
    init_engine_once()
    LOG.debug("DB engine initialized")
    scoped = get_scoped_session()
    app.extensions[STORE_EXTENSION] = RankedCollectionStore(scoped)

    @app.teardown_appcontext
    def _remove_session(_exc: Optional[BaseException] = None) -> None:
        scoped.remove()

    register_routes(app)
    _register_error_handlers(app)
    LOG.info("App startup wiring complete: %s", app_config.summarize_runtime_config())


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Build the Flask application; ``config_overrides`` wins over env."""
    load_dotenv()
    app = Flask(app_config.APP_NAME)
    secret = app_config.secret_key()
    if not secret:
        secret = secrets.token_hex(32)
        LOG.warning("SECRET_KEY not set; using an ephemeral key (tokens reset on restart)")
    app.config["SECRET_KEY"] = secret
    if config_overrides:
        app.config.update(config_overrides)
    init_app(app)
    return app


__all__ = ["init_app", "create_app"]
