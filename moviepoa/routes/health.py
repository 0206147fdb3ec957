"""Lightweight health probe endpoint.

Exposes /health returning a fast 200 for container / LB health checks.
"""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from moviepoa.db.engine import ping
from moviepoa.utils.logging import get_logger

LOG = get_logger("moviepoa.health")

bp = Blueprint("health", __name__)


@bp.route("/health", methods=["GET"])
def health():
    db_ok = True
    try:
        ping()
    except SQLAlchemyError as exc:
        db_ok = False
        LOG.warning("Health DB probe failed: %s", exc)
    status_code = 200 if db_ok else 500
    return jsonify({"ok": db_ok, "db": db_ok}), status_code


def register_health(app: Any) -> None:
    if getattr(app, "_health_bp", None):  # idempotent
        return
    app.register_blueprint(bp)
    setattr(app, "_health_bp", bp)
    LOG.debug("health blueprint registered")


__all__ = ["register_health"]
