"""Utility helpers.

`identity` is imported directly by callers (it pulls in Flask and the token
service), keeping this package importable from the DB layer.
"""
from .logging import get_logger

__all__ = ["get_logger"]
