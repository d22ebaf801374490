"""Session-based authentication backend for the shop administration interface."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_path
from .sessions import Session, SessionRegistry


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the authentication application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Database",
    "Session",
    "SessionRegistry",
    "create_app",
    "resolve_database_path",
]
