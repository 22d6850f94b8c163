"""Convenience imports for the Filmazia server and client library."""

from __future__ import annotations

from app.main import app, create_app
from app.stores import ClientLibrary, FilmaziaAPIClient

__all__ = ["ClientLibrary", "FilmaziaAPIClient", "app", "create_app"]
