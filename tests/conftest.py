"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ``app`` and ``filmazia`` live at the project root; make them importable
# without an editable install.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer credentials out of settings built during tests."""

    for name in (
        "TMDB_API_KEY",
        "NEXT_PUBLIC_TMDB_API_KEY",
        "AUTH_URL",
        "AUTH_ANON_KEY",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
