"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import Settings  # noqa: E402
from app.models import FilmRecord  # noqa: E402
from app.store import RecordStore  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


def film(film_id: str, runtime: int | None = 100, **extra: Any) -> FilmRecord:
    """Build a film record with sensible defaults."""

    payload: dict[str, Any] = {
        "id": film_id,
        "name": extra.pop("name", f"Film {film_id}"),
        "year": extra.pop("year", "2020"),
        "runtime": runtime,
    }
    payload.update(extra)
    return FilmRecord.model_validate(payload)


def build_settings(tmp_path: Path, **overrides: Any) -> Settings:
    """Return a settings object pointing at a temporary data directory."""

    base: dict[str, Any] = {"DATA_DIR": str(tmp_path)}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


@pytest.fixture
def store(tmp_path: Path) -> RecordStore:
    return RecordStore(build_settings(tmp_path).collection_paths)
