"""Configuration settings behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from app.config import DEFAULT_ADDON_KEYS, Settings


def test_addon_keys_subset_selection() -> None:
    """Settings should respect custom add-on selections."""

    settings = Settings(_env_file=None, ADDON_KEYS="long,short")

    assert settings.addon_keys == ("long", "short")
    assert [definition.catalog_id for definition in settings.addon_definitions] == [
        "letterstream_long",
        "letterstream_short",
    ]


def test_addon_keys_accepts_case_insensitive_values() -> None:
    settings = Settings(_env_file=None, ADDON_KEYS=["Recent", "SHORT", "recent"])

    assert settings.addon_keys == ("recent", "short")


def test_addon_keys_blank_defaults() -> None:
    """Blank add-on keys should fall back to every collection."""

    settings = Settings(_env_file=None, ADDON_KEYS="")

    assert settings.addon_keys == DEFAULT_ADDON_KEYS == ("recent", "short", "long")


def test_addon_keys_invalid_raises() -> None:
    with pytest.raises(ValueError, match="Unknown add-on keys configured"):
        Settings(_env_file=None, ADDON_KEYS="medium")


def test_collection_paths_default_to_data_dir(tmp_path) -> None:
    settings = Settings(_env_file=None, DATA_DIR=str(tmp_path), LONG_PATH="/srv/long.json")

    assert settings.collection_paths == {
        "recent": tmp_path / "recent.json",
        "short": tmp_path / "short.json",
        "long": Path("/srv/long.json"),
    }


def test_letterboxd_films_url_and_blank_key() -> None:
    settings = Settings(
        _env_file=None,
        LETTERBOXD_USER="someone",
        LETTERBOXD_URL="https://letterboxd.com/",
        TMDB_API_KEY="   ",
    )

    assert settings.letterboxd_films_url == "https://letterboxd.com/someone/films/by/rated-date/"
    assert settings.tmdb_api_key is None


def test_defaults_match_service_behaviour() -> None:
    settings = Settings(_env_file=None)

    assert settings.min_rating == 3.0
    assert settings.max_recent == 10
    assert settings.runtime_threshold == 120
    assert settings.page_size == 100
    assert settings.shuffle_interval_seconds == 12 * 60 * 60


def test_addon_keys_read_from_comma_separated_environment(monkeypatch) -> None:
    monkeypatch.setenv("ADDON_KEYS", "short, long")

    settings = Settings(_env_file=None)

    assert settings.addon_keys == ("short", "long")
