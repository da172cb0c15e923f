import random

import pytest

from app.utils import fallback_film_id, parse_skip, shuffled, slugify, split_title_year, unique_by


def test_slugify_basic():
    assert slugify("Amélie (2001)!") == "amelie-2001"
    assert slugify("???") == "film"


def test_split_title_year():
    assert split_title_year("Dune: Part Two (2024)") == ("Dune: Part Two", "2024")
    assert split_title_year("Blade Runner 2049") == ("Blade Runner 2049", None)


def test_fallback_film_id_replaces_slashes():
    assert fallback_film_id("/film/past-lives/") == "unknown__film_past-lives_"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 0), ("", 0), ("abc", 0), ("-5", 0), ("20", 20), ("7.9", 7), (42, 42)],
)
def test_parse_skip(raw, expected):
    assert parse_skip(raw) == expected


def test_unique_by_keeps_first_occurrence():
    items = [("a", 1), ("b", 2), ("a", 3)]
    assert unique_by(items, key=lambda item: item[0]) == [("a", 1), ("b", 2)]


def test_shuffled_returns_new_permutation():
    source = [1, 2, 3, 4, 5]
    result = shuffled(source, random.Random(7))
    assert sorted(result) == source
    assert result is not source
