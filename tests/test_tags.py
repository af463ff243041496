"""Tests for tag parsing and normalization."""

from manga_tracker.tags import (
    merge_tags,
    normalize_sources,
    normalize_tags,
    parse_bulk_tags,
    strip_count_tokens,
)


def test_purely_numeric_lines_are_dropped():
    assert parse_bulk_tags("185K\n42\n1.2K") == []


def test_count_tokens_stripped_from_mixed_lines():
    assert parse_bulk_tags("160K big breasts") == ["big breasts"]


def test_bulk_listing():
    text = """
    Full Color
    185K
    160K big breasts
    sole female 98K
    full color
    """
    assert parse_bulk_tags(text) == ["full color", "big breasts", "sole female"]


def test_words_containing_digits_are_kept():
    assert strip_count_tokens("2d art 5K") == "2d art"
    assert parse_bulk_tags("4koma") == ["4koma"]


def test_empty_input():
    assert parse_bulk_tags("") == []
    assert parse_bulk_tags("\n\n  \n") == []


def test_normalize_tags_keeps_first_seen_order():
    assert normalize_tags(["B", "a", "b", " A "]) == ["b", "a"]


def test_normalize_sources_keeps_case():
    assert normalize_sources(["MangaDex", "", "MangaDex", " https://x.org "]) == ["MangaDex", "https://x.org"]


def test_merge_tags():
    assert merge_tags(["romance"], ["Romance", "drama"]) == ["romance", "drama"]
