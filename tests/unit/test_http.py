"""
Unit tests for header parsing and content negotiation.
"""

import pytest

from myrequest.http import (
    DEFAULT_LOCALE,
    is_truthy_flag,
    match_language,
    parse_accept_entries,
    parse_accept_header,
    parse_content_type,
    parse_etags,
)


class TestParseAcceptHeader:
    """Tests for parse_accept_header."""

    def test_quality_orders_entries(self):
        """Test that a lower quality sorts after the default quality."""
        accept = parse_accept_header("audio/*; q=0.2, audio/basic")

        assert list(accept) == ["audio/basic", "audio/*"]
        assert accept.quality("audio/basic") == 1
        assert accept.quality("audio/*") == 0.2

    def test_params_and_flags(self):
        """Test ordering and parameters of a header with mixed entries."""
        accept = parse_accept_header(
            "text/plain; q=0.5, application/json; version=1.0,"
            " application/xml; version=2.0; x, text/x-dvi; q=0.8, text/x-c"
        )

        assert list(accept) == [
            "application/json",
            "application/xml",
            "text/x-c",
            "text/x-dvi",
            "text/plain",
        ]
        assert accept["application/json"].params == {"version": "1.0"}
        assert accept["application/xml"].params == {"version": "2.0"}
        assert accept["application/xml"].flags == ("x",)
        assert accept["text/x-dvi"].quality == 0.8

    @pytest.mark.parametrize("value", [None, "", " ", " , ,"])
    def test_empty_header(self, value):
        """Test that blank headers give an empty result."""
        accept = parse_accept_header(value)

        assert len(accept) == 0
        assert accept.best is None

    def test_wildcards_sort_last(self):
        """Test that */* sorts after a type wildcard, which sorts after a
        concrete type of the same quality."""
        accept = parse_accept_header("*/*, text/*, text/html")

        assert list(accept) == ["text/html", "text/*", "*/*"]
        assert accept.best == "text/html"

    def test_concrete_types_keep_header_order(self):
        """Test that equal entries keep the order they were sent in."""
        accept = parse_accept_header("text/b, text/a, text/c")

        assert accept.values_list() == ["text/b", "text/a", "text/c"]

    def test_invalid_quality(self):
        """Test that a non numeric quality counts as 0 and a large one
        is clamped to 1."""
        accept = parse_accept_header("a/a; q=abc, b/b; q=2, c/c; q=0.5")

        assert accept.quality("a/a") == 0
        assert accept.quality("b/b") == 1
        assert list(accept) == ["b/b", "c/c", "a/a"]

    def test_missing_quality(self):
        """Test quality lookup for a name that was not sent."""
        accept = parse_accept_header("text/html")

        assert accept.quality("application/json") == 0
        assert "text/html" in accept

    def test_entry_index_counts_empty_segments(self):
        """Test that the index is the position in the header."""
        entries = parse_accept_entries("a/a, , b/b")

        assert [(e.name, e.index) for e in entries] == [("a/a", 0), ("b/b", 2)]


class TestMatchLanguage:
    """Tests for match_language."""

    def test_first_acceptable_with_match_wins(self):
        """Test that an acceptable language without a match is skipped."""
        result = match_language(["en-us", "de", "ru-ru"], ["ru", "de"])

        assert result == "de"

    def test_no_match_returns_first_supported(self):
        """Test the fallback to the first supported language."""
        result = match_language(["en-us", "de"], ["ru-ru", "pl"])

        assert result == "ru-ru"

    def test_prefix_match_keeps_supported_case(self):
        """Test matching a region variant against a base language."""
        assert match_language(["en-us"], ["EN"]) == "EN"
        assert match_language(["de"], ["fr", "de_AT"]) == "de_AT"

    def test_no_supported_languages(self):
        """Test that the default locale is used without supported
        languages."""
        assert match_language(["de"], []) == DEFAULT_LOCALE
        assert match_language(["de"], [], default="fr") == "fr"


class TestHeaderHelpers:
    """Tests for the smaller header helpers."""

    def test_parse_etags(self):
        """Test splitting entity tags and removing the gzip suffix."""
        assert parse_etags('"foo-gzip", bar') == ['"foo"', "bar"]
        assert parse_etags('"a"  "b",,"c"') == ['"a"', '"b"', '"c"']
        assert parse_etags(None) == []

    def test_parse_content_type(self):
        """Test removing parameters from a content type."""
        assert parse_content_type("application/json; charset=UTF-8") == "application/json"
        assert parse_content_type("text/plain") == "text/plain"
        assert parse_content_type(None) is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("on", True),
            ("ON", True),
            ("1", True),
            (True, True),
            ("off", False),
            ("", False),
            (None, False),
            (False, False),
        ],
    )
    def test_is_truthy_flag(self, value, expected):
        """Test interpreting the server TLS flag."""
        assert is_truthy_flag(value) is expected
