"""
Tests for duration string parsing used by the session lifetime setting.
"""

import pytest

from bookstore.durations import parse_duration, ttl_seconds


@pytest.mark.unit
class TestParseDuration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1d", 86400.0),
            ("1 day", 86400.0),
            ("12h", 43200.0),
            ("2 hours", 7200.0),
            ("1.5h", 5400.0),
            ("30 minutes", 1800.0),
            ("90s", 90.0),
            ("1w", 604800.0),
            ("500ms", 0.5),
            ("2D", 172800.0),
        ],
    )
    def test_units(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    def test_bare_number_is_milliseconds(self):
        assert parse_duration("1500") == pytest.approx(1.5)

    @pytest.mark.parametrize("value", ["", "day", "1 fortnight", "1d2h", "abc"])
    def test_rejects_garbage(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


@pytest.mark.unit
class TestTtlSeconds:
    def test_rounds_to_whole_seconds(self):
        assert ttl_seconds("1d") == 86400
        assert ttl_seconds("1600ms") == 2

    @pytest.mark.parametrize("value", ["0s", "200ms", "-1d"])
    def test_rejects_sub_second_lifetimes(self, value):
        with pytest.raises(ValueError, match="shorter than one second"):
            ttl_seconds(value)
