"""Tests for courier field normalization."""

import pytest

from storefront.couriers.normalize import clean_text, normalize_phone, round_amount


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw",
        [
            "+8801712345678",
            "8801712345678",
            "01712345678",
            "1712345678",
            "+880 1712-345678",
            "(+88) 017 1234 5678",
            "88 01712345678",
        ],
    )
    def test_produces_eleven_digits_starting_with_zero(self, raw):
        phone = normalize_phone(raw)

        assert phone == "01712345678"
        assert len(phone) == 11
        assert phone.isdigit()

    def test_empty(self):
        assert normalize_phone("") == "0"
        assert normalize_phone(None) == "0"


class TestCleanText:
    def test_collapses_whitespace(self):
        assert clean_text("House 1,\n  Road 2\t", 100) == "House 1, Road 2"

    def test_caps_length(self):
        assert clean_text("a" * 300, 220) == "a" * 220

    def test_none(self):
        assert clean_text(None, 10) == ""


class TestRoundAmount:
    @pytest.mark.parametrize(
        "value,expected",
        [(2350, 2350), (2350.5, 2351), (2350.49, 2350), ("650", 650), (None, 0)],
    )
    def test_rounds_half_up(self, value, expected):
        assert round_amount(value) == expected

    def test_invalid_raises(self):
        with pytest.raises(ValueError):
            round_amount("abc")

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), "Infinity"])
    def test_non_finite_raises(self, value):
        with pytest.raises(ValueError, match="Invalid amount"):
            round_amount(value)
