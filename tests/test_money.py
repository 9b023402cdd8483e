"""
Tests for money helpers, configuration and the cart factory
"""

import logging
from decimal import Decimal

import pytest

from shoppingcart import config
from shoppingcart.cart import MemoryStateStore, RedisStateStore
from shoppingcart.factory import build_cart
from shoppingcart.logging import configure_logging, sanitize_id_for_logging, sanitize_string_for_logging
from shoppingcart.money import is_numeric, number_format, present, round_money, to_decimal


class TestMoney:
    """Tests for Decimal helpers."""

    def test_to_decimal(self):
        """Test conversions without float noise."""
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("2.50") == Decimal("2.50")
        assert to_decimal(None) == Decimal("0")

    @pytest.mark.parametrize("value,expected", [
        (1, True),
        ("3.5", True),
        (" 7 ", True),
        (Decimal("1"), True),
        (True, False),
        ("abc", False),
        ("inf", False),
        (None, False),
        ([], False),
    ])
    def test_is_numeric(self, value, expected):
        """Test numeric detection."""
        assert is_numeric(value) is expected

    def test_round_money(self):
        """Test half-up rounding."""
        assert round_money("2.345") == Decimal("2.35")
        assert round_money("2.5", 0) == Decimal("3")

    def test_number_format(self):
        """Test separators and decimals."""
        assert number_format(Decimal("1234567.891")) == "1,234,567.89"
        assert number_format(Decimal("1234.5"), 2, ",", ".") == "1.234,50"
        assert number_format(5, 0) == "5"

    def test_number_format_from_environment(self, monkeypatch):
        """Test CART_FORMAT_* defaults."""
        monkeypatch.setenv("CART_FORMAT_DECIMALS", "3")
        monkeypatch.setenv("CART_FORMAT_DECIMAL_POINT", ",")
        monkeypatch.setenv("CART_FORMAT_THOUSANDS_SEP", " ")

        assert number_format(Decimal("1234.5")) == "1 234,500"

    def test_present(self):
        """Test that unformatted values stay Decimal."""
        assert present("44.0") == Decimal("44.0")
        assert present("44", formatted=True) == "44.00"


class TestFactory:
    """Tests for backend selection."""

    def test_memory_backend(self):
        """Test the default in-process backend."""
        cart = build_cart("memory")

        assert isinstance(cart.state, MemoryStateStore)

    def test_remote_backend(self):
        """Test that remote stores are wired without connecting."""
        cart = build_cart("remote")

        assert isinstance(cart.state, RedisStateStore)

    def test_unknown_backend(self):
        """Test rejection of unknown backends."""
        with pytest.raises(ValueError):
            build_cart("sqlite")

    def test_default_backend(self, monkeypatch):
        """Test CART_BACKEND fallback."""
        monkeypatch.setattr(config, "CART_BACKEND", "memory")

        assert isinstance(build_cart().state, MemoryStateStore)


class TestLogSanitizing:
    """Tests for log-injection helpers."""

    def test_newlines_are_escaped(self):
        """Test that values cannot forge log lines."""
        assert "\n" not in sanitize_string_for_logging("a\nb")
        assert "\n" not in sanitize_id_for_logging("row\nid")

    def test_none(self):
        """Test None identifiers."""
        assert sanitize_id_for_logging(None) == "N/A"

    def test_zero_identifier(self):
        """Test that 0 is logged as itself."""
        assert sanitize_id_for_logging(0) == "0"

    def test_truncation(self):
        """Test prefix of ids and cut of long names."""
        assert sanitize_id_for_logging("0123456789abcdef") == "01234567"
        assert sanitize_string_for_logging("x" * 60, max_length=10) == "xxxxxxxxxx..."

    def test_configure_logging_keeps_existing_handlers(self):
        """Test that a configured root logger is left alone."""
        root = logging.getLogger()
        handlers = list(root.handlers)

        configure_logging()

        assert root.handlers == handlers
