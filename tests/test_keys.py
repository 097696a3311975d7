"""Tests for the security key codec."""
import pytest

from optionshouse.protocol.keys import (
    InstrumentKind,
    SecurityKey,
    create_key,
    equal,
    is_key,
    is_option,
    is_stock,
    keys_equal,
    normalize_key,
    normalize_symbol,
    security_type,
    to_key,
    underlying_of,
)


class TestNormalization:
    """Tests for symbol and key normalization."""

    def test_normalize_symbol_keeps_letters_only(self):
        assert normalize_symbol(" ibm ") == "IBM"
        assert normalize_symbol("brk.b") == "BRKB"
        assert normalize_symbol("abc123:") == "ABC"

    def test_normalize_symbol_drops_non_ascii(self):
        assert normalize_symbol("ibmé") == "IBM"

    def test_normalize_key_keeps_digits_and_colons(self):
        assert normalize_key(" ibm:20110716:1600000:c ") == "IBM:20110716:1600000:C"
        assert normalize_key("ibm-:::s") == "IBM:::S"

    def test_empty_input(self):
        assert normalize_symbol("") == ""
        assert normalize_key("") == ""
        assert is_key("") is False

    def test_is_key(self):
        assert is_key("IBM:::S") is True
        assert is_key("ibm") is False
        assert is_key(":") is True


class TestToKey:
    """Tests for canonical key construction."""

    def test_bare_ticker_becomes_stock_key(self):
        assert to_key("ibm") == "IBM:::S"
        assert to_key("Spy") == "SPY:::S"

    def test_existing_key_is_normalized(self):
        assert to_key("ibm:20110716:1600000:c") == "IBM:20110716:1600000:C"

    def test_empty_input_yields_bare_stock_suffix(self):
        assert to_key("") == ":::S"

    @pytest.mark.parametrize(
        "value",
        ["ibm", "IBM:::S", "ibm:20110716:1600000:c", "", "  x-y ", "123", "a:b"],
    )
    def test_idempotent(self, value):
        assert to_key(to_key(value)) == to_key(value)

    def test_create_key_alias(self):
        assert create_key("aapl") == to_key("aapl")


class TestClassification:
    """Tests for stock/option classification."""

    def test_stock(self):
        assert is_stock("IBM") is True
        assert is_stock("IBM:::S") is True
        assert is_option("IBM") is False

    def test_option(self):
        for key in ("IBM:20110716:1600000:C", "IBM:20110716:1600000:P"):
            assert is_option(key) is True
            assert is_stock(key) is False

    def test_unknown_flag_is_neither(self):
        assert is_stock("IBM:20110716:1600000:X") is False
        assert is_option("IBM:20110716:1600000:X") is False
        assert security_type("IBM:20110716:1600000:X") == ""

    def test_security_type(self):
        assert security_type("ibm") == "stock"
        assert security_type("IBM:20110716:1600000:c") == "option"

    def test_underlying_of(self):
        assert underlying_of("ibm") == "IBM"
        assert underlying_of("IBM:20110716:1600000:C") == "IBM"
        assert underlying_of("") == ""


class TestEquality:
    """Tests for key comparison."""

    def test_bare_ticker_equals_stock_key(self):
        assert keys_equal("ibm", "IBM:::s") is True
        assert equal("ibm", "IBM:::s") is True

    def test_case_insensitive_option(self):
        assert keys_equal("ibm:20110716:1600000:c", "IBM:20110716:1600000:C") is True

    def test_zero_padded_strike_is_not_equal(self):
        """Strikes are compared as text, so leading zeros matter."""
        assert keys_equal("IBM:20110716:1600000:C", "ibm:20110716:01600000:c") is False

    def test_different_symbols(self):
        assert keys_equal("IBM", "AAPL") is False


class TestSecurityKey:
    """Tests for the parsed key value."""

    def test_parse_stock(self):
        k = SecurityKey.parse("ibm")
        assert k.underlying_symbol == "IBM"
        assert k.kind is InstrumentKind.STOCK
        assert k.is_stock is True
        assert k.key == "IBM:::S"

    def test_parse_option(self):
        k = SecurityKey.parse("ibm:20110716:1600000:c")
        assert k.underlying_symbol == "IBM"
        assert k.expiration == "20110716"
        assert k.strike == 1600000
        assert k.kind is InstrumentKind.CALL
        assert k.is_option is True
        assert str(k) == "IBM:20110716:1600000:C"

    def test_parse_unknown_flag(self):
        k = SecurityKey.parse("IBM:20110716:abc:Z")
        assert k.kind is None
        assert k.strike == 0
        assert k.is_stock is False
        assert k.is_option is False

    def test_constructors(self):
        assert str(SecurityKey.stock("spy")) == "SPY:::S"
        put = SecurityKey.option("spy", "20240119", 4500000, InstrumentKind.PUT)
        assert put.key == "SPY:20240119:4500000:P"
        assert keys_equal(put.key, "spy:20240119:4500000:p")
