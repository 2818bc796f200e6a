from decimal import Decimal

import pytest

from sonoplugins.quantity import Quantity, QuantityError, QuantityFormat, parse_quantity


def test_binary_suffix_value():
    assert parse_quantity("1Ki").value == Decimal(1024)
    assert parse_quantity("1Ki").format is QuantityFormat.BINARY_SI


@pytest.mark.parametrize("text", ["1Ki", "500m", "2Gi", "1k", "3", "16331004Ki", "250u"])
def test_canonical_strings_round_trip(text):
    assert str(parse_quantity(text)) == text


def test_equal_amounts_in_different_notation():
    assert parse_quantity("1000m") == parse_quantity("1")
    assert parse_quantity("1e3") == parse_quantity("1k")


def test_canonical_form_of_milli_whole():
    assert str(parse_quantity("1000m")) == "1"


def test_fractional_binary_canonicalises_to_smaller_unit():
    assert str(parse_quantity("1.5Gi")) == "1536Mi"


def test_exponent_format_kept():
    assert str(parse_quantity("1e3")) == "1e3"
    assert parse_quantity("1e3").format is QuantityFormat.DECIMAL_EXPONENT


def test_ordering_binary_above_decimal():
    assert parse_quantity("1Gi") > parse_quantity("1G")
    assert parse_quantity("4") < parse_quantity("8")
    assert sorted([parse_quantity("2"), parse_quantity("500m")])[0] == parse_quantity("500m")


def test_zero_prints_as_zero():
    assert str(Quantity(Decimal(0), QuantityFormat.BINARY_SI)) == "0"


def test_sub_nano_rounds_up():
    assert parse_quantity("0.1n") == parse_quantity("1n")


@pytest.mark.parametrize("text", ["", "abc", "1X", "1K", "1.2.3", " 1"])
def test_invalid_quantities_raise(text):
    with pytest.raises(QuantityError):
        parse_quantity(text)