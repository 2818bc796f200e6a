"""Kubernetes resource quantities such as "500m", "4" or "16Gi"."""

from __future__ import annotations

import decimal
import enum
import re
from dataclasses import dataclass
from decimal import Decimal
from functools import total_ordering

_CTX = decimal.Context(prec=100)
_NANO = Decimal("1e-9")

_NUMBER_RE = re.compile(r"^([+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+))(.*)$")
_EXPONENT_RE = re.compile(r"^[eE]([+-]?[0-9]+)$")

_BINARY_SUFFIXES = {"Ki": 10, "Mi": 20, "Gi": 30, "Ti": 40, "Pi": 50, "Ei": 60}
_DECIMAL_SUFFIXES = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}
_DECIMAL_NAMES = {exp: name for name, exp in _DECIMAL_SUFFIXES.items()}

ERR_FORMAT_WRONG = (
    "quantities must match the regular expression "
    "'^([+-]?[0-9.]+)([eEinumkKMGTP]*[-+]?[0-9]*)$'"
)
ERR_SUFFIX = "unable to parse quantity's suffix"


class QuantityError(ValueError):
    """Raised when a quantity cannot be parsed."""


class QuantityFormat(enum.Enum):
    """How a quantity is written."""

    DECIMAL_SI = "DecimalSI"
    BINARY_SI = "BinarySI"
    DECIMAL_EXPONENT = "DecimalExponent"


@total_ordering
@dataclass(frozen=True, eq=False)
class Quantity:
    """An exact amount of a resource together with the notation it was given in."""

    value: Decimal
    format: QuantityFormat = QuantityFormat.DECIMAL_SI

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: Quantity) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.value < other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        value = self.value
        if value == 0:
            return "0"
        fmt = self.format
        if fmt is QuantityFormat.BINARY_SI and (
            abs(value) < 1024 or value != value.to_integral_value()
        ):
            fmt = QuantityFormat.DECIMAL_SI

        if fmt is QuantityFormat.BINARY_SI:
            number = int(value)
            for name, power in sorted(_BINARY_SUFFIXES.items(), key=lambda kv: -kv[1]):
                if number % (1 << power) == 0:
                    return f"{number >> power}{name}"
            return str(number)

        mantissa = int(value.scaleb(9, _CTX))
        exponent = -9
        while exponent < 18 and mantissa % 1000 == 0:
            mantissa //= 1000
            exponent += 3
        if fmt is QuantityFormat.DECIMAL_EXPONENT:
            return f"{mantissa}e{exponent}" if exponent else str(mantissa)
        return f"{mantissa}{_DECIMAL_NAMES[exponent]}"


def parse_quantity(text: str) -> Quantity:
    """Parse a quantity, rounding any precision finer than nano units upwards."""
    match = _NUMBER_RE.match(text)
    if not match:
        raise QuantityError(ERR_FORMAT_WRONG)
    number = Decimal(match.group(1))
    suffix = match.group(2)

    if suffix in _BINARY_SUFFIXES:
        fmt = QuantityFormat.BINARY_SI
        value = _CTX.multiply(number, _CTX.power(Decimal(2), _BINARY_SUFFIXES[suffix]))
    elif suffix in _DECIMAL_SUFFIXES:
        fmt = QuantityFormat.DECIMAL_SI
        value = number.scaleb(_DECIMAL_SUFFIXES[suffix], _CTX)
    else:
        exp_match = _EXPONENT_RE.match(suffix)
        if not exp_match:
            raise QuantityError(ERR_SUFFIX)
        fmt = QuantityFormat.DECIMAL_EXPONENT
        value = number.scaleb(int(exp_match.group(1)), _CTX)

    value = value.quantize(_NANO, rounding=decimal.ROUND_UP, context=_CTX)
    return Quantity(value, fmt)