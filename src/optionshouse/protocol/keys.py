"""Security key codec.

OptionsHouse addresses every instrument with a colon-delimited key::

    IBM:::S                  stock
    IBM:20110716:1600000:C   option (underlying, expiration, strike, flag)

Every function here first routes its input through :func:`to_key`, so bare
tickers, mixed case and stray punctuation all compare and classify the
same way. Nothing is validated beyond punctuation and case: the server is
the authority on whether a key names a real contract. None of these
functions raise.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

_NOT_LETTER = re.compile(r"[^A-Za-z]")
_NOT_KEY_CHAR = re.compile(r"[^A-Za-z0-9:]")

STOCK_SUFFIX = ":::S"


class InstrumentKind(str, Enum):
    STOCK = "S"
    CALL = "C"
    PUT = "P"


def normalize_symbol(symbol: str) -> str:
    """Strip everything but ASCII letters and upper-case the rest."""
    return _NOT_LETTER.sub("", symbol).upper()


def normalize_key(key: str) -> str:
    """Strip everything but ASCII letters, digits and colons; upper-case."""
    return _NOT_KEY_CHAR.sub("", key).upper()


def is_key(value: str) -> bool:
    """True when the input is already a composite key (has a colon)."""
    return ":" in normalize_key(value)


def to_key(value: str) -> str:
    """Canonical key for a bare ticker or an existing key.

    >>> to_key("ibm")
    'IBM:::S'
    >>> to_key(" ibm:20110716:1600000:c ")
    'IBM:20110716:1600000:C'
    """
    if is_key(value):
        return normalize_key(value)
    return normalize_symbol(value) + STOCK_SUFFIX


create_key = to_key


def underlying_of(key: str) -> str:
    return to_key(key).split(":", 1)[0]


def is_stock(key: str) -> bool:
    return to_key(key).endswith(InstrumentKind.STOCK.value)


def is_option(key: str) -> bool:
    return to_key(key).endswith((InstrumentKind.CALL.value, InstrumentKind.PUT.value))


def keys_equal(key1: str, key2: str) -> bool:
    """Compare two keys after canonicalization.

    This is plain string equality: ``1600000`` and ``01600000`` are
    different strikes as far as this function is concerned.
    """
    return to_key(key1) == to_key(key2)


equal = keys_equal


def security_type(key: str) -> str:
    """Order-leg security type for a key: "stock", "option" or ""."""
    if is_stock(key):
        return "stock"
    if is_option(key):
        return "option"
    return ""


@dataclass(frozen=True)
class SecurityKey:
    """Parsed view of a canonical key.

    ``strike`` is in the vendor's integer units (hundredths of a cent);
    non-numeric strikes parse as 0. ``kind`` is None when the trailing flag
    is not one of S/C/P.
    """

    underlying_symbol: str
    expiration: str = ""
    strike: int = 0
    kind: Optional[InstrumentKind] = InstrumentKind.STOCK

    @classmethod
    def parse(cls, value: str) -> "SecurityKey":
        canonical = to_key(value)
        symbol, expiration, strike = (canonical.split(":") + ["", ""])[:3]
        try:
            kind: Optional[InstrumentKind] = InstrumentKind(canonical[-1:])
        except ValueError:
            kind = None
        return cls(
            underlying_symbol=symbol,
            expiration=expiration,
            strike=int(strike) if strike.isdigit() else 0,
            kind=kind,
        )

    @classmethod
    def stock(cls, symbol: str) -> "SecurityKey":
        return cls(underlying_symbol=normalize_symbol(symbol))

    @classmethod
    def option(
        cls,
        symbol: str,
        expiration: str,
        strike: int,
        kind: InstrumentKind,
    ) -> "SecurityKey":
        return cls(
            underlying_symbol=normalize_symbol(symbol),
            expiration=normalize_key(expiration).replace(":", ""),
            strike=strike,
            kind=kind,
        )

    @property
    def is_stock(self) -> bool:
        return self.kind is InstrumentKind.STOCK

    @property
    def is_option(self) -> bool:
        return self.kind in (InstrumentKind.CALL, InstrumentKind.PUT)

    @property
    def key(self) -> str:
        if self.kind is InstrumentKind.STOCK and not self.expiration and not self.strike:
            return self.underlying_symbol + STOCK_SUFFIX
        flag = self.kind.value if self.kind else ""
        return f"{self.underlying_symbol}:{self.expiration}:{self.strike}:{flag}"

    def __str__(self) -> str:
        return self.key
