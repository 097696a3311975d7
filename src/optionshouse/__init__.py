from __future__ import annotations

from .broker import OptionsHouseBroker, PositionType, Side, TimeInForce
from .exceptions import (
    ApiError,
    AuthenticationError,
    BrokerError,
    InvalidOrderError,
    OptionsHouseError,
    ResponseParseError,
    ResponseShapeError,
    TransportError,
)
from .protocol.keys import (
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
from .protocol.shapes import NormalizedCollection, ShapeNormalizer, normalize
from .protocol.transport import HttpJsonTransport, Page

__all__ = [
    "ApiError",
    "AuthenticationError",
    "BrokerError",
    "HttpJsonTransport",
    "InvalidOrderError",
    "NormalizedCollection",
    "OptionsHouseBroker",
    "OptionsHouseError",
    "Page",
    "PositionType",
    "ResponseParseError",
    "ResponseShapeError",
    "SecurityKey",
    "ShapeNormalizer",
    "Side",
    "TimeInForce",
    "TransportError",
    "create_key",
    "equal",
    "is_key",
    "is_option",
    "is_stock",
    "keys_equal",
    "normalize",
    "normalize_key",
    "normalize_symbol",
    "security_type",
    "to_key",
    "underlying_of",
]
