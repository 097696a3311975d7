from __future__ import annotations

from .models import (
    Account,
    AccountCash,
    AccountList,
    ActivityEvent,
    ActivityList,
    LoginSession,
    OrderDetails,
    OrderHistory,
    OrderHistoryEvent,
    OrderLegDetail,
    OrderResult,
    OrderStatus,
    Position,
    PositionList,
    PositionType,
    Quote,
    QuoteList,
    SeriesExpiration,
    Side,
    TimeInForce,
)
from .optionshouse_broker import OptionsHouseBroker, find_account

__all__ = [
    "Account",
    "AccountCash",
    "AccountList",
    "ActivityEvent",
    "ActivityList",
    "LoginSession",
    "OptionsHouseBroker",
    "OrderDetails",
    "OrderHistory",
    "OrderHistoryEvent",
    "OrderLegDetail",
    "OrderResult",
    "OrderStatus",
    "Position",
    "PositionList",
    "PositionType",
    "Quote",
    "QuoteList",
    "SeriesExpiration",
    "Side",
    "TimeInForce",
    "find_account",
]
