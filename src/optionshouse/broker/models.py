from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from optionshouse.protocol.keys import is_option, keys_equal, to_key
from optionshouse.protocol.shapes import ParsePath


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


class PositionType(str, Enum):
    OPEN = "opening"
    CLOSE = "closing"


class TimeInForce(str, Enum):
    DAY = "day"
    GTC = "good_till_cancel"
    EXT = "ext_trading"


@dataclass(frozen=True)
class LoginSession:
    auth_token: str
    first_name: str = ""
    last_name: str = ""
    funded: bool = False
    delayed_quotes: bool = False
    access: str = ""
    professional: bool = False
    requires_account_creation: bool = False


@dataclass(frozen=True)
class Account:
    account_id: str
    account_name: str
    description: str = ""
    account_type: str = ""
    account_type_id: str = ""
    is_virtual: bool = False
    year_opened: str = ""
    partner_code: str = ""
    options_warning: bool = False
    can_ach: bool = False
    can_change_commission_schedule: bool = False
    current_commission_schedule: str = ""
    next_commission_schedule: str = ""
    risk_max_dollars_per_order: str = ""
    risk_max_shares_per_order: str = ""
    risk_max_contracts_per_order: str = ""


@dataclass(frozen=True)
class AccountList:
    accounts: tuple[Account, ...] = ()
    first_name: str = ""
    last_name: str = ""
    account_mode: str = ""
    default_symbol: str = ""
    login_count: str = ""
    inactivity_timeout: str = ""
    requires_account_creation: bool = False

    def __len__(self) -> int:
        return len(self.accounts)

    def __iter__(self) -> Iterator[Account]:
        return iter(self.accounts)

    @property
    def account_ids(self) -> list[str]:
        return [a.account_id for a in self.accounts]

    @property
    def account_names(self) -> list[str]:
        return [a.account_name for a in self.accounts]

    def get(self, account_id: str) -> Optional[Account]:
        for a in self.accounts:
            if a.account_id == account_id:
                return a
        return None

    def name_for_id(self, account_id: str) -> str:
        a = self.get(account_id)
        return a.account_name if a else ""

    def id_for_name(self, account_name: str) -> str:
        for a in self.accounts:
            if a.account_name == account_name:
                return a.account_id
        return ""


@dataclass(frozen=True)
class AccountCash:
    """Balances as reported by the server (formatted strings)."""

    account_value: str = ""
    account_value_daily_change: str = ""
    account_value_month_to_date: str = ""
    account_value_year_to_date: str = ""
    available_to_trade: str = ""
    available_to_withdraw: str = ""
    cash_balance: str = ""
    day_trading_buying_power: str = ""
    margin_equity: str = ""
    option_buying_power: str = ""
    stock_buying_power: str = ""
    pending_orders: str = ""
    portfolio_value: str = ""


@dataclass(frozen=True)
class Position:
    account_id: str
    security_key: str
    underlying: str
    qty: int
    price: float
    market_value: float
    description: str = ""
    expiration: str = ""
    strike: str = ""
    bid: float = 0.0
    ask: float = 0.0
    gain: float = 0.0
    daily_change: float = 0.0
    cost_basis: float = 0.0
    share_cost_basis: float = 0.0
    multiplier: float = 0.0
    can_exercise: bool = False
    new_today: bool = False

    @property
    def is_option(self) -> bool:
        return is_option(self.security_key)


@dataclass(frozen=True)
class PositionList:
    positions: tuple[Position, ...] = ()
    timestamp: str = ""
    path: ParsePath = ParsePath.STRICT

    def __len__(self) -> int:
        return len(self.positions)

    def __iter__(self) -> Iterator[Position]:
        return iter(self.positions)

    def find(self, symbol: str) -> Optional[Position]:
        for p in self.positions:
            if keys_equal(symbol, p.security_key):
                return p
        return None


@dataclass(frozen=True)
class ActivityEvent:
    activity_date: str
    account_id: str
    symbol: str
    transaction: str
    description: str
    quantity: float
    price: float
    net_amount: float


@dataclass(frozen=True)
class ActivityList:
    events: tuple[ActivityEvent, ...] = ()
    total: int = 0
    timestamp: int = 0

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[ActivityEvent]:
        return iter(self.events)


@dataclass(frozen=True)
class Quote:
    key: str
    symbol: str = ""
    exchange: str = ""
    bid: float = 0.0
    bid_size: int = 0
    ask: float = 0.0
    ask_size: int = 0
    last: float = 0.0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    prev_close: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    volume: int = 0
    # Options only
    open_interest: int = 0
    implied_vol: float = 0.0
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0


@dataclass(frozen=True)
class QuoteList:
    quotes: tuple[Quote, ...] = ()
    session: str = ""

    def __len__(self) -> int:
        return len(self.quotes)

    def __iter__(self) -> Iterator[Quote]:
        return iter(self.quotes)

    def find(self, symbol: str) -> Optional[Quote]:
        """Quote whose key matches ``symbol`` (ticker or key), if any."""
        key = to_key(symbol)
        for q in self.quotes:
            if keys_equal(key, q.key):
                return q
        return None


@dataclass(frozen=True)
class SeriesExpiration:
    expiration_date: str
    contracts: tuple[str, ...] = ()


@dataclass(frozen=True)
class OrderResult:
    """Outcome of a create or cancel request."""

    order_id: str
    success: bool


@dataclass(frozen=True)
class OrderStatus:
    order_id: int
    master_order_id: int
    status: str
    underlying_stock_symbol: str = ""
    security_keys: str = ""
    transaction: str = ""
    order_type: str = ""
    price_type: str = ""
    price: float = 0.0
    time_in_force: str = ""
    quantity: int = 0
    fill_quantity: str = ""
    message: str = ""
    short_description: str = ""
    long_description: str = ""
    date_created: str = ""
    last_updated: str = ""
    modifiable: bool = False
    is_spread_order: bool = False
    complex_order: bool = False


@dataclass(frozen=True)
class OrderLegDetail:
    index: int
    key: str
    side: str = ""
    security_type: str = ""
    position_type: str = ""
    quantity: int = 0
    quantity_filled: int = 0
    multiplier: int = 0
    ratio_quantity: int = 0
    transaction: str = ""
    last_updated: str = ""


@dataclass(frozen=True)
class OrderDetails:
    order_id: str
    status: str = ""
    quantity: int = 0
    price: float = 0.0
    price_type: str = ""
    time_in_force: str = ""
    date_created: str = ""
    legs: tuple[OrderLegDetail, ...] = ()

    @property
    def is_fully_filled(self) -> bool:
        return self.status == "Filled"

    @property
    def total_filled(self) -> int:
        return sum(leg.quantity_filled for leg in self.legs)

    def leg(self, symbol: str) -> Optional[OrderLegDetail]:
        for leg in self.legs:
            if keys_equal(symbol, leg.key):
                return leg
        return None


@dataclass(frozen=True)
class OrderHistoryEvent:
    transaction: str
    activity_date: str
    description: str
    quantity: int
    price: float
    underlying_stock_symbol: str = ""
    event: str = ""


@dataclass(frozen=True)
class OrderHistory:
    master_order_id: str = ""
    timestamp: str = ""
    events: tuple[OrderHistoryEvent, ...] = ()

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[OrderHistoryEvent]:
        return iter(self.events)

    @property
    def total_quantity(self) -> int:
        return sum(e.quantity for e in self.events)

    @property
    def average_price(self) -> float:
        """Quantity-weighted average fill price, 0.0 when nothing filled."""
        qty = self.total_quantity
        if qty == 0:
            return 0.0
        return sum(e.quantity * e.price for e in self.events) / qty
