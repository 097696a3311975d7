"""EZMessage request and reply records.

Every request is sent as ``{"EZMessage": {"action": ..., "data": {...}}}``
and every reply comes back in the same envelope with optional ``errors``
and ``alert`` entries next to ``data``.

Field naming on the wire is not consistent between actions: the
authentication, account and quote actions use camelCase, the order actions
use snake_case. :class:`CamelModel` and :class:`WireModel` cover the two.

Reply data models whose collection field can collapse to a single object
are generic over the field's type, so one definition yields both the
strict and the fallback schema::

    Reply[PositionsData[list[PositionRecord]]]   # strict
    Reply[PositionsData[PositionRecord]]         # fallback
"""
from __future__ import annotations

import json
from typing import Any, ClassVar, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from optionshouse.exceptions import ResponseParseError
from optionshouse.protocol.shapes import Parsed, attempt
from optionshouse.protocol.transport import Page

DataT = TypeVar("DataT")
S = TypeVar("S")


class WireModel(BaseModel):
    """Base for snake_case wire records.

    Missing or null scalars fall back to the field default, unknown fields
    are ignored.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class CamelModel(WireModel):
    model_config = ConfigDict(alias_generator=to_camel)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class EZReply(WireModel, Generic[DataT]):
    action: str = ""
    alert: str = ""
    errors: dict[str, Any] = Field(default_factory=dict)
    data: Optional[DataT] = None


class Reply(WireModel, Generic[DataT]):
    """A parsed reply envelope."""

    ez: Optional[EZReply[DataT]] = Field(default=None, alias="EZMessage")

    @property
    def data(self) -> Optional[DataT]:
        return self.ez.data if self.ez else None

    @property
    def action(self) -> str:
        return self.ez.action if self.ez else ""

    @property
    def alert(self) -> str:
        return self.ez.alert if self.ez else ""

    @property
    def errors(self) -> dict[str, str]:
        if not self.ez:
            return {}
        return {k: str(v) for k, v in self.ez.errors.items()}

    def records(self) -> Any:
        data = self.data
        return data.records() if data is not None else None


def parse_reply(raw: str, schema: type[Reply]) -> Reply:
    """Parse a reply that has no ambiguous collection field.

    Raises:
        ResponseParseError: If the document does not fit ``schema``
    """
    outcome = attempt(raw, schema)
    if isinstance(outcome, Parsed):
        return outcome.model
    raise ResponseParseError(
        f"Invalid {schema.__name__} document: {outcome.error.error_count()} error(s)",
        raw=raw,
    )


class Request(BaseModel):
    """Base for request data; subclasses set ``ACTION`` and ``PAGE``."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    ACTION: ClassVar[str] = ""
    PAGE: ClassVar[Page] = Page.M

    def to_json(self) -> str:
        envelope = {
            "EZMessage": {
                "action": self.ACTION,
                "data": self.model_dump(by_alias=True),
            }
        }
        return json.dumps(envelope)


class SnakeRequest(Request):
    """Request whose data keys go out snake_case (apart from authToken)."""

    model_config = ConfigDict(alias_generator=None)

    auth_token: str = Field(alias="authToken")


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class LoginRequest(Request):
    ACTION: ClassVar[str] = "auth.login"

    user_name: str
    password: str


class LoginData(CamelModel):
    auth_token: str = ""
    first_name: str = ""
    last_name: str = ""
    funded: bool = False
    delayed_quotes: bool = False
    access: str = ""
    professional: bool = False
    requires_account_creation: bool = False


class LogoutRequest(Request):
    ACTION: ClassVar[str] = "auth.logout"

    auth_token: str


class LogoutData(CamelModel):
    auth_token: Optional[str] = None


class KeepAliveRequest(Request):
    ACTION: ClassVar[str] = "auth.keepAlive"

    auth_token: str
    account: str


class EmptyData(WireModel):
    pass


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountInfoRequest(Request):
    ACTION: ClassVar[str] = "account.info"

    auth_token: str


class AccountRecord(CamelModel):
    account_id: str = ""
    account_name: str = ""
    account_desc: str = ""
    account_type: str = ""
    account_type_id: str = ""
    account: str = ""
    is_virtual: bool = False
    year_account_opened: str = ""
    partner_code: str = ""
    options_warning: bool = False
    can_account_ach: bool = Field(default=False, alias="canAccountACH")
    can_change_commission_schedule: bool = False
    current_commission_schedule: str = ""
    next_commission_schedule: str = ""
    risk_max_dollars_per_order: str = ""
    risk_max_shares_per_order: str = ""
    risk_max_contracts_per_order: str = ""


class LoginProfile(CamelModel):
    first_name: str = ""
    last_name: str = ""
    account_mode: str = ""
    rfq_warning: bool = False
    tools_warning: bool = False
    tools_warning_version: str = ""
    login_count: str = ""
    default_symbol: str = ""
    ui_mode: str = ""


class AccountInfoData(CamelModel, Generic[S]):
    account: Optional[S] = None
    login: Optional[LoginProfile] = None
    inactivity_timeout: str = ""
    requires_account_creation: bool = False

    def records(self) -> Optional[S]:
        return self.account


class AccountCashRequest(Request):
    ACTION: ClassVar[str] = "account.cash"

    auth_token: str
    account: str
    portfolio: bool = True
    historical: bool = True
    fast_values: bool = False


class AccountCashData(CamelModel):
    account_value: str = ""
    account_value_daily_change: str = ""
    account_value_month_to_date: str = ""
    account_value_year_to_date: str = ""
    available_to_trade: str = ""
    available_to_withdraw: str = ""
    cash_balance: str = ""
    day_trading_buy_power: str = ""
    margin_equity: str = ""
    option_buying_power: str = ""
    stock_buying_power: str = ""
    pending_orders: str = ""
    portfolio_value: str = ""


class AccountPositionsRequest(Request):
    ACTION: ClassVar[str] = "account.positions"

    auth_token: str
    account: str


class PositionRecord(CamelModel):
    account_id: str = ""
    security_key: str = ""
    underlying: str = ""
    description: str = ""
    exp_string: str = ""
    strike_string: str = ""
    qty: int = 0
    stock: float = 0.0
    multiplier: float = 0.0
    spc: float = 0.0
    price: float = 0.0
    bid: float = 0.0
    ask: float = 0.0
    mkt_val: float = 0.0
    gain: float = 0.0
    daily_change: float = 0.0
    pos_val_change: float = 0.0
    cost_basis: float = 0.0
    share_cost_basis: float = 0.0
    default_cost_basis: float = 0.0
    is_custom_cost_basis: bool = False
    is_exchange_delayed: bool = False
    can_exercise: bool = False
    position_new_today: bool = False


class PositionsData(CamelModel, Generic[S]):
    time_stamp: str = ""
    unified: Optional[S] = None

    def records(self) -> Optional[S]:
        return self.unified


class AccountActivityRequest(Request):
    ACTION: ClassVar[str] = "account.activity"

    auth_token: str
    account: str


class ActivityRecord(CamelModel):
    activity_date_str: str = ""
    account_id: str = ""
    symbol: str = ""
    transaction: str = ""
    description: str = ""
    qty: float = 0.0
    price: float = 0.0
    net_amount: float = 0.0


class ActivityData(CamelModel, Generic[S]):
    total: int = 0
    time_stamp: int = 0
    activity: Optional[S] = None

    def records(self) -> Optional[S]:
        return self.activity


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------


class QuoteListRequest(Request):
    ACTION: ClassVar[str] = "view.quote.list"
    PAGE: ClassVar[Page] = Page.J

    auth_token: str
    key: list[str] = Field(default_factory=list)
    add_extended: list[str] = Field(default_factory=list)
    add_stock_details: list[str] = Field(default_factory=list)
    add_greeks: list[str] = Field(default_factory=list)
    add_company_name: bool = False


class QuoteRecord(CamelModel):
    key: str = ""
    symbol: str = ""
    exchange: str = ""
    bid: float = 0.0
    bid_size: int = 0
    ask: float = 0.0
    ask_size: int = 0
    last: float = 0.0
    mark: float = 0.0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    prev_close: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    daily_change: float = 0.0
    volume: int = 0
    opt_vol: int = 0
    oi: int = 0
    stock_last: float = 0.0
    ivol: float = 0.0
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0
    ext_last: float = 0.0
    ext_close: float = 0.0
    ext_change_amount: float = 0.0
    ext_change_percent: float = 0.0
    ext_change_time: str = ""
    has_dividends: bool = False
    has_earnings: bool = False
    div_confirm: bool = False
    earnings_confirm: bool = False
    is_exchange_delayed: bool = False


class QuoteData(CamelModel, Generic[S]):
    session: str = ""
    quote: Optional[S] = None

    def records(self) -> Optional[S]:
        return self.quote


class ViewSeriesRequest(Request):
    ACTION: ClassVar[str] = "view.series"

    auth_token: str
    symbol: str
    quarterlies: bool = True
    weeklies: bool = False


class SeriesEntry(WireModel):
    e: str = ""
    k: list[str] = Field(default_factory=list)


class SeriesData(WireModel):
    s: list[SeriesEntry] = Field(default_factory=list)
    q: str = ""


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderLeg(WireModel):
    index: int
    side: str
    security_type: str
    quantity: int
    key: str
    multiplier: int = 1
    position_type: str


class SimpleOrder(WireModel):
    order_type: str = "regular"
    order_id: bool = False
    m_order_id: int = 1
    order_subtype: str = "single"
    price_type: str = "limit"
    time_in_force: str
    alias: str = "(A) Order 1"
    price: str
    underlying_stock_symbol: str
    all_or_none: bool = Field(default=False, alias="allOrNone")
    source: str = "API"
    client_id: int
    preferred_destination: str = "BEST"
    legs: list[OrderLeg] = Field(default_factory=list)


class CreateOrderRequest(SnakeRequest):
    ACTION: ClassVar[str] = "order.create.json"
    PAGE: ClassVar[Page] = Page.J

    account: str
    order: SimpleOrder


class OrderCreatedData(WireModel):
    created: bool = False
    id: str = ""


class CancelOrderRequest(SnakeRequest):
    ACTION: ClassVar[str] = "order.cancel.json"
    PAGE: ClassVar[Page] = Page.J

    account: str
    order_id: str


class OrderCanceledData(WireModel):
    canceled: bool = False
    id: str = ""


class MasterOrderPage(WireModel):
    page: int = 0
    page_count: int = 1
    page_size: int = 50
    master_order_view: str = "current"


class AllOrderStatusRequest(SnakeRequest):
    ACTION: ClassVar[str] = "master.account.orders"
    PAGE: ClassVar[Page] = Page.J

    account_id: str
    master_order: MasterOrderPage = Field(default_factory=MasterOrderPage)


class OrderStatusRecord(WireModel):
    order_id: int = 0
    master_order_id: int = 0
    root_order_id: int = 0
    status: str = ""
    message: str = ""
    transaction: str = ""
    short_description: str = ""
    long_description: str = ""
    order_type: str = ""
    price_type: str = ""
    price: float = 0.0
    time_in_force: str = ""
    quantity: int = 0
    fill_quantity: str = ""
    underlying_stock_symbol: str = ""
    security_keys: str = ""
    has_expired_keys: bool = False
    date_created: str = ""
    date_created_ms: int = 0
    last_updated: str = ""
    last_updated_ms: int = 0
    timestamp: str = ""
    trigger_order: bool = False
    trailing_stop_order: bool = False
    complex_order: bool = False
    modifiable: bool = False
    is_spread_order: bool = False
    is_mutual_fund_order: bool = False


class MasterAccountOrders(WireModel, Generic[S]):
    page: int = 0
    page_size: int = 0
    total_records: int = 0
    records: Optional[S] = None


class OrderStatusData(WireModel, Generic[S]):
    timestamp: str = ""
    response_type: str = ""
    master_account_orders: Optional[MasterAccountOrders[S]] = None

    def records(self) -> Optional[S]:
        if self.master_account_orders is None:
            return None
        return self.master_account_orders.records


class OrderLookup(WireModel):
    master_order_view: str = "current"
    master_order_id: str


class OrderDetailsRequest(SnakeRequest):
    # Documented as page "m"; the server only answers on "j"
    ACTION: ClassVar[str] = "order.details"
    PAGE: ClassVar[Page] = Page.J

    account_id: str
    order_details: OrderLookup


class TransactionTime(WireModel):
    raw: str = ""
    pretty: str = ""


class OrderLegRecord(WireModel):
    index: int = 0
    side: str = ""
    security_type: str = ""
    key: str = ""
    multiplier: int = 0
    ratio_quantity: int = 0
    position_type: str = ""
    leg_description: str = ""
    quantity: int = 0
    quantity_filled: int = 0
    transaction: str = ""
    last_updated: str = ""


class OrderDetail(WireModel, Generic[S]):
    order_id: str = ""
    master_order_id: int = 0
    order_type: str = ""
    order_subtype: str = ""
    order_title: str = ""
    order_creator_id: str = ""
    status: str = ""
    quantity: int = 0
    price_type: str = ""
    price: float = 0.0
    time_in_force: str = ""
    time_in_force_desc: str = ""
    all_or_none: bool = Field(default=False, alias="allOrNone")
    preferred_destination: str = ""
    fix_symbol: str = ""
    date_created: str = ""
    date_modified: str = ""
    transaction_time: Optional[TransactionTime] = None
    legs: Optional[S] = None


class OrderDetailsData(WireModel, Generic[S]):
    timestamp: str = ""
    master_order_view: str = ""
    order_details: Optional[OrderDetail[S]] = None

    def records(self) -> Optional[S]:
        if self.order_details is None:
            return None
        return self.order_details.legs


class OrderHistoryRequest(SnakeRequest):
    # Same page quirk as order.details
    ACTION: ClassVar[str] = "order.history"
    PAGE: ClassVar[Page] = Page.J

    account_id: str
    order_history: OrderLookup


class OrderHistoryRecord(WireModel):
    transaction: str = ""
    activity_date: str = ""
    description: str = ""
    quantity: str = ""
    price: str = ""
    underlying_stock_symbol: str = ""
    event: str = ""


class OrderHistoryData(WireModel, Generic[S]):
    master_order_id: str = ""
    timestamp: str = ""
    order_history: Optional[S] = None

    def records(self) -> Optional[S]:
        return self.order_history
