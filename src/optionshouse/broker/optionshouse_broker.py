from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Union

from optionshouse.broker.models import (
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
from optionshouse.config import Settings
from optionshouse.core.logger import LogContext, get_logger, log_error_with_context
from optionshouse.core.timeutils import epoch_millis
from optionshouse.exceptions import ApiError, AuthenticationError, InvalidOrderError
from optionshouse.protocol import messages as m
from optionshouse.protocol.keys import (
    is_option,
    is_stock,
    security_type,
    to_key,
    underlying_of,
)
from optionshouse.protocol.shapes import NormalizedCollection, ParsePath, ShapeNormalizer
from optionshouse.protocol.transport import HttpJsonTransport, Page

log = get_logger("broker")


class Transport(Protocol):
    def exchange(self, body: str, page: Page) -> str: ...


def _shape(data_model, record) -> ShapeNormalizer:
    return ShapeNormalizer(
        m.Reply[data_model[list[record]]],
        m.Reply[data_model[record]],
    )


ACCOUNTS = _shape(m.AccountInfoData, m.AccountRecord)
POSITIONS = _shape(m.PositionsData, m.PositionRecord)
ACTIVITY = _shape(m.ActivityData, m.ActivityRecord)
QUOTES = _shape(m.QuoteData, m.QuoteRecord)
ORDER_STATUS = _shape(m.OrderStatusData, m.OrderStatusRecord)
ORDER_LEGS = _shape(m.OrderDetailsData, m.OrderLegRecord)
ORDER_HISTORY = _shape(m.OrderHistoryData, m.OrderHistoryRecord)


def _to_int(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _to_float(value: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class OptionsHouseBroker:
    """OptionsHouse API client.

    Each method sends exactly one EZMessage and returns typed results.
    The server asks for at most one request per second; spacing calls is
    the caller's job.

    Usage:
        broker = OptionsHouseBroker(HttpJsonTransport())
        session = broker.login("user", "secret")
        accounts = broker.accounts(session.auth_token)
        positions = broker.positions(session.auth_token, accounts.account_ids[0])
        broker.logout(session.auth_token)
    """

    transport: Transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "OptionsHouseBroker":
        transport = HttpJsonTransport(
            base_url=settings.optionshouse_base_url,
            timeout=settings.request_timeout,
            trace=settings.debug_msg_tracing,
        )
        return cls(transport=transport)

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _send(self, request: m.Request) -> str:
        return self.transport.exchange(request.to_json(), request.PAGE)

    def _check(self, reply: m.Reply, action: str) -> None:
        if reply.alert:
            log.warning(f"{action} alert: {reply.alert}")
        errors = reply.errors
        if errors:
            error = ApiError(action, errors, reply.alert)
            log_error_with_context(log, "Request rejected", error, action=action)
            raise error

    def _call(self, request: m.Request, schema: type[m.Reply], check: bool = True) -> m.Reply:
        with LogContext(action=request.ACTION):
            raw = self._send(request)
            reply = m.parse_reply(raw, schema)
            if check:
                self._check(reply, request.ACTION)
            return reply

    def _call_collection(
        self, request: m.Request, normalizer: ShapeNormalizer
    ) -> NormalizedCollection:
        with LogContext(action=request.ACTION):
            raw = self._send(request)
            collection = normalizer.parse(raw)
            self._check(collection.document, request.ACTION)
            if collection.path is ParsePath.FALLBACK:
                log.debug(f"{request.ACTION}: single record sent as bare object")
            return collection

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, user: str, password: str) -> LoginSession:
        """Authenticate and return the session token plus profile flags.

        Raises:
            AuthenticationError: If the server does not issue a token
        """
        reply = self._call(
            m.LoginRequest(user_name=user, password=password),
            m.Reply[m.LoginData],
            check=False,
        )
        data = reply.data or m.LoginData()
        if reply.errors or not data.auth_token:
            detail = "; ".join(f"{k}={v}" for k, v in reply.errors.items())
            log.error(f"Login failed for {user}: {detail or 'no auth token'}")
            raise AuthenticationError(f"Login failed: {detail or 'no auth token issued'}")

        log.info(f"Logged in as {user}")
        return LoginSession(
            auth_token=data.auth_token,
            first_name=data.first_name,
            last_name=data.last_name,
            funded=data.funded,
            delayed_quotes=data.delayed_quotes,
            access=data.access,
            professional=data.professional,
            requires_account_creation=data.requires_account_creation,
        )

    def logout(self, auth_token: str) -> bool:
        """End the session.

        Returns:
            True if the server cleared the token
        """
        reply = self._call(m.LogoutRequest(auth_token=auth_token), m.Reply[m.LogoutData])
        data = reply.data
        token = auth_token
        if data is not None and data.auth_token is not None:
            token = data.auth_token
        ok = token == ""
        log.info("Logged out" if ok else "Logout did not clear the session token")
        return ok

    def keep_alive(self, auth_token: str, account_id: str) -> None:
        self._call(
            m.KeepAliveRequest(auth_token=auth_token, account=account_id),
            m.Reply[m.EmptyData],
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def accounts(self, auth_token: str) -> AccountList:
        collection = self._call_collection(
            m.AccountInfoRequest(auth_token=auth_token), ACCOUNTS
        )
        data = collection.document.data or m.AccountInfoData()
        login = data.login or m.LoginProfile()
        return AccountList(
            accounts=tuple(
                Account(
                    account_id=a.account_id,
                    account_name=a.account_name,
                    description=a.account_desc,
                    account_type=a.account_type,
                    account_type_id=a.account_type_id,
                    is_virtual=a.is_virtual,
                    year_opened=a.year_account_opened,
                    partner_code=a.partner_code,
                    options_warning=a.options_warning,
                    can_ach=a.can_account_ach,
                    can_change_commission_schedule=a.can_change_commission_schedule,
                    current_commission_schedule=a.current_commission_schedule,
                    next_commission_schedule=a.next_commission_schedule,
                    risk_max_dollars_per_order=a.risk_max_dollars_per_order,
                    risk_max_shares_per_order=a.risk_max_shares_per_order,
                    risk_max_contracts_per_order=a.risk_max_contracts_per_order,
                )
                for a in collection
            ),
            first_name=login.first_name,
            last_name=login.last_name,
            account_mode=login.account_mode,
            default_symbol=login.default_symbol,
            login_count=login.login_count,
            inactivity_timeout=data.inactivity_timeout,
            requires_account_creation=data.requires_account_creation,
        )

    def account_cash(self, auth_token: str, account_id: str) -> AccountCash:
        reply = self._call(
            m.AccountCashRequest(auth_token=auth_token, account=account_id),
            m.Reply[m.AccountCashData],
        )
        d = reply.data or m.AccountCashData()
        return AccountCash(
            account_value=d.account_value,
            account_value_daily_change=d.account_value_daily_change,
            account_value_month_to_date=d.account_value_month_to_date,
            account_value_year_to_date=d.account_value_year_to_date,
            available_to_trade=d.available_to_trade,
            available_to_withdraw=d.available_to_withdraw,
            cash_balance=d.cash_balance,
            day_trading_buying_power=d.day_trading_buy_power,
            margin_equity=d.margin_equity,
            option_buying_power=d.option_buying_power,
            stock_buying_power=d.stock_buying_power,
            pending_orders=d.pending_orders,
            portfolio_value=d.portfolio_value,
        )

    def positions(self, auth_token: str, account_id: str) -> PositionList:
        """Get all open positions for an account.

        A single position may come back as a bare object rather than a
        one-element list; both shapes produce the same PositionList.
        """
        with LogContext(account_id=account_id):
            collection = self._call_collection(
                m.AccountPositionsRequest(auth_token=auth_token, account=account_id),
                POSITIONS,
            )
        data = collection.document.data
        return PositionList(
            positions=tuple(
                Position(
                    account_id=p.account_id,
                    security_key=p.security_key,
                    underlying=p.underlying,
                    qty=p.qty,
                    price=p.price,
                    market_value=p.mkt_val,
                    description=p.description,
                    expiration=p.exp_string,
                    strike=p.strike_string,
                    bid=p.bid,
                    ask=p.ask,
                    gain=p.gain,
                    daily_change=p.daily_change,
                    cost_basis=p.cost_basis,
                    share_cost_basis=p.share_cost_basis,
                    multiplier=p.multiplier,
                    can_exercise=p.can_exercise,
                    new_today=p.position_new_today,
                )
                for p in collection
            ),
            timestamp=data.time_stamp if data else "",
            path=collection.path,
        )

    def activity(self, auth_token: str, account_id: str) -> ActivityList:
        with LogContext(account_id=account_id):
            collection = self._call_collection(
                m.AccountActivityRequest(auth_token=auth_token, account=account_id),
                ACTIVITY,
            )
        data = collection.document.data
        return ActivityList(
            events=tuple(
                ActivityEvent(
                    activity_date=a.activity_date_str,
                    account_id=a.account_id,
                    symbol=a.symbol,
                    transaction=a.transaction,
                    description=a.description,
                    quantity=a.qty,
                    price=a.price,
                    net_amount=a.net_amount,
                )
                for a in collection
            ),
            total=data.total if data else 0,
            timestamp=data.time_stamp if data else 0,
        )

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    def quotes(self, auth_token: str, symbols: Union[str, Iterable[str]]) -> QuoteList:
        """Quote stocks and option contracts in one request.

        Args:
            symbols: Tickers or security keys, in any case/format

        Returns:
            QuoteList; use ``find(symbol)`` to look a quote up by key
        """
        if isinstance(symbols, str):
            symbols = [symbols]
        keys = [to_key(s) for s in symbols]
        stocks = [k for k in keys if is_stock(k)]
        options = [k for k in keys if is_option(k)]
        if not stocks and not options:
            log.debug("No quotable keys requested")
            return QuoteList()

        request = m.QuoteListRequest(
            auth_token=auth_token,
            key=stocks + options,
            add_stock_details=stocks,
            add_extended=stocks,
            add_greeks=options,
        )
        collection = self._call_collection(request, QUOTES)
        data = collection.document.data
        return QuoteList(
            quotes=tuple(
                Quote(
                    key=q.key,
                    symbol=q.symbol,
                    exchange=q.exchange,
                    bid=q.bid,
                    bid_size=q.bid_size,
                    ask=q.ask,
                    ask_size=q.ask_size,
                    last=q.last,
                    open=q.open,
                    high=q.high,
                    low=q.low,
                    prev_close=q.prev_close,
                    change=q.change,
                    change_percent=q.change_percent,
                    volume=q.volume,
                    open_interest=q.oi,
                    implied_vol=q.ivol,
                    delta=q.delta,
                    gamma=q.gamma,
                    theta=q.theta,
                    vega=q.vega,
                )
                for q in collection
            ),
            session=data.session if data else "",
        )

    def option_series(
        self,
        auth_token: str,
        symbol: str,
        quarterlies: bool = True,
        weeklies: bool = False,
    ) -> list[SeriesExpiration]:
        """List option expirations and contract keys for an underlying."""
        underlying = underlying_of(symbol)
        reply = self._call(
            m.ViewSeriesRequest(
                auth_token=auth_token,
                symbol=underlying,
                quarterlies=quarterlies,
                weeklies=weeklies,
            ),
            m.Reply[m.SeriesData],
        )
        data = reply.data or m.SeriesData()
        return [SeriesExpiration(expiration_date=s.e, contracts=tuple(s.k)) for s in data.s]

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def place_simple_order(
        self,
        auth_token: str,
        account_id: str,
        symbol: str,
        quantity: int,
        limit_price: float,
        side: Union[Side, str] = Side.BUY,
        position_type: Union[PositionType, str] = PositionType.OPEN,
        time_in_force: Union[TimeInForce, str] = TimeInForce.DAY,
    ) -> OrderResult:
        """Place a single-leg limit order.

        Args:
            symbol: Ticker or security key of the stock or option

        Returns:
            OrderResult with the server order id

        Raises:
            InvalidOrderError: If order parameters are invalid
            ApiError: If the server rejects the order
        """
        if quantity <= 0:
            raise InvalidOrderError(f"Invalid quantity: {quantity}")
        if limit_price <= 0:
            raise InvalidOrderError(f"Invalid limit price: {limit_price}")
        try:
            side = Side(side)
            position_type = PositionType(position_type)
            time_in_force = TimeInForce(time_in_force)
        except ValueError as e:
            raise InvalidOrderError(str(e)) from e

        key = to_key(symbol)
        sec_type = security_type(key)
        if not sec_type:
            raise InvalidOrderError(f"Cannot trade key without S/C/P flag: {key}")

        order = m.SimpleOrder(
            time_in_force=time_in_force.value,
            price=str(float(limit_price)),
            underlying_stock_symbol=underlying_of(key),
            client_id=epoch_millis(),
            legs=[
                m.OrderLeg(
                    index=0,
                    side=side.value,
                    security_type=sec_type,
                    quantity=quantity,
                    key=key,
                    position_type=position_type.value,
                )
            ],
        )
        with LogContext(account_id=account_id, security_key=key):
            reply = self._call(
                m.CreateOrderRequest(auth_token=auth_token, account=account_id, order=order),
                m.Reply[m.OrderCreatedData],
            )
            data = reply.data or m.OrderCreatedData()
            if data.created:
                log.info(f"Order submitted: {data.id} {side.value.upper()} {quantity} {key} @ {limit_price}")
            else:
                log.warning(f"Order not created: {side.value.upper()} {quantity} {key}")
        return OrderResult(order_id=data.id, success=data.created)

    def cancel_order(self, auth_token: str, account_id: str, order_id: str) -> OrderResult:
        with LogContext(account_id=account_id, order_id=order_id):
            reply = self._call(
                m.CancelOrderRequest(auth_token=auth_token, account=account_id, order_id=order_id),
                m.Reply[m.OrderCanceledData],
            )
            data = reply.data or m.OrderCanceledData()
            if data.canceled:
                log.info(f"Cancelled order: {order_id}")
            else:
                log.warning(f"Order {order_id} was not cancelled")
        return OrderResult(order_id=data.id or order_id, success=data.canceled)

    def order_status(self, auth_token: str, account_id: str) -> list[OrderStatus]:
        """Current orders for an account (first page of 50)."""
        collection = self._call_collection(
            m.AllOrderStatusRequest(auth_token=auth_token, account_id=account_id),
            ORDER_STATUS,
        )
        return [
            OrderStatus(
                order_id=r.order_id,
                master_order_id=r.master_order_id,
                status=r.status,
                underlying_stock_symbol=r.underlying_stock_symbol,
                security_keys=r.security_keys,
                transaction=r.transaction,
                order_type=r.order_type,
                price_type=r.price_type,
                price=r.price,
                time_in_force=r.time_in_force,
                quantity=r.quantity,
                fill_quantity=r.fill_quantity,
                message=r.message,
                short_description=r.short_description,
                long_description=r.long_description,
                date_created=r.date_created,
                last_updated=r.last_updated,
                modifiable=r.modifiable,
                is_spread_order=r.is_spread_order,
                complex_order=r.complex_order,
            )
            for r in collection
        ]

    def order_details(self, auth_token: str, account_id: str, order_id: str) -> OrderDetails:
        collection = self._call_collection(
            m.OrderDetailsRequest(
                auth_token=auth_token,
                account_id=account_id,
                order_details=m.OrderLookup(master_order_id=order_id),
            ),
            ORDER_LEGS,
        )
        data = collection.document.data
        detail = data.order_details if data and data.order_details else None
        legs = tuple(
            OrderLegDetail(
                index=leg.index,
                key=leg.key,
                side=leg.side,
                security_type=leg.security_type,
                position_type=leg.position_type,
                quantity=leg.quantity,
                quantity_filled=leg.quantity_filled,
                multiplier=leg.multiplier,
                ratio_quantity=leg.ratio_quantity,
                transaction=leg.transaction,
                last_updated=leg.last_updated,
            )
            for leg in collection
        )
        if detail is None:
            return OrderDetails(order_id=order_id, legs=legs)
        return OrderDetails(
            order_id=detail.order_id or order_id,
            status=detail.status,
            quantity=detail.quantity,
            price=detail.price,
            price_type=detail.price_type,
            time_in_force=detail.time_in_force,
            date_created=detail.date_created,
            legs=legs,
        )

    def order_history(self, auth_token: str, account_id: str, order_id: str) -> OrderHistory:
        """Fill and status events for one order.

        Quantities and prices arrive as strings; unparseable values count as 0.
        """
        collection = self._call_collection(
            m.OrderHistoryRequest(
                auth_token=auth_token,
                account_id=account_id,
                order_history=m.OrderLookup(master_order_id=order_id),
            ),
            ORDER_HISTORY,
        )
        data = collection.document.data
        return OrderHistory(
            master_order_id=data.master_order_id if data else "",
            timestamp=data.timestamp if data else "",
            events=tuple(
                OrderHistoryEvent(
                    transaction=e.transaction,
                    activity_date=e.activity_date,
                    description=e.description,
                    quantity=_to_int(e.quantity),
                    price=_to_float(e.price),
                    underlying_stock_symbol=e.underlying_stock_symbol,
                    event=e.event,
                )
                for e in collection
            ),
        )


def find_account(accounts: AccountList, account_id: Optional[str]) -> Optional[Account]:
    """Pick ``account_id`` from the list, or the first account when unset."""
    if account_id:
        return accounts.get(account_id)
    return accounts.accounts[0] if accounts.accounts else None
