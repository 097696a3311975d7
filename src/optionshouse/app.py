from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

import typer

from optionshouse.broker import OptionsHouseBroker, PositionType, Side, TimeInForce
from optionshouse.config import Settings, get_settings
from optionshouse.core.logger import get_logger, setup_logging
from optionshouse.exceptions import OptionsHouseError
from optionshouse.protocol.keys import SecurityKey, security_type, to_key

log = get_logger("cli")
cli_app = typer.Typer(help="OptionsHouse API client.")

R = TypeVar("R")


class Session:
    """Logged-in broker session that spaces out requests.

    The server asks for no more than one request per second, so every call
    after the first waits ``interval`` seconds.
    """

    def __init__(self, broker: OptionsHouseBroker, token: str, interval: float):
        self.broker = broker
        self.token = token
        self.interval = interval
        self._last: Optional[float] = None

    def pace(self) -> None:
        if self._last is not None:
            wait = self.interval - (time.monotonic() - self._last)
            if wait > 0:
                time.sleep(wait)
        self._last = time.monotonic()

    def call(self, fn: Callable[..., R], *args, **kwargs) -> R:
        self.pace()
        return fn(self.token, *args, **kwargs)


@contextmanager
def _session(settings: Settings) -> Iterator[Session]:
    settings.validate_credentials()
    broker = OptionsHouseBroker.from_settings(settings)
    try:
        session = Session(broker, "", settings.request_interval_seconds)
        session.pace()
        login = broker.login(settings.optionshouse_user, settings.optionshouse_password)
        session.token = login.auth_token
        try:
            yield session
        finally:
            session.pace()
            try:
                broker.logout(session.token)
            except OptionsHouseError as e:
                log.warning(f"Logout failed: {e}")
    finally:
        broker.close()


def _account_id(session: Session, settings: Settings, account: Optional[str]) -> str:
    account_id = account or settings.optionshouse_account_id
    if account_id:
        return account_id
    accounts = session.call(session.broker.accounts)
    if not accounts.account_ids:
        raise typer.BadParameter("No accounts available for this login")
    return accounts.account_ids[0]


def _init(verbose: bool) -> Settings:
    settings = get_settings()
    setup_logging("DEBUG" if verbose else settings.log_level)
    return settings


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except (OptionsHouseError, ValueError) as e:
        log.error(f"{type(e).__name__}: {e}")
        raise typer.Exit(code=1)


AccountOpt = typer.Option(None, "--account", "-a", help="Account id (defaults to OPTIONSHOUSE_ACCOUNT_ID or the first account)")
VerboseOpt = typer.Option(False, "--verbose", "-v", help="Debug logging")


@cli_app.command()
def key(symbols: list[str] = typer.Argument(..., help="Tickers or security keys")):
    """Show the canonical security key for each symbol (no login needed)."""
    for symbol in symbols:
        k = to_key(symbol)
        parsed = SecurityKey.parse(symbol)
        kind = security_type(k) or "unknown"
        typer.echo(f"{symbol} -> {k} ({kind}, underlying {parsed.underlying_symbol})")


@cli_app.command()
def accounts(verbose: bool = VerboseOpt):
    """List accounts for the configured login."""
    settings = _init(verbose)
    with _cli_errors(), _session(settings) as s:
        result = s.call(s.broker.accounts)
        for a in result:
            typer.echo(f"{a.account_id}\t{a.account_name}\t{a.account_type}\t{a.description}")


@cli_app.command()
def cash(account: Optional[str] = AccountOpt, verbose: bool = VerboseOpt):
    """Show balances and buying power."""
    settings = _init(verbose)
    with _cli_errors(), _session(settings) as s:
        c = s.call(s.broker.account_cash, _account_id(s, settings, account))
        typer.echo(f"Account value:      {c.account_value}")
        typer.echo(f"Cash balance:       {c.cash_balance}")
        typer.echo(f"Available to trade: {c.available_to_trade}")
        typer.echo(f"Stock buying power: {c.stock_buying_power}")
        typer.echo(f"Option buying power:{c.option_buying_power}")
        typer.echo(f"Pending orders:     {c.pending_orders}")


@cli_app.command()
def positions(account: Optional[str] = AccountOpt, verbose: bool = VerboseOpt):
    """List open positions."""
    settings = _init(verbose)
    with _cli_errors(), _session(settings) as s:
        result = s.call(s.broker.positions, _account_id(s, settings, account))
        for p in result:
            typer.echo(f"{p.security_key}\t{p.qty}\t{p.price:.2f}\t{p.market_value:.2f}\t{p.gain:+.2f}")
        typer.echo(f"{len(result)} position(s) as of {result.timestamp}")


@cli_app.command()
def activity(account: Optional[str] = AccountOpt, verbose: bool = VerboseOpt):
    """Show recent account activity."""
    settings = _init(verbose)
    with _cli_errors(), _session(settings) as s:
        result = s.call(s.broker.activity, _account_id(s, settings, account))
        for e in result:
            typer.echo(f"{e.activity_date}\t{e.transaction}\t{e.symbol}\t{e.quantity:g}\t{e.price:.2f}\t{e.net_amount:.2f}")


@cli_app.command()
def quote(symbols: list[str] = typer.Argument(..., help="Tickers or security keys"), verbose: bool = VerboseOpt):
    """Quote stocks and options."""
    settings = _init(verbose)
    with _cli_errors(), _session(settings) as s:
        result = s.call(s.broker.quotes, symbols)
        for symbol in symbols:
            q = result.find(symbol)
            if q is None:
                typer.echo(f"{to_key(symbol)}\tno quote")
                continue
            typer.echo(f"{q.key}\tbid {q.bid:.2f}\task {q.ask:.2f}\tlast {q.last:.2f}\tvol {q.volume}")


@cli_app.command()
def series(
    symbol: str = typer.Argument(..., help="Underlying ticker"),
    weeklies: bool = typer.Option(False, "--weeklies", help="Include weekly expirations"),
    verbose: bool = VerboseOpt,
):
    """List option expirations and contracts for an underlying."""
    settings = _init(verbose)
    with _cli_errors(), _session(settings) as s:
        for exp in s.call(s.broker.option_series, symbol, weeklies=weeklies):
            typer.echo(f"{exp.expiration_date}\t{len(exp.contracts)} contract(s)")


@cli_app.command()
def orders(account: Optional[str] = AccountOpt, verbose: bool = VerboseOpt):
    """List current orders."""
    settings = _init(verbose)
    with _cli_errors(), _session(settings) as s:
        for o in s.call(s.broker.order_status, _account_id(s, settings, account)):
            typer.echo(f"{o.master_order_id}\t{o.status}\t{o.short_description}\t{o.fill_quantity}/{o.quantity}")


@cli_app.command()
def order(
    symbol: str = typer.Argument(..., help="Ticker or option security key"),
    quantity: int = typer.Argument(..., help="Shares or contracts"),
    limit_price: float = typer.Argument(..., help="Limit price"),
    side: Side = typer.Option(Side.BUY, "--side", case_sensitive=False),
    position_type: PositionType = typer.Option(PositionType.OPEN, "--position", case_sensitive=False),
    time_in_force: TimeInForce = typer.Option(TimeInForce.DAY, "--tif", case_sensitive=False),
    account: Optional[str] = AccountOpt,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    verbose: bool = VerboseOpt,
):
    """Place a single-leg limit order."""
    settings = _init(verbose)
    k = to_key(symbol)
    if not yes:
        typer.confirm(
            f"{side.value.upper()} {quantity} {k} @ {limit_price} ({position_type.value}, {time_in_force.value})?",
            abort=True,
        )
    with _cli_errors(), _session(settings) as s:
        result = s.call(
            s.broker.place_simple_order,
            _account_id(s, settings, account),
            k,
            quantity,
            limit_price,
            side=side,
            position_type=position_type,
            time_in_force=time_in_force,
        )
        typer.echo(f"Order {result.order_id}: {'created' if result.success else 'not created'}")


@cli_app.command()
def cancel(
    order_id: str = typer.Argument(..., help="Order id"),
    account: Optional[str] = AccountOpt,
    verbose: bool = VerboseOpt,
):
    """Cancel an open order."""
    settings = _init(verbose)
    with _cli_errors(), _session(settings) as s:
        result = s.call(s.broker.cancel_order, _account_id(s, settings, account), order_id)
        typer.echo(f"Order {result.order_id}: {'cancelled' if result.success else 'not cancelled'}")


if __name__ == "__main__":
    cli_app()
