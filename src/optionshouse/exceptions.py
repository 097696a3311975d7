"""Exceptions raised by the OptionsHouse client."""
from __future__ import annotations

from typing import Optional


class OptionsHouseError(Exception):
    """Base exception for all client errors."""
    pass


class TransportError(OptionsHouseError):
    """The HTTP exchange with the API server failed."""
    pass


class ResponseParseError(OptionsHouseError):
    """A reply could not be parsed against its expected schema."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class ResponseShapeError(ResponseParseError):
    """A reply matched neither the collection nor the single-object shape."""

    def __init__(
        self,
        message: str,
        raw: str = "",
        strict_error: Optional[Exception] = None,
        fallback_error: Optional[Exception] = None,
    ):
        super().__init__(message, raw)
        self.strict_error = strict_error
        self.fallback_error = fallback_error


class BrokerError(OptionsHouseError):
    """Base exception for broker facade errors."""
    pass


class ApiError(BrokerError):
    """The server answered with a non-empty errors map."""

    def __init__(self, action: str, errors: dict[str, str], alert: str = ""):
        detail = "; ".join(f"{k}={v}" for k, v in errors.items())
        super().__init__(f"{action} failed: {detail}")
        self.action = action
        self.errors = errors
        self.alert = alert


class AuthenticationError(BrokerError):
    """Login did not produce an auth token."""
    pass


class InvalidOrderError(BrokerError):
    """Raised when order parameters are invalid."""
    pass
