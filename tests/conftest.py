"""Pytest configuration and fixtures for OptionsHouse client tests."""
from __future__ import annotations

import json
import os
from typing import Any, Optional

import pytest

# Set test environment variables before importing modules
os.environ.setdefault("OPTIONSHOUSE_USER", "test_user")
os.environ.setdefault("OPTIONSHOUSE_PASSWORD", "test_password")

from optionshouse.broker import OptionsHouseBroker
from optionshouse.config import Settings, reload_settings
from optionshouse.protocol.transport import Page


def ez(action: str, data: Any = None, errors: Optional[dict] = None, alert: str = "") -> str:
    """Build a raw reply envelope the way the server sends it."""
    message: dict[str, Any] = {"action": action}
    if data is not None:
        message["data"] = data
    if errors:
        message["errors"] = errors
    if alert:
        message["alert"] = alert
    return json.dumps({"EZMessage": message})


class FakeTransport:
    """Transport double that records requests and replays canned replies."""

    def __init__(self, *replies: str):
        self.replies = list(replies)
        self.sent: list[tuple[dict, Page]] = []

    def queue(self, *replies: str) -> None:
        self.replies.extend(replies)

    def exchange(self, body: str, page: Page) -> str:
        self.sent.append((json.loads(body), page))
        if not self.replies:
            raise AssertionError("No canned reply left")
        return self.replies.pop(0)

    @property
    def last_message(self) -> dict:
        return self.sent[-1][0]["EZMessage"]

    @property
    def last_page(self) -> Page:
        return self.sent[-1][1]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def broker(transport: FakeTransport) -> OptionsHouseBroker:
    return OptionsHouseBroker(transport=transport)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with minimal configuration."""
    # Force reload to pick up test env vars
    return reload_settings()


@pytest.fixture
def position_record() -> dict:
    return {
        "accountId": "12345",
        "securityKey": "IBM:::S",
        "underlying": "IBM",
        "description": "IBM common stock",
        "qty": 100,
        "price": 160.25,
        "mktVal": 16025.0,
        "bid": 160.2,
        "ask": 160.3,
        "gain": 125.5,
        "costBasis": 15900.0,
        "multiplier": 1,
    }


@pytest.fixture
def option_position_record() -> dict:
    return {
        "accountId": "12345",
        "securityKey": "IBM:20110716:1600000:C",
        "underlying": "IBM",
        "expString": "Jul 16 2011",
        "strikeString": "160.00",
        "qty": 2,
        "price": 3.1,
        "mktVal": 620.0,
        "multiplier": 100,
        "canExercise": True,
    }
