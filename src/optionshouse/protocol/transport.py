from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

import httpx

from optionshouse.core.logger import get_logger
from optionshouse.exceptions import TransportError

log = get_logger("transport")

DEFAULT_BASE_URL = "https://api.optionshouse.com"


class Page(str, Enum):
    """The two endpoint pages the API accepts messages on."""

    M = "m"
    J = "j"


def flatten_json(element: Any, prefix: str = "[root]") -> list[str]:
    """Render a decoded JSON value as one ``path [type=value]`` line per leaf.

    Example:
        >>> flatten_json({"EZMessage": {"action": "auth.login"}})
        ["[root].EZMessage.action [string='auth.login']"]
    """
    if element is None:
        return [f"{prefix} [null]"]
    if isinstance(element, bool):
        return [f"{prefix} [bool={str(element).lower()}]"]
    if isinstance(element, str):
        return [f"{prefix} [string='{element}']"]
    if isinstance(element, (int, float)):
        return [f"{prefix} [number={float(element)}]"]
    if isinstance(element, list):
        lines = [f"{prefix} [array]"]
        for i, item in enumerate(element):
            lines.extend(flatten_json(item, f"{prefix}[{i}]"))
        return lines
    if isinstance(element, dict):
        lines = []
        for key, value in element.items():
            lines.extend(flatten_json(value, f"{prefix}.{key}"))
        return lines
    return [f"{prefix} [{element!r}]"]


class HttpJsonTransport:
    """POSTs EZMessage JSON bodies to the OptionsHouse API.

    One call to :meth:`exchange` is one request and one reply; pacing
    between calls is up to the caller.

    Usage:
        with HttpJsonTransport(trace=True) as transport:
            raw = transport.exchange(body, Page.M)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        trace: bool = False,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.trace = trace
        self.client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()
        log.debug("Transport closed")

    def __enter__(self) -> "HttpJsonTransport":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def exchange(self, body: str, page: Page) -> str:
        """Send one request body and return the reply text.

        Raises:
            TransportError: On network failure or a non-2xx status
        """
        url = f"{self.base_url}/{Page(page).value}"
        if self.trace:
            self._trace("request", url, body)

        try:
            # The server expects this content type even though bodies are JSON
            r = self.client.post(
                url,
                content=body.encode("utf-8"),
                headers={"Content-Type": "text/xml"},
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"HTTP {e.response.status_code} from {url}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if self.trace:
            self._trace("reply", url, r.text)
        return r.text

    def _trace(self, direction: str, url: str, text: str) -> None:
        log.debug(f"{direction} {url}: {text}")
        try:
            decoded = json.loads(text)
        except ValueError:
            log.debug(f"{direction} body is not JSON")
            return
        for line in flatten_json(decoded):
            log.debug(line)
