"""HTTP transport for provider requests."""

from __future__ import annotations

import socket
from typing import Protocol

from .compat import HTTPError, Request, URLError, urlopen
from .errors import TransportError

__all__ = ["Transport", "HTTPTransport"]

DEFAULT_TIMEOUT = 60.0


class Transport(Protocol):
    """Anything able to POST an XML payload and return the response body."""

    def post(self, url: str, payload: bytes) -> bytes: ...


class HTTPTransport:
    """Posts requests to the provider servlet with urllib."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, headers: dict | None = None):
        self.timeout = timeout
        self.headers = {"Content-Type": "text/xml; charset=utf-8"}
        self.headers.update(headers or {})

    def post(self, url: str, payload: bytes) -> bytes:
        request = Request(url, data=payload, headers=self.headers, method="POST")
        try:
            with urlopen(request, timeout=self.timeout) as response:
                return response.read()
        except HTTPError as e:
            raise TransportError(f"Provider at {url} returned HTTP {e.code}") from e
        except (URLError, socket.timeout) as e:
            raise TransportError(f"Unable to reach provider at {url}: {e}") from e
