"""Scripted secrets endpoint for tests.

SecretsEndpoint plays back a list of outcomes through httpx.MockTransport,
one per request, repeating the last outcome once the script runs out.

Outcome forms:
    dict                -> 200 with the dict as JSON body
    int                 -> that status code with an empty body
    (int, dict)         -> status code with the given headers
    BaseException       -> raised from the transport
    callable(request)   -> called; may return a Response or an awaitable
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import httpx

BASE_URL = "https://secrets.test"


def secrets_body(values: dict[str, str]) -> dict[str, Any]:
    """Build a success body in the service's wire format."""
    return {"secrets": [{"key": key, "value": value} for key, value in values.items()]}


class SecretsEndpoint:
    """Callable httpx.MockTransport handler that records requests."""

    def __init__(self, *outcomes: Any) -> None:
        if not outcomes:
            raise ValueError("at least one outcome is required")
        self._outcomes = list(outcomes)
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def __call__(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        outcome = self._outcomes[min(self.calls, len(self._outcomes)) - 1]

        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, dict):
            return httpx.Response(200, json=outcome)
        if isinstance(outcome, int):
            return httpx.Response(outcome)
        if isinstance(outcome, tuple):
            status, headers = outcome
            return httpx.Response(status, headers=headers)
        return outcome(request)


def endpoint_for(values: Iterable[dict[str, str]]) -> SecretsEndpoint:
    """Endpoint that returns each values dict in turn as a success body."""
    return SecretsEndpoint(*(secrets_body(v) for v in values))
