"""
Shared test fixtures.

Panel adapters are exercised against ``httpx.MockTransport``; no test ever
talks to a live server.
"""

import os
from collections.abc import Callable
from typing import Any

import httpx
import pytest


class PanelHttp:
    """Records every request and answers from a queue or a handler.

    Example:
        >>> http = PanelHttp()
        >>> http.queue(httpx.Response(200, json={"ok": True}))
        >>> adapter = CpanelAdapter(config, transport=http.transport)
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], Any] | None = None
        self._queued: list[httpx.Response | Exception] = []

    def queue(self, *responses: httpx.Response | Exception) -> None:
        self._queued.extend(responses)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        if not self._queued:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        outcome = self._queued.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def panel_http() -> PanelHttp:
    """Fresh request recorder for one adapter."""
    return PanelHttp()


@pytest.fixture(autouse=True)
def _no_hostpanel_env(monkeypatch: pytest.MonkeyPatch):
    """Keep HOSTPANEL_* variables from the real environment out of tests."""
    for key in list(os.environ):
        if key.startswith("HOSTPANEL_"):
            monkeypatch.delenv(key)
