"""Pytest bootstrap configuration.

Keep ``PG_*`` variables from the developer's shell out of config tests, and
provide a recording ``httpx.MockTransport`` in place of the network.
"""
import json
import os
from typing import Any, Callable, Optional

import httpx
import pytest

from paygate.core.config import EnvSettings


@pytest.fixture(autouse=True)
def _clean_pg_env(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("PG_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def empty_env() -> EnvSettings:
    return EnvSettings(_env_file=None)


class Recorder:
    """Replays canned responses and remembers every request it saw."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[Callable[[httpx.Request], httpx.Response]] = []

    def reply(self, status_code: int = 200, payload: Optional[Any] = None, **kwargs) -> "Recorder":
        self._responses.append(lambda request: httpx.Response(status_code, json=payload, **kwargs))
        return self

    def reply_with(self, handler: Callable[[httpx.Request], httpx.Response]) -> "Recorder":
        self._responses.append(handler)
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"unexpected request {request.method} {request.url}")
        handler = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
