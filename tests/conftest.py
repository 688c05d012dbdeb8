"""Shared test fixtures for whisker."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from whisker.observability.log import EventLog
from whisker.session import Session, SessionManager


class FakeRequest:
    """Minimal stand-in for a Chirp Request: query params and a JSON body."""

    def __init__(self, *, body: bytes = b"", query: dict[str, str] | None = None) -> None:
        self._body = body
        self.query = query or {}

    async def body(self) -> bytes:
        return self._body

    async def json(self) -> Any:
        return json.loads(self._body)


@pytest.fixture
def event_log() -> EventLog:
    """An empty event log."""
    return EventLog()


@pytest.fixture
def session(event_log: EventLog) -> Session:
    """A fresh session wired to ``event_log``."""
    return Session("test-session", log=event_log)


@pytest.fixture
def manager(event_log: EventLog) -> SessionManager:
    """A session manager with no session functions."""
    return SessionManager(log=event_log)


@pytest.fixture
def make_request() -> Any:
    """Factory for FakeRequest objects.

    ``make_request(payload)`` JSON-encodes *payload* as the body;
    ``make_request(raw=b"...")`` uses the bytes as-is.
    """

    def _make(
        payload: object = None,
        *,
        raw: bytes | None = None,
        query: dict[str, str] | None = None,
    ) -> FakeRequest:
        body = raw if raw is not None else json.dumps(payload).encode("utf-8")
        return FakeRequest(body=body, query=query)

    return _make


@pytest.fixture
def chirp_app(tmp_path: Path) -> Any:
    """An unfrozen Chirp App."""
    from chirp import App, AppConfig

    return App(config=AppConfig(template_dir=tmp_path))
