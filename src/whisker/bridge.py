"""Whisker bridge — wires sessions into a Chirp app.

Registers three endpoints under ``config.prefix`` (default ``/__whisker``):

    POST /__whisker/input    browser → server input values
    GET  /__whisker/events   server → browser DOM effects (SSE)
    GET  /__whisker/stats    session count and event-log summary (JSON)

and, when ``config.inject`` is set, a middleware that adds the client script
to every HTML response.

Input payload::

    {"session": "<id>", "inputs": {"name": value, ...}, "events": ["name", ...]}

Usage::

    app = App()
    whisker = Whisker(app, WhiskerConfig(show_log=True))

    @whisker.on_session
    def session_started(session):
        show_log()
        runcode_server()

"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from chirp.http.request import Request
from chirp.http.response import Response

from whisker._errors import ProtocolError
from whisker.client import client_middleware
from whisker.config import WhiskerConfig
from whisker.dom import CALL_EVENT
from whisker.observability.log import EventLog
from whisker.session import Session, SessionManager

if TYPE_CHECKING:
    from chirp import App


def parse_input_payload(data: Any) -> tuple[str, dict[str, Any], frozenset[str]]:
    """Validate a decoded input payload.

    Returns:
        ``(session_id, inputs, events)``.

    Raises:
        ProtocolError: If the payload does not have the expected shape.

    """
    if not isinstance(data, Mapping):
        msg = "payload must be a JSON object"
        raise ProtocolError(msg)

    session_id = data.get("session")
    if not isinstance(session_id, str) or not session_id:
        msg = "'session' must be a non-empty string"
        raise ProtocolError(msg)

    inputs = data.get("inputs", {})
    if not isinstance(inputs, Mapping) or not all(isinstance(k, str) for k in inputs):
        msg = "'inputs' must be an object keyed by input name"
        raise ProtocolError(msg)

    events = data.get("events", [])
    if not isinstance(events, list) or not all(isinstance(e, str) for e in events):
        msg = "'events' must be a list of input names"
        raise ProtocolError(msg)

    return session_id, dict(inputs), frozenset(events)


def _json_response(payload: dict[str, Any], status: int = 200) -> Response:
    return Response(
        body=json.dumps(payload),
        status=status,
        content_type="application/json",
    )


class Whisker:
    """Installs whisker's endpoints and client script on a Chirp app.

    Args:
        app: Chirp App to register routes on (must not yet be frozen).
        config: Bridge configuration.

    """

    def __init__(self, app: App, config: WhiskerConfig | None = None) -> None:
        self.config = config or WhiskerConfig()
        self.log = EventLog(self.config.max_events)
        self.sessions = SessionManager(
            queue_size=self.config.queue_size,
            log=self.log,
            idle_timeout=self.config.session_timeout,
        )
        self._app = app
        self._install()

    def on_session(self, func: Callable[[Session], object]) -> Callable[[Session], object]:
        """Decorator: run *func* once for every new browser session."""
        return self.sessions.add_session_function(func)

    def _install(self) -> None:
        self._register_input_endpoint()
        self._register_events_endpoint()
        self._register_stats_endpoint()
        if self.config.inject:
            self._app.add_middleware(client_middleware(self.config))

    # -- handlers ----------------------------------------------------------

    async def handle_input(self, request: Request) -> Response:
        """Apply an input payload to its session and fire observers."""
        try:
            data = await request.json()
        except ValueError:
            return _json_response({"ok": False, "error": "body is not valid JSON"}, 400)

        try:
            session_id, inputs, events = parse_input_payload(data)
        except ProtocolError as exc:
            return _json_response({"ok": False, "error": str(exc)}, 400)

        session = self.sessions.get_or_create(session_id)
        fired = session.set_inputs(inputs, events=events)
        return _json_response({"ok": True, "fired": fired})

    async def handle_events(self, request: Request) -> Any:
        """Stream the session's DOM effects as ``whisker:call`` events.

        The session ends when the stream closes.
        """
        from chirp import EventStream, SSEEvent

        session_id = request.query.get("session")
        if not session_id:
            return _json_response({"ok": False, "error": "missing 'session'"}, 400)

        session = self.sessions.get_or_create(session_id)
        sessions = self.sessions
        session.attach_stream()

        async def generate():  # type: ignore[return]
            try:
                async for effect in session.effects():
                    yield SSEEvent(data=effect.to_json(), event=CALL_EVENT)
            finally:
                session.detach_stream()
                sessions.end(session_id)

        return EventStream(generate())

    async def handle_stats(self, request: Request) -> Response:
        """Return session and event-log statistics."""
        self.sessions.reap_idle()
        return _json_response({
            "sessions": len(self.sessions),
            "event_log": self.log.stats(),
        })

    # -- registration ------------------------------------------------------

    def _register_input_endpoint(self) -> None:
        async def whisker_input(request: Request) -> Response:
            return await self.handle_input(request)

        self._app.route(
            self.config.input_path, methods=["POST"], name="whisker:input",
        )(whisker_input)

    def _register_events_endpoint(self) -> None:
        async def whisker_events(request: Request) -> Any:
            return await self.handle_events(request)

        self._app.route(self.config.events_path, name="whisker:events")(whisker_events)

    def _register_stats_endpoint(self) -> None:
        async def whisker_stats(request: Request) -> Response:
            return await self.handle_stats(request)

        self._app.route(self.config.stats_path, name="whisker:stats")(whisker_stats)
