"""Reactive sessions — per-browser input state, observers, and outbound effects.

A ``Session`` is whisker's stand-in for a reactive framework session: the
browser posts input values to it, registered observers react to those
inputs, and observers push DOM effects back through a per-session queue
that the SSE endpoint drains.

Dispatch rules:
    - Input values are stored first, then observers fire for each posted name.
    - A name fires when its value changed, or unconditionally when the browser
      flagged it as an event (button clicks, log lines).
    - ``None`` values skip observers unless they opt in with ``ignore_none=False``.
    - Observers registered after a value arrived are not run for it.

Thread Safety:
    Dispatch for one session is serialized by a re-entrant lock, so an
    observer may itself update inputs. The session map in ``SessionManager``
    is protected by its own lock.

"""

from __future__ import annotations

import asyncio
import sys
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Collection, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from whisker._errors import SessionError
from whisker.observability.events import InputReceived, now_ns

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from whisker._types import Handler, InputName, SessionID
    from whisker.dom import DomEffect
    from whisker.observability.events import WhiskerEvent
    from whisker.observability.log import EventLog


_current_session: ContextVar[Session | None] = ContextVar("whisker_session", default=None)

_MISSING = object()


def get_session() -> Session:
    """Return the session whose session function or observer is running.

    Raises:
        SessionError: If called outside of a session context.

    """
    session = _current_session.get()
    if session is None:
        msg = (
            "No active whisker session. Call this from a session function or "
            "observer, or pass session= explicitly."
        )
        raise SessionError(msg)
    return session


def resolve_session(session: Session | None) -> Session:
    """Return *session* if given, otherwise the current session."""
    return session if session is not None else get_session()


@contextmanager
def session_context(session: Session) -> Iterator[Session]:
    """Make *session* the current session for the duration of the block."""
    token = _current_session.set(session)
    try:
        yield session
    finally:
        _current_session.reset(token)


@dataclass(slots=True, eq=False)
class Observer:
    """A handler subscribed to one input of one session.

    Attributes:
        name: Input name the handler reacts to.
        handler: Callable invoked with the new input value.
        session: Owning session.
        ignore_none: Skip the handler when the value is None.
        active: False once destroyed; inactive observers never run.

    """

    name: InputName
    handler: Handler
    session: Session
    ignore_none: bool = True
    active: bool = True

    def destroy(self) -> None:
        """Unsubscribe this observer."""
        self.session._remove_observer(self)


class Session:
    """One browser's reactive session.

    Args:
        session_id: Identifier generated by the client script.
        queue_size: Maximum pending effects; extra effects are dropped.
        log: Optional event log for observability records.

    """

    def __init__(
        self,
        session_id: SessionID,
        *,
        queue_size: int = 256,
        log: EventLog | None = None,
    ) -> None:
        self.id = session_id
        self.log = log
        self._inputs: dict[str, Any] = {}
        self._observers: dict[str, list[Observer]] = defaultdict(list)
        self._ended: list[Callable[[], object]] = []
        self._queue: asyncio.Queue[DomEffect] = asyncio.Queue(maxsize=queue_size)
        self._lock = threading.RLock()
        self._closed = False
        self._streams = 0
        self.last_active = time.monotonic()

    def __repr__(self) -> str:
        return f"Session({self.id!r})"

    @property
    def input(self) -> Mapping[str, Any]:
        """Read-only view of the latest input values."""
        return MappingProxyType(self._inputs)

    @property
    def closed(self) -> bool:
        """True once the session has ended."""
        return self._closed

    @property
    def streaming(self) -> bool:
        """True while at least one event stream is attached."""
        return self._streams > 0

    @property
    def pending(self) -> int:
        """Number of effects waiting to be sent to the browser."""
        return self._queue.qsize()

    # -- observers ---------------------------------------------------------

    def observe_event(
        self,
        name: InputName,
        handler: Handler,
        *,
        ignore_none: bool = True,
    ) -> Observer:
        """Run *handler* each time input *name* fires.

        Several observers may watch the same input; all of them run, in
        registration order.
        """
        observer = Observer(
            name=name, handler=handler, session=self, ignore_none=ignore_none,
        )
        with self._lock:
            self._observers[name].append(observer)
        return observer

    def observer_count(self, name: InputName | None = None) -> int:
        """Number of active observers, optionally for a single input."""
        with self._lock:
            if name is not None:
                return len(self._observers.get(name, ()))
            return sum(len(obs) for obs in self._observers.values())

    def _remove_observer(self, observer: Observer) -> None:
        with self._lock:
            observer.active = False
            observers = self._observers.get(observer.name)
            if observers and observer in observers:
                observers.remove(observer)
                if not observers:
                    del self._observers[observer.name]

    # -- inputs ------------------------------------------------------------

    def set_inputs(
        self,
        values: Mapping[InputName, Any],
        *,
        events: Collection[InputName] = (),
    ) -> int:
        """Store input values and fire the observers they trigger.

        Args:
            values: New values keyed by input name.
            events: Names that fire even when their value is unchanged.

        Returns:
            Number of observer invocations.

        """
        fired = 0
        with self._lock:
            if self._closed:
                return 0
            self.last_active = time.monotonic()
            triggered: list[str] = []
            for name, value in values.items():
                old = self._inputs.get(name, _MISSING)
                self._inputs[name] = value
                if name in events or old is _MISSING or old != value:
                    triggered.append(name)

            with session_context(self):
                for name in triggered:
                    fired += self._fire(name, self._inputs[name])

        self.record(InputReceived(
            session_id=self.id,
            names=tuple(values),
            observers_fired=fired,
            timestamp_ns=now_ns(),
        ))
        return fired

    def _fire(self, name: str, value: Any) -> int:
        count = 0
        for observer in tuple(self._observers.get(name, ())):
            if not observer.active:
                continue
            if value is None and observer.ignore_none:
                continue
            count += 1
            try:
                observer.handler(value)
            except Exception as exc:
                print(f"  Observer error ({name}): {exc}", file=sys.stderr)
        return count

    # -- effects -----------------------------------------------------------

    def push(self, effect: DomEffect) -> bool:
        """Queue a DOM effect for the browser. Returns False if dropped."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(effect)
        except asyncio.QueueFull:
            return False
        return True

    def drain(self) -> list[DomEffect]:
        """Remove and return all pending effects without waiting."""
        effects: list[DomEffect] = []
        while not self._queue.empty():
            effects.append(self._queue.get_nowait())
        return effects

    async def effects(self) -> AsyncIterator[DomEffect]:
        """Yield effects as they are pushed, until the consumer goes away."""
        try:
            while True:
                yield await self._queue.get()
        except (asyncio.CancelledError, GeneratorExit):
            return

    def attach_stream(self) -> None:
        """Mark an event stream as open; attached sessions are never reaped."""
        with self._lock:
            self._streams += 1
            self.last_active = time.monotonic()

    def detach_stream(self) -> None:
        """Mark an event stream as closed."""
        with self._lock:
            self._streams = max(0, self._streams - 1)
            self.last_active = time.monotonic()

    # -- lifecycle ---------------------------------------------------------

    def on_ended(self, callback: Callable[[], object]) -> None:
        """Register a callback run once when the session ends."""
        with self._lock:
            self._ended.append(callback)

    def close(self) -> None:
        """End the session: deactivate observers and run ended callbacks."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for observers in self._observers.values():
                for observer in observers:
                    observer.active = False
            self._observers.clear()
            callbacks, self._ended = self._ended, []

        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                print(f"  Session end callback error: {exc}", file=sys.stderr)

    def record(self, event: WhiskerEvent) -> None:
        """Append an observability event if the session has a log."""
        if self.log is not None:
            self.log.append(event)


class SessionManager:
    """Creates, tracks, and ends sessions.

    Session functions registered with ``add_session_function`` run once per
    new session, with that session current, before any input is dispatched
    to it. This is where ``show_log()`` and ``runcode_server()`` are called.

    Sessions normally end when their event stream closes. A session with no
    open stream that has seen no input for ``idle_timeout`` seconds is ended
    too, the next time a session is created or ``reap_idle()`` is called.

    Args:
        queue_size: Effect queue size for new sessions.
        log: Event log shared by all sessions.
        idle_timeout: Seconds before an idle, unattached session is reaped
            (None keeps such sessions forever).

    """

    def __init__(
        self,
        *,
        queue_size: int = 256,
        log: EventLog | None = None,
        idle_timeout: float | None = 300.0,
    ) -> None:
        self._sessions: dict[str, Session] = {}
        self._functions: list[Callable[[Session], object]] = []
        self._queue_size = queue_size
        self._log = log
        self._idle_timeout = idle_timeout
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def add_session_function(
        self, func: Callable[[Session], object],
    ) -> Callable[[Session], object]:
        """Register *func* to run for every new session. Usable as a decorator."""
        with self._lock:
            self._functions.append(func)
        return func

    def get(self, session_id: SessionID) -> Session | None:
        """Return an existing session, or None."""
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: SessionID) -> Session:
        """Return the session for *session_id*, creating and initializing it if new."""
        existing = self.get(session_id)
        if existing is not None:
            return existing
        self.reap_idle()

        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                return session
            session = Session(session_id, queue_size=self._queue_size, log=self._log)
            self._sessions[session_id] = session
            functions = tuple(self._functions)
            # Initialization must finish before any input reaches the session.
            session._lock.acquire()

        try:
            with session_context(session):
                for func in functions:
                    try:
                        func(session)
                    except Exception as exc:
                        print(f"  Session function error: {exc}", file=sys.stderr)
        finally:
            session._lock.release()
        return session

    def end(self, session_id: SessionID) -> bool:
        """End and forget a session. Returns False if it was unknown."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def session_ids(self) -> frozenset[str]:
        """Snapshot of the live session ids."""
        with self._lock:
            return frozenset(self._sessions)

    def reap_idle(self, *, now: float | None = None) -> int:
        """End sessions with no open stream and no input for ``idle_timeout``.

        Returns:
            Number of sessions ended.

        """
        if self._idle_timeout is None:
            return 0
        cutoff = (time.monotonic() if now is None else now) - self._idle_timeout
        with self._lock:
            stale = [
                self._sessions.pop(sid)
                for sid, session in list(self._sessions.items())
                if not session.streaming and session.last_active < cutoff
            ]
        for session in stale:
            session.close()
        return len(stale)
