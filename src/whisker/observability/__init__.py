"""Observability — structured record of whisker dev-tool activity.

Quick Start:
    >>> from whisker.observability import EventLog, ClientLogged, now_ns
    >>> log = EventLog()
    >>> log.append(ClientLogged(session_id="s1", message='"hi"', timestamp_ns=now_ns()))

"""

from whisker.observability.events import (
    ClientLogged,
    CodeEvaluated,
    InputReceived,
    WhiskerEvent,
    now_ns,
)
from whisker.observability.log import EventLog

__all__ = [
    "ClientLogged",
    "CodeEvaluated",
    "EventLog",
    "InputReceived",
    "WhiskerEvent",
    "now_ns",
]
