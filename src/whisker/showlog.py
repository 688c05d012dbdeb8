"""Print browser ``console.log`` messages on the server.

When debugging a page that runs custom JavaScript, ``console.log()`` output
normally lives in the browser's developer console. ``show_log()`` prints it
in the server's terminal instead::

    whisker = Whisker(app, WhiskerConfig(show_log=True))

    @whisker.on_session
    def session_started(session):
        show_log()

The client only forwards messages when ``show_log`` is enabled in the
config (or ``use_whisker(show_log=True)`` renders the script).

Values ``JSON.stringify`` cannot encode, such as cyclic DOM event objects,
are dropped in the browser and never printed. Identical consecutive
messages are each printed: the client posts every message as an event.
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any

from whisker.client import SHOW_LOG_INPUT
from whisker.observability.events import ClientLogged, now_ns
from whisker.session import resolve_session

if TYPE_CHECKING:
    from typing import TextIO

    from whisker.session import Observer, Session

DEFAULT_LABEL = "JAVASCRIPT LOG: "


def encode_log_value(value: Any) -> str:
    """Encode a forwarded value as compact JSON, keeping non-ASCII text."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def show_log(
    session: Session | None = None,
    *,
    label: str = DEFAULT_LABEL,
    stream: TextIO | None = None,
) -> Observer:
    """Print every forwarded browser log message for *session*.

    Args:
        session: Target session (the current session when omitted).
        label: Text printed before each message.
        stream: Output stream (``sys.stderr`` when omitted).

    Returns:
        The observer, which can be destroyed to stop forwarding.

    """
    target = resolve_session(session)

    def _print_log(value: Any) -> None:
        message = encode_log_value(value)
        print(f"{label}{message}", file=stream or sys.stderr)
        target.record(ClientLogged(
            session_id=target.id,
            message=message,
            timestamp_ns=now_ns(),
        ))

    return target.observe_event(SHOW_LOG_INPUT, _print_log, ignore_none=False)
