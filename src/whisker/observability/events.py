"""Event model for whisker's dev-tool activity.

Each event is a frozen dataclass carrying the session it belongs to and a
monotonic nanosecond timestamp.

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class InputReceived:
    """The browser posted a batch of input values.

    Attributes:
        session_id: Session that posted the values.
        names: Input names contained in the batch.
        observers_fired: Number of observers that ran for the batch.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    session_id: str
    names: tuple[str, ...]
    observers_fired: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ClientLogged:
    """A browser ``console.log`` message was printed on the server.

    Attributes:
        session_id: Session the message came from.
        message: The JSON text that was printed.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    session_id: str
    message: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class CodeEvaluated:
    """Submitted code was evaluated by a runcode control.

    Attributes:
        session_id: Session the submission came from.
        control_id: Id of the runcode control.
        ok: False when parsing or evaluation raised.
        error: Error message shown to the user (empty on success).
        duration_ms: Evaluation time in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    session_id: str
    control_id: str
    ok: bool
    error: str
    duration_ms: float
    timestamp_ns: int


type WhiskerEvent = InputReceived | ClientLogged | CodeEvaluated


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
