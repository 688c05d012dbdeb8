"""DOM effects — server-side calls that change the page in the browser.

Each helper builds a ``DomEffect`` and queues it on a session. The SSE
endpoint sends it to the browser as a ``whisker:call`` event, where the
client script applies it.

    hide("runcode_error")
    html("runcode_errorMsg", "NameError: name 'y' is not defined")
    show("runcode_error", anim=True, anim_type="fade")

All helpers use the current session unless ``session=`` is passed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from whisker._errors import ConfigError
from whisker.session import resolve_session

if TYPE_CHECKING:
    from whisker._types import AnimType
    from whisker.session import Session

# SSE event name for every DOM effect
CALL_EVENT = "whisker:call"

_ANIM_TYPES = ("slide", "fade")


@dataclass(frozen=True, slots=True)
class DomEffect:
    """A single instruction for the browser.

    Attributes:
        op: Operation name understood by the client script.
        target: Element id, or None for page-level operations.
        args: Extra operation arguments (JSON-serializable).

    """

    op: str
    target: str | None = None
    args: dict[str, Any] = field(default_factory=dict, hash=False)

    def to_json(self) -> str:
        """Encode as the JSON payload of a ``whisker:call`` event."""
        payload: dict[str, Any] = {"op": self.op}
        if self.target is not None:
            payload["id"] = self.target
        payload.update(self.args)
        return json.dumps(payload)


def _check_anim(anim_type: str) -> None:
    if anim_type not in _ANIM_TYPES:
        msg = f"anim_type must be one of {_ANIM_TYPES}, got {anim_type!r}"
        raise ConfigError(msg)


def hide(
    id: str,
    *,
    anim: bool = False,
    anim_type: AnimType = "slide",
    time: float = 0.5,
    session: Session | None = None,
) -> bool:
    """Hide an element. Returns False if the effect was dropped."""
    _check_anim(anim_type)
    return resolve_session(session).push(DomEffect(
        "hide", id, {"anim": anim, "animType": anim_type, "time": time},
    ))


def show(
    id: str,
    *,
    anim: bool = False,
    anim_type: AnimType = "slide",
    time: float = 0.5,
    session: Session | None = None,
) -> bool:
    """Show an element, optionally with a slide or fade animation."""
    _check_anim(anim_type)
    return resolve_session(session).push(DomEffect(
        "show", id, {"anim": anim, "animType": anim_type, "time": time},
    ))


def toggle(
    id: str,
    *,
    anim: bool = False,
    anim_type: AnimType = "slide",
    time: float = 0.5,
    session: Session | None = None,
) -> bool:
    """Show an element if hidden, hide it if shown."""
    _check_anim(anim_type)
    return resolve_session(session).push(DomEffect(
        "toggle", id, {"anim": anim, "animType": anim_type, "time": time},
    ))


def html(
    id: str,
    content: str,
    *,
    add: bool = False,
    session: Session | None = None,
) -> bool:
    """Replace (or with ``add=True``, append to) an element's inner HTML."""
    return resolve_session(session).push(DomEffect(
        "html", id, {"html": str(content), "add": add},
    ))


def alert(text: object, *, session: Session | None = None) -> bool:
    """Show a browser alert box."""
    return resolve_session(session).push(DomEffect("alert", None, {"text": str(text)}))


def logjs(message: object, *, session: Session | None = None) -> bool:
    """Print a message in the browser's JavaScript console.

    *message* must be JSON-serializable; it is logged as a value, not text.
    """
    return resolve_session(session).push(DomEffect("log", None, {"message": message}))


def hidden(markup: str) -> str:
    """Wrap *markup* in a container that starts hidden.

    Elements that need an id of their own should carry the
    ``whisker-hidden`` class and ``display: none`` directly instead.
    """
    return f'<div class="whisker-hidden" style="display: none;">{markup}</div>'
