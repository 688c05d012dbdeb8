"""Whisker — development helpers for Chirp apps.

Two conveniences for building reactive pages on Chirp:

- ``show_log()`` prints the browser's ``console.log`` messages in the server
  terminal.
- ``runcode_ui()`` / ``runcode_server()`` add an input where you can type
  Python and run it live on the server. Development only.

Quick start::

    from chirp import App
    from whisker import Whisker, WhiskerConfig, runcode_server, show_log

    app = App()
    whisker = Whisker(app, WhiskerConfig(show_log=True))

    @whisker.on_session
    def session_started(session):
        show_log()
        runcode_server()

Pages then include ``runcode_ui()`` wherever the control should appear.

"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from whisker.bridge import Whisker
    from whisker.config import WhiskerConfig

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "Whisker",
    "WhiskerConfig",
    "__version__",
    "get_session",
    "runcode_server",
    "runcode_ui",
    "show_log",
    "use_whisker",
]

_LAZY = {
    "Whisker": ("whisker.bridge", "Whisker"),
    "WhiskerConfig": ("whisker.config", "WhiskerConfig"),
    "get_session": ("whisker.session", "get_session"),
    "runcode_server": ("whisker.runcode", "runcode_server"),
    "runcode_ui": ("whisker.runcode", "runcode_ui"),
    "show_log": ("whisker.showlog", "show_log"),
    "use_whisker": ("whisker.client", "use_whisker"),
}


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import whisker`` fast and free of the Chirp import until a
    name that needs it is used.
    """
    if name in _LAZY:
        from importlib import import_module

        module_name, attr = _LAZY[name]
        return getattr(import_module(module_name), attr)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
