"""Startup banner for the demo server.

Detects ``NO_COLOR`` / ``TERM`` for safe fallback to plain text.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from whisker.config import WhiskerConfig


def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""


def _on_off(flag: bool) -> str:
    return f"{_GREEN}on{_RESET}" if flag else f"{_DIM}off{_RESET}"


def print_banner(
    config: WhiskerConfig,
    *,
    editor: str = "text",
    load_ms: float = 0.0,
) -> None:
    """Print the whisker demo banner to stderr.

    Args:
        config: Resolved WhiskerConfig.
        editor: Editor kind used by the runcode control.
        load_ms: Time spent building the app in milliseconds.

    """
    from whisker import __version__

    timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
    lines = [
        "",
        f"  {_BOLD}Whisker{_RESET} {_DIM}v{__version__}{_RESET}  {_GREEN}[demo]{_RESET}",
        f"  {_DIM}{'─' * 43}{_RESET}",
        f"  {_DIM}├─{_RESET} app ready{timing}",
        f"  {_DIM}├─{_RESET} runcode editor: {editor}",
        f"  {_DIM}├─{_RESET} browser log forwarding: {_on_off(config.show_log)}",
        f"  {_DIM}└─{_RESET} SSE on {_DIM}{config.events_path}{_RESET}",
        "",
        f"  {_BOLD}{_CYAN}http://{config.host}:{config.port}{_RESET}",
        "",
        f"  {_YELLOW}!{_RESET} runcode executes any code it receives. Local use only.",
        "",
    ]
    print("\n".join(lines), file=sys.stderr)
