"""Shared type definitions for whisker."""

from collections.abc import Callable
from typing import Any, Literal

# Editor used by the runcode control
type EditorKind = Literal["text", "textarea", "ace"]

# Reveal animation for show/toggle effects
type AnimType = Literal["slide", "fade"]

# Browser session identifier
type SessionID = str

# Name of a client-side input (element id)
type InputName = str

# Observer callback, called with the new input value
type Handler = Callable[[Any], object]
