"""Whisker error hierarchy.

All whisker-specific errors inherit from WhiskerError for easy catching.
"""


class WhiskerError(Exception):
    """Base error for all whisker operations."""


class ConfigError(WhiskerError):
    """Invalid or missing configuration."""


class SessionError(WhiskerError):
    """No reactive session is available for the call."""


class ProtocolError(WhiskerError):
    """Malformed message from the browser client."""
