"""Whisker configuration.

WhiskerConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass

from whisker._errors import ConfigError

# Expected type per field; config files can carry any TOML/YAML value
_FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "prefix": (str,),
    "show_log": (bool,),
    "inject": (bool,),
    "log_label": (str,),
    "queue_size": (int,),
    "max_events": (int,),
    "session_timeout": (int, float),
    "host": (str,),
    "port": (int,),
}


@dataclass(frozen=True, slots=True)
class WhiskerConfig:
    """Configuration for the whisker bridge.

    Attributes:
        prefix: URL prefix for whisker's own endpoints.
        show_log: Forward browser ``console.log`` calls to the server.
        inject: Inject the client script into every HTML response.
        log_label: Text printed before each forwarded browser log message.
        queue_size: Maximum pending DOM effects per session before dropping.
        max_events: Capacity of the observability event log.
        session_timeout: Seconds after which a session with no open event
            stream and no input is ended. None disables reaping.
        host: Bind address for the demo server.
        port: Bind port for the demo server.

    """

    prefix: str = "/__whisker"
    show_log: bool = False
    inject: bool = True
    log_label: str = "JAVASCRIPT LOG: "
    queue_size: int = 256
    max_events: int = 10_000
    session_timeout: float | None = 300.0
    host: str = "127.0.0.1"
    port: int = 3000

    def __post_init__(self) -> None:
        for name, types in _FIELD_TYPES.items():
            value = getattr(self, name)
            if name == "session_timeout" and value is None:
                continue
            # bool is an int subclass; only bool fields accept it
            if isinstance(value, bool) and bool not in types:
                value_ok = False
            else:
                value_ok = isinstance(value, types)
            if not value_ok:
                expected = " or ".join(t.__name__ for t in types)
                msg = f"{name} must be {expected}, got {value!r}"
                raise ConfigError(msg)

        if not self.prefix.startswith("/") or self.prefix.endswith("/"):
            msg = f"prefix must start with '/' and not end with '/', got {self.prefix!r}"
            raise ConfigError(msg)
        if self.queue_size < 1:
            msg = f"queue_size must be positive, got {self.queue_size}"
            raise ConfigError(msg)
        if self.max_events < 1:
            msg = f"max_events must be positive, got {self.max_events}"
            raise ConfigError(msg)
        if self.session_timeout is not None and self.session_timeout <= 0:
            msg = f"session_timeout must be positive, got {self.session_timeout}"
            raise ConfigError(msg)

    @property
    def input_path(self) -> str:
        """Endpoint the browser posts input values to."""
        return f"{self.prefix}/input"

    @property
    def events_path(self) -> str:
        """SSE endpoint carrying DOM effects to the browser."""
        return f"{self.prefix}/events"

    @property
    def stats_path(self) -> str:
        """JSON endpoint with session and event-log statistics."""
        return f"{self.prefix}/stats"
