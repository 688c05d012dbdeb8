"""Load WhiskerConfig from whisker.yaml or whisker.toml if present.

Merges file config with keyword overrides. Overrides win.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path

from whisker.config import WhiskerConfig

_KNOWN_KEYS = frozenset(f.name for f in fields(WhiskerConfig))


def load_config(root: Path, **overrides: object) -> WhiskerConfig:
    """Load WhiskerConfig from root, optionally merging a config file.

    Looks for whisker.yaml, whisker.yml, or whisker.toml in root. Unknown
    keys are ignored; overrides set to ``None`` are treated as absent.
    """
    file_config = _read_whisker_config(root)
    given = {k: v for k, v in overrides.items() if v is not None}
    return WhiskerConfig(**{**file_config, **given})


def _read_whisker_config(root: Path) -> dict[str, object]:
    """Read whisker config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("whisker.yaml", "whisker.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "whisker.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on error."""
    try:
        import yaml
    except ImportError:
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception:
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_whisker_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on error."""
    import tomllib

    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return _flatten_whisker_section(data)


def _flatten_whisker_section(data: dict[str, object]) -> dict[str, object]:
    """Extract whisker.* keys and known top-level keys into one dict."""
    result: dict[str, object] = {}
    for k, v in data.items():
        if k in _KNOWN_KEYS:
            result[k] = v
    section = data.get("whisker")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _KNOWN_KEYS:
                result[k] = v
    return result
