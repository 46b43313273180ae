# src/codewise/config.py
import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Tuple

from codewise.models import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "codewise.json"
DEFAULT_OUTPUT_FILE = "codewise-output.md"

# Never traversed; the full tree shows them with a single "..." child.
COLLAPSED_DIRS = frozenset({"node_modules", ".git"})


class OutputFormat(str, Enum):
    XML = "xml"
    MARKDOWN = "markdown"


@dataclass(frozen=True)
class Config:
    """Immutable run configuration."""
    include: Tuple[str, ...] = ("**/*",)
    exclude: Tuple[str, ...] = (
        "node_modules/**",
        ".git/**",
        "package-lock.json",
        "yarn.lock",
    )
    max_file_size: int = 100 * 1024  # 100 KB
    output_format: OutputFormat = OutputFormat.MARKDOWN


DEFAULT_CONFIG = Config()

# JSON key -> Config field
_JSON_FIELDS = {
    "include": "include",
    "exclude": "exclude",
    "maxFileSize": "max_file_size",
    "outputFormat": "output_format",
}


def _pattern_tuple(key: str, value: Any) -> Tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{key}' must be a list of glob patterns")
    if not all(isinstance(p, str) for p in value):
        raise ConfigError(f"'{key}' must only contain strings")
    return tuple(value)


def parse_output_format(value: Any) -> OutputFormat:
    try:
        return OutputFormat(str(value).lower())
    except ValueError:
        choices = ", ".join(f.value for f in OutputFormat)
        raise ConfigError(f"Unknown output format '{value}' (expected one of: {choices})")


def config_from_mapping(data: Mapping[str, Any], log: Optional[logging.Logger] = None) -> Config:
    """
    Merges a JSON-style mapping shallowly over the defaults.
    Raises ConfigError on values of the wrong type.
    """
    log = log or logger
    changes = {}
    for key, value in data.items():
        field_name = _JSON_FIELDS.get(key)
        if field_name is None:
            log.warning(f"Ignoring unknown config key '{key}'")
            continue

        if field_name in ("include", "exclude"):
            changes[field_name] = _pattern_tuple(key, value)
        elif field_name == "max_file_size":
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"'{key}' must be a non-negative integer (bytes)")
            changes[field_name] = value
        else:
            changes[field_name] = parse_output_format(value)

    return replace(DEFAULT_CONFIG, **changes)


def load_config(config_path: Path, log: Optional[logging.Logger] = None) -> Config:
    """
    Loads the JSON config file. Any problem (missing file, bad JSON,
    bad values) falls back to the default configuration.
    """
    log = log or logger
    if not config_path.exists():
        log.debug(f"No config file at {config_path}, using defaults")
        return DEFAULT_CONFIG

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigError("top-level JSON value must be an object")
        config = config_from_mapping(data, log=log)
    except (OSError, ValueError, ConfigError) as e:
        log.error(f"Error loading config from {config_path}: {e}")
        return DEFAULT_CONFIG

    log.info(f"Loaded config: {config}")
    return config


def apply_overrides(
    config: Config,
    output_format: Optional[str] = None,
    max_size_kb: Optional[int] = None,
    include: Optional[Iterable[str]] = None,
    exclude: Optional[Iterable[str]] = None,
) -> Config:
    """CLI overrides. Include replaces the configured list, exclude extends it."""
    changes = {}
    if output_format is not None:
        changes["output_format"] = parse_output_format(output_format)
    if max_size_kb is not None:
        if max_size_kb < 0:
            raise ConfigError("Maximum file size must not be negative")
        changes["max_file_size"] = max_size_kb * 1024
    if include is not None:
        changes["include"] = tuple(include)
    if exclude is not None:
        changes["exclude"] = config.exclude + tuple(exclude)
    return replace(config, **changes)
