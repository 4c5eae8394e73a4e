"""Runner settings resolved from defaults, a config file, the environment and overrides."""
from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable, Dict, Mapping
import codecs
import json
import os
import tomllib

import yaml

from .command_runner import SubprocessCommandRunner
from .console import Console


CONFIG_ENV_VAR = "SHELLKIT_CONFIG"
CONFIG_SECTION = "shellkit"

ENVIRONMENT_KEYS = {
    "log_level": "SHELLKIT_LOG_LEVEL",
    "encoding": "SHELLKIT_ENCODING",
}

ConfigReader = Callable[[bytes], Any]

CONFIG_READERS: Dict[str, ConfigReader] = {
    ".toml": lambda raw: tomllib.loads(raw.decode("utf-8")),
    ".json": lambda raw: json.loads(raw.decode("utf-8")),
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}
"""Config file suffix -> callable decoding the raw file contents."""


def register_config_reader(suffix: str, reader: ConfigReader) -> None:
    """Teach :func:`read_settings_table` to decode files ending with ``suffix``."""

    normalized = suffix.lower()
    if not normalized.startswith("."):
        raise ValueError("Suffix must start with '.'")
    CONFIG_READERS[normalized] = reader


def read_settings_table(path: Path) -> Dict[str, Any]:
    """Return the ``[shellkit]`` table of ``path``, or ``{}`` when it has none."""

    suffix = path.suffix.lower()
    reader = CONFIG_READERS.get(suffix)
    if reader is None:
        supported = ", ".join(sorted(CONFIG_READERS))
        raise ValueError(
            f"Unsupported configuration file extension: {suffix}. Supported: {supported}"
        )

    # An empty YAML document decodes to None.
    data = reader(path.read_bytes())
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")

    section = data.get(CONFIG_SECTION, {})
    if not isinstance(section, Mapping):
        raise TypeError(f"[{CONFIG_SECTION}] in '{path}' must be a table")
    return dict(section)


@dataclass(frozen=True)
class RunnerSettings:
    log_level: str = "none"
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if self.log_level not in Console.LEVELS:
            choices = ", ".join(Console.LEVELS)
            raise ValueError(f"Invalid log_level '{self.log_level}'. Expected one of: {choices}")
        try:
            codecs.lookup(self.encoding)
        except LookupError as exc:
            raise ValueError(f"Unknown encoding '{self.encoding}'") from exc

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RunnerSettings":
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown {CONFIG_SECTION} settings: {', '.join(unknown)}")
        return cls(**{key: str(value) for key, value in data.items()})


def load_settings(
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> RunnerSettings:
    """Resolve settings; later sources win: file, then environment, then ``overrides``."""

    env = os.environ if environ is None else environ
    if config_path is None and env.get(CONFIG_ENV_VAR):
        config_path = Path(env[CONFIG_ENV_VAR])

    values: Dict[str, Any] = {}
    if config_path is not None:
        values.update(read_settings_table(config_path))
    values.update({key: env[name] for key, name in ENVIRONMENT_KEYS.items() if env.get(name)})
    values.update({key: value for key, value in overrides.items() if value is not None})
    return RunnerSettings.from_mapping(values)


def build_runner(settings: RunnerSettings | None = None) -> SubprocessCommandRunner:
    """Create a subprocess runner logging through a console at the configured level."""

    settings = settings or RunnerSettings()
    return SubprocessCommandRunner(Console(level=settings.log_level), encoding=settings.encoding)


__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_READERS",
    "CONFIG_SECTION",
    "ENVIRONMENT_KEYS",
    "RunnerSettings",
    "build_runner",
    "load_settings",
    "read_settings_table",
    "register_config_reader",
]
