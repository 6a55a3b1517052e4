import logging
import re
import shlex
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path, PurePosixPath
from typing import Any

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_BUILD_COMMAND,
    DEFAULT_OUTPUT_DIR,
)

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '5MB') to bytes."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid size format '{value}'")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Size must not be negative, got {value}")
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '1hr', '30s') to seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid time format '{value}'")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Time must not be negative, got {value}")
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


def parse_command(value: list[str] | str) -> tuple[str, ...]:
    """Normalizes a build command given as an argv list or a shell-like string."""
    if isinstance(value, str):
        argv = shlex.split(value)
    elif isinstance(value, list) and all(isinstance(v, str) for v in value):
        argv = value
    else:
        raise ValueError(f"Invalid command '{value}'")
    if not argv:
        raise ValueError("Command must not be empty")
    return tuple(argv)


def parse_output_dir(value: Any) -> str:
    """Validates a build output directory relative to the working tree."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected a non-empty directory name, got '{value}'")
    path = PurePosixPath(value.strip())
    if path.is_absolute() or ".." in path.parts or path == PurePosixPath("."):
        raise ValueError(
            f"Output directory must stay inside the working tree, got '{value}'"
        )
    return value.strip()


def parse_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected true or false, got '{value}'")
    return value


@dataclass(frozen=True)
class DaemonConfig:
    """Daemon loop settings.

    Attributes:
        sync_interval (int): Seconds to wait between cycles.
        stop_on_error (bool): Whether a failed cycle terminates the daemon.
        continuous_mode (bool): Loop forever, or run a single cycle and exit.
    """

    sync_interval: int = 60
    stop_on_error: bool = True
    continuous_mode: bool = True


@dataclass(frozen=True)
class GitConfig:
    """Git invocation settings.

    Attributes:
        timeout (int): Per-command timeout in seconds; 0 disables it.
    """

    timeout: int = 0


@dataclass(frozen=True)
class BuildConfig:
    """Build settings for deployable repositories.

    Attributes:
        command (tuple[str, ...]): The build argv, run inside the working tree.
        output_dir (str): The directory the build is expected to produce.
    """

    command: tuple[str, ...] = tuple(DEFAULT_BUILD_COMMAND)
    output_dir: str = DEFAULT_OUTPUT_DIR


@dataclass(frozen=True)
class OutputConfig:
    """Reporting settings.

    Attributes:
        verbose (bool): Emit per-repository progress lines at INFO level.
    """

    verbose: bool = True


@dataclass(frozen=True)
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for the log file before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


_PARSERS = {
    "sync_interval": parse_time,
    "timeout": parse_time,
    "max_log_size": parse_size,
    "command": parse_command,
    "output_dir": parse_output_dir,
    "stop_on_error": parse_bool,
    "continuous_mode": parse_bool,
    "verbose": parse_bool,
}


@dataclass(frozen=True)
class Config:
    """Global configuration aggregator.

    A Config is loaded fresh for every cycle and never mutated afterwards, so
    an edited config file takes effect on the next cycle.

    Attributes:
        daemon (DaemonConfig): Loop behaviour.
        git (GitConfig): Git invocation settings.
        build (BuildConfig): Build settings.
        output (OutputConfig): Reporting settings.
        limits (LimitsConfig): Resource limits.
    """

    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    git: GitConfig = field(default_factory=GitConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from disk, applying defaults where necessary.

        Loading never raises: syntax errors, unknown keys and invalid values
        are logged and fall back to defaults.

        Args:
            path (Path | None): The TOML file to read. Defaults to CONFIG_FILE.

        Returns:
            Config: The populated configuration object.
        """
        path = path or CONFIG_FILE
        instance = cls()
        if not path.exists():
            return instance

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
            return instance
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return instance

        return instance._merge(data)

    def _merge(self, data: dict[str, Any]) -> "Config":
        """Returns a copy of this config with the parsed TOML data applied."""
        section_names = {f.name for f in fields(self)}

        unknown = set(data.keys()) - section_names
        if unknown:
            logger.warning(
                f"Unknown config sections: {', '.join(sorted(unknown))}. Ignoring."
            )

        updates = {}
        for name in section_names:
            section = data.get(name)
            if section is None:
                continue
            if not isinstance(section, dict):
                logger.warning(f"Config section [{name}] must be a table. Ignoring.")
                continue
            updates[name] = self._update_dataclass(
                name, getattr(self, name), section
            )

        return replace(self, **updates)

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                parser = _PARSERS.get(k)
                filtered_updates[k] = parser(v) if parser else v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)

    def to_toml(self) -> str:
        """Renders this configuration as a TOML document."""
        out = ["# git-sync configuration", ""]
        for section in fields(self):
            out.append(f"[{section.name}]")
            values = getattr(self, section.name)
            for f in fields(values):
                out.append(f"{f.name} = {_toml_value(getattr(values, f.name))}")
            out.append("")
        return "\n".join(out)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
