"""Tests for configuration loading."""

from pathlib import Path

import pytest

from git_sync.config import Config, parse_command, parse_size, parse_time


def test_defaults_without_file(tmp_path: Path) -> None:
    config = Config.load(tmp_path / "config.toml")

    assert config == Config()
    assert config.daemon.sync_interval == 60
    assert config.daemon.stop_on_error is True
    assert config.daemon.continuous_mode is True
    assert config.git.timeout == 0
    assert config.build.command == ("npm", "run", "build")
    assert config.build.output_dir == "dist"
    assert config.output.verbose is True
    assert config.limits.max_log_size == 5 * 1024 * 1024


def test_load_human_readable_values(tmp_path: Path) -> None:
    """Verifies that time, size and command strings are parsed."""
    path = tmp_path / "config.toml"
    path.write_text(
        """
[daemon]
sync_interval = "5m"
stop_on_error = false

[git]
timeout = "30s"

[build]
command = "yarn build --prod"
output_dir = "build"

[limits]
max_log_size = "10mb"
"""
    )

    config = Config.load(path)

    assert config.daemon.sync_interval == 300
    assert config.daemon.stop_on_error is False
    assert config.daemon.continuous_mode is True
    assert config.git.timeout == 30
    assert config.build.command == ("yarn", "build", "--prod")
    assert config.build.output_dir == "build"
    assert config.limits.max_log_size == 10 * 1024 * 1024


def test_unknown_keys_and_sections_warn(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "config.toml"
    path.write_text('[daemon]\nsync_intervall = 5\n\n[extras]\nfoo = "bar"\n')

    config = Config.load(path)

    assert config == Config()
    assert "Unknown config keys in [daemon]: sync_intervall" in caplog.text
    assert "Unknown config sections: extras" in caplog.text


def test_invalid_value_falls_back_to_default(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        '[daemon]\nsync_interval = "soon"\nstop_on_error = "yes"\n\n'
        "[build]\ncommand = []\n"
    )

    config = Config.load(path)

    assert config.daemon.sync_interval == 60
    assert config.daemon.stop_on_error is True
    assert config.build.command == ("npm", "run", "build")
    assert "Config error in [daemon].sync_interval" in caplog.text
    assert "Config error in [build].command" in caplog.text


def test_section_must_be_table(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "config.toml"
    path.write_text('git = "fast"\n')

    assert Config.load(path) == Config()
    assert "Config section [git] must be a table" in caplog.text


def test_syntax_error_uses_defaults(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[daemon\nsync_interval = ")

    assert Config.load(path) == Config()
    assert "Config syntax error" in caplog.text


def test_rendered_config_loads_back(tmp_path: Path) -> None:
    """Verifies that the generated settings file is valid TOML for the loader."""
    path = tmp_path / "config.toml"
    path.write_text(Config().to_toml())

    assert Config.load(path) == Config()


@pytest.mark.parametrize(
    ("value", "expected"),
    [(90, 90), ("45s", 45), ("2min", 120), ("1hr", 3600), ("1.5m", 90)],
)
def test_parse_time(value: int | str, expected: int) -> None:
    assert parse_time(value) == expected


def test_parse_size() -> None:
    assert parse_size("512kb") == 512 * 1024
    assert parse_size("1g") == 1024**3
    with pytest.raises(ValueError):
        parse_size("lots")


def test_parse_command() -> None:
    assert parse_command(["make", "site"]) == ("make", "site")
    assert parse_command("npm run 'build:prod'") == ("npm", "run", "build:prod")
    with pytest.raises(ValueError):
        parse_command("   ")
    with pytest.raises(ValueError):
        parse_command(["npm", 3])  # type: ignore[list-item]


@pytest.mark.parametrize(
    ("section", "body"),
    [
        ("daemon", "sync_interval = -5"),
        ("git", "timeout = true"),
        ("git", "timeout = -1"),
        ("limits", "max_log_size = false"),
        ("build", 'output_dir = ""'),
        ("build", "output_dir = 5"),
        ("build", 'output_dir = "../site"'),
        ("build", 'output_dir = "/srv/out"'),
        ("build", 'output_dir = "."'),
    ],
)
def test_rejected_values_fall_back_to_default(
    tmp_path: Path, caplog: pytest.LogCaptureFixture, section: str, body: str
) -> None:
    """Verifies that out-of-range and mistyped values never reach the config.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        caplog (pytest.LogCaptureFixture): Pytest fixture for capturing logs.
        section (str): The TOML table under test.
        body (str): The offending assignment.
    """
    path = tmp_path / "config.toml"
    path.write_text(f"[{section}]\n{body}\n")

    assert Config.load(path) == Config()
    assert f"Config error in [{section}]." in caplog.text


def test_nested_output_dir_is_accepted(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('[build]\noutput_dir = "web/dist"\n')

    assert Config.load(path).build.output_dir == "web/dist"
