import logging
import signal
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import FrameType

from . import registry
from .config import Config
from .constants import (
    APP_NAME,
    CONFIG_FILE,
    LOG_DIR,
    LOG_FILE,
    REPOS_FILE,
)
from .errors import CycleOutcome
from .processor import RepoProcessor

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(interactive: bool, config: Config | None = None) -> None:
    """Configures the logging subsystem.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to stderr
                            and to a rotating log file.
        config (Config | None): Supplies the log rotation size.
    """
    config = config or Config()
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Always log to a stream (stderr is captured by journald).
    stream_handler = logging.StreamHandler(sys.stdout if interactive else sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        try:
            LOG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                LOG_FILE,
                maxBytes=config.limits.max_log_size,
                backupCount=5,
            )
        except OSError as e:
            logger.warning(f"Could not open log file {LOG_FILE}: {e}")
            return
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def ensure_layout(
    config_file: Path = CONFIG_FILE, repos_file: Path = REPOS_FILE
) -> bool:
    """Creates the configuration directory, settings file and repository list.

    Existing files are never overwritten.

    Returns:
        bool: True if the repository list was created by this call.

    Raises:
        OSError: If a missing file or directory cannot be created.
    """
    for directory in {config_file.parent, repos_file.parent}:
        directory.mkdir(parents=True, exist_ok=True)

    if not config_file.exists():
        config_file.write_text(Config().to_toml(), encoding="utf-8")
        logger.info(f"Configuration file created: {config_file}")

    if repos_file.exists():
        return False

    registry.write_repos([], repos_file)
    logger.info(f"Repository list created: {repos_file}")
    return True


def run_cycle(config: Config, repos_file: Path = REPOS_FILE) -> CycleOutcome:
    """Runs one synchronization cycle over the current repository list.

    Args:
        config (Config): The configuration for this cycle.
        repos_file (Path, optional): The repository list to read.

    Returns:
        CycleOutcome: The aggregate result of the cycle.
    """
    repos = registry.read_repos(repos_file)
    return RepoProcessor.from_config(config).process_all(repos)


def report_outcome(outcome: CycleOutcome) -> None:
    """Logs the pass/fail summary of a cycle."""
    if outcome.ok:
        logger.info(
            f"Cycle completed successfully ({outcome.processed} repositories)."
        )
    else:
        logger.error(outcome.summary())


def main(
    interactive: bool = False,
    config_file: Path = CONFIG_FILE,
    repos_file: Path = REPOS_FILE,
) -> int:
    """The main daemon execution loop.

    Re-reads the configuration and the repository list before every cycle,
    so edits take effect without a restart. SIGTERM and SIGINT stop the loop
    before the next cycle starts; a cycle in progress is never interrupted.

    Args:
        interactive (bool, optional): Run a single cycle logging to stdout
                                      (CLI 'now' command). Defaults to False.
        config_file (Path, optional): The settings file.
        repos_file (Path, optional): The repository list.

    Returns:
        int: The process exit status.
    """
    setup_logging(interactive)
    config = Config.load(config_file)
    setup_logging(interactive, config)

    try:
        if ensure_layout(config_file, repos_file):
            logger.warning(
                f"Add repository paths to {repos_file} and restart the service."
            )
            return 0
    except OSError as e:
        logger.critical(f"Could not initialize configuration: {e}")
        return 1

    stop = threading.Event()

    def stop_handler(signum: int, _frame: FrameType | None) -> None:
        name = signal.Signals(signum).name
        logger.info(f"Received {name}. Stopping after this cycle.")
        stop.set()

    if not interactive:
        signal.signal(signal.SIGTERM, stop_handler)
        signal.signal(signal.SIGINT, stop_handler)
        logger.info("=" * 49)
        logger.info("git-sync: starting repository sync daemon")
        logger.info("=" * 49)

    while True:
        try:
            outcome = run_cycle(config, repos_file)
        except (OSError, UnicodeDecodeError) as e:
            logger.critical(f"Could not read repository list {repos_file}: {e}")
            return 1

        report_outcome(outcome)

        if outcome.configuration_empty:
            return 1
        if not outcome.ok and config.daemon.stop_on_error:
            logger.critical("Stopping: stop_on_error is enabled.")
            return 1
        if interactive or not config.daemon.continuous_mode:
            return 0 if outcome.ok else 1

        if stop.wait(config.daemon.sync_interval):
            logger.info("git-sync stopped.")
            return 0

        config = Config.load(config_file)


if __name__ == "__main__":
    sys.exit(main())
