import logging
import subprocess
from collections.abc import Iterator
from typing import Any

import pytest

from git_sync.constants import APP_NAME


@pytest.fixture(autouse=True)
def reset_logger() -> Iterator[None]:
    """Drops handlers installed by `setup_logging` so tests stay isolated."""
    logger = logging.getLogger(APP_NAME)
    before = list(logger.handlers)
    yield
    for handler in list(logger.handlers):
        if handler not in before:
            logger.removeHandler(handler)
            handler.close()


def completed(
    returncode: int = 0, stdout: str = "", stderr: str = ""
) -> subprocess.CompletedProcess[str]:
    """Builds the result `subprocess.run` would return."""
    return subprocess.CompletedProcess(
        args=["git"], returncode=returncode, stdout=stdout, stderr=stderr
    )


@pytest.fixture
def make_completed() -> Any:
    return completed
