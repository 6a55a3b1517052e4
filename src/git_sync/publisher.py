import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .constants import APP_NAME, DEFAULT_BUILD_COMMAND, DEFAULT_OUTPUT_DIR
from .errors import ErrorKind, SyncError

logger = logging.getLogger(APP_NAME)

SYMLINKS_SUPPORTED = os.name == "posix"


class BuildTool(Protocol):
    """The build capability the publisher depends on."""

    def describe(self) -> str: ...

    def build(self, source: Path) -> None: ...

    def artifact_dir(self, source: Path) -> Path: ...


class CommandBuild:
    """Builds a working tree by running a command inside it.

    Attributes:
        command (list[str]): The argv to execute (e.g. `npm run build`).
        output_dir (str): The directory, relative to the working tree, the
            command is expected to produce.
    """

    def __init__(
        self,
        command: Sequence[str] | str = DEFAULT_BUILD_COMMAND,
        output_dir: str = DEFAULT_OUTPUT_DIR,
    ):
        if isinstance(command, str):
            command = shlex.split(command)
        self.command = list(command)
        self.output_dir = output_dir

    def describe(self) -> str:
        return shlex.join(self.command)

    def build(self, source: Path) -> None:
        """Runs the build command with `source` as current directory.

        Raises:
            SyncError: BUILD_FAILED if the command cannot start or exits
                non-zero.
        """
        try:
            res = subprocess.run(
                self.command, cwd=source, capture_output=True, text=True
            )
        except OSError as e:
            raise SyncError(
                ErrorKind.BUILD_FAILED,
                f"Failed to execute `{self.describe()}`: {e}",
            ) from e

        if res.stdout.strip():
            logger.debug(f"`{self.describe()}` output:\n{res.stdout.strip()}")

        if res.returncode != 0:
            if res.stderr.strip():
                logger.debug(f"`{self.describe()}` stderr:\n{res.stderr.strip()}")
            raise SyncError(
                ErrorKind.BUILD_FAILED,
                f"`{self.describe()}` exited with status {res.returncode}",
            )

    def artifact_dir(self, source: Path) -> Path:
        return source / self.output_dir


def _io_error(action: str, path: Path, e: OSError) -> SyncError:
    return SyncError(ErrorKind.PUBLISH_IO_FAILED, f"Could not {action} {path}: {e}")


def clear_destination(destination: Path) -> None:
    """Removes a previous deployment entirely.

    A directory is removed with everything below it; a stray file or symlink
    in its place is unlinked.

    Raises:
        SyncError: PUBLISH_IO_FAILED naming the destination.
    """
    try:
        if destination.is_symlink() or not destination.is_dir():
            destination.unlink()
        else:
            shutil.rmtree(destination)
    except OSError as e:
        raise _io_error("clear destination", destination, e) from e


def copy_tree(source: Path, destination: Path) -> None:
    """Recursively copies the contents of `source` into `destination`.

    Walks depth-first per directory entry. Directories are recreated, regular
    files are copied byte for byte (with their mode bits) and symbolic links
    are recreated pointing at the same target, never followed. Other entry
    types are skipped.

    Args:
        source (Path): An existing directory.
        destination (Path): An existing directory receiving the copy.

    Raises:
        SyncError: PUBLISH_IO_FAILED naming the entry that could not be
            copied. Whatever was copied before the failure stays in place.
    """
    try:
        entries = list(os.scandir(source))
    except OSError as e:
        raise _io_error("read directory", source, e) from e

    for entry in entries:
        src = Path(entry.path)
        dest = destination / entry.name

        if entry.is_symlink():
            if not SYMLINKS_SUPPORTED:
                raise SyncError(
                    ErrorKind.PUBLISH_IO_FAILED,
                    f"Symbolic links are not supported on this system: {src}",
                )
            try:
                os.symlink(os.readlink(src), dest)
            except OSError as e:
                raise _io_error("recreate symbolic link", dest, e) from e
        elif entry.is_dir(follow_symlinks=False):
            try:
                dest.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise _io_error("create directory", dest, e) from e
            copy_tree(src, dest)
        elif entry.is_file(follow_symlinks=False):
            try:
                shutil.copy(src, dest, follow_symlinks=False)
            except OSError as e:
                raise _io_error(f"copy {src} to", dest, e) from e
        else:
            logger.debug(f"Skipping special file {src}")


class ArtifactPublisher:
    """Builds a working tree and republishes its output to a deploy target.

    Publication replaces the destination: whatever a previous deployment left
    there is removed before the new artifact is copied in. Nothing is rolled
    back if a step fails midway.

    Attributes:
        build_tool (BuildTool): Runs the build and locates its output.
    """

    def __init__(self, build_tool: BuildTool | None = None):
        self.build_tool = build_tool or CommandBuild()

    def publish(self, source: Path, destination: Path) -> None:
        """Builds `source` and replaces `destination` with the artifact.

        Args:
            source (Path): The synchronized working tree.
            destination (Path): The deploy target.

        Raises:
            SyncError: BUILD_FAILED, ARTIFACT_MISSING or PUBLISH_IO_FAILED.
        """
        self.build_tool.build(source)

        artifact = self.build_tool.artifact_dir(source)
        if not artifact.is_dir():
            raise SyncError(
                ErrorKind.ARTIFACT_MISSING,
                f"Build output directory not found at {artifact}",
            )

        if destination.exists() or destination.is_symlink():
            clear_destination(destination)

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise _io_error("create destination directory", destination, e) from e

        copy_tree(artifact, destination)
