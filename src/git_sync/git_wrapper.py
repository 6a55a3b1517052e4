import logging
import subprocess
from pathlib import Path
from typing import Protocol

from .constants import APP_NAME, REMOTE_HEAD_REF, REMOTE_NAME
from .errors import GitError

logger = logging.getLogger(APP_NAME)


class VersionControl(Protocol):
    """The version-control capability the sync pipeline depends on."""

    def fetch(self) -> None: ...

    def default_branch(self) -> str: ...

    def commits_behind(self, branch: str) -> int: ...

    def pull(self, branch: str) -> str: ...


class GitRepo:
    """A wrapper around the Git command-line interface for one working tree.

    Every command runs with the working tree as current directory and its
    output captured as text. Success is decided by the exit status alone;
    failures surface as `GitError` carrying the tool's stderr verbatim.

    Attributes:
        path (Path): The file system path to the working tree.
        timeout (float | None): Per-command timeout in seconds, or None to let
            commands run until they exit.
    """

    def __init__(self, path: Path, timeout: float | None = None):
        """Initializes the GitRepo instance.

        The path is not validated here; the caller decides what a missing
        working tree means.

        Args:
            path (Path): The path to the working tree.
            timeout (float | None, optional): Per-command timeout in seconds.
                                              Defaults to None (no timeout).
        """
        self.path = path
        self.timeout = timeout or None

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        """Executes a Git command within the working tree.

        Args:
            args (list[str]): A list of arguments to pass to the git command.

        Returns:
            subprocess.CompletedProcess[str]: The finished process, whatever
            its exit status.

        Raises:
            GitError: If git could not be launched or the timeout expired.
        """
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(
                f"`git {' '.join(args)}` timed out after {e.timeout}s"
            ) from e
        except OSError as e:
            raise GitError(f"Failed to execute `git {args[0]}`: {e}") from e

    def fetch(self) -> None:
        """Fetches all refs from every configured remote.

        Raises:
            GitError: If the fetch fails. No retry happens at this level.
        """
        res = self._run(["fetch", "--all"])
        if res.returncode != 0:
            raise GitError(res.stderr)

    def default_branch(self) -> str:
        """Resolves the remote's default branch.

        Reads the remote's symbolic HEAD first. When that is unset (common for
        clones made with older git or mirrors) it probes for `origin/main`, and
        otherwise assumes `master`. Never fails. The result may differ from the
        branch checked out locally.

        Returns:
            str: The branch name, without any `refs/remotes/origin/` prefix.
        """
        try:
            res = self._run(["symbolic-ref", REMOTE_HEAD_REF])
            prefix = f"refs/remotes/{REMOTE_NAME}/"
            branch = res.stdout.strip().replace(prefix, "")
            if res.returncode == 0 and branch:
                return branch
        except GitError as e:
            logger.debug(f"symbolic-ref failed in {self.path}: {e}")

        try:
            res = self._run(["rev-parse", "--verify", f"{REMOTE_NAME}/main"])
            if res.returncode == 0:
                return "main"
        except GitError as e:
            logger.debug(f"rev-parse failed in {self.path}: {e}")

        return "master"

    def commits_behind(self, branch: str) -> int:
        """Counts commits on the remote branch that are missing from HEAD.

        Output that does not parse as a number is treated as 0.

        Args:
            branch (str): The remote branch to compare against.

        Returns:
            int: The number of commits in `HEAD..origin/<branch>`.

        Raises:
            GitError: If git could not be executed at all.
        """
        res = self._run(["rev-list", "--count", f"HEAD..{REMOTE_NAME}/{branch}"])
        try:
            return int(res.stdout.strip())
        except ValueError:
            logger.debug(
                f"Unparseable rev-list output in {self.path}: {res.stdout!r}"
            )
            return 0

    def pull(self, branch: str) -> str:
        """Pulls the remote branch into the current checkout.

        Args:
            branch (str): The remote branch to merge.

        Returns:
            str: The stdout of `git pull`.

        Raises:
            GitError: If the pull fails.
        """
        res = self._run(["pull", REMOTE_NAME, branch])
        if res.returncode != 0:
            raise GitError(res.stderr)
        return res.stdout
