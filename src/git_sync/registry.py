import contextlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME, DEPLOY_SEPARATOR, REPOS_FILE, REPOS_FILE_HEADER

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class RepoDefinition:
    """One entry of the repository list.

    Attributes:
        repo_path (str): Absolute path of the working tree to synchronize.
        deploy_target (str | None): Absolute path receiving the build artifact,
            or None when the repository is only pulled.
    """

    repo_path: str
    deploy_target: str | None = None

    @classmethod
    def from_line(cls, line: str) -> "RepoDefinition | None":
        """Parses a single line of the repository list.

        Returns:
            RepoDefinition | None: The definition, or None for blank lines,
            comments, and lines whose source path is empty.
        """
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            return None

        source, sep, target = trimmed.partition(DEPLOY_SEPARATOR)
        source = source.strip()
        if not source:
            return None

        target = target.strip() if sep else ""
        return cls(source, target or None)

    def to_line(self) -> str:
        """Serializes the definition back into repository list syntax."""
        if self.deploy_target and self.deploy_target.strip():
            return (
                f"{self.repo_path.strip()} {DEPLOY_SEPARATOR} "
                f"{self.deploy_target.strip()}"
            )
        return self.repo_path.strip()

    @property
    def path(self) -> Path:
        return Path(self.repo_path)


def parse_repos(text: str) -> list[RepoDefinition]:
    """Parses the full text of a repository list, preserving order."""
    return [
        repo
        for line in text.splitlines()
        if (repo := RepoDefinition.from_line(line)) is not None
    ]


def read_repos(path: Path = REPOS_FILE) -> list[RepoDefinition]:
    """Reads the repository list.

    Args:
        path (Path, optional): The list to read. Defaults to REPOS_FILE.

    Returns:
        list[RepoDefinition]: The definitions in file order; empty if the
        file does not exist.

    Raises:
        OSError: If the file exists but cannot be read.
    """
    if not path.exists():
        return []
    return parse_repos(path.read_text(encoding="utf-8"))


def render_repos(repos: list[RepoDefinition]) -> str:
    """Renders definitions as a repository list, with its comment header."""
    lines = [*REPOS_FILE_HEADER, *(repo.to_line() for repo in repos)]
    return "\n".join(lines) + "\n"


def write_repos(repos: list[RepoDefinition], path: Path = REPOS_FILE) -> None:
    """Atomically rewrites the repository list.

    Args:
        repos (list[RepoDefinition]): The definitions to store, in order.
        path (Path, optional): The list to write. Defaults to REPOS_FILE.

    Raises:
        OSError: If the list cannot be written. The previous list is left
            untouched in that case.
    """
    tmp_file = path.with_suffix(".tmp")

    try:
        # 1. Write the new list next to the old one.
        with open(tmp_file, "w", encoding="utf-8") as f:
            f.write(render_repos(repos))
            f.flush()
            os.fsync(f.fileno())

        # 2. Atomic swap.
        os.replace(tmp_file, path)
    except OSError as e:
        logger.error(f"ERROR: Could not write repository list {path}. {e}")
        if tmp_file.exists():
            with contextlib.suppress(OSError):
                tmp_file.unlink()
        raise


def add_repo(repo: RepoDefinition, path: Path = REPOS_FILE) -> bool:
    """Adds a definition, replacing any entry for the same source path.

    Returns:
        bool: True if a new entry was added, False if an existing one was
        updated.
    """
    repos = read_repos(path)
    for i, existing in enumerate(repos):
        if existing.repo_path == repo.repo_path:
            repos[i] = repo
            write_repos(repos, path)
            return False

    repos.append(repo)
    write_repos(repos, path)
    return True


def remove_repo(repo_path: str, path: Path = REPOS_FILE) -> bool:
    """Removes the entry for a source path.

    Returns:
        bool: True if an entry was removed, False if none matched.
    """
    target = repo_path.strip()
    repos = read_repos(path)
    remaining = [r for r in repos if r.repo_path != target]
    if len(remaining) == len(repos):
        return False

    write_repos(remaining, path)
    logger.info(f"REMOVED: {target} removed from repository list.")
    return True
