"""Error kinds and result values shared by the sync pipeline.

Per-repository failures travel as values (``RepoFailure``) so a single broken
working tree never aborts the rest of the batch. ``SyncError`` is only raised
inside one repository's pipeline and is converted to a value at that boundary.
"""

import enum
from dataclasses import dataclass, field


class ErrorKind(enum.Enum):
    """Classification of everything that can fail during a cycle."""

    CONFIGURATION_EMPTY = "configuration-empty"
    PATH_INVALID = "path-invalid"
    FETCH_FAILED = "fetch-failed"
    STATUS_CHECK_FAILED = "status-check-failed"
    PULL_FAILED = "pull-failed"
    BUILD_FAILED = "build-failed"
    ARTIFACT_MISSING = "artifact-missing"
    PUBLISH_IO_FAILED = "publish-io-failed"
    UNEXPECTED = "unexpected"


class GitError(RuntimeError):
    """A git command failed. The message is the tool's stderr, untouched."""

    def __init__(self, stderr: str):
        super().__init__(stderr)
        self.stderr = stderr


class SyncError(Exception):
    """A step of one repository's pipeline failed.

    Attributes:
        kind (ErrorKind): What failed.
        detail (str): Operator-facing description, including any tool output.
    """

    def __init__(self, kind: ErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail


@dataclass(frozen=True)
class RepoFailure:
    """A failed repository and the first error it hit."""

    repo_path: str
    kind: ErrorKind
    detail: str


@dataclass
class CycleOutcome:
    """The aggregate result of one synchronization cycle.

    Attributes:
        failures (list[RepoFailure]): Failed items, in processing order. Empty
            if and only if the cycle succeeded.
        processed (int): Number of repository definitions attempted.
    """

    failures: list[RepoFailure] = field(default_factory=list)
    processed: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def configuration_empty(self) -> bool:
        """True when the cycle failed because no repositories were configured."""
        return any(f.kind is ErrorKind.CONFIGURATION_EMPTY for f in self.failures)

    def summary(self) -> str:
        """Renders the aggregate error text, or an empty string on success."""
        if self.ok:
            return ""
        if self.configuration_empty:
            return self.failures[0].detail
        details = "\n".join(f"- {f.repo_path} => {f.detail}" for f in self.failures)
        return (
            f"{len(self.failures)} repositories failed to synchronize:\n{details}"
        )
