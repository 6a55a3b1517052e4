import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .constants import APP_NAME, GIT_MARKER
from .errors import CycleOutcome, ErrorKind, GitError, RepoFailure, SyncError
from .git_wrapper import GitRepo, VersionControl
from .publisher import ArtifactPublisher, CommandBuild
from .registry import RepoDefinition

logger = logging.getLogger(APP_NAME)

BANNER = "=" * 42


@dataclass(frozen=True)
class SyncOptions:
    """The settings one cycle of the orchestrator runs with.

    Attributes:
        verbose (bool): Log progress lines at INFO instead of DEBUG.
        git_timeout (int): Per-command git timeout in seconds; 0 disables it.
    """

    verbose: bool = True
    git_timeout: int = 0

    @classmethod
    def from_config(cls, config: Config) -> "SyncOptions":
        return cls(verbose=config.output.verbose, git_timeout=config.git.timeout)


class RepoProcessor:
    """Drives a batch of repository definitions through sync and deploy.

    Repositories are processed strictly one after another. Each one goes
    through validation, fetch, behind-count and an optional pull, then a
    build-and-publish when it declares a deploy target. The first error stops
    that repository only; it is recorded and the batch moves on.

    Attributes:
        options (SyncOptions): Settings for this cycle.
        publisher (ArtifactPublisher): Builds and deploys artifacts.
        repo_factory (Callable[[Path], VersionControl]): Creates the
            version-control client for a working tree.
    """

    def __init__(
        self,
        options: SyncOptions | None = None,
        publisher: ArtifactPublisher | None = None,
        repo_factory: Callable[[Path], VersionControl] | None = None,
    ):
        self.options = options or SyncOptions()
        self.publisher = publisher or ArtifactPublisher()
        self.repo_factory = repo_factory or (
            lambda path: GitRepo(path, timeout=self.options.git_timeout)
        )

    @classmethod
    def from_config(cls, config: Config) -> "RepoProcessor":
        """Builds a processor wired with the build settings of `config`."""
        build = CommandBuild(config.build.command, config.build.output_dir)
        return cls(SyncOptions.from_config(config), ArtifactPublisher(build))

    def _progress(self, message: str) -> None:
        logger.log(logging.INFO if self.options.verbose else logging.DEBUG, message)

    def process_all(self, repos: list[RepoDefinition]) -> CycleOutcome:
        """Processes every definition and aggregates the failures.

        Args:
            repos (list[RepoDefinition]): The batch, in processing order.

        Returns:
            CycleOutcome: Failed repositories in processing order. An empty
            batch is itself a failure (CONFIGURATION_EMPTY), distinct from a
            batch where everything succeeded.
        """
        if not repos:
            logger.error("No repositories found in the repository list.")
            logger.error("Add the paths of the repositories, one per line.")
            return CycleOutcome(
                failures=[
                    RepoFailure(
                        "", ErrorKind.CONFIGURATION_EMPTY, "No repositories configured"
                    )
                ]
            )

        self._progress(f"Analyzing {len(repos)} repositories")

        outcome = CycleOutcome()
        for repo in repos:
            outcome.processed += 1
            failure = self.process_single(repo)
            if failure:
                outcome.failures.append(failure)
                logger.error(
                    f"Skipped {failure.repo_path} due to an error: {failure.detail}"
                )

        self._progress("All repositories processed.")
        return outcome

    def process_single(self, repo: RepoDefinition) -> RepoFailure | None:
        """Runs the full pipeline for one repository.

        Returns:
            RepoFailure | None: The first failure hit, or None on success.
        """
        self._progress(BANNER)
        if repo.deploy_target:
            self._progress(
                f"Processing repository with build: {repo.repo_path} -> "
                f"{repo.deploy_target}"
            )
        else:
            self._progress(f"Processing repository: {repo.repo_path}")
        self._progress(BANNER)

        try:
            self.validate(repo.path)
            self._progress(f"Valid git working tree: {repo.path}")
            self.synchronize(self.repo_factory(repo.path))
            if repo.deploy_target:
                self.deploy(repo.path, Path(repo.deploy_target))
        except SyncError as e:
            return RepoFailure(repo.repo_path, e.kind, e.detail)
        except Exception as e:
            logger.exception(f"Unexpected error while processing {repo.repo_path}")
            return RepoFailure(repo.repo_path, ErrorKind.UNEXPECTED, str(e))

        return None

    def validate(self, path: Path) -> None:
        """Checks that `path` is an existing git working tree.

        Raises:
            SyncError: PATH_INVALID.
        """
        if not path.exists():
            raise SyncError(ErrorKind.PATH_INVALID, f"Path does not exist: {path}")
        if not (path / GIT_MARKER).exists():
            raise SyncError(
                ErrorKind.PATH_INVALID, f"Not a valid git repository: {path}"
            )

    def synchronize(self, repo: VersionControl) -> None:
        """Fetches, and pulls the default branch only if the checkout is behind.

        Raises:
            SyncError: FETCH_FAILED, STATUS_CHECK_FAILED or PULL_FAILED.
        """
        self._progress("Checking remote state...")

        try:
            repo.fetch()
        except GitError as e:
            raise SyncError(
                ErrorKind.FETCH_FAILED, f"`git fetch` failed: {e.stderr}"
            ) from e

        branch = repo.default_branch()
        self._progress(f"Using branch: {branch}")

        try:
            behind = repo.commits_behind(branch)
        except GitError as e:
            raise SyncError(
                ErrorKind.STATUS_CHECK_FAILED,
                f"Could not determine repository status: {e.stderr}",
            ) from e

        if behind == 0:
            self._progress("Repository is already up to date.")
            return

        self._progress(f"Remote has {behind} new commits. Pulling changes...")
        try:
            output = repo.pull(branch)
        except GitError as e:
            raise SyncError(
                ErrorKind.PULL_FAILED, f"`git pull` failed: {e.stderr}"
            ) from e
        self._progress(f"`git pull` output:\n{output.strip()}")

    def deploy(self, source: Path, destination: Path) -> None:
        """Builds `source` and publishes its artifact to `destination`.

        Raises:
            SyncError: BUILD_FAILED, ARTIFACT_MISSING or PUBLISH_IO_FAILED.
        """
        self._progress(f"Running `{self.publisher.build_tool.describe()}`...")
        self.publisher.publish(source, destination)
        self._progress(f"Artifacts deployed to {destination}")
