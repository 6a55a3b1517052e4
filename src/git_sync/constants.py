import os
from pathlib import Path

"""Global constants and filesystem layout for git-sync.

The daemon runs as a system service, so its configuration and logs live under
``/etc`` and ``/var/log`` by default. Both roots can be relocated through
environment variables, which is also how the test-suite isolates itself.
"""

# --- Identity ---
APP_NAME = "git-sync"
"""str: The human-readable application name (also the logger name)."""

SERVICE_NAME = "git-sync"
"""str: The systemd unit name."""

# --- Paths ---
CONFIG_DIR = Path(os.environ.get("GIT_SYNC_CONFIG_DIR", "/etc/git-sync"))
"""Path: The directory holding the repository list and settings."""

REPOS_FILE = CONFIG_DIR / "repositories.txt"
"""Path: The repository list, one definition per line."""

CONFIG_FILE = CONFIG_DIR / "config.toml"
"""Path: The daemon settings file."""

LOG_DIR = Path(os.environ.get("GIT_SYNC_LOG_DIR", "/var/log/git-sync"))
"""Path: The directory for daemon logs."""

LOG_FILE = LOG_DIR / "git-sync.log"
"""Path: The rotating daemon log file."""

SERVICE_PATH = Path("/etc/systemd/system") / f"{SERVICE_NAME}.service"
"""Path: The systemd unit installed by ``git-sync install-service``."""

# --- Git / Build Constants ---
REMOTE_NAME = "origin"
"""str: The remote every working tree is synchronized against."""

REMOTE_HEAD_REF = f"refs/remotes/{REMOTE_NAME}/HEAD"
"""str: The symbolic ref naming the remote's default branch."""

GIT_MARKER = ".git"
"""str: The entry that marks a directory as a git working tree."""

DEFAULT_BUILD_COMMAND = ["npm", "run", "build"]
"""list[str]: The build invocation used for deployable repositories."""

DEFAULT_OUTPUT_DIR = "dist"
"""str: The conventional build output directory inside a working tree."""

DEPLOY_SEPARATOR = "=>"
"""str: Separates a source path from its deploy target in the repository list."""

REPOS_FILE_HEADER = [
    "# Repository list managed by git-sync",
    "# One absolute path per line (a local working tree, not a remote URL).",
    "# For projects that must be built and deployed, use:",
    "#   /path/to/project => /path/to/destination",
    "# Examples:",
    "#   Without build: /var/www/html/my-app",
    "#   With build:    /srv/projects/my-app => /var/www/html/my-app/public",
]
"""list[str]: Comment header written at the top of the repository list."""
