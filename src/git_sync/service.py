import os
import pwd
import shutil
import subprocess
import sys
from pathlib import Path

from rich.console import Console

from .constants import LOG_DIR, LOG_FILE, SERVICE_NAME, SERVICE_PATH

console = Console()


def get_executable() -> str:
    """Locates the installed `git-sync` executable in the system path.

    Returns:
        str: The absolute path to the 'git-sync' executable.

    Raises:
        SystemExit: If the executable is not found in the PATH.
    """
    exe = shutil.which("git-sync")
    if not exe:
        console.print(
            "[bold red]ERROR:[/bold red] Could not find 'git-sync'. "
            "Ensure the package is installed."
        )
        sys.exit(1)
    return exe


def resolve_service_user() -> tuple[str, str]:
    """Determines which account the service should run as.

    Prefers the user who invoked sudo, then the current user.

    Returns:
        tuple[str, str]: The user name and its home directory.

    Raises:
        RuntimeError: If no candidate user can be resolved.
    """
    for var in ("SUDO_USER", "USER", "LOGNAME"):
        name = os.environ.get(var)
        if not name:
            continue
        try:
            return name, pwd.getpwnam(name).pw_dir
        except KeyError:
            continue

    if home := os.environ.get("HOME"):
        name = os.environ.get("USER") or os.environ.get("LOGNAME")
        if name:
            return name, home

    raise RuntimeError("Could not determine which user the service should run as.")


def prepare_log_dir(user: str) -> None:
    """Creates the log directory and hands it (and the log file) to `user`."""
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        LOG_FILE.touch(exist_ok=True)
        for path in (LOG_DIR, LOG_FILE):
            shutil.chown(path, user=user)
    except (OSError, LookupError) as e:
        console.print(
            f"[bold yellow]WARNING:[/bold yellow] Could not prepare {LOG_DIR} "
            f"for {user}: {e}"
        )


def render_unit(executable: str, user: str, home: str) -> str:
    """Builds the systemd unit running the daemon as `user`."""
    return f"""[Unit]
Description=git-sync repository synchronization daemon
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
User={user}
WorkingDirectory={home}
Environment=HOME={home}
ExecStart={executable} daemon
Restart=on-failure
RestartSec=60

[Install]
WantedBy=multi-user.target
"""


def _systemctl(*args: str) -> None:
    cmd = ["systemctl", *args]
    try:
        res = subprocess.run(cmd)
    except OSError as e:
        console.print(
            f"[bold red]ERROR:[/bold red] Could not run {' '.join(cmd)}: {e}. "
            "Run it manually if needed."
        )
        return
    if res.returncode != 0:
        console.print(
            f"[bold yellow]WARNING:[/bold yellow] {' '.join(cmd)} exited with "
            f"status {res.returncode}. You may need to run it manually."
        )


def install(unit_path: Path = SERVICE_PATH) -> None:
    """Installs and starts the systemd service.

    Does nothing if the unit file already exists.

    Args:
        unit_path (Path, optional): Where to write the unit file.
    """
    if not sys.platform.startswith("linux"):
        console.print(
            "[bold red]ERROR:[/bold red] Service installation requires systemd (Linux)."
        )
        sys.exit(1)

    if unit_path.exists():
        console.print(f"[dim]Service already installed at {unit_path}.[/dim]")
        return

    if not unit_path.parent.exists():
        console.print(
            f"[bold red]ERROR:[/bold red] {unit_path.parent} does not exist. "
            "Does this system use systemd?"
        )
        sys.exit(1)

    exe = get_executable()
    try:
        user, home = resolve_service_user()
    except RuntimeError as e:
        console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(1)

    prepare_log_dir(user)

    with open(unit_path, "w") as f:
        f.write(render_unit(exe, user, home))
        f.flush()
        os.fsync(f.fileno())
    unit_path.chmod(0o644)

    _systemctl("daemon-reload")
    _systemctl("enable", "--now", SERVICE_NAME)
    console.print(
        f"[bold green]SUCCESS:[/bold green] {SERVICE_NAME} service active.\n"
        f"Check status: systemctl status {SERVICE_NAME}"
    )


def uninstall(unit_path: Path = SERVICE_PATH) -> None:
    """Stops the service and removes its unit file.

    Args:
        unit_path (Path, optional): The unit file to remove.
    """
    if not unit_path.exists():
        console.print(f"[dim]The {SERVICE_NAME} service is not installed.[/dim]")
        return

    _systemctl("disable", "--now", SERVICE_NAME)
    unit_path.unlink()
    _systemctl("daemon-reload")

    console.print("[bold green]SUCCESS:[/bold green] Service uninstalled.")
