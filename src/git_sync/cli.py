import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from . import daemon, registry, service
from .config import Config
from .constants import APP_NAME, CONFIG_FILE, GIT_MARKER, REPOS_FILE
from .registry import RepoDefinition

console = Console()


def list_repos() -> None:
    """Displays the configured repositories and their deploy targets."""
    repos = registry.read_repos(REPOS_FILE)
    if not repos:
        console.print(
            f"[yellow]No repositories configured. Add one with "
            f"'git-sync add <path>' or edit {REPOS_FILE}.[/yellow]"
        )
        return

    table = Table(title="Configured Repositories", header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Deploy Target", style="green")
    table.add_column("Status")

    for repo in repos:
        if not repo.path.exists():
            status = "[red]Missing[/red]"
        elif not (repo.path / GIT_MARKER).exists():
            status = "[yellow]Not a git repo[/yellow]"
        else:
            status = "[green]OK[/green]"
        table.add_row(repo.repo_path, repo.deploy_target or "[dim]-[/dim]", status)

    console.print(table)


def add_repo_cli(path_str: str, deploy: str | None) -> None:
    """Adds (or updates) a repository in the list.

    Args:
        path_str (str): Path to the working tree; resolved to an absolute path.
        deploy (str | None): Optional deploy target; resolved likewise.
    """
    path = Path(path_str).expanduser().resolve()
    target = str(Path(deploy).expanduser().resolve()) if deploy else None

    if not (path / GIT_MARKER).exists():
        console.print(
            f"[bold yellow]WARNING:[/bold yellow] {path} is not a git repository "
            "(yet). It will fail validation until it is."
        )

    try:
        added = registry.add_repo(RepoDefinition(str(path), target), REPOS_FILE)
    except OSError as e:
        console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(1)

    verb = "Registered" if added else "Updated"
    line = f"{path} => {target}" if target else str(path)
    console.print(f"[bold green]SUCCESS:[/bold green] {verb}: [cyan]{line}[/cyan]")


def remove_repo_cli(path_str: str) -> None:
    """Removes a repository from the list.

    The path is matched as written first, then in its resolved form.
    """
    candidates = [path_str.strip(), str(Path(path_str).expanduser().resolve())]
    try:
        for candidate in dict.fromkeys(candidates):
            if registry.remove_repo(candidate, REPOS_FILE):
                console.print(
                    f"[bold green]SUCCESS:[/bold green] Removed "
                    f"[cyan]{candidate}[/cyan]."
                )
                return
    except OSError as e:
        console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(1)

    console.print(f"[yellow]{path_str} is not in the repository list.[/yellow]")


def show_config(reference: bool = False) -> None:
    """Displays the effective configuration, or the schema with `reference`."""
    if reference:
        show_config_reference()
        return

    config = Config.load(CONFIG_FILE)
    source = CONFIG_FILE if CONFIG_FILE.exists() else "defaults (no config file)"
    console.print(f"Configuration: [cyan]{source}[/cyan]")
    console.print(f"Repository list: [cyan]{REPOS_FILE}[/cyan]\n")
    console.print(config.to_toml(), highlight=False, markup=False)


def show_config_reference() -> None:
    """Displays a formatted table of all available configuration options."""
    table = Table(title="git-sync Configuration Schema", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Type", style="dim")
    table.add_column("Default", style="yellow")
    table.add_column("Description")

    table.add_row(
        "daemon",
        "sync_interval",
        "int | str",
        "60",
        "Time between cycles (e.g., '30s', '5m', 60).",
    )
    table.add_row(
        "", "stop_on_error", "bool", "true", "Exit when a cycle has failures."
    )
    table.add_row(
        "", "continuous_mode", "bool", "true", "Loop forever instead of one pass."
    )
    table.add_row(
        "git",
        "timeout",
        "int | str",
        "0",
        "Per-command git timeout (e.g., '5m'); 0 disables it.",
    )
    table.add_row(
        "build",
        "command",
        "list | str",
        '["npm", "run", "build"]',
        "Build command run inside deployable repositories.",
    )
    table.add_row(
        "", "output_dir", "str", '"dist"', "Directory the build must produce."
    )
    table.add_row(
        "output", "verbose", "bool", "true", "Log per-repository progress lines."
    )
    table.add_row(
        "limits",
        "max_log_size",
        "int | str",
        '"5mb"',
        "Max size for the log file before rotation (e.g., '5mb', '1gb').",
    )

    console.print(table)


def main() -> None:
    """Main entry point for the git-sync CLI."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Keep git working trees up to date and deploy their builds.",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("daemon", help="Run the synchronization loop")
    subparsers.add_parser("now", help="Run one synchronization cycle immediately")
    subparsers.add_parser("list", help="List configured repositories")

    add_parser = subparsers.add_parser("add", help="Add a repository to the list")
    add_parser.add_argument("path", help="Path to the git working tree")
    add_parser.add_argument(
        "--deploy", "-d", metavar="TARGET", help="Publish build artifacts to TARGET"
    )

    remove_parser = subparsers.add_parser(
        "remove", help="Remove a repository from the list"
    )
    remove_parser.add_argument("path", help="Path as written in the list")

    config_parser = subparsers.add_parser(
        "config", help="Show the effective configuration or view options"
    )
    config_parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        help="List all available configuration options and their descriptions",
    )

    subparsers.add_parser("install-service", help="Install the systemd service")
    subparsers.add_parser("uninstall-service", help="Remove the systemd service")

    args = parser.parse_args()

    # Handle Subcommands
    if args.command == "daemon":
        sys.exit(daemon.main())
    elif args.command == "now":
        sys.exit(daemon.main(interactive=True))
    elif args.command == "list":
        list_repos()
    elif args.command == "add":
        add_repo_cli(args.path, args.deploy)
    elif args.command == "remove":
        remove_repo_cli(args.path)
    elif args.command == "config":
        show_config(reference=args.list)
    elif args.command == "install-service":
        with console.status("Installing service...", spinner="dots"):
            service.install()
    elif args.command == "uninstall-service":
        with console.status("Uninstalling service...", spinner="dots"):
            service.uninstall()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
