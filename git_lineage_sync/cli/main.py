"""Command-line interface for git-lineage-sync"""

import sys

from rich.console import Console

from git_lineage_sync.cli.args import parse_args
from git_lineage_sync.config import Config
from git_lineage_sync.exceptions import GitSyncError, InvalidRepoState
from git_lineage_sync.logging_config import setup_logging
from git_lineage_sync.paths import repo_name_from_url
from git_lineage_sync.services.display_service import DisplayService
from git_lineage_sync.services.git.executor import GitExecutor
from git_lineage_sync.utils.threading import get_threading_info

console = Console()


def _show_debug_info(config: Config) -> None:
    console.print("[yellow]Debug mode enabled[/yellow]")
    threading_info = get_threading_info()
    console.print("[yellow]Threading Information:[/yellow]")
    console.print(f"  Python version: {threading_info['python_version']}")
    console.print(f"  CPU count: {threading_info['cpu_count']}")
    console.print(f"  Optimal workers: {threading_info['optimal_workers']}")
    console.print(f"  Free-threading enabled: {threading_info['free_threading']}")

    console.print("[yellow]Configuration:[/yellow]")
    for key, value in config.to_dict().items():
        console.print(f"  {key}: {value}")


def main(argv=None) -> int:
    """Main entry point for the application."""
    parsed_args = None
    try:
        parsed_args = parse_args(argv)
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        config = Config(verbose=parsed_args.verbose, debug=parsed_args.debug)
        if parsed_args.debug:
            _show_debug_info(config)

        display = DisplayService(verbose=parsed_args.verbose, debug=parsed_args.debug)
        executor = GitExecutor(config)

        if parsed_args.command == "repo-name":
            console.print(repo_name_from_url(parsed_args.url))
        elif parsed_args.command == "status":
            branch = parsed_args.branch or executor.current_branch(parsed_args.path)
            if not branch:
                raise InvalidRepoState(f"{parsed_args.path} has a detached HEAD, pass --branch")
            display.display_status(executor.status(parsed_args.path, branch), branch)
        elif parsed_args.command == "branches":
            display.display_branches(
                executor.list_branches(parsed_args.path),
                executor.current_branch(parsed_args.path),
            )
        elif parsed_args.command == "log":
            display.display_history(
                executor.commit_history(parsed_args.path, parsed_args.branch, parsed_args.limit)
            )

        return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except GitSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
