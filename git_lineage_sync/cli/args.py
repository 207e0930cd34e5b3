"""Command-line argument parsing for git-lineage-sync."""

import argparse
from git_lineage_sync.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect worktrees managed by git-lineage-sync",
        epilog="Worktrees live under <base>/<workspace>/<root resource>/<repository name>",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-lineage-sync {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    repo_name = subparsers.add_parser("repo-name", help="Print the repository name derived from a remote URL")
    repo_name.add_argument("url", help="Remote URL, e.g. git@github.com:user/repo.git")

    status = subparsers.add_parser("status", help="Show the working tree status of a worktree")
    status.add_argument("path", help="Worktree directory")
    status.add_argument("--branch", help="Branch to inspect (default: current branch)")

    branches = subparsers.add_parser("branches", help="List local and remote-only branches")
    branches.add_argument("path", help="Worktree directory")

    log = subparsers.add_parser("log", help="Show commit history, newest first")
    log.add_argument("path", help="Worktree directory")
    log.add_argument("--branch", help="Branch to read (default: HEAD)")
    log.add_argument("--limit", type=int, metavar="N", help="Maximum number of commits to show")

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
