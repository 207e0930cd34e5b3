"""Worktree path resolution and repository naming"""
import re
from pathlib import Path
from typing import Union

from git_lineage_sync.exceptions import InvalidGitConfiguration, InvalidParameter

# Final path segment before the ".git" suffix, e.g.
#   git@github.com:username/reponame.git
#   ssh://git@bitbucket.org/<workspace_ID>/<repo_name>.git
_REPO_NAME_PATTERN = re.compile(r"([^/:]+)\.git$")


def repo_name_from_url(remote_url: str) -> str:
    """Derive the repository name from a remote URL.

    Raises:
        InvalidGitConfiguration: If the URL does not end with "<name>.git"
    """
    match = _REPO_NAME_PATTERN.search((remote_url or "").strip())
    if not match:
        raise InvalidGitConfiguration(
            "Remote URL is incorrect! Please provide it in the standard format "
            "=> git@github.com:username/reponame.git"
        )
    return match.group(1)


def _checked_component(value: str, field: str) -> str:
    value = (value or "").strip()
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise InvalidParameter(field, f"'{value}' cannot be used as a path component")
    return value


def worktree_path(base_path: Union[str, Path], workspace_id: str, root_resource_id: str,
                  repo_name: str) -> Path:
    """Return the single worktree directory of a lineage.

    Every component is validated so that two lineages never share a directory.
    """
    return lineage_dir(base_path, workspace_id, root_resource_id) / _checked_component(repo_name, "repo_name")


def lineage_dir(base_path: Union[str, Path], workspace_id: str, root_resource_id: str) -> Path:
    """Directory holding the worktree of a lineage."""
    return (
        Path(base_path)
        / _checked_component(workspace_id, "workspace_id")
        / _checked_component(root_resource_id, "root_resource_id")
    )
