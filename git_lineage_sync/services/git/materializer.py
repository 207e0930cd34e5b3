"""Writes artifact trees into worktrees and reads them back"""

import os
import shutil
from pathlib import Path, PurePosixPath
from typing import Optional, Union, TYPE_CHECKING

from git_lineage_sync.exceptions import InvalidParameter, InvalidRepoState
from git_lineage_sync.logging_config import get_logger
from git_lineage_sync.paths import lineage_dir, worktree_path
from git_lineage_sync.serializer import ArtifactTree
from git_lineage_sync.services.git.executor import GitExecutor

if TYPE_CHECKING:
    from git_lineage_sync.config import Config

logger = get_logger(__name__)

SEED_TEMPLATE = """# Welcome to your version controlled application

This repository is kept in sync with the application it belongs to.
Changes are committed from the application editor; edit the application there
rather than in this repository.

* Deployed view: {view_url}
* Edit mode: {edit_url}
"""


class WorktreeMaterializer:
    """Keeps the checked-out tree of a worktree equal to an artifact tree.

    Everything whose name starts with "." (the .git directory included) and
    the seed document are left untouched; all other content belongs to the
    artifact.
    """

    def __init__(self, config: Union["Config", dict], executor: GitExecutor):
        self.config = config
        self.executor = executor
        self.base_path = Path(config.get("base_path"))
        self.seed_file_name = config.get("seed_file_name", "README.md")

    def _is_preserved(self, name: str) -> bool:
        return name.startswith(".") or name == self.seed_file_name

    def _validate_artifact(self, artifact: ArtifactTree) -> None:
        for relative in artifact:
            parts = PurePosixPath(relative).parts
            if (
                not parts
                or relative.startswith("/")
                or "\\" in relative
                or any(part in ("..", ".") for part in parts)
                or self._is_preserved(parts[0])
            ):
                raise InvalidParameter("artifact path", f"'{relative}' cannot be written to a worktree")

    def materialize(self, path: Union[str, Path], artifact: ArtifactTree, branch_name: str,
                    create: bool = True) -> Path:
        """Check out `branch_name` and replace the worktree content with `artifact`.

        The checkout is forced: whatever the worktree held before is derived
        state and may be overwritten. A missing repository is initialized
        only when `create` is set.
        """
        path = Path(path)
        self._validate_artifact(artifact)

        if not (path / ".git").exists():
            if not create:
                raise InvalidRepoState(f"No repository at {path}, please connect the application again")
            self.executor.init_repository(path, branch_name)
        self.executor.ensure_branch(path, branch_name, force=True)

        for entry in path.iterdir():
            if self._is_preserved(entry.name):
                continue
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()

        for relative, content in sorted(artifact.items()):
            target = path.joinpath(*PurePosixPath(relative).parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            # newline="" keeps the bytes identical on every platform
            with open(target, "w", encoding="utf-8", newline="") as handle:
                handle.write(content)

        logger.debug(f"Materialized {len(artifact)} file(s) into {path} on {branch_name}")
        return path

    def _resolve_worktree(self, workspace_id: str, root_resource_id: str,
                          repo_name: Optional[str]) -> Path:
        if repo_name:
            return worktree_path(self.base_path, workspace_id, root_resource_id, repo_name)

        lineage = lineage_dir(self.base_path, workspace_id, root_resource_id)
        candidates = []
        if lineage.is_dir():
            candidates = [child for child in lineage.iterdir() if (child / ".git").exists()]
        if len(candidates) != 1:
            raise InvalidRepoState(
                f"Expected one repository under {lineage}, found {len(candidates)}"
            )
        return candidates[0]

    def reconstruct(self, workspace_id: str, root_resource_id: str, branch_name: str,
                    repo_name: Optional[str] = None) -> ArtifactTree:
        """Read the tree of `branch_name` back into an artifact."""
        path = self._resolve_worktree(workspace_id, root_resource_id, repo_name)
        self.executor.checkout(path, branch_name)

        artifact: ArtifactTree = {}
        for dirpath, dirnames, filenames in os.walk(path):
            current = Path(dirpath)
            at_top = current == path
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for file_name in filenames:
                if file_name.startswith(".") or (at_top and self._is_preserved(file_name)):
                    continue
                file_path = current / file_name
                relative = file_path.relative_to(path).as_posix()
                try:
                    with open(file_path, "r", encoding="utf-8", newline="") as handle:
                        artifact[relative] = handle.read()
                except UnicodeDecodeError as e:
                    raise InvalidRepoState(
                        f"Unable to read {relative} on branch {branch_name}: not a UTF-8 text file"
                    ) from e

        logger.debug(f"Reconstructed {len(artifact)} file(s) from {path} on {branch_name}")
        return artifact

    def bootstrap(self, path: Union[str, Path], view_url: str, edit_url: str) -> Path:
        """Write the seed document linking back to the application."""
        seed = Path(path) / self.seed_file_name
        seed.write_text(SEED_TEMPLATE.format(view_url=view_url, edit_url=edit_url), encoding="utf-8")
        logger.debug(f"Wrote seed document {seed}")
        return seed

    def is_empty(self, path: Union[str, Path]) -> bool:
        """True when the directory holds nothing but the .git directory."""
        path = Path(path)
        if not path.is_dir():
            return True
        return all(entry.name == ".git" for entry in path.iterdir())

    def retire(self, path: Union[str, Path], delete: bool = True) -> None:
        """Detach a worktree from its remote and, when `delete`, remove it."""
        path = Path(path)
        if not path.exists():
            logger.debug(f"Worktree {path} already gone")
            return

        if (path / ".git").exists():
            self.executor.remove_remote(path)
        if delete:
            shutil.rmtree(path)
            logger.info(f"Deleted worktree {path}")
