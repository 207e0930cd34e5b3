"""Git services.

This package provides:
- executor: primitive git operations on a worktree
- materializer: artifact trees in and out of worktrees
"""

from .executor import GitExecutor, sanitize_branch_name
from .materializer import WorktreeMaterializer

__all__ = [
    "GitExecutor",
    "WorktreeMaterializer",
    "sanitize_branch_name",
]
