"""Utility functions for git-lineage-sync.

This package provides utility modules:
- locks: per-key asyncio locks serializing work on one worktree
- threading: worker pool sizing
"""

from .locks import KeyedLock
from .threading import (
    is_free_threading_enabled,
    get_optimal_worker_count,
    get_threading_info,
)

__all__ = [
    "KeyedLock",
    "is_free_threading_enabled",
    "get_optimal_worker_count",
    "get_threading_info",
]
