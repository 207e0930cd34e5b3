"""Worker pool sizing for blocking git and filesystem work."""

import os
import sys
from typing import Any, Dict, Optional


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with the GIL disabled (3.13+ free-threading build)."""
    is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
    return is_gil_enabled is not None and not is_gil_enabled()


def get_optimal_worker_count(user_specified: Optional[int] = None) -> int:
    """Calculate the size of the git worker pool.

    Args:
        user_specified: Configured worker count, if provided

    Returns:
        Number of worker threads
    """
    if user_specified is not None and user_specified > 0:
        return user_specified

    cpu_count = os.cpu_count() or 1

    if is_free_threading_enabled():
        return min(64, cpu_count * 2)

    # Git calls mostly wait on subprocesses and disk, so oversubscribe a little
    return min(32, cpu_count + 4)


def get_threading_info() -> Dict[str, Any]:
    """Describe the threading configuration, for --debug output."""
    return {
        "free_threading": is_free_threading_enabled(),
        "cpu_count": os.cpu_count() or 1,
        "optimal_workers": get_optimal_worker_count(),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }
