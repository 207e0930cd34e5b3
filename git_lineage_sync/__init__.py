"""
git-lineage-sync - Keeps store-resident resources in sync with git worktrees
"""

from .__version__ import __version__
from .config import Config
from .services.orchestrator import GitOrchestrator
from .cli.main import main

__all__ = ["Config", "GitOrchestrator", "main", "__version__"]
