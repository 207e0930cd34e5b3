"""Services for git-lineage-sync."""

from .authorization import Authorizer, Permission
from .display_service import DisplayService
from .git import GitExecutor, WorktreeMaterializer
from .orchestrator import GitOrchestrator

__all__ = [
    "Authorizer",
    "DisplayService",
    "GitExecutor",
    "GitOrchestrator",
    "Permission",
    "WorktreeMaterializer",
]
