"""Data models for git-lineage-sync."""

from .git import (
    CommitRecord,
    CommitResult,
    ConflictEntry,
    ConflictKind,
    GitCredential,
    GitProfile,
    GitStatus,
    MergeResult,
    PullResult,
    PullStatus,
)
from .resource import GitMetadata, Resource

__all__ = [
    "CommitRecord",
    "CommitResult",
    "ConflictEntry",
    "ConflictKind",
    "GitCredential",
    "GitMetadata",
    "GitProfile",
    "GitStatus",
    "MergeResult",
    "PullResult",
    "PullStatus",
    "Resource",
]
