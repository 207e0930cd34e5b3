"""Git data models: credentials, profiles and operation results"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set


@dataclass
class GitCredential:
    """SSH keypair of a lineage. The private key is kept out of repr."""
    private_key: str = field(repr=False)
    public_key: str

    def is_valid(self) -> bool:
        return bool(self.private_key and self.private_key.strip()
                    and self.public_key and self.public_key.strip())


@dataclass
class GitProfile:
    """Commit author identity."""
    author_name: str
    author_email: str


@dataclass
class CommitRecord:
    """A commit read from the worktree log."""
    hash: str
    author_name: str
    author_email: str
    timestamp: datetime
    message: str

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


@dataclass
class CommitResult:
    """Outcome of a commit. created=False means there was nothing to commit."""
    created: bool
    hexsha: Optional[str] = None
    summary: str = ""


class PullStatus(Enum):
    """Outcome of a pull."""
    UP_TO_DATE = "up-to-date"
    FETCHED_AND_MERGED = "fetched-and-merged"
    FAILED = "failed"


class ConflictKind(Enum):
    """Unmerged path states as reported by `git status --porcelain`."""
    BOTH_MODIFIED = "both-modified"      # UU
    BOTH_ADDED = "both-added"            # AA
    BOTH_DELETED = "both-deleted"        # DD
    ADDED_BY_US = "added-by-us"          # AU
    ADDED_BY_THEM = "added-by-them"      # UA
    DELETED_BY_US = "deleted-by-us"      # DU
    DELETED_BY_THEM = "deleted-by-them"  # UD

    @classmethod
    def from_porcelain(cls, code: str) -> Optional["ConflictKind"]:
        return _PORCELAIN_CONFLICTS.get(code)


_PORCELAIN_CONFLICTS = {
    "UU": ConflictKind.BOTH_MODIFIED,
    "AA": ConflictKind.BOTH_ADDED,
    "DD": ConflictKind.BOTH_DELETED,
    "AU": ConflictKind.ADDED_BY_US,
    "UA": ConflictKind.ADDED_BY_THEM,
    "DU": ConflictKind.DELETED_BY_US,
    "UD": ConflictKind.DELETED_BY_THEM,
}


@dataclass
class ConflictEntry:
    """A path left unmerged by a pull or merge."""
    path: str
    kind: ConflictKind


@dataclass
class PullResult:
    status: PullStatus
    detail: str = ""
    conflicts: List[ConflictEntry] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status != PullStatus.FAILED


@dataclass
class MergeResult:
    merged: bool
    conflicts: List[ConflictEntry] = field(default_factory=list)
    message: str = ""


@dataclass
class GitStatus:
    """Working tree status of a branch checkout."""
    added: Set[str] = field(default_factory=set)
    modified: Set[str] = field(default_factory=set)
    removed: Set[str] = field(default_factory=set)
    conflicting: Set[str] = field(default_factory=set)
    untracked: Set[str] = field(default_factory=set)
    ahead: int = 0
    behind: int = 0

    @property
    def is_clean(self) -> bool:
        return not (self.added or self.modified or self.removed
                    or self.conflicting or self.untracked)

    def to_dict(self) -> dict:
        return {
            "added": sorted(self.added),
            "modified": sorted(self.modified),
            "removed": sorted(self.removed),
            "conflicting": sorted(self.conflicting),
            "untracked": sorted(self.untracked),
            "ahead": self.ahead,
            "behind": self.behind,
            "isClean": self.is_clean,
        }
