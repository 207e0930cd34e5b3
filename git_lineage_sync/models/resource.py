"""Resource and git metadata models"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional


@dataclass
class GitMetadata:
    """Binds a resource to its remote, branch and repository name."""
    root_resource_id: Optional[str] = None
    repo_name: Optional[str] = None
    remote_url: Optional[str] = None
    branch_name: Optional[str] = None
    credential_ref: Optional[str] = None  # Key of the root's keypair in the credential store
    cached_public_key: Optional[str] = None

    # Checked in this order; the first empty one is reported
    REQUIRED_FIELDS = (
        ("root_resource_id", "root resource"),
        ("repo_name", "repository name"),
        ("remote_url", "remote url"),
        ("branch_name", "branch name"),
        ("credential_ref", "credential reference"),
    )

    def missing_field(self) -> Optional[str]:
        """Return the label of the first identifying field that is empty."""
        for attr, label in self.REQUIRED_FIELDS:
            if not getattr(self, attr):
                return label
        return None

    def is_complete(self) -> bool:
        return self.missing_field() is None

    def is_git_synced(self, checked_out_branch: Optional[str]) -> bool:
        """True when complete and pointing at the branch the worktree has checked out."""
        return self.is_complete() and self.branch_name == checked_out_branch

    def copy(self, **changes) -> "GitMetadata":
        return replace(self, **changes)


@dataclass
class Resource:
    """A store-resident application definition, root or branch of a lineage."""
    id: str
    workspace_id: str
    name: str
    state: Dict[str, Any] = field(default_factory=dict)
    published_state: Optional[Dict[str, Any]] = None
    git_metadata: Optional[GitMetadata] = None

    @property
    def is_root(self) -> bool:
        """A resource is the root of its lineage when its metadata points back at itself."""
        return self.git_metadata is not None and self.git_metadata.root_resource_id == self.id

    @property
    def branch_name(self) -> Optional[str]:
        return self.git_metadata.branch_name if self.git_metadata else None
