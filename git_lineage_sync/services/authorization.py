"""Access checks on resources"""
from enum import Enum
from typing import Optional

from git_lineage_sync.models.resource import Resource


class Permission(Enum):
    READ = "read"
    WRITE = "write"


class Authorizer:
    """Decides whether a user may act on a resource. Permits everything."""

    def is_allowed(self, user_id: Optional[str], resource: Resource, permission: Permission) -> bool:
        return True
