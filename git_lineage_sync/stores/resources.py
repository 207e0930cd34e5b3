"""In-memory resource store"""
import copy
import uuid
from threading import Lock
from typing import Any, Dict, List, Optional

from git_lineage_sync.models.resource import Resource
from git_lineage_sync.logging_config import get_logger

logger = get_logger(__name__)


class ResourceStore:
    """Keeps resource records and resolves (lineage, branch) pairs to them.

    Records are copied on the way in and out so callers never share mutable
    state with the store.
    """

    def __init__(self):
        self._resources: Dict[str, Resource] = {}
        self._lock = Lock()

    def create(self, workspace_id: str, name: str, state: Optional[Dict[str, Any]] = None,
               resource_id: Optional[str] = None) -> Resource:
        resource = Resource(
            id=resource_id or uuid.uuid4().hex,
            workspace_id=workspace_id,
            name=name,
            state=copy.deepcopy(state) if state else {},
        )
        with self._lock:
            if resource.id in self._resources:
                raise ValueError(f"Resource {resource.id} already exists")
            self._resources[resource.id] = copy.deepcopy(resource)
        logger.debug(f"Created resource {resource.id} in workspace {workspace_id}")
        return resource

    def get(self, resource_id: str) -> Optional[Resource]:
        with self._lock:
            resource = self._resources.get(resource_id)
            return copy.deepcopy(resource) if resource else None

    def save(self, resource: Resource) -> Resource:
        with self._lock:
            self._resources[resource.id] = copy.deepcopy(resource)
        return resource

    def delete(self, resource_id: str) -> bool:
        with self._lock:
            return self._resources.pop(resource_id, None) is not None

    def list_lineage(self, root_resource_id: str) -> List[Resource]:
        """All records of a lineage, root first."""
        with self._lock:
            members = [
                copy.deepcopy(r) for r in self._resources.values()
                if r.git_metadata and r.git_metadata.root_resource_id == root_resource_id
            ]
        return sorted(members, key=lambda r: (r.id != root_resource_id, r.branch_name or ""))

    def find_by_branch(self, root_resource_id: str, branch_name: str) -> Optional[Resource]:
        """Resolve the record holding `branch_name` of a lineage."""
        for resource in self.list_lineage(root_resource_id):
            if resource.branch_name == branch_name:
                return resource
        return None
