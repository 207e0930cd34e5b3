"""Canonical JSON file-tree serializer

A resource state is laid out as:

    application.json          every top-level entry that is not a collection
    <collection>/<name>.json  one file per member of a mapping of mappings
                              (e.g. pages/home.json)

Output is deterministic (sorted keys, fixed indentation, trailing newline) so
that unchanged state always produces byte-identical files.
"""
import json
from typing import Any, Dict, Iterable

from git_lineage_sync.exceptions import ResourceNotFound
from git_lineage_sync.models.resource import Resource
from git_lineage_sync.stores.resources import ResourceStore

# Relative posix path -> file content
ArtifactTree = Dict[str, str]

APPLICATION_FILE = "application.json"
PURPOSE_VERSION_CONTROL = "version_control"
PURPOSE_PUBLISHED = "published"


def _dumps(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def _is_safe_name(name: str, reserved: Iterable[str] = ()) -> bool:
    # Dot-names are excluded so nothing can land in .git or collide with hidden files
    return (
        bool(name)
        and not name.startswith(".")
        and name != APPLICATION_FILE
        and name not in reserved
        and "/" not in name
        and "\\" not in name
    )


def _is_collection(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and len(value) > 0
        and all(isinstance(member, dict) and _is_safe_name(key) for key, member in value.items())
    )


def state_to_tree(state: Dict[str, Any], reserved: Iterable[str] = ()) -> ArtifactTree:
    """Lay a state out as files.

    Top-level keys named in `reserved` (files the worktree owns, such as the
    seed document) always stay in application.json.
    """
    reserved = frozenset(reserved)
    tree: ArtifactTree = {}
    application: Dict[str, Any] = {}
    for key, value in state.items():
        if _is_safe_name(key, reserved) and _is_collection(value):
            for member_name, member in value.items():
                tree[f"{key}/{member_name}.json"] = _dumps(member)
        else:
            application[key] = value
    tree[APPLICATION_FILE] = _dumps(application)
    return tree


def tree_to_state(tree: ArtifactTree) -> Dict[str, Any]:
    state: Dict[str, Any] = {}
    if APPLICATION_FILE in tree:
        state.update(json.loads(tree[APPLICATION_FILE]))
    for path in sorted(tree):
        parts = path.split("/")
        if len(parts) != 2 or not parts[1].endswith(".json"):
            continue
        collection, file_name = parts
        state.setdefault(collection, {})[file_name[: -len(".json")]] = json.loads(tree[path])
    return state


class JsonTreeSerializer:
    """Exports resources to artifact trees and imports them back into the store."""

    def __init__(self, resource_store: ResourceStore, reserved_names: Iterable[str] = ()):
        self.resource_store = resource_store
        self.reserved_names = frozenset(reserved_names)

    def export(self, resource_id: str, purpose: str = PURPOSE_VERSION_CONTROL) -> ArtifactTree:
        resource = self.resource_store.get(resource_id)
        if resource is None:
            raise ResourceNotFound("resource", resource_id)
        if purpose == PURPOSE_PUBLISHED and resource.published_state is not None:
            return state_to_tree(resource.published_state, self.reserved_names)
        return state_to_tree(resource.state, self.reserved_names)

    def import_artifact(self, workspace_id: str, artifact: ArtifactTree, target_resource_id: str) -> Resource:
        """Replace the state of the target resource with the artifact content."""
        resource = self.resource_store.get(target_resource_id)
        if resource is None or resource.workspace_id != workspace_id:
            raise ResourceNotFound("resource", target_resource_id)
        resource.state = tree_to_state(artifact)
        return self.resource_store.save(resource)
