"""Stores backing the orchestration service.

- credentials: per-lineage SSH keypairs, encrypted at rest
- profiles: commit author profiles per user
- resources: resource records indexed by lineage and branch
"""

from .credentials import CredentialStore
from .profiles import DEFAULT_PROFILE_KEY, ProfileStore
from .resources import ResourceStore

__all__ = [
    "CredentialStore",
    "DEFAULT_PROFILE_KEY",
    "ProfileStore",
    "ResourceStore",
]
