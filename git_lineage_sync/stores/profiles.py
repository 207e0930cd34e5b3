"""Commit author profiles per user"""
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Optional

from git_lineage_sync.exceptions import InvalidGitConfiguration, InvalidParameter
from git_lineage_sync.models.git import GitProfile
from git_lineage_sync.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PROFILE_KEY = "default"

MISSING_PROFILE_MESSAGE = (
    "Unable to find git author configuration for logged-in user. "
    "You can set up a git profile from the user profile section."
)


@dataclass
class UserProfiles:
    default: Optional[GitProfile] = None
    overrides: Dict[str, GitProfile] = field(default_factory=dict)

    def resolve(self, root_resource_id: Optional[str] = None) -> Optional[GitProfile]:
        """Per-root override when present, else the default profile."""
        if root_resource_id and root_resource_id in self.overrides:
            return self.overrides[root_resource_id]
        return self.default

    def as_dict(self) -> Dict[str, GitProfile]:
        profiles = dict(self.overrides)
        if self.default is not None:
            profiles[DEFAULT_PROFILE_KEY] = self.default
        return profiles


class ProfileStore:
    """Stores default and per-lineage author profiles keyed by user id."""

    def __init__(self):
        self._users: Dict[str, UserProfiles] = {}
        self._lock = Lock()

    def set_profile(self, user_id: str, profile: GitProfile, is_default: bool = True,
                    root_resource_id: Optional[str] = None) -> Dict[str, GitProfile]:
        """Create or update a profile.

        The profile becomes the user's default when asked to, when no root id is
        given, or when the user has no profile yet. Otherwise it overrides the
        default for that root resource only.

        Returns:
            All profiles of the user, the default one under "default"
        """
        if not profile.author_name or not profile.author_name.strip():
            raise InvalidParameter("Author Name")
        if not profile.author_email or not profile.author_email.strip():
            raise InvalidParameter("Author Email")

        with self._lock:
            profiles = self._users.setdefault(user_id, UserProfiles())
            current = profiles.resolve(root_resource_id)
            if profile == current:
                return profiles.as_dict()
            if current is None or is_default or not root_resource_id:
                profiles.default = profile
                logger.info(f"Saved default git profile for user {user_id}")
            else:
                profiles.overrides[root_resource_id] = profile
                logger.info(f"Saved git profile for user {user_id} on {root_resource_id}")
            return profiles.as_dict()

    def get_profile(self, user_id: Optional[str], root_resource_id: Optional[str] = None) -> GitProfile:
        """Resolve the author for a user, optionally for one lineage.

        Raises:
            InvalidGitConfiguration: If the user has no usable profile
        """
        with self._lock:
            profiles = self._users.get(user_id) if user_id else None
            profile = profiles.resolve(root_resource_id) if profiles else None
        if profile is None:
            raise InvalidGitConfiguration(MISSING_PROFILE_MESSAGE)
        return profile

    def profiles_for(self, user_id: Optional[str], root_resource_id: str) -> Dict[str, GitProfile]:
        """Default and lineage-specific profile of a user, without failing when absent."""
        with self._lock:
            profiles = self._users.get(user_id) if user_id else None
            if profiles is None:
                return {}
            result = {}
            if profiles.default is not None:
                result[DEFAULT_PROFILE_KEY] = profiles.default
            specific = profiles.resolve(root_resource_id)
            if specific is not None:
                result[root_resource_id] = specific
            return result
