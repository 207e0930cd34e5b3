"""Configuration handling for git-lineage-sync"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _default_base_path() -> str:
    return str(Path.home() / ".git-lineage-sync" / "repos")


@dataclass
class Config:
    """Configuration for git-lineage-sync with validation."""

    # Worktree layout
    base_path: str = field(default_factory=_default_base_path)
    seed_file_name: str = "README.md"
    delete_worktree_on_disconnect: bool = True

    # Execution
    workers: Optional[int] = None  # None = auto-detect
    verbose: bool = False
    debug: bool = False

    # Commits
    default_commit_message: str = "Default generated commit"
    system_author_name: str = "git-lineage-sync"
    system_author_email: str = "git-lineage-sync@localhost"
    history_limit: int = 100

    # Credentials
    encryption_key: Optional[str] = None  # Fernet key; generated per process when None
    strict_host_key_checking: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_base_path()
        self._validate_workers()
        self._validate_history_limit()
        self._validate_seed_file_name()
        self._validate_author()

    def _validate_base_path(self):
        """Validate base_path is not empty and expand the user directory."""
        if not self.base_path or not str(self.base_path).strip():
            raise ValueError("base_path cannot be empty")
        self.base_path = str(Path(str(self.base_path).strip()).expanduser())

    def _validate_workers(self):
        """Validate workers is positive when given."""
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    def _validate_history_limit(self):
        """Validate history_limit is positive."""
        if self.history_limit <= 0:
            raise ValueError(f"history_limit must be positive, got {self.history_limit}")

    def _validate_seed_file_name(self):
        """Validate seed_file_name is a plain file name."""
        name = (self.seed_file_name or "").strip()
        if not name or "/" in name or "\\" in name or name in (".", "..", ".git"):
            raise ValueError(f"seed_file_name must be a plain file name, got '{self.seed_file_name}'")
        self.seed_file_name = name

    def _validate_author(self):
        """Validate the system author identity."""
        if not self.system_author_name.strip():
            raise ValueError("system_author_name cannot be empty")
        if "@" not in self.system_author_email:
            raise ValueError(f"system_author_email must be an email address, got '{self.system_author_email}'")

    def to_dict(self) -> dict:
        """Convert config to dictionary. The encryption key is never included."""
        return {
            "base_path": self.base_path,
            "seed_file_name": self.seed_file_name,
            "delete_worktree_on_disconnect": self.delete_worktree_on_disconnect,
            "workers": self.workers,
            "verbose": self.verbose,
            "debug": self.debug,
            "default_commit_message": self.default_commit_message,
            "system_author_name": self.system_author_name,
            "system_author_email": self.system_author_email,
            "history_limit": self.history_limit,
            "strict_host_key_checking": self.strict_host_key_checking,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        known_fields = {
            "base_path",
            "seed_file_name",
            "delete_worktree_on_disconnect",
            "workers",
            "verbose",
            "debug",
            "default_commit_message",
            "system_author_name",
            "system_author_email",
            "history_limit",
            "encryption_key",
            "strict_host_key_checking",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
