"""Custom exceptions for git-lineage-sync"""

from typing import Optional


class GitSyncError(Exception):
    """Base exception for all git-lineage-sync errors."""
    pass


class InvalidParameter(GitSyncError):
    """Exception raised when a required input is missing or blank."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        self.message = message

        error_msg = f"Please enter a valid parameter {field}"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class InvalidGitConfiguration(GitSyncError):
    """Exception raised for incomplete git metadata or author profiles."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Git configuration is invalid: {detail}")


class InvalidGitCredentials(GitSyncError):
    """Exception raised when the SSH keypair of a lineage is absent or unreadable."""

    def __init__(self, message: Optional[str] = None):
        self.message = message
        error_msg = "SSH key is missing or malformed, please generate a new deploy key"
        if message:
            error_msg += f" ({message})"
        super().__init__(error_msg)


class AuthenticationFailure(GitSyncError):
    """Exception raised when the remote rejects our SSH key or transport."""

    def __init__(self, message: Optional[str] = None):
        self.message = message
        error_msg = "Authentication with the remote repository failed"
        if message:
            error_msg += f": {message}"
        super().__init__(error_msg)


class InvalidRemote(GitSyncError):
    """Exception raised for malformed or unreachable remote URLs."""

    def __init__(self, remote_url: str, message: Optional[str] = None):
        self.remote_url = remote_url
        self.message = message
        error_msg = f"Remote '{remote_url}' is not a reachable git repository"
        if message:
            error_msg += f": {message}"
        super().__init__(error_msg)


class InvalidRepoState(GitSyncError):
    """Exception raised when the worktree is not in a state we can work with."""

    def __init__(self, message: str, conflicts: Optional[list] = None):
        self.message = message
        self.conflicts = conflicts or []
        super().__init__(message)


class IOFailure(GitSyncError):
    """Exception raised for filesystem errors around the worktree."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Error while accessing the file system: {message}")


class GitActionFailed(GitSyncError):
    """Exception raised when a git action fails for any other reason."""

    def __init__(self, action: str, detail: Optional[str] = None):
        self.action = action
        self.detail = detail

        error_msg = f"Git action '{action}' failed"
        if detail:
            error_msg += f": {detail}"

        super().__init__(error_msg)


class InternalError(GitSyncError):
    """Exception raised for unexpected failures."""

    def __init__(self, message: Optional[str] = None):
        self.message = message
        super().__init__(message or "Unexpected internal error")


class ResourceNotFound(GitSyncError):
    """Exception raised when a resource does not exist or may not be accessed."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"Unable to find {kind} {identifier}")
