"""Per-lineage SSH keypair storage, encrypted at rest"""
from threading import Lock
from typing import Dict, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken

from git_lineage_sync.exceptions import InvalidGitCredentials
from git_lineage_sync.models.git import GitCredential
from git_lineage_sync.logging_config import get_logger

logger = get_logger(__name__)


class CredentialStore:
    """Holds the deploy keypair of every root resource.

    Private keys are Fernet-encrypted as soon as they are saved and only
    decrypted on `get`, for the duration of a network operation.
    """

    def __init__(self, encryption_key: Optional[str] = None):
        """Initialize the store.

        Args:
            encryption_key: urlsafe base64 Fernet key. A random key is generated
                when omitted, which makes stored keys unreadable after restart.
        """
        key = encryption_key.encode() if encryption_key else Fernet.generate_key()
        self._fernet = Fernet(key)
        self._records: Dict[str, Tuple[bytes, str]] = {}  # root id -> (encrypted private key, public key)
        self._lock = Lock()

    def save(self, root_resource_id: str, credential: GitCredential) -> None:
        """Store the keypair of a root resource, replacing any previous one."""
        if not credential.is_valid():
            raise InvalidGitCredentials("both private and public key are required")
        token = self._fernet.encrypt(credential.private_key.encode("utf-8"))
        with self._lock:
            self._records[root_resource_id] = (token, credential.public_key)
        logger.info(f"Stored deploy key for {root_resource_id}")

    def get(self, root_resource_id: Optional[str]) -> GitCredential:
        """Return the decrypted keypair of a root resource.

        Raises:
            InvalidGitCredentials: If nothing is stored or the key cannot be decrypted
        """
        with self._lock:
            record = self._records.get(root_resource_id) if root_resource_id else None
        if record is None:
            raise InvalidGitCredentials(f"no deploy key stored for {root_resource_id}")
        token, public_key = record
        try:
            private_key = self._fernet.decrypt(token).decode("utf-8")
        except InvalidToken:
            raise InvalidGitCredentials(f"stored deploy key for {root_resource_id} cannot be decrypted")
        credential = GitCredential(private_key=private_key, public_key=public_key)
        if not credential.is_valid():
            raise InvalidGitCredentials(f"stored deploy key for {root_resource_id} is incomplete")
        return credential

    def has(self, root_resource_id: str) -> bool:
        with self._lock:
            return root_resource_id in self._records

    def public_key(self, root_resource_id: str) -> Optional[str]:
        """Public half of the keypair, safe to hand out."""
        with self._lock:
            record = self._records.get(root_resource_id)
        return record[1] if record else None

    def encrypted_private_key(self, root_resource_id: str) -> Optional[bytes]:
        """The at-rest form of the private key."""
        with self._lock:
            record = self._records.get(root_resource_id)
        return record[0] if record else None

    def delete(self, root_resource_id: str) -> bool:
        with self._lock:
            return self._records.pop(root_resource_id, None) is not None
