"""Orchestrates version control operations on store-resident resources"""

import asyncio
import copy
import functools
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import git

from git_lineage_sync.config import Config
from git_lineage_sync.exceptions import (
    GitActionFailed,
    GitSyncError,
    InternalError,
    InvalidGitConfiguration,
    InvalidParameter,
    InvalidRepoState,
    IOFailure,
    ResourceNotFound,
)
from git_lineage_sync.logging_config import get_logger
from git_lineage_sync.models.git import (
    CommitRecord,
    GitCredential,
    GitProfile,
    GitStatus,
    MergeResult,
    PullStatus,
)
from git_lineage_sync.models.resource import GitMetadata, Resource
from git_lineage_sync.paths import repo_name_from_url, worktree_path
from git_lineage_sync.serializer import JsonTreeSerializer
from git_lineage_sync.services.authorization import Authorizer, Permission
from git_lineage_sync.services.git.executor import GitExecutor
from git_lineage_sync.services.git.materializer import WorktreeMaterializer
from git_lineage_sync.stores import CredentialStore, ProfileStore, ResourceStore
from git_lineage_sync.utils.locks import KeyedLock
from git_lineage_sync.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)

SEED_COMMIT_MESSAGE = "Initial commit"
DEFAULT_PAGE_ID = "defaultPage"
MISSING_METADATA_MESSAGE = (
    "Git configuration missing for this application, please connect it to a remote repository"
)


class GitOrchestrator:
    """Keeps resources and their git worktrees in sync.

    Every operation resolves the resource and its worktree, then runs the
    blocking git and filesystem work on a thread pool while holding the lock of
    that worktree. All branches of a lineage share one worktree, so operations
    on any branch of the same lineage never overlap.
    """

    def __init__(self, config: Union[Config, dict], resource_store: ResourceStore,
                 credential_store: CredentialStore, profile_store: ProfileStore,
                 serializer=None, authorizer: Optional[Authorizer] = None,
                 executor: Optional[GitExecutor] = None,
                 materializer: Optional[WorktreeMaterializer] = None):
        """Initialize the orchestrator.

        Args:
            config: Configuration dict or Config object
            resource_store: Resource records
            credential_store: Deploy keypairs of root resources
            profile_store: Commit author profiles
            serializer: Anything with `export` / `import_artifact`; defaults to the JSON tree serializer
            authorizer: Access checks; defaults to permitting everything
            executor: Git executor; built from config when omitted
            materializer: Worktree materializer; built from config when omitted
        """
        self.config = config
        self.resource_store = resource_store
        self.credential_store = credential_store
        self.profile_store = profile_store
        self.serializer = serializer or JsonTreeSerializer(
            resource_store, reserved_names=[config.get("seed_file_name", "README.md")],
        )
        self.authorizer = authorizer or Authorizer()
        self.executor = executor or GitExecutor(config)
        self.materializer = materializer or WorktreeMaterializer(config, self.executor)

        self.base_path = Path(config.get("base_path"))
        self.default_commit_message = config.get("default_commit_message", "Default generated commit")
        self.history_limit = config.get("history_limit", 100)
        self.delete_worktree_on_disconnect = config.get("delete_worktree_on_disconnect", True)

        max_workers = get_optimal_worker_count(config.get("workers"))
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="git-lineage-sync")
        self._locks = KeyedLock()
        logger.debug(f"Orchestrator started with {max_workers} git worker(s)")

    def close(self) -> None:
        """Wait for running git work and release the worker pool."""
        self._pool.shutdown(wait=True)

    async def __aenter__(self) -> "GitOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def _run(self, action: str, fn: Callable, *args, **kwargs) -> Any:
        """Run blocking work on the pool and classify whatever escapes it."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._pool, functools.partial(fn, *args, **kwargs))
        except GitSyncError:
            raise
        except git.exc.GitError as e:
            logger.warning(f"Git error during {action}: {e}")
            raise GitActionFailed(action, str(e)) from e
        except OSError as e:
            logger.error(f"File system error during {action}: {e}")
            raise IOFailure(str(e)) from e
        except Exception as e:
            logger.error(f"Unexpected error during {action}: {e}", exc_info=True)
            raise InternalError(f"Unexpected error during {action}: {e}") from e

    # Resolution

    def _authorized(self, resource: Optional[Resource], user_id: Optional[str],
                    permission: Permission, identifier: str) -> Resource:
        # Denied and missing resources look the same to the caller
        if resource is None or not self.authorizer.is_allowed(user_id, resource, permission):
            raise ResourceNotFound("application", identifier)
        return resource

    def _get_resource(self, resource_id: str, user_id: Optional[str] = None,
                      permission: Permission = Permission.READ) -> Resource:
        if not resource_id:
            raise InvalidParameter("application id")
        return self._authorized(self.resource_store.get(resource_id), user_id, permission, resource_id)

    def _get_branch_resource(self, root_id: str, branch_name: str, user_id: Optional[str] = None,
                             permission: Permission = Permission.READ) -> Resource:
        if not root_id:
            raise InvalidParameter("application id")
        if not branch_name or not branch_name.strip():
            raise InvalidParameter("branch name")
        resource = self.resource_store.find_by_branch(root_id, branch_name)
        return self._authorized(resource, user_id, permission, f"{root_id} for branch {branch_name}")

    @staticmethod
    def _require_metadata(resource: Resource) -> GitMetadata:
        metadata = resource.git_metadata
        if metadata is None:
            raise InvalidGitConfiguration(MISSING_METADATA_MESSAGE)
        missing = metadata.missing_field()
        if missing:
            raise InvalidGitConfiguration(
                f"Unable to find {missing}, please configure the application with git"
            )
        return metadata

    def _worktree(self, resource: Resource, metadata: GitMetadata) -> Path:
        return worktree_path(self.base_path, resource.workspace_id,
                             metadata.root_resource_id, metadata.repo_name)

    def _reload(self, resource: Resource, path: Path) -> Tuple[Resource, GitMetadata]:
        """Read a resource again once the lock of its worktree is held.

        Work queued on the same worktree, a disconnect in particular, may have
        deleted the record or cleared its git metadata in the meantime.
        """
        current = self.resource_store.get(resource.id)
        if current is None:
            raise ResourceNotFound("application", resource.id)
        metadata = self._require_metadata(current)
        if self._worktree(current, metadata) != path:
            raise InvalidRepoState(f"Application {resource.id} was connected to another repository, please retry")
        return current, metadata

    def _credential(self, metadata: GitMetadata) -> GitCredential:
        return self.credential_store.get(metadata.credential_ref)

    def _optional_author(self, user_id: Optional[str], root_id: str) -> Optional[GitProfile]:
        """Author for commits git creates itself; the system identity is used when absent."""
        try:
            return self.profile_store.get_profile(user_id, root_id)
        except InvalidGitConfiguration:
            return None

    def _publish(self, resource: Resource) -> Resource:
        resource.published_state = copy.deepcopy(resource.state)
        return self.resource_store.save(resource)

    @staticmethod
    def _default_page_id(resource: Resource) -> str:
        pages = resource.state.get("pages")
        if not isinstance(pages, dict) or not pages:
            return DEFAULT_PAGE_ID
        for page_id in sorted(pages):
            page = pages[page_id]
            if isinstance(page, dict) and page.get("isDefault"):
                return page_id
        return sorted(pages)[0]

    # connect

    async def connect(self, root_id: str, remote_url: str, origin_header: str,
                      user_id: Optional[str] = None, profile: Optional[GitProfile] = None,
                      is_default_profile: bool = True) -> Resource:
        """Bind a root resource to an empty remote repository.

        Clones the remote, records the git metadata with the remote's default
        branch and commits a seed document linking back to the application.
        Any failure after the clone removes it and restores the previous
        metadata.
        """
        if not remote_url or not remote_url.strip():
            raise InvalidParameter("remote_url")
        if not origin_header or not origin_header.strip():
            raise InvalidParameter("origin_header")

        resource = self._get_resource(root_id, user_id, Permission.WRITE)
        self._ensure_unconnected(resource)
        credential = self.credential_store.get(root_id)

        if profile is not None:
            if not user_id:
                raise InvalidParameter("user id", "a profile can only be saved for a user")
            self.profile_store.set_profile(user_id, profile, is_default_profile, root_id)

        remote_url = remote_url.strip()
        repo_name = repo_name_from_url(remote_url)
        path = worktree_path(self.base_path, resource.workspace_id, root_id, repo_name)

        logger.info(f"Connecting {root_id} to {remote_url}")
        async with self._locks.hold(str(path)):
            resource = self._get_resource(root_id, user_id, Permission.WRITE)
            self._ensure_unconnected(resource)
            return await self._run(
                "connect", self._connect, resource, remote_url, origin_header.strip().rstrip("/"),
                credential, repo_name, path, user_id,
            )

    @staticmethod
    def _ensure_unconnected(resource: Resource) -> None:
        if resource.git_metadata is not None and resource.git_metadata.is_complete():
            raise InvalidRepoState(
                f"Application {resource.id} is already connected to {resource.git_metadata.remote_url}, "
                "disconnect it first"
            )

    def _connect(self, resource: Resource, remote_url: str, origin: str, credential: GitCredential,
                 repo_name: str, path: Path, user_id: Optional[str]) -> Resource:
        previous_metadata = resource.git_metadata
        default_branch = self.executor.clone(path, remote_url, credential.private_key, credential.public_key)

        try:
            if not self.materializer.is_empty(path):
                raise InvalidRepoState(
                    "Unable to connect: the remote repository is not empty. Please use an empty repository"
                )

            resource.git_metadata = GitMetadata(
                root_resource_id=resource.id,
                repo_name=repo_name,
                remote_url=remote_url,
                branch_name=default_branch,
                credential_ref=resource.id,
                cached_public_key=credential.public_key,
            )
            self.resource_store.save(resource)

            view_url = f"{origin}/{resource.id}/applications/pages/{self._default_page_id(resource)}"
            edit_url = f"{view_url}/edit"
            self.materializer.bootstrap(path, view_url, edit_url)

            author = self._optional_author(user_id, resource.id) or self.executor.system_author
            self.executor.commit(path, SEED_COMMIT_MESSAGE, author.author_name, author.author_email)
        except Exception:
            logger.warning(f"Connecting {resource.id} failed, removing {path}")
            shutil.rmtree(path, ignore_errors=True)
            resource.git_metadata = previous_metadata
            self.resource_store.save(resource)
            raise

        logger.info(f"Connected {resource.id} to {remote_url} on {default_branch}")
        return resource

    # commit / push / pull

    async def commit(self, root_id: str, branch_name: str, message: Optional[str] = None,
                     do_push: bool = False, user_id: Optional[str] = None) -> str:
        """Commit the current state of a branch resource, optionally pushing it.

        Returns:
            "Commit Result : <summary>", followed by ". Push Result : <summary>"
            when pushed
        """
        resource = self._get_branch_resource(root_id, branch_name, user_id, Permission.WRITE)
        if do_push:
            resource = self._publish(resource)
        metadata = self._require_metadata(resource)
        author = self.profile_store.get_profile(user_id, root_id)
        credential = self._credential(metadata) if do_push else None
        if not message or not message.strip():
            message = self.default_commit_message

        path = self._worktree(resource, metadata)
        async with self._locks.hold(str(path)):
            resource, metadata = self._reload(resource, path)
            return await self._run(
                "commit", self._commit, resource, metadata, path, message, author, do_push, credential,
            )

    def _commit(self, resource: Resource, metadata: GitMetadata, path: Path, message: str,
                author: GitProfile, do_push: bool, credential: Optional[GitCredential]) -> str:
        artifact = self.serializer.export(resource.id)
        self.materializer.materialize(path, artifact, metadata.branch_name, create=False)

        result = self.executor.commit(path, message, author.author_name, author.author_email)
        if not result.created and not do_push:
            raise GitActionFailed("commit", result.summary)

        response = f"Commit Result : {result.summary}"
        if do_push:
            summary = self.executor.push(path, metadata.remote_url, metadata.branch_name,
                                         credential.public_key, credential.private_key)
            response += f". Push Result : {summary}"
        return response

    async def push(self, root_id: str, branch_name: str, user_id: Optional[str] = None) -> str:
        """Publish a branch resource and push its committed history."""
        resource = self._publish(self._get_branch_resource(root_id, branch_name, user_id, Permission.WRITE))
        metadata = self._require_metadata(resource)
        credential = self._credential(metadata)

        path = self._worktree(resource, metadata)
        async with self._locks.hold(str(path)):
            _, metadata = self._reload(resource, path)
            return await self._run("push", self._push, metadata, path, credential)

    def _push(self, metadata: GitMetadata, path: Path, credential: GitCredential) -> str:
        self.executor.ensure_branch(path, metadata.branch_name, force=True)
        return self.executor.push(path, metadata.remote_url, metadata.branch_name,
                                  credential.public_key, credential.private_key)

    async def pull(self, root_id: str, branch_name: str, user_id: Optional[str] = None) -> Resource:
        """Merge the remote branch into a branch resource.

        Returns:
            The branch resource with its state refreshed from the worktree

        Raises:
            InvalidRepoState: If the merge conflicts (the merge is aborted)
            GitActionFailed: If the pull fails for any other reason
        """
        resource = self._get_branch_resource(root_id, branch_name, user_id, Permission.WRITE)
        metadata = self._require_metadata(resource)
        credential = self._credential(metadata)
        author = self._optional_author(user_id, root_id)

        path = self._worktree(resource, metadata)
        async with self._locks.hold(str(path)):
            resource, metadata = self._reload(resource, path)
            return await self._run("pull", self._pull, resource, metadata, path, credential, author)

    def _pull(self, resource: Resource, metadata: GitMetadata, path: Path,
              credential: GitCredential, author: Optional[GitProfile]) -> Resource:
        self.materializer.materialize(path, self.serializer.export(resource.id), metadata.branch_name,
                                      create=False)

        result = self.executor.pull(path, metadata.remote_url, metadata.branch_name,
                                    credential.private_key, credential.public_key, author)
        if result.status == PullStatus.FAILED:
            if result.conflicts:
                paths = ", ".join(conflict.path for conflict in result.conflicts)
                raise InvalidRepoState(f"Merge conflicts found in: {paths}", conflicts=result.conflicts)
            raise GitActionFailed("pull", result.detail)

        logger.info(f"Pull of {metadata.branch_name} for {resource.id}: {result.status.value}")
        artifact = self.materializer.reconstruct(resource.workspace_id, metadata.root_resource_id,
                                                 metadata.branch_name, metadata.repo_name)
        return self.serializer.import_artifact(resource.workspace_id, artifact, resource.id)

    # Branches

    async def create_branch(self, root_id: str, branch_name: str, new_branch_name: str,
                            user_id: Optional[str] = None) -> Resource:
        """Fork a new branch, and its resource record, from an existing branch.

        The new name is sanitized and suffixed when already taken, so the
        returned record's branch name may differ from the one requested.
        """
        if not new_branch_name or not new_branch_name.strip():
            raise InvalidParameter("branch name")
        source = self._get_branch_resource(root_id, branch_name, user_id, Permission.WRITE)
        metadata = self._require_metadata(source)

        path = self._worktree(source, metadata)
        async with self._locks.hold(str(path)):
            source, metadata = self._reload(source, path)
            return await self._run("create_branch", self._create_branch, source, metadata, path,
                                   new_branch_name.strip())

    def _create_branch(self, source: Resource, metadata: GitMetadata, path: Path,
                       requested_name: str) -> Resource:
        actual_name = self.executor.create_and_checkout_branch(
            path, requested_name, start_point=metadata.branch_name, force=True,
        )

        branch_resource = self.resource_store.create(source.workspace_id, source.name)
        # The keypair stays with the root; only the public key is cached
        branch_resource.git_metadata = metadata.copy(branch_name=actual_name)
        self.resource_store.save(branch_resource)

        artifact = self.serializer.export(source.id)
        branch_resource = self.serializer.import_artifact(source.workspace_id, artifact, branch_resource.id)
        logger.info(f"Created branch {actual_name} from {metadata.branch_name} as {branch_resource.id}")
        return branch_resource

    async def checkout_branch(self, root_id: str, branch_name: str,
                              user_id: Optional[str] = None) -> Resource:
        """Check out a branch and return its resource.

        "origin/<name>" or a name only known on the remote creates a local
        branch tracking the remote one, and a resource record holding its
        content.
        """
        if not branch_name or not branch_name.strip():
            raise InvalidParameter("branch name")
        remote_prefix = f"{self.executor.remote_name}/"
        local_name = branch_name[len(remote_prefix):] if branch_name.startswith(remote_prefix) else branch_name

        resource = self.resource_store.find_by_branch(root_id, local_name)
        if resource is not None:
            resource = self._authorized(resource, user_id, Permission.READ, f"{root_id} for branch {local_name}")
            metadata = self._require_metadata(resource)
            path = self._worktree(resource, metadata)
            async with self._locks.hold(str(path)):
                resource, metadata = self._reload(resource, path)
                await self._run("checkout", self._materialize_branch, resource, metadata, path)
            return resource

        root = self._get_resource(root_id, user_id, Permission.WRITE)
        metadata = self._require_metadata(root)
        credential = self._credential(metadata)
        path = self._worktree(root, metadata)
        async with self._locks.hold(str(path)):
            root, metadata = self._reload(root, path)
            existing = self.resource_store.find_by_branch(root_id, local_name)
            if existing is not None:
                # Created while this call waited for the worktree
                existing, branch_metadata = self._reload(existing, path)
                await self._run("checkout", self._materialize_branch, existing, branch_metadata, path)
                return existing
            return await self._run("checkout", self._checkout_remote_branch, root, metadata, path,
                                   credential, local_name)

    def _materialize_branch(self, resource: Resource, metadata: GitMetadata, path: Path) -> Path:
        return self.materializer.materialize(path, self.serializer.export(resource.id), metadata.branch_name,
                                             create=False)

    def _checkout_remote_branch(self, root: Resource, metadata: GitMetadata, path: Path,
                                credential: GitCredential, branch_name: str) -> Resource:
        self.executor.fetch(path, metadata.remote_url, credential.private_key, credential.public_key)
        remote_ref = f"{self.executor.remote_name}/{branch_name}"
        if remote_ref not in self.executor.list_branches(path):
            raise ResourceNotFound("branch", branch_name)

        self.executor.ensure_branch(path, branch_name, force=True)
        self.executor.reset_worktree(path)
        artifact = self.materializer.reconstruct(root.workspace_id, metadata.root_resource_id,
                                                 branch_name, metadata.repo_name)

        branch_resource = self.resource_store.create(root.workspace_id, root.name)
        branch_resource.git_metadata = metadata.copy(branch_name=branch_name)
        self.resource_store.save(branch_resource)
        logger.info(f"Checked out remote branch {remote_ref} as {branch_resource.id}")
        return self.serializer.import_artifact(root.workspace_id, artifact, branch_resource.id)

    async def list_branches(self, root_id: str, fetch: bool = False,
                            user_id: Optional[str] = None) -> List[str]:
        """Local branches of the lineage, then remote-only ones as "origin/<name>".

        With `fetch`, remote-tracking branches are refreshed first.
        """
        root = self._get_resource(root_id, user_id, Permission.READ)
        metadata = self._require_metadata(root)
        credential = self._credential(metadata) if fetch else None
        path = self._worktree(root, metadata)
        async with self._locks.hold(str(path)):
            _, metadata = self._reload(root, path)
            return await self._run("list_branches", self._list_branches, metadata, path, credential)

    def _list_branches(self, metadata: GitMetadata, path: Path,
                       credential: Optional[GitCredential]) -> List[str]:
        if credential is not None:
            self.executor.fetch(path, metadata.remote_url, credential.private_key, credential.public_key)
        return self.executor.list_branches(path)

    async def merge_branch(self, root_id: str, source_branch: str, destination_branch: str,
                           user_id: Optional[str] = None) -> MergeResult:
        """Merge the committed history of one branch into another.

        The destination must have no uncommitted changes in its stored state.
        A conflicting merge is aborted and reported in the result. After a
        clean merge the destination resource is refreshed from the worktree.

        Raises:
            InvalidRepoState: If the destination has uncommitted changes
        """
        if source_branch == destination_branch:
            raise InvalidParameter("destination branch", "source and destination must differ")
        self._get_branch_resource(root_id, source_branch, user_id, Permission.READ)
        destination = self._get_branch_resource(root_id, destination_branch, user_id, Permission.WRITE)
        metadata = self._require_metadata(destination)
        author = self._optional_author(user_id, root_id)

        path = self._worktree(destination, metadata)
        async with self._locks.hold(str(path)):
            destination, metadata = self._reload(destination, path)
            return await self._run("merge", self._merge, destination, metadata, path,
                                   source_branch, author)

    def _merge(self, destination: Resource, metadata: GitMetadata, path: Path,
               source_branch: str, author: Optional[GitProfile]) -> MergeResult:
        status = self._status(destination, metadata, path)
        if not status.is_clean:
            changed = sorted(status.added | status.modified | status.removed | status.untracked)
            raise InvalidRepoState(
                f"Branch {metadata.branch_name} has uncommitted changes in: {', '.join(changed)}. "
                "Please commit your changes before merging"
            )

        result = self.executor.merge(path, source_branch, metadata.branch_name, author)
        if result.merged:
            artifact = self.materializer.reconstruct(destination.workspace_id, metadata.root_resource_id,
                                                     metadata.branch_name, metadata.repo_name)
            self.serializer.import_artifact(destination.workspace_id, artifact, destination.id)
        return result

    # Inspection

    async def get_status(self, root_id: str, branch_name: str, user_id: Optional[str] = None) -> GitStatus:
        """Status of a branch resource's current state against its last commit."""
        resource = self._get_branch_resource(root_id, branch_name, user_id, Permission.READ)
        metadata = self._require_metadata(resource)
        path = self._worktree(resource, metadata)
        async with self._locks.hold(str(path)):
            resource, metadata = self._reload(resource, path)
            return await self._run("status", self._status, resource, metadata, path)

    def _status(self, resource: Resource, metadata: GitMetadata, path: Path) -> GitStatus:
        self._materialize_branch(resource, metadata, path)
        return self.executor.status(path, metadata.branch_name)

    async def get_commit_history(self, root_id: str, branch_name: str,
                                 user_id: Optional[str] = None) -> List[CommitRecord]:
        """Commits of a branch, newest first."""
        resource = self._get_branch_resource(root_id, branch_name, user_id, Permission.READ)
        metadata = self._require_metadata(resource)
        path = self._worktree(resource, metadata)
        async with self._locks.hold(str(path)):
            _, metadata = self._reload(resource, path)
            return await self._run("log", self.executor.commit_history, path,
                                   metadata.branch_name, self.history_limit)

    async def get_metadata(self, root_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Git configuration of a root resource, or None when it is not connected.

        Includes the user's author profiles and the public deploy key, never the
        private key.
        """
        resource = self._get_resource(root_id, user_id, Permission.READ)
        metadata = resource.git_metadata
        if metadata is None or not metadata.is_complete():
            return None

        profiles = self.profile_store.profiles_for(user_id, metadata.root_resource_id)
        return {
            "root_resource_id": metadata.root_resource_id,
            "repo_name": metadata.repo_name,
            "remote_url": metadata.remote_url,
            "branch_name": metadata.branch_name,
            "public_key": self.credential_store.public_key(metadata.credential_ref) or metadata.cached_public_key,
            "profiles": {
                key: {"author_name": profile.author_name, "author_email": profile.author_email}
                for key, profile in profiles.items()
            },
        }

    # disconnect

    async def disconnect(self, root_id: str, user_id: Optional[str] = None) -> Resource:
        """Detach a lineage from its remote.

        Retires the worktree, clears the root's git metadata and deletes the
        records of every other branch. Resources that are not connected are
        returned unchanged.
        """
        resource = self._get_resource(root_id, user_id, Permission.WRITE)
        metadata = resource.git_metadata
        if metadata is None:
            logger.debug(f"{root_id} is not connected, nothing to disconnect")
            return resource
        if metadata.root_resource_id and metadata.root_resource_id != resource.id:
            raise InvalidParameter("application id", "only the root application of a lineage can be disconnected")

        path = None
        if metadata.repo_name:
            path = worktree_path(self.base_path, resource.workspace_id, resource.id, metadata.repo_name)

        if path is not None:
            async with self._locks.hold(str(path)):
                current = self.resource_store.get(resource.id)
                if current is None or current.git_metadata is None:
                    logger.debug(f"{root_id} was disconnected while waiting")
                    return current or resource
                resource = current
                await self._run("disconnect", self.materializer.retire, path,
                                self.delete_worktree_on_disconnect)
                self._drop_lineage(resource)
            self._locks.discard(str(path))
        else:
            self._drop_lineage(resource)

        logger.info(f"Disconnected {root_id} from {metadata.remote_url}")
        return resource

    def _drop_lineage(self, root: Resource) -> None:
        for member in self.resource_store.list_lineage(root.id):
            if member.id != root.id:
                self.resource_store.delete(member.id)
        root.git_metadata = None
        self.resource_store.save(root)

    # Profiles

    async def get_profile(self, user_id: str, root_id: Optional[str] = None) -> GitProfile:
        return self.profile_store.get_profile(user_id, root_id)

    async def set_profile(self, user_id: str, profile: GitProfile, is_default: bool = True,
                          root_id: Optional[str] = None) -> Dict[str, GitProfile]:
        if not user_id:
            raise InvalidParameter("user id")
        return self.profile_store.set_profile(user_id, profile, is_default, root_id)
