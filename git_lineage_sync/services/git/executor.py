"""Primitive git operations against a worktree path"""

import os
import re
import shlex
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional, Union, TYPE_CHECKING

import git

from git_lineage_sync.exceptions import (
    AuthenticationFailure,
    GitActionFailed,
    InvalidParameter,
    InvalidRemote,
    InvalidRepoState,
)
from git_lineage_sync.models.git import (
    CommitRecord,
    CommitResult,
    ConflictEntry,
    ConflictKind,
    GitProfile,
    GitStatus,
    MergeResult,
    PullResult,
    PullStatus,
)
from git_lineage_sync.logging_config import get_logger

if TYPE_CHECKING:
    from git_lineage_sync.config import Config

logger = get_logger(__name__)

PathLike = Union[str, Path]

NOTHING_TO_COMMIT = "On current branch nothing to commit, working tree clean"
NOTHING_TO_FETCH = "Nothing to fetch from remote. All changes are up to date."

# Checked before the authentication tokens: "could not read from remote
# repository" is printed for missing repositories too.
_INVALID_REMOTE_TOKENS = (
    "repository not found",
    "does not appear to be a git repository",
    "does not exist",
    "could not resolve hostname",
    "could not resolve host",
    "not a valid repository name",
    "unsupported protocol",
    "no such device or address",
    "name or service not known",
)

_AUTH_TOKENS = (
    "permission denied",
    "host key verification failed",
    "authentication failed",
    "access denied",
    "could not read from remote repository",
    "invalid format",  # ssh rejecting a malformed private key
)

_INVALID_REF_CHARS = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]+|\.{2,}|@\{")


def error_detail(error: git.exc.GitCommandError) -> str:
    """Readable stderr of a failed git command."""
    stderr = (error.stderr if hasattr(error, "stderr") else "") or ""
    stderr = stderr.strip()
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'").strip()
    return stderr or str(error)


def sanitize_branch_name(requested: str) -> str:
    """Turn a requested branch name into a valid git ref name.

    Characters git forbids become "-"; empty segments, leading dots and
    ".lock" suffixes are dropped.
    """
    name = _INVALID_REF_CHARS.sub("-", (requested or "").strip())
    segments = []
    for segment in name.split("/"):
        segment = segment.lstrip(".")
        while segment.endswith(".lock"):
            segment = segment[: -len(".lock")]
        segment = segment.rstrip(".")
        if segment:
            segments.append(segment)
    name = "/".join(segments).strip("-")
    if not name or name == "@":
        raise InvalidParameter("branch name", f"'{requested}' is not a usable branch name")
    return name


class GitExecutor:
    """Runs git commands through GitPython.

    Every method opens the repository at the given path on its own, so one
    executor can serve many worktrees from many threads. Callers are expected
    to serialize calls that touch the same worktree.
    """

    def __init__(self, config: Union["Config", dict]):
        """Initialize the executor.

        Args:
            config: Configuration dictionary or Config object
        """
        self.config = config
        self.remote_name = "origin"
        self.strict_host_key_checking = config.get("strict_host_key_checking", False)
        self.history_limit = config.get("history_limit", 100)
        self.system_author = GitProfile(
            author_name=config.get("system_author_name", "git-lineage-sync"),
            author_email=config.get("system_author_email", "git-lineage-sync@localhost"),
        )

    def _get_repo(self, path: PathLike) -> git.Repo:
        """Open the repository of a worktree."""
        try:
            return git.Repo(str(path))
        except (git.exc.NoSuchPathError, git.exc.InvalidGitRepositoryError):
            raise InvalidRepoState(f"No git repository found at {path}")

    @contextmanager
    def _ssh_environment(self, private_key: Optional[str]):
        """Environment for a network operation using the given deploy key.

        The key lives in a private temporary file outside the worktree and is
        removed as soon as the operation ends.
        """
        env = {"GIT_TERMINAL_PROMPT": "0"}
        if not private_key:
            env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
            yield env
            return

        fd, key_path = tempfile.mkstemp(prefix="gls-deploy-key-")
        try:
            with os.fdopen(fd, "w") as handle:
                handle.write(private_key if private_key.endswith("\n") else private_key + "\n")
            options = ["-o IdentitiesOnly=yes", "-o BatchMode=yes"]
            if not self.strict_host_key_checking:
                options += ["-o StrictHostKeyChecking=no", "-o UserKnownHostsFile=/dev/null"]
            env["GIT_SSH_COMMAND"] = f"ssh -i {shlex.quote(key_path)} " + " ".join(options)
            yield env
        finally:
            try:
                os.remove(key_path)
            except FileNotFoundError:
                pass

    def _identity_env(self, author: Optional[GitProfile]) -> Dict[str, str]:
        """Author and committer for commits git creates on its own (merges)."""
        author = author or self.system_author
        return {
            "GIT_AUTHOR_NAME": author.author_name,
            "GIT_AUTHOR_EMAIL": author.author_email,
            "GIT_COMMITTER_NAME": author.author_name,
            "GIT_COMMITTER_EMAIL": author.author_email,
        }

    def _classify_remote_error(self, action: str, remote_url: str,
                               error: git.exc.GitCommandError) -> Exception:
        detail = error_detail(error)
        text = detail.lower()
        if any(token in text for token in _INVALID_REMOTE_TOKENS):
            return InvalidRemote(remote_url, detail)
        if any(token in text for token in _AUTH_TOKENS):
            return AuthenticationFailure(
                "SSH key is not configured properly, please try again after reconfiguring the SSH key"
            )
        return GitActionFailed(action, detail)

    def _ensure_remote(self, repo: git.Repo, remote_url: str) -> git.Remote:
        try:
            remote = repo.remote(self.remote_name)
        except ValueError:
            return repo.create_remote(self.remote_name, remote_url)
        if remote.url != remote_url:
            remote.set_url(remote_url)
        return remote

    def _fetch(self, repo: git.Repo, remote_url: str, private_key: Optional[str], action: str) -> None:
        remote = self._ensure_remote(repo, remote_url)
        with self._ssh_environment(private_key) as env:
            try:
                with repo.git.custom_environment(**env):
                    remote.fetch(prune=True)
            except git.exc.GitCommandError as e:
                logger.warning(f"Fetch from {remote_url} failed: {error_detail(e)}")
                raise self._classify_remote_error(action, remote_url, e)

    def _local_branches(self, repo: git.Repo) -> List[str]:
        return [head.name for head in repo.heads]

    def _remote_branches(self, repo: git.Repo) -> List[str]:
        """Branch names known on the remote, without the remote prefix."""
        return [
            ref.remote_head
            for ref in repo.refs
            if isinstance(ref, git.RemoteReference)
            and ref.remote_name == self.remote_name
            and ref.remote_head != "HEAD"
        ]

    @staticmethod
    def _active_branch(repo: git.Repo) -> Optional[str]:
        try:
            return repo.active_branch.name
        except TypeError:
            # Detached HEAD
            return None

    def _collect_conflicts(self, repo: git.Repo) -> List[ConflictEntry]:
        conflicts = []
        for entry in repo.git.status("--porcelain", "-z").split("\0"):
            if len(entry) < 4:
                continue
            kind = ConflictKind.from_porcelain(entry[:2])
            if kind is not None:
                conflicts.append(ConflictEntry(path=entry[3:], kind=kind))
        return sorted(conflicts, key=lambda c: c.path)

    def _abort_merge(self, repo: git.Repo) -> None:
        if os.path.exists(os.path.join(repo.git_dir, "MERGE_HEAD")):
            try:
                repo.git.merge("--abort")
            except git.exc.GitCommandError as e:
                raise GitActionFailed("merge --abort", error_detail(e))
            logger.info(f"Aborted merge in {repo.working_dir}")

    def clone(self, path: PathLike, remote_url: str, private_key: str, public_key: str) -> str:
        """Clone the remote into `path`.

        Returns:
            Name of the default branch reported by the remote
        """
        path = Path(path)
        if path.exists() and any(path.iterdir()):
            raise InvalidRepoState(f"Cannot clone into {path}: directory is not empty")
        path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Cloning {remote_url} into {path}")
        with self._ssh_environment(private_key) as env:
            try:
                repo = git.Repo.clone_from(remote_url, str(path), env=env)
            except git.exc.GitCommandError as e:
                logger.warning(f"Clone of {remote_url} failed: {error_detail(e)}")
                raise self._classify_remote_error("clone", remote_url, e)

        with repo:
            default_branch = self._active_branch(repo)
        if not default_branch:
            raise InvalidRepoState(f"Remote {remote_url} has a detached HEAD")
        logger.debug(f"Default branch of {remote_url} is {default_branch}")
        return default_branch

    def init_repository(self, path: PathLike, branch_name: str) -> None:
        """Create an empty repository whose unborn HEAD points at `branch_name`."""
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        try:
            with git.Repo.init(str(path)) as repo:
                repo.git.symbolic_ref("HEAD", f"refs/heads/{branch_name}")
        except git.exc.GitCommandError as e:
            raise GitActionFailed("init", error_detail(e))
        logger.info(f"Initialized repository at {path} on {branch_name}")

    def current_branch(self, path: PathLike) -> Optional[str]:
        with self._get_repo(path) as repo:
            return self._active_branch(repo)

    def checkout(self, path: PathLike, branch_name: str) -> None:
        """Check out an existing local branch."""
        with self._get_repo(path) as repo:
            if self._active_branch(repo) == branch_name:
                return
            if branch_name not in self._local_branches(repo):
                raise GitActionFailed("checkout", f"branch '{branch_name}' does not exist locally")
            try:
                repo.git.checkout(branch_name)
            except git.exc.GitCommandError as e:
                raise GitActionFailed("checkout", error_detail(e))
            logger.debug(f"Checked out {branch_name} in {path}")

    def ensure_branch(self, path: PathLike, branch_name: str, force: bool = False) -> None:
        """Check out `branch_name`, creating it when it does not exist yet.

        A missing branch is created from the remote branch of the same name when
        one exists, otherwise from HEAD. With `force`, local changes are
        discarded while switching.
        """
        with self._get_repo(path) as repo:
            if not repo.head.is_valid():
                # Unborn repository: only move the symbolic HEAD
                repo.git.symbolic_ref("HEAD", f"refs/heads/{branch_name}")
                return
            if self._active_branch(repo) == branch_name:
                return

            args = ["-f"] if force else []
            try:
                if branch_name in self._local_branches(repo):
                    repo.git.checkout(*args, branch_name)
                elif branch_name in self._remote_branches(repo):
                    repo.git.checkout(*args, "-b", branch_name, "--track", f"{self.remote_name}/{branch_name}")
                else:
                    repo.git.checkout(*args, "-b", branch_name)
            except git.exc.GitCommandError as e:
                raise GitActionFailed("checkout", error_detail(e))
            logger.debug(f"Switched {path} to {branch_name}")

    def create_and_checkout_branch(self, path: PathLike, requested_name: str,
                                   start_point: Optional[str] = None, force: bool = False) -> str:
        """Create a branch and check it out.

        The branch forks from `start_point` (default: current HEAD). The name
        is sanitized and, when taken locally or on the remote, suffixed with
        "-1", "-2", ... until it is free.

        Returns:
            The name actually created
        """
        base_name = sanitize_branch_name(requested_name)
        with self._get_repo(path) as repo:
            taken = set(self._local_branches(repo)) | set(self._remote_branches(repo))
            unborn = not repo.head.is_valid()
            if unborn:
                taken.add(self._active_branch(repo))

            actual = base_name
            suffix = 1
            while actual in taken:
                actual = f"{base_name}-{suffix}"
                suffix += 1

            try:
                repo.git.check_ref_format("--branch", actual)
            except git.exc.GitCommandError:
                raise InvalidParameter("branch name", f"'{requested_name}' is not a usable branch name")

            try:
                if unborn:
                    repo.git.symbolic_ref("HEAD", f"refs/heads/{actual}")
                else:
                    args = ["-f"] if force else []
                    args += ["-b", actual]
                    if start_point:
                        args.append(start_point)
                    repo.git.checkout(*args)
            except git.exc.GitCommandError as e:
                raise GitActionFailed("branch", error_detail(e))

        if actual != requested_name:
            logger.info(f"Requested branch '{requested_name}' created as '{actual}'")
        return actual

    def commit(self, path: PathLike, message: str, author_name: str, author_email: str) -> CommitResult:
        """Stage everything in the worktree and commit it.

        Returns:
            CommitResult; `created` is False when there was nothing to commit
        """
        with self._get_repo(path) as repo:
            try:
                repo.git.add("-A")
                if not repo.git.status("--porcelain"):
                    logger.info(f"Nothing to commit in {path}")
                    return CommitResult(created=False, summary=NOTHING_TO_COMMIT)
                actor = git.Actor(author_name, author_email)
                commit = repo.index.commit(message, author=actor, committer=actor)
            except git.exc.GitCommandError as e:
                raise GitActionFailed("commit", error_detail(e))

            branch = self._active_branch(repo) or "HEAD"
        first_line = message.strip().splitlines()[0] if message.strip() else ""
        summary = f"[{branch} {commit.hexsha[:7]}] {first_line}"
        logger.info(f"Committed {summary}")
        return CommitResult(created=True, hexsha=commit.hexsha, summary=summary)

    def push(self, path: PathLike, remote_url: str, branch_name: str,
             public_key: str, private_key: str) -> str:
        """Push a local branch to the remote branch of the same name.

        Returns:
            Summary of the pushed refs
        """
        with self._get_repo(path) as repo:
            if branch_name not in self._local_branches(repo):
                raise GitActionFailed("push", f"branch '{branch_name}' has no commits to push")
            remote = self._ensure_remote(repo, remote_url)
            refspec = f"refs/heads/{branch_name}:refs/heads/{branch_name}"

            with self._ssh_environment(private_key) as env:
                try:
                    with repo.git.custom_environment(**env):
                        infos = remote.push(refspec=refspec, set_upstream=True)
                except git.exc.GitCommandError as e:
                    logger.warning(f"Push of {branch_name} failed: {error_detail(e)}")
                    raise self._classify_remote_error("push", remote_url, e)

        if not infos:
            raise GitActionFailed("push", f"remote did not acknowledge {branch_name}")
        failed = git.PushInfo.ERROR | git.PushInfo.REJECTED | git.PushInfo.REMOTE_REJECTED | git.PushInfo.REMOTE_FAILURE
        rejected = [info for info in infos if info.flags & failed]
        if rejected:
            detail = "; ".join(info.summary.strip() for info in rejected)
            raise GitActionFailed("push", f"rejected by remote: {detail}")

        if all(info.flags & git.PushInfo.UP_TO_DATE for info in infos):
            summary = f"Everything up-to-date on {self.remote_name}/{branch_name}"
        else:
            summary = f"Pushed {branch_name} to {self.remote_name}: " + "; ".join(
                info.summary.strip() for info in infos
            )
        logger.info(summary)
        return summary

    def fetch(self, path: PathLike, remote_url: str, private_key: str, public_key: str) -> None:
        """Update the remote-tracking branches of a worktree."""
        with self._get_repo(path) as repo:
            self._fetch(repo, remote_url, private_key, "fetch")
        logger.debug(f"Fetched {remote_url} into {path}")

    def pull(self, path: PathLike, remote_url: str, branch_name: str, private_key: str,
             public_key: str, author: Optional[GitProfile] = None) -> PullResult:
        """Fetch the remote and merge `origin/<branch>` into the local branch.

        Transport failures raise; merge failures are reported as
        PullStatus.FAILED with the conflicting paths, after aborting the merge.
        """
        self.ensure_branch(path, branch_name)
        with self._get_repo(path) as repo:
            self._fetch(repo, remote_url, private_key, "pull")

            if branch_name not in self._remote_branches(repo):
                return PullResult(PullStatus.UP_TO_DATE, NOTHING_TO_FETCH)

            tracking = f"{self.remote_name}/{branch_name}"
            remote_commit = repo.commit(tracking)

            if not repo.head.is_valid():
                try:
                    repo.git.checkout("-B", branch_name, tracking)
                except git.exc.GitCommandError as e:
                    return PullResult(PullStatus.FAILED, error_detail(e))
                return PullResult(PullStatus.FETCHED_AND_MERGED, f"Checked out {tracking}")

            head_commit = repo.head.commit
            if head_commit == remote_commit or repo.is_ancestor(remote_commit, head_commit):
                return PullResult(PullStatus.UP_TO_DATE, NOTHING_TO_FETCH)

            try:
                with repo.git.custom_environment(**self._identity_env(author)):
                    repo.git.merge(tracking, "--no-edit")
            except git.exc.GitCommandError as e:
                detail = error_detail(e)
                conflicts = self._collect_conflicts(repo)
                self._abort_merge(repo)
                logger.warning(f"Pull of {tracking} into {branch_name} failed: {detail}")
                return PullResult(PullStatus.FAILED, detail, conflicts)

        logger.info(f"Merged {tracking} into {branch_name}")
        return PullResult(PullStatus.FETCHED_AND_MERGED, f"Merged {tracking} into {branch_name}")

    def status(self, path: PathLike, branch_name: str) -> GitStatus:
        """Working tree status of `branch_name`, which is checked out first."""
        self.checkout(path, branch_name)
        result = GitStatus()
        with self._get_repo(path) as repo:
            try:
                output = repo.git.status("--porcelain", "-z", "--untracked-files=all")
            except git.exc.GitCommandError as e:
                raise GitActionFailed("status", error_detail(e))

            entries = output.split("\0")
            index = 0
            while index < len(entries):
                entry = entries[index]
                index += 1
                if len(entry) < 4:
                    continue
                code, file_path = entry[:2], entry[3:]
                if code[0] in "RC":
                    # Renames and copies carry the original path as the next entry
                    index += 1
                if ConflictKind.from_porcelain(code) is not None:
                    result.conflicting.add(file_path)
                elif code == "??":
                    result.untracked.add(file_path)
                elif code[0] in "AC":
                    result.added.add(file_path)
                elif "D" in code:
                    result.removed.add(file_path)
                else:
                    result.modified.add(file_path)

            if repo.head.is_valid() and branch_name in self._remote_branches(repo):
                counts = repo.git.rev_list(
                    "--left-right", "--count", f"{self.remote_name}/{branch_name}...HEAD"
                ).split()
                if len(counts) == 2:
                    result.behind, result.ahead = int(counts[0]), int(counts[1])
        return result

    def reset_worktree(self, path: PathLike) -> None:
        """Drop uncommitted changes and untracked files of the current checkout."""
        with self._get_repo(path) as repo:
            if not repo.head.is_valid():
                return
            try:
                repo.git.reset("--hard")
                repo.git.clean("-fd")
            except git.exc.GitCommandError as e:
                raise GitActionFailed("reset", error_detail(e))

    def merge(self, path: PathLike, source: str, destination: str,
              author: Optional[GitProfile] = None) -> MergeResult:
        """Merge `source` into `destination`, leaving `destination` checked out.

        Conflicting merges are aborted and reported with their conflict list.
        """
        with self._get_repo(path) as repo:
            local = self._local_branches(repo)
            for branch in (source, destination):
                if branch not in local:
                    raise GitActionFailed("merge", f"branch '{branch}' does not exist locally")

        self.checkout(path, destination)
        with self._get_repo(path) as repo:
            if repo.is_ancestor(repo.commit(source), repo.commit(destination)):
                return MergeResult(merged=True, message=f"Already up to date: {destination} contains {source}")

            message = f"Merge branch '{source}' into {destination}"
            try:
                with repo.git.custom_environment(**self._identity_env(author)):
                    repo.git.merge(source, "--no-ff", "--no-edit", "-m", message)
            except git.exc.GitCommandError as e:
                conflicts = self._collect_conflicts(repo)
                self._abort_merge(repo)
                if conflicts:
                    logger.warning(f"Merge of {source} into {destination} has {len(conflicts)} conflict(s)")
                    return MergeResult(merged=False, conflicts=conflicts,
                                       message="Merge conflicts found, merge aborted")
                raise GitActionFailed("merge", error_detail(e))

        logger.info(message)
        return MergeResult(merged=True, message=message)

    def list_branches(self, path: PathLike) -> List[str]:
        """Local branches, then branches only known on the remote as "origin/<name>"."""
        with self._get_repo(path) as repo:
            local = sorted(self._local_branches(repo))
            remote_only = sorted(
                f"{self.remote_name}/{name}" for name in self._remote_branches(repo) if name not in local
            )
        return local + remote_only

    def commit_history(self, path: PathLike, branch_name: Optional[str] = None,
                       limit: Optional[int] = None) -> List[CommitRecord]:
        """Commits reachable from the branch (default: HEAD), newest first."""
        with self._get_repo(path) as repo:
            if branch_name is None:
                if not repo.head.is_valid():
                    return []
                rev = "HEAD"
            elif branch_name in self._local_branches(repo):
                rev = branch_name
            elif branch_name == self._active_branch(repo):
                # Unborn branch, no commits yet
                return []
            else:
                raise GitActionFailed("log", f"branch '{branch_name}' does not exist locally")

            history = []
            for commit in repo.iter_commits(rev, max_count=limit or self.history_limit):
                message = commit.message if isinstance(commit.message, str) else commit.message.decode("utf-8", errors="ignore")
                history.append(CommitRecord(
                    hash=commit.hexsha,
                    author_name=commit.author.name,
                    author_email=commit.author.email,
                    timestamp=commit.committed_datetime,
                    message=message.strip(),
                ))
            return history

    def remove_remote(self, path: PathLike) -> bool:
        """Detach the worktree from its remote."""
        with self._get_repo(path) as repo:
            try:
                repo.delete_remote(repo.remote(self.remote_name))
            except ValueError:
                return False
        logger.info(f"Removed remote {self.remote_name} from {path}")
        return True
