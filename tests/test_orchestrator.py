"""Tests for GitOrchestrator against local bare remotes"""
import asyncio
import copy
import json
import threading
import time

import git
import pytest

from git_lineage_sync.exceptions import (
    GitActionFailed,
    InvalidGitConfiguration,
    InvalidGitCredentials,
    InvalidParameter,
    InvalidRemote,
    InvalidRepoState,
    ResourceNotFound,
)
from git_lineage_sync.models.git import GitProfile
from git_lineage_sync.paths import worktree_path
from git_lineage_sync.serializer import state_to_tree
from git_lineage_sync.services.authorization import Authorizer, Permission

from conftest import PRIVATE_KEY, PUBLIC_KEY, ROOT_ID, SAMPLE_STATE, USER_ID, WORKSPACE_ID, update_page, update_state

ORIGIN = "https://apps.example.com"


async def connect(orchestrator, remote):
    return await orchestrator.connect(ROOT_ID, str(remote), ORIGIN, user_id=USER_ID)


def lineage_worktree(orchestrator, repo_name="app"):
    return worktree_path(orchestrator.base_path, WORKSPACE_ID, ROOT_ID, repo_name)


def push_remote_change(clone, relative, content, message):
    with open(f"{clone.working_dir}/{relative}", "w") as handle:
        handle.write(content)
    clone.git.add("-A")
    clone.git.commit("-m", message)
    clone.remote("origin").push(clone.active_branch.name)


def committed_tree(path):
    """Files of the HEAD commit, without the seed document."""
    with git.Repo(path) as repo:
        return {
            item.path: item.data_stream.read().decode("utf-8")
            for item in repo.head.commit.tree.traverse()
            if item.type == "blob" and item.path != "README.md"
        }


class TestConnect:
    """Test binding a root resource to a remote."""

    @pytest.mark.asyncio
    async def test_connect_persists_default_branch(self, orchestrator, root_resource, remote):
        resource = await connect(orchestrator, remote)

        metadata = resource.git_metadata
        assert metadata.branch_name == "main"
        assert metadata.repo_name == "app"
        assert metadata.root_resource_id == ROOT_ID
        assert metadata.cached_public_key == PUBLIC_KEY
        assert orchestrator.resource_store.get(ROOT_ID).git_metadata == metadata

    @pytest.mark.asyncio
    async def test_connect_uses_remote_default_branch(self, orchestrator, root_resource, make_remote):
        remote_path = make_remote("trunk-app.git", default_branch="trunk")
        resource = await orchestrator.connect(ROOT_ID, str(remote_path), ORIGIN, user_id=USER_ID)
        assert resource.branch_name == "trunk"

    @pytest.mark.asyncio
    async def test_connect_commits_seed_document(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        path = lineage_worktree(orchestrator)

        readme = (path / "README.md").read_text()
        assert f"{ORIGIN}/{ROOT_ID}/applications/pages/home" in readme
        assert f"{ORIGIN}/{ROOT_ID}/applications/pages/home/edit" in readme
        head = git.Repo(path).head.commit
        assert head.message.strip() == "Initial commit"
        assert head.author.name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_connect_saves_given_profile(self, orchestrator, root_resource, remote):
        work = GitProfile("Ada at Work", "ada@work.example.com")
        await orchestrator.connect(ROOT_ID, str(remote), ORIGIN, user_id=USER_ID,
                                   profile=work, is_default_profile=False)
        assert await orchestrator.get_profile(USER_ID, ROOT_ID) == work

    @pytest.mark.asyncio
    async def test_url_without_git_suffix(self, orchestrator, root_resource):
        with pytest.raises(InvalidGitConfiguration):
            await orchestrator.connect(ROOT_ID, "https://github.com/user/repo", ORIGIN, user_id=USER_ID)

    @pytest.mark.asyncio
    async def test_blank_inputs(self, orchestrator, root_resource, remote):
        with pytest.raises(InvalidParameter):
            await orchestrator.connect(ROOT_ID, " ", ORIGIN)
        with pytest.raises(InvalidParameter):
            await orchestrator.connect(ROOT_ID, str(remote), "")

    @pytest.mark.asyncio
    async def test_missing_credentials(self, orchestrator, remote):
        orchestrator.resource_store.create(WORKSPACE_ID, "Bare", resource_id="no-keys")
        with pytest.raises(InvalidGitCredentials):
            await orchestrator.connect("no-keys", str(remote), ORIGIN)

    @pytest.mark.asyncio
    async def test_unknown_resource(self, orchestrator, remote):
        with pytest.raises(ResourceNotFound):
            await orchestrator.connect("missing", str(remote), ORIGIN)

    @pytest.mark.asyncio
    async def test_unreachable_remote(self, orchestrator, root_resource, temp_dir):
        with pytest.raises(InvalidRemote):
            await orchestrator.connect(ROOT_ID, str(temp_dir / "nowhere" / "app.git"), ORIGIN)
        assert orchestrator.resource_store.get(ROOT_ID).git_metadata is None

    @pytest.mark.asyncio
    async def test_non_empty_remote_rolls_back(self, orchestrator, root_resource, make_remote):
        """The clone is removed and the metadata left untouched."""
        remote_path = make_remote("app.git", files={"existing.txt": "hello\n"})
        with pytest.raises(InvalidRepoState):
            await orchestrator.connect(ROOT_ID, str(remote_path), ORIGIN, user_id=USER_ID)

        assert not lineage_worktree(orchestrator).exists()
        assert orchestrator.resource_store.get(ROOT_ID).git_metadata is None

    @pytest.mark.asyncio
    async def test_already_connected(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        with pytest.raises(InvalidRepoState):
            await connect(orchestrator, remote)


class TestCommit:
    """Test committing resource state."""

    @pytest.mark.asyncio
    async def test_commit_writes_state(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        result = await orchestrator.commit(ROOT_ID, "main", "Add pages", user_id=USER_ID)

        assert result.startswith("Commit Result : [main ")
        assert "Push Result" not in result
        history = await orchestrator.get_commit_history(ROOT_ID, "main")
        assert history[0].message == "Add pages"
        assert history[0].author_email == "ada@example.com"
        home = json.loads((lineage_worktree(orchestrator) / "pages" / "home.json").read_text())
        assert home["title"] == "Home"

    @pytest.mark.asyncio
    async def test_blank_message_uses_default(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "  ", user_id=USER_ID)
        history = await orchestrator.get_commit_history(ROOT_ID, "main")
        assert history[0].message == "Default generated commit"

    @pytest.mark.asyncio
    async def test_empty_commit_without_push_fails(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "First", user_id=USER_ID)

        with pytest.raises(GitActionFailed) as exc_info:
            await orchestrator.commit(ROOT_ID, "main", "Again", user_id=USER_ID)
        assert exc_info.value.action == "commit"

    @pytest.mark.asyncio
    async def test_empty_commit_with_push_proceeds(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "First", user_id=USER_ID)

        result = await orchestrator.commit(ROOT_ID, "main", "Again", do_push=True, user_id=USER_ID)
        assert "nothing to commit, working tree clean" in result
        assert ". Push Result : " in result
        assert git.Repo(remote).commit("main").message.strip() == "First"

    @pytest.mark.asyncio
    async def test_commit_with_push_publishes(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Ship it", do_push=True, user_id=USER_ID)
        assert orchestrator.resource_store.get(ROOT_ID).published_state == SAMPLE_STATE

    @pytest.mark.asyncio
    async def test_commit_requires_profile(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        with pytest.raises(InvalidGitConfiguration):
            await orchestrator.commit(ROOT_ID, "main", "Anonymous", user_id="stranger")

    @pytest.mark.asyncio
    async def test_commit_names_missing_metadata_field(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        resource = orchestrator.resource_store.get(ROOT_ID)
        resource.git_metadata.remote_url = None
        orchestrator.resource_store.save(resource)

        with pytest.raises(InvalidGitConfiguration, match="remote url"):
            await orchestrator.commit(ROOT_ID, "main", "Broken", user_id=USER_ID)

    @pytest.mark.asyncio
    async def test_concurrent_commits_never_overlap(self, orchestrator, root_resource, remote, monkeypatch):
        """Commits on branches sharing a worktree run one at a time."""
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Base", user_id=USER_ID)
        branches = ["main"]
        for name in ("alpha", "beta", "gamma"):
            created = await orchestrator.create_branch(ROOT_ID, "main", name)
            branches.append(created.branch_name)
        for branch in branches:
            record = orchestrator.resource_store.find_by_branch(ROOT_ID, branch)
            update_state(orchestrator, record.id, theme=f"theme-{branch}")

        active = 0
        peak = 0
        counter_lock = threading.Lock()
        original_commit = orchestrator.executor.commit

        def tracking_commit(*args, **kwargs):
            nonlocal active, peak
            with counter_lock:
                active += 1
                peak = max(peak, active)
            try:
                time.sleep(0.05)
                return original_commit(*args, **kwargs)
            finally:
                with counter_lock:
                    active -= 1

        monkeypatch.setattr(orchestrator.executor, "commit", tracking_commit)

        results = await asyncio.gather(*[
            orchestrator.commit(ROOT_ID, branch, f"Theme for {branch}", user_id=USER_ID)
            for branch in branches
        ])

        assert peak == 1
        assert all(result.startswith("Commit Result : [") for result in results)
        for branch in branches:
            history = await orchestrator.get_commit_history(ROOT_ID, branch)
            assert history[0].message == f"Theme for {branch}"
            assert (await orchestrator.get_status(ROOT_ID, branch)).is_clean

    @pytest.mark.asyncio
    async def test_concurrent_commits_on_one_branch(self, orchestrator, root_resource, remote):
        """Racing commits of one branch leave HEAD equal to one of the committed states."""
        await connect(orchestrator, remote)
        first_state = {**SAMPLE_STATE, "theme": "first"}
        second_state = {"name": "Inventory", "theme": "second", "pages": {"solo": {"title": "Solo"}}}

        async def commit_state(state, message):
            resource = orchestrator.resource_store.get(ROOT_ID)
            resource.state = copy.deepcopy(state)
            orchestrator.resource_store.save(resource)
            return await orchestrator.commit(ROOT_ID, "main", message, user_id=USER_ID)

        results = await asyncio.gather(
            commit_state(first_state, "First"),
            commit_state(second_state, "Second"),
            return_exceptions=True,
        )

        assert isinstance(results[0], str)
        # The second commit is empty when the first already picked up the second state
        assert isinstance(results[1], str) or isinstance(results[1], GitActionFailed)
        path = lineage_worktree(orchestrator)
        assert committed_tree(path) in (state_to_tree(first_state), state_to_tree(second_state))
        assert not git.Repo(path).is_dirty(untracked_files=True)

    @pytest.mark.asyncio
    async def test_state_key_named_like_seed_document(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        update_state(orchestrator, ROOT_ID, **{"README.md": {"intro": {"text": "Hello"}}})

        result = await orchestrator.commit(ROOT_ID, "main", "Readme key", user_id=USER_ID)
        assert result.startswith("Commit Result : [main ")
        application = json.loads((lineage_worktree(orchestrator) / "application.json").read_text())
        assert application["README.md"] == {"intro": {"text": "Hello"}}
        assert "Welcome" in (lineage_worktree(orchestrator) / "README.md").read_text()


class TestPushPull:
    """Test exchanging changes with the remote."""

    @pytest.mark.asyncio
    async def test_push(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        summary = await orchestrator.push(ROOT_ID, "main")
        assert "main" in summary
        assert git.Repo(remote).commit("main").message.strip() == "Initial commit"

    @pytest.mark.asyncio
    async def test_pull_round_trip(self, orchestrator, root_resource, remote, clone_remote):
        """Changes pushed by someone else end up in the resource state."""
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Share", do_push=True, user_id=USER_ID)

        other = clone_remote(remote)
        push_remote_change(other, "pages/about.json", json.dumps({"title": "About"}, indent=2) + "\n", "Add about")

        resource = await orchestrator.pull(ROOT_ID, "main", user_id=USER_ID)
        assert resource.state["pages"]["about"] == {"title": "About"}
        assert resource.state["pages"]["home"] == SAMPLE_STATE["pages"]["home"]
        assert orchestrator.resource_store.get(ROOT_ID).state["pages"]["about"] == {"title": "About"}

    @pytest.mark.asyncio
    async def test_pull_up_to_date(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Share", do_push=True, user_id=USER_ID)
        resource = await orchestrator.pull(ROOT_ID, "main", user_id=USER_ID)
        assert resource.state == SAMPLE_STATE

    @pytest.mark.asyncio
    async def test_pull_conflict(self, orchestrator, root_resource, remote, clone_remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Share", do_push=True, user_id=USER_ID)

        other = clone_remote(remote)
        home = json.loads(open(f"{other.working_dir}/pages/home.json").read())
        home["title"] = "Remote title"
        push_remote_change(other, "pages/home.json", json.dumps(home, indent=2, sort_keys=True) + "\n", "Remote title")

        update_page(orchestrator, ROOT_ID, "home", title="Local title")
        await orchestrator.commit(ROOT_ID, "main", "Local title", user_id=USER_ID)

        with pytest.raises(InvalidRepoState) as exc_info:
            await orchestrator.pull(ROOT_ID, "main", user_id=USER_ID)
        assert [c.path for c in exc_info.value.conflicts] == ["pages/home.json"]
        assert orchestrator.resource_store.get(ROOT_ID).state["pages"]["home"]["title"] == "Local title"


class TestBranches:
    """Test branch records."""

    @pytest.mark.asyncio
    async def test_create_branch_twice_gives_distinct_records(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        first = await orchestrator.create_branch(ROOT_ID, "main", "feature")
        second = await orchestrator.create_branch(ROOT_ID, "main", "feature")

        assert first.branch_name == "feature"
        assert second.branch_name == "feature-1"
        assert first.id != second.id != ROOT_ID
        assert second.state == SAMPLE_STATE
        assert second.git_metadata.root_resource_id == ROOT_ID
        assert second.git_metadata.cached_public_key == PUBLIC_KEY
        assert await orchestrator.list_branches(ROOT_ID) == ["feature", "feature-1", "main"]

    @pytest.mark.asyncio
    async def test_checkout_branch_materializes_record(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        feature = await orchestrator.create_branch(ROOT_ID, "main", "feature")
        update_page(orchestrator, feature.id, "reports", title="Reports")

        await orchestrator.checkout_branch(ROOT_ID, "main")
        path = lineage_worktree(orchestrator)
        assert orchestrator.executor.current_branch(path) == "main"
        assert not (path / "pages" / "reports.json").exists()

        resource = await orchestrator.checkout_branch(ROOT_ID, "feature")
        assert resource.id == feature.id
        assert orchestrator.executor.current_branch(path) == "feature"
        assert (path / "pages" / "reports.json").exists()

    @pytest.mark.asyncio
    async def test_checkout_remote_only_branch(self, orchestrator, root_resource, remote, clone_remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Share", do_push=True, user_id=USER_ID)

        other = clone_remote(remote)
        other.git.checkout("-b", "hotfix")
        push_remote_change(other, "pages/hotfix.json", '{"title": "Hotfix"}\n', "Hotfix page")

        assert "origin/hotfix" in await orchestrator.list_branches(ROOT_ID, fetch=True)
        resource = await orchestrator.checkout_branch(ROOT_ID, "origin/hotfix")
        assert resource.branch_name == "hotfix"
        assert resource.state["pages"]["hotfix"] == {"title": "Hotfix"}
        assert orchestrator.resource_store.find_by_branch(ROOT_ID, "hotfix").id == resource.id

    @pytest.mark.asyncio
    async def test_checkout_unknown_branch(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        with pytest.raises(ResourceNotFound):
            await orchestrator.checkout_branch(ROOT_ID, "nope")

    @pytest.mark.asyncio
    async def test_status_reflects_uncommitted_state(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Base", user_id=USER_ID)
        update_page(orchestrator, ROOT_ID, "home", title="Changed")
        update_page(orchestrator, ROOT_ID, "reports", title="Reports")

        status = await orchestrator.get_status(ROOT_ID, "main")
        assert status.modified == {"pages/home.json"}
        assert status.untracked == {"pages/reports.json"}
        assert not status.is_clean


class TestMergeBranch:
    """Test merging branch records."""

    @pytest.mark.asyncio
    async def test_clean_merge_refreshes_destination(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Base", user_id=USER_ID)
        feature = await orchestrator.create_branch(ROOT_ID, "main", "feature")
        update_page(orchestrator, feature.id, "reports", title="Reports")
        await orchestrator.commit(ROOT_ID, "feature", "Add reports", user_id=USER_ID)

        result = await orchestrator.merge_branch(ROOT_ID, "feature", "main", user_id=USER_ID)
        assert result.merged is True
        assert orchestrator.resource_store.get(ROOT_ID).state["pages"]["reports"] == {"title": "Reports"}

    @pytest.mark.asyncio
    async def test_conflicting_merge(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Base", user_id=USER_ID)
        feature = await orchestrator.create_branch(ROOT_ID, "main", "feature")
        update_page(orchestrator, feature.id, "home", title="Feature")
        await orchestrator.commit(ROOT_ID, "feature", "Feature title", user_id=USER_ID)
        update_page(orchestrator, ROOT_ID, "home", title="Main")
        await orchestrator.commit(ROOT_ID, "main", "Main title", user_id=USER_ID)

        result = await orchestrator.merge_branch(ROOT_ID, "feature", "main")
        assert result.merged is False
        assert [c.path for c in result.conflicts] == ["pages/home.json"]
        assert orchestrator.resource_store.get(ROOT_ID).state["pages"]["home"]["title"] == "Main"

    @pytest.mark.asyncio
    async def test_uncommitted_destination_changes_block_merge(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.commit(ROOT_ID, "main", "Base", user_id=USER_ID)
        feature = await orchestrator.create_branch(ROOT_ID, "main", "feature")
        update_page(orchestrator, feature.id, "reports", title="Reports")
        await orchestrator.commit(ROOT_ID, "feature", "Add reports", user_id=USER_ID)
        update_state(orchestrator, ROOT_ID, theme="dark")

        with pytest.raises(InvalidRepoState, match="commit your changes"):
            await orchestrator.merge_branch(ROOT_ID, "feature", "main", user_id=USER_ID)

        state = orchestrator.resource_store.get(ROOT_ID).state
        assert state["theme"] == "dark"
        assert "reports" not in state["pages"]
        history = await orchestrator.get_commit_history(ROOT_ID, "main")
        assert history[0].message == "Base"

    @pytest.mark.asyncio
    async def test_merge_into_itself(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        with pytest.raises(InvalidParameter):
            await orchestrator.merge_branch(ROOT_ID, "main", "main")


class TestMetadataAndDisconnect:
    """Test reading metadata and disconnecting lineages."""

    @pytest.mark.asyncio
    async def test_metadata_never_contains_private_key(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        metadata = await orchestrator.get_metadata(ROOT_ID, user_id=USER_ID)

        assert metadata["public_key"] == PUBLIC_KEY
        assert metadata["branch_name"] == "main"
        assert metadata["profiles"]["default"] == {"author_name": "Ada Lovelace", "author_email": "ada@example.com"}
        assert PRIVATE_KEY.strip() not in json.dumps(metadata)
        assert "not-a-real-key" not in json.dumps(metadata)

    @pytest.mark.asyncio
    async def test_metadata_of_unconnected_resource(self, orchestrator, root_resource):
        assert await orchestrator.get_metadata(ROOT_ID) is None

    @pytest.mark.asyncio
    async def test_disconnect(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        feature = await orchestrator.create_branch(ROOT_ID, "main", "feature")

        resource = await orchestrator.disconnect(ROOT_ID)

        assert resource.git_metadata is None
        assert await orchestrator.get_metadata(ROOT_ID) is None
        assert orchestrator.resource_store.get(feature.id) is None
        assert not lineage_worktree(orchestrator).exists()

    @pytest.mark.asyncio
    async def test_disconnect_unconnected_is_noop(self, orchestrator, root_resource):
        resource = await orchestrator.disconnect(ROOT_ID)
        assert resource.state == SAMPLE_STATE

    @pytest.mark.asyncio
    async def test_reconnect_after_disconnect(self, orchestrator, root_resource, remote, make_remote):
        await connect(orchestrator, remote)
        await orchestrator.disconnect(ROOT_ID)
        other_remote = make_remote("second.git")
        resource = await orchestrator.connect(ROOT_ID, str(other_remote), ORIGIN, user_id=USER_ID)
        assert resource.git_metadata.repo_name == "second"

    @pytest.mark.asyncio
    async def test_commit_queued_behind_disconnect(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)

        results = await asyncio.gather(
            orchestrator.disconnect(ROOT_ID),
            orchestrator.commit(ROOT_ID, "main", "After", user_id=USER_ID),
            return_exceptions=True,
        )

        assert results[0].git_metadata is None
        assert isinstance(results[1], InvalidGitConfiguration)
        assert not lineage_worktree(orchestrator).exists()
        assert await orchestrator.get_metadata(ROOT_ID) is None

        resource = await connect(orchestrator, remote)
        assert resource.git_metadata.branch_name == "main"

    @pytest.mark.asyncio
    async def test_branch_operation_queued_behind_disconnect(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        await orchestrator.create_branch(ROOT_ID, "main", "feature")

        results = await asyncio.gather(
            orchestrator.disconnect(ROOT_ID),
            orchestrator.get_status(ROOT_ID, "feature"),
            return_exceptions=True,
        )

        assert isinstance(results[1], ResourceNotFound)
        assert not lineage_worktree(orchestrator).exists()


class DenyWrites(Authorizer):
    def is_allowed(self, user_id, resource, permission):
        return permission == Permission.READ


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_denied_resource_looks_missing(self, orchestrator, root_resource, remote):
        await connect(orchestrator, remote)
        orchestrator.authorizer = DenyWrites()

        with pytest.raises(ResourceNotFound):
            await orchestrator.commit(ROOT_ID, "main", "Nope", user_id=USER_ID)
        assert await orchestrator.get_metadata(ROOT_ID) is not None


class TestProfiles:
    @pytest.mark.asyncio
    async def test_set_and_get_profile(self, orchestrator):
        profile = GitProfile("Grace Hopper", "grace@example.com")
        profiles = await orchestrator.set_profile("grace", profile)
        assert profiles == {"default": profile}
        assert await orchestrator.get_profile("grace") == profile

    @pytest.mark.asyncio
    async def test_missing_profile(self, orchestrator):
        with pytest.raises(InvalidGitConfiguration):
            await orchestrator.get_profile("nobody")
