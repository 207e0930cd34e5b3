"""Tests for the credential, profile and resource stores"""
import pytest
from cryptography.fernet import Fernet

from git_lineage_sync.exceptions import InvalidGitConfiguration, InvalidGitCredentials, InvalidParameter
from git_lineage_sync.models.git import GitCredential, GitProfile
from git_lineage_sync.models.resource import GitMetadata
from git_lineage_sync.stores import DEFAULT_PROFILE_KEY, CredentialStore, ProfileStore, ResourceStore


class TestCredentialStore:
    """Test keypair storage."""

    def test_save_and_get(self, credential):
        store = CredentialStore()
        store.save("root", credential)
        assert store.get("root") == credential
        assert store.public_key("root") == credential.public_key

    def test_private_key_encrypted_at_rest(self, credential):
        store = CredentialStore()
        store.save("root", credential)
        assert b"not-a-real-key" not in store.encrypted_private_key("root")

    def test_private_key_not_in_repr(self, credential):
        assert "not-a-real-key" not in repr(credential)

    def test_missing_credential(self):
        with pytest.raises(InvalidGitCredentials):
            CredentialStore().get("root")

    def test_incomplete_credential_rejected(self):
        with pytest.raises(InvalidGitCredentials):
            CredentialStore().save("root", GitCredential(private_key="", public_key="ssh-ed25519 AAAA"))

    def test_undecryptable_credential(self, credential):
        """A store opened with another key cannot read existing records."""
        store = CredentialStore(Fernet.generate_key().decode())
        store.save("root", credential)
        store._fernet = Fernet(Fernet.generate_key())
        with pytest.raises(InvalidGitCredentials):
            store.get("root")

    def test_delete(self, credential):
        store = CredentialStore()
        store.save("root", credential)
        assert store.delete("root") is True
        assert store.has("root") is False
        assert store.delete("root") is False


class TestProfileStore:
    """Test author profile resolution."""

    def test_first_profile_becomes_default(self, profile):
        store = ProfileStore()
        profiles = store.set_profile("user", profile, is_default=False, root_resource_id="root")
        assert profiles == {DEFAULT_PROFILE_KEY: profile}
        assert store.get_profile("user") == profile

    def test_root_override(self, profile):
        store = ProfileStore()
        store.set_profile("user", profile)
        work = GitProfile("Ada at Work", "ada@work.example.com")
        store.set_profile("user", work, is_default=False, root_resource_id="root")

        assert store.get_profile("user", "root") == work
        assert store.get_profile("user", "other") == profile
        assert store.get_profile("user") == profile

    def test_default_update(self, profile):
        store = ProfileStore()
        store.set_profile("user", profile)
        renamed = GitProfile("Ada King", "ada@example.com")
        store.set_profile("user", renamed, is_default=True, root_resource_id="root")
        assert store.get_profile("user") == renamed

    def test_missing_profile(self):
        with pytest.raises(InvalidGitConfiguration):
            ProfileStore().get_profile("user")

    def test_blank_fields_rejected(self):
        store = ProfileStore()
        with pytest.raises(InvalidParameter, match="Author Name"):
            store.set_profile("user", GitProfile("", "a@example.com"))
        with pytest.raises(InvalidParameter, match="Author Email"):
            store.set_profile("user", GitProfile("Ada", " "))

    def test_profiles_for(self, profile):
        store = ProfileStore()
        assert store.profiles_for("user", "root") == {}
        store.set_profile("user", profile)
        assert store.profiles_for("user", "root") == {DEFAULT_PROFILE_KEY: profile, "root": profile}


class TestResourceStore:
    """Test resource records and lineage lookups."""

    def test_records_are_copied(self):
        store = ResourceStore()
        resource = store.create("ws", "App", state={"a": 1})
        resource.state["a"] = 2
        assert store.get(resource.id).state == {"a": 1}

    def test_duplicate_id(self):
        store = ResourceStore()
        store.create("ws", "App", resource_id="root")
        with pytest.raises(ValueError):
            store.create("ws", "App", resource_id="root")

    def test_find_by_branch(self):
        store = ResourceStore()
        root = store.create("ws", "App", resource_id="root")
        root.git_metadata = GitMetadata(root_resource_id="root", branch_name="main")
        store.save(root)
        branch = store.create("ws", "App")
        branch.git_metadata = GitMetadata(root_resource_id="root", branch_name="feature")
        store.save(branch)

        assert store.find_by_branch("root", "feature").id == branch.id
        assert store.find_by_branch("root", "main").id == "root"
        assert store.find_by_branch("root", "missing") is None
        assert [r.id for r in store.list_lineage("root")] == ["root", branch.id]

    def test_delete(self):
        store = ResourceStore()
        resource = store.create("ws", "App")
        assert store.delete(resource.id) is True
        assert store.get(resource.id) is None
