"""Tests for RegistryService and the Registry model"""
import json
import os
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from git_workty.exceptions import IncompatibleRegistryVersion, RegistryCorrupt
from git_workty.models.worktree import Registry, WorktreeRecord, WorktreeStatus
from git_workty.services.registry_service import RegistryService

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)


def make_record(name, path=None, branch=None, used=T0):
    return WorktreeRecord(
        name=name,
        path=path or f"/work/{name}",
        branch=branch or name,
        head="a" * 40,
        created_at=T0,
        last_used_at=used,
    )


@pytest.fixture
def service(temp_dir):
    common_dir = temp_dir / "repo.git"
    common_dir.mkdir()
    return RegistryService(common_dir)


class TestRegistry:
    """Test the in-memory registry."""

    def test_insert_and_get(self):
        registry = Registry()
        registry.insert(make_record("alpha"))

        assert len(registry) == 1
        assert "alpha" in registry
        assert registry.get("alpha").path == "/work/alpha"
        assert registry.find_by_path("/work/alpha").name == "alpha"

    def test_insert_duplicate_name(self):
        registry = Registry([make_record("alpha")])

        with pytest.raises(KeyError):
            registry.insert(make_record("alpha", path="/elsewhere"))

    def test_insert_duplicate_path(self):
        registry = Registry([make_record("alpha")])

        with pytest.raises(KeyError):
            registry.insert(make_record("beta", path="/work/alpha"))

    def test_rename_keeps_position(self):
        registry = Registry([make_record("a"), make_record("b"), make_record("c")])

        renamed = registry.rename("b", "bee")

        assert registry.names() == ["a", "bee", "c"]
        assert renamed.path == "/work/b"
        assert "b" not in registry

    def test_rename_to_existing(self):
        registry = Registry([make_record("a"), make_record("b")])

        with pytest.raises(KeyError):
            registry.rename("a", "b")

    def test_remove_and_touch(self):
        registry = Registry([make_record("a"), make_record("b")])

        registry.touch("a", T1)
        removed = registry.remove("b")

        assert removed.name == "b"
        assert registry.get("a").last_used_at == T1
        assert registry.names() == ["a"]

    def test_iteration_allows_mutation(self):
        registry = Registry([make_record("a"), make_record("b")])

        for record in registry:
            registry.remove(record.name)

        assert len(registry) == 0


class TestRegistryLoad:
    """Test loading the registry file."""

    def test_load_absent_file(self, service):
        """Test an absent file yields an empty registry."""
        registry = service.load()

        assert len(registry) == 0
        assert not service.registry_file.exists()

    def test_registry_location(self, service):
        """Test the file lives under the common git dir."""
        assert service.registry_file == service.common_dir / "workty" / "registry.json"

    def test_load_unknown_version(self, service):
        """Test a file written by a newer version is refused."""
        service.registry_file.parent.mkdir(parents=True)
        service.registry_file.write_text(json.dumps({"version": 2, "worktrees": []}))

        with pytest.raises(IncompatibleRegistryVersion) as exc_info:
            service.load()

        assert exc_info.value.found == 2
        assert exc_info.value.exit_code == 12

    def test_load_missing_version(self, service):
        """Test a file without a version field is refused."""
        service.registry_file.parent.mkdir(parents=True)
        service.registry_file.write_text(json.dumps({"worktrees": []}))

        with pytest.raises(IncompatibleRegistryVersion):
            service.load()

    def test_load_invalid_json(self, service):
        """Test an unparseable file."""
        service.registry_file.parent.mkdir(parents=True)
        service.registry_file.write_text("{not json")

        with pytest.raises(RegistryCorrupt):
            service.load()

    def test_load_bad_entry(self, service):
        """Test an entry without a path."""
        service.registry_file.parent.mkdir(parents=True)
        service.registry_file.write_text(json.dumps({"version": 1, "worktrees": [{"name": "x"}]}))

        with pytest.raises(RegistryCorrupt):
            service.load()

    def test_load_duplicate_names(self, service):
        """Test a hand-edited file with a repeated name."""
        entry = {"name": "x", "path": "/a"}
        service.registry_file.parent.mkdir(parents=True)
        service.registry_file.write_text(
            json.dumps({"version": 1, "worktrees": [entry, dict(entry, path="/b")]})
        )

        with pytest.raises(RegistryCorrupt):
            service.load()

    def test_load_naive_timestamp(self, service):
        """Test timestamps without an offset are read as UTC."""
        service.registry_file.parent.mkdir(parents=True)
        service.registry_file.write_text(json.dumps({
            "version": 1,
            "worktrees": [{"name": "x", "path": "/a", "last_used_at": "2024-01-01T12:00:00"}],
        }))

        record = service.load().get("x")

        assert record.last_used_at == T0
        assert record.created_at is None


class TestRegistrySave:
    """Test saving the registry file."""

    def test_round_trip(self, service):
        """Test records survive a save and load."""
        registry = Registry([make_record("a"), make_record("b", branch=None, used=None)])
        registry.get("b").branch = None

        service.save(registry)
        loaded = service.load()

        assert loaded.names() == ["a", "b"]
        assert loaded.get("a").last_used_at == T0
        assert loaded.get("b").branch is None
        assert loaded.get("b").last_used_at is None

    def test_save_load_is_byte_stable(self, service):
        """Test saving a loaded registry reproduces the file exactly."""
        service.save(Registry([make_record("zeta", used=T1), make_record("alpha")]))
        first = service.registry_file.read_bytes()

        service.save(service.load())

        assert service.registry_file.read_bytes() == first

    def test_status_not_persisted(self, service):
        """Test the derived status never reaches the file."""
        record = make_record("a")
        record.status = WorktreeStatus.ORPHANED
        service.save(Registry([record]))

        data = json.loads(service.registry_file.read_text())

        assert data["version"] == 1
        assert "status" not in data["worktrees"][0]
        assert service.load().get("a").status == WorktreeStatus.ACTIVE

    def test_save_leaves_no_temp_files(self, service):
        """Test the temp file is renamed into place."""
        service.save(Registry([make_record("a")]))

        assert os.listdir(service.registry_file.parent) == ["registry.json"]

    def test_failed_save_keeps_previous_file(self, service):
        """Test a failed write leaves the old file and no temp file behind."""
        service.save(Registry([make_record("a")]))
        before = service.registry_file.read_bytes()

        with patch("git_workty.services.registry_service.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                service.save(Registry([make_record("b")]))

        assert service.registry_file.read_bytes() == before
        assert os.listdir(service.registry_file.parent) == ["registry.json"]
