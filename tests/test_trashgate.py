"""
Tests for TrashGate soft delete, restore, listing and emptying.
"""

import json
import os
import shutil
from pathlib import Path

import pytest

from filekeep.FileSystemGate import PathSecurityError
from filekeep.TrashGate import (
    EntryBusy,
    MetadataCorrupt,
    MetadataNotFound,
    NotFound,
    RestoreConflict,
    StagingConflict,
    TrashIOError,
    TrashService,
    UnsafeNameError,
)
from filekeep.TrashGate import codec, recovery
from filekeep.TrashGate.models import TrashEntry

from conftest import BASE_NS, BASE_TIME


def staging_names(service):
    return sorted(os.listdir(service.staging_dir))


class TestInitialization:
    """Tests for TrashService setup."""

    def test_initialize_creates_staging_dir(self, settings, sandbox):
        """Should create the trash folder under the root."""
        service = TrashService(settings)

        assert service.initialize() is True
        assert (sandbox / ".trash").is_dir()

    def test_custom_trash_folder(self, sandbox):
        """Should honour a configured trash folder name."""
        from filekeep.TrashGate import TrashSettings

        service = TrashService(TrashSettings(root=str(sandbox), trash_folder=".bin"))
        service.initialize()

        assert (sandbox / ".bin").is_dir()

    def test_health_after_initialize(self, service):
        """Initialized service with a staging dir is healthy."""
        status = service.get_health_status()

        assert status["gate"] == "TrashGate"
        assert status["healthy"] is True
        assert status["checks"]["staging_dir"] is True


class TestSoftDelete:
    """Tests for moving items into the trash."""

    def test_moves_file_and_writes_sidecar(self, service, sandbox):
        """Should stage the content and record where it came from."""
        entry = service.soft_delete("docs/report.txt")

        assert entry.staged_name == f"report.txt_{BASE_NS}"
        assert entry.original_path == "docs/report.txt"
        assert entry.deleted_at == BASE_TIME
        assert not (sandbox / "docs" / "report.txt").exists()
        assert staging_names(service) == [entry.staged_name, entry.staged_name + ".json"]

    def test_sidecar_format(self, service):
        """Sidecar JSON uses original_path, deleted_at and filename keys."""
        entry = service.soft_delete("docs/report.txt")

        data = json.loads((service.staging_dir / f"{entry.staged_name}.json").read_text())

        assert data["original_path"] == "docs/report.txt"
        assert data["filename"] == entry.staged_name
        assert data["deleted_at"].startswith("2023-11-14T22:13:20")
        assert data["size_bytes"] == len("quarterly numbers")

    def test_leading_slash_is_relative_to_root(self, service, sandbox):
        """'/notes.txt' names the file under the root."""
        entry = service.soft_delete("/notes.txt")

        assert entry.original_path == "notes.txt"
        assert not (sandbox / "notes.txt").exists()

    def test_directory(self, service, sandbox):
        """Should trash whole directories."""
        entry = service.soft_delete("photos")

        assert entry.is_directory is True
        assert entry.size_bytes == 67
        assert (service.staging_dir / entry.staged_name / "2023" / "beach.jpg").exists()
        assert not (sandbox / "photos").exists()

    def test_missing_path(self, service):
        """Should raise NotFound for nonexistent paths."""
        with pytest.raises(NotFound):
            service.soft_delete("docs/missing.txt")

    @pytest.mark.parametrize("path", ["../outside.txt", "docs/../../etc/passwd"])
    def test_traversal_rejected(self, service, path):
        """Paths escaping the root are rejected."""
        with pytest.raises(PathSecurityError):
            service.soft_delete(path)

    @pytest.mark.parametrize("path", ["", "/", "."])
    def test_root_rejected(self, service, path):
        """The sandbox root itself cannot be trashed."""
        with pytest.raises(PathSecurityError):
            service.soft_delete(path)

    def test_trash_itself_rejected(self, service):
        """The staging directory and its contents cannot be trashed."""
        entry = service.soft_delete("notes.txt")

        with pytest.raises(PathSecurityError):
            service.soft_delete(".trash")
        with pytest.raises(PathSecurityError):
            service.soft_delete(f".trash/{entry.staged_name}")

    def test_staged_name_collision(self, settings, sandbox):
        """A colliding staged name is rejected and nothing moves."""
        service = TrashService(settings, clock_ns=lambda: BASE_NS)
        service.initialize()
        first = service.soft_delete("docs/report.txt")
        (sandbox / "report.txt").write_text("second copy")

        with pytest.raises(StagingConflict):
            service.soft_delete("report.txt")

        assert (sandbox / "report.txt").read_text() == "second copy"
        assert service.get_entry(first.staged_name).original_path == "docs/report.txt"
        assert (service.staging_dir / first.staged_name).read_text() == "quarterly numbers"

    def test_failed_move_leaves_no_metadata(self, service, sandbox, monkeypatch):
        """If the content cannot move, the pending sidecar is discarded."""
        def boom(src, dst):
            raise OSError("device busy")

        monkeypatch.setattr("filekeep.TrashGate.relocator.move_path", boom)

        with pytest.raises(TrashIOError):
            service.soft_delete("notes.txt")

        assert (sandbox / "notes.txt").exists()
        assert staging_names(service) == []

    def test_failed_commit_rolls_back(self, service, sandbox, monkeypatch):
        """If the sidecar cannot be committed, the content goes back."""
        def fail_commit(staging_dir, staged_name):
            raise TrashIOError("read-only filesystem")

        monkeypatch.setattr(codec, "commit", fail_commit)

        with pytest.raises(TrashIOError):
            service.soft_delete("notes.txt")

        assert (sandbox / "notes.txt").read_text() == "remember the milk"
        assert staging_names(service) == []


class TestRestore:
    """Tests for restoring trashed items."""

    def test_round_trip(self, service, sandbox):
        """Restore puts the content back and removes the sidecar."""
        entry = service.soft_delete("docs/report.txt")

        restored = service.restore(entry.staged_name)

        assert restored == "docs/report.txt"
        assert (sandbox / "docs" / "report.txt").read_text() == "quarterly numbers"
        assert staging_names(service) == []

    def test_recreates_missing_parent(self, service, sandbox):
        """Restore recreates the original parent directory."""
        entry = service.soft_delete("docs/report.txt")
        shutil.rmtree(sandbox / "docs")

        service.restore(entry.staged_name)

        assert (sandbox / "docs" / "report.txt").exists()

    def test_directory_round_trip(self, service, sandbox):
        entry = service.soft_delete("photos")

        service.restore(entry.staged_name)

        assert (sandbox / "photos" / "2023" / "beach.jpg").exists()

    def test_conflict_rejected_by_default(self, service, sandbox):
        """An occupied destination is left alone and the entry stays trashed."""
        entry = service.soft_delete("notes.txt")
        (sandbox / "notes.txt").write_text("new notes")

        with pytest.raises(RestoreConflict):
            service.restore(entry.staged_name)

        assert (sandbox / "notes.txt").read_text() == "new notes"
        assert [e.staged_name for e in service.list_trash()] == [entry.staged_name]

    def test_conflict_rename(self, service, sandbox):
        """on_conflict='rename' restores beside the occupying file."""
        first = service.soft_delete("notes.txt")
        (sandbox / "notes.txt").write_text("new notes")
        (sandbox / "notes (restored).txt").write_text("older restore")

        restored = service.restore(first.staged_name, on_conflict="rename")

        assert restored == "notes (restored 2).txt"
        assert (sandbox / restored).read_text() == "remember the milk"
        assert (sandbox / "notes.txt").read_text() == "new notes"

    def test_unknown_policy(self, service):
        entry = service.soft_delete("notes.txt")

        with pytest.raises(ValueError):
            service.restore(entry.staged_name, on_conflict="overwrite")

    @pytest.mark.parametrize(
        "name", ["", ".", "..", "../notes.txt", "a/b", "a\\b", "x\x00y", "notes.txt_1.json", "x.json.pending"]
    )
    def test_unsafe_names(self, service, name):
        """Names that could leave the staging directory are rejected."""
        with pytest.raises(UnsafeNameError):
            service.restore(name)

    def test_missing_metadata(self, service):
        with pytest.raises(MetadataNotFound):
            service.restore("ghost.txt_123")

    def test_corrupt_metadata(self, service):
        """Corrupt sidecars fail the restore and leave content staged."""
        entry = service.soft_delete("notes.txt")
        (service.staging_dir / f"{entry.staged_name}.json").write_text("{not json")

        with pytest.raises(MetadataCorrupt):
            service.restore(entry.staged_name)

        assert (service.staging_dir / entry.staged_name).exists()

    def test_missing_content(self, service):
        """A sidecar without content is NotFound."""
        entry = service.soft_delete("notes.txt")
        os.remove(service.staging_dir / entry.staged_name)

        with pytest.raises(NotFound):
            service.restore(entry.staged_name)

    def test_sidecar_pointing_outside_root(self, service, sandbox):
        """A tampered sidecar cannot restore outside the sandbox."""
        entry = service.soft_delete("notes.txt")
        sidecar = service.staging_dir / f"{entry.staged_name}.json"
        data = json.loads(sidecar.read_text())
        data["original_path"] = "../escaped.txt"
        sidecar.write_text(json.dumps(data))

        with pytest.raises(PathSecurityError):
            service.restore(entry.staged_name)

        assert not (sandbox.parent / "escaped.txt").exists()

    def test_busy_entry(self, service):
        """An entry held by another operation raises EntryBusy."""
        entry = service.soft_delete("notes.txt")
        assert service.locks.try_acquire(entry.staged_name)

        try:
            with pytest.raises(EntryBusy):
                service.restore(entry.staged_name)
        finally:
            service.locks.release(entry.staged_name)

        assert service.restore(entry.staged_name) == "notes.txt"

    def test_failed_move_keeps_sidecar(self, service, monkeypatch):
        """If the move back fails the entry can be retried."""
        entry = service.soft_delete("notes.txt")

        def boom(src, dst):
            raise OSError("device busy")

        monkeypatch.setattr("filekeep.TrashGate.relocator.move_path", boom)

        with pytest.raises(TrashIOError):
            service.restore(entry.staged_name)

        assert (service.staging_dir / f"{entry.staged_name}.json").exists()
        monkeypatch.undo()
        assert service.restore(entry.staged_name) == "notes.txt"


class TestInventory:
    """Tests for listing and scanning the trash."""

    def test_list_trash(self, service):
        service.soft_delete("notes.txt")
        service.soft_delete("docs/report.txt")

        entries = service.list_trash()

        assert sorted(e.original_path for e in entries) == ["docs/report.txt", "notes.txt"]

    def test_list_empty(self, service):
        assert service.list_trash() == []

    def test_list_skips_corrupt(self, service):
        """Corrupt sidecars are left out of the listing."""
        good = service.soft_delete("notes.txt")
        bad = service.soft_delete("docs/report.txt")
        (service.staging_dir / f"{bad.staged_name}.json").write_text("[]")

        assert [e.staged_name for e in service.list_trash()] == [good.staged_name]

    def test_list_ignores_pending(self, service):
        """In-flight soft-deletes are not listed."""
        entry = TrashEntry(original_path="x.txt", deleted_at=BASE_TIME, staged_name="x.txt_1")
        codec.write_pending(service.staging_dir, entry)

        assert service.list_trash() == []

    def test_scan_reports_problems(self, service):
        """Scan names corrupt sidecars and orphans on both sides."""
        good = service.soft_delete("notes.txt")
        corrupt = service.soft_delete("docs/report.txt")
        (service.staging_dir / f"{corrupt.staged_name}.json").write_text("garbage")
        orphan = service.soft_delete("photos")
        shutil.rmtree(service.staging_dir / orphan.staged_name)
        (service.staging_dir / "stray.bin_42").write_bytes(b"x")

        result = service.scan()

        assert [e.staged_name for e in result.entries] == [good.staged_name]
        assert result.corrupt == [f"{corrupt.staged_name}.json"]
        assert result.orphan_metadata == [f"{orphan.staged_name}.json"]
        assert result.orphan_content == ["stray.bin_42"]
        assert result.clean is False

    def test_scan_clean(self, service):
        service.soft_delete("notes.txt")

        assert service.scan().clean is True

    def test_legacy_camel_case_sidecar(self, service):
        """Sidecars written with camelCase keys are still read."""
        (service.staging_dir / "old.txt_5").write_text("legacy")
        (service.staging_dir / "old.txt_5.json").write_text(json.dumps({
            "originalPath": "old.txt",
            "deletedAt": "2023-01-01T00:00:00Z",
            "filename": "old.txt_5",
        }))

        [entry] = service.list_trash()

        assert entry.original_path == "old.txt"
        assert entry.deleted_at.year == 2023
        assert service.restore("old.txt_5") == "old.txt"

    def test_stats(self, service):
        service.soft_delete("notes.txt")
        service.soft_delete("docs/report.txt")

        stats = service.get_stats()

        assert stats["entries"] == 2
        assert stats["total_bytes"] == len("remember the milk") + len("quarterly numbers")


class TestEmptyAll:
    """Tests for emptying the trash."""

    def test_empty_all(self, service):
        service.soft_delete("notes.txt")
        service.soft_delete("photos")

        removed = service.empty_all()

        assert removed == 2
        assert service.list_trash() == []
        assert service.staging_dir.is_dir()
        assert staging_names(service) == []

    def test_empty_waits_for_in_flight(self, service):
        """Emptying while an entry is held times out with EntryBusy."""
        entry = service.soft_delete("notes.txt")
        service.locks.try_acquire(entry.staged_name)

        with pytest.raises(EntryBusy):
            service.empty_all(timeout=0.05)

        service.locks.release(entry.staged_name)
        assert service.empty_all() == 1

    def test_soft_delete_while_emptying_is_busy(self, service, sandbox):
        """A soft-delete racing EmptyAll reports EntryBusy, not a name collision."""
        with service.locks.exclusive(timeout=1):
            with pytest.raises(EntryBusy):
                service.soft_delete("notes.txt")

        assert (sandbox / "notes.txt").exists()
        assert staging_names(service) == []


class TestDeletePermanently:
    """Tests for deletes that bypass the trash."""

    def test_file(self, service, sandbox):
        result = service.delete_permanently("notes.txt")

        assert result.success is True
        assert not (sandbox / "notes.txt").exists()
        assert service.list_trash() == []

    def test_directory(self, service, sandbox):
        service.delete_permanently("photos")

        assert not (sandbox / "photos").exists()

    def test_missing(self, service):
        with pytest.raises(NotFound):
            service.delete_permanently("nope.txt")

    @pytest.mark.parametrize("path", ["", "../x", ".trash", ".trash/anything"])
    def test_protected(self, service, path):
        """Root, trash and outside paths cannot be deleted."""
        with pytest.raises(PathSecurityError):
            service.delete_permanently(path)


class TestReconcile:
    """Tests for recovery of interrupted soft-deletes."""

    def test_commits_pending_with_content(self, service):
        entry = TrashEntry(original_path="lost.txt", deleted_at=BASE_TIME, staged_name="lost.txt_9")
        codec.write_pending(service.staging_dir, entry)
        (service.staging_dir / "lost.txt_9").write_text("moved before crash")

        counts = recovery.reconcile(service.staging_dir)

        assert counts["committed"] == 1
        assert service.get_entry("lost.txt_9").original_path == "lost.txt"

    def test_discards_pending_without_content(self, service):
        entry = TrashEntry(original_path="kept.txt", deleted_at=BASE_TIME, staged_name="kept.txt_9")
        codec.write_pending(service.staging_dir, entry)

        counts = recovery.reconcile(service.staging_dir)

        assert counts["discarded"] == 1
        assert staging_names(service) == []

    def test_runs_on_initialize(self, settings, sandbox):
        staging = Path(sandbox) / ".trash"
        staging.mkdir()
        entry = TrashEntry(original_path="a.txt", deleted_at=BASE_TIME, staged_name="a.txt_1")
        codec.write_pending(staging, entry)
        (staging / "a.txt_1").write_text("a")

        service = TrashService(settings)
        service.initialize()

        assert service.last_reconcile["committed"] == 1
        assert [e.staged_name for e in service.list_trash()] == ["a.txt_1"]
