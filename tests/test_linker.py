"""Tests for linking a working directory to external storage."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from udo.errors import NotLinkedError
from udo.linker import (
    MARKER_FILENAME, MIGRATABLE_DIRS, MIGRATABLE_FILES, STORAGE_DIRS, LinkResolver,
)
from udo.models import Priority, ProjectState
from udo.registry import ProjectRegistry
from udo.state import StateStore, save_state
from udo.templates import get_templates


class TestHasLink:

    def test_no_marker(self, resolver, work_dir):
        assert resolver.has_link(work_dir) is False

    def test_marker_present(self, resolver, work_dir):
        (work_dir / MARKER_FILENAME).write_text("{}")
        assert resolver.has_link(work_dir) is True

    def test_existing_files(self, resolver, work_dir):
        assert resolver.has_existing_files(work_dir) is False
        (work_dir / "ORCHESTRATOR.md").write_text("# x")
        assert resolver.has_existing_files(work_dir) is True


class TestInitialize:

    def test_creates_skeleton_and_templates(self, linked_project):
        storage = Path(linked_project.storage_path)
        for rel in STORAGE_DIRS:
            assert (storage / rel).is_dir(), rel
        for rel in get_templates():
            assert (storage / rel).is_file(), rel

    def test_storage_under_projects_dir(self, linked_project, global_dir):
        storage = Path(linked_project.storage_path)
        assert storage.parent == global_dir / "projects"
        assert storage.name.startswith("my-project-")

    def test_writes_marker(self, linked_project, work_dir):
        marker = json.loads((work_dir / MARKER_FILENAME).read_text())
        assert marker["storagePath"] == linked_project.storage_path
        assert "createdAt" in marker
        assert "migratedFrom" not in marker
        assert "inProject" not in marker

    def test_registers_index_entry(self, linked_project, global_dir, work_dir):
        data = json.loads((global_dir / "index.json").read_text())
        entry = data["projects"][str(work_dir)]
        assert entry["storageId"] == Path(linked_project.storage_path).name
        assert entry["name"] == "My Project"

    def test_returns_loaded_project(self, linked_project, work_dir):
        assert linked_project.project_path == str(work_dir)
        assert linked_project.name == "My Project"
        assert linked_project.state.phase == "initialized"
        assert linked_project.state.notes.startswith("Project initialized")

    def test_creates_gitignore(self, linked_project, work_dir):
        content = (work_dir / ".gitignore").read_text()
        assert content == "# UDO link file\n.udo-link\n"

    def test_appends_to_existing_gitignore(self, resolver, work_dir):
        (work_dir / ".gitignore").write_text("node_modules/\n")
        resolver.initialize(work_dir)
        content = (work_dir / ".gitignore").read_text()
        assert content.startswith("node_modules/\n")
        assert content.count(".udo-link") == 1

    def test_gitignore_not_duplicated(self, resolver, work_dir):
        (work_dir / ".gitignore").write_text("*.pyc\n.udo-link\n")
        resolver.initialize(work_dir)
        assert (work_dir / ".gitignore").read_text() == "*.pyc\n.udo-link\n"

    def test_twice_gives_distinct_storage(self, resolver, work_dir):
        first = resolver.initialize(work_dir)
        second = resolver.initialize(work_dir)
        assert first.storage_path != second.storage_path
        assert Path(first.storage_path).is_dir()
        assert Path(second.storage_path).is_dir()
        assert (work_dir / ".gitignore").read_text().count(".udo-link") == 1


class TestMigrate:

    def test_moves_known_entries_only(self, resolver, work_dir):
        (work_dir / "ORCHESTRATOR.md").write_text("# Orchestrator")
        (work_dir / "PROJECT_STATE.json").write_text(json.dumps({"goal": "Migrated goal"}))
        (work_dir / ".project-catalog" / "sessions").mkdir(parents=True)
        (work_dir / ".project-catalog" / "sessions" / "2026-01-01-10-00-handoff.md").write_text("x")
        (work_dir / "NOTES.md").write_text("keep me")

        project = resolver.migrate(work_dir)
        storage = Path(project.storage_path)

        assert (storage / "ORCHESTRATOR.md").read_text() == "# Orchestrator"
        assert (storage / ".project-catalog" / "sessions" / "2026-01-01-10-00-handoff.md").exists()
        assert not (work_dir / "ORCHESTRATOR.md").exists()
        assert not (work_dir / ".project-catalog").exists()
        assert (work_dir / "NOTES.md").read_text() == "keep me"
        assert (work_dir / "main.py").exists()
        assert project.state.goal == "Migrated goal"

    def test_marker_records_origin(self, resolver, work_dir):
        resolver.migrate(work_dir)
        marker = json.loads((work_dir / MARKER_FILENAME).read_text())
        assert marker["migratedFrom"] == "in-project"

    def test_registers_and_ignores(self, resolver, work_dir, registry):
        resolver.migrate(work_dir)
        assert registry.get(str(work_dir)) is not None
        assert ".udo-link" in (work_dir / ".gitignore").read_text()

    def test_allow_list_is_fixed(self):
        assert len(MIGRATABLE_FILES) == 11
        assert len(MIGRATABLE_DIRS) == 9


class TestLinkInPlace:

    def test_storage_is_working_dir(self, resolver, work_dir):
        (work_dir / "PROJECT_STATE.json").write_text(json.dumps({"phase": "build"}))
        project = resolver.link_in_place(work_dir)
        assert project.storage_path == str(work_dir)
        assert project.state.phase == "build"
        assert (work_dir / "PROJECT_STATE.json").exists()

    def test_marker_and_index(self, resolver, work_dir, registry):
        resolver.link_in_place(work_dir)
        marker = json.loads((work_dir / MARKER_FILENAME).read_text())
        assert marker["inProject"] is True
        storage_id = registry.get(str(work_dir)).storage_id
        assert storage_id.startswith("my-project-inproject-")

    def test_same_basename_gets_distinct_ids(self, resolver, registry, tmp_path):
        first = tmp_path / "one" / "app"
        second = tmp_path / "two" / "app"
        first.mkdir(parents=True)
        second.mkdir(parents=True)

        resolver.link_in_place(first)
        resolver.link_in_place(second)

        ids = [e.storage_id for e in registry.entries().values()]
        assert len(ids) == 2
        assert len(set(ids)) == 2
        assert all(i.startswith("app-inproject-") for i in ids)

    def test_no_lock_files_left_in_working_tree(self, resolver, work_dir):
        project = resolver.link_in_place(work_dir)
        save_state(project, ProjectState(goal="Ship"))
        StateStore(project.storage_path).append_lesson("Tabs", "Use tabs", Priority.LOW)
        assert list(work_dir.glob("*.lock")) == []


class TestLoad:

    def test_missing_marker_raises(self, resolver, work_dir):
        with pytest.raises(NotLinkedError):
            resolver.load(work_dir)

    def test_corrupt_marker_raises(self, resolver, work_dir):
        (work_dir / MARKER_FILENAME).write_text("not json")
        with pytest.raises(NotLinkedError):
            resolver.load(work_dir)

    def test_updates_last_access(self, resolver, linked_project, work_dir, global_dir):
        later = datetime(2030, 1, 1, tzinfo=timezone.utc)
        resolver.load(work_dir, now=later)
        fresh = ProjectRegistry(global_dir).load()
        assert fresh.get(str(work_dir)).last_accessed_at == later.isoformat()

    def test_corrupt_state_gives_default(self, resolver, linked_project, work_dir):
        state_path = Path(linked_project.storage_path) / "PROJECT_STATE.json"
        state_path.write_text("{broken")
        project = resolver.load(work_dir)
        assert project.state.phase == "initialized"
        assert project.state.todos == []
        assert state_path.read_text() == "{broken"

    def test_missing_state_gives_default(self, resolver, linked_project, work_dir):
        (Path(linked_project.storage_path) / "PROJECT_STATE.json").unlink()
        assert resolver.load(work_dir).state.phase == "initialized"

    def test_unregistered_link_still_loads(self, global_dir, work_dir, tmp_path):
        storage = tmp_path / "elsewhere"
        storage.mkdir()
        (work_dir / MARKER_FILENAME).write_text(json.dumps({"storagePath": str(storage)}))
        resolver = LinkResolver(ProjectRegistry(global_dir).load())
        project = resolver.load(work_dir)
        assert project.storage_path == str(storage)
        assert not (global_dir / "index.json").exists()

    def test_session_start_is_load_time(self, resolver, linked_project, work_dir):
        when = datetime(2030, 5, 5, 12, 0, tzinfo=timezone.utc)
        assert resolver.load(work_dir, now=when).session_start == when
