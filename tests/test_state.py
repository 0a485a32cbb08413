"""Tests for the StateStore."""

import json
from pathlib import Path

from udo.models import Priority, ProjectState
from udo.state import StateStore, dangling_blocker_refs, save_state


class TestSaveLoad:

    def test_round_trip_through_disk(self, linked_project):
        state = ProjectState(
            goal="Ship v1", phase="build",
            todos=[{"id": "t1", "title": "Docs"}, {"id": "t2", "title": "Tests"}],
            blockers=[{"id": "b1", "description": "Need creds", "blockedTodos": ["t1"]}],
            circuit_breaker={"triggered": False, "reason": None, "timestamp": None},
        )
        save_state(linked_project, state)
        assert StateStore(linked_project.storage_path).load() == state

    def test_round_trip_empty_optionals(self, linked_project):
        state = ProjectState()
        save_state(linked_project, state)
        assert StateStore(linked_project.storage_path).load() == state

    def test_save_updates_snapshot(self, linked_project):
        state = ProjectState(goal="New goal")
        save_state(linked_project, state)
        assert linked_project.state is state

    def test_save_replaces_whole_record(self, linked_project):
        store = StateStore(linked_project.storage_path)
        save_state(linked_project, ProjectState(goal="A", todos=["x"]))
        save_state(linked_project, ProjectState(goal="B"))
        data = json.loads(store.state_path.read_text())
        assert data["goal"] == "B"
        assert data["todos"] == []
        assert "notes" not in data

    def test_load_empty_object(self, tmp_path):
        (tmp_path / "PROJECT_STATE.json").write_text("{}")
        state = StateStore(tmp_path).load()
        assert state.phase == "initialized"
        assert (state.todos, state.in_progress, state.completed, state.blockers) == ([], [], [], [])

    def test_unknown_keys_survive_save(self, tmp_path):
        (tmp_path / "PROJECT_STATE.json").write_text(json.dumps({"goal": "g", "x_custom": 5}))
        store = StateStore(tmp_path)
        store.save(store.load())
        assert json.loads(store.state_path.read_text())["x_custom"] == 5

    def test_no_temp_files_left(self, linked_project):
        save_state(linked_project, ProjectState(goal="clean"))
        leftovers = [p.name for p in Path(linked_project.storage_path).iterdir()
                     if p.name.endswith(".tmp")]
        assert leftovers == []


class TestDocuments:

    def test_missing_documents_are_empty(self, tmp_path):
        store = StateStore(tmp_path)
        assert store.read_lessons() == ""
        assert store.read_hard_stops() == ""
        assert store.read_meta() == {}

    def test_reads_raw_text(self, linked_project):
        store = StateStore(linked_project.storage_path)
        assert "Hard Stops" in store.read_hard_stops()
        assert "Lessons Learned" in store.read_lessons()
        assert store.read_meta()["tags"] == []


class TestAppendLesson:

    def test_first_lesson_goes_before_archive(self, linked_project):
        store = StateStore(linked_project.storage_path)
        lesson_id = store.append_lesson("No iframes", "Never embed iframes", Priority.CRITICAL)
        assert lesson_id == "L001"
        text = store.read_lessons()
        assert text.index("### L001: No iframes") < text.index("## Archived")
        assert "- **Priority**: critical" in text
        assert "- **Rule**: Never embed iframes" in text

    def test_numbers_increment(self, linked_project):
        store = StateStore(linked_project.storage_path)
        store.append_lesson("One", "r1", Priority.HIGH)
        assert store.append_lesson("Two", "r2", Priority.LOW) == "L002"

    def test_archived_numbers_are_not_reused(self, tmp_path):
        (tmp_path / "LESSONS_LEARNED.md").write_text(
            "# Lessons\n\n### L002: Active\n- **Priority**: low\n\n"
            "## Archived\n| ID | Title |\n|----|-------|\n| L007 | Old |\n"
        )
        assert StateStore(tmp_path).append_lesson("New", "r", Priority.NORMAL) == "L008"

    def test_creates_document_when_missing(self, tmp_path):
        store = StateStore(tmp_path)
        store.append_lesson("First", "rule", Priority.HIGH)
        assert store.read_lessons().startswith("### L001: First\n")


class TestDanglingBlockers:

    def test_known_refs(self):
        state = ProjectState(
            todos=[{"id": "t1", "title": "a"}],
            in_progress=[{"id": "t2", "title": "b"}],
            blockers=[{"id": "b1", "description": "x", "blockedTodos": ["t1", "t2"]}],
        )
        assert dangling_blocker_refs(state) == []

    def test_dangling_refs_reported_not_rejected(self, linked_project):
        state = ProjectState(
            todos=[{"id": "t1", "title": "a"}],
            blockers=[
                {"id": "b1", "description": "x", "blockedTodos": ["t1", "t9"]},
                {"id": "b2", "description": "y", "blockedTodos": ["t9"]},
                "plain string blocker",
            ],
        )
        assert dangling_blocker_refs(state) == ["t9"]
        save_state(linked_project, state)
        assert StateStore(linked_project.storage_path).load() == state
