"""Tests for the MCP tool functions, called directly."""

import json
from pathlib import Path

import pytest

from udo import mcp_server
from udo.sessions import SessionTracker


@pytest.fixture
def mcp_env(monkeypatch, udo_env, work_dir):
    monkeypatch.setenv("UDO_PROJECT_DIR", str(work_dir))
    monkeypatch.setattr(mcp_server, "_tracker", SessionTracker())
    return work_dir


@pytest.fixture
def linked(mcp_env, linked_project):
    return linked_project


class TestUnlinked:

    def test_context_placeholder(self, mcp_env):
        assert "No active project" in mcp_server.context()

    def test_tools_require_link(self, mcp_env):
        with pytest.raises(FileNotFoundError, match="Run 'udo init'"):
            mcp_server.status()


class TestTools:

    def test_context(self, linked):
        doc = mcp_server.context()
        assert doc.startswith("# UDO Active Context")
        assert f"**Project:** {linked.name}" in doc

    def test_status_compact(self, linked):
        out = mcp_server.status()
        assert "Phase:        initialized" in out
        assert "Session:      0m" in out
        assert "Saved:        no" in out

    def test_status_json(self, linked):
        data = json.loads(mcp_server.status(format="json"))
        assert data["project_name"] == linked.name
        assert data["circuit_breaker"] is False

    def test_update_and_get_state(self, linked):
        result = mcp_server.update_state(goal="Ship", phase="build")
        assert "phase='build'" in result
        data = json.loads(mcp_server.get_state())
        assert data["goal"] == "Ship"
        assert data["phase"] == "build"
        assert data["notes"].startswith("Project initialized")

    def test_sessions(self, linked, write_session):
        write_session("2024-01-01-09-00-handoff.md", tags="#api", summary="First")
        write_session("2024-01-02-09-00-handoff.md", tags="#ui", summary="Second")

        out = mcp_server.recent_sessions(count=1)
        assert "2024-01-02-09-00-handoff.md" in out
        assert "2024-01-01" not in out

        data = json.loads(mcp_server.search_sessions("API", format="json"))
        assert [s["filename"] for s in data] == ["2024-01-01-09-00-handoff.md"]

    def test_critical_lessons_empty(self, linked):
        assert mcp_server.critical_lessons() == "No critical or high-priority lessons."

    def test_auto_save_marks_handoff(self, linked):
        out = mcp_server.auto_save()
        path = Path(out.removeprefix("Auto-saved: "))
        assert path.exists()
        assert "Saved:        yes" in mcp_server.status()

    def test_handoff_path(self, linked):
        path = Path(mcp_server.handoff_path())
        assert path.name.endswith("-handoff.md")
        assert path.parent.is_dir()
        assert "Saved:        yes" in mcp_server.status()


class TestSessionLifecycle:

    def test_reminder_after_threshold(self, linked, monkeypatch):
        monkeypatch.setenv("UDO_REMINDER_MINUTES", "0")
        mcp_server._tracker.start_session()
        assert "Reminder: session running" in mcp_server.status()
        mcp_server.handoff_path()
        assert "Reminder" not in mcp_server.status()

    def test_no_reminder_before_threshold(self, linked):
        mcp_server._tracker.start_session()
        assert "Reminder" not in mcp_server.status()

    def test_close_without_handoff_auto_saves(self, linked):
        mcp_server._tracker.start_session()
        path = mcp_server._close_session(True)
        assert path is not None and path.name.endswith("-auto.md")
        assert not mcp_server._tracker.is_active

    def test_close_after_handoff_skips(self, linked):
        mcp_server._tracker.start_session()
        mcp_server.handoff_path()
        assert mcp_server._close_session(True) is None

    def test_close_with_auto_save_disabled(self, linked):
        mcp_server._tracker.start_session()
        assert mcp_server._close_session(False) is None

    def test_close_unlinked(self, mcp_env):
        assert mcp_server._close_session(True) is None

    def test_close_with_corrupt_marker(self, linked, caplog):
        (Path(linked.project_path) / ".udo-link").write_text("not json")
        mcp_server._tracker.start_session()
        with caplog.at_level("WARNING", logger="udo.mcp_server"):
            assert mcp_server._close_session(True) is None
        assert "Skipping auto-save on close" in caplog.text
