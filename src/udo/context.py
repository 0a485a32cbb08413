"""Builds the current-context document an AI reads before responding."""

import logging
from pathlib import Path

from udo.formatting import format_bullets
from udo.lessons import summarize_critical
from udo.models import Project
from udo.sessions import SessionLedger
from udo.state import StateStore

logger = logging.getLogger(__name__)

NO_LESSONS = "No critical or high-priority lessons."
NO_SESSION = "No recent session found."
NO_SUMMARY = "No summary available."

NO_PROJECT_CONTEXT = """# UDO Context

**Status:** No active project

No UDO project is currently loaded. To initialize UDO for a project:
1. Change into the project folder
2. Run: udo init
"""

BEFORE_RESPONDING = """## Before Responding

1. **Read HARD_STOPS.md** - These rules are ABSOLUTE, never violate
2. **Check PROJECT_STATE.json** - Current todos and status
3. **Review critical lessons below** - High-priority rules"""

ON_SESSION_END = """## On Session End

When user says "Handoff", "End session", or conversation ends:
1. Create session log in .project-catalog/sessions/
2. Include Tags: #topic1 #topic2 at the top
3. Update PROJECT_STATE.json
4. Confirm completion"""

QUICK_REFERENCE = """## Quick Reference

| Need | Location |
|------|----------|
| Absolute rules | HARD_STOPS.md |
| All commands | COMMANDS.md |
| Full instructions | ORCHESTRATOR.md |
| Project rules | .rules/ |
| Past sessions | .project-catalog/sessions/ |"""


class ContextSynthesizer:
    """Merges state, lessons and the latest session into one document."""

    def render(self, project: Project | None) -> str:
        if project is None:
            return NO_PROJECT_CONTEXT

        store = StateStore(project.storage_path)
        state = store.load()
        lessons = summarize_critical(store.read_lessons())
        recent = self._recent_session(project)

        sections = [
            "# UDO Active Context\n"
            f"\n**Project:** {project.name}"
            f"\n**UDO Path:** {project.storage_path}",
            BEFORE_RESPONDING,
            "## Current State\n"
            f"\n**Phase:** {state.phase or 'unknown'}"
            f"\n**Goal:** {state.goal or 'Not defined'}\n"
            f"\n### Todos\n{format_bullets(state.todos)}\n"
            f"\n### In Progress\n{format_bullets(state.in_progress)}\n"
            f"\n### Blockers\n{format_bullets(state.blockers, prefer_description=True)}",
            f"## Critical Lessons\n\n{lessons or NO_LESSONS}",
            f"## Recent Session\n\n{recent or NO_SESSION}",
            ON_SESSION_END,
            QUICK_REFERENCE,
        ]
        return "\n\n---\n\n".join(sections) + "\n"

    @staticmethod
    def _recent_session(project: Project) -> str | None:
        session = SessionLedger(project.storage_path).latest_session()
        if session is None:
            return None
        lines = [f"**Last Session:** {session.filename}"]
        if session.tag_line is not None:
            lines.append(f"**Tags:** {session.tag_line}")
        lines.append(session.summary or NO_SUMMARY)
        return "\n".join(lines)

    def write(self, project: Project | None, path: Path) -> Path:
        """Render and write the context file, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(project), encoding="utf-8")
        logger.info("Wrote context file %s", path)
        return path

    @staticmethod
    def clear(path: Path) -> bool:
        """Remove the context file. Returns False if it did not exist."""
        path = Path(path)
        if not path.exists():
            return False
        path.unlink()
        return True
