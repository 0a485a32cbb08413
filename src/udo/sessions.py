"""Session log files and in-process session/handoff timing."""

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path

from udo.errors import NoProjectError
from udo.fileio import atomic_write_text, read_text
from udo.formatting import format_bullets, format_duration
from udo.models import Project, ProjectState, Session

logger = logging.getLogger(__name__)

SESSIONS_DIR = Path(".project-catalog") / "sessions"
SESSIONS_INDEX = "README.md"
AUTO_SUFFIX = "auto"
HANDOFF_SUFFIX = "handoff"
HANDOFF_WINDOW = timedelta(minutes=5)
SUMMARY_MAX_CHARS = 300

TAGS_PATTERN = re.compile(r"Tags: (.*)")
SUMMARY_PATTERN = re.compile(r"## Summary\n(.*?)(?=\n##|\Z)", re.DOTALL)
LLM_PATTERN = re.compile(r"^LLM: (.*)$", re.MULTILINE)
_FILENAME_DATE = re.compile(r"^(\d{4}-\d{2}-\d{2}-\d{2}-\d{2})")


def filename_stamp(when: datetime) -> str:
    """Zero-padded ``YYYY-MM-DD-HH-MM``; lexicographic order is chronological."""
    return when.strftime("%Y-%m-%d-%H-%M")


def session_filename(when: datetime, suffix: str) -> str:
    return f"{filename_stamp(when)}-{suffix}.md"


def parse_tags(tag_line: str) -> list[str]:
    return [t.lstrip("#") for t in tag_line.split() if t.lstrip("#")]


class SessionTracker:
    """In-memory session and handoff timing for one running process.

    inactive -> active on start_session(), active -> inactive on end_session().
    A handoff counts as recent while ``now - last_handoff < HANDOFF_WINDOW``.
    """

    def __init__(self, window: timedelta = HANDOFF_WINDOW):
        self.window = window
        self.session_start: datetime | None = None
        self.last_handoff: datetime | None = None
        self.active = False

    def start_session(self, now: datetime | None = None) -> None:
        self.session_start = now or datetime.now()
        self.active = True
        self.last_handoff = None

    def end_session(self) -> None:
        self.active = False

    @property
    def is_active(self) -> bool:
        return self.active

    def duration(self, now: datetime | None = None) -> timedelta:
        if self.session_start is None:
            return timedelta(0)
        return (now or datetime.now()) - self.session_start

    def duration_formatted(self, now: datetime | None = None) -> str:
        return format_duration(self.duration(now))

    def mark_handoff(self, now: datetime | None = None) -> None:
        self.last_handoff = now or datetime.now()

    def has_recent_handoff(self, now: datetime | None = None) -> bool:
        if self.last_handoff is None:
            return False
        return (now or datetime.now()) - self.last_handoff < self.window


class SessionLedger:
    """Lists, searches and appends session logs under a storage path."""

    def __init__(self, storage_path: Path | str, tracker: SessionTracker | None = None):
        self.storage_path = Path(storage_path)
        self.tracker = tracker or SessionTracker()

    @classmethod
    def for_project(cls, project: Project | None,
                    tracker: SessionTracker | None = None) -> "SessionLedger":
        if project is None:
            raise NoProjectError("No linked project; run 'udo init' first.")
        return cls(project.storage_path, tracker)

    @property
    def sessions_path(self) -> Path:
        return self.storage_path / SESSIONS_DIR

    def session_files(self) -> list[str]:
        if not self.sessions_path.is_dir():
            return []
        return [
            p.name for p in self.sessions_path.iterdir()
            if p.is_file() and p.suffix == ".md" and p.name != SESSIONS_INDEX
        ]

    def recent_sessions(self, count: int = 5) -> list[str]:
        """Newest first, by filename."""
        return sorted(self.session_files(), reverse=True)[:count]

    def search_by_tag(self, tag: str) -> list[str]:
        """Sessions whose Tags line contains ``tag`` (case-insensitive), newest first."""
        needle = tag.lower()
        results = []
        for name in self.session_files():
            content = read_text(self.sessions_path / name)
            match = TAGS_PATTERN.search(content)
            if match and needle in match.group(1).lower():
                results.append(name)
        return sorted(results, reverse=True)

    def read_session(self, filename: str) -> Session:
        content = read_text(self.sessions_path / filename)
        session = Session(filename=filename)

        tags = TAGS_PATTERN.search(content)
        if tags:
            session.tag_line = tags.group(1)
            session.tags = parse_tags(tags.group(1))

        summary = SUMMARY_PATTERN.search(content)
        if summary:
            session.summary = summary.group(1).strip()[:SUMMARY_MAX_CHARS]

        llm = LLM_PATTERN.search(content)
        if llm:
            session.llm = llm.group(1).strip()

        stamp = _FILENAME_DATE.match(filename)
        if stamp:
            try:
                session.date = datetime.strptime(stamp.group(1), "%Y-%m-%d-%H-%M")
            except ValueError:
                session.date = None
        return session

    def latest_session(self) -> Session | None:
        recent = self.recent_sessions(1)
        if not recent:
            return None
        return self.read_session(recent[0])

    def auto_save(self, project: Project, state: ProjectState | None = None,
                  session_start: datetime | None = None,
                  now: datetime | None = None) -> Path:
        """Write an unattended session save and mark the handoff."""
        now = now or datetime.now()
        state = state if state is not None else project.state
        if session_start is None:
            session_start = self.tracker.session_start

        self.sessions_path.mkdir(parents=True, exist_ok=True)
        path = self.sessions_path / session_filename(now, AUTO_SUFFIX)
        atomic_write_text(path, render_auto_save(state, session_start, now))

        self.tracker.mark_handoff(now)
        logger.info("Auto-saved session for %s to %s", project.name, path)
        return path

    def handoff_path(self, now: datetime | None = None) -> Path:
        """Where a manual handoff should be written. Marks the handoff."""
        now = now or datetime.now()
        self.sessions_path.mkdir(parents=True, exist_ok=True)
        self.tracker.mark_handoff(now)
        return self.sessions_path / session_filename(now, HANDOFF_SUFFIX)


def render_auto_save(state: ProjectState, session_start: datetime | None,
                     now: datetime) -> str:
    started = session_start.isoformat() if session_start else "Unknown"
    return f"""# Session: {filename_stamp(now)} [AUTO-GENERATED]

Tags: #auto-save

LLM: Unknown (auto-generated on close)
Started: {started}
Ended: {now.isoformat()}

## Summary

Auto-generated session save. Full handoff was not performed.

## State at Close

### Phase
{state.phase or 'Unknown'}

### Goal
{state.goal or 'Not defined'}

### Todos
{format_bullets(state.todos)}

### In Progress
{format_bullets(state.in_progress)}

### Blockers
{format_bullets(state.blockers)}

## Next Session Should

1. Review this auto-save
2. Verify state is accurate
3. Continue from PROJECT_STATE.json todos

## Note

This save was generated because the session closed without a manual handoff.
Run "Deep resume" to fully reconstruct context.
"""
