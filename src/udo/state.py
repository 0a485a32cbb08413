"""Structured project record and its companion documents."""

import logging
import re
from pathlib import Path

from udo.fileio import atomic_write_text, file_lock, read_json, read_text, write_json
from udo.lessons import (
    ARCHIVE_MARKER, ArchiveMarker, LessonBlock, format_lesson_entry, parse_blocks,
)
from udo.models import Priority, Project, ProjectState

logger = logging.getLogger(__name__)

STATE_FILENAME = "PROJECT_STATE.json"
META_FILENAME = "PROJECT_META.json"
LESSONS_FILENAME = "LESSONS_LEARNED.md"
HARD_STOPS_FILENAME = "HARD_STOPS.md"

_ARCHIVE_LINE = re.compile(r"^" + re.escape(ARCHIVE_MARKER), re.MULTILINE)
_ARCHIVED_NUMBER = re.compile(r"^\|\s*L(\d+)\b", re.MULTILINE)


class StateStore:
    """Reads and writes PROJECT_STATE.json for one storage path."""

    def __init__(self, storage_path: Path | str):
        self.storage_path = Path(storage_path)

    @property
    def state_path(self) -> Path:
        return self.storage_path / STATE_FILENAME

    @property
    def lessons_path(self) -> Path:
        return self.storage_path / LESSONS_FILENAME

    def load(self) -> ProjectState:
        """Read the state record, falling back to the default skeleton."""
        data = read_json(self.state_path)
        if data is None:
            return ProjectState()
        return ProjectState.from_dict(data)

    def save(self, state: ProjectState) -> None:
        """Replace the whole record. No merging with what is on disk."""
        write_json(self.state_path, state.to_dict())

    def read_lessons(self) -> str:
        return read_text(self.lessons_path)

    def read_hard_stops(self) -> str:
        return read_text(self.storage_path / HARD_STOPS_FILENAME)

    def read_meta(self) -> dict:
        data = read_json(self.storage_path / META_FILENAME)
        return data if isinstance(data, dict) else {}

    def append_lesson(self, title: str, rule: str, priority: Priority) -> str:
        """Append a new lesson block ahead of the archive section.

        Existing blocks are never rewritten. Returns the new lesson id.
        """
        with file_lock(self.lessons_path):
            text = self.read_lessons()
            numbers = _used_lesson_numbers(text)
            lesson_id = f"L{max(numbers, default=0) + 1:03d}"
            entry = format_lesson_entry(lesson_id, title, rule, priority)

            archive = _ARCHIVE_LINE.search(text)
            if archive is None:
                body = text.rstrip("\n")
                text = (body + "\n\n" if body else "") + entry
            else:
                idx = archive.start()
                head = text[:idx].rstrip("\n")
                text = head + "\n\n" + entry + "\n" + text[idx:]
            atomic_write_text(self.lessons_path, text)

        logger.info("Added lesson %s to %s", lesson_id, self.lessons_path)
        return lesson_id


def _used_lesson_numbers(text: str) -> list[int]:
    """Numbers of active lesson headers and archived table rows."""
    numbers: list[int] = []
    for block in parse_blocks(text):
        if isinstance(block, LessonBlock):
            numbers.append(int(block.id[1:]))
        elif isinstance(block, ArchiveMarker):
            numbers.extend(int(n) for n in _ARCHIVED_NUMBER.findall(block.text))
    return numbers


def save_state(project: Project, state: ProjectState) -> None:
    """Persist ``state`` for ``project`` and update its in-memory snapshot."""
    StateStore(project.storage_path).save(state)
    project.state = state
    logger.debug("Saved state for %s", project.name)


def dangling_blocker_refs(state: ProjectState) -> list[str]:
    """Todo ids referenced by blockers that no todo or in-progress item carries.

    These are tolerated on save; callers may surface them as warnings.
    """
    known = {
        str(item["id"])
        for item in state.todos + state.in_progress
        if isinstance(item, dict) and "id" in item
    }
    dangling: list[str] = []
    for blocker in state.blockers:
        if not isinstance(blocker, dict):
            continue
        refs = blocker.get("blockedTodos") or []
        if not isinstance(refs, list):
            continue
        for ref in refs:
            ref = str(ref)
            if ref not in known and ref not in dangling:
                dangling.append(ref)
    return dangling
