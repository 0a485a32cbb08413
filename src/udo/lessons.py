"""Lesson extraction from LESSONS_LEARNED.md.

The document is a run of blocks headed ``### L<n>: <title>``, each carrying
``**Priority**: <level>`` and ``**Rule**: <text>`` lines, optionally
followed by a ``## Archived`` section that is never read as lessons.
"""

import re
from dataclasses import dataclass

from udo.models import Lesson, Priority

ARCHIVE_MARKER = "## Archived"

_LESSON_HEADER = re.compile(r"^### (L\d+): (.+?)\s*$")
_PRIORITY = re.compile(r"\*\*Priority\*\*: (\w+)")
_RULE = re.compile(r"\*\*Rule\*\*: (.+)")
_FIELDS = {
    "scope": re.compile(r"\*\*Scope\*\*: (.+)"),
    "context": re.compile(r"\*\*Context\*\*: (.+)"),
    "date": re.compile(r"\*\*Date\*\*: (.+)"),
}

# Exact, case-sensitive tokens that put a lesson in the critical summary
_INCLUDE_MARKERS = ("Priority**: critical", "Priority**: high")


@dataclass
class LessonBlock:
    id: str
    title: str
    body: str


@dataclass
class ArchiveMarker:
    text: str


@dataclass
class Unrecognized:
    text: str


Block = LessonBlock | ArchiveMarker | Unrecognized


def parse_blocks(text: str) -> list[Block]:
    """Split a lessons document into typed blocks, in document order.

    Only ``### L<n>: title`` lines open a lesson; other headers (``###
    Notes``, ``#### Example``) stay in the current block's body. Headers
    inside HTML comments are ignored. Everything from the archive marker
    on is a single ArchiveMarker block.
    """
    blocks: list[Block] = []
    current: LessonBlock | None = None
    body: list[str] = []
    loose: list[str] = []
    in_comment = False

    def close_current():
        nonlocal current, body
        if current is not None:
            current.body = "\n".join(body)
            blocks.append(current)
        current = None
        body = []

    def close_loose():
        nonlocal loose
        if loose and any(line.strip() for line in loose):
            blocks.append(Unrecognized("\n".join(loose)))
        loose = []

    lines = text.splitlines()
    for i, line in enumerate(lines):
        if not in_comment:
            if line.startswith(ARCHIVE_MARKER):
                close_current()
                close_loose()
                blocks.append(ArchiveMarker("\n".join(lines[i:])))
                return blocks

            match = _LESSON_HEADER.match(line)
            if match:
                close_current()
                close_loose()
                current = LessonBlock(id=match.group(1), title=match.group(2), body="")
                continue

        if "<!--" in line and "-->" not in line.split("<!--", 1)[1]:
            in_comment = True
        elif in_comment and "-->" in line:
            in_comment = False

        if current is not None:
            body.append(line)
        else:
            loose.append(line)

    close_current()
    close_loose()
    return blocks


def parse_lesson(block: LessonBlock) -> Lesson:
    priority = _PRIORITY.search(block.body)
    rule = _RULE.search(block.body)
    lesson = Lesson(
        id=block.id,
        title=block.title,
        priority=priority.group(1) if priority else "unknown",
        rule=rule.group(1).strip() if rule else "",
    )
    for name, pattern in _FIELDS.items():
        match = pattern.search(block.body)
        if match:
            setattr(lesson, name, match.group(1).strip())
    return lesson


def lessons(text: str) -> list[Lesson]:
    """All active lessons, in document order."""
    return [parse_lesson(b) for b in parse_blocks(text) if isinstance(b, LessonBlock)]


def critical_lessons(text: str) -> list[Lesson]:
    """Lessons explicitly marked critical or high, in document order."""
    return [
        parse_lesson(b)
        for b in parse_blocks(text)
        if isinstance(b, LessonBlock) and any(m in b.body for m in _INCLUDE_MARKERS)
    ]


def format_lesson_summary(lesson: Lesson) -> str:
    return f"- **[{lesson.priority.upper()}] {lesson.id}: {lesson.title}**\n  {lesson.rule}"


def summarize_critical(text: str) -> str | None:
    """Render the critical/high lessons, or None when there are none."""
    selected = critical_lessons(text)
    if not selected:
        return None
    return "\n\n".join(format_lesson_summary(lesson) for lesson in selected)


def format_lesson_entry(lesson_id: str, title: str, rule: str,
                        priority: Priority) -> str:
    """A new lesson block in document format."""
    return (
        f"### {lesson_id}: {title}\n"
        f"- **Priority**: {priority.value}\n"
        f"- **Rule**: {rule}\n"
    )
