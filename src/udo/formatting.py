"""Output formatters for state lists, sessions, lessons and status."""

import json
from dataclasses import asdict
from datetime import timedelta

from udo.models import IndexEntry, Lesson, Project, Session, as_item, render_item

EMPTY_LIST = "None"


def format_bullets(values: list | None, prefer_description: bool = False) -> str:
    """Markdown bullets for a todo/blocker list; "None" when empty."""
    if not values:
        return EMPTY_LIST
    return "\n".join(
        f"- {render_item(as_item(v), prefer_description)}" for v in values
    )


def format_duration(delta: timedelta) -> str:
    """'1h 5m' or '12m'."""
    minutes = max(int(delta.total_seconds()) // 60, 0)
    hours, remaining = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {remaining}m"
    return f"{minutes}m"


def format_session_compact(session: Session) -> str:
    tags = f" [{session.tag_line}]" if session.tag_line else ""
    summary = ""
    if session.summary:
        first_line = session.summary.splitlines()[0]
        summary = f" — {first_line[:80]}"
    return f"{session.filename}{tags}{summary}"


def format_sessions_compact(sessions: list[Session]) -> str:
    if not sessions:
        return "(no sessions)"
    return "\n".join(format_session_compact(s) for s in sessions)


def format_sessions_json(sessions: list[Session]) -> str:
    data = []
    for s in sessions:
        d = asdict(s)
        d["date"] = s.date.isoformat() if s.date else None
        data.append(d)
    return json.dumps(data, indent=2)


def format_lesson_compact(lesson: Lesson) -> str:
    rule = f" — {lesson.rule}" if lesson.rule else ""
    return f"[{lesson.priority.upper()}] {lesson.id}: {lesson.title}{rule}"


def format_lessons_compact(lessons: list[Lesson]) -> str:
    if not lessons:
        return "(no lessons)"
    return "\n".join(format_lesson_compact(lesson) for lesson in lessons)


def format_projects_compact(entries: dict[str, IndexEntry]) -> str:
    if not entries:
        return "(no linked projects)"
    lines = []
    for path, entry in sorted(entries.items()):
        lines.append(
            f"{entry.storage_id}  {path}  (last access {entry.last_accessed_at[:16].replace('T', ' ')})"
        )
    return "\n".join(lines)


def status_data(project: Project, dangling: list[str] | None = None,
                meta: dict | None = None) -> dict:
    state = project.state
    meta = meta or {}
    tags = meta.get("tags")
    return {
        "project_name": project.name,
        "description": str(meta.get("description") or ""),
        "tags": [str(t) for t in tags] if isinstance(tags, list) else [],
        "project_path": project.project_path,
        "storage_path": project.storage_path,
        "phase": state.phase,
        "goal": state.goal,
        "todos": len(state.todos),
        "in_progress": len(state.in_progress),
        "completed": len(state.completed),
        "blockers": len(state.blockers),
        "circuit_breaker": state.breaker_tripped,
        "dangling_blocker_refs": dangling or [],
    }


def format_status_compact(project: Project, dangling: list[str] | None = None,
                          duration: str | None = None,
                          handoff_saved: bool | None = None,
                          meta: dict | None = None) -> str:
    data = status_data(project, dangling, meta)
    lines = [
        f"Project:      {data['project_name']}",
    ]
    if data["description"]:
        lines.append(f"About:        {data['description']}")
    if data["tags"]:
        lines.append("Tags:         " + " ".join(f"#{t}" for t in data["tags"]))
    lines += [
        f"Storage:      {data['storage_path']}",
        f"Phase:        {data['phase']}",
        f"Goal:         {data['goal'] or 'Not defined'}",
        f"Todos:        {data['todos']} ({data['in_progress']} in progress, "
        f"{data['completed']} completed)",
        f"Blockers:     {data['blockers']}",
    ]
    if duration is not None:
        lines.append(f"Session:      {duration}")
    if handoff_saved is not None:
        lines.append(
            "Saved:        " + ("yes" if handoff_saved else "no - consider running a handoff")
        )
    if data["circuit_breaker"]:
        reason = project.state.circuit_breaker.get("reason") or "no reason given"
        lines.append(f"CIRCUIT BREAKER TRIPPED: {reason}")
    if dangling:
        lines.append(f"Warning: blockers reference unknown todos: {', '.join(dangling)}")
    return "\n".join(lines)


def format_status_json(project: Project, dangling: list[str] | None = None,
                       meta: dict | None = None) -> str:
    return json.dumps(status_data(project, dangling, meta), indent=2)
