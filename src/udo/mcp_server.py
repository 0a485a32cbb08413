"""UDO MCP server — exposes project memory tools to AI clients."""

import json
import logging
import os
import sys
from datetime import timedelta
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from udo.config import load_config
from udo.context import ContextSynthesizer
from udo.errors import UdoError
from udo.formatting import (
    format_duration, format_sessions_compact, format_sessions_json,
    format_status_compact, format_status_json,
)
from udo.lessons import summarize_critical
from udo.linker import LinkResolver
from udo.models import Project
from udo.registry import ProjectRegistry
from udo.sessions import SessionLedger, SessionTracker
from udo.state import StateStore, dangling_blocker_refs, save_state

logger = logging.getLogger(__name__)

mcp = FastMCP("udo", instructions=(
    "UDO is the durable project memory. Read 'context' before responding "
    "to understand goals, todos, blockers and critical lessons. At the end "
    "of a session, write a handoff to the path returned by 'handoff_path'."
))

# One tracker per server process
_tracker = SessionTracker()


def _project_dir() -> Path:
    return Path(os.environ.get("UDO_PROJECT_DIR", os.getcwd())).resolve()


def _get_project() -> Project:
    """Load the linked project for the configured project directory."""
    config = load_config()
    registry = ProjectRegistry(config.global_path).load()
    resolver = LinkResolver(registry)
    project_dir = _project_dir()
    if not resolver.has_link(project_dir):
        raise FileNotFoundError(
            f"UDO not linked in {project_dir}. "
            f"Run 'udo init' in the project directory first."
        )
    return resolver.load(project_dir)


def _reminder(reminder_minutes: int) -> str | None:
    """Nudge toward a handoff once a session has run long without one."""
    elapsed = _tracker.duration()
    if _tracker.has_recent_handoff() or elapsed < timedelta(minutes=reminder_minutes):
        return None
    return (
        f"Reminder: session running {format_duration(elapsed)} without a handoff. "
        f"Call handoff_path or auto_save."
    )


@mcp.tool()
def context() -> str:
    """Return the current context document for the linked project.

    Read this before responding to any request.
    """
    config = load_config()
    registry = ProjectRegistry(config.global_path).load()
    resolver = LinkResolver(registry)
    project_dir = _project_dir()
    project = resolver.load(project_dir) if resolver.has_link(project_dir) else None
    return ContextSynthesizer().render(project)


@mcp.tool()
def status(format: str = "compact") -> str:
    """Get project status: phase, goal, item counts, session timing.

    Args:
        format: Output format: "compact" or "json"
    """
    project = _get_project()
    dangling = dangling_blocker_refs(project.state)
    meta = StateStore(project.storage_path).read_meta()
    if format == "json":
        return format_status_json(project, dangling, meta)
    out = format_status_compact(
        project, dangling,
        duration=_tracker.duration_formatted(),
        handoff_saved=_tracker.has_recent_handoff(),
        meta=meta,
    )
    reminder = _reminder(load_config().reminder_minutes)
    return f"{out}\n{reminder}" if reminder else out


@mcp.tool()
def get_state() -> str:
    """Return PROJECT_STATE.json as JSON."""
    project = _get_project()
    return json.dumps(project.state.to_dict(), indent=2)


@mcp.tool()
def update_state(goal: str | None = None, phase: str | None = None,
                 notes: str | None = None) -> str:
    """Update top-level state fields. Omitted fields are left unchanged.

    Args:
        goal: New project goal
        phase: New project phase
        notes: Free-text notes
    """
    project = _get_project()
    state = project.state
    if goal is not None:
        state.goal = goal
    if phase is not None:
        state.phase = phase
    if notes is not None:
        state.notes = notes
    save_state(project, state)
    return f"Updated state: phase={state.phase!r} goal={state.goal!r}"


@mcp.tool()
def recent_sessions(count: int = 5, format: str = "compact") -> str:
    """List the most recent session logs, newest first.

    Args:
        count: Maximum sessions to return (default 5)
        format: Output format: "compact" or "json"
    """
    project = _get_project()
    ledger = SessionLedger(project.storage_path, _tracker)
    results = [ledger.read_session(name) for name in ledger.recent_sessions(count)]
    if format == "json":
        return format_sessions_json(results)
    return format_sessions_compact(results)


@mcp.tool()
def search_sessions(tag: str, format: str = "compact") -> str:
    """Find sessions whose Tags line contains a tag (case-insensitive).

    Args:
        tag: Tag text, with or without the leading '#'
        format: Output format: "compact" or "json"
    """
    project = _get_project()
    ledger = SessionLedger(project.storage_path, _tracker)
    results = [ledger.read_session(name) for name in ledger.search_by_tag(tag)]
    if format == "json":
        return format_sessions_json(results)
    return format_sessions_compact(results)


@mcp.tool()
def critical_lessons() -> str:
    """Critical and high priority lessons from LESSONS_LEARNED.md."""
    project = _get_project()
    summary = summarize_critical(StateStore(project.storage_path).read_lessons())
    return summary or "No critical or high-priority lessons."


@mcp.tool()
def auto_save() -> str:
    """Write an unattended session save capturing the current state."""
    project = _get_project()
    ledger = SessionLedger.for_project(project, _tracker)
    path = ledger.auto_save(project, project.state)
    return f"Auto-saved: {path}"


@mcp.tool()
def handoff_path() -> str:
    """Return the file path the session handoff should be written to."""
    project = _get_project()
    ledger = SessionLedger.for_project(project, _tracker)
    return str(ledger.handoff_path())


def _close_session(auto_save_enabled: bool) -> Path | None:
    """Auto-save on shutdown when the session ended without a handoff."""
    _tracker.end_session()
    if not auto_save_enabled or _tracker.has_recent_handoff():
        return None
    try:
        project = _get_project()
    except FileNotFoundError:
        return None
    except UdoError as e:
        logger.warning("Skipping auto-save on close: %s", e)
        return None
    path = SessionLedger.for_project(project, _tracker).auto_save(project)
    logger.info("Session closed without handoff; auto-saved to %s", path)
    return path


def main():
    """Entry point for udo-mcp console script."""
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.WARNING),
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    _tracker.start_session()
    try:
        mcp.run(transport="stdio")
    finally:
        _close_session(config.auto_save)


if __name__ == "__main__":
    main()
