"""UDO CLI — durable project memory for an AI collaborator."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import click

from udo.config import load_config
from udo.context import ContextSynthesizer
from udo.errors import NotLinkedError
from udo.fileio import read_text
from udo.formatting import (
    format_lessons_compact, format_projects_compact,
    format_sessions_compact, format_sessions_json,
    format_status_compact, format_status_json,
)
from udo.lessons import critical_lessons, lessons as all_lessons
from udo.linker import LinkResolver
from udo.models import Priority, Project
from udo.registry import ProjectRegistry
from udo.sessions import SessionLedger
from udo.state import StateStore, dangling_blocker_refs, save_state

CONTEXT_HINT = (
    "Add this to your AI's custom instructions:\n"
    "  Before responding, read {path} for project rules and context."
)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _resolve_project(project: str) -> Path:
    """Resolve project directory."""
    return Path(project).resolve()


def _get_resolver(ctx) -> LinkResolver:
    registry = ProjectRegistry(ctx.obj["config"].global_path).load()
    registry.ensure_directories()
    return LinkResolver(registry)


def _load_project(ctx) -> Project:
    """Load the linked project or exit with guidance."""
    project_dir = ctx.obj["project"]
    resolver = _get_resolver(ctx)
    if not resolver.has_link(project_dir):
        click.echo(f"Error: UDO not linked in {project_dir}", err=True)
        click.echo("Run 'udo init' first.", err=True)
        sys.exit(1)
    try:
        return resolver.load(project_dir)
    except NotLinkedError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _write_context(ctx, project: Project | None) -> Path:
    path = ctx.obj["config"].context_file
    return ContextSynthesizer().write(project, path)


@click.group()
@click.option("--project", "-p", default=".", help="Project directory")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, project, verbose):
    """UDO — durable project memory for AI collaborators."""
    ctx.ensure_object(dict)
    config = load_config()
    _setup_logging("DEBUG" if verbose else config.log_level)
    ctx.obj["config"] = config
    ctx.obj["project"] = _resolve_project(project)


# --- Linking ---

@cli.command()
@click.option("--migrate", "mode", flag_value="migrate",
              help="Move existing in-project UDO files to external storage")
@click.option("--in-place", "mode", flag_value="in-place",
              help="Keep existing in-project UDO files where they are")
@click.pass_context
def init(ctx, mode):
    """Initialize UDO storage for this project."""
    project_dir = ctx.obj["project"]
    resolver = _get_resolver(ctx)

    if resolver.has_link(project_dir):
        click.echo(f"UDO already linked in {project_dir}")
        return

    if resolver.has_existing_files(project_dir) and mode is None:
        click.echo("Error: existing UDO files found in this project.", err=True)
        click.echo("Re-run with --migrate to move them out, or --in-place to keep them.", err=True)
        sys.exit(1)

    if mode == "migrate":
        project = resolver.migrate(project_dir)
        click.echo(f"Migrated UDO files for '{project.name}' to {project.storage_path}")
    elif mode == "in-place":
        project = resolver.link_in_place(project_dir)
        click.echo(f"Linked '{project.name}' in place.")
    else:
        project = resolver.initialize(project_dir)
        click.echo(f"UDO initialized for '{project.name}' at {project.storage_path}")

    path = _write_context(ctx, project)
    click.echo(CONTEXT_HINT.format(path=path))


@cli.command()
@click.pass_context
def migrate(ctx):
    """Move in-project UDO files to external storage and link them."""
    ctx.invoke(init, mode="migrate")


@cli.command()
@click.pass_context
def link(ctx):
    """Link this project to its in-project UDO files without moving them."""
    ctx.invoke(init, mode="in-place")


@cli.command()
@click.option("--format", "-f", "fmt", default="compact",
              type=click.Choice(["compact", "json"]))
@click.pass_context
def status(ctx, fmt):
    """Show project state summary."""
    project = _load_project(ctx)
    dangling = dangling_blocker_refs(project.state)
    meta = StateStore(project.storage_path).read_meta()

    if fmt == "json":
        click.echo(format_status_json(project, dangling, meta))
    else:
        click.echo(format_status_compact(project, dangling, meta=meta))


@cli.command()
@click.pass_context
def projects(ctx):
    """List every linked project in the global index."""
    registry = ProjectRegistry(ctx.obj["config"].global_path).load()
    click.echo(format_projects_compact(registry.entries()))


# --- Context ---

@cli.group(invoke_without_command=True)
@click.option("--write", "write", is_flag=True, help="Write the configured context file")
@click.pass_context
def context(ctx, write):
    """Render the current context document."""
    if ctx.invoked_subcommand is not None:
        return
    project_dir = ctx.obj["project"]
    resolver = _get_resolver(ctx)
    project = _load_project(ctx) if resolver.has_link(project_dir) else None

    if write:
        path = _write_context(ctx, project)
        click.echo(f"Wrote {path}")
    else:
        click.echo(ContextSynthesizer().render(project), nl=False)


@context.command("clear")
@click.pass_context
def context_clear(ctx):
    """Delete the context file."""
    path = ctx.obj["config"].context_file
    if ContextSynthesizer.clear(path):
        click.echo(f"Removed {path}")
    else:
        click.echo(f"No context file at {path}")


# --- State ---

@cli.group()
@click.pass_context
def state(ctx):
    """Read and update PROJECT_STATE.json."""
    pass


@state.command("show")
@click.option("--format", "-f", "fmt", default="json",
              type=click.Choice(["compact", "json"]))
@click.pass_context
def state_show(ctx, fmt):
    """Print the state record."""
    import json as _json
    project = _load_project(ctx)
    if fmt == "json":
        click.echo(_json.dumps(project.state.to_dict(), indent=2))
    else:
        click.echo(format_status_compact(project, dangling_blocker_refs(project.state)))


def _update_state(ctx, mutate) -> Project:
    project = _load_project(ctx)
    new_state = project.state
    mutate(new_state)
    save_state(project, new_state)
    _write_context(ctx, project)
    return project


@state.command("set-goal")
@click.argument("goal")
@click.pass_context
def state_set_goal(ctx, goal):
    """Set the project goal."""
    _update_state(ctx, lambda s: setattr(s, "goal", goal))
    click.echo(f"Goal: {goal}")


@state.command("set-phase")
@click.argument("phase")
@click.pass_context
def state_set_phase(ctx, phase):
    """Set the project phase."""
    _update_state(ctx, lambda s: setattr(s, "phase", phase))
    click.echo(f"Phase: {phase}")


@state.command("add-todo")
@click.argument("title")
@click.option("--priority", default="normal",
              type=click.Choice([p.value for p in Priority]))
@click.pass_context
def state_add_todo(ctx, title, priority):
    """Append a todo to the state record."""
    import uuid
    todo = {
        "id": f"todo-{uuid.uuid4().hex[:8]}",
        "title": title,
        "priority": priority,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    _update_state(ctx, lambda s: s.todos.append(todo))
    click.echo(f"Added {todo['id']}: {title}")


@state.command("trip")
@click.argument("reason")
@click.pass_context
def state_trip(ctx, reason):
    """Trip the circuit breaker, halting work until reset."""
    now = datetime.now(timezone.utc).isoformat()
    _update_state(ctx, lambda s: s.trip_breaker(reason, now))
    click.echo(f"Circuit breaker tripped: {reason}")


@state.command("reset-breaker")
@click.pass_context
def state_reset_breaker(ctx):
    """Reset the circuit breaker."""
    _update_state(ctx, lambda s: s.reset_breaker())
    click.echo("Circuit breaker reset.")


# --- Sessions ---

@cli.group()
@click.pass_context
def sessions(ctx):
    """Browse the session log."""
    pass


@sessions.command("list")
@click.option("--limit", "-n", default=5, help="Max results")
@click.option("--format", "-f", "fmt", default="compact",
              type=click.Choice(["compact", "json"]))
@click.pass_context
def sessions_list(ctx, limit, fmt):
    """List the most recent sessions."""
    project = _load_project(ctx)
    ledger = SessionLedger(project.storage_path)
    results = [ledger.read_session(name) for name in ledger.recent_sessions(limit)]

    if fmt == "json":
        click.echo(format_sessions_json(results))
    else:
        click.echo(format_sessions_compact(results))


@sessions.command("search")
@click.argument("tag")
@click.option("--format", "-f", "fmt", default="compact",
              type=click.Choice(["compact", "json"]))
@click.pass_context
def sessions_search(ctx, tag, fmt):
    """Find sessions by tag (case-insensitive)."""
    project = _load_project(ctx)
    ledger = SessionLedger(project.storage_path)
    results = [ledger.read_session(name) for name in ledger.search_by_tag(tag)]

    if fmt == "json":
        click.echo(format_sessions_json(results))
    elif not results:
        click.echo(f"No sessions found with tag: {tag}")
    else:
        click.echo(format_sessions_compact(results))


@sessions.command("show")
@click.argument("filename")
@click.pass_context
def sessions_show(ctx, filename):
    """Print one session file."""
    project = _load_project(ctx)
    ledger = SessionLedger(project.storage_path)
    path = ledger.sessions_path / filename
    if not path.is_file():
        click.echo(f"Error: Session not found: {filename}", err=True)
        sys.exit(1)
    click.echo(read_text(path), nl=False)


@cli.group()
@click.pass_context
def session(ctx):
    """Session saves and handoffs."""
    pass


@session.command("autosave")
@click.option("--started", default=None, help="ISO timestamp the session started")
@click.pass_context
def session_autosave(ctx, started):
    """Write an unattended session save from the current state."""
    project = _load_project(ctx)
    session_start = datetime.fromisoformat(started) if started else None
    ledger = SessionLedger.for_project(project)
    path = ledger.auto_save(project, project.state, session_start=session_start)
    _write_context(ctx, project)
    click.echo(f"Auto-saved: {path}")


@session.command("handoff")
@click.pass_context
def session_handoff(ctx):
    """Print the path the next handoff should be written to."""
    project = _load_project(ctx)
    path = SessionLedger.for_project(project).handoff_path()
    click.echo(str(path))


# --- Lessons ---

@cli.group()
@click.pass_context
def lessons(ctx):
    """Read and append lessons learned."""
    pass


@lessons.command("list")
@click.option("--critical", is_flag=True, help="Only critical and high priority lessons")
@click.pass_context
def lessons_list(ctx, critical):
    """List active lessons."""
    project = _load_project(ctx)
    text = StateStore(project.storage_path).read_lessons()
    selected = critical_lessons(text) if critical else all_lessons(text)
    click.echo(format_lessons_compact(selected))


@lessons.command("add")
@click.argument("title")
@click.option("--rule", "-r", required=True, help="What to do")
@click.option("--priority", "-p", default="normal",
              type=click.Choice([p.value for p in Priority]))
@click.pass_context
def lessons_add(ctx, title, rule, priority):
    """Append a lesson to LESSONS_LEARNED.md."""
    project = _load_project(ctx)
    lesson_id = StateStore(project.storage_path).append_lesson(title, rule, Priority(priority))
    _write_context(ctx, project)
    click.echo(f"Added {lesson_id}: {title}")
