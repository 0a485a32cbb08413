"""Shared fixtures for UDO tests."""

import pytest
from pathlib import Path

from udo.linker import LinkResolver
from udo.registry import ProjectRegistry


@pytest.fixture
def global_dir(tmp_path):
    """Empty global UDO directory."""
    path = tmp_path / "udo-home"
    path.mkdir()
    return path


@pytest.fixture
def registry(global_dir):
    """Loaded (empty) global index."""
    return ProjectRegistry(global_dir).load()


@pytest.fixture
def resolver(registry):
    return LinkResolver(registry)


@pytest.fixture
def work_dir(tmp_path):
    """A working project directory with no link."""
    project = tmp_path / "My Project"
    project.mkdir()
    (project / "main.py").write_text("print('hello')\n")
    return project.resolve()


@pytest.fixture
def linked_project(resolver, work_dir):
    """A freshly initialized project."""
    return resolver.initialize(work_dir)


@pytest.fixture
def sessions_dir(linked_project):
    return Path(linked_project.storage_path) / ".project-catalog" / "sessions"


@pytest.fixture
def write_session(sessions_dir):
    """Factory: write a session file with optional tags and summary."""
    def _write(filename: str, tags: str | None = None, summary: str | None = None,
               body: str = "", llm: str | None = None) -> Path:
        lines = [f"# Session: {filename[:16]}", ""]
        if tags is not None:
            lines += [f"Tags: {tags}", ""]
        if llm is not None:
            lines += [f"LLM: {llm}", ""]
        if summary is not None:
            lines += ["## Summary", summary, ""]
        lines.append(body)
        path = sessions_dir / filename
        path.write_text("\n".join(lines))
        return path
    return _write


@pytest.fixture
def udo_env(monkeypatch, global_dir, tmp_path):
    """Point config at the temp global dir and isolate the context file."""
    monkeypatch.setenv("UDO_GLOBAL_PATH", str(global_dir))
    monkeypatch.setenv("UDO_CONTEXT_FILE", str(tmp_path / "ctx" / "current-context.md"))
    monkeypatch.chdir(tmp_path)
    return global_dir
