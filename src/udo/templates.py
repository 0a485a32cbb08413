"""Onboarding files seeded into a new storage directory."""

import json

START_HERE = """# New AI? Start Here.

1. Read `ORCHESTRATOR.md` for your instructions.
2. Read `HARD_STOPS.md` before anything else. Those rules are absolute.
3. Check `PROJECT_STATE.json` for current status.
4. Check `LESSONS_LEARNED.md` for mistakes to avoid.

Then reply with a short status summary and proposed next steps.

| Command | When |
|---------|------|
| `Resume` | Start of a session |
| `Deep resume` | After a long break |
| `Handoff` | End of a session |
"""

ORCHESTRATOR = """# Universal Dynamic Orchestrator (UDO)

You coordinate this project.

## Session end protocol

Before ending a session, write a handoff to `.project-catalog/sessions/`
containing a `Tags: #topic` line, a `## Summary` section, decisions made,
next steps and files changed. Then update `PROJECT_STATE.json`.

## Session commands

| User says | You do |
|-----------|--------|
| `Resume` | Quick resume with an oversight report |
| `Deep resume` | Full context including recent sessions |
| `Handoff` | Write the session handoff |
| `Quick handoff` | Minimal handoff |
| `Status` | Oversight report |

## Directives

1. Hard stops are absolute.
2. Read lessons before starting work.
3. Log decisions and errors to `.project-catalog/`.
4. Keep `PROJECT_STATE.json` current.
"""

COMMANDS = """# UDO Commands

| Command | Effect |
|---------|--------|
| `Resume` | Quick resume with oversight report |
| `Deep resume` | Full context with recent sessions |
| `Handoff` | Full session handoff |
| `Quick handoff` | Minimal handoff |
| `Status` | Oversight report |
| `Show blockers` | List blockers |
| `Add to lessons` | Capture a correction |
"""

HANDOFF_PROMPT = """# Session Handoff

Send this before ending a session:

```
End session. Create a handoff in .project-catalog/sessions/ with:
1. Tags: #topic1 #topic2
2. ## Summary of what we accomplished
3. Decisions made
4. Next steps
5. Files changed

Update PROJECT_STATE.json and confirm when done.
```
"""

HARD_STOPS = """# Hard Stops

These rules are absolute.

## Security
- **HS-SEC-001**: Never output API keys, passwords or other secrets.
- **HS-SEC-002**: Never expose database connection strings.

## Data
- **HS-DATA-001**: Never write personal data to logs.

## Project
<!-- Project-specific hard stops go here -->
"""

LESSONS_LEARNED = """# Lessons Learned

## Active Lessons

<!-- Format:
### L001: [Title]
- **Priority**: critical | high | normal | low
- **Rule**: What to do
-->

## Archived
| ID | Title | Graduated To | Date |
|----|-------|--------------|------|
"""

NON_GOALS = """# Non-Goals

UDO is not a replacement for human judgment, not an autonomous system
and not a security framework.
"""

OVERSIGHT_DASHBOARD = """# Oversight Dashboard

Ask for `an oversight report`.

| Command | Action |
|---------|--------|
| `Pause all work` | Stop |
| `Show blockers` | List blockers |
| `Checkpoint this` | Manual save |
"""

PROJECT_STATE = {
    "goal": "",
    "phase": "initialized",
    "todos": [],
    "in_progress": [],
    "completed": [],
    "blockers": [],
    "notes": "Project initialized. Awaiting goal definition.",
}

PROJECT_META = {"name": "", "description": "", "created": "", "tags": []}

CAPABILITIES = {
    "environment": "cli",
    "tools_available": {"file_read": True, "file_write": True},
    "notes": "Update based on your AI capabilities.",
}

MEMORY_README = """# Memory

- `canonical/` verified facts
- `working/` current session scratch
- `disposable/` speculation, delete when resolved
"""

CATALOG_README = """# Project Catalog

- `sessions/` session handoffs (start here)
- `decisions/` key decisions
- `errors/` error tracking
"""

SESSIONS_README = """# Sessions

Read the most recent file first. Every session carries a `Tags:` line.
"""

INPUTS_MANIFEST = {"files": [], "notes": "Document input files here."}

CODE_STANDARDS = """# Code Standards

- Prefer clear, readable code.
- Comment non-obvious logic.
- Handle errors explicitly.
"""

CONTENT_GUIDELINES = """# Content Guidelines

- Professional, approachable tone.
- Clear and concise.
"""

DATA_VALIDATION = """# Data Validation

- Verify input before processing.
- Log anomalies.
"""

AGENT_TEMPLATE = """# Agent: {NAME}

## Specialization
{Description}

## Learned Rules
"""

SESSION_TEMPLATE = """# Session: {DATE}

Tags: #topic1 #topic2

## Summary
{What was accomplished}

## Next Session Should
1. {Priority 1}
2. {Priority 2}
"""

HANDOFF_TEMPLATE = """# Handoff: {FROM} -> {TO}

## Request
{What to do}

## Status
- [ ] Complete
"""

ERROR_TEMPLATE = """# Error: {TIMESTAMP}

## What Happened
{Description}

## Resolution
{How fixed}
"""

TAKEOVER_ORCHESTRATOR = """# Takeover Orchestrator

Phases for adopting an existing project:

1. DISCOVERY
2. VERIFICATION
3. AUDIT
4. SYNTHESIS
5. TRANSITION

Say "Start takeover" to begin.
"""

TAKEOVER_DISCOVERY = {
    "status": "pending",
    "project_type": [],
    "tech_stack": {},
    "uncertainties": [],
}

TAKEOVER_SCOPE = {
    "audit_scope": {
        "depth": "standard",
        "exclude_paths": ["node_modules", ".git", "dist"],
    }
}


def _json(data) -> str:
    return json.dumps(data, indent=2) + "\n"


def get_templates() -> dict[str, str]:
    """Relative path -> file content for every onboarding file."""
    return {
        "START_HERE.md": START_HERE,
        "ORCHESTRATOR.md": ORCHESTRATOR,
        "COMMANDS.md": COMMANDS,
        "HANDOFF_PROMPT.md": HANDOFF_PROMPT,
        "HARD_STOPS.md": HARD_STOPS,
        "LESSONS_LEARNED.md": LESSONS_LEARNED,
        "NON_GOALS.md": NON_GOALS,
        "OVERSIGHT_DASHBOARD.md": OVERSIGHT_DASHBOARD,
        "PROJECT_STATE.json": _json(PROJECT_STATE),
        "PROJECT_META.json": _json(PROJECT_META),
        "CAPABILITIES.json": _json(CAPABILITIES),
        ".memory/README.md": MEMORY_README,
        ".project-catalog/README.md": CATALOG_README,
        ".project-catalog/sessions/README.md": SESSIONS_README,
        ".inputs/manifest.json": _json(INPUTS_MANIFEST),
        ".rules/code-standards.md": CODE_STANDARDS,
        ".rules/content-guidelines.md": CONTENT_GUIDELINES,
        ".rules/data-validation.md": DATA_VALIDATION,
        ".templates/agent.md": AGENT_TEMPLATE,
        ".templates/session.md": SESSION_TEMPLATE,
        ".templates/handoff.md": HANDOFF_TEMPLATE,
        ".templates/error.md": ERROR_TEMPLATE,
        ".takeover/TAKEOVER_ORCHESTRATOR.md": TAKEOVER_ORCHESTRATOR,
        ".takeover/discovery.json": _json(TAKEOVER_DISCOVERY),
        ".takeover/scope-config.json": _json(TAKEOVER_SCOPE),
    }
