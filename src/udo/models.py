"""Data models for UDO projects, state, lessons and sessions."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DEFAULT_PHASE = "initialized"

# Collections every state record carries, in render order
STATE_COLLECTIONS = ("todos", "in_progress", "completed", "blockers")

# Optional keys that are only written when set
STATE_OPTIONAL = (
    "agent_registry",
    "checkpoints",
    "circuit_breaker",
    "context_health",
    "current_session",
    "notes",
)


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


@dataclass
class ProjectState:
    goal: str = ""
    phase: str = DEFAULT_PHASE
    todos: list = field(default_factory=list)
    in_progress: list = field(default_factory=list)
    completed: list = field(default_factory=list)
    blockers: list = field(default_factory=list)
    agent_registry: list | None = None
    checkpoints: list | None = None
    circuit_breaker: dict | None = None
    context_health: dict | None = None
    current_session: dict | None = None
    notes: str | None = None
    # Unknown top-level keys, kept so a load/save cycle never drops them
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data) -> "ProjectState":
        """Merge a decoded JSON record over the default skeleton."""
        if not isinstance(data, dict):
            return cls()

        state = cls()
        goal = data.get("goal")
        if isinstance(goal, str):
            state.goal = goal
        phase = data.get("phase")
        if isinstance(phase, str) and phase:
            state.phase = phase

        for key in STATE_COLLECTIONS:
            value = data.get(key)
            setattr(state, key, list(value) if isinstance(value, list) else [])

        for key in STATE_OPTIONAL:
            if key in data:
                setattr(state, key, data[key])

        known = {"goal", "phase", *STATE_COLLECTIONS, *STATE_OPTIONAL}
        state.extra = {k: v for k, v in data.items() if k not in known}
        return state

    def to_dict(self) -> dict:
        d: dict = dict(self.extra)
        d["goal"] = self.goal
        d["phase"] = self.phase
        for key in STATE_COLLECTIONS:
            d[key] = list(getattr(self, key))
        for key in STATE_OPTIONAL:
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        return d

    def trip_breaker(self, reason: str, timestamp: str) -> None:
        """Halt work: record why the circuit breaker fired."""
        self.circuit_breaker = {
            "triggered": True,
            "reason": reason,
            "timestamp": timestamp,
        }

    def reset_breaker(self) -> None:
        self.circuit_breaker = {"triggered": False, "reason": None, "timestamp": None}

    @property
    def breaker_tripped(self) -> bool:
        return bool(
            isinstance(self.circuit_breaker, dict)
            and self.circuit_breaker.get("triggered")
        )


# --- List items: what a todo/blocker entry looks like to the renderer ---


@dataclass(frozen=True)
class RawText:
    text: str


@dataclass(frozen=True)
class NamedItem:
    title: str
    description: str | None = None


def as_item(value) -> RawText | NamedItem:
    """Convert one stored list element into a renderable item.

    State files are written by an AI, so entries are either bare strings
    or objects with a title and/or description.
    """
    if isinstance(value, dict):
        title = value.get("title")
        description = value.get("description")
        if title:
            return NamedItem(title=str(title), description=description)
        if description:
            return NamedItem(title=str(description))
        return RawText(json.dumps(value))
    return RawText(str(value))


def render_item(item: RawText | NamedItem, prefer_description: bool = False) -> str:
    """Text for one list item; ``prefer_description`` is used for blockers."""
    if isinstance(item, NamedItem):
        if prefer_description and item.description:
            return str(item.description)
        return item.title
    return item.text


@dataclass
class Project:
    project_path: str
    storage_path: str
    name: str
    state: ProjectState
    session_start: datetime


@dataclass
class LinkMarker:
    storage_path: str
    created_at: str
    migrated_from: str | None = None
    in_project: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "LinkMarker":
        return cls(
            storage_path=data["storagePath"],
            created_at=data.get("createdAt", ""),
            migrated_from=data.get("migratedFrom"),
            in_project=bool(data.get("inProject", False)),
        )

    def to_dict(self) -> dict:
        d = {"storagePath": self.storage_path, "createdAt": self.created_at}
        if self.migrated_from:
            d["migratedFrom"] = self.migrated_from
        if self.in_project:
            d["inProject"] = True
        return d


@dataclass
class IndexEntry:
    storage_id: str
    name: str
    created_at: str
    last_accessed_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "IndexEntry":
        return cls(
            storage_id=str(data.get("storageId", "")),
            name=str(data.get("name", "")),
            created_at=str(data.get("createdAt", "")),
            last_accessed_at=str(data.get("lastAccessedAt", "")),
        )

    def to_dict(self) -> dict:
        return {
            "storageId": self.storage_id,
            "name": self.name,
            "createdAt": self.created_at,
            "lastAccessedAt": self.last_accessed_at,
        }


@dataclass
class Lesson:
    id: str
    title: str
    priority: str = "unknown"
    rule: str = ""
    scope: str = ""
    context: str = ""
    date: str = ""


@dataclass
class Session:
    filename: str
    tags: list[str] = field(default_factory=list)
    tag_line: str | None = None
    summary: str | None = None
    llm: str | None = None
    date: datetime | None = None
