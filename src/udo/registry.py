"""Global index of linked projects (index.json)."""

import logging
import re
import uuid
from pathlib import Path

from udo.fileio import read_json, write_json
from udo.models import IndexEntry

logger = logging.getLogger(__name__)

INDEX_VERSION = "1.0"
INDEX_FILENAME = "index.json"
PROJECTS_DIRNAME = "projects"

_UNSAFE_CHARS = re.compile(r"[^a-z0-9._-]+")
_MAX_ID_ATTEMPTS = 100


def sanitize_name(name: str) -> str:
    """Reduce a display name to a filesystem-safe id prefix."""
    cleaned = _UNSAFE_CHARS.sub("-", name.lower()).strip("-.")
    return cleaned or "project"


class ProjectRegistry:
    """Owns index.json under the global UDO directory.

    One instance is created per host process and passed to whatever needs
    it; nothing here is module-level state.
    """

    def __init__(self, global_path: Path):
        self.global_path = Path(global_path)
        self.version = INDEX_VERSION
        self._projects: dict[str, IndexEntry] = {}

    @property
    def index_path(self) -> Path:
        return self.global_path / INDEX_FILENAME

    @property
    def projects_path(self) -> Path:
        return self.global_path / PROJECTS_DIRNAME

    def ensure_directories(self) -> None:
        self.projects_path.mkdir(parents=True, exist_ok=True)

    def load(self) -> "ProjectRegistry":
        """Read index.json. Missing or corrupt files yield an empty index."""
        self.version = INDEX_VERSION
        self._projects = {}

        data = read_json(self.index_path)
        if data is None:
            return self
        if not isinstance(data, dict) or not isinstance(data.get("projects"), dict):
            logger.warning("Index %s has an unexpected shape, starting empty", self.index_path)
            return self

        self.version = str(data.get("version", INDEX_VERSION))
        for project_path, raw in data["projects"].items():
            if isinstance(raw, dict):
                self._projects[project_path] = IndexEntry.from_dict(raw)
        return self

    def save(self) -> None:
        data = {
            "version": self.version,
            "projects": {path: entry.to_dict() for path, entry in self._projects.items()},
        }
        write_json(self.index_path, data)

    def get(self, project_path: str) -> IndexEntry | None:
        return self._projects.get(project_path)

    def entries(self) -> dict[str, IndexEntry]:
        return dict(self._projects)

    def storage_ids(self) -> set[str]:
        return {e.storage_id for e in self._projects.values()}

    def register(self, project_path: str, storage_id: str, name: str, now: str) -> IndexEntry:
        """Add (or replace) the entry for a working path and persist the index."""
        entry = IndexEntry(
            storage_id=storage_id,
            name=name,
            created_at=now,
            last_accessed_at=now,
        )
        self._projects[project_path] = entry
        self.save()
        return entry

    def touch(self, project_path: str, now: str) -> bool:
        """Update last access for a registered path. Returns False if unregistered."""
        entry = self._projects.get(project_path)
        if entry is None:
            return False
        entry.last_accessed_at = now
        self.save()
        return True

    def allocate_id(self, name: str, kind: str | None = None) -> str:
        """Return a storage id unused in the index and on disk.

        ``kind`` is inserted between the name and the random token,
        e.g. ``app-inproject-1a2b3c4d``.
        """
        prefix = sanitize_name(name)
        if kind:
            prefix = f"{prefix}-{kind}"
        taken = self.storage_ids()
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = f"{prefix}-{uuid.uuid4().hex[:8]}"
            if candidate in taken:
                continue
            if (self.projects_path / candidate).exists():
                continue
            return candidate
        raise RuntimeError(f"Could not allocate a unique storage id for {name!r}")
