"""Maps a working directory to its external storage path."""

import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

from udo.errors import NotLinkedError
from udo.fileio import atomic_write_text, read_text
from udo.models import LinkMarker, Project
from udo.registry import ProjectRegistry
from udo.state import StateStore
from udo.templates import get_templates

logger = logging.getLogger(__name__)

MARKER_FILENAME = ".udo-link"
IGNORE_FILENAME = ".gitignore"
IN_PROJECT_KIND = "inproject"
IGNORE_BLOCK = "# UDO link file\n.udo-link\n"

# Created empty on initialization; templates fill some of them
STORAGE_DIRS = [
    ".agents/_archive",
    ".checkpoints",
    ".inputs",
    ".memory/canonical",
    ".memory/disposable",
    ".memory/working",
    ".outputs/_drafts",
    ".project-catalog/agents",
    ".project-catalog/archive",
    ".project-catalog/decisions",
    ".project-catalog/errors",
    ".project-catalog/handoffs",
    ".project-catalog/sessions",
    ".rules",
    ".takeover/audits",
    ".takeover/evidence",
    ".takeover/agent-templates",
    ".templates",
]

# Names moved out of the working tree by migrate(); nothing else is touched
MIGRATABLE_FILES = [
    "START_HERE.md",
    "ORCHESTRATOR.md",
    "COMMANDS.md",
    "HANDOFF_PROMPT.md",
    "HARD_STOPS.md",
    "LESSONS_LEARNED.md",
    "NON_GOALS.md",
    "OVERSIGHT_DASHBOARD.md",
    "PROJECT_STATE.json",
    "PROJECT_META.json",
    "CAPABILITIES.json",
]

MIGRATABLE_DIRS = [
    ".agents",
    ".checkpoints",
    ".inputs",
    ".memory",
    ".outputs",
    ".project-catalog",
    ".rules",
    ".takeover",
    ".templates",
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LinkResolver:
    """Creates, migrates and loads project links.

    Args:
        registry: the loaded global index; every new link is registered in it
        templates: onboarding files to seed (defaults to the built-in set)
    """

    def __init__(self, registry: ProjectRegistry,
                 templates: dict[str, str] | None = None):
        self.registry = registry
        self.templates = templates if templates is not None else get_templates()

    @staticmethod
    def _key(project_path) -> str:
        return str(Path(project_path).resolve())

    def marker_path(self, project_path) -> Path:
        return Path(project_path) / MARKER_FILENAME

    def has_link(self, project_path) -> bool:
        return self.marker_path(project_path).is_file()

    def has_existing_files(self, project_path) -> bool:
        """True if structured files already live inside the working tree."""
        root = Path(project_path)
        return (root / "ORCHESTRATOR.md").exists() or (root / ".project-catalog").exists()

    # --- link creation ---

    def initialize(self, project_path) -> Project:
        """Allocate fresh storage, seed it, and link the working tree to it."""
        key = self._key(project_path)
        name = Path(key).name
        storage_id = self.registry.allocate_id(name)
        storage_path = self.registry.projects_path / storage_id

        self._create_skeleton(storage_path)
        self._write_marker(key, LinkMarker(storage_path=str(storage_path), created_at=_now_iso()))
        self._update_ignore_list(key)
        self.registry.register(key, storage_id, name, _now_iso())

        logger.info("Initialized %s -> %s", key, storage_path)
        return self.load(key)

    def migrate(self, project_path) -> Project:
        """Move in-tree structured files into fresh external storage."""
        key = self._key(project_path)
        root = Path(key)
        name = root.name
        storage_id = self.registry.allocate_id(name)
        storage_path = self.registry.projects_path / storage_id
        storage_path.mkdir(parents=True, exist_ok=True)

        moved = 0
        for entry in MIGRATABLE_FILES + MIGRATABLE_DIRS:
            src = root / entry
            if not src.exists():
                logger.debug("Nothing to migrate for %s", src)
                continue
            shutil.move(str(src), str(storage_path / entry))
            moved += 1

        self._write_marker(key, LinkMarker(
            storage_path=str(storage_path),
            created_at=_now_iso(),
            migrated_from="in-project",
        ))
        self._update_ignore_list(key)
        self.registry.register(key, storage_id, name, _now_iso())

        logger.info("Migrated %d entries from %s -> %s", moved, key, storage_path)
        return self.load(key)

    def link_in_place(self, project_path) -> Project:
        """Use the working tree itself as storage. Nothing is moved."""
        key = self._key(project_path)
        name = Path(key).name

        self._write_marker(key, LinkMarker(
            storage_path=key,
            created_at=_now_iso(),
            in_project=True,
        ))
        self._update_ignore_list(key)
        storage_id = self.registry.allocate_id(name, kind=IN_PROJECT_KIND)
        self.registry.register(key, storage_id, name, _now_iso())

        logger.info("Linked %s in place", key)
        return self.load(key)

    # --- loading ---

    def read_marker(self, project_path) -> LinkMarker:
        path = self.marker_path(project_path)
        if not path.is_file():
            raise NotLinkedError(str(project_path), "no link marker")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return LinkMarker.from_dict(data)
        except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError) as e:
            raise NotLinkedError(str(project_path), f"unreadable link marker: {e}") from e

    def load(self, project_path, now: datetime | None = None) -> Project:
        """Resolve the link and return a fresh Project snapshot.

        Raises NotLinkedError if the marker is missing; check has_link() first.
        """
        key = self._key(project_path)
        marker = self.read_marker(key)
        now = now or datetime.now(timezone.utc)

        self.registry.touch(key, now.isoformat())

        state = StateStore(marker.storage_path).load()
        return Project(
            project_path=key,
            storage_path=marker.storage_path,
            name=Path(key).name,
            state=state,
            session_start=now,
        )

    # --- internals ---

    def _create_skeleton(self, storage_path: Path) -> None:
        for rel in STORAGE_DIRS:
            (storage_path / rel).mkdir(parents=True, exist_ok=True)
        for rel, content in self.templates.items():
            target = storage_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

    def _write_marker(self, project_path: str, marker: LinkMarker) -> None:
        atomic_write_text(
            self.marker_path(project_path),
            json.dumps(marker.to_dict(), indent=2) + "\n",
        )

    def _update_ignore_list(self, project_path: str) -> None:
        ignore = Path(project_path) / IGNORE_FILENAME
        if not ignore.exists():
            ignore.write_text(IGNORE_BLOCK, encoding="utf-8")
            return
        content = read_text(ignore)
        if MARKER_FILENAME in content:
            return
        with ignore.open("a", encoding="utf-8") as f:
            f.write("\n" + IGNORE_BLOCK)
