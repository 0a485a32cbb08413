"""File helpers shared by the index, state and session writers."""

import fcntl
import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


@contextmanager
def file_lock(path: Path):
    """Advisory exclusive lock on a sibling ``<name>.lock`` file.

    The lock file is removed on release so none are left beside the
    documents. A waiter that wakes on an unlinked file retries on a fresh one.
    """
    lock_path = path.with_name(path.name + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    while True:
        fh = lock_path.open("a")
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
            if _same_file(fh, lock_path):
                break
        except BaseException:
            fh.close()
            raise
        fh.close()
    try:
        yield
    finally:
        lock_path.unlink(missing_ok=True)
        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        fh.close()


def _same_file(fh, path: Path) -> bool:
    try:
        return os.fstat(fh.fileno()).st_ino == path.stat().st_ino
    except FileNotFoundError:
        return False


def atomic_write_text(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def write_json(path: Path, data) -> None:
    """Locked, atomic JSON write (2-space indent)."""
    with file_lock(path):
        atomic_write_text(path, json.dumps(data, indent=2) + "\n")


def read_json(path: Path):
    """Decode a JSON file. Returns None if missing or corrupt.

    A corrupt file is left on disk untouched.
    """
    if not path.is_file():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Ignoring unreadable JSON file %s", path)
        return None


def read_text(path: Path) -> str:
    """Raw text of a document, or an empty string when absent.

    Invalid UTF-8 bytes are replaced rather than raised.
    """
    if not path.is_file():
        return ""
    return path.read_text(encoding="utf-8", errors="replace")
