"""Configuration loading from environment variables and udo.toml."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_CONFIG_FILENAME = "udo.toml"
_DEFAULT_GLOBAL_PATH = "~/.udo"
_CONTEXT_FILENAME = "current-context.md"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _load_env() -> None:
    """Load the nearest .env walking up from CWD. Existing variables win."""
    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        env_file = parent / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


def _expand(path: str) -> Path:
    return Path(os.path.expanduser(path))


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class UdoConfig:
    """Top-level UDO configuration."""

    global_path: Path = field(default_factory=lambda: _expand(_DEFAULT_GLOBAL_PATH))
    context_file: Path | None = None
    reminder_minutes: int = 30
    auto_save: bool = True
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.context_file is None:
            self.context_file = self.global_path / _CONTEXT_FILENAME


def load_config(config_path: Path | None = None) -> UdoConfig:
    """Load configuration from environment variables and optional udo.toml.

    Priority: environment variables (including .env) > udo.toml > defaults.
    """
    _load_env()
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".udo" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    global_path = _expand(
        os.getenv("UDO_GLOBAL_PATH", file_data.get("global_path", _DEFAULT_GLOBAL_PATH))
    )
    context_raw = os.getenv("UDO_CONTEXT_FILE", file_data.get("context_file"))

    return UdoConfig(
        global_path=global_path,
        context_file=_expand(context_raw) if context_raw else None,
        reminder_minutes=int(
            os.getenv("UDO_REMINDER_MINUTES", file_data.get("reminder_minutes", 30))
        ),
        auto_save=_as_bool(os.getenv("UDO_AUTO_SAVE", file_data.get("auto_save", True))),
        log_level=os.getenv("UDO_LOG_LEVEL", file_data.get("log_level", "WARNING")),
    )
