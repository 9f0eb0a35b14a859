"""Library settings with JSON persistence."""

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from .client import DEFAULT_API_BASE
from .ratelimit import PAGE_INTERVAL

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("data") / "config.json"


@dataclass
class Settings:
    """Where the library lives and how to talk to the catalog."""
    library_root: str = "data/library"
    db_path: str = "data/library.sqlite3"
    log_dir: str = "data/logs"
    api_base: str = DEFAULT_API_BASE
    language: str = "en"
    page_interval: float = PAGE_INTERVAL
    timeout: float = 30.0


def _coerce(name: str, value):
    """Convert a raw value to the type of the matching Settings field."""
    if name in ("page_interval", "timeout"):
        return float(value)
    return str(value)


def load_settings(path: Path = CONFIG_PATH) -> Settings:
    """Load settings from disk.

    Missing files and missing keys fall back to defaults; unknown keys are
    ignored.
    """
    path = Path(path)
    if not path.exists():
        return Settings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to load settings from %s: %s", path, e)
        return Settings()

    if not isinstance(raw, dict):
        logger.warning("Ignoring settings in %s: expected a JSON object", path)
        return Settings()

    known = {f.name for f in fields(Settings)}
    values = {}
    for name, value in raw.items():
        if name not in known:
            continue
        try:
            values[name] = _coerce(name, value)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid setting %s=%r", name, value)
    return Settings(**values)


def save_settings(settings: Settings, path: Path = CONFIG_PATH) -> None:
    """Save settings to disk."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(settings), f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error("Failed to save settings to %s: %s", path, e)
        raise


def update_settings(path: Path = CONFIG_PATH, **changes) -> Settings:
    """Change some settings and persist the result.

    Raises:
        KeyError: If a name is not a known setting
        ValueError: If a value can't be converted to the setting's type
    """
    settings = load_settings(path)
    known = {f.name for f in fields(Settings)}

    for name, value in changes.items():
        if name not in known:
            raise KeyError(name)
        setattr(settings, name, _coerce(name, value))

    save_settings(settings, path)
    return settings
