from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from reaper.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_DATABASE_PATH = "./data/reaper.db"
DEFAULT_SWEEP_INTERVAL = 45.0


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed properties with defaults, so a missing or malformed file degrades
    to a working configuration instead of stopping the bot.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config file %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the in-memory cache and return it."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        """Return the SQLite database path (default ``./data/reaper.db``)."""
        database = self._data.get("database", {})
        value = database.get("path") if isinstance(database, dict) else None
        return Path(str(value or DEFAULT_DATABASE_PATH)).resolve()

    @property
    def expiry_sweep_interval(self) -> float:
        """Return the expiry sweeper polling interval in seconds.

        Non-positive or unparsable values fall back to 45 seconds.
        """
        sweeper = self._data.get("expiry_sweeper", {})
        if not isinstance(sweeper, dict):
            return DEFAULT_SWEEP_INTERVAL
        try:
            interval = float(sweeper.get("interval_seconds", DEFAULT_SWEEP_INTERVAL))
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid expiry_sweeper.interval_seconds; using default")
            return DEFAULT_SWEEP_INTERVAL
        return interval if interval > 0 else DEFAULT_SWEEP_INTERVAL

    @property
    def system_moderator_id(self) -> int | None:
        """Return the id recorded as moderator for system-issued actions, if configured."""
        moderation = self._data.get("moderation", {})
        value = moderation.get("system_moderator_id") if isinstance(moderation, dict) else None
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid moderation.system_moderator_id %r", value)
            return None

    @property
    def log_level(self) -> str:
        """Return the configured log level name (default ``DEBUG``)."""
        logging_section = self._data.get("logging", {})
        value = logging_section.get("level") if isinstance(logging_section, dict) else None
        return str(value or "DEBUG").upper()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
