from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Mapping

from textual.logging import TextualHandler


logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".stealth-learning"
ANALYTICS_FILE = "stealth-analytics.json"
USER_ID_FILE = "stealth-user-id"
LOG_FILE = "stealth-learning.log"


def _number(env: Mapping[str, str], name: str, default: float, cast=float):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %r", name, raw, default)
        return default


@dataclass
class Config:
    """Runtime settings for the learning games."""

    data_dir: Path = DEFAULT_HOME
    log_level: str = "INFO"
    promote_threshold: float = 90
    demote_threshold: float = 60
    recent_window: int = 3
    feedback_delay_s: float = 0.5

    @property
    def analytics_path(self) -> Path:
        return self.data_dir / ANALYTICS_FILE

    @property
    def user_id_path(self) -> Path:
        return self.data_dir / USER_ID_FILE

    @property
    def log_path(self) -> Path:
        return self.data_dir / LOG_FILE

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Config":
        env = os.environ if env is None else env
        home = env.get("STEALTH_LEARNING_HOME")
        return cls(
            data_dir=Path(home).expanduser() if home else DEFAULT_HOME,
            log_level=env.get("STEALTH_LEARNING_LOG_LEVEL", "INFO").upper(),
            promote_threshold=_number(env, "STEALTH_PROMOTE_THRESHOLD", 90.0),
            demote_threshold=_number(env, "STEALTH_DEMOTE_THRESHOLD", 60.0),
            recent_window=_number(env, "STEALTH_RECENT_WINDOW", 3, int),
            feedback_delay_s=_number(env, "STEALTH_FEEDBACK_DELAY", 0.5),
        )


def setup_logging(config: Config) -> None:
    """Send logs to a file and the textual devtools console; the TUI owns stdout."""
    level = getattr(logging, config.log_level, logging.INFO)
    config.data_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(config.log_path, encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s | %(message)s")
    )
    logging.basicConfig(level=level, handlers=[file_handler, TextualHandler()], force=True)
