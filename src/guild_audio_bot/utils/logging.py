"""Console logging: the colored formatter and the startup configuration."""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Any, TextIO

from guild_audio_bot.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

# Shipped next to pyproject.toml.
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "logging_config.json"

FALLBACK_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FALLBACK_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps the level name in an ANSI color.

    Honors ``NO_COLOR`` and leaves output plain when the target stream is not a TTY.
    """

    COLORS: dict[int, str] = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, *args: Any, stream: TextIO | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._stream = stream

    @property
    def colorize(self) -> bool:
        if "NO_COLOR" in os.environ:
            return False
        isatty = getattr(self._stream or sys.stdout, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record: logging.LogRecord) -> str:
        if not self.colorize:
            return super().format(record)

        # Color a copy; other handlers share the record.
        tinted = logging.makeLogRecord(record.__dict__)
        tinted.levelname = f"{self.COLORS.get(record.levelno, '')}{record.levelname}{self.RESET}"
        return super().format(tinted)


def load_config(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def configure_logging(level: str = "INFO", config_path: str | Path | None = None) -> None:
    """Apply the dictConfig JSON at ``config_path`` (the bundled file when unset).

    An unreadable or invalid file falls back to a single colored console handler.
    Either way the root logger ends at ``level``, so LOG_LEVEL overrides the file.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    try:
        logging.config.dictConfig(load_config(path))
    except (OSError, ValueError, TypeError) as e:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ColoredFormatter(FALLBACK_FORMAT, FALLBACK_DATEFMT))
        logging.basicConfig(level=numeric_level, handlers=[handler])
        logger.warning(LogTemplates.LOGGING_CONFIG_FALLBACK, path, e)

    logging.getLogger().setLevel(numeric_level)
