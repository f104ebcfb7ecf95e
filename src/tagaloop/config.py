"""Configuration loading and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml

from . import TAGALOOP_HOME
from .models import TagaloopConfig

logger = logging.getLogger("tagaloop.config")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def home() -> Path:
    """Resolve the tagaloop home directory."""
    return Path(TAGALOOP_HOME).expanduser()


def default_config_path() -> Path:
    return home() / "config.yaml"


def load_config(config_file: Optional[Path] = None) -> TagaloopConfig:
    """Load configuration from disk.

    Args:
        config_file: Explicit config path. Defaults to
            ``$TAGALOOP_HOME/config.yaml``.

    Returns:
        TagaloopConfig loaded from YAML, or defaults.
    """
    config_file = config_file or default_config_path()
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            config = TagaloopConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError, OSError) as exc:
            logger.warning("Failed to load config %s: %s — using defaults", config_file, exc)
            return TagaloopConfig()
        if config.history_file is not None:
            config.history_file = config.history_file.expanduser()
        if config.log_file is not None:
            config.log_file = config.log_file.expanduser()
        return config
    return TagaloopConfig()


def setup_logging(config: TagaloopConfig) -> None:
    """Configure file or stderr logging for the ``tagaloop`` logger tree."""
    root = logging.getLogger("tagaloop")
    if root.handlers:
        return
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(config.log_file)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        level = max(level, logging.WARNING)

    root.addHandler(handler)
    root.setLevel(level)
