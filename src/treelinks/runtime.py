from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_level() -> int | None:
    raw = os.getenv("TREELINKS_LOG_LEVEL", "").strip().upper()
    if not raw:
        return None
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else None


def configure_logging(level: int = logging.INFO) -> None:
    level = _env_level() or level
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
