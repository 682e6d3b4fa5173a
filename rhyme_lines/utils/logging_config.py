"""Process-level logging setup for the editor host, scripts and smoke UI."""

from __future__ import annotations

import logging
import os
from typing import Optional

LOG_LEVEL_ENV = "RHYME_LINES_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"

# HTTP clients used by the dictionary fetch and gradio log every request at INFO.
_CHATTY_LOGGERS = ("urllib3", "httpx", "httpcore")

_configured = False


def _resolve_level(level: str | int | None) -> int:
    if level is None or level == "":
        return logging.INFO
    if isinstance(level, int):
        return level
    text = str(level).strip()
    if text.isdigit():
        return int(text)
    resolved = logging.getLevelName(text.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Optional[str | int] = None, *, force: bool = False) -> None:
    """Install the root handler once and set the ``rhyme_lines`` logger level.

    ``level`` wins over the ``RHYME_LINES_LOG_LEVEL`` environment variable;
    unknown names resolve to ``INFO``. Later calls are no-ops unless ``force``
    is set. The thread name is part of the format so worker-thread records
    stand out from caller-thread ones.
    """

    global _configured
    if _configured and not force:
        return

    resolved = _resolve_level(level if level is not None else os.environ.get(LOG_LEVEL_ENV))
    logging.basicConfig(level=resolved, format=LOG_FORMAT, force=force)
    logging.getLogger("rhyme_lines").setLevel(resolved)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    _configured = True


__all__ = ["LOG_FORMAT", "LOG_LEVEL_ENV", "configure_logging"]
