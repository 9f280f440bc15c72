"""
Logging setup shared by the API process and the maintenance scripts.

Everything logs through ``logging.getLogger(__name__)``; this module
only decides where records go.  Level and file come from ``LOG_LEVEL``
and ``LOG_FILE`` unless the caller passes them explicitly.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from .config import settings


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# httpx logs one INFO line per Nominatim call.
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    level: Optional[str] = None,
    logfile: Optional[str] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the root logger.

    Calling it again is a no-op once the root logger has handlers, so
    ``create_app`` and the scripts can both call it unconditionally.

    Parameters
    ----------
    level : Optional[str]
        Level name, case insensitive.  Defaults to ``settings.log_level``.
    logfile : Optional[str]
        Extra file to write to.  Defaults to ``settings.log_file``; an
        empty value means console only.
    quiet : Iterable[str]
        Logger names capped at WARNING.
    """
    root = logging.getLogger()
    if root.handlers:
        return root

    level_name = (level or settings.log_level or "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    target = logfile if logfile is not None else settings.log_file
    if target:
        handlers.append(logging.FileHandler(Path(target).resolve(), encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
