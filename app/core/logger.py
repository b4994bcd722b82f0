"""
Logging for the push worker.

Every module logs through children of one "lendpush" logger, configured once
per process. Lines carry the thread name because cycles run on the Celery
main thread while health routes answer from the uvicorn thread.
"""
import logging
import sys
from pathlib import Path
from typing import List, Optional

from app.core.config import settings

ROOT_LOGGER_NAME = "lendpush"
LOG_DIR = Path("logs")

LOG_FORMAT = "%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _resolve_level() -> int:
    if settings.DEBUG:
        return logging.DEBUG
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def _build_handlers(level: int, formatter: logging.Formatter) -> List[logging.Handler]:
    stream = logging.StreamHandler(sys.stdout)
    stream.setLevel(level)
    handlers: List[logging.Handler] = [stream]

    # worker.log mirrors stdout, errors.log keeps failed deliveries and store faults
    try:
        LOG_DIR.mkdir(exist_ok=True)
        worker_file = logging.FileHandler(LOG_DIR / "worker.log", encoding="utf-8")
        worker_file.setLevel(level)
        error_file = logging.FileHandler(LOG_DIR / "errors.log", encoding="utf-8")
        error_file.setLevel(logging.ERROR)
        handlers.extend([worker_file, error_file])
    except OSError as e:
        sys.stderr.write(f"lendpush: file logging disabled ({e})\n")

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


class AppLogger:
    """Configures the root worker logger on first use."""

    _root: Optional[logging.Logger] = None

    @classmethod
    def root(cls) -> logging.Logger:
        if cls._root is None:
            cls._root = cls._configure()
        return cls._root

    @classmethod
    def _configure(cls) -> logging.Logger:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        level = _resolve_level()
        logger.setLevel(level)
        # Celery installs its own root handlers; keep worker lines single
        logger.propagate = False

        if not logger.handlers:
            formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
            for handler in _build_handlers(level, formatter):
                logger.addHandler(handler)

        return logger


def get_logger(module_name: Optional[str] = None) -> logging.Logger:
    """
    Logger for a module, e.g. `get_logger(__name__)` in
    app.services.batch_processor yields "lendpush.batch_processor".
    """
    root = AppLogger.root()
    if not module_name:
        return root
    return root.getChild(module_name.rsplit(".", 1)[-1])
