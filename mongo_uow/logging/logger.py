import sys
from pathlib import Path
from contextvars import ContextVar
from typing import List, Optional, Union
from loguru import logger
from mongo_uow.config import settings

# Trace id of the unit of work currently driving this async context
_current_trace_id: ContextVar[Optional[str]] = ContextVar("current_trace_id", default=None)

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<magenta>uow:{extra[trace_id]}</magenta> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | uow:{extra[trace_id]} - {message}"


class LogConfig:
    """Loguru sinks for applications embedding mongo_uow."""

    @classmethod
    def setup_logging(
        cls,
        level: Optional[str] = None,
        log_dir: Optional[Union[str, Path]] = None,
        console: bool = True,
        enqueue: bool = True,
    ) -> List[int]:
        """
        Replace every loguru sink with a console sink, a daily data-access log
        and an error log under `log_dir` (default `settings.LOG_DIR`).

        Returns the ids of the added sinks so callers can `logger.remove()` them.
        """
        level = level or settings.LOG_LEVEL
        log_dir = Path(log_dir or settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.remove()
        logger.configure(extra={"trace_id": "system"})

        sink_ids = []
        if console:
            sink_ids.append(logger.add(sys.stdout, enqueue=enqueue, format=CONSOLE_FORMAT, level=level))
        sink_ids.append(logger.add(
            log_dir / "mongo_uow_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            compression="zip",
            enqueue=enqueue,
            format=FILE_FORMAT,
            level=level,
        ))
        sink_ids.append(logger.add(
            log_dir / "error_{time:YYYY-MM-DD}.log",
            rotation="100 MB",
            enqueue=enqueue,
            format=FILE_FORMAT,
            level="ERROR",
        ))
        return sink_ids


def set_trace_id(trace_id: Optional[str]):
    """Bind trace_id to the current async context; returns a token for reset_trace_id."""
    return _current_trace_id.set(trace_id)


def reset_trace_id(token) -> None:
    _current_trace_id.reset(token)


class _ContextLogger:
    """Proxy that binds the context trace_id at call time, not at import time."""

    def __init__(self, name: Optional[str] = None):
        self._name = name

    def __getattr__(self, item):
        trace_id = _current_trace_id.get() or "unknown"
        if self._name:
            bound = logger.bind(name=self._name, trace_id=trace_id)
        else:
            bound = logger.bind(trace_id=trace_id)
        return getattr(bound, item)


def get_logger(name: str = None):
    """Get logger instance; trace_id comes from the active unit of work context."""
    return _ContextLogger(name)
