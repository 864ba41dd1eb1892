"""
Application Logger

Sets up the ``formapro`` logger tree from the LOG_* settings: console
output, an optional log file and an optional one-line JSON format for log
shippers. Also provides a decorator timing calls to slow collaborators
(document extraction, the question generation service).
"""

import sys
import json
import time
import asyncio
import logging
import datetime
import functools
from pathlib import Path
from typing import Any, Callable, Dict, MutableMapping, Optional, Tuple, TypeVar, Union

from formapro.config import settings

ROOT_LOGGER_NAME = "formapro"
TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

F = TypeVar('F', bound=Callable[..., Any])

__all__ = [
    'configure_logger',
    'get_logger',
    'LoggerAdapter',
    'JsonFormatter',
    'app_logger',
    'log_execution_time'
]


class JsonFormatter(logging.Formatter):
    """
    Renders a record as one JSON object per line.

    Context attached by :class:`LoggerAdapter` (``record.data``) is merged
    into the top level, so ``seance_id`` or ``evaluation_id`` become
    searchable fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.lineno}",
        }

        context = getattr(record, "data", None)
        if isinstance(context, dict):
            entry.update(context)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


def _build_handlers(formatter: logging.Formatter, log_file: Optional[str]) -> list:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    handlers = [console]

    if log_file:
        path = Path(log_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Log file {log_file} unavailable, logging to console only: {e}\n")
        else:
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

    return handlers


def configure_logger(
    level: Union[str, int] = "INFO",
    use_json: bool = False,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    (Re)configure the application logger.

    Args:
        level: Level name or number
        use_json: Emit one JSON object per record instead of text lines
        log_file: Also write to this file (parent directories are created)

    Returns:
        The ``formapro`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    formatter = JsonFormatter() if use_json else logging.Formatter(TEXT_FORMAT, TEXT_DATE_FORMAT)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(formatter, log_file):
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Logger placed under the application logger.

    ``formapro.evaluations.service`` and ``evaluations.service`` name the
    same logger.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class LoggerAdapter(logging.LoggerAdapter):
    """Adds a fixed context (ids of the objects being worked on) to every record."""

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(context or {}))

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["data"] = {**(extra.get("data") or {}), **self.extra}
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **context: Any) -> 'LoggerAdapter':
        return LoggerAdapter(self.logger, {**self.extra, **context})


def _initial_logger() -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if logger.handlers:
        return logger
    return configure_logger(
        level=settings.LOG_LEVEL,
        use_json=settings.LOG_JSON,
        log_file=settings.LOG_FILE,
    )


app_logger = _initial_logger()


def log_execution_time(logger: Optional[logging.Logger] = None) -> Callable[[F], F]:
    """
    Log how long each call of the decorated function takes.

    Successful calls are logged at DEBUG, failures at ERROR with the
    exception message; the exception is re-raised. Works for plain functions
    and coroutine functions.
    """
    target = logger or app_logger

    def report(name: str, started: float, error: Optional[BaseException] = None) -> None:
        elapsed = time.perf_counter() - started
        if error is None:
            target.debug(f"{name} executed in {elapsed:.3f} seconds")
        else:
            target.error(f"{name} failed after {elapsed:.3f} seconds: {error}")

    def decorator(func: F) -> F:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_timed(*args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    report(func.__name__, started, e)
                    raise
                report(func.__name__, started)
                return result
            return async_timed  # type: ignore[return-value]

        @functools.wraps(func)
        def timed(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(func.__name__, started, e)
                raise
            report(func.__name__, started)
            return result
        return timed  # type: ignore[return-value]

    return decorator
