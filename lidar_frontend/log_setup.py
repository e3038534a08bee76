"""Per-module loggers sharing a ring buffer of recent messages."""

from __future__ import annotations

import logging
import sys
import tempfile
import threading
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Optional

_LOG_FORMAT = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"

_lock = threading.RLock()
_default_logger: logging.Logger = logging.getLogger("lidar_frontend")
_ringbuffer: Optional["RingBufferHandler"] = None
_module_loggers: Dict[str, logging.Logger] = {}


class RingBufferHandler(logging.Handler):
    """Keeps the most recent formatted log messages in memory."""

    def __init__(self, buffer_size: int = 128, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        self._messages: Deque[str] = deque(maxlen=buffer_size)
        self.setFormatter(logging.Formatter(_LOG_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        self._messages.append(message)

    def last_formatted(self, limit: int = 0) -> List[str]:
        """The newest ``limit`` messages, oldest first; all of them when ``limit`` is 0."""
        messages = list(self._messages)
        return messages[-limit:] if limit > 0 else messages


def get_default_logger() -> logging.Logger:
    """The logger whose level decides how verbose new module loggers are."""
    with _lock:
        return _default_logger


def set_default_logger(logger: logging.Logger) -> None:
    """Replace the default logger; ``logger`` must be a ``logging.Logger``."""
    global _default_logger
    if not isinstance(logger, logging.Logger):
        raise TypeError(f"expected a logging.Logger, got {type(logger).__name__}")
    with _lock:
        _default_logger = logger


def get_ringbuffer_sink(buffer_size: int = 128) -> RingBufferHandler:
    """The shared ring buffer, created with ``buffer_size`` on first use."""
    global _ringbuffer
    with _lock:
        if _ringbuffer is None:
            _ringbuffer = RingBufferHandler(buffer_size)
        return _ringbuffer


def create_module_logger(module_name: str) -> logging.Logger:
    """Return the logger for ``module_name``, creating it on first use.

    New loggers write to stdout and to the shared ring buffer. When the default
    logger is more verbose than INFO they also write to a per-module file in
    the temporary directory and take over the default logger's level.
    """
    with _lock:
        existing = _module_loggers.get(module_name)
        if existing is not None:
            return existing

        logger = logging.getLogger(f"lidar_frontend.{module_name}")
        logger.propagate = False
        logger.setLevel(logging.INFO)

        formatter = logging.Formatter(_LOG_FORMAT)
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)
        logger.addHandler(get_ringbuffer_sink())

        default_level = get_default_logger().getEffectiveLevel()
        if default_level < logging.INFO:
            path = Path(tempfile.gettempdir()) / f"lidar_frontend_{module_name}.log"
            file_handler = logging.FileHandler(path, mode="w")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
            logger.setLevel(default_level)

        _module_loggers[module_name] = logger
        return logger