"""
Route sat_quiz log records into a queue a UI console can poll.

Records arrive as ``(message, level_name)`` tuples. DEBUG is shown as INFO
since a console only distinguishes info, warnings and errors.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from logging.handlers import QueueHandler
from queue import Queue
from typing import Iterator, Optional, Tuple

PACKAGE_LOGGER = "sat_quiz"

_CONSOLE_LEVELS = {"DEBUG": "INFO"}


class QueueLogHandler(QueueHandler):
    """QueueHandler that enqueues plain ``(message, level_name)`` tuples."""

    def __init__(self, log_queue: Queue, level: int = logging.INFO):
        super().__init__(log_queue)
        self.setLevel(level)

    def prepare(self, record: logging.LogRecord) -> Tuple[str, str]:
        level_name = _CONSOLE_LEVELS.get(record.levelname, record.levelname)
        return self.format(record), level_name


def attach_queue_handler(
    log_queue: Queue,
    logger_name: Optional[str] = PACKAGE_LOGGER,
    level: int = logging.INFO,
) -> QueueLogHandler:
    """
    Start forwarding records from ``logger_name`` to ``log_queue``.

    The logger's own level is lowered to ``level`` when it would otherwise
    filter those records out before they reach the handler.
    """
    target = logging.getLogger(logger_name)
    handler = QueueLogHandler(log_queue, level=level)
    target.addHandler(handler)
    if target.level == logging.NOTSET or target.level > level:
        target.setLevel(level)
    return handler


def detach_queue_handler(handler: QueueLogHandler, logger_name: Optional[str] = PACKAGE_LOGGER) -> None:
    logging.getLogger(logger_name).removeHandler(handler)


@contextmanager
def capture_logs(
    log_queue: Queue,
    logger_name: Optional[str] = PACKAGE_LOGGER,
    level: int = logging.INFO,
) -> Iterator[QueueLogHandler]:
    """Forward records to ``log_queue`` for the duration of a ``with`` block."""
    handler = attach_queue_handler(log_queue, logger_name, level)
    try:
        yield handler
    finally:
        detach_queue_handler(handler, logger_name)
