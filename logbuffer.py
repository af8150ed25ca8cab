#!/usr/bin/env python3
# logbuffer.py – rev-l1  (2026-10-19)
"""
Process-wide log ring buffer for the in-app log window.

The handler is attached to the root logger once (install()); any thread
may log, the GUI reads snapshots through lines() / text().
"""

from __future__ import annotations
import logging, threading
from collections import deque
from typing import List, Optional

DEFAULT_CAPACITY = 1000
_FMT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class RingBufferHandler(logging.Handler):
    """Keeps the last *capacity* formatted records."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, level: int = logging.NOTSET):
        super().__init__(level)
        self._lines: deque[str] = deque(maxlen=capacity)
        self._buf_lock = threading.Lock()
        self.setFormatter(logging.Formatter(_FMT, "%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._buf_lock:
            self._lines.append(msg)

    def lines(self) -> List[str]:
        with self._buf_lock:
            return list(self._lines)

    def text(self) -> str:
        return "\n".join(self.lines())

    def clear(self) -> None:
        with self._buf_lock:
            self._lines.clear()


_handler: Optional[RingBufferHandler] = None
_install_lock = threading.Lock()


def install(level: int = logging.DEBUG,
            capacity: int = DEFAULT_CAPACITY) -> RingBufferHandler:
    """Attach the shared handler to the root logger (idempotent)."""
    global _handler
    with _install_lock:
        if _handler is None:
            _handler = RingBufferHandler(capacity, level)
            logging.getLogger().addHandler(_handler)
        return _handler


def get() -> Optional[RingBufferHandler]:
    return _handler


def uninstall() -> None:
    global _handler
    with _install_lock:
        if _handler is not None:
            logging.getLogger().removeHandler(_handler)
            _handler = None
