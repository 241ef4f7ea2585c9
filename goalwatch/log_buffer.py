"""In-memory ring buffer of resolver activity, served at /api/logs."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

RESOLVER_LOGGERS: tuple[str, ...] = (
    "goalwatch.main",
    "goalwatch.resolution.scheduler",
    "goalwatch.resolution.store",
    "goalwatch.resolution.retention",
    "goalwatch.fixtures.client",
    "goalwatch.settings",
)


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    level: str
    levelno: int
    logger: str
    message: str


class BufferHandler(logging.Handler):
    """Keeps the last *maxlen* records in a deque."""

    def __init__(self, maxlen: int = 200) -> None:
        super().__init__()
        self._buffer: deque[LogEntry] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = LogEntry(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc)
                .strftime("%Y-%m-%d %H:%M:%S UTC"),
                level=record.levelname,
                levelno=record.levelno,
                logger=record.name,
                message=self.format(record),
            )
            self._buffer.append(entry)
        except Exception:
            self.handleError(record)

    def entries(self, limit: int = 100, min_level: int = logging.NOTSET) -> list[dict]:
        """Newest first, at most *limit*, skipping records below *min_level*."""
        items = [entry for entry in self._buffer if entry.levelno >= min_level]
        items = items[-limit:] if limit > 0 else []
        items.reverse()
        return [asdict(entry) for entry in items]

    def clear(self) -> None:
        self._buffer.clear()


_handler: BufferHandler | None = None


def get_buffer_handler() -> BufferHandler:
    global _handler
    if _handler is None:
        _handler = BufferHandler(maxlen=200)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        _handler.setLevel(logging.DEBUG)
    return _handler


def install_buffer_handler() -> BufferHandler:
    handler = get_buffer_handler()
    for name in RESOLVER_LOGGERS:
        lg = logging.getLogger(name)
        if handler not in lg.handlers:
            lg.addHandler(handler)
        lg.setLevel(logging.DEBUG)
    return handler
