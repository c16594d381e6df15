"""Capped, newest-first log of operator-facing collection messages."""

from collections import deque

from collector.logging import get_logger
from collector.models import LogEntry, LogLevel

logger = get_logger(__name__)


class LogBook:
    """Keeps the most recent ``capacity`` entries; the oldest are dropped.

    Every entry is also emitted to structlog as ``collection_log``.
    """

    def __init__(self, capacity: int = 100) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        """Record a message and return the stored entry."""
        entry = LogEntry(level=level, message=message)
        self._entries.appendleft(entry)

        if level is LogLevel.ERROR:
            logger.error("collection_log", message=message, entry_id=entry.id)
        elif level is LogLevel.WARN:
            logger.warning("collection_log", message=message, entry_id=entry.id)
        elif level is LogLevel.SUCCESS:
            logger.info("collection_log", message=message, entry_id=entry.id, outcome="success")
        else:
            logger.info("collection_log", message=message, entry_id=entry.id)
        return entry

    def entries(self) -> list[LogEntry]:
        """Entries newest first."""
        return list(self._entries)
