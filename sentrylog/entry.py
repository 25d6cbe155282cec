"""entry.py - The unit of work handed to SentryLogHandler.export().

A LogEntry is the decomposed form of one buffered ``logging.LogRecord``:
the rendered text, the level name, the category (logger name) and the
wall-clock creation time. Entries are built once when the handler flushes,
consumed once by ``export()`` and then discarded.
"""

import logging
from datetime import datetime

LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogEntry:
    """An immutable log entry ready to be forwarded to Sentry.

    Attributes:
        text (str): The fully rendered log message.
        level (int): The ``logging`` level constant of the original record.
        category (str): The name of the logger that produced the record.
        timestamp (float): Seconds since the epoch, as ``record.created``.
    """

    __slots__ = ("text", "level", "category", "timestamp")

    def __init__(self, text: str, level: int, category: str, timestamp: float) -> None:
        object.__setattr__(self, "text", text)
        object.__setattr__(self, "level", level)
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "timestamp", timestamp)

    def __setattr__(self, name, value):
        raise AttributeError(f"LogEntry is immutable; cannot set {name!r}")

    def __iter__(self):
        # Allows ``text, level, category, timestamp = entry``.
        return iter((self.text, self.level, self.category, self.timestamp))

    def __eq__(self, other) -> bool:
        if not isinstance(other, LogEntry):
            return NotImplemented
        return tuple(self) == tuple(other)

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:  # pragma: no cover
        return f"LogEntry({self.level_name}, {self.category!r}, {self.text!r})"

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEntry":
        """Build an entry from a LogRecord, rendering its message arguments."""
        return cls(record.getMessage(), record.levelno, record.name, record.created)

    @property
    def level_name(self) -> str:
        """Lower-case level name, e.g. ``"warning"``."""
        return logging.getLevelName(self.level).lower()

    @property
    def log_time(self) -> str:
        """The timestamp formatted as ``YYYY-MM-DD HH:MM:SS`` in local time."""
        return datetime.fromtimestamp(self.timestamp).strftime(LOG_TIME_FORMAT)
