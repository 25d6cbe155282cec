"""handler.py - Forwards buffered log records to Sentry as messages.

SentryLogHandler is a ``logging.handlers.BufferingHandler``: records are held
in memory until the buffer reaches ``capacity`` (or ``flush()`` / ``close()``
is called), then every buffered record is sent to Sentry as one captured
message, in buffer order.

Design contract:
    - One ``capture_message`` call per record, sequential and synchronous.
      No batching, no retry.
    - ``export()`` is not fault-isolated: the first failing capture aborts
      the rest of the flush and its error propagates to whoever flushed.
    - Records from the ``sentrylog`` loggers themselves are never buffered,
      so the component's "logged to Sentry" lines are not sent back to Sentry.

Typical usage:
    import logging
    from sentrylog import SentryComponent, SentryLogHandler

    sentry = SentryComponent(app)
    handler = SentryLogHandler(app=app, capacity=50, level=logging.WARNING)
    logging.getLogger().addHandler(handler)
"""

import logging
from logging.handlers import BufferingHandler
from typing import Iterable, List, Optional, Sequence

from .component import SentryComponent, get_sentry_client
from .entry import LogEntry
from .errors import InvalidConfigError


class SentryLogHandler(BufferingHandler):
    """A buffering logging.Handler whose flush sends each record to Sentry.

    Attributes:
        client (SentryComponent): The component every record is sent through.
        except_categories (tuple): Logger-name prefixes that are never sent.
    """

    def __init__(
        self,
        client: Optional[SentryComponent] = None,
        app=None,
        client_id: str = "sentry",
        capacity: int = 100,
        level: int = logging.NOTSET,
        except_categories: Sequence[str] = ("sentrylog",),
    ) -> None:
        """Initialise the handler and resolve its SentryComponent.

        Args:
            client: The component to send through. Takes precedence over
                ``app``.
            app: A Flask app whose ``extensions[client_id]`` holds the
                component.
            client_id: Registry id used with ``app``.
            capacity: Number of records buffered before an automatic flush.
            level: Minimum level handled.
            except_categories: Logger-name prefixes to drop.

        Raises:
            InvalidConfigError: If no component can be resolved.
        """
        super().__init__(capacity)
        self.setLevel(level)
        self.client_id = client_id
        self.except_categories = tuple(except_categories)
        if client is None:
            if app is None:
                raise InvalidConfigError(
                    "SentryLogHandler needs either a client or an app to resolve "
                    f'client id "{client_id}" from.'
                )
            client = get_sentry_client(app, client_id)
        self.client = client

    # ---------------------------------------------------------------------- #
    # logging.Handler interface
    # ---------------------------------------------------------------------- #

    def filter(self, record: logging.LogRecord):
        if self._is_excepted(record.name):
            return False
        return super().filter(record)

    def emit(self, record: logging.LogRecord) -> None:
        """Buffer ``record``; flush when the buffer is full.

        A failure while flushing is routed to ``handleError`` so that
        application logging calls never raise.
        """
        try:
            super().emit(record)
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Empty the buffer and export its records.

        The buffer is emptied before exporting, so records are never sent
        twice even when the export fails part-way.
        """
        self.acquire()
        try:
            records, self.buffer = self.buffer, []
        finally:
            self.release()
        if records:
            self.export(entries_from_records(records))

    # ---------------------------------------------------------------------- #
    # Export
    # ---------------------------------------------------------------------- #

    def export(self, entries: Iterable[LogEntry]) -> None:
        """Send each entry to Sentry as a message, in order.

        Raises:
            SentryClientError: From the first capture that fails; entries
                after it are not sent.
            InvalidParamError: If an entry's text exceeds the message limit.
        """
        client = self.client
        for entry in entries:
            text, _, category, _ = entry
            client.capture_message(
                text,
                [],
                {
                    "extra": {
                        "message": text,
                        "level": entry.level_name,
                        "log_time": entry.log_time,
                    },
                    "tags": {"category": category},
                },
            )

    def _is_excepted(self, name: str) -> bool:
        for prefix in self.except_categories:
            if name == prefix or name.startswith(prefix + "."):
                return True
        return False


def entries_from_records(records: Iterable[logging.LogRecord]) -> List[LogEntry]:
    """Convert LogRecords into LogEntry objects, keeping their order."""
    return [LogEntry.from_record(record) for record in records]
