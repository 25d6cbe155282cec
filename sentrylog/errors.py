"""errors.py - Exception taxonomy for SentryLog.

Three kinds of failure leave this package:

    InvalidConfigError   unresolvable client id, oversized default tags,
                         malformed configuration values. Raised immediately.
    InvalidParamError    outgoing data that violates a Sentry limit (e.g. a
                         message longer than 2048 bytes). Raised before any
                         network interaction.
    SentryClientError    anything the Sentry SDK raised while building or
                         sending an event, wrapped for the caller.

UnhandledError is not raised by SentryLog itself; it is the synthetic
exception built for errors recorded by ``sentrylog.lasterror``.
"""

from typing import Optional


class SentryLogError(Exception):
    """Base class for all errors raised by SentryLog."""


class SentryClientError(SentryLogError):
    """The Sentry SDK failed while creating a client or capturing an event.

    Attributes:
        code (int): Numeric code copied from the original error when it
            carried one (``errno``-style), otherwise 0.
    """

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.code = code


class InvalidConfigError(SentryLogError, ValueError):
    """SentryLog was configured with a value it cannot work with."""


class InvalidParamError(SentryLogError, ValueError):
    """A capture call was given data that Sentry would reject."""


class UnhandledError(Exception):
    """Synthetic exception describing an error recorded outside a request.

    Attributes:
        message (str): The recorded error message.
        code: The recorded severity (an ``ErrorSeverity`` member).
        filename (str): File in which the error occurred, if known.
        lineno (int): Line on which the error occurred, if known.
    """

    def __init__(
        self,
        message: str,
        code=None,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.filename = filename
        self.lineno = lineno

    def __str__(self) -> str:
        if self.filename:
            return f"{self.message} ({self.filename}:{self.lineno})"
        return self.message


def error_code(exc: BaseException) -> int:
    """Return the integer code carried by ``exc``, or 0 when it has none."""
    for attr in ("code", "errno"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return 0
