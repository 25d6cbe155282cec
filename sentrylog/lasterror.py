"""lasterror.py - Records the last error that escaped normal handling.

Flask only routes exceptions raised *inside* a request through its error
handler. Errors that escape elsewhere (a crashed worker thread, an uncaught
exception at import time, a warning emitted by the interpreter) never reach
it. This module keeps the most recent of those in a single process-wide slot,
tagged with a severity, so that SentryErrorHandler can report it the next
time a request starts.

    install()          chain sys.excepthook, threading.excepthook and
                       warnings.showwarning so they record into the slot
    get_last_error()   the most recent LastError, or None
    clear_last_error() empty the slot

Severities mirror the classic interpreter error levels. Only the fatal and
compile-time ones are in ``CAPTURED_SEVERITIES``; ordinary warnings and
notices are recorded but not reported.
"""

import enum
import sys
import threading
import traceback
import warnings
from typing import NamedTuple, Optional


class ErrorSeverity(enum.Enum):
    FATAL_ERROR = "fatal error"
    PARSE_ERROR = "parse error"
    CORE_ERROR = "core error"
    CORE_WARNING = "core warning"
    COMPILE_ERROR = "compile error"
    COMPILE_WARNING = "compile warning"
    STRICT = "strict standards"
    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"


CAPTURED_SEVERITIES = frozenset(
    {
        ErrorSeverity.FATAL_ERROR,
        ErrorSeverity.PARSE_ERROR,
        ErrorSeverity.CORE_ERROR,
        ErrorSeverity.CORE_WARNING,
        ErrorSeverity.COMPILE_ERROR,
        ErrorSeverity.COMPILE_WARNING,
        ErrorSeverity.STRICT,
    }
)


class LastError(NamedTuple):
    message: str
    severity: ErrorSeverity
    filename: Optional[str] = None
    lineno: Optional[int] = None


_last_error: Optional[LastError] = None

# Previous hooks, kept so uninstall() can restore them.
_previous = {}


def severity_for_exception(exc: BaseException) -> ErrorSeverity:
    """Classify an uncaught exception."""
    if isinstance(exc, SyntaxError):
        return ErrorSeverity.PARSE_ERROR
    if isinstance(exc, ImportError):
        return ErrorSeverity.COMPILE_ERROR
    if isinstance(exc, SystemError):
        return ErrorSeverity.CORE_ERROR
    return ErrorSeverity.FATAL_ERROR


def severity_for_warning(category) -> ErrorSeverity:
    """Classify a warning category."""
    if issubclass(category, SyntaxWarning):
        return ErrorSeverity.COMPILE_WARNING
    if issubclass(category, ImportWarning):
        return ErrorSeverity.CORE_WARNING
    if issubclass(category, (DeprecationWarning, PendingDeprecationWarning)):
        return ErrorSeverity.STRICT
    if issubclass(category, RuntimeWarning):
        return ErrorSeverity.WARNING
    return ErrorSeverity.NOTICE


def record_exception(exc: BaseException) -> LastError:
    """Store ``exc`` as the last error, located at its innermost frame."""
    global _last_error
    filename, lineno = None, None
    if isinstance(exc, SyntaxError):
        filename, lineno = exc.filename, exc.lineno
    elif exc.__traceback__ is not None:
        frame = traceback.extract_tb(exc.__traceback__)[-1]
        filename, lineno = frame.filename, frame.lineno

    _last_error = LastError(str(exc), severity_for_exception(exc), filename, lineno)
    return _last_error


def record_warning(message, category, filename: Optional[str] = None, lineno: Optional[int] = None) -> LastError:
    """Store a warning as the last error."""
    global _last_error
    _last_error = LastError(str(message), severity_for_warning(category), filename, lineno)
    return _last_error


def get_last_error() -> Optional[LastError]:
    return _last_error


def clear_last_error() -> None:
    global _last_error
    _last_error = None


# ---------------------------------------------------------------------------
# Interpreter hooks
# ---------------------------------------------------------------------------


def _excepthook(exc_type, exc, tb):
    if exc is not None and not isinstance(exc, KeyboardInterrupt):
        record_exception(exc)
    _previous["excepthook"](exc_type, exc, tb)


def _threading_excepthook(args):
    if args.exc_value is not None and not issubclass(args.exc_type, SystemExit):
        record_exception(args.exc_value)
    _previous["threading_excepthook"](args)


def _showwarning(message, category, filename, lineno, file=None, line=None):
    record_warning(message, category, filename, lineno)
    _previous["showwarning"](message, category, filename, lineno, file, line)


def install() -> None:
    """Chain the recording hooks in front of the current ones. Idempotent."""
    if _previous:
        return
    _previous["excepthook"] = sys.excepthook
    _previous["threading_excepthook"] = threading.excepthook
    _previous["showwarning"] = warnings.showwarning
    sys.excepthook = _excepthook
    threading.excepthook = _threading_excepthook
    warnings.showwarning = _showwarning


def uninstall() -> None:
    """Restore the hooks that were active before install()."""
    if not _previous:
        return
    sys.excepthook = _previous.pop("excepthook")
    threading.excepthook = _previous.pop("threading_excepthook")
    warnings.showwarning = _previous.pop("showwarning")


def is_installed() -> bool:
    return bool(_previous)
