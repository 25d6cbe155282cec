"""sentrylog/__init__.py - Public API for the SentryLog package.

SentryLog forwards a Flask application's log records, handled exceptions and
unhandled errors to Sentry. Delivery itself is left to ``sentry-sdk``; this
package decides *what* is sent, *when*, and what happens when sending fails.

Quick start:
    import logging
    from flask import Flask
    from sentrylog import SentryComponent, SentryErrorHandler, SentryLogHandler

    app = Flask(__name__)
    app.config["SENTRY_DSN"] = "https://key@o0.ingest.sentry.io/1"
    app.config["SENTRY_ENVIRONMENT"] = "production"

    # 1. The component owns the Sentry client and registers itself in
    #    app.extensions["sentry"]
    sentry = SentryComponent(app)

    # 2. Report exceptions that reach Flask's top-level handler
    SentryErrorHandler(app)

    # 3. Send buffered log records as Sentry messages
    logging.getLogger().addHandler(SentryLogHandler(app=app, level=logging.WARNING))

Exported names:
    SentryComponent:    Gateway to Sentry (gating, limits, event-id ledger).
    SentryLogHandler:   Buffering logging.Handler that exports to Sentry.
    SentryErrorHandler: Flask hooks for unhandled exceptions and recorded errors.
    SentryConfig:       Frozen configuration dataclass.
    LogEntry:           One decomposed log record handed to export().
"""

from .component import SentryComponent, get_sentry_client
from .config import SentryConfig, load_config
from .entry import LogEntry
from .errorhandler import SentryErrorHandler
from .errors import (
    InvalidConfigError,
    InvalidParamError,
    SentryClientError,
    SentryLogError,
    UnhandledError,
)
from .handler import SentryLogHandler

__all__ = [
    "SentryComponent",
    "SentryLogHandler",
    "SentryErrorHandler",
    "SentryConfig",
    "load_config",
    "get_sentry_client",
    "LogEntry",
    "SentryLogError",
    "SentryClientError",
    "InvalidConfigError",
    "InvalidParamError",
    "UnhandledError",
]
__version__ = "0.1.0"
