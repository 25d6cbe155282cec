"""errorhandler.py - Sends Flask's unhandled exceptions and recorded errors to Sentry.

SentryErrorHandler hooks two independent points of a Flask application:

    before_request  ``on_shutdown()`` looks at the last error recorded by
                    ``sentrylog.lasterror`` (uncaught exceptions outside a
                    request, interpreter warnings) and reports it if its
                    severity is fatal or compile-time.

    log_exception   ``log_exception()`` reports an exception that reached
                    Flask's top-level handler, then calls Flask's own
                    ``log_exception``. Capture always runs first; if it
                    fails, the error propagates and Flask's logging is not
                    reached.

Typical usage:
    from sentrylog import SentryComponent, SentryErrorHandler

    sentry = SentryComponent(app)
    SentryErrorHandler(app)
"""

from typing import Optional

from . import lasterror
from .component import SentryComponent, get_sentry_client
from .errors import InvalidConfigError, UnhandledError

_EXTENSION_KEY = "sentrylog.errorhandler"


class SentryErrorHandler:
    """Flask error hooks that forward errors to a SentryComponent."""

    def __init__(
        self,
        app=None,
        client: Optional[SentryComponent] = None,
        client_id: str = "sentry",
        install_hooks: bool = True,
    ) -> None:
        self.client_id = client_id
        self.install_hooks = install_hooks
        self._client = client
        self._parent_log_exception = None

        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        """Resolve the client and register the hooks on ``app``.

        Calling it again for the same app does nothing.

        Raises:
            InvalidConfigError: If no SentryComponent is registered under
                ``client_id`` and none was passed in, or if another
                SentryErrorHandler is already installed on ``app``.
        """
        installed = app.extensions.get(_EXTENSION_KEY)
        if installed is self:
            return
        if installed is not None:
            raise InvalidConfigError(
                "A SentryErrorHandler is already installed on this app."
            )

        if self._client is None:
            self._client = get_sentry_client(app, self.client_id)

        app.before_request(self.on_shutdown)
        self._parent_log_exception = app.log_exception
        app.log_exception = self.log_exception
        app.extensions[_EXTENSION_KEY] = self

        if self.install_hooks:
            lasterror.install()

    def get_sentry_client(self) -> SentryComponent:
        if self._client is None:
            raise InvalidConfigError(
                f'SentryErrorHandler client id "{self.client_id}" is invalid.'
            )
        return self._client

    def on_shutdown(self) -> None:
        """Report the last recorded error if its severity is captured."""
        error = lasterror.get_last_error()
        if error is None:
            return None
        if error.severity in lasterror.CAPTURED_SEVERITIES:
            self.get_sentry_client().capture_exception(
                self.create_error_exception(
                    error.message, error.severity, error.filename, error.lineno
                )
            )
            lasterror.clear_last_error()
        return None

    def log_exception(self, exc_info) -> None:
        """Capture the exception, then hand it to Flask's default logging.

        Args:
            exc_info: The ``(type, value, traceback)`` tuple Flask passes,
                or a bare exception.
        """
        if not isinstance(exc_info, tuple):
            exc_info = (type(exc_info), exc_info, exc_info.__traceback__)
        self.get_sentry_client().capture_exception(exc_info[1])

        if self._parent_log_exception is not None:
            self._parent_log_exception(exc_info)

    def create_error_exception(self, message, code, filename, lineno) -> UnhandledError:
        return UnhandledError(message, code, filename, lineno)
