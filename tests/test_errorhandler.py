"""test_errorhandler.py - Tests for SentryErrorHandler.

Covers:
    - Client resolution at init_app (explicit, registry, missing id)
    - init_app is idempotent per app; a second handler is rejected
    - log_exception captures first, then calls Flask's own log_exception
    - A capture failure stops Flask's logging from running
    - on_shutdown reports captured severities and ignores the rest
    - Integration through the Flask test client
"""

import logging

import pytest

from sentrylog import lasterror
from sentrylog.component import SentryComponent
from sentrylog.errorhandler import SentryErrorHandler
from sentrylog.errors import InvalidConfigError, SentryClientError, UnhandledError
from sentrylog.lasterror import ErrorSeverity


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup(app, factory, **component_kwargs):
    sentry = SentryComponent(app, client_factory=factory, **component_kwargs)
    handler = SentryErrorHandler(app, install_hooks=False)
    return sentry, handler


def _exc_info(exc):
    try:
        raise exc
    except Exception as caught:
        return (type(caught), caught, caught.__traceback__)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_resolves_registered_client(self, app, factory):
        sentry, handler = _setup(app, factory)
        assert handler.get_sentry_client() is sentry

    def test_explicit_client_skips_registry(self, app, make_component):
        sentry = make_component()
        handler = SentryErrorHandler(app, client=sentry, install_hooks=False)
        assert handler.get_sentry_client() is sentry

    def test_missing_client_id_raises_at_init(self, app):
        with pytest.raises(InvalidConfigError, match='"sentry"'):
            SentryErrorHandler(app, install_hooks=False)

    def test_handler_without_app_has_no_client(self):
        handler = SentryErrorHandler()
        with pytest.raises(InvalidConfigError):
            handler.get_sentry_client()

    def test_init_app_installs_last_error_hooks(self, app, factory):
        SentryComponent(app, client_factory=factory)
        try:
            SentryErrorHandler(app)
            assert lasterror.is_installed()
        finally:
            lasterror.uninstall()

    def test_repeated_init_app_registers_hooks_once(self, app, factory):
        """A second init_app for the same app keeps Flask's log_exception as the parent."""
        _, handler = _setup(app, factory)
        parent = handler._parent_log_exception

        handler.init_app(app)

        assert handler._parent_log_exception is parent
        assert app.before_request_funcs[None].count(handler.on_shutdown) == 1

    def test_second_handler_on_same_app_raises(self, app, factory):
        _setup(app, factory)
        with pytest.raises(InvalidConfigError, match="already installed"):
            SentryErrorHandler(app, install_hooks=False)


# ---------------------------------------------------------------------------
# log_exception()
# ---------------------------------------------------------------------------


class TestLogException:
    def test_capture_runs_before_default_logging(self, app, factory):
        sentry, handler = _setup(app, factory)
        order = []
        handler._parent_log_exception = lambda exc_info: order.append(("flask", len(factory.client.calls)))

        exc_info = _exc_info(ValueError("bad order"))
        handler.log_exception(exc_info)

        assert factory.client.calls[0][0] == "exception"
        assert factory.client.calls[0][1] is exc_info[1]
        assert order == [("flask", 1)]
        assert sentry.logged_event_ids == ["event-1"]

    def test_capture_failure_skips_default_logging(self, app, factory):
        _, handler = _setup(app, factory, debug=True)
        called = []
        handler._parent_log_exception = lambda exc_info: called.append(exc_info)
        factory.client.fail_with = ConnectionError("network unreachable")

        with pytest.raises(SentryClientError):
            handler.log_exception(_exc_info(ValueError("bad order")))
        assert called == []

    def test_bare_exception_is_accepted(self, app, factory):
        _, handler = _setup(app, factory)
        received = []
        handler._parent_log_exception = received.append
        exc = ValueError("bare")

        handler.log_exception(exc)

        assert factory.client.calls[0][1] is exc
        assert received[0][1] is exc

    def test_gated_component_still_runs_default_logging(self, app, factory):
        app.config["SENTRY_ENABLED"] = False
        _, handler = _setup(app, factory)
        called = []
        handler._parent_log_exception = called.append

        handler.log_exception(_exc_info(ValueError("x")))
        assert len(called) == 1


# ---------------------------------------------------------------------------
# on_shutdown()
# ---------------------------------------------------------------------------


class TestOnShutdown:
    def test_no_recorded_error_sends_nothing(self, app, factory):
        _, handler = _setup(app, factory)
        handler.on_shutdown()
        assert factory.client.calls == []

    @pytest.mark.parametrize("severity", sorted(lasterror.CAPTURED_SEVERITIES, key=lambda s: s.value))
    def test_captured_severity_is_reported(self, app, factory, severity):
        _, handler = _setup(app, factory)
        lasterror._last_error = lasterror.LastError("worker died", severity, "/srv/app/jobs.py", 12)

        handler.on_shutdown()

        exc = factory.client.calls[0][1]
        assert isinstance(exc, UnhandledError)
        assert exc.message == "worker died"
        assert exc.code is severity
        assert exc.filename == "/srv/app/jobs.py"
        assert exc.lineno == 12

    @pytest.mark.parametrize("severity", [ErrorSeverity.ERROR, ErrorSeverity.WARNING, ErrorSeverity.NOTICE])
    def test_other_severity_is_ignored(self, app, factory, severity):
        _, handler = _setup(app, factory)
        lasterror._last_error = lasterror.LastError("meh", severity)

        handler.on_shutdown()
        assert factory.client.calls == []

    def test_reported_error_is_cleared(self, app, factory):
        _, handler = _setup(app, factory)
        lasterror.record_exception(MemoryError("out of memory"))

        handler.on_shutdown()
        handler.on_shutdown()

        assert len(factory.client.calls) == 1
        assert lasterror.get_last_error() is None


# ---------------------------------------------------------------------------
# Integration through Flask
# ---------------------------------------------------------------------------


class TestFlaskIntegration:
    def test_unhandled_view_exception_is_captured_and_logged(self, app, factory, caplog):
        _setup(app, factory)

        @app.route("/boom")
        def boom():
            raise KeyError("missing basket")

        with caplog.at_level(logging.ERROR):
            response = app.test_client().get("/boom")

        assert response.status_code == 500
        assert isinstance(factory.client.calls[0][1], KeyError)
        assert "Exception on /boom [GET]" in caplog.text

    def test_before_request_reports_recorded_error(self, app, factory):
        _setup(app, factory)

        @app.route("/")
        def index():
            return "ok"

        lasterror.record_exception(SyntaxError("invalid syntax"))
        response = app.test_client().get("/")

        assert response.status_code == 200
        exc = factory.client.calls[0][1]
        assert isinstance(exc, UnhandledError)
        assert exc.code is ErrorSeverity.PARSE_ERROR

    def test_repeated_init_app_captures_once(self, app, factory, caplog):
        """Calling init_app twice must not capture twice or recurse."""
        _, handler = _setup(app, factory)
        handler.init_app(app)

        @app.route("/boom")
        def boom():
            raise KeyError("missing basket")

        with caplog.at_level(logging.ERROR):
            response = app.test_client().get("/boom")

        assert response.status_code == 500
        assert len(factory.client.calls) == 1
        assert caplog.text.count("Exception on /boom [GET]") == 1
