"""Shared fixtures: a recording stand-in for the Sentry SDK handle and a Flask app."""

import pytest
from flask import Flask

from sentrylog import lasterror
from sentrylog.component import SentryComponent
from sentrylog.config import SentryConfig


class FakeSdkClient:
    """Records every capture call and hands back sequential idents.

    Set ``fail_with`` to an exception to make the next captures raise it, or
    ``fail_on`` to the 1-based call number that should raise.
    """

    def __init__(self, dsn=None, options=None):
        self.dsn = dsn
        self.options = options or {}
        self.calls = []
        self.fail_with = None
        self.fail_on = None

    def _capture(self, kind, *args):
        self.calls.append((kind,) + args)
        if self.fail_with is not None and (
            self.fail_on is None or self.fail_on == len(self.calls)
        ):
            raise self.fail_with
        return f"ident-{len(self.calls)}"

    def capture_exception(self, exception, options, logger_name, context):
        return self._capture("exception", exception, options, logger_name, context)

    def capture_message(self, message, params, options, stack, context):
        return self._capture("message", message, params, options, stack, context)

    def capture_query(self, query, level, engine):
        return self._capture("query", query, level, engine)

    def resolve_public_id(self, ident):
        return ident.replace("ident", "event")


class FakeFactory:
    """client_factory that remembers the handles it builds."""

    def __init__(self):
        self.created = []

    def __call__(self, dsn, options):
        client = FakeSdkClient(dsn, options)
        self.created.append(client)
        return client

    @property
    def client(self):
        return self.created[-1]


@pytest.fixture
def factory():
    return FakeFactory()


@pytest.fixture
def make_component(factory):
    """Build a SentryComponent wired to the fake factory."""

    def _make(debug=False, logger=None, **config):
        return SentryComponent(
            config=SentryConfig(dsn="https://public@example.com/1", **config),
            debug=debug,
            logger=logger,
            client_factory=factory,
        )

    return _make


@pytest.fixture
def app():
    flask_app = Flask(__name__)
    flask_app.config["SENTRY_DSN"] = "https://public@example.com/1"
    flask_app.testing = False
    flask_app.config["PROPAGATE_EXCEPTIONS"] = False
    return flask_app


@pytest.fixture(autouse=True)
def _reset_last_error():
    lasterror.clear_last_error()
    yield
    lasterror.uninstall()
    lasterror.clear_last_error()
