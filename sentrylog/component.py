"""component.py - SentryComponent, the single gateway to Sentry.

SentryComponent is a Flask extension that owns the SDK handle and is the only
object in SentryLog that talks to it. Everything else (the log handler and
the error handler) resolves a SentryComponent and calls one of its three
capture methods.

Responsibilities:
    - Environment gating: nothing is sent unless the component is enabled
      and ``environment`` is one of ``enabled_environments``. Gated calls
      return ``None`` silently.
    - Limits: messages over 2048 bytes are rejected up front; the default
      tags are length-checked once, when the SDK handle is created.
    - Option merging: ``extra_variables`` are merged under every capture's
      ``extra`` option, per-call values winning.
    - Ledger: every event id produced during the current request is
      appended to ``logged_event_ids``; each request starts with an empty list.
    - Error wrapping: SDK failures always surface as SentryClientError. In
      debug mode the message keeps the SDK's own text; in production it is
      generic and the SDK's text goes to the component's logger instead.

Typical usage:
    from flask import Flask
    from sentrylog import SentryComponent

    app = Flask(__name__)
    app.config["SENTRY_DSN"] = "https://key@o0.ingest.sentry.io/1"
    app.config["SENTRY_ENVIRONMENT"] = "production"
    sentry = SentryComponent(app)

    sentry.capture_message("nightly import finished")
"""

import logging
import platform
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from flask import g, has_app_context

from .config import SentryConfig
from .errors import (
    InvalidConfigError,
    InvalidParamError,
    SentryClientError,
    error_code,
)
from .transport import MAX_CULPRIT_LENGTH, SentryTransport

MAX_MESSAGE_LENGTH = 2048
MAX_TAG_KEY_LENGTH = 32
MAX_TAG_VALUE_LENGTH = 200

# flask.g attribute holding the per-request ledgers, keyed by component.
_LEDGER_KEY = "sentrylog_event_ids"

__all__ = [
    "SentryComponent",
    "get_sentry_client",
    "merge_options",
    "MAX_MESSAGE_LENGTH",
    "MAX_TAG_KEY_LENGTH",
    "MAX_TAG_VALUE_LENGTH",
    "MAX_CULPRIT_LENGTH",
]


def merge_options(base: Mapping, override: Mapping) -> Dict[str, Any]:
    """Recursively merge two option mappings; values from ``override`` win.

    Nested mappings are merged key by key, anything else is replaced.

    Example:
        >>> merge_options({"tags": {"a": "1"}, "logger": "x"}, {"tags": {"b": "2"}})
        {'tags': {'a': '1', 'b': '2'}, 'logger': 'x'}
    """
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_options(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_sentry_client(app, client_id: str = "sentry") -> "SentryComponent":
    """Return the SentryComponent registered on ``app`` under ``client_id``.

    Raises:
        InvalidConfigError: If no extension is registered under that id.
    """
    extensions = getattr(app, "extensions", None) or {}
    if client_id not in extensions:
        raise InvalidConfigError(f'SentryComponent client id "{client_id}" is invalid.')
    return extensions[client_id]


class SentryComponent:
    """Application component that sends exceptions, messages and queries to Sentry.

    Attributes:
        enabled (bool): Master switch. When False nothing is ever sent.
        dsn (str): DSN of the Sentry project.
        environment (str): Name of the active environment.
        enabled_environments (tuple): Environments in which data is sent.
        options (dict): Options passed to the SDK handle, merged over the
            defaults ``{"logger": "flask", "tags": {...}}``.
        extra_variables (dict): Extra data sent with every capture.
        client_id (str): Key under which the component registers itself in
            ``app.extensions``.
        debug (bool): Whether SDK failures are reported verbosely.
        logger (logging.Logger): Sink for the component's own log lines.
    """

    def __init__(
        self,
        app=None,
        config: Optional[SentryConfig] = None,
        *,
        debug: Optional[bool] = None,
        logger: Optional[logging.Logger] = None,
        client_factory: Optional[Callable[[Optional[str], Dict[str, Any]], Any]] = None,
    ) -> None:
        self._debug = debug
        self.logger = logger or logging.getLogger(__name__)
        self.client_factory = client_factory or SentryTransport
        self._logged_event_ids: List[str] = []
        self._client = None
        self._configure(config or SentryConfig())

        if app is not None:
            self.init_app(app)
        elif config is not None:
            self.init()

    # ---------------------------------------------------------------------- #
    # Lifecycle
    # ---------------------------------------------------------------------- #

    def init_app(self, app) -> None:
        """Configure from ``app.config``, create the SDK handle and register.

        Configuration keys already present in ``app.config`` (``SENTRY_*``)
        override the values the component was constructed with.
        """
        config = SentryConfig.from_mapping(
            {
                **self._config_mapping(),
                **{k: v for k, v in app.config.items() if k.startswith("SENTRY_")},
            }
        )
        self._configure(config)
        if self._debug is None:
            self._debug = bool(app.debug)

        self.init()
        app.extensions[self.client_id] = self

    def init(self) -> None:
        """Create the SDK handle if the component is enabled for this environment.

        The handle is created at most once; later calls leave it untouched.
        """
        if not self.enabled:
            return
        if not self.is_environment_enabled():
            return
        if self._client is None:
            self._client = self.create_client()

    @property
    def debug(self) -> bool:
        return bool(self._debug)

    @debug.setter
    def debug(self, value: bool) -> None:
        self._debug = value

    @property
    def client(self):
        """The SDK handle, or ``None`` if it was never created."""
        return self._client

    @property
    def logged_event_ids(self) -> List[str]:
        """Event ids reported during the current unit of work, in capture order.

        Inside a Flask app context (every request pushes its own) the list
        lives on ``flask.g`` and starts empty for each request. Outside one
        it belongs to the component.
        """
        if has_app_context():
            ledgers = g.setdefault(_LEDGER_KEY, {})
            return ledgers.setdefault(id(self), [])
        return self._logged_event_ids

    @logged_event_ids.setter
    def logged_event_ids(self, event_ids: Sequence[str]) -> None:
        if has_app_context():
            g.setdefault(_LEDGER_KEY, {})[id(self)] = list(event_ids)
        else:
            self._logged_event_ids = list(event_ids)

    # ---------------------------------------------------------------------- #
    # Capture interface
    # ---------------------------------------------------------------------- #

    def capture_exception(
        self,
        exception: BaseException,
        options: Optional[Mapping[str, Any]] = None,
        logger_name: str = "",
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        """Send an exception to Sentry.

        Args:
            exception: The exception to report.
            options: Capture options (``culprit``, ``extra``, ``tags``).
            logger_name: Logger name to attach to the event.
            context: Named context blocks to attach to the event.

        Returns:
            The event id, or ``None`` if the component is disabled or the
            active environment is not enabled.

        Raises:
            SentryClientError: If the SDK fails to capture the exception.
        """
        if not self.enabled:
            return None
        if not self.is_environment_enabled():
            return None
        options = self.process_options(options)
        client = self._require_client()
        try:
            event_id = client.resolve_public_id(
                client.capture_exception(exception, options, logger_name, context)
            )
        except Exception as exc:
            raise self._wrap("log exception", exc) from exc
        return self._record("Exception", event_id)

    def capture_message(
        self,
        message: str,
        params: Sequence = (),
        options: Optional[Mapping[str, Any]] = None,
        stack: bool = False,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        """Send a message to Sentry.

        The length limit is enforced before environment gating, so an
        oversized message fails even where nothing would have been sent.

        Raises:
            InvalidParamError: If ``message`` is longer than 2048 bytes.
            SentryClientError: If the SDK fails to capture the message.
        """
        if not self.enabled:
            return None
        if len(message.encode("utf-8")) > MAX_MESSAGE_LENGTH:
            raise InvalidParamError(
                f"SentryClient cannot send messages that contain more than "
                f"{MAX_MESSAGE_LENGTH} characters."
            )
        if not self.is_environment_enabled():
            return None
        options = self.process_options(options)
        client = self._require_client()
        try:
            event_id = client.resolve_public_id(
                client.capture_message(message, list(params or ()), options, stack, context)
            )
        except Exception as exc:
            raise self._wrap("log message", exc) from exc
        return self._record("Message", event_id)

    def capture_query(self, query: str, level: int = logging.INFO, engine: str = "") -> Optional[str]:
        """Send a query to Sentry. No options or limits are applied here.

        Raises:
            SentryClientError: If the SDK fails to capture the query.
        """
        if not self.enabled:
            return None
        if not self.is_environment_enabled():
            return None
        client = self._require_client()
        try:
            event_id = client.resolve_public_id(client.capture_query(query, level, engine))
        except Exception as exc:
            raise self._wrap("log query", exc) from exc
        return self._record("Query", event_id)

    # ---------------------------------------------------------------------- #
    # Helpers
    # ---------------------------------------------------------------------- #

    def is_environment_enabled(self) -> bool:
        return self.environment in self.enabled_environments

    def process_options(self, options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Return a copy of ``options`` with ``extra_variables`` merged under ``extra``."""
        options = dict(options or {})
        options["extra"] = merge_options(self.extra_variables, options.get("extra") or {})
        return options

    def create_client(self):
        """Build the SDK handle from the DSN and the merged options.

        Raises:
            InvalidConfigError: If a default tag is too long.
            SentryClientError: If the SDK could not create its client.
        """
        options = merge_options(
            {
                "logger": "flask",
                "tags": {
                    "environment": self.environment,
                    "python_version": platform.python_version(),
                },
            },
            self.options,
        )
        self.check_tags(options.get("tags") or {})
        try:
            return self.client_factory(self.dsn, options)
        except Exception as exc:
            raise self._wrap("create client", exc) from exc

    def check_tags(self, tags: Mapping[str, Any]) -> None:
        """Validate tag lengths.

        Raises:
            InvalidConfigError: If a key exceeds 32 or a value 200 characters.
        """
        for key, value in tags.items():
            if len(str(key)) > MAX_TAG_KEY_LENGTH:
                raise InvalidConfigError(
                    f"SentryClient does not allow tag keys that contain more than "
                    f"{MAX_TAG_KEY_LENGTH} characters."
                )
            if len(str(value)) > MAX_TAG_VALUE_LENGTH:
                raise InvalidConfigError(
                    f"SentryClient does not allow tag values that contain more than "
                    f"{MAX_TAG_VALUE_LENGTH} characters."
                )

    def _configure(self, config: SentryConfig) -> None:
        self.enabled = config.enabled
        self.dsn = config.dsn
        self.environment = config.environment
        self.enabled_environments = tuple(config.enabled_environments)
        self.options = dict(config.options)
        self.extra_variables = dict(config.extra_variables)
        self.client_id = config.client_id

    def _config_mapping(self) -> Dict[str, Any]:
        return {
            "SENTRY_ENABLED": self.enabled,
            "SENTRY_DSN": self.dsn,
            "SENTRY_ENVIRONMENT": self.environment,
            "SENTRY_ENABLED_ENVIRONMENTS": self.enabled_environments,
            "SENTRY_OPTIONS": self.options,
            "SENTRY_EXTRA_VARIABLES": self.extra_variables,
            "SENTRY_CLIENT_ID": self.client_id,
        }

    def _require_client(self):
        if self._client is None:
            self.init()
        return self._client

    def _wrap(self, action: str, exc: Exception) -> SentryClientError:
        code = error_code(exc)
        if self.debug:
            return SentryClientError(f"SentryClient failed to {action}: {exc}", code)
        self.logger.error("%s", exc)
        return SentryClientError(f"SentryClient failed to {action}.", code)

    def _record(self, kind: str, event_id: Optional[str]) -> Optional[str]:
        if event_id is None:
            self.logger.debug("%s dropped by the Sentry SDK before sending", kind)
            return None
        self.logged_event_ids.append(event_id)
        self.logger.info("%s logged to Sentry with event id: %s", kind, event_id)
        return event_id
