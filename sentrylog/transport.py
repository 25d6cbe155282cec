"""transport.py - The handle SentryComponent owns over the Sentry SDK.

SentryTransport adapts ``sentry_sdk.Client`` to the narrow capture interface
the rest of SentryLog is written against:

    capture_exception(exception, options, logger_name, context) -> ident
    capture_message(message, params, options, stack, context)   -> ident
    capture_query(query, level, engine)                         -> ident
    resolve_public_id(ident)                                    -> event id

Everything past event construction (serialisation, DSN parsing, HTTP
delivery, rate limiting) is left to the SDK. Events go straight to this
client with a fresh ``sentry_sdk.Scope``, so SentryLog never touches the
process-global scopes that the application may have initialised itself.

Options understood by the constructor and removed before the remainder is
handed to ``sentry_sdk.Client``:

    logger  default logger name attached to every event
    tags    default tags attached to every event
    extra   default extra data attached to every event

Per-capture ``options`` understand ``extra``, ``tags``, ``culprit``,
``level`` and ``fingerprint``.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

import sentry_sdk
from sentry_sdk.utils import current_stacktrace, event_from_exception

MAX_CULPRIT_LENGTH = 200

# Python logging levels to Sentry event levels.
_LEVELS = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}


def sentry_level(level) -> str:
    """Translate a ``logging`` level (int or name) to a Sentry level string.

    Integer levels between the standard constants round down to the nearest
    one, so ``logging.INFO + 5`` becomes ``"info"``.
    """
    if isinstance(level, str):
        level = level.lower()
        return "fatal" if level == "critical" else level
    for threshold in sorted(_LEVELS, reverse=True):
        if level >= threshold:
            return _LEVELS[threshold]
    return "debug"


class SentryTransport:
    """Owns one ``sentry_sdk.Client`` and turns capture calls into events.

    Attributes:
        client (sentry_sdk.Client): The underlying SDK client.
        default_logger (str): Logger name used when a capture names none.
        default_tags (dict): Tags attached to every event.
        default_extra (dict): Extra data attached to every event.
    """

    def __init__(self, dsn: Optional[str], options: Optional[Mapping[str, Any]] = None) -> None:
        options = dict(options or {})
        self.default_logger = options.pop("logger", "flask")
        self.default_tags = dict(options.pop("tags", None) or {})
        self.default_extra = dict(options.pop("extra", None) or {})
        self.client = sentry_sdk.Client(dsn=dsn, **options)

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
        event, hint = event_from_exception(exception, client_options=self.client.options)
        self._apply(event, options, logger_name, context)
        return self._send(event, hint)

    def capture_message(
        self,
        message: str,
        params: Sequence = (),
        options: Optional[Mapping[str, Any]] = None,
        stack: bool = False,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        params = list(params or ())
        formatted = message
        if params:
            try:
                formatted = message % tuple(params)
            except (TypeError, ValueError):
                formatted = message

        event: Dict[str, Any] = {
            "message": formatted,
            "logentry": {"message": message, "params": params, "formatted": formatted},
            "level": "info",
        }
        if stack:
            event["threads"] = {
                "values": [{"stacktrace": current_stacktrace(), "crashed": False, "current": True}]
            }
        self._apply(event, options, "", context)
        return self._send(event)

    def capture_query(self, query: str, level=logging.INFO, engine: str = "") -> Optional[str]:
        event: Dict[str, Any] = {
            "message": query,
            "level": sentry_level(level),
            "contexts": {"query": {"query": query, "engine": engine}},
        }
        self._apply(event, None, "", None)
        return self._send(event)

    def resolve_public_id(self, ident: Optional[str]) -> Optional[str]:
        """Return the public event id for a capture result.

        ``sentry_sdk`` already hands back the hex event id, so this is the
        identity for any non-empty result and ``None`` for a dropped event.
        """
        if not ident:
            return None
        return str(ident)

    def flush(self, timeout: Optional[float] = None) -> None:
        self.client.flush(timeout=timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        self.client.close(timeout=timeout)

    # ---------------------------------------------------------------------- #
    # Private helpers
    # ---------------------------------------------------------------------- #

    def _apply(
        self,
        event: Dict[str, Any],
        options: Optional[Mapping[str, Any]],
        logger_name: str,
        context: Optional[Mapping[str, Any]],
    ) -> None:
        options = options or {}
        event["logger"] = logger_name or self.default_logger

        tags = dict(self.default_tags)
        tags.update(options.get("tags") or {})
        if tags:
            event["tags"] = {str(k): str(v) for k, v in tags.items()}

        extra = dict(self.default_extra)
        extra.update(options.get("extra") or {})
        if extra:
            event["extra"] = extra

        culprit = options.get("culprit")
        if culprit:
            event["transaction"] = str(culprit)[:MAX_CULPRIT_LENGTH]
        if options.get("level") is not None:
            event["level"] = sentry_level(options["level"])
        if options.get("fingerprint"):
            event["fingerprint"] = list(options["fingerprint"])

        if context:
            contexts = event.setdefault("contexts", {})
            for name, value in context.items():
                contexts[name] = value if isinstance(value, Mapping) else {"value": value}

    def _send(self, event: Dict[str, Any], hint: Optional[Dict[str, Any]] = None) -> Optional[str]:
        scope = sentry_sdk.Scope()
        scope.set_client(self.client)
        return self.client.capture_event(event, hint=hint, scope=scope)
