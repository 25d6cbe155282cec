"""config.py - Process-wide SentryLog configuration.

SentryConfig is a frozen dataclass set once at startup. It can be built
directly, from a Flask-style mapping (``app.config``) or from environment
variables:

    SENTRY_ENABLED               "true" / "1" / "yes"
    SENTRY_DSN                   DSN of the Sentry project
    SENTRY_ENVIRONMENT           name of the active environment
    SENTRY_ENABLED_ENVIRONMENTS  comma separated allow-list
    SENTRY_OPTIONS               JSON object passed through to the SDK
    SENTRY_EXTRA_VARIABLES       JSON object sent as extra data
    SENTRY_CLIENT_ID             registry id of the client component
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import InvalidConfigError

DEFAULT_CLIENT_ID = "sentry"
DEFAULT_ENVIRONMENT = "dev"
DEFAULT_ENABLED_ENVIRONMENTS = ("production", "staging", "dev")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _parse_list(value) -> Tuple[str, ...]:
    if isinstance(value, str):
        return tuple(item.strip() for item in value.split(",") if item.strip())
    return tuple(value)


def _parse_mapping(key: str, value) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigError(f"{key} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise InvalidConfigError(f"{key} must be a JSON object.")
    return parsed


# eq=False: the dict fields cannot be hashed, so compare by identity.
@dataclass(frozen=True, eq=False)
class SentryConfig:
    enabled: bool = True
    dsn: Optional[str] = None
    environment: str = DEFAULT_ENVIRONMENT
    enabled_environments: Tuple[str, ...] = DEFAULT_ENABLED_ENVIRONMENTS
    options: Dict[str, Any] = field(default_factory=dict)
    extra_variables: Dict[str, Any] = field(default_factory=dict)
    client_id: str = DEFAULT_CLIENT_ID

    @classmethod
    def from_mapping(cls, mapping: Mapping, prefix: str = "SENTRY_") -> "SentryConfig":
        """Build a config from ``PREFIX_NAME`` keys; missing keys keep defaults."""
        kwargs: Dict[str, Any] = {}

        def lookup(name: str):
            return mapping.get(prefix + name)

        if lookup("ENABLED") is not None:
            kwargs["enabled"] = _parse_bool(lookup("ENABLED"))
        if lookup("DSN") is not None:
            kwargs["dsn"] = lookup("DSN")
        if lookup("ENVIRONMENT") is not None:
            kwargs["environment"] = lookup("ENVIRONMENT")
        if lookup("ENABLED_ENVIRONMENTS") is not None:
            kwargs["enabled_environments"] = _parse_list(lookup("ENABLED_ENVIRONMENTS"))
        if lookup("OPTIONS") is not None:
            kwargs["options"] = _parse_mapping(prefix + "OPTIONS", lookup("OPTIONS"))
        if lookup("EXTRA_VARIABLES") is not None:
            kwargs["extra_variables"] = _parse_mapping(
                prefix + "EXTRA_VARIABLES", lookup("EXTRA_VARIABLES")
            )
        if lookup("CLIENT_ID") is not None:
            kwargs["client_id"] = lookup("CLIENT_ID")
        return cls(**kwargs)


def load_config(environ: Optional[Mapping[str, str]] = None) -> SentryConfig:
    """Build SentryConfig from defaults <- environment variables."""
    if environ is None:
        environ = os.environ
    return SentryConfig.from_mapping(environ)
