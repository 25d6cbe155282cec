"""examples/direct_capture.py - Using SentryComponent without Flask.

Shows environment gating, the event-id ledger and the debug/production
difference in error messages.

Run:
    SENTRY_DSN=https://<key>@o0.ingest.sentry.io/<project> python examples/direct_capture.py
"""

import logging

from sentrylog import SentryComponent, SentryClientError, load_config

logging.basicConfig(level=logging.INFO)

config = load_config()
sentry = SentryComponent(config=config, debug=True)

try:
    1 / 0
except ZeroDivisionError as exc:
    sentry.capture_exception(exc, options={"culprit": "direct_capture.main"})

sentry.capture_message("Nightly import finished: %d rows", [1200], options={"tags": {"job": "import"}})
sentry.capture_query("SELECT * FROM orders WHERE status = 'late'", logging.WARNING, "postgresql")

print(f"Environment {config.environment!r} enabled: {sentry.is_environment_enabled()}")
print(f"Captured event ids: {sentry.logged_event_ids}")

try:
    sentry.capture_message("x" * 4096)
except ValueError as exc:
    print(f"Rejected: {exc}")
except SentryClientError as exc:
    print(f"Sentry failed: {exc}")
