"""examples/flask_app.py - SentryLog wired into a small Flask app.

Demonstrates the three pieces together:
    SentryComponent     owns the Sentry client (registered as "sentry")
    SentryErrorHandler  reports exceptions that escape a view
    SentryLogHandler    sends WARNING and above as Sentry messages

Run:
    SENTRY_DSN=https://<key>@o0.ingest.sentry.io/<project> python examples/flask_app.py
"""

import logging
import os

from flask import Flask, jsonify

from sentrylog import SentryComponent, SentryErrorHandler, SentryLogHandler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("shop")

app = Flask(__name__)
app.config["SENTRY_DSN"] = os.environ.get("SENTRY_DSN")
app.config["SENTRY_ENVIRONMENT"] = os.environ.get("SENTRY_ENVIRONMENT", "dev")
app.config["SENTRY_EXTRA_VARIABLES"] = {"service": "shop"}

sentry = SentryComponent(app)
SentryErrorHandler(app)

# Flush after every 10 records, and at the end of each request.
log_handler = SentryLogHandler(app=app, capacity=10, level=logging.WARNING)
logging.getLogger().addHandler(log_handler)


@app.teardown_request
def flush_logs(exc):
    log_handler.flush()


@app.route("/checkout/<int:amount>")
def checkout(amount: int):
    if amount > 1000:
        logger.warning("Checkout over limit: amount=%d", amount)
        raise ValueError(f"LimitExceeded: amount={amount}")
    return jsonify({"status": "ok", "events": sentry.logged_event_ids})


if __name__ == "__main__":
    app.run(port=5000)
