"""Gunicorn settings for the runclub web app.

Run from the ``app/`` directory: ``gunicorn -c gunicorn.conf.py main:app``.
Each worker re-initialises Sentry after the fork so its background transport
thread belongs to the worker, not the master.
"""

import logging
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '5000')}"
workers = int(os.environ.get("WEB_CONCURRENCY", "2"))
timeout = 60

# main._log_request writes one access line per request.
accesslog = None


def post_fork(server, worker):
    """Reset worker logging and start Sentry when ``SENTRY_DSN`` is set."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.INFO)

    from main import _UserIdFilter

    handler = logging.StreamHandler()
    handler.addFilter(_UserIdFilter())
    handler.setFormatter(logging.Formatter("%(levelname)s uid=%(user_id)s %(name)s: %(message)s"))
    root.addHandler(handler)

    sentry_dsn = os.environ.get("SENTRY_DSN")
    if not sentry_dsn:
        worker.log.info("Worker %s started without Sentry", worker.pid)
        return

    import sentry_sdk
    from flask import has_request_context
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    from runclub.user_context import get_user_id

    def before_breadcrumb(breadcrumb, hint):
        if has_request_context():
            breadcrumb.setdefault("data", {})["user_id"] = get_user_id()
        return breadcrumb

    def traces_sampler(sampling_context):
        environ = sampling_context.get("wsgi_environ") or {}
        return 0.0 if environ.get("PATH_INFO") == "/health" else 0.2

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=os.getenv("SENTRY_ENV", "production"),
        integrations=[
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            FlaskIntegration(),
        ],
        traces_sampler=traces_sampler,
        before_breadcrumb=before_breadcrumb,
        send_default_pii=True,
    )
    worker.log.info("Worker %s started with Sentry", worker.pid)
