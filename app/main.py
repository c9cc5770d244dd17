"""runclub web application: entry point and blueprint registration."""

import logging
import os

# ---------------------------------------------------------------------------
# Sentry: initialise before anything else so all errors are captured
# ---------------------------------------------------------------------------
if _sentry_dsn := os.environ.get("SENTRY_DSN"):
    import sentry_sdk

    def _traces_sampler(sampling_context: dict) -> float:
        if sampling_context.get("wsgi_environ", {}).get("PATH_INFO") == "/health":
            return 0.0
        return 1.0

    sentry_sdk.init(
        dsn=_sentry_dsn,
        send_default_pii=True,
        traces_sampler=_traces_sampler,
        enable_logs=True,
    )

from db_init import _init_db, load_runclub_config
from flask import Flask, abort, g, jsonify, redirect, request
from flask_login import LoginManager, current_user
from peewee import OperationalError

from runclub.errors import (
    AuthenticationRequired,
    AuthorizationDenied,
    IntegrationError,
    NoActiveChallenge,
    NotFound,
    ValidationError,
)

_access_log = logging.getLogger("runclub.access")

# ---------------------------------------------------------------------------
# Logging: inject user_id into every record produced by the web process
# ---------------------------------------------------------------------------


class _UserIdFilter(logging.Filter):
    """Adds ``user_id`` to every log record.

    Prefers ``g.uid`` (set per-request by ``_set_user_context``) when inside a
    Flask request context so concurrent requests on different threads each get
    their own value. Falls back to the ContextVar for log lines emitted outside
    of a request (e.g. startup).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            from flask import g as flask_g
            from flask import has_request_context

            if has_request_context():
                record.user_id = flask_g.get("uid", 0)
            else:
                from runclub.user_context import get_user_id

                record.user_id = get_user_id()
        except Exception:
            record.user_id = "?"
        return True


def _configure_logging() -> None:
    """Attach the user_id filter + formatter to the root logger."""
    handler = logging.StreamHandler()
    handler.addFilter(_UserIdFilter())
    handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s uid=%(user_id)s %(name)s: %(message)s"))
    root = logging.getLogger()
    # Avoid duplicate handlers when the module is reloaded in tests.
    if not any(isinstance(h, logging.StreamHandler) and hasattr(h, "stream") for h in root.handlers):
        root.addHandler(handler)
    root.setLevel(logging.INFO)


_configure_logging()


# ---------------------------------------------------------------------------
# Flask app
# ---------------------------------------------------------------------------

app = Flask(__name__)

app.secret_key = os.environ["SESSION_KEY"]
app.json.ensure_ascii = False

login_manager = LoginManager()
login_manager.init_app(app)


@login_manager.user_loader
def _load_user(user_id: str):
    from runclub.users import find_by_id

    try:
        return find_by_id(int(user_id))
    except ValueError:
        return None


@app.before_request
def _set_user_context():
    from runclub.auth import identity_for
    from runclub.user_context import set_identity

    # Initialise g.uid so the log filter always has a value for this request,
    # even if we return early or abort below.
    g.uid = 0
    # ContextVars are not reset between requests in a single-threaded WSGI
    # process; clear the previous request's identity first.
    set_identity(None)

    if request.endpoint in ("api.health", "static"):
        return

    try:
        from runclub.db import get_db

        if not _init_db():
            abort(503)
        get_db().connect(reuse_if_open=True)
    except (RuntimeError, OperationalError):
        abort(503)

    if current_user.is_authenticated:
        set_identity(identity_for(current_user))
        g.uid = current_user.id


@app.after_request
def _log_request(response):
    if request.endpoint != "api.health":
        _access_log.info("%s %s %s", request.method, request.path, response.status_code)
    return response


# ---------------------------------------------------------------------------
# Error handlers: domain errors become JSON responses
# ---------------------------------------------------------------------------


def _wants_redirect() -> bool:
    """Browser page loads are sent home instead of shown a JSON error."""
    return request.method == "GET" and not request.path.startswith("/api/")


def _error(message: str, status: int, **extra):
    return jsonify({"error": message, **extra}), status


@app.errorhandler(AuthenticationRequired)
def _handle_unauthenticated(e):
    if _wants_redirect():
        return redirect("/")
    return _error(str(e), 401)


@app.errorhandler(AuthorizationDenied)
def _handle_forbidden(e):
    if _wants_redirect():
        return redirect("/")
    return _error(str(e), 403)


@app.errorhandler(NotFound)
def _handle_not_found(e):
    return _error(str(e), 404)


@app.errorhandler(ValidationError)
def _handle_validation(e):
    return _error(str(e), 400, field=e.field)


@app.errorhandler(NoActiveChallenge)
def _handle_no_challenge(e):
    return _error(str(e), 409)


@app.errorhandler(IntegrationError)
def _handle_integration(e):
    logging.getLogger(__name__).warning("Integration failure: %s", e)
    return _error(str(e), 502)


# ---------------------------------------------------------------------------
# Blueprint registration
# ---------------------------------------------------------------------------

from routes.admin import admin_bp
from routes.api import api_bp
from routes.auth import auth_bp
from routes.feedback import feedback_bp
from routes.pages import pages_bp
from routes.runs import runs_bp

app.register_blueprint(pages_bp)
app.register_blueprint(auth_bp)
app.register_blueprint(api_bp)
app.register_blueprint(runs_bp)
app.register_blueprint(feedback_bp)
app.register_blueprint(admin_bp)

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    print("Starting runclub Web App...")

    config = load_runclub_config()
    print(f"Config loaded: club={config.get('club_name')}, timezone={config.get('home_timezone')}")

    print("Server starting at: http://localhost:5000")
    print("  Home:         http://localhost:5000")
    print("  Admin:        http://localhost:5000/admin")
    print("  Config API:   http://localhost:5000/api/config")
    print("  Health:       http://localhost:5000/health")
    print("\nPress Ctrl+C to stop")

    try:
        app.run(debug=config.get("debug", False), host="0.0.0.0", port=5000, threaded=True)
    except Exception as e:
        print(f"Server failed to start: {e}")
        exit(1)
