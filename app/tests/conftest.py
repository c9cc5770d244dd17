import os
import sys
import tempfile

import pytest

# Prevent Sentry SDK from initialising during tests.
os.environ.pop("SENTRY_DSN", None)
os.environ.pop("SENTRY_ENV", None)

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))


@pytest.fixture(autouse=True)
def reset_db_state():
    """Reset DB initialisation state between tests to prevent leakage."""
    yield
    import db_init as db_init_module

    import runclub.db as rdb
    from runclub.user_context import set_identity

    db_init_module._db_initialized = False
    rdb.reset_db()
    set_identity(None)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    import runclub.appconfig as rcfg

    for var in ("ADMIN_EMAILS", "LINEAR_API_KEY", "LINEAR_TEAM_KEY", "OPENWEATHER_API_KEY", "DATABASE_URL"):
        monkeypatch.delenv(var, raising=False)
    # Prevent a real runclub_config.json on disk from overwriting test config.
    monkeypatch.setattr(rcfg, "_FILE_PATHS", [])


@pytest.fixture
def temp_database():
    """Configure a fresh temporary SQLite database with every table."""
    import runclub.db as rdb
    from runclub.database import get_all_models, migrate_tables
    from runclub.db import configure_db

    with tempfile.NamedTemporaryFile(suffix=".sqlite3", delete=False) as f:
        db_path = f.name

    rdb.reset_db()
    configure_db(db_path)
    db = rdb.get_db()
    db.connect(reuse_if_open=True)
    migrate_tables(get_all_models())

    yield db_path

    rdb.reset_db()
    if os.path.exists(db_path):
        os.remove(db_path)


@pytest.fixture
def app(temp_database):
    from main import app as flask_app

    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def anon_client(app):
    with app.test_client() as c:
        yield c


def _login(app, user):
    c = app.test_client()
    with c.session_transaction() as sess:
        sess["_user_id"] = str(user.id)
        sess["_fresh"] = True
    return c


@pytest.fixture
def challenge(temp_database):
    from runclub.challenges import create_challenge

    return create_challenge("winter", "2025/2026", 3, current=True)


@pytest.fixture
def member(temp_database, challenge):
    from runclub.users import create_user

    return create_user("member@example.com", name="Mia Member")


@pytest.fixture
def admin(temp_database, challenge):
    from runclub.models import ROLE_ADMIN
    from runclub.users import create_user

    return create_user("admin@example.com", name="Alex Admin", role=ROLE_ADMIN)


@pytest.fixture
def client(app, member):
    """Test client signed in as a member enrolled in the current challenge."""
    with _login(app, member) as c:
        yield c


@pytest.fixture
def admin_client(app, admin):
    """Test client signed in as an admin."""
    with _login(app, admin) as c:
        yield c
