import os
from unittest.mock import patch

import pytest

from runclub.database import get_all_models, migrate_tables
from runclub.db import configure_db, get_db


@pytest.fixture(autouse=True)
def reset_identity():
    """Clear the session identity before every test.

    App tests set it via the Flask before_request hook; without this reset
    that value leaks into subsequent package tests (same thread).
    """
    from runclub.user_context import set_identity

    set_identity(None)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep the developer's environment and config file out of the tests."""
    import runclub.appconfig as rcfg

    for var in ("ADMIN_EMAILS", "LINEAR_API_KEY", "LINEAR_TEAM_KEY", "OPENWEATHER_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(rcfg, "_FILE_PATHS", [])


@pytest.fixture(scope="session", autouse=True)
def test_db():
    test_db_path = "test.sqlite3"
    configure_db(test_db_path)
    db = get_db()
    # Rebind all models to the test DB
    for model in get_all_models():
        model._meta.set_database(db)
    db.connect(reuse_if_open=True)
    migrate_tables(get_all_models())
    yield
    db.close()
    if os.path.exists(test_db_path):
        os.remove(test_db_path)


@pytest.fixture(autouse=True)
def clean_tables(test_db):
    """Every test starts from empty tables (children deleted before parents)."""
    db = get_db()
    db.connect(reuse_if_open=True)
    for model in reversed(get_all_models()):
        model.delete().execute()
    yield


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user():
    from runclub.users import create_user

    counter = iter(range(1, 10_000))

    def _make(name: str | None = "Test Runner", email: str | None = None, role: str | None = None):
        return create_user(email or f"runner{next(counter)}@example.com", name=name, role=role)

    return _make


@pytest.fixture
def make_challenge():
    from runclub.challenges import create_challenge

    def _make(season="winter", year="2025/2026", days_count=30, current=True, **kwargs):
        return create_challenge(season, year, days_count, current=current, **kwargs)

    return _make


@pytest.fixture
def log_runs():
    """Log ``temperatures`` for a user at positions 1..n of the current challenge."""
    from runclub.runs import save_run

    def _log(user, temperatures):
        return [save_run(user.id, i, temp) for i, temp in enumerate(temperatures, start=1)]

    return _log


@pytest.fixture
def miss_first_lookup():
    """Make ``model.get_or_none`` return None once, as if a concurrent insert had not landed yet."""

    def _patch(model):
        original = model.get_or_none
        calls = []

        def lookup(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                return None
            return original(*args, **kwargs)

        return patch.object(model, "get_or_none", side_effect=lookup)

    return _patch
