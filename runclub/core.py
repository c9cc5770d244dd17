"""Core runclub bootstrap used by the CLI commands."""

from typing import Any

import pytz

from .appconfig import get_db_path_from_env, load_config
from .database import get_all_models, migrate_tables
from .db import configure_db, get_db


class RunClub:
    """Configures the database, migrates it and loads the app config.

    Use as a context manager so the connection is closed on exit::

        with RunClub() as club:
            print(club.config["club_name"])
    """

    def __init__(self, db_path: str | None = None):
        configure_db(db_path or get_db_path_from_env())

        db = get_db()
        db.connect(reuse_if_open=True)

        # Always migrate tables on startup
        migrate_tables(get_all_models())

        self.config: dict[str, Any] = load_config()
        self.home_timezone: str = self.config.get("home_timezone") or "UTC"
        self.home_tz = pytz.timezone(self.home_timezone)

    def cleanup(self):
        """Close the database connection if one is open."""
        try:
            db = get_db()
            if not db.is_closed():
                db.close()
        except RuntimeError:
            # Database not configured, nothing to clean up
            pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.cleanup()
