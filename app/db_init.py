"""Database initialisation and config loading for the runclub web app."""

from typing import Any

_db_initialized = False


def _init_db() -> bool:
    """Configure the DB and ensure all tables exist.

    Resolution order (no config file needed):
      1. DATABASE_URL env var  → PostgreSQL
      2. RUNCLUB_DB env var    → SQLite at that path
      3. Default               → runclub.sqlite3 in cwd
    """
    global _db_initialized
    if not _db_initialized:
        try:
            from runclub.appconfig import get_db_path_from_env
            from runclub.database import get_all_models, migrate_tables
            from runclub.db import configure_db

            configure_db(get_db_path_from_env())
            migrate_tables(get_all_models())

            _db_initialized = True
        except Exception as e:
            print(f"DB init failed: {e}")
            return False
    return True


def load_runclub_config() -> dict[str, Any]:
    """Load runclub config: always returns a valid dict.

    Priority: DB rows → JSON file (migrated in on first call) → built-in defaults.
    """
    _init_db()
    from runclub.appconfig import load_config

    return load_config()
