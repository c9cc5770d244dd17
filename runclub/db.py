import os

from peewee import Proxy, SqliteDatabase

# Models bind to this proxy; the concrete backend is chosen at startup.
db = Proxy()

_configured = False


def backend_name() -> str:
    return "PostgreSQL" if os.environ.get("DATABASE_URL") else "SQLite"


def _open_database(db_path: str):
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        # postgres:// URLs need psycopg2 (the [production] extra).
        from playhouse.db_url import connect

        return connect(database_url)
    return SqliteDatabase(db_path, pragmas={"journal_mode": "wal", "foreign_keys": 1})


def configure_db(db_path: str = "runclub.sqlite3"):
    """Point the model proxy at a database, once per process.

    ``DATABASE_URL`` (PostgreSQL) wins over *db_path* (SQLite). Later calls
    are no-ops until ``reset_db()``.
    """
    global _configured
    if not _configured:
        db.initialize(_open_database(db_path))
        _configured = True
    return db


def reset_db() -> None:
    """Close and forget the configured database so the next configure_db() rebinds."""
    global _configured
    if _configured and not db.is_closed():
        db.close()
    _configured = False


def get_db():
    """Get the configured database instance."""
    if not _configured:
        raise RuntimeError("Database not configured. Call configure_db() first.")
    return db
