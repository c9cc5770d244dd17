import contextlib

from peewee import Model, SqliteDatabase

from .appconfig import AppConfig
from .db import get_db
from .feedback import Feedback
from .models import Challenge, Run, User, UserChallenge


def migrate_tables(models: list[type[Model]]) -> None:
    db = get_db()
    db.connect(reuse_if_open=True)
    db.create_tables(models, safe=True)
    # Column upgrades run after create_tables: fresh installs already have
    # every column, older databases get the missing ones added here.
    _run_schema_upgrades()


# ---- low-level helpers -------------------------------------------------------


def _sqlite_table_exists(db, table: str) -> bool:
    row = db.execute_sql("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)).fetchone()
    return row is not None


def _sqlite_has_column(db, table: str, col: str) -> bool:
    rows = db.execute_sql(f'PRAGMA table_info("{table}")').fetchall()
    return col in {row[1] for row in rows}


def _add_columns(db, is_sqlite: bool, columns: list[tuple[str, str, str]]) -> None:
    """Add columns idempotently; *columns* is [(table, col, sql_type), ...]."""
    for table, col, col_type in columns:
        if is_sqlite:
            if _sqlite_table_exists(db, table) and not _sqlite_has_column(db, table, col):
                db.execute_sql(f'ALTER TABLE "{table}" ADD COLUMN "{col}" {col_type}')
        else:
            with contextlib.suppress(Exception):
                db.execute_sql(f'ALTER TABLE "{table}" ADD COLUMN IF NOT EXISTS "{col}" {col_type}')


# ---- main migration entry point ----------------------------------------------


def _run_schema_upgrades() -> None:
    """Apply one-time column additions idempotently (SQLite and Postgres)."""
    db = get_db()
    db.connect(reuse_if_open=True)
    is_sqlite = isinstance(db.obj, SqliteDatabase)

    _add_columns(
        db,
        is_sqlite,
        [
            # settings added after the first season
            ("user", "units", "VARCHAR(16) NOT NULL DEFAULT 'imperial'"),
            ("user", "zip_code", "VARCHAR(255)"),
            # Strava club links on the challenge card
            ("challenge", "strava_url", "VARCHAR(1024)"),
            ("challenge", "strava_embed_code", "TEXT"),
            # optional run details
            ("run", "distance", "REAL"),
            ("run", "duration_minutes", "INTEGER"),
            ("run", "units", "VARCHAR(16)"),
        ],
    )


def get_all_models() -> list[type[Model]]:
    return [
        AppConfig,
        User,
        Challenge,
        UserChallenge,
        Run,
        Feedback,
    ]
