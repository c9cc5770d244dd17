"""Application configuration model and helpers.

The DB (``appconfig`` table) is always the source of truth.

On every ``load_config()`` call the file is checked:
  - If a JSON config file exists *and* its contents differ from the DB,
    the DB is updated to match the file.
  - If the DB is empty and no file exists, built-in defaults are seeded.

Secrets (API keys, OAuth client credentials) are never stored here; they are
read from the environment by the modules that need them.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from peewee import CharField, Model, TextField

from .db import db

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: dict[str, Any] = {
    "club_name": "No Name Running Club",
    "home_timezone": "UTC",
    "debug": False,
    "default_days_count": 30,
    "admin_emails": [],
    "linear": {
        "team_key": "COA",
        "label": "feedback",
        "state": "Triage",
        "priority": 3,
    },
}

# Candidate JSON config file locations (searched in order)
_FILE_PATHS: list[Path] = [
    Path("runclub_config.json"),
    Path("../runclub_config.json"),
]


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class AppConfig(Model):
    """Key-value store for application configuration.

    Each top-level key from the config dict (e.g. ``home_timezone``,
    ``linear``) is stored as one row with the value JSON-encoded.
    """

    key = CharField(max_length=128, unique=True)
    value = TextField()  # JSON-encoded value

    class Meta:
        database = db
        table_name = "appconfig"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_from_db() -> dict[str, Any] | None:
    """Return config dict from DB rows, or ``None`` if the table is empty."""
    rows = list(AppConfig.select())
    if not rows:
        return None
    return {r.key: json.loads(r.value) for r in rows}


def _load_from_file() -> dict[str, Any] | None:
    """Try each candidate path; return parsed JSON or ``None``."""
    for path in _FILE_PATHS:
        if path.exists():
            try:
                with open(path) as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                log.warning("Ignoring unreadable config file %s: %s", path, e)
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config() -> dict[str, Any]:
    """Return the current configuration, always using the DB as source of truth.

    If the DB is not yet configured (early startup edge-case) the function
    falls back to the JSON file or built-in defaults without persisting.
    Missing top-level keys are filled from ``DEFAULT_CONFIG``.
    """
    try:
        from .db import get_db

        get_db()  # raises RuntimeError if not yet configured
    except RuntimeError:
        return {**copy.deepcopy(DEFAULT_CONFIG), **(_load_from_file() or {})}

    file_cfg = _load_from_file()
    db_cfg = _load_from_db()

    if db_cfg is None:
        # First boot: seed from file or defaults
        source = {**copy.deepcopy(DEFAULT_CONFIG), **(file_cfg or {})}
        save_config(source)
        return source

    if file_cfg is not None and any(db_cfg.get(k) != v for k, v in file_cfg.items()):
        # Key-level merge so keys only present in the DB are kept.
        merged = {**db_cfg, **file_cfg}
        save_config(merged)
        db_cfg = merged

    return {**copy.deepcopy(DEFAULT_CONFIG), **db_cfg}


def save_config(config: dict[str, Any]) -> None:
    """Persist every top-level key of *config* to the DB as JSON values.

    Uses upsert semantics so it is safe to call repeatedly.
    """
    for key, value in config.items():
        (
            AppConfig.insert(key=key, value=json.dumps(value))
            .on_conflict(
                conflict_target=[AppConfig.key],
                update={AppConfig.value: json.dumps(value)},
            )
            .execute()
        )


def get_admin_emails() -> list[str]:
    """Return the lower-cased admin allow-list.

    ``ADMIN_EMAILS`` (comma separated) wins over the ``admin_emails`` config key.
    """
    raw = os.environ.get("ADMIN_EMAILS", "")
    if raw.strip():
        emails = raw.split(",")
    else:
        emails = load_config().get("admin_emails") or []
    return [e.strip().lower() for e in emails if e and e.strip()]


def get_linear_settings() -> dict[str, Any]:
    """Return the issue-tracker settings, with ``LINEAR_TEAM_KEY`` overriding the team."""
    settings = {**DEFAULT_CONFIG["linear"], **(load_config().get("linear") or {})}
    team_key = os.environ.get("LINEAR_TEAM_KEY", "").strip()
    if team_key:
        settings["team_key"] = team_key
    return settings


def get_home_timezone() -> str:
    return load_config().get("home_timezone") or "UTC"


def get_db_path_from_env() -> str:
    """Return the SQLite path to use when no DATABASE_URL is set.

    Checks the ``RUNCLUB_DB`` environment variable first, then falls back
    to ``runclub.sqlite3`` in the current working directory.
    """
    return os.environ.get("RUNCLUB_DB", "runclub.sqlite3")
