"""Shared helper functions for the runclub web app."""

from typing import Any

from db_init import _init_db
from flask import Response, request

from runclub.errors import ValidationError
from runclub.export import FORMATS


def get_database_info() -> dict[str, Any]:
    """Get basic information about the configured database."""
    if not _init_db():
        return {"error": "Database not available"}

    try:
        from runclub.database import get_all_models
        from runclub.db import get_db

        db = get_db()
        db.connect(reuse_if_open=True)

        table_counts = {model._meta.table_name: model.select().count() for model in get_all_models()}
        return {
            "tables": table_counts,
            "total_tables": len(table_counts),
        }
    except Exception as e:
        return {"error": f"Database error: {e}"}


def get_request_data() -> dict[str, Any]:
    """Return the JSON body, or the form fields for a classic form post."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def get_export_format() -> str:
    fmt = request.args.get("format", "csv").lower()
    if fmt not in FORMATS:
        raise ValidationError(f"Unsupported export format: {fmt}", field="format")
    return fmt


def export_response(content: str, filename: str, fmt: str) -> Response:
    """Wrap an export string as a file download."""
    mimetype = "text/csv" if fmt == "csv" else "application/json"
    return Response(
        content,
        mimetype=f"{mimetype}; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}.{fmt}"'},
    )
