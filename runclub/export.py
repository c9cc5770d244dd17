"""CSV / JSON renderings of the analytics export view models.

Every function returns the whole document as a string; the web layer attaches
it as a download and the CLI writes it to a file or stdout.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from runclub import analytics
from runclub.errors import NotFound, ValidationError

FORMATS = ("csv", "json")

USER_HEADERS = ["ID", "Name", "Email", "Role", "Created At", "Total Challenges", "Total Runs"]
CHALLENGE_HEADERS = [
    "User Name",
    "User Email",
    "Date",
    "Position",
    "Temperature (°F)",
    "Distance",
    "Duration (min)",
]
LEADERBOARD_HEADERS = ["Rank", "Name", "Email", "Total Runs", "Coldest Temp (°F)", "Avg Temp (°F)"]
CHALLENGE_STATS_HEADERS = [
    "Challenge",
    "Days Count",
    "Participants",
    "Total Runs",
    "Completed Users",
    "Completion Rate (%)",
    "Avg Temp (°F)",
    "Coldest Temp (°F)",
]


def _check_format(fmt: str) -> str:
    if fmt not in FORMATS:
        raise ValidationError(f"Unsupported export format: {fmt}", field="format")
    return fmt


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=_json_default)


def _to_csv(headers: list[str], rows: Iterable[list[Any]]) -> str:
    """Header plus rows, minimal RFC-4180 quoting, ``None`` as an empty cell."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return buf.getvalue().rstrip("\n")


def export_users(fmt: str) -> str:
    _check_format(fmt)
    users = analytics.export_users()
    if fmt == "json":
        return _to_json(users)
    return _to_csv(
        USER_HEADERS,
        (
            [
                u["id"],
                u["name"] or "",
                u["email"],
                u["role"],
                u["created_at"].isoformat(),
                u["total_challenges"],
                u["total_runs"],
            ]
            for u in users
        ),
    )


def export_challenge(challenge_id: int, fmt: str) -> str:
    _check_format(fmt)
    data = analytics.export_challenge_data(challenge_id)
    if data is None:
        raise NotFound("Challenge", challenge_id)
    if fmt == "json":
        return _to_json(data)
    return _to_csv(
        CHALLENGE_HEADERS,
        (
            [
                r["user_name"],
                r["user_email"],
                r["date"].isoformat() if r["date"] else None,
                r["position"],
                r["temperature"],
                r["distance"],
                r["duration_minutes"],
            ]
            for r in data["runs"]
        ),
    )


def export_leaderboard(challenge_id: int, fmt: str) -> str:
    _check_format(fmt)
    rows = analytics.export_leaderboard(challenge_id)
    if fmt == "json":
        return _to_json(rows)
    return _to_csv(
        LEADERBOARD_HEADERS,
        (
            [r["rank"], r["user_name"], r["user_email"], r["total_runs"], r["coldest_temp"], r["average_temp"]]
            for r in rows
        ),
    )


def export_all_challenge_stats(fmt: str) -> str:
    _check_format(fmt)
    stats = analytics.get_all_challenge_participation()
    if fmt == "json":
        return _to_json(stats)
    return _to_csv(
        CHALLENGE_STATS_HEADERS,
        (
            [
                s["challenge_name"],
                s["days_count"],
                s["total_participants"],
                s["total_runs"],
                s["completed_users"],
                s["completion_rate"],
                s["average_temperature"],
                s["coldest_run"],
            ]
            for s in stats
        ),
    )
