"""Club-wide analytics for the admin dashboard and exports.

These functions are intentionally free of web/Flask dependencies so they can
be used by both the CLI commands and the web application. Callers are
responsible for ensuring the database is initialised before calling these.

Time windows are evaluated against ``now`` (defaults to the current UTC time)
and calendar boundaries (month start, day buckets) against ``tz``, an IANA
timezone name.
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime, timedelta

import pytz

from runclub.challenges import format_challenge_name
from runclub.errors import ValidationError
from runclub.models import Challenge, Run, User, UserChallenge
from runclub.utils import round_half_up

# (label, min inclusive, max exclusive); None means unbounded.
TEMPERATURE_BUCKETS: list[tuple[str, int | None, int | None]] = [
    ("< -10°F", None, -10),
    ("-10 to 0°F", -10, 0),
    ("0 to 10°F", 0, 10),
    ("10 to 20°F", 10, 20),
    ("20 to 32°F", 20, 32),
    ("32 to 40°F", 32, 40),
    ("40 to 50°F", 40, 50),
    ("> 50°F", 50, None),
]


def _now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(UTC)
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now


def _ts(dt: datetime) -> int:
    return int(dt.timestamp())


def _mean_rounded(values: list[int]) -> int | None:
    if not values:
        return None
    return int(round_half_up(sum(values) / len(values)))


def get_overview_stats(now: datetime | None = None, tz: str = "UTC") -> dict:
    """High-level totals plus this calendar month's growth."""
    zone = pytz.timezone(tz)
    local_now = _now(now).astimezone(zone)
    month_start = _ts(zone.localize(datetime(local_now.year, local_now.month, 1)))

    total_users = User.select().count()
    total_runs = Run.select().count()
    return {
        "total_users": total_users,
        "total_runs": total_runs,
        "total_challenges": Challenge.select().count(),
        "average_runs_per_user": round_half_up(total_runs / total_users, 1) if total_users > 0 else 0,
        "user_growth_this_month": User.select().where(User.created >= month_start).count(),
        "runs_this_month": Run.select().where(Run.created >= month_start).count(),
    }


def get_challenge_participation(challenge_id: int) -> dict | None:
    """Participation and temperature stats for one challenge, or None if it doesn't exist."""
    challenge = Challenge.get_or_none(Challenge.id == challenge_id)
    if challenge is None:
        return None

    enrollments = list(UserChallenge.select().where(UserChallenge.challenge == challenge.id))
    run_rows = list(
        Run.select(Run.user_challenge, Run.temperature)
        .join(UserChallenge)
        .where(UserChallenge.challenge == challenge.id)
        .tuples()
    )
    runs_per_enrollment = Counter(uc_id for uc_id, _ in run_rows)
    temperatures = [t for _, t in run_rows if t is not None]

    total_participants = len(enrollments)
    # Completion uses each enrollment's snapshotted target, not the live challenge value.
    completed_users = sum(1 for uc in enrollments if runs_per_enrollment[uc.id] >= uc.days_count)

    return {
        "challenge_id": challenge.id,
        "challenge_name": format_challenge_name(challenge),
        "days_count": challenge.days_count,
        "total_participants": total_participants,
        "total_runs": len(run_rows),
        "completed_users": completed_users,
        "completion_rate": (
            int(round_half_up(completed_users / total_participants * 100)) if total_participants > 0 else 0
        ),
        "average_temperature": _mean_rounded(temperatures),
        "coldest_run": min(temperatures) if temperatures else None,
    }


def get_all_challenge_participation() -> list[dict]:
    challenge_ids = [
        cid for (cid,) in Challenge.select(Challenge.id).order_by(Challenge.year.desc(), Challenge.season).tuples()
    ]
    stats = [get_challenge_participation(cid) for cid in challenge_ids]
    return [s for s in stats if s is not None]


def _active_users_since(since: int) -> int:
    return (
        UserChallenge.select(UserChallenge.user)
        .join(Run)
        .where(Run.created >= since)
        .distinct()
        .count()
    )


def get_user_engagement(now: datetime | None = None) -> dict:
    """Active users, new users and runs over the last 7 and 30 days."""
    current = _now(now)
    seven_days_ago = _ts(current - timedelta(days=7))
    thirty_days_ago = _ts(current - timedelta(days=30))
    return {
        "active_users_last_7_days": _active_users_since(seven_days_ago),
        "active_users_last_30_days": _active_users_since(thirty_days_ago),
        "new_users_last_7_days": User.select().where(User.created >= seven_days_ago).count(),
        "new_users_last_30_days": User.select().where(User.created >= thirty_days_ago).count(),
        "runs_last_7_days": Run.select().where(Run.created >= seven_days_ago).count(),
        "runs_last_30_days": Run.select().where(Run.created >= thirty_days_ago).count(),
    }


def get_runs_by_day(days: int = 30, now: datetime | None = None, tz: str = "UTC") -> list[dict]:
    """Runs logged per day from ``days`` ago through today, with zero-count days filled in.

    Always returns ``days + 1`` entries, oldest first.
    """
    if days < 0:
        raise ValidationError("Days must be 0 or greater", field="days")
    zone = pytz.timezone(tz)
    local_now = _now(now).astimezone(zone)
    start_day = (local_now - timedelta(days=days)).date()
    start = zone.localize(datetime(start_day.year, start_day.month, start_day.day))

    series = {(start_day + timedelta(days=i)).isoformat(): 0 for i in range(days + 1)}
    for (created,) in Run.select(Run.created).where(Run.created >= _ts(start)).tuples():
        key = datetime.fromtimestamp(created, UTC).astimezone(zone).date().isoformat()
        if key in series:
            series[key] += 1

    return [{"date": day, "count": count} for day, count in series.items()]


def get_temperature_distribution(challenge_id: int | None = None) -> list[dict]:
    """Run counts per fixed temperature bucket; empty when there are no temperatures."""
    query = Run.select(Run.temperature).where(Run.temperature.is_null(False))
    if challenge_id is not None:
        query = query.join(UserChallenge).where(UserChallenge.challenge == challenge_id)
    temperatures = [t for (t,) in query.tuples()]
    if not temperatures:
        return []

    counts = [0] * len(TEMPERATURE_BUCKETS)
    for temp in temperatures:
        for i, (_, low, high) in enumerate(TEMPERATURE_BUCKETS):
            if (low is None or temp >= low) and (high is None or temp < high):
                counts[i] += 1
                break

    return [
        {"range": label, "count": counts[i], "min_temp": low, "max_temp": high}
        for i, (label, low, high) in enumerate(TEMPERATURE_BUCKETS)
    ]


# ---------------------------------------------------------------------------
# Export view models
# ---------------------------------------------------------------------------


def export_leaderboard(challenge_id: int) -> list[dict]:
    """Ranked participants: most runs first, then coldest; users without temperatures last."""
    enrollments = list(
        UserChallenge.select(UserChallenge, User)
        .join(User)
        .where(UserChallenge.challenge == challenge_id)
        .order_by(UserChallenge.id)
    )
    temps_by_enrollment: dict[int, list[int | None]] = {uc.id: [] for uc in enrollments}
    for uc_id, temp in (
        Run.select(Run.user_challenge, Run.temperature)
        .join(UserChallenge)
        .where(UserChallenge.challenge == challenge_id)
        .tuples()
    ):
        temps_by_enrollment[uc_id].append(temp)

    rows = []
    for uc in enrollments:
        runs = temps_by_enrollment[uc.id]
        temps = [t for t in runs if t is not None]
        rows.append(
            {
                "user_name": uc.user.name or "Unknown",
                "user_email": uc.user.email,
                "total_runs": len(runs),
                "coldest_temp": min(temps) if temps else None,
                "average_temp": _mean_rounded(temps),
            }
        )

    rows.sort(
        key=lambda r: (-r["total_runs"], r["coldest_temp"] if r["coldest_temp"] is not None else float("inf"))
    )
    return [{"rank": i + 1, **row} for i, row in enumerate(rows)]


def export_users() -> list[dict]:
    """Every user with their challenge and run totals, newest first."""
    enrollments = Counter(uid for (uid,) in UserChallenge.select(UserChallenge.user).tuples())
    runs = Counter(uid for (uid,) in Run.select(UserChallenge.user).join(UserChallenge).tuples())
    return [
        {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "role": u.role,
            "created_at": datetime.fromtimestamp(u.created, UTC),
            "total_challenges": enrollments[u.id],
            "total_runs": runs[u.id],
        }
        for u in User.select().order_by(User.created.desc(), User.id.desc())
    ]


def export_challenge_data(challenge_id: int) -> dict | None:
    """A challenge's full run ledger, oldest run first, or None if it doesn't exist."""
    challenge = Challenge.get_or_none(Challenge.id == challenge_id)
    if challenge is None:
        return None

    query = (
        Run.select(Run, UserChallenge, User)
        .join(UserChallenge)
        .join(User)
        .where(UserChallenge.challenge == challenge.id)
        .order_by(Run.date, UserChallenge.id, Run.position)
    )
    runs = [
        {
            "user_name": run.user_challenge.user.name or "Unknown",
            "user_email": run.user_challenge.user.email,
            "date": run.date,
            "position": run.position,
            "temperature": run.temperature,
            "distance": run.distance,
            "duration_minutes": run.duration_minutes,
        }
        for run in query
    ]
    return {
        "challenge": {
            "id": challenge.id,
            "season": challenge.season,
            "year": challenge.year,
            "days_count": challenge.days_count,
        },
        "runs": runs,
    }
