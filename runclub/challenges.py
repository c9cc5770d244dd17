"""Challenge lookup, title formatting and the admin challenge lifecycle.

The "exactly one current challenge" rule lives here: every write that can set
``Challenge.current`` clears the flag on the other rows inside the same
``db.atomic()`` block, so no reader ever sees two current challenges.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from peewee import IntegrityError, fn

from runclub.db import get_db
from runclub.errors import NotFound, ValidationError
from runclub.models import SEASONS, Challenge, Run, User, UserChallenge

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_current_challenge() -> Challenge | None:
    """Return the active challenge, or None."""
    return Challenge.select().where(Challenge.current == True).order_by(Challenge.id).first()  # noqa: E712


def get_current_challenges() -> list[Challenge]:
    """Every challenge flagged current; the invariant keeps this to 0 or 1 rows."""
    return list(Challenge.select().where(Challenge.current == True).order_by(Challenge.id))  # noqa: E712


def get_user_current_challenge(user_id: int) -> UserChallenge | None:
    """Return the user's enrollment in the current challenge, with the challenge joined."""
    return (
        UserChallenge.select(UserChallenge, Challenge)
        .join(Challenge)
        .where((UserChallenge.user == user_id) & (Challenge.current == True))  # noqa: E712
        .order_by(Challenge.id)
        .first()
    )


def get_challenge(challenge_id: int) -> Challenge:
    challenge = Challenge.get_or_none(Challenge.id == challenge_id)
    if challenge is None:
        raise NotFound("Challenge", challenge_id)
    return challenge


def _season_and_year(challenge: Challenge | Mapping[str, Any]) -> tuple[str, str]:
    if isinstance(challenge, Mapping):
        return challenge["season"], str(challenge["year"])
    return challenge.season, str(challenge.year)


def format_challenge_name(challenge: Challenge | Mapping[str, Any]) -> str:
    """e.g. ``"Winter 2025/2026"``."""
    season, year = _season_and_year(challenge)
    return f"{season[:1].upper()}{season[1:]} {year}"


def format_challenge_title(challenge: Challenge | Mapping[str, Any]) -> str:
    """e.g. ``"Winter 2025/2026 Challenge"`` or ``"Summer 2026 Challenge"``."""
    return f"{format_challenge_name(challenge)} Challenge"


def list_challenges() -> list[dict]:
    """All challenges, newest first, with enrollment and run counts for the admin list."""
    participants = dict(
        UserChallenge.select(UserChallenge.challenge, fn.COUNT(UserChallenge.id))
        .group_by(UserChallenge.challenge)
        .tuples()
    )
    runs = dict(
        Run.select(UserChallenge.challenge, fn.COUNT(Run.id))
        .join(UserChallenge)
        .group_by(UserChallenge.challenge)
        .tuples()
    )
    result = []
    for c in Challenge.select().order_by(Challenge.year.desc(), Challenge.season):
        row = c.to_dict()
        row["title"] = format_challenge_title(c)
        row["participants"] = participants.get(c.id, 0)
        row["runs"] = runs.get(c.id, 0)
        result.append(row)
    return result


# ---------------------------------------------------------------------------
# Admin lifecycle
# ---------------------------------------------------------------------------


def _validate(season: str, year: str, days_count: int) -> tuple[str, str]:
    season = (season or "").strip().lower()
    year = (year or "").strip()
    if season not in SEASONS:
        raise ValidationError(f"Invalid season: {season or '(missing)'}", field="season")
    if not year:
        raise ValidationError("Missing required field: year", field="year")
    if days_count is None or days_count < 1:
        raise ValidationError("Days count must be at least 1", field="days_count")
    return season, year


def _clear_current(except_id: int | None = None) -> None:
    query = Challenge.update(current=False).where(Challenge.current == True)  # noqa: E712
    if except_id is not None:
        query = query.where(Challenge.id != except_id)
    query.execute()


def _bulk_enroll(challenge: Challenge) -> int:
    """Enroll every user, skipping existing enrollments. Returns the number created."""
    before = UserChallenge.select().where(UserChallenge.challenge == challenge).count()
    rows = [
        {"user": user_id, "challenge": challenge.id, "days_count": challenge.days_count}
        for (user_id,) in User.select(User.id).tuples()
    ]
    if rows:
        UserChallenge.insert_many(rows).on_conflict_ignore().execute()
    return UserChallenge.select().where(UserChallenge.challenge == challenge).count() - before


def create_challenge(
    season: str,
    year: str,
    days_count: int,
    current: bool = False,
    enroll_all: bool = False,
    strava_url: str | None = None,
    strava_embed_code: str | None = None,
) -> Challenge:
    """Create a challenge, optionally making it current and enrolling every user.

    All writes share one transaction.
    """
    season, year = _validate(season, year, days_count)
    try:
        with get_db().atomic():
            if current:
                _clear_current()
            challenge = Challenge.create(
                season=season,
                year=year,
                days_count=days_count,
                current=current,
                strava_url=strava_url,
                strava_embed_code=strava_embed_code,
            )
            if enroll_all:
                enrolled = _bulk_enroll(challenge)
                log.info("Enrolled %d users in %s", enrolled, format_challenge_title(challenge))
    except IntegrityError:
        raise ValidationError(f"A {season} {year} challenge already exists", field="year") from None
    log.info("Created challenge %s (id=%d, current=%s)", format_challenge_title(challenge), challenge.id, current)
    return challenge


def update_challenge(
    challenge_id: int,
    season: str,
    year: str,
    days_count: int,
    current: bool,
    strava_url: str | None = None,
    strava_embed_code: str | None = None,
) -> Challenge:
    """Edit a challenge. Existing enrollments keep their snapshotted day count."""
    season, year = _validate(season, year, days_count)
    challenge = get_challenge(challenge_id)
    try:
        with get_db().atomic():
            if current:
                _clear_current(except_id=challenge.id)
            challenge.season = season
            challenge.year = year
            challenge.days_count = days_count
            challenge.current = current
            challenge.strava_url = strava_url
            challenge.strava_embed_code = strava_embed_code
            challenge.save()
    except IntegrityError:
        raise ValidationError(f"A {season} {year} challenge already exists", field="year") from None
    return challenge


def delete_challenge(challenge_id: int) -> None:
    """Delete a challenge together with its enrollments and their runs."""
    challenge = get_challenge(challenge_id)
    with get_db().atomic():
        challenge.delete_instance(recursive=True)
    log.info("Deleted challenge id=%d", challenge_id)


def set_current_challenge(challenge_id: int) -> Challenge:
    """Make *challenge_id* the only current challenge."""
    challenge = get_challenge(challenge_id)
    with get_db().atomic():
        _clear_current(except_id=challenge.id)
        Challenge.update(current=True).where(Challenge.id == challenge.id).execute()
    challenge.current = True
    log.info("Current challenge is now %s", format_challenge_title(challenge))
    return challenge


# ---------------------------------------------------------------------------
# Enrollment
# ---------------------------------------------------------------------------


def enroll_all_users(challenge_id: int) -> dict[str, int]:
    challenge = get_challenge(challenge_id)
    with get_db().atomic():
        enrolled = _bulk_enroll(challenge)
    return {"enrolled": enrolled}


def enroll_user(user_id: int, challenge_id: int) -> UserChallenge:
    """Enroll a user; re-enrolling is a no-op that returns the existing row."""
    challenge = get_challenge(challenge_id)
    if User.get_or_none(User.id == user_id) is None:
        raise NotFound("User", user_id)
    (
        UserChallenge.insert(user=user_id, challenge=challenge.id, days_count=challenge.days_count)
        .on_conflict_ignore()
        .execute()
    )
    return UserChallenge.get((UserChallenge.user == user_id) & (UserChallenge.challenge == challenge.id))


def unenroll_user(user_id: int, challenge_id: int) -> None:
    enrollment = UserChallenge.get_or_none((UserChallenge.user == user_id) & (UserChallenge.challenge == challenge_id))
    if enrollment is None:
        raise NotFound("Enrollment", f"user={user_id} challenge={challenge_id}")
    enrollment.delete_instance(recursive=True)


def enroll_in_current_challenge(user: User) -> UserChallenge | None:
    """Sign-up hook: enroll a new user in the current challenge, if there is one."""
    challenge = get_current_challenge()
    if challenge is None:
        return None
    return enroll_user(user.id, challenge.id)


def setup_challenge(season: str, year: str, days_count: int, make_current: bool = True) -> tuple[Challenge, int]:
    """Idempotently seed a challenge and enroll every existing user.

    Safe to re-run: the (season, year) row is found or created and existing
    enrollments are left alone. Returns ``(challenge, newly_enrolled)``.
    """
    season, year = _validate(season, year, days_count)
    challenge = Challenge.get_or_none((Challenge.season == season) & (Challenge.year == year))
    if challenge is None:
        try:
            with get_db().atomic():
                challenge = Challenge.create(season=season, year=year, days_count=days_count)
        except IntegrityError:
            # Lost a race with a concurrent seed; use the winner's row.
            challenge = Challenge.get((Challenge.season == season) & (Challenge.year == year))
    if make_current:
        challenge = set_current_challenge(challenge.id)
    with get_db().atomic():
        enrolled = _bulk_enroll(challenge)
    return challenge, enrolled
