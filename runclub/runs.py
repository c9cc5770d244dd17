"""Run recording for members and run moderation for admins.

A run occupies one position of an enrollment; logging a position that is
already used updates that row in place (last write wins, no history).
"""

from __future__ import annotations

import logging
from datetime import date

from peewee import IntegrityError

from runclub.challenges import get_user_current_challenge
from runclub.db import get_db
from runclub.errors import NoActiveChallenge, NotFound, ValidationError
from runclub.models import Challenge, Run, User, UserChallenge, now_ts, today

log = logging.getLogger(__name__)


def get_run_by_position(user_id: int, position: int) -> dict | None:
    """Return the user's run at *position* in the current challenge, or None."""
    enrollment = get_user_current_challenge(user_id)
    if enrollment is None:
        return None
    run = Run.get_or_none((Run.user_challenge == enrollment.id) & (Run.position == position))
    return run.to_dict() if run else None


def _apply(run: Run, temperature, run_date, distance, duration_minutes, units) -> Run:
    run.temperature = temperature
    run.date = run_date
    run.distance = distance
    run.duration_minutes = duration_minutes
    run.units = units
    run.updated = now_ts()
    run.save()
    return run


def save_run(
    user_id: int,
    position: int,
    temperature: int | None,
    date: date | None = None,
    distance: float | None = None,
    duration_minutes: int | None = None,
    units: str | None = None,
) -> Run:
    """Create or update the user's run at *position* in the current challenge.

    *position* is not capped at the challenge's day count so members can log
    extra days. Raises NoActiveChallenge when the user is not enrolled in a
    current challenge.
    """
    if position is None or position < 1:
        raise ValidationError("Position must be 1 or greater", field="position")

    enrollment = get_user_current_challenge(user_id)
    if enrollment is None:
        raise NoActiveChallenge()

    run_date = date or today()
    key = (Run.user_challenge == enrollment.id) & (Run.position == position)

    existing = Run.get_or_none(key)
    if existing is not None:
        return _apply(existing, temperature, run_date, distance, duration_minutes, units)

    try:
        with get_db().atomic():
            run = Run.create(
                user_challenge=enrollment.id,
                position=position,
                date=run_date,
                temperature=temperature,
                distance=distance,
                duration_minutes=duration_minutes,
                units=units,
            )
    except IntegrityError:
        # A concurrent save inserted this position first; converge on its row.
        log.info("Run insert raced for enrollment=%d position=%d; updating", enrollment.id, position)
        return _apply(Run.get(key), temperature, run_date, distance, duration_minutes, units)

    log.info("User id=%d logged position %d at %s°F", user_id, position, temperature)
    return run


# ---------------------------------------------------------------------------
# Admin moderation
# ---------------------------------------------------------------------------


def get_run(run_id: int) -> Run:
    run = Run.get_or_none(Run.id == run_id)
    if run is None:
        raise NotFound("Run", run_id)
    return run


def update_run(run_id: int, temperature: int | None = None, position: int | None = None) -> Run:
    """Correct a run's temperature and/or position; ``None`` leaves a field unchanged."""
    run = get_run(run_id)
    if position is not None and position < 1:
        raise ValidationError("Position must be 1 or greater", field="position")
    if temperature is not None:
        run.temperature = temperature
    if position is not None:
        run.position = position
    run.updated = now_ts()
    try:
        with get_db().atomic():
            run.save()
    except IntegrityError:
        raise ValidationError(f"Position {position} is already used in this challenge", field="position") from None
    return run


def delete_run(run_id: int) -> None:
    run = get_run(run_id)
    run.delete_instance()
    log.info("Deleted run id=%d", run_id)


def list_runs(challenge_id: int | None = None, limit: int = 100) -> list[dict]:
    """Most recently logged runs, optionally for one challenge."""
    query = (
        Run.select(Run, UserChallenge, User, Challenge)
        .join(UserChallenge)
        .join(User)
        .switch(UserChallenge)
        .join(Challenge)
    )
    if challenge_id is not None:
        query = query.where(Challenge.id == challenge_id)
    rows = []
    for run in query.order_by(Run.created.desc(), Run.id.desc()).limit(limit):
        uc = run.user_challenge
        rows.append(
            {
                **run.to_dict(),
                "user_id": uc.user.id,
                "user_name": uc.user.name,
                "user_email": uc.user.email,
                "challenge_id": uc.challenge.id,
                "season": uc.challenge.season,
                "year": uc.challenge.year,
            }
        )
    return rows
