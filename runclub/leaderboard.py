"""Leaderboards, coldest-run records and per-user progress.

Everything here is read-only and recomputed from Run rows on every call.
Public entries carry first names only, never emails.
"""

from __future__ import annotations

from peewee import fn

from runclub.challenges import (
    format_challenge_title,
    get_current_challenge,
    get_current_challenges,
    get_user_current_challenge,
)
from runclub.models import Challenge, Run, User, UserChallenge, first_name


def get_coldest_run(user_id: int) -> dict | None:
    """The user's coldest run in the current challenge, or None."""
    enrollment = get_user_current_challenge(user_id)
    if enrollment is None:
        return None
    run = (
        Run.select()
        .where((Run.user_challenge == enrollment.id) & Run.temperature.is_null(False))
        .order_by(Run.temperature, Run.id)
        .first()
    )
    if run is None:
        return None
    return {"temperature": run.temperature, "date": run.date, "position": run.position}


def _coldest_run_per_user(challenge_id: int) -> list[tuple[User, Run]]:
    """Each user's single coldest run in a challenge, coldest first.

    Runs are scanned by (temperature, id) so a user's tie between two equally
    cold runs always resolves to the earlier-logged row.
    """
    query = (
        Run.select(Run, UserChallenge, User)
        .join(UserChallenge)
        .join(User)
        .where((UserChallenge.challenge == challenge_id) & Run.temperature.is_null(False))
        .order_by(Run.temperature, Run.id)
    )
    seen: set[int] = set()
    result = []
    for run in query:
        user = run.user_challenge.user
        if user.id in seen:
            continue
        seen.add(user.id)
        result.append((user, run))
    return result


def get_challenge_leaderboard(challenge: Challenge | None = None) -> list[dict]:
    """One entry per user (their coldest run) for the current or given challenge."""
    if challenge is None:
        challenge = get_current_challenge()
        if challenge is None:
            return []
    return [
        {"first_name": first_name(user.name), "temperature": run.temperature}
        for user, run in _coldest_run_per_user(challenge.id)
    ]


def get_all_time_record() -> dict | None:
    """The coldest run ever logged, across every challenge and user."""
    run = (
        Run.select(Run, UserChallenge, User, Challenge)
        .join(UserChallenge)
        .join(User)
        .switch(UserChallenge)
        .join(Challenge)
        .where(Run.temperature.is_null(False))
        .order_by(Run.temperature, Run.id)
        .first()
    )
    if run is None:
        return None
    uc = run.user_challenge
    return {
        "name": uc.user.name,
        "image": uc.user.image,
        "temperature": run.temperature,
        "date": run.date,
        "challenge_title": format_challenge_title(uc.challenge),
    }


def get_active_challenges_with_leaderboards() -> list[dict]:
    """Homepage view model: every current challenge with its leaderboard."""
    return [
        {
            "id": challenge.id,
            "title": format_challenge_title(challenge),
            "days_count": challenge.days_count,
            "strava_url": challenge.strava_url,
            "strava_embed_code": challenge.strava_embed_code,
            "leaderboard": get_challenge_leaderboard(challenge),
            "run_count_standings": _run_count_standings(challenge.id),
        }
        for challenge in get_current_challenges()
    ]


def _completed_positions(enrollment_id: int) -> list[int]:
    return [
        p
        for (p,) in Run.select(Run.position)
        .where(Run.user_challenge == enrollment_id)
        .order_by(Run.position)
        .tuples()
    ]


def get_user_progress(user_id: int) -> dict | None:
    """The user's stamp card for the current challenge, or None when not enrolled."""
    enrollment = get_user_current_challenge(user_id)
    if enrollment is None:
        return None
    positions = _completed_positions(enrollment.id)
    return {
        "challenge_id": enrollment.challenge.id,
        "title": format_challenge_title(enrollment.challenge),
        "days_count": enrollment.days_count,
        "run_count": len(positions),
        "completed_positions": positions,
        "completed": len(positions) >= enrollment.days_count,
    }


def _run_count_standings(challenge_id: int) -> list[dict]:
    query = (
        UserChallenge.select(UserChallenge, User, fn.COUNT(Run.id).alias("run_count"))
        .join(User)
        .switch(UserChallenge)
        .join(Run)
        .where(UserChallenge.challenge == challenge_id)
        .group_by(UserChallenge.id, User.id)
        .order_by(fn.COUNT(Run.id).desc(), UserChallenge.id)
    )
    return [
        {"first_name": first_name(uc.user.name), "run_count": uc.run_count, "image": uc.user.image} for uc in query
    ]


def get_run_count_standings(challenge: Challenge | None = None) -> list[dict]:
    """Runs logged per participant in the current or given challenge, most first."""
    if challenge is None:
        challenge = get_current_challenge()
        if challenge is None:
            return []
    return _run_count_standings(challenge.id)


def get_most_runs_all_time() -> dict | None:
    """The single enrollment with the most runs in any challenge; ties go to the earlier enrollment."""
    run_count = fn.COUNT(Run.id)
    uc = (
        UserChallenge.select(UserChallenge, User, Challenge, run_count.alias("run_count"))
        .join(User)
        .switch(UserChallenge)
        .join(Challenge)
        .switch(UserChallenge)
        .join(Run)
        .group_by(UserChallenge.id, User.id, Challenge.id)
        .order_by(run_count.desc(), UserChallenge.id)
        .first()
    )
    if uc is None:
        return None
    return {
        "name": uc.user.name,
        "image": uc.user.image,
        "run_count": uc.run_count,
        "challenge_title": format_challenge_title(uc.challenge),
    }


def get_past_challenges(user_id: int) -> list[dict]:
    """Read-only cards for finished challenges the user took part in, newest first."""
    enrollments = (
        UserChallenge.select(UserChallenge, Challenge)
        .join(Challenge)
        .where((UserChallenge.user == user_id) & (Challenge.current == False))  # noqa: E712
        .order_by(Challenge.created.desc(), Challenge.id.desc())
    )
    cards = []
    for enrollment in enrollments:
        challenge = enrollment.challenge
        coldest = _coldest_run_per_user(challenge.id)
        winner = None
        if coldest:
            user, run = coldest[0]
            winner = {"first_name": first_name(user.name), "temperature": run.temperature, "image": user.image}
        own = next(((u, r) for u, r in coldest if u.id == user_id), None)
        cards.append(
            {
                "challenge_id": challenge.id,
                "title": format_challenge_title(challenge),
                "days_count": enrollment.days_count,
                "completed_positions": _completed_positions(enrollment.id),
                "stats": {
                    "coldest_run_winner": winner,
                    "run_count_standings": _run_count_standings(challenge.id),
                    "user_coldest_run": (
                        {"temperature": own[1].temperature, "position": own[1].position} if own else None
                    ),
                },
            }
        )
    return cards
