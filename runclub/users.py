"""User lookup, creation, self-service settings and admin user management."""

from __future__ import annotations

import logging

from peewee import JOIN, IntegrityError, fn

from runclub.db import get_db
from runclub.errors import NotFound, ValidationError
from runclub.models import ROLE_MEMBER, ROLES, UNITS, Run, User, UserChallenge

log = logging.getLogger(__name__)


def find_by_id(user_id: int) -> User | None:
    return User.get_or_none(User.id == user_id)


def find_by_email(email: str) -> User | None:
    return User.get_or_none(User.email == email.strip().lower())


def get_user(user_id: int) -> User:
    user = find_by_id(user_id)
    if user is None:
        raise NotFound("User", user_id)
    return user


def create_user(
    email: str,
    name: str | None = None,
    image: str | None = None,
    email_verified: int | None = None,
    role: str | None = None,
) -> User:
    """Create a user and enroll them in the current challenge, if any."""
    from runclub.challenges import enroll_in_current_challenge

    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Missing required field: email", field="email")
    with get_db().atomic():
        user = User.create(
            email=email,
            name=name,
            image=image,
            email_verified=email_verified,
            role=role or ROLE_MEMBER,
        )
        enroll_in_current_challenge(user)
    log.info("Created user id=%d", user.id)
    return user


def find_or_create_user(
    email: str,
    name: str | None = None,
    image: str | None = None,
    email_verified: int | None = None,
) -> tuple[User, bool]:
    """Return ``(user, created)``.

    Two concurrent first sign-ins for the same email converge on one row: the
    loser's insert hits the unique index and re-reads the winner.
    """
    existing = find_by_email(email)
    if existing is not None:
        return existing, False
    try:
        return create_user(email, name=name, image=image, email_verified=email_verified), True
    except IntegrityError:
        return User.get(User.email == email.strip().lower()), False


def update_user(user_id: int, name: str | None = None, image: str | None = None) -> User:
    """Update profile fields; ``None`` leaves a field unchanged."""
    user = get_user(user_id)
    if name is not None:
        user.name = name
    if image is not None:
        user.image = image
    user.save()
    return user


def update_user_units(user_id: int, units: str) -> User:
    if units not in UNITS:
        raise ValidationError(f"Invalid units: {units}", field="units")
    user = get_user(user_id)
    user.units = units
    user.save()
    return user


def update_user_zip_code(user_id: int, zip_code: str | None) -> User:
    """Set or clear (empty string / None) the zip code used for weather lookups."""
    zip_code = (zip_code or "").strip() or None
    if zip_code is not None and (len(zip_code) > 10 or not zip_code.replace("-", "").isdigit()):
        raise ValidationError(f"Invalid zip code: {zip_code}", field="zip_code")
    user = get_user(user_id)
    user.zip_code = zip_code
    user.save()
    return user


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


def update_user_role(user_id: int, role: str) -> User:
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}", field="role")
    user = get_user(user_id)
    user.role = role
    user.save()
    log.info("User id=%d role set to %s", user_id, role)
    return user


def delete_user(user_id: int) -> None:
    """Delete a user with their enrollments, runs and feedback."""
    user = get_user(user_id)
    with get_db().atomic():
        user.delete_instance(recursive=True)
    log.info("Deleted user id=%d", user_id)


def list_users() -> list[dict]:
    """All users, newest first, with enrollment and run counts for the admin list."""
    enrollments = dict(
        UserChallenge.select(UserChallenge.user, fn.COUNT(UserChallenge.id)).group_by(UserChallenge.user).tuples()
    )
    runs = dict(
        Run.select(UserChallenge.user, fn.COUNT(Run.id)).join(UserChallenge).group_by(UserChallenge.user).tuples()
    )
    result = []
    for u in User.select().order_by(User.created.desc(), User.id.desc()):
        row = u.to_dict()
        row["challenges"] = enrollments.get(u.id, 0)
        row["runs"] = runs.get(u.id, 0)
        result.append(row)
    return result


def get_user_detail(user_id: int) -> dict:
    """One user with each enrollment's challenge and run count."""
    from runclub.challenges import format_challenge_title
    from runclub.models import Challenge

    user = get_user(user_id)
    enrollments = []
    query = (
        UserChallenge.select(UserChallenge, Challenge, fn.COUNT(Run.id).alias("run_count"))
        .join(Challenge)
        .switch(UserChallenge)
        .join(Run, join_type=JOIN.LEFT_OUTER)
        .where(UserChallenge.user == user.id)
        .group_by(UserChallenge.id, Challenge.id)
        .order_by(Challenge.created.desc())
    )
    for uc in query:
        enrollments.append(
            {
                "challenge_id": uc.challenge.id,
                "title": format_challenge_title(uc.challenge),
                "days_count": uc.days_count,
                "run_count": uc.run_count,
                "current": uc.challenge.current,
            }
        )
    return {**user.to_dict(), "enrollments": enrollments}
