"""Domain models: users, challenges, enrollments and runs."""

from __future__ import annotations

from datetime import UTC, date, datetime

from flask_login import UserMixin
from peewee import (
    BooleanField,
    CharField,
    DateField,
    FloatField,
    ForeignKeyField,
    IntegerField,
    Model,
    TextField,
)

from runclub.db import db

ROLE_MEMBER = "member"
ROLE_ADMIN = "admin"
ROLES = (ROLE_MEMBER, ROLE_ADMIN)

UNITS_IMPERIAL = "imperial"
UNITS_METRIC = "metric"
UNITS = (UNITS_IMPERIAL, UNITS_METRIC)

SEASON_WINTER = "winter"
SEASON_SUMMER = "summer"
SEASONS = (SEASON_WINTER, SEASON_SUMMER)

DEFAULT_DAYS_COUNT = 30


def now_ts() -> int:
    """Current time as a Unix timestamp."""
    return int(datetime.now(UTC).timestamp())


def today() -> date:
    return datetime.now(UTC).date()


class User(UserMixin, Model):
    """A club member, created on first sign-in."""

    email = CharField(unique=True)
    name = CharField(null=True)
    image = CharField(null=True, max_length=1024)
    email_verified = IntegerField(null=True)  # Unix timestamp
    role = CharField(default=ROLE_MEMBER)  # ROLE_MEMBER | ROLE_ADMIN
    units = CharField(default=UNITS_IMPERIAL)  # UNITS_IMPERIAL | UNITS_METRIC
    zip_code = CharField(null=True)  # used for the weather pre-fill only
    created = IntegerField(default=now_ts)

    class Meta:
        database = db
        table_name = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def first_name(self) -> str:
        return first_name(self.name)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "image": self.image,
            "role": self.role,
            "units": self.units,
            "zip_code": self.zip_code,
            "created": self.created,
        }


class Challenge(Model):
    """A seasonal campaign with a target number of runs."""

    season = CharField()  # SEASON_WINTER | SEASON_SUMMER
    year = CharField()  # "2026" or "2025/2026"
    days_count = IntegerField(default=DEFAULT_DAYS_COUNT)
    # At most one row is current; challenges.set_current_challenge() owns this.
    current = BooleanField(default=False)
    strava_url = CharField(null=True, max_length=1024)
    strava_embed_code = TextField(null=True)
    created = IntegerField(default=now_ts)

    class Meta:
        database = db
        table_name = "challenge"
        indexes = ((("season", "year"), True),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "season": self.season,
            "year": self.year,
            "days_count": self.days_count,
            "current": self.current,
            "strava_url": self.strava_url,
            "strava_embed_code": self.strava_embed_code,
            "created": self.created,
        }


class UserChallenge(Model):
    """A user's enrollment in one challenge."""

    user = ForeignKeyField(User, backref="user_challenges", on_delete="CASCADE")
    challenge = ForeignKeyField(Challenge, backref="user_challenges", on_delete="CASCADE")
    # Snapshot of Challenge.days_count at enrollment; later edits to the
    # challenge do not move an enrolled user's target.
    days_count = IntegerField(default=DEFAULT_DAYS_COUNT)
    created = IntegerField(default=now_ts)

    class Meta:
        database = db
        table_name = "user_challenge"
        indexes = ((("user", "challenge"), True),)


class Run(Model):
    """One logged run occupying a position ("day N") of an enrollment."""

    user_challenge = ForeignKeyField(UserChallenge, backref="runs", on_delete="CASCADE")
    position = IntegerField()  # 1-based
    date = DateField(default=today)
    temperature = IntegerField(null=True)  # °F
    distance = FloatField(null=True)
    duration_minutes = IntegerField(null=True)
    units = CharField(null=True)
    created = IntegerField(default=now_ts)
    updated = IntegerField(default=now_ts)

    class Meta:
        database = db
        table_name = "run"
        indexes = ((("user_challenge", "position"), True),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "date": self.date.isoformat() if self.date else None,
            "temperature": self.temperature,
            "distance": self.distance,
            "duration_minutes": self.duration_minutes,
            "units": self.units,
        }


def first_name(name: str | None) -> str:
    """The given-name token of a display name, for public leaderboards."""
    if not name or not name.strip():
        return "Runner"
    return name.strip().split(" ")[0]
