"""CLI command `setup-challenge`: seed a season and enroll every user.

Safe to re-run: the (season, year) challenge is reused when it exists and
users who are already enrolled are skipped.
"""

from runclub.core import RunClub
from runclub.errors import ValidationError


def run(season: str, year: str, days_count: int | None = None, make_current: bool = True) -> int:
    """Return a process exit code."""
    with RunClub() as club:
        from runclub.challenges import format_challenge_title, setup_challenge

        days = days_count or club.config.get("default_days_count") or 30
        print("Setting up challenge...\n")
        try:
            challenge, enrolled = setup_challenge(season, year, days, make_current=make_current)
        except ValidationError as e:
            print(f"❌ {e}")
            return 1

        print(f"✓ Challenge ready: {format_challenge_title(challenge)} (current: {challenge.current})")
        print(f"✓ Enrolled {enrolled} new user(s) in the challenge")
        return 0
