import runclub.commands.setup_challenge as setup_challenge
from runclub.challenges import get_current_challenge
from runclub.models import Challenge, UserChallenge


def test_creates_current_challenge_and_enrolls(make_user, capsys):
    make_user()
    make_user()

    assert setup_challenge.run("winter", "2025/2026") == 0

    challenge = get_current_challenge()
    assert challenge.year == "2025/2026"
    assert challenge.days_count == 30
    assert UserChallenge.select().count() == 2
    out = capsys.readouterr().out
    assert "Winter 2025/2026 Challenge" in out
    assert "Enrolled 2 new user(s)" in out


def test_rerun_is_noop(make_user, capsys):
    make_user()
    setup_challenge.run("winter", "2025/2026", days_count=20)
    assert setup_challenge.run("winter", "2025/2026", days_count=20) == 0

    assert Challenge.select().count() == 1
    assert UserChallenge.select().count() == 1
    assert "Enrolled 0 new user(s)" in capsys.readouterr().out


def test_no_current_flag(make_challenge):
    existing = make_challenge(year="2024/2025")
    setup_challenge.run("summer", "2025", make_current=False)
    assert get_current_challenge().id == existing.id


def test_invalid_season(capsys):
    assert setup_challenge.run("spring", "2026") == 1
    assert "Invalid season" in capsys.readouterr().out
