from datetime import date

import pytest

from runclub.errors import NoActiveChallenge, NotFound, ValidationError
from runclub.models import Run
from runclub.runs import delete_run, get_run_by_position, list_runs, save_run, update_run


class TestSaveRun:
    def test_creates_run(self, make_challenge, make_user):
        make_challenge()
        user = make_user()

        run = save_run(user.id, 1, 18, date=date(2026, 1, 5), distance=3.1, duration_minutes=28, units="imperial")

        assert run.position == 1
        assert get_run_by_position(user.id, 1) == {
            "id": run.id,
            "position": 1,
            "date": "2026-01-05",
            "temperature": 18,
            "distance": 3.1,
            "duration_minutes": 28,
            "units": "imperial",
        }

    def test_same_position_converges_to_one_row(self, make_challenge, make_user):
        make_challenge()
        user = make_user()

        first = save_run(user.id, 3, 30)
        second = save_run(user.id, 3, 12, distance=5.0)

        assert first.id == second.id
        assert Run.select().count() == 1
        stored = Run.get_by_id(first.id)
        assert stored.temperature == 12
        assert stored.distance == 5.0

    def test_position_beyond_days_count_is_allowed(self, make_challenge, make_user):
        make_challenge(days_count=2)
        user = make_user()
        run = save_run(user.id, 5, 20)
        assert run.position == 5

    def test_position_must_be_positive(self, make_challenge, make_user):
        make_challenge()
        user = make_user()
        with pytest.raises(ValidationError):
            save_run(user.id, 0, 20)

    def test_no_active_challenge(self, make_user):
        user = make_user()
        with pytest.raises(NoActiveChallenge):
            save_run(user.id, 1, 20)

    def test_temperature_optional(self, make_challenge, make_user):
        make_challenge()
        user = make_user()
        run = save_run(user.id, 1, None)
        assert run.temperature is None

    def test_defaults_date_to_today(self, make_challenge, make_user):
        make_challenge()
        user = make_user()
        run = save_run(user.id, 1, 20)
        assert isinstance(run.date, date)

    def test_get_run_by_position_missing(self, make_challenge, make_user):
        make_challenge()
        user = make_user()
        assert get_run_by_position(user.id, 1) is None


class TestAdminModeration:
    def test_update_temperature(self, make_challenge, make_user, log_runs):
        make_challenge()
        [run] = log_runs(make_user(), [20])

        update_run(run.id, temperature=-4)

        assert Run.get_by_id(run.id).temperature == -4

    def test_update_position_conflict(self, make_challenge, make_user, log_runs):
        make_challenge()
        first, _second = log_runs(make_user(), [20, 21])
        with pytest.raises(ValidationError, match="already used"):
            update_run(first.id, position=2)

    def test_delete(self, make_challenge, make_user, log_runs):
        make_challenge()
        [run] = log_runs(make_user(), [20])
        delete_run(run.id)
        assert Run.select().count() == 0

    def test_delete_missing(self):
        with pytest.raises(NotFound):
            delete_run(12345)

    def test_list_runs(self, make_challenge, make_user, log_runs):
        challenge = make_challenge()
        log_runs(make_user(name="Ada Lovelace"), [20, 10])

        rows = list_runs(challenge_id=challenge.id)

        assert len(rows) == 2
        assert {r["temperature"] for r in rows} == {20, 10}
        assert rows[0]["user_name"] == "Ada Lovelace"
        assert rows[0]["season"] == "winter"


def test_save_run_converges_when_insert_loses_race(make_challenge, make_user, miss_first_lookup):
    make_challenge()
    user = make_user()
    first = save_run(user.id, 1, 30)

    with miss_first_lookup(Run):
        run = save_run(user.id, 1, 5, distance=4.2)

    assert Run.select().count() == 1
    assert run.id == first.id
    stored = Run.get_by_id(first.id)
    assert stored.temperature == 5
    assert stored.distance == 4.2
