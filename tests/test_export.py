import csv
import io
import json
from datetime import date

import pytest

from runclub import analytics
from runclub.errors import NotFound, ValidationError
from runclub.export import (
    export_all_challenge_stats,
    export_challenge,
    export_leaderboard,
    export_users,
)
from runclub.runs import save_run


def test_unsupported_format():
    with pytest.raises(ValidationError):
        export_users("xml")


def test_users_csv_header_and_quoting(make_user):
    make_user(name='Smith, "Speedy" Jo', email="jo@example.com")

    content = export_users("csv")

    lines = content.split("\n")
    assert lines[0] == "ID,Name,Email,Role,Created At,Total Challenges,Total Runs"
    assert '"Smith, ""Speedy"" Jo"' in lines[1]
    [row] = list(csv.DictReader(io.StringIO(content)))
    assert row["Name"] == 'Smith, "Speedy" Jo'
    assert row["Total Runs"] == "0"


def test_users_csv_empty_name(make_user):
    make_user(name=None, email="noname@example.com")
    [row] = list(csv.DictReader(io.StringIO(export_users("csv"))))
    assert row["Name"] == ""


def test_challenge_missing_raises():
    with pytest.raises(NotFound):
        export_challenge(999, "csv")


def test_challenge_csv_blank_for_missing_values(make_challenge, make_user):
    challenge = make_challenge()
    user = make_user(name="Ada")
    save_run(user.id, 1, None, date=date(2026, 1, 3))

    content = export_challenge(challenge.id, "csv")

    header, row = content.split("\n")
    assert header == "User Name,User Email,Date,Position,Temperature (°F),Distance,Duration (min)"
    assert row == f"Ada,{user.email},2026-01-03,1,,,"


def test_challenge_json_round_trip(make_challenge, make_user):
    challenge = make_challenge()
    user = make_user(name="Ada")
    save_run(user.id, 1, 12, date=date(2026, 1, 2))
    save_run(user.id, 2, -1, date=date(2026, 1, 4), distance=3.5, duration_minutes=31)

    parsed = json.loads(export_challenge(challenge.id, "json"))
    direct = analytics.export_challenge_data(challenge.id)

    assert parsed["challenge"] == direct["challenge"]
    assert len(parsed["runs"]) == len(direct["runs"])
    for exported, source in zip(parsed["runs"], direct["runs"], strict=True):
        assert exported["temperature"] == source["temperature"]
        assert exported["position"] == source["position"]
        assert exported["date"] == source["date"].isoformat()


def test_leaderboard_csv(make_challenge, make_user, log_runs):
    challenge = make_challenge()
    log_runs(make_user(name="Many Runs", email="many@example.com"), [10, 20, 30])
    log_runs(make_user(name="Cold", email="cold@example.com"), [5])

    lines = export_leaderboard(challenge.id, "csv").split("\n")

    assert lines == [
        "Rank,Name,Email,Total Runs,Coldest Temp (°F),Avg Temp (°F)",
        "1,Many Runs,many@example.com,3,10,20",
        "2,Cold,cold@example.com,1,5,5",
    ]


def test_all_challenge_stats(make_challenge, make_user, log_runs):
    make_challenge(days_count=1)
    log_runs(make_user(), [25])

    lines = export_all_challenge_stats("csv").split("\n")
    assert lines[1] == "Winter 2025/2026,1,1,1,1,100,25,25"

    [stats] = json.loads(export_all_challenge_stats("json"))
    assert stats["completion_rate"] == 100


def test_empty_exports_are_header_only():
    assert export_users("csv") == "ID,Name,Email,Role,Created At,Total Challenges,Total Runs"
    assert json.loads(export_users("json")) == []
