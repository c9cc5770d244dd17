from unittest.mock import patch

import pytest

from runclub.__main__ import main


def test_help(capsys):
    main(["help"])
    assert "setup-challenge" in capsys.readouterr().out


def test_dispatches_setup_challenge():
    with patch("runclub.commands.setup_challenge.run", return_value=0) as mock_run:
        with pytest.raises(SystemExit) as exc:
            main(["setup-challenge", "--season", "winter", "--year", "2025/2026", "--days", "25", "--no-current"])
    assert exc.value.code == 0
    mock_run.assert_called_once_with("winter", "2025/2026", days_count=25, make_current=False)


def test_dispatches_export():
    with patch("runclub.commands.export.run", return_value=0) as mock_run:
        with pytest.raises(SystemExit):
            main(["export", "leaderboard", "--challenge-id", "3", "--format", "json"])
    mock_run.assert_called_once_with("leaderboard", challenge_id=3, fmt="json", output=None)


def test_rejects_unknown_season():
    with pytest.raises(SystemExit) as exc:
        main(["setup-challenge", "--season", "spring", "--year", "2026"])
    assert exc.value.code == 2
