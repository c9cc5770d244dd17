import runclub.commands.stats as stats


def test_prints_tables(make_challenge, make_user, log_runs, capsys):
    make_challenge(days_count=1)
    log_runs(make_user(), [-5])

    stats.run()

    out = capsys.readouterr().out
    assert "No Name Running Club" in out
    assert "Winter 2025/2026" in out
    assert "1 (100%)" in out
    assert "-5" in out


def test_no_challenges(capsys):
    stats.run()
    assert "No challenges yet." in capsys.readouterr().out
