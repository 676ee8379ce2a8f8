"""Tests for the command-line entrypoint."""

from datetime import date

import pytest

from met_tracker.main import main


@pytest.fixture
def database(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


def test_simulate_then_summary(database, capsys):
    main(["simulate", "--profile", "still", "--minutes", "2", "--seed", "1"])
    out = capsys.readouterr().out
    assert "profile=still" in out
    assert "final=Sedentary" in out
    assert "write_failures=0" in out

    main(["summary"])
    out = capsys.readouterr().out
    assert f"{date.today().isoformat()}  total 00:02:00" in out
    assert "Sedentary  00:02:00" in out


def test_summary_without_data(database, capsys):
    main(["summary", "--date", "2020-01-01"])
    assert capsys.readouterr().out.strip() == "2020-01-01: no activity recorded"


def test_seed_demo(database, capsys):
    main(["seed-demo"])
    assert capsys.readouterr().out.strip() == "Seeded 21 demo records."


def test_unknown_command_prints_help(database):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 1
