import sys

import pytest

from vacinaos import __main__ as cli

from conftest import write_patient_file


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["vacinaos", *args])
    return cli.main()


def test_help(monkeypatch, capsys):
    assert _run(monkeypatch, "help") == 0
    assert "evaluate <patient.json>" in capsys.readouterr().out


def test_unknown_command_shows_help(monkeypatch, capsys):
    assert _run(monkeypatch, "frobnicate") == 0
    assert "Unknown command: frobnicate" in capsys.readouterr().out


def test_age(monkeypatch, capsys):
    assert _run(monkeypatch, "age", "2020-01-31", "--now", "2020-03-01") == 0
    out = capsys.readouterr().out
    assert "0y 1m 1d" in out
    assert "total months: 1" in out


def test_evaluate_single_vaccine(monkeypatch, capsys, tmp_path):
    path = write_patient_file(
        tmp_path / "kid.json",
        {"patient_id": "K1", "name": "Kid", "date_of_birth": "2023-01-15", "sex": "M"},
    )
    assert _run(monkeypatch, "evaluate", str(path), "--now", "2025-03-01", "--vaccine", "BCG", "--no-write") == 0
    out = capsys.readouterr().out
    assert "Kid" in out
    assert "Bloqueado (>1 ano)" in out
    assert "2 anos, 1 meses" in out


def test_evaluate_unknown_vaccine(monkeypatch, capsys, tmp_path):
    path = write_patient_file(tmp_path / "kid.json", {"date_of_birth": "2023-01-15", "sex": "M"})
    assert _run(monkeypatch, "evaluate", str(path), "--vaccine", "Nope", "--no-write") == 1


def test_evaluate_missing_file(monkeypatch, tmp_path):
    with pytest.raises(SystemExit):
        _run(monkeypatch, "evaluate", str(tmp_path / "ghost"))
