from __future__ import annotations
from pathlib import Path

import pytest

from contact_distributor.cli import main as cli_main


@pytest.fixture(autouse=True)
def _mock_db(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def _write_contacts(path: Path, n: int) -> Path:
    lines = ["FirstName,Phone,Notes"] + [f"Name{i},{5550000000 + i}," for i in range(n)]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_cli_no_files_success(write_config, temp_workdir: Path, capsys):
    code = cli_main(["--config", str(write_config)])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=0/0 success=0 failed=0 accepted=0 rejected=0" in out


def test_cli_distributes_directory(write_config, temp_workdir: Path, capsys):
    _write_contacts(temp_workdir / "data" / "leads.csv", 23)
    code = cli_main(["--config", str(write_config)])
    out = capsys.readouterr().out
    assert code == 0
    assert "counts=[5, 5, 5, 4, 4]" in out
    assert "SUMMARY files=1/1 success=1 failed=0 accepted=23 rejected=0" in out


def test_cli_explicit_file_and_json(write_config, temp_workdir: Path, capsys):
    f = _write_contacts(temp_workdir / "upload.csv", 4)
    code = cli_main(["--config", str(write_config), "--json", str(f)])
    out = capsys.readouterr().out
    assert code == 0
    assert '"recordsPerAgent"' in out
    assert '"agentName": "Emeka"' in out


def test_cli_directory_missing(write_config, temp_workdir: Path, capsys):
    text = write_config.read_text(encoding="utf-8").replace("./data", "./missing_dir")
    write_config.write_text(text, encoding="utf-8")
    code = cli_main(["--config", str(write_config)])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR directory not found:" in out


def test_cli_missing_config(temp_workdir: Path, capsys):
    code = cli_main(["--config", str(temp_workdir / "config" / "nope.yml")])
    assert code == 1
    assert "ERROR config: config file not found" in capsys.readouterr().out


def test_cli_inspect_data(write_config, temp_workdir: Path, capsys):
    _write_contacts(temp_workdir / "data" / "leads.csv", 2)
    code = cli_main(["--config", str(write_config), "--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: leads.csv" in out
    assert "cols=['FirstName', 'Phone', 'Notes'] rows=2" in out


def test_cli_debug_flag(write_config, temp_workdir: Path, capsys):
    cli_main(["--config", str(write_config), "--debug"])
    out = capsys.readouterr().out
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG DB connect disabled" in out
