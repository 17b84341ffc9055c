"""Tests for the command-line entry point."""

import asyncio
import json
import sys

import pytest

from toyotron.__main__ import main
from toyotron.storage.database import Database
from toyotron.storage.vehicle_repo import VehicleRepository


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"data_dir: {tmp_path}\nstorage:\n  db_path: ${{data_dir}}/cli.db\nllm:\n  api_key: sk-test\n")
    return path


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["toyotron", *args])
    main()


def test_config_check(monkeypatch, capsys, config_file, tmp_path):
    run_cli(monkeypatch, "config-check", "-c", str(config_file), "-e", str(tmp_path / ".env"))
    out = capsys.readouterr().out
    assert "Configuration valid" in out
    assert "LLM key        : set" in out
    assert "Bookings       : in-process" in out


def test_model_info(monkeypatch, capsys, config_file, tmp_path):
    run_cli(monkeypatch, "model-info", "-c", str(config_file), "-e", str(tmp_path / ".env"))
    out = capsys.readouterr().out
    assert "https://openrouter.ai/api/v1/chat/completions" in out


def test_missing_config_exits(monkeypatch, tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        run_cli(monkeypatch, "config-check", "-c", str(tmp_path / "absent.yaml"))
    assert excinfo.value.code == 1


def test_seed(monkeypatch, capsys, config_file, tmp_path):
    rows = tmp_path / "trims.json"
    rows.write_text(json.dumps([{"trim_id": 10, "model": "Tacoma", "msrp": 32000}, {"trim_id": 11, "model": "Tundra"}]))
    run_cli(monkeypatch, "seed", "-c", str(config_file), "-e", str(tmp_path / ".env"), "--vehicles", str(rows))
    assert "Seeded 2 trims" in capsys.readouterr().out

    async def fetch():
        db = Database(str(tmp_path / "cli.db"))
        await db.initialize()
        try:
            return await VehicleRepository(db).get(10)
        finally:
            await db.close()

    assert asyncio.run(fetch())["model"] == "Tacoma"


def test_seed_rejects_non_list(monkeypatch, config_file, tmp_path):
    rows = tmp_path / "trims.json"
    rows.write_text(json.dumps({"trim_id": 1}))
    with pytest.raises(SystemExit):
        run_cli(monkeypatch, "seed", "-c", str(config_file), "--vehicles", str(rows))
