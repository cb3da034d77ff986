from __future__ import annotations

import os
from pathlib import Path

import pytest

from bingo_engine.config import resolve_parameters, storage_locations


def test_env_precedence_over_config(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "config.yaml"
    cfg.write_text("max_number: 60\ncard_count: 2\n", encoding="utf-8")
    monkeypatch.setenv("BINGO_ENGINE_MAX_NUMBER", "90")

    resolved, cfg_path = resolve_parameters(
        config_path_str=str(cfg), cli_overrides={}, env=os.environ
    )
    assert resolved["max_number"] == 90
    assert resolved["card_count"] == 2
    assert cfg_path == cfg.resolve()


def test_cli_precedence_over_env(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "config.json"
    cfg.write_text('{"seed": {"value": 1}}', encoding="utf-8")
    monkeypatch.setenv("BINGO_ENGINE_SEED_VALUE", "2")

    resolved, _ = resolve_parameters(
        config_path_str=str(cfg), cli_overrides={"seed.value": 3}, env=os.environ
    )
    assert resolved["seed"] == {"engine": "py_random", "value": 3}


def test_path_normalization_cli_vs_config(tmp_path: Path, monkeypatch):
    cfg_dir = tmp_path / "cfg"
    cfg_dir.mkdir()
    cfg = cfg_dir / "conf.yaml"
    cfg.write_text("state_dir: saves\n", encoding="utf-8")

    monkeypatch.chdir(tmp_path)
    resolved, _ = resolve_parameters(
        config_path_str=str(cfg), cli_overrides={"log_file": "game.log"}, env={}
    )
    assert Path(resolved["state_dir"]) == (cfg_dir / "saves").resolve()
    assert Path(resolved["log_file"]).parent == tmp_path.resolve()


def test_storage_locations_default_to_state_dir(tmp_path: Path):
    resolved, _ = resolve_parameters(
        config_path_str=None, cli_overrides={"state_dir": str(tmp_path)}, env={}
    )
    kv_path, db_url = storage_locations(resolved)
    assert kv_path == tmp_path / "bingo-storage.json"
    assert db_url == f"sqlite+aiosqlite:///{tmp_path / 'bingo-game.sqlite3'}"

    resolved["db_url"] = "sqlite+aiosqlite:///:memory:"
    assert storage_locations(resolved)[1] == "sqlite+aiosqlite:///:memory:"


def test_bad_config_files_rejected(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        resolve_parameters(config_path_str=str(tmp_path / "nope.yaml"), cli_overrides={}, env={})
    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        resolve_parameters(config_path_str=str(listing), cli_overrides={}, env={})
    ini = tmp_path / "conf.ini"
    ini.write_text("[x]\n", encoding="utf-8")
    with pytest.raises(ValueError):
        resolve_parameters(config_path_str=str(ini), cli_overrides={}, env={})
