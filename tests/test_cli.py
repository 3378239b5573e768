from __future__ import annotations

import json
from pathlib import Path

import pytest

from rjournal.cli import main

STORE_VARS = ("JOURNAL_STORE_URL", "JOURNAL_STORE_KEY", "SUPABASE_URL", "SUPABASE_ANON_KEY", "RJOURNAL_CONFIG")


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in STORE_VARS:
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "app.toml"
    path.write_text(
        f'[app]\nenv_path = "{(tmp_path / "missing.env").as_posix()}"\n\n[store]\ntable = "journal_trades"\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def trades_file(tmp_path: Path) -> Path:
    records = [
        {"id": "1", "date": "2024-03-04", "time": "09:30", "symbol": "MES", "model": "Breakout",
         "result": "WIN", "r_multiple": 2, "mfe": 3, "mae": 0.5, "conditions": {"VWAP": True}},
        {"id": "2", "date": "2024-03-05", "time": "10:45", "symbol": "MNQ", "model": "Reversal",
         "result": "LOSS", "r_multiple": -1, "mfe": 0.2, "mae": 1, "conditions": {}},
        {"id": "3", "time": "11:00"},
    ]
    path = tmp_path / "trades.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


def test_schema_uses_configured_table(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--config", str(config_path), "schema"]) == 0

    assert "create table public.journal_trades" in capsys.readouterr().out


def test_analytics_text_report(config_path: Path, trades_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["--config", str(config_path), "analytics", "--input", str(trades_file)])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out.startswith("trades 2\n")
    assert "Breakout 1 100 2 2" in captured.out
    assert "equity_final_r 1" in captured.out
    assert "Skipped 1 malformed trade records." in captured.err


def test_analytics_json_with_filters(config_path: Path, trades_file: Path, tmp_path: Path) -> None:
    out_path = tmp_path / "reports" / "dashboard.json"

    exit_code = main(
        [
            "--config",
            str(config_path),
            "analytics",
            "--input",
            str(trades_file),
            "--symbol",
            "MNQ",
            "--json",
            "--out",
            str(out_path),
        ]
    )

    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert exit_code == 0
    assert payload["trade_count"] == 1
    assert payload["model_performance"][0]["model"] == "Reversal"
    assert payload["execution_quality"]["stats"]["loss_count"] == 1


def test_analytics_rejects_non_json_input(config_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "trades.csv"
    source.write_text("date,time\n", encoding="utf-8")

    assert main(["--config", str(config_path), "analytics", "--input", str(source)]) == 1
    assert "Unsupported file type" in capsys.readouterr().err


def test_export_without_credentials_fails(config_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["--config", str(config_path), "export", "--out", str(tmp_path / "out.json")])

    assert exit_code == 1
    assert "not configured" in capsys.readouterr().err
    assert not (tmp_path / "out.json").exists()
