"""Tests for the vjournal command line."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from conftest import SESSION_LEVELS, STATEMENT_TEXT

from volume_journal.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def statement_file(tmp_path):
    path = tmp_path / "statement.csv"
    path.write_text(STATEMENT_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def day_file(tmp_path):
    lines = ["Price;Volume;Now Delta Aggr"]
    lines += [f"{price};{volume};{delta}" for price, volume, delta in SESSION_LEVELS]
    path = tmp_path / "ES 03.11.25.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestImportStatement:
    def test_memory_import(self, runner, statement_file):
        result = runner.invoke(main, ["import-statement", str(statement_file), "--memory"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["ok"] is True
        assert payload["imported"] == 2
        assert payload["reasons"]["noCloseDate"] == 1
        assert payload["debug"]["badCloseDateSamples"] == ["not a date"]

    def test_dry_run(self, runner, statement_file):
        result = runner.invoke(main, ["import-statement", str(statement_file), "--memory", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["imported"] == 2

    def test_other_instrument(self, runner, statement_file):
        result = runner.invoke(
            main,
            ["import-statement", str(statement_file), "--memory", "--instrument", "NQ",
             "--tick-size", "0.25", "--tick-value", "5"],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["imported"] == 1
        assert payload["reasons"]["filteredInstrument"] == 3

    def test_unknown_instrument_fails(self, runner, statement_file):
        result = runner.invoke(main, ["import-statement", str(statement_file), "--memory", "--instrument", "ZZ"])
        assert result.exit_code == 1
        assert "Unknown instrument" in result.output

    def test_bad_tick_size(self, runner, statement_file):
        result = runner.invoke(main, ["import-statement", str(statement_file), "--memory", "--tick-size", "x"])
        assert result.exit_code == 2


class TestProfile:
    def test_prints_day_profile(self, runner, day_file):
        result = runner.invoke(main, ["profile", str(day_file)])
        assert result.exit_code == 0, result.output
        [day] = json.loads(result.stdout)
        assert day["day"] == "2025-11-03"
        assert day["rows"] == 9
        assert day["poc"] == "101.00"
        assert day["val"] == "100.75"
        assert day["vah"] == "101.50"


class TestGate:
    def test_fade_pass(self, runner, day_file):
        result = runner.invoke(main, ["gate", str(day_file), "--entry-price", "100.00"])
        assert result.exit_code == 0, result.output
        out = json.loads(result.stdout)
        assert out["gate"]["pass"] is True
        assert out["gate"]["score"] == 7
        assert out["trade"]["is_lvn"] is True

    def test_breakout(self, runner, day_file):
        result = runner.invoke(
            main, ["gate", str(day_file), "--entry-price", "101.75", "--mode", "breakout"],
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["gate"]["flags"] == ["outside & mid-vol", "delta with (≥p70)", "not thin"]

    def test_empty_file(self, runner, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("Price;Volume\n", encoding="utf-8")
        result = runner.invoke(main, ["gate", str(path), "--entry-price", "1"])
        assert result.exit_code == 1
