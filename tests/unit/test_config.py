"""Tests for configuration loading and per-run import options."""

from __future__ import annotations

from datetime import timezone
from decimal import Decimal

import pytest

from volume_journal.core.config import ImportConfig, Settings, load_settings
from volume_journal.core.errors import ConfigError


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.imports.default_instrument == "ES"
        assert s.observability.log_format == "json"
        assert set(s.instruments) == {"ES", "MES", "FGBL"}

    def test_instrument_lookup_is_case_insensitive(self):
        preset = Settings().instrument(" mes ")
        assert preset.code == "MES"
        assert preset.price_per_point == Decimal("5")

    def test_unknown_instrument(self):
        with pytest.raises(ConfigError, match="Unknown instrument"):
            Settings().instrument("ZZ")

    def test_import_options_from_preset(self):
        opts = Settings().import_options("u1", "es", dry_run=True)
        assert opts.instrument == "ES"
        assert opts.tick_size == Decimal("0.25")
        assert opts.tick_value == Decimal("12.5")
        assert opts.price_per_point == Decimal("50")
        assert opts.dry_run
        assert opts.sample_limit == 3

    def test_import_options_override_skips_preset(self):
        opts = Settings().import_options(
            "u1", "CL", tick_size=Decimal("0.01"), tick_value=Decimal("10"),
        )
        assert opts.instrument == "CL"
        assert opts.price_per_point == Decimal("1000")

    def test_import_options_unknown_without_ticks(self):
        with pytest.raises(ConfigError):
            Settings().import_options("u1", "CL")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("VJ_DATABASE_URL", "sqlite+aiosqlite:///x.db")
        monkeypatch.setenv("VJ_IMPORTS__SAMPLE_LIMIT", "5")
        s = Settings()
        assert s.database_url == "sqlite+aiosqlite:///x.db"
        assert s.imports.sample_limit == 5


class TestLoadSettings:
    def test_toml_file(self, tmp_path):
        path = tmp_path / "journal.toml"
        path.write_text(
            'database_url = "sqlite+aiosqlite:///j.db"\n'
            "[imports]\n"
            'default_instrument = "NQ"\n'
            'source = "broker"\n'
            "[instruments.NQ]\n"
            'code = "NQ"\n'
            'tick_size = "0.25"\n'
            'tick_value = "5"\n',
            encoding="utf-8",
        )
        s = load_settings(path)
        assert s.database_url == "sqlite+aiosqlite:///j.db"
        assert s.imports.default_instrument == "NQ"
        assert s.instrument("nq").tick_value == Decimal("5")

        opts = s.import_options("u1")
        assert opts.instrument == "NQ"
        assert opts.source == "broker"

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "nope.toml").database_url == Settings().database_url

    def test_overrides(self):
        s = load_settings(overrides={"database_url": "sqlite+aiosqlite:///o.db"})
        assert s.database_url == "sqlite+aiosqlite:///o.db"


class TestStatementTimezone:
    def test_utc(self):
        assert ImportConfig().statement_tz is timezone.utc

    def test_unknown_zone(self):
        with pytest.raises(ConfigError):
            ImportConfig(statement_timezone="Mars/Olympus").statement_tz
