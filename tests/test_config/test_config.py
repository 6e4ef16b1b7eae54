"""Tests for nisa_signals/config.py (defaults, TOML merge, env overrides)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from nisa_signals.config import (
    AppConfig,
    BuyCriteria,
    EtfCriteria,
    ModeThresholds,
    RecommendConfig,
    ViewSeed,
    load_config,
)
from nisa_signals.taxonomy.signal_taxonomy import Horizon


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in ("NISA_SIGNALS_LOG_LEVEL", "NISA_SIGNALS_API_KEY",
                 "NISA_SIGNALS_POOL_CAP", "NISA_SIGNALS_DEBUG"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_thresholds(self):
        cfg = AppConfig()
        assert cfg.thresholds.for_mode(Horizon.LONG) == ModeThresholds(buy=5, sell=-5)
        assert cfg.thresholds.for_mode(Horizon.SWING) == ModeThresholds(buy=4, sell=-4)

    def test_recommend_defaults(self):
        cfg = AppConfig()
        assert cfg.recommend.pool_cap == 75
        assert cfg.recommend.cache_ttl_minutes == 30
        assert cfg.ranking.popular.minimum_average_volume == 150_000
        assert cfg.ranking.etf.max_expense_ratio == 0.01
        assert cfg.ranking.buy.min_buy_score == 70

    def test_rsi_upper_by_mode(self):
        cfg = AppConfig()
        assert cfg.decision.rsi_upper(Horizon.LONG) == 70
        assert cfg.decision.rsi_upper(Horizon.SWING) == 65


class TestValidation:
    def test_seed_views_non_negative(self):
        with pytest.raises(ValidationError):
            ViewSeed(symbol="AAPL", views=-1)

    def test_sell_must_be_below_buy(self):
        with pytest.raises(ValidationError):
            ModeThresholds(buy=1, sell=2)

    def test_pool_cap_positive(self):
        with pytest.raises(ValidationError):
            RecommendConfig(pool_cap=0)

    def test_min_buy_score_range(self):
        with pytest.raises(ValidationError):
            BuyCriteria(min_buy_score=100)

    def test_max_expense_positive(self):
        with pytest.raises(ValidationError):
            EtfCriteria(max_expense_ratio=0)


class TestLoadConfig:
    def test_repo_default_toml(self):
        cfg = load_config()
        assert cfg.recommend.pool_cap == 75
        assert cfg.thresholds.swing.buy == 4

    def test_repo_default_seeds_app_views(self):
        seed = load_config().app_views.seed
        assert [(s.symbol, s.views) for s in seed][:2] == [("AAPL", 1923), ("MSFT", 1640)]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_local_toml_merged(self, tmp_path):
        (tmp_path / "default.toml").write_text(
            "[recommend]\npool_cap = 40\nconcurrency = 3\n", encoding="utf-8"
        )
        (tmp_path / "local.toml").write_text("[recommend]\npool_cap = 20\n", encoding="utf-8")
        cfg = load_config(tmp_path / "default.toml")
        assert cfg.recommend.pool_cap == 20
        assert cfg.recommend.concurrency == 3

    def test_env_overrides(self, tmp_path, monkeypatch):
        (tmp_path / "default.toml").write_text("[logging]\nlevel = \"INFO\"\n", encoding="utf-8")
        monkeypatch.setenv("NISA_SIGNALS_LOG_LEVEL", "debug")
        monkeypatch.setenv("NISA_SIGNALS_API_KEY", "secret")
        monkeypatch.setenv("NISA_SIGNALS_POOL_CAP", "12")
        monkeypatch.setenv("NISA_SIGNALS_DEBUG", "true")
        cfg = load_config(tmp_path / "default.toml")
        assert cfg.logging.level == "DEBUG"
        assert cfg.market_data.default_api_key == "secret"
        assert cfg.recommend.pool_cap == 12
        assert cfg.debug is True

    def test_invalid_value_raises(self, tmp_path):
        (tmp_path / "default.toml").write_text("[thresholds.long]\nbuy = -9\nsell = 0\n",
                                               encoding="utf-8")
        with pytest.raises(ValidationError):
            load_config(tmp_path / "default.toml")
