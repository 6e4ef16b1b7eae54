"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``NISA_SIGNALS_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The scoring constants (decision rule boundaries, candidate composite weights,
ranking criteria) live here as named fields.  Their values are empirically
tuned behaviour; override them per deployment, do not rebalance the defaults.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class MarketDataConfig(BaseModel):
    """Alpha Vantage adapter settings."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://www.alphavantage.co/query"
    timeout_s: float = 30.0
    max_retries: int = 5
    default_api_key: str = ""


class ModeThresholds(BaseModel):
    """Score boundaries for one horizon: ``score >= buy`` → BUY, ``<= sell`` → SELL."""

    model_config = ConfigDict(frozen=True)

    buy: float
    sell: float

    @model_validator(mode="after")
    def validate_ordering(self) -> "ModeThresholds":
        if self.sell >= self.buy:
            raise ValueError(
                f"sell threshold ({self.sell}) must be below buy threshold ({self.buy})."
            )
        return self


class ThresholdsConfig(BaseModel):
    """Per-mode decision thresholds."""

    model_config = ConfigDict(frozen=True)

    long: ModeThresholds = ModeThresholds(buy=5, sell=-5)
    swing: ModeThresholds = ModeThresholds(buy=4, sell=-4)

    def for_mode(self, mode: str) -> ModeThresholds:
        return self.swing if mode == "swing" else self.long


class DecisionConfig(BaseModel):
    """Rule boundaries and point weights for the additive decision score.

    Percent-valued boundaries (``*_pct``) are compared against indicator
    values that are themselves expressed in percent.
    """

    model_config = ConfigDict(frozen=True)

    # Trend structure
    sma200_weight: int = 2
    cross_weight: int = 2
    short_trend_weight: int = 1

    # RSI bands
    rsi_healthy_low: float = 45.0
    rsi_healthy_high: float = 60.0
    rsi_healthy_weight: int = 1
    rsi_oversold: float = 35.0
    rsi_overheated_long: float = 70.0
    rsi_overheated_swing: float = 65.0
    rsi_extreme_weight: int = 2

    macd_weight: int = 1

    # ATR relative to close
    atr_high_pct: float = 5.0
    atr_low_pct: float = 3.0
    atr_high_weight: int = 2
    atr_low_weight: int = 1

    volume_surge_ratio: float = 1.5
    volume_surge_weight: int = 2

    near_high_pct: float = 10.0
    far_high_pct: float = 25.0
    high_distance_weight: int = 1

    max_drawdown_pct: float = 25.0
    drawdown_weight: int = 1

    dividend_yield_pct: float = 3.0
    dividend_weight: int = 1

    expense_high_pct: float = 0.6
    expense_low_pct: float = 0.2
    expense_weight: int = 1

    # Confidence mapping
    confidence_divisor: float = 10.0
    neutral_confidence_base: float = 0.1
    directional_confidence_base: float = 0.2
    confidence_floor: float = 0.15
    confidence_ceiling: float = 0.95
    abstain_confidence: float = 0.1

    def rsi_upper(self, mode: str) -> float:
        return self.rsi_overheated_swing if mode == "swing" else self.rsi_overheated_long


class CandidateScoringConfig(BaseModel):
    """Constants for the popularity and ETF-quality composites.

    Popularity::

        0.35·log10(max(1, avg_volume)) + 0.25·max(0, rel_vol − 0.5)
        + 0.30·trend_flags + 0.25·momentum + 0.20·dist + 0.15·rsi

    ETF quality::

        0.5·expense + 0.3·avg(volatility, drawdown) + 0.2·momentum
    """

    model_config = ConfigDict(frozen=True)

    volume_weight: float = 0.35
    rel_volume_weight: float = 0.25
    rel_volume_offset: float = 0.5
    trend_flag_weight: float = 0.30
    momentum_weight: float = 0.25
    distance_weight: float = 0.20
    rsi_weight: float = 0.15

    momentum_1m_weight: float = 0.5
    momentum_3m_weight: float = 1.5
    momentum_12m_weight: float = 0.5
    momentum_divisor: float = 10.0

    distance_horizon_pct: float = 25.0   # 52w-high gap at which dist score hits 0
    rsi_center: float = 55.0
    rsi_band: float = 35.0

    etf_expense_weight: float = 0.5
    etf_risk_weight: float = 0.3
    etf_momentum_weight: float = 0.2
    expense_ceiling: float = 1.2
    volatility_ceiling: float = 1.5
    volatility_divisor: float = 4.0
    drawdown_ceiling: float = 1.5
    drawdown_divisor: float = 35.0
    etf_momentum_3m_weight: float = 0.7
    etf_momentum_12m_weight: float = 0.3
    etf_momentum_divisor: float = 12.0

    # Neutral fallbacks when an ETF metric is missing
    neutral_expense_score: float = 0.6
    neutral_risk_score: float = 0.7
    neutral_momentum_score: float = 0.6

    confidence_low: float = 0.35
    confidence_high: float = 0.85


class PopularWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    app_views: float = 0.7
    average_volume: float = 0.3


class PopularCriteria(BaseModel):
    """Eligibility and weights for the popular-symbols list."""

    model_config = ConfigDict(frozen=True)

    minimum_average_volume: float = 150_000
    minimum_app_views: int = 10
    weights: PopularWeights = PopularWeights()


class EtfWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    distribution_yield: float = 0.5
    expense_ratio: float = 0.3
    average_volume: float = 0.2


class EtfCriteria(BaseModel):
    """Eligibility and weights for ETF recommendations.

    ``max_expense_ratio`` and ``min_distribution_yield`` are fractions
    (0.01 == 1%), matching ``CandidateSnapshot.expense_ratio``.
    """

    model_config = ConfigDict(frozen=True)

    max_expense_ratio: float = 0.01
    min_distribution_yield: float = 0.01
    weights: EtfWeights = EtfWeights()

    @field_validator("max_expense_ratio")
    @classmethod
    def validate_max_expense(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"max_expense_ratio must be positive, got {v}.")
        return v


class BuyWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    buy_score: float = 0.7
    average_volume: float = 0.3


class BuyCriteria(BaseModel):
    """Eligibility and weights for buy candidates (buy_score on a 0–100 scale)."""

    model_config = ConfigDict(frozen=True)

    min_buy_score: float = 70
    weights: BuyWeights = BuyWeights()

    @field_validator("min_buy_score")
    @classmethod
    def validate_min_buy_score(cls, v: float) -> float:
        if not 0 <= v < 100:
            raise ValueError(f"min_buy_score must be in [0, 100), got {v}.")
        return v


class RankingConfig(BaseModel):
    """Criteria for the three recommendation lists."""

    model_config = ConfigDict(frozen=True)

    popular: PopularCriteria = PopularCriteria()
    etf: EtfCriteria = EtfCriteria()
    buy: BuyCriteria = BuyCriteria()


class RecommendConfig(BaseModel):
    """Orchestrator pool, cache and fan-out settings."""

    model_config = ConfigDict(frozen=True)

    pool_cap: int = 75
    cache_ttl_minutes: float = 30.0
    concurrency: int = 5
    default_limit: int = 6
    volume_lookback_days: int = 30
    trading_days_per_month: int = 21

    @field_validator("pool_cap", "concurrency", "default_limit", "volume_lookback_days")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be >= 1, got {v}.")
        return v


class ViewSeed(BaseModel):
    """Initial view count for one symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    views: int = 0

    @field_validator("views")
    @classmethod
    def validate_views(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"views must be non-negative, got {v}.")
        return v


class AppViewsConfig(BaseModel):
    """View counts loaded into the in-memory repository at startup."""

    model_config = ConfigDict(frozen=True)

    seed: list[ViewSeed] = []


class ApiConfig(BaseModel):
    """HTTP adapter bind settings."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 8000


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    logging: LoggingConfig = LoggingConfig()
    market_data: MarketDataConfig = MarketDataConfig()
    thresholds: ThresholdsConfig = ThresholdsConfig()
    decision: DecisionConfig = DecisionConfig()
    candidates: CandidateScoringConfig = CandidateScoringConfig()
    ranking: RankingConfig = RankingConfig()
    recommend: RecommendConfig = RecommendConfig()
    app_views: AppViewsConfig = AppViewsConfig()
    api: ApiConfig = ApiConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply NISA_SIGNALS_* env vars to the raw config dict.

    Supported overrides:
      NISA_SIGNALS_LOG_LEVEL  → raw["logging"]["level"]
      NISA_SIGNALS_API_KEY    → raw["market_data"]["default_api_key"]
      NISA_SIGNALS_POOL_CAP   → raw["recommend"]["pool_cap"]
      NISA_SIGNALS_DEBUG      → raw["debug"]
    """
    if log_level := os.environ.get("NISA_SIGNALS_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if api_key := os.environ.get("NISA_SIGNALS_API_KEY"):
        raw.setdefault("market_data", {})["default_api_key"] = api_key

    if pool_cap := os.environ.get("NISA_SIGNALS_POOL_CAP"):
        raw.setdefault("recommend", {})["pool_cap"] = int(pool_cap)

    if debug := os.environ.get("NISA_SIGNALS_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        logging=LoggingConfig(**raw.get("logging", {})),
        market_data=MarketDataConfig(**raw.get("market_data", {})),
        thresholds=ThresholdsConfig(**raw.get("thresholds", {})),
        decision=DecisionConfig(**raw.get("decision", {})),
        candidates=CandidateScoringConfig(**raw.get("candidates", {})),
        ranking=RankingConfig(**raw.get("ranking", {})),
        recommend=RecommendConfig(**raw.get("recommend", {})),
        app_views=AppViewsConfig(**raw.get("app_views", {})),
        api=ApiConfig(**raw.get("api", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
