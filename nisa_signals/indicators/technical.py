"""
Technical indicators over daily and monthly price series.

Purpose
-------
Turn a symbol's price history into an ``IndicatorSet``: moving averages,
RSI, MACD, ATR, volume ratios, drawdown, distance from the 52-week high and
the trailing dividend yield.

Contract
--------
Every function here is total: it never raises on short or degenerate input.
When the series is shorter than the lookback a metric needs, or a
denominator is zero, the function returns ``None``.  A metric is never
approximated from a shorter window.

All close-based metrics use ``adjusted_close``.  Series must be ordered
ascending by date (validated at the HTTP/CLI boundary, not here).

MACD
----
The reference formulation recomputes both EMAs over ``closes[:i+1]`` for
every trailing index ``i >= slow`` before smoothing the MACD series into a
signal line.  Each of those recomputations is seeded at ``closes[0]``, so a
single forward pass with running EMA state yields identical values in O(n).
"""

from __future__ import annotations

from typing import Optional, Sequence

from nisa_signals.models.series import DailyPoint, MonthlyPoint
from nisa_signals.models.signal import IndicatorSet

TRADING_DAYS_PER_YEAR = 252


def sma(values: Sequence[float], period: int) -> Optional[float]:
    """Arithmetic mean of the last ``period`` values."""
    if period <= 0 or len(values) < period:
        return None
    window = values[-period:]
    return sum(window) / period


def ema(values: Sequence[float], period: int) -> Optional[float]:
    """Exponential moving average seeded with ``values[0]``.

    ``ema = value * k + ema * (1 - k)`` with ``k = 2 / (period + 1)``.
    """
    if period <= 0 or len(values) < period:
        return None
    k = 2.0 / (period + 1)
    value = values[0]
    for v in values[1:]:
        value = v * k + value * (1.0 - k)
    return value


def rsi(daily: Sequence[DailyPoint], period: int = 14) -> Optional[float]:
    """Relative strength index over the last ``period`` adjusted-close deltas.

    Uses simple sums (not Wilder smoothing).  A window with no losses
    saturates at 100.
    """
    if len(daily) <= period:
        return None
    gain = 0.0
    loss = 0.0
    for i in range(len(daily) - period, len(daily)):
        change = daily[i].adjusted_close - daily[i - 1].adjusted_close
        if change > 0:
            gain += change
        else:
            loss -= change
    avg_gain = gain / period
    avg_loss = loss / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def macd(
    daily: Sequence[DailyPoint],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[Optional[float], Optional[float]]:
    """MACD line and signal line at the latest bar.

    Returns:
        ``(macd, signal)``; both ``None`` when ``len(daily) < slow + signal``.
    """
    if len(daily) < slow + signal:
        return None, None

    closes = [p.adjusted_close for p in daily]
    k_fast = 2.0 / (fast + 1)
    k_slow = 2.0 / (slow + 1)
    k_signal = 2.0 / (signal + 1)

    fast_ema = closes[0]
    slow_ema = closes[0]
    signal_ema: Optional[float] = None

    for i in range(1, len(closes)):
        fast_ema = closes[i] * k_fast + fast_ema * (1.0 - k_fast)
        slow_ema = closes[i] * k_slow + slow_ema * (1.0 - k_slow)
        if i < slow:
            continue
        line = fast_ema - slow_ema
        # Signal EMA is seeded with the first MACD value (index ``slow``).
        if signal_ema is None:
            signal_ema = line
        else:
            signal_ema = line * k_signal + signal_ema * (1.0 - k_signal)

    return fast_ema - slow_ema, signal_ema


def atr(daily: Sequence[DailyPoint], period: int = 14) -> Optional[float]:
    """Average true range over the trailing ``period`` days."""
    if len(daily) <= period:
        return None
    total = 0.0
    for i in range(len(daily) - period, len(daily)):
        cur = daily[i]
        prev_close = daily[i - 1].adjusted_close
        total += max(
            cur.high - cur.low,
            abs(cur.high - prev_close),
            abs(cur.low - prev_close),
        )
    return total / period


def max_drawdown(daily: Sequence[DailyPoint]) -> Optional[float]:
    """Largest peak-to-current decline across the whole series, in percent."""
    if not daily:
        return None
    peak = daily[0].adjusted_close
    worst = 0.0
    for point in daily:
        price = point.adjusted_close
        if price > peak:
            peak = price
        if peak <= 0:
            continue
        drawdown = (peak - price) / peak
        if drawdown > worst:
            worst = drawdown
    return worst * 100.0


def dist_from_52w_high(daily: Sequence[DailyPoint]) -> Optional[float]:
    """Percent gap between the trailing 252-bar high and the latest close."""
    if not daily:
        return None
    recent = daily[-TRADING_DAYS_PER_YEAR:]
    high = max(p.adjusted_close for p in recent)
    if high <= 0:
        return None
    return (high - recent[-1].adjusted_close) / high * 100.0


def volume_ratio(daily: Sequence[DailyPoint], period: int) -> Optional[float]:
    """Latest volume divided by the mean volume of the trailing ``period`` days."""
    if period <= 0 or len(daily) < period:
        return None
    mean_volume = sum(p.volume for p in daily[-period:]) / period
    if mean_volume == 0:
        return None
    return daily[-1].volume / mean_volume


def average_volume(daily: Sequence[DailyPoint], lookback_days: int = 30) -> float:
    """Mean volume over the most recent ``lookback_days`` bars (0 when empty)."""
    recent = daily[-lookback_days:] if lookback_days > 0 else []
    if not recent:
        return 0.0
    return sum(p.volume for p in recent) / len(recent)


def dividend_yield_trailing(monthly: Sequence[MonthlyPoint]) -> Optional[float]:
    """Trailing 12-month dividends over the latest adjusted close, in percent."""
    if len(monthly) < 12:
        return None
    recent = monthly[-12:]
    latest_close = recent[-1].adjusted_close
    if not latest_close:
        return None
    dividends = sum(p.dividend for p in recent)
    return dividends / latest_close * 100.0


def monthly_trend(monthly: Sequence[MonthlyPoint], months: int) -> Optional[float]:
    """Percent change of monthly adjusted close over the last ``months`` bars."""
    if months <= 0 or len(monthly) <= months:
        return None
    base = monthly[-1 - months].adjusted_close
    if base == 0:
        return None
    return (monthly[-1].adjusted_close - base) / base * 100.0


def build_indicator_set(
    daily: Sequence[DailyPoint],
    monthly: Sequence[MonthlyPoint],
) -> IndicatorSet:
    """Compute every indicator for one symbol.

    Args:
        daily:   Daily bars, ascending by date.  May be empty.
        monthly: Monthly bars, ascending by date.  May be empty.

    Returns:
        ``IndicatorSet`` with ``None`` for every metric the history cannot
        support.
    """
    closes = [p.adjusted_close for p in daily]
    macd_line, macd_signal = macd(daily)
    return IndicatorSet(
        sma20=sma(closes, 20),
        sma50=sma(closes, 50),
        sma200=sma(closes, 200),
        ema20=ema(closes, 20),
        rsi14=rsi(daily),
        macd=macd_line,
        macd_signal=macd_signal,
        atr14=atr(daily),
        volume_ratio5=volume_ratio(daily, 5),
        volume_ratio20=volume_ratio(daily, 20),
        max_drawdown=max_drawdown(daily),
        dist_from_52w_high=dist_from_52w_high(daily),
        dividend_yield_trailing=dividend_yield_trailing(monthly),
    )
