"""
Price anomaly detection.

Walks consecutive daily bars and flags two conditions that make automated
judgement unreliable:

- **Price gap** — adjusted close moved more than ``GAP_THRESHOLD`` (20%) in
  one session, in either direction.
- **Split event** — ``split_coefficient`` differs from 1 on a bar.

Any anomaly makes the decision engine abstain.  Indicator values are left
untouched; detection only reports.
"""

from __future__ import annotations

from typing import Sequence

from nisa_signals.models.series import DailyPoint

GAP_THRESHOLD = 0.20


def detect_anomalies(
    daily: Sequence[DailyPoint],
    gap_threshold: float = GAP_THRESHOLD,
) -> list[str]:
    """Return human-readable anomaly messages in series order (possibly empty).

    Messages look like::

        "price gap 2024-03-04: 23.5%"
        "split event 2024-06-10: 4.0"
    """
    alerts: list[str] = []
    for prev, cur in zip(daily, daily[1:]):
        if prev.adjusted_close > 0:
            gap = abs(cur.adjusted_close - prev.adjusted_close) / prev.adjusted_close
            if gap > gap_threshold:
                alerts.append(f"price gap {cur.date.isoformat()}: {gap * 100:.1f}%")
        if cur.split_coefficient and cur.split_coefficient != 1:
            alerts.append(
                f"split event {cur.date.isoformat()}: {cur.split_coefficient:g}"
            )
    return alerts
