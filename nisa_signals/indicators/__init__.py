"""Indicator engine: pure functions over in-memory price series.

Modules
-------
technical — moving averages, RSI, MACD, ATR, volume ratios, drawdown,
            52-week-high distance, trailing dividend yield, monthly trends,
            and ``build_indicator_set()``.
anomalies — ``detect_anomalies()``: price gaps and split events.
"""
