"""
Request-level orchestration over the pure core.

Modules
-------
cache     : TTLCache — injectable, per-instance time-boxed cache.
analysis  : analyse_series() + prepare_series() — one symbol, in memory.
recommend : RecommendationOrchestrator — bounded fan-out over a symbol
            pool, candidate scoring and the three rankings.
"""
