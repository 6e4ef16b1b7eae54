"""
Recommendation engine: converts indicator sets into explainable decisions and
ranked recommendation lists.

Modules
-------
scorer     : decide() + determine_decision() + compute_confidence()
             — additive rule engine, pure functions, no I/O.
candidates : popularity_score() + etf_score() + adjust_confidence()
             — ranking composites, never used for the decision itself.
ranker     : RankingScore dataclass + score_and_sort() + apply_rank()
             + rank_popular_symbols() / rank_etf_recommendations()
             / rank_buy_candidates().
"""
