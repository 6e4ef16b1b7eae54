"""
Edge adapters: the only I/O in the project.

Modules
-------
alpha_vantage_client : AlphaVantageClient (async httpx) + MarketDataError
                       + pure payload parsers.
app_views            : AppViewsRepository — in-memory per-symbol view counts.
"""
