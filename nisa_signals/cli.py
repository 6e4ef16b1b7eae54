"""
NISA Signals — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (score a request file, build recommendations, serve HTTP).
  5. Report result to stdout.

Install and run::

    pip install -e .
    nisa-signals --help
    nisa-signals validate-config
    nisa-signals score examples/voo.json --mode swing
    nisa-signals recommend --symbol VOO --symbol AAPL --limit 5
    nisa-signals serve
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="nisa-signals",
    help="NISA Signals — explainable stock/ETF decision engine.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from nisa_signals.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from nisa_signals.utils.logging import configure_logging
    configure_logging(config.logging)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    show_full: bool = typer.Option(
        False,
        "--show-full",
        help="Print the full merged config as JSON.",
    ),
) -> None:
    """Load and validate the configuration, then print a summary."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Thresholds (long):  buy>={config.thresholds.long.buy:g} "
               f"sell<={config.thresholds.long.sell:g}")
    typer.echo(f"  Thresholds (swing): buy>={config.thresholds.swing.buy:g} "
               f"sell<={config.thresholds.swing.sell:g}")
    typer.echo(f"  Pool cap:           {config.recommend.pool_cap}")
    typer.echo(f"  Cache TTL (min):    {config.recommend.cache_ttl_minutes:g}")
    typer.echo(f"  API key set:        {bool(config.market_data.default_api_key)}")
    typer.echo(f"  Log level:          {config.logging.level}")
    typer.echo(f"  Debug mode:         {config.debug}")

    if show_full:
        dumped = config.model_dump()
        if dumped["market_data"]["default_api_key"]:
            dumped["market_data"]["default_api_key"] = "***"
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(dumped, indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("score")
def score(
    request_file: str = typer.Argument(
        ...,
        help="JSON file holding a score request (dailies, monthlies, ...).",
    ),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        help="Override the request mode: long or swing.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Score one symbol's series and print the decision as JSON."""
    from pydantic import ValidationError

    from nisa_signals.api.schemas import ScoreRequest
    from nisa_signals.pipeline.analysis import analyse_series, prepare_series

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(request_file)
    if not path.exists():
        typer.echo(f"[ERROR] Request file not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if mode is not None:
            raw["mode"] = mode
        request = ScoreRequest.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as exc:
        typer.echo(f"[ERROR] Invalid score request: {exc}", err=True)
        raise typer.Exit(code=1)

    dailies, monthlies = prepare_series(
        request.dailies,
        request.monthlies,
        timeframe_months=request.timeframe_months,
        price_scale=request.price_scale,
        trading_days_per_month=config.recommend.trading_days_per_month,
    )
    result = analyse_series(
        dailies,
        monthlies,
        mode=request.mode,
        profile=request.profile,
        overview=request.overview,
        config=config,
    )
    typer.echo(result.model_dump_json(by_alias=True, indent=2))


@app.command("recommend")
def recommend(
    symbols: Optional[list[str]] = typer.Option(
        None,
        "--symbol",
        help="Symbol to include in the pool (repeatable).",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        min=1,
        help="Entries per list. Defaults to recommend.default_limit.",
    ),
    mode: str = typer.Option(
        "long",
        "--mode",
        help="long or swing.",
    ),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        help="Alpha Vantage API key. Defaults to NISA_SIGNALS_API_KEY.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Build popular / ETF / buy-candidate lists against Alpha Vantage."""
    from nisa_signals.ingestion.alpha_vantage_client import AlphaVantageClient
    from nisa_signals.ingestion.app_views import AppViewsRepository
    from nisa_signals.pipeline.recommend import (
        RecommendationOrchestrator,
        UniverseFetchError,
    )
    from nisa_signals.taxonomy.signal_taxonomy import Horizon

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        horizon = Horizon(mode)
    except ValueError:
        typer.echo(f"[ERROR] Unknown mode '{mode}'. Use long or swing.", err=True)
        raise typer.Exit(code=1)

    key = api_key or config.market_data.default_api_key
    if not key:
        typer.echo("[ERROR] No API key. Pass --api-key or set NISA_SIGNALS_API_KEY.", err=True)
        raise typer.Exit(code=1)

    views = AppViewsRepository.from_records(seed.model_dump() for seed in config.app_views.seed)
    for symbol in symbols or []:
        views.record_view(symbol)

    async def _run():
        async with AlphaVantageClient(config.market_data) as client:
            orchestrator = RecommendationOrchestrator(config, client, views)
            return await orchestrator.build(
                api_key=key, symbols=symbols or [], limit=limit, mode=horizon
            )

    try:
        result = asyncio.run(_run())
    except UniverseFetchError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=2)

    typer.echo(f"Pool: {result.pool_size} symbols, {len(result.errors)} failed")
    for title, items in (
        ("Popular", result.popular),
        ("ETFs", result.etfs),
        ("Buy candidates", result.buy_candidates),
    ):
        typer.echo("")
        typer.echo(f"{title}:")
        if not items:
            typer.echo("  (none)")
        for item in items:
            typer.echo(
                f"  {item.rank:>2}. {item.symbol:<8} {item.decision:<8} "
                f"score={item.score:.3f} conf={item.confidence:.2f}"
            )


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind host (default from config)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default from config)."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from nisa_signals.api.app import create_app

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    bind_host = host or config.api.host
    bind_port = port or config.api.port
    typer.echo(f"Serving on http://{bind_host}:{bind_port}")
    uvicorn.run(create_app(config), host=bind_host, port=bind_port, log_config=None)


if __name__ == "__main__":
    app()
