from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console
from rich.table import Table

from stockadvisor.config import load_config
from stockadvisor.context import AppContext, build_context
from stockadvisor.logging_setup import configure_logging
from stockadvisor.models import INVESTMENT_HORIZONS, RISK_LEVELS, StockScoreReason
from stockadvisor.pipelines.analyze import analyze_symbol
from stockadvisor.pipelines.explain import ExplainRequest
from stockadvisor.providers.base import MarketDataError, error_response
from stockadvisor.skills.screener import ScreenerFilters, parse_symbols, run_screener

console = Console()


def _fail(exc: MarketDataError) -> None:
    status, message = error_response(exc)
    console.print(f"[red]{message} ({status})[/red]")
    raise SystemExit(1)


def _score_table(result: dict) -> Table:
    table = Table(title=f"{result['symbol']} score {result['score']}/100")
    table.add_column("Reason")
    table.add_column("Impact", justify="right")
    for item in result["reasons"]:
        impact = item["impact"]
        color = "green" if impact > 0 else "red" if impact < 0 else "white"
        table.add_row(item["reason"], f"[{color}]{impact:+d}[/{color}]")
    return table


def cmd_score(args: argparse.Namespace, ctx: AppContext) -> None:
    profile = ctx.profiles.load()
    if args.risk:
        profile.risk = args.risk
    try:
        result = analyze_symbol(ctx.provider, args.symbol, profile, ctx.config.market.momentum_lookback_bars)
    except MarketDataError as e:
        _fail(e)
        return
    console.print(_score_table(result))
    if args.explain:
        _print_explanation(ctx, result["symbol"], result["reasons"])


def _print_explanation(ctx: AppContext, symbol: str, reasons: list[dict]) -> None:
    request = ExplainRequest(
        symbol=symbol,
        score_details=[StockScoreReason(r["reason"], r["impact"]) for r in reasons],
    )
    try:
        record = ctx.explainer.explain(request)
    except MarketDataError as e:
        _fail(e)
        return
    console.print(f"\n[bold]{record['symbol']}[/bold] [dim]({record['source']})[/dim]")
    console.print(record["explanation"])


def cmd_explain(args: argparse.Namespace, ctx: AppContext) -> None:
    try:
        result = analyze_symbol(ctx.provider, args.symbol, ctx.profiles.load(), ctx.config.market.momentum_lookback_bars)
    except MarketDataError as e:
        _fail(e)
        return
    _print_explanation(ctx, result["symbol"], result["reasons"])


def cmd_screen(args: argparse.Namespace, ctx: AppContext) -> None:
    filters = ScreenerFilters(
        pe_min=args.pe_min,
        pe_max=args.pe_max,
        dividend_yield_min=args.dividend_min,
        dividend_yield_max=args.dividend_max,
        sector=args.sector,
        market_cap_min=args.cap_min,
        market_cap_max=args.cap_max,
    )
    symbols = parse_symbols(args.symbols, ctx.config.market.screener_symbols)
    report = run_screener(ctx.provider, symbols, filters)

    table = Table(title=f"Screener ({len(report['results'])}/{report['evaluated']} matched)")
    table.add_column("Symbol")
    table.add_column("Name")
    table.add_column("Sector")
    table.add_column("P/E", justify="right")
    table.add_column("Yield %", justify="right")
    table.add_column("Cap ($B)", justify="right")
    for item in report["results"]:
        table.add_row(
            item["symbol"],
            item["name"],
            item["sector"],
            f"{item['peRatio']:.1f}",
            f"{item['dividendYield'] * 100:.2f}",
            f"{item['marketCapitalization'] / 1_000_000_000:.1f}",
        )
    console.print(table)


def cmd_watchlist(args: argparse.Namespace, ctx: AppContext) -> None:
    if args.action == "export":
        text = ctx.watchlist.export_csv()
        if args.output:
            Path(args.output).write_text(text + "\n", encoding="utf-8")
            console.print(f"Watchlist exported: {args.output}")
        else:
            console.print(text, markup=False)
        return

    try:
        if args.action == "add":
            entries = ctx.watchlist.add(args.symbol or "")
        elif args.action == "remove":
            entries = ctx.watchlist.remove(args.symbol or "")
        else:
            entries = ctx.watchlist.list()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(2)

    table = Table(title="Watchlist")
    table.add_column("Symbol")
    table.add_column("Added")
    for entry in entries:
        table.add_row(entry.symbol, entry.added_at)
    console.print(table)


def cmd_profile(args: argparse.Namespace, ctx: AppContext) -> None:
    if args.action == "set":
        changes: dict[str, object] = {}
        if args.risk:
            changes["risk"] = args.risk
        if args.horizon:
            changes["investment_horizon"] = args.horizon
        if args.notifications is not None:
            changes["notifications_opt_in"] = args.notifications == "on"
        profile = ctx.profiles.update(**changes)
        for sector in args.toggle_sector or []:
            profile = ctx.profiles.toggle_sector(sector)
    elif args.action == "reset":
        profile = ctx.profiles.reset()
    else:
        profile = ctx.profiles.load()

    table = Table(title="Investor profile")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("risk", profile.risk)
    table.add_row("horizon", str(profile.investment_horizon))
    table.add_row("sectors", ", ".join(profile.preferred_sectors) or "-")
    table.add_row("notifications", "on" if profile.notifications_opt_in else "off")
    console.print(table)


def cmd_serve(args: argparse.Namespace, ctx: AppContext) -> None:
    import uvicorn

    from stockadvisor.api import create_app

    uvicorn.run(create_app(ctx), host=args.host, port=args.port, log_level=ctx.config.log_level.lower())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stockadvisor")
    parser.add_argument(
        "--provider",
        type=str,
        default=None,
        choices=["mock", "alphavantage"],
        help="market data source (default: STOCKADVISOR_PROVIDER or alphavantage)",
    )
    sub = parser.add_subparsers(required=True)

    score = sub.add_parser("score", help="score one symbol against your profile")
    score.add_argument("symbol")
    score.add_argument("--risk", choices=list(RISK_LEVELS), help="override the saved risk profile")
    score.add_argument("--explain", action="store_true", help="also print a short explanation")
    score.set_defaults(func=cmd_score)

    explain = sub.add_parser("explain", help="score a symbol and explain the result")
    explain.add_argument("symbol")
    explain.set_defaults(func=cmd_explain)

    screen = sub.add_parser("screen", help="filter a symbol list by fundamentals")
    screen.add_argument("--symbols", type=str, default=None, help="comma separated, default AAPL,MSFT,...")
    screen.add_argument("--sector", type=str, default=None)
    screen.add_argument("--pe-min", type=float, default=None)
    screen.add_argument("--pe-max", type=float, default=None)
    screen.add_argument("--dividend-min", type=float, default=None, help="percent")
    screen.add_argument("--dividend-max", type=float, default=None, help="percent")
    screen.add_argument("--cap-min", type=float, default=None, help="billions")
    screen.add_argument("--cap-max", type=float, default=None, help="billions")
    screen.set_defaults(func=cmd_screen)

    watch = sub.add_parser("watchlist", help="manage the watchlist")
    watch.add_argument("action", choices=["add", "remove", "list", "export"])
    watch.add_argument("symbol", nargs="?")
    watch.add_argument("--output", type=str, default=None, help="csv path for export")
    watch.set_defaults(func=cmd_watchlist)

    profile = sub.add_parser("profile", help="show or change the investor profile")
    profile.add_argument("action", choices=["show", "set", "reset"])
    profile.add_argument("--risk", choices=list(RISK_LEVELS))
    profile.add_argument("--horizon", choices=list(INVESTMENT_HORIZONS))
    profile.add_argument("--notifications", choices=["on", "off"], default=None)
    profile.add_argument("--toggle-sector", action="append", help="add or remove a preferred sector")
    profile.set_defaults(func=cmd_profile)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", type=str, default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config()
    configure_logging(config.log_level)
    ctx = build_context(config, provider_kind=args.provider)
    args.func(args, ctx)


if __name__ == "__main__":
    main()
