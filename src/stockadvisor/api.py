from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from stockadvisor.context import AppContext
from stockadvisor.models import StockSnapshot, UserProfile, resolve_risk
from stockadvisor.pipelines.analyze import analyze_symbol, fetch_quote_with_pe
from stockadvisor.pipelines.explain import parse_explain_request
from stockadvisor.providers.base import MarketDataError, error_response
from stockadvisor.skills.scoring import score_stock, summarize_series
from stockadvisor.skills.screener import parse_screener_filters, parse_symbols, run_screener

log = logging.getLogger(__name__)


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


async def _call_upstream(fn: Callable[..., Any], *args: Any) -> Any:
    try:
        return await run_in_threadpool(fn, *args)
    except MarketDataError as exc:
        status, message = error_response(exc)
        log.info("upstream error %s: %s", status, exc.message)
        return _error(status, message)
    except Exception as exc:
        log.exception("unexpected market data error")
        status, message = error_response(exc)
        return _error(status, message)


def _optional_float(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return float(value)
    except OverflowError:
        return None


def _snapshot_from_body(body: dict) -> StockSnapshot:
    return StockSnapshot(
        symbol=str(body.get("symbol") or "").strip().upper(),
        pe_ratio=_optional_float(body.get("peRatio")),
        earnings_growth=_optional_float(body.get("earningsGrowth")),
        dividend_yield=_optional_float(body.get("dividendYield")),
        momentum_3m=_optional_float(body.get("momentum3M")),
    )


def build_router(ctx: AppContext) -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.post("/explain")
    async def explain(request: Request):
        parsed = parse_explain_request(await request.body())
        if not parsed.ok:
            return _error(400, parsed.error)
        return await _call_upstream(ctx.explainer.explain, parsed.value)

    @router.get("/quote")
    async def quote(symbol: str = Query("")):
        if not symbol.strip():
            return _error(400, "Query parameter 'symbol' is required")
        return await _call_upstream(fetch_quote_with_pe, ctx.provider, symbol.strip().upper())

    @router.get("/search")
    async def search(q: str = Query("")):
        if not q.strip():
            return _error(400, "Query parameter 'q' is required")

        def _search() -> dict:
            matches = ctx.provider.search_symbols(q.strip())
            return {"query": q.strip(), "results": [m.to_dict() for m in matches]}

        return await _call_upstream(_search)

    @router.get("/timeseries")
    async def timeseries(symbol: str = Query("")):
        if not symbol.strip():
            return _error(400, "Query parameter 'symbol' is required")
        normalized = symbol.strip().upper()
        series = await _call_upstream(ctx.provider.get_daily_series, normalized)
        if isinstance(series, JSONResponse):
            return series
        if not series:
            return _error(404, "No time series data available")
        return summarize_series(normalized, series)

    @router.get("/screener")
    async def screener(request: Request):
        params = dict(request.query_params)
        filters = parse_screener_filters(params)
        symbols = parse_symbols(params.get("symbols"), ctx.config.market.screener_symbols)
        return await _call_upstream(run_screener, ctx.provider, symbols, filters)

    @router.post("/score")
    async def score(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return _error(400, "Request body must be a JSON object")
        profile = UserProfile(risk=resolve_risk(body.get("risk")))
        return score_stock(_snapshot_from_body(body), profile).to_dict()

    @router.get("/analyze")
    async def analyze(symbol: str = Query(""), risk: str | None = Query(None)):
        if not symbol.strip():
            return _error(400, "Query parameter 'symbol' is required")
        profile = ctx.profiles.load()
        if risk is not None:
            profile.risk = resolve_risk(risk)
        return await _call_upstream(
            analyze_symbol, ctx.provider, symbol, profile, ctx.config.market.momentum_lookback_bars
        )

    @router.get("/watchlist")
    def watchlist_list():
        return [e.to_dict() for e in ctx.watchlist.list()]

    @router.post("/watchlist/{symbol}")
    def watchlist_add(symbol: str):
        try:
            return [e.to_dict() for e in ctx.watchlist.add(symbol)]
        except ValueError as exc:
            return _error(400, str(exc))

    @router.delete("/watchlist/{symbol}")
    def watchlist_remove(symbol: str):
        try:
            return [e.to_dict() for e in ctx.watchlist.remove(symbol)]
        except ValueError as exc:
            return _error(400, str(exc))

    @router.get("/watchlist.csv", response_class=PlainTextResponse)
    def watchlist_csv():
        return ctx.watchlist.export_csv()

    @router.get("/profile")
    def profile_get():
        return ctx.profiles.load().to_dict()

    return router


def create_app(ctx: AppContext) -> FastAPI:
    app = FastAPI(title="Smart Stock Advisor")
    app.state.context = ctx
    app.include_router(build_router(ctx))

    @app.get("/health")
    def health() -> dict:
        return {"ok": True, "provider": type(ctx.provider).__name__}

    return app
