from __future__ import annotations

import math

from stockadvisor.config import ScoreCaps, ScoreWeights
from stockadvisor.models import (
    CompanyOverview,
    DailyBar,
    StockScore,
    StockScoreReason,
    StockSnapshot,
    UserProfile,
    resolve_risk,
)

WEIGHTS = ScoreWeights()
CAPS = ScoreCaps()


def _clamp(v: float, low: float, high: float) -> float:
    return max(low, min(high, v))


def round_half_up(v: float) -> int:
    # JS Math.round: halves go toward +inf, so -2.5 -> -2
    return int(math.floor(v + 0.5))


def _is_number(v: object) -> bool:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    try:
        return math.isfinite(v)
    except OverflowError:
        # ints too large for a float
        return False


def normalize(value: float, min_value: float, max_value: float) -> float:
    """Clamp ``value`` into the range and rescale it to [0, 1].

    Non-finite input or an empty range yields 0. Bounds may come in either
    order.
    """
    try:
        if not all(math.isfinite(x) for x in (value, min_value, max_value)):
            return 0.0
    except (TypeError, OverflowError):
        return 0.0
    if min_value == max_value:
        return 0.0

    lower = min(min_value, max_value)
    upper = max(min_value, max_value)
    clamped = _clamp(value, lower, upper)
    return (clamped - lower) / (upper - lower)


def compute_risk_adjustment(base_score: float, stock: StockSnapshot, risk: object) -> float:
    pe = stock.pe_ratio if _is_number(stock.pe_ratio) else None
    growth = stock.earnings_growth if _is_number(stock.earnings_growth) else None
    dividend = stock.dividend_yield if _is_number(stock.dividend_yield) else None
    momentum = stock.momentum_3m if _is_number(stock.momentum_3m) else None

    branch = resolve_risk(risk)
    if branch == "conservative":
        # income and cheap valuations, falling prices hurt
        income_boost = (dividend or 0.0) * 100 * 0.15
        valuation_boost = (
            _clamp((CAPS.max_pe - pe) / CAPS.max_pe, 0.0, 1.0) * 5 if pe is not None and pe > 0 else 0.0
        )
        momentum_penalty = momentum * 50 if momentum is not None and momentum < 0 else 0.0
        return income_boost + valuation_boost + momentum_penalty

    if branch == "aggressive":
        growth_boost = (growth or 0.0) * 100 * 0.2
        momentum_boost = (momentum or 0.0) * 100 * 0.25
        dividend_penalty = -dividend * 100 * 0.05 if dividend else 0.0
        return growth_boost + momentum_boost + dividend_penalty

    return (base_score / 100) * 5


def score_stock(stock: StockSnapshot, profile: UserProfile | None) -> StockScore:
    """Composite 0-100 suitability score with the reasons behind it.

    Factors are applied in a fixed order (P/E, growth, dividend, momentum,
    risk). A missing or malformed field skips its factor; this never raises.
    """
    total = 0.0
    reasons: list[StockScoreReason] = []

    pe = stock.pe_ratio
    if _is_number(pe) and pe > 0:
        clamped = _clamp(pe, 0.0, CAPS.max_pe)
        pe_score = ((CAPS.max_pe - clamped) / CAPS.max_pe) * WEIGHTS.pe
        total += pe_score
        reasons.append(StockScoreReason("Low P/E relative to cap", round_half_up(pe_score)))

    growth = stock.earnings_growth
    if _is_number(growth):
        clamped = _clamp(growth, -CAPS.max_growth, CAPS.max_growth)
        growth_score = ((clamped + CAPS.max_growth) / (2 * CAPS.max_growth)) * WEIGHTS.growth
        total += growth_score
        if growth_score != 0:
            label = "Solid earnings growth" if clamped >= 0 else "Weak earnings trend"
            reasons.append(StockScoreReason(label, round_half_up(growth_score)))

    dividend = stock.dividend_yield
    if _is_number(dividend) and dividend >= 0:
        clamped = _clamp(dividend, 0.0, CAPS.max_dividend)
        dividend_score = (clamped / CAPS.max_dividend) * WEIGHTS.dividend
        total += dividend_score
        if dividend_score > 0:
            reasons.append(StockScoreReason("Attractive dividend yield", round_half_up(dividend_score)))

    momentum = stock.momentum_3m
    if _is_number(momentum):
        clamped = _clamp(momentum, -CAPS.max_momentum, CAPS.max_momentum)
        momentum_score = ((clamped + CAPS.max_momentum) / (2 * CAPS.max_momentum)) * WEIGHTS.momentum
        total += momentum_score
        if momentum_score != 0:
            label = "Positive 3M momentum" if clamped >= 0 else "Negative 3M momentum"
            reasons.append(StockScoreReason(label, round_half_up(momentum_score)))

    risk = profile.risk if profile is not None else None
    adjustment = compute_risk_adjustment(total, stock, risk)
    total += adjustment
    if adjustment != 0:
        label = "Risk profile boost" if adjustment > 0 else "Risk profile drag"
        reasons.append(StockScoreReason(label, round_half_up(adjustment)))

    final = int(_clamp(round_half_up(total), 0, 100))
    return StockScore(score=final, reasons=reasons)


def _pct_change(current: float, previous: float) -> float:
    if not previous or not math.isfinite(previous):
        return 0.0
    return (current - previous) / previous * 100


def build_snapshot(
    symbol: str,
    overview: CompanyOverview | None,
    series: list[DailyBar],
    lookback_bars: int = 63,
) -> StockSnapshot:
    """Assemble scoring inputs from an overview and a newest-first daily series."""
    pe = dividend = growth = None
    if overview is not None:
        pe = overview.pe_ratio if overview.pe_ratio and overview.pe_ratio > 0 else None
        dividend = overview.dividend_yield
        growth = overview.earnings_growth

    momentum = None
    if len(series) > lookback_bars:
        momentum = _pct_change(series[0].adjusted_close, series[lookback_bars].adjusted_close) / 100

    return StockSnapshot(
        symbol=symbol.upper(),
        pe_ratio=pe,
        earnings_growth=growth,
        dividend_yield=dividend,
        momentum_3m=momentum,
    )


def summarize_series(symbol: str, series: list[DailyBar]) -> dict:
    last_close = series[0].adjusted_close
    previous = series[1].adjusted_close if len(series) > 1 else None
    ninety = series[89].adjusted_close if len(series) > 89 else None
    return {
        "symbol": symbol.upper(),
        "lastClose": last_close,
        "percentChange1D": _pct_change(last_close, previous) if previous is not None else 0.0,
        "percentChange90D": _pct_change(last_close, ninety) if ninety is not None else 0.0,
        "dataPoints": len(series),
    }
