from __future__ import annotations

import json
import math
from decimal import ROUND_HALF_UP, Context, Decimal

from stockadvisor.models import QuoteSnapshot, StockScoreReason

WORD_LIMIT = 150

# wide enough for any finite float
_DECIMAL_CONTEXT = Context(prec=400)


def _clamp(v: float, low: float, high: float) -> float:
    return max(low, min(high, v))


def _is_number(v: object) -> bool:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    try:
        return math.isfinite(v)
    except OverflowError:
        # ints too large for a float
        return False


def _format_number(value: float, places: int) -> str:
    # halves round away from zero, unlike format()'s half-even
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT)
    return f"{rounded:,.{places}f}"


def _format_price(value: float | None) -> str:
    if not _is_number(value):
        return "n/a"
    return f"${_format_number(value, 2)}"


def _format_change(change: float | None, change_percent: float | None) -> str:
    if not _is_number(change):
        return "flat on the session"
    sign = "+" if change >= 0 else ""
    pct = f" ({sign}{_format_number(change_percent, 2)}%)" if _is_number(change_percent) else ""
    return f"{sign}{_format_number(change, 2)}{pct}"


def _format_impact(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _format_item(item: StockScoreReason) -> str:
    prefix = "+" if item.impact > 0 else ""
    return f"{item.reason} ({prefix}{_format_impact(item.impact)})"


def summarize_reasons(score_details: list[StockScoreReason]) -> tuple[list[str], list[str]]:
    # stable sort keeps insertion order between equal magnitudes
    ranked = sorted(score_details, key=lambda r: abs(r.impact), reverse=True)
    positives = [r for r in ranked if r.impact > 0][:3]
    negatives = [r for r in ranked if r.impact < 0][:2]
    return [_format_item(r) for r in positives], [_format_item(r) for r in negatives]


def enforce_word_limit(text: str, limit: int = WORD_LIMIT) -> str:
    """Truncate to the first ``limit`` whitespace-separated words."""
    words = text.split()
    if len(words) <= limit:
        return text.strip()
    return " ".join(words[:limit])


def generate_draft_explanation(
    symbol: str,
    quote: QuoteSnapshot,
    score_details: list[StockScoreReason],
    limit: int = WORD_LIMIT,
) -> str:
    """Deterministic paragraph built from the quote and the score reasons.

    The "total" sentence restates the clamped sum of the given impacts. It is
    a rough figure for prose and differs from ``score_stock``'s score.
    """
    total = _clamp(sum(r.impact for r in score_details), 0, 100)
    positives, negatives = summarize_reasons(score_details)

    parts = [
        f"{symbol} trades at {_format_price(quote.price)}, moving "
        f"{_format_change(quote.change, quote.change_percent)} since the previous close."
    ]
    if score_details:
        parts.append(
            f"It registers roughly {_format_impact(total)}/100 in your scoring model, "
            "balancing the strongest and weakest factors below."
        )
    if positives:
        parts.append(f"Key strengths: {', '.join(positives)}.")
    if negatives:
        parts.append(f"Items to monitor: {', '.join(negatives)}.")
    if _is_number(quote.volume) and quote.volume:
        parts.append(f"Latest reported volume came in near {_format_number(quote.volume, 0)} shares.")

    return enforce_word_limit(" ".join(parts), limit)


def build_polish_prompt(
    symbol: str,
    quote: QuoteSnapshot,
    score_details: list[StockScoreReason],
    draft: str,
) -> str:
    payload = {
        "symbol": symbol,
        "quote": quote.to_dict(),
        "scoreDetails": [r.to_dict() for r in score_details],
        "draft": draft,
    }
    return (
        "You are a financial analyst writing clear, neutral summaries under 150 words.\n"
        "Keep the provided facts accurate, avoid investment advice, and note both positives and risks.\n"
        "Rewrite the following draft into one concise paragraph:\n"
        f"{json.dumps(payload, indent=2)}"
    )
