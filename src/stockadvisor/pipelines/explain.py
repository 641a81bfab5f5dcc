from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from stockadvisor.cache import TTLCache
from stockadvisor.config import CachePolicy, ExplainPolicy
from stockadvisor.models import ExplanationRecord, StockScoreReason
from stockadvisor.providers.base import ExplanationPolisher, MarketDataProvider
from stockadvisor.skills.explain import build_polish_prompt, generate_draft_explanation

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class ParseResult(Generic[T]):
    ok: bool
    value: T | None = None
    error: str = ""

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult[T]":
        return cls(ok=False, error=error)


@dataclass(slots=True)
class ExplainRequest:
    symbol: str
    score_details: list[StockScoreReason] = field(default_factory=list)


INVALID_EXPLAIN_REQUEST = "Request must include symbol and scoreDetails"


def _parse_score_detail(item: object) -> StockScoreReason | None:
    if not isinstance(item, dict):
        return None
    reason = item.get("reason")
    impact = item.get("impact")
    if not isinstance(reason, str):
        return None
    if isinstance(impact, bool) or not isinstance(impact, (int, float)):
        return None
    try:
        if not math.isfinite(impact):
            return None
    except OverflowError:
        return None
    return StockScoreReason(reason=reason, impact=impact)


def parse_explain_request(payload: Any) -> ParseResult[ExplainRequest]:
    """Validate an explain body (a dict or a JSON string) without raising."""
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            return ParseResult.failure(INVALID_EXPLAIN_REQUEST)
    if not isinstance(payload, dict):
        return ParseResult.failure(INVALID_EXPLAIN_REQUEST)

    symbol = payload.get("symbol")
    if not isinstance(symbol, str) or not symbol.strip():
        return ParseResult.failure(INVALID_EXPLAIN_REQUEST)

    raw_details = payload.get("scoreDetails")
    if not isinstance(raw_details, list):
        return ParseResult.failure(INVALID_EXPLAIN_REQUEST)
    details: list[StockScoreReason] = []
    for item in raw_details:
        parsed = _parse_score_detail(item)
        if parsed is None:
            return ParseResult.failure(INVALID_EXPLAIN_REQUEST)
        details.append(parsed)

    return ParseResult.success(ExplainRequest(symbol=symbol.strip().upper(), score_details=details))


class ExplanationService:
    """Cache-first explanation pipeline.

    Quote failures propagate to the caller. A failing rewrite never does: the
    local draft is kept and tagged ``external-fallback``.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        polisher: ExplanationPolisher,
        cache: TTLCache,
        cache_policy: CachePolicy | None = None,
        explain_policy: ExplainPolicy | None = None,
    ) -> None:
        self.provider = provider
        self.polisher = polisher
        self.cache = cache
        self.cache_policy = cache_policy or CachePolicy()
        self.explain_policy = explain_policy or ExplainPolicy()

    @staticmethod
    def cache_key(symbol: str) -> str:
        return f"explain:{symbol}"

    def explain(self, request: ExplainRequest) -> dict:
        key = self.cache_key(request.symbol)
        cached = self.cache.get(key)
        if cached is not None:
            return {**cached.to_dict(), "cached": True}

        quote = self.provider.get_quote(request.symbol)
        draft = generate_draft_explanation(
            request.symbol, quote, request.score_details, limit=self.explain_policy.word_limit
        )

        explanation = draft
        source = "local"
        if self.polisher.networked:
            prompt = build_polish_prompt(request.symbol, quote, request.score_details, draft)
            try:
                polished = self.polisher.polish(prompt)
                if polished:
                    explanation = polished
                    source = self.polisher.source
                else:
                    source = "external-fallback"
            except Exception as e:
                logger.warning("explanation rewrite failed for %s, using draft: %s", request.symbol, e)
                source = "external-fallback"

        record = ExplanationRecord(
            symbol=request.symbol,
            explanation=explanation,
            source=source,
            quote=quote,
            score_details=list(request.score_details),
        )
        self.cache.set(key, record, self.cache_policy.explanation_ttl_seconds)
        return {**record.to_dict(), "cached": False}
