import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from ..schemas.analysis import Market, Recommendation, ScreenerResult
from ..settings import get_settings
from .errors import MalformedResponseError
from .llm import GenerationConfig, GenerationService, get_generation_service, parse_json_reply
from .prompts import (
    BALANCED_GROWTH_VALUE,
    INTRADAY_MOMENTUM,
    LONG_TERM_VALUE,
    MARKET_CONTEXT,
    PICKS_PROMPT,
    PICKS_SCHEMA,
    POSITION_TRADING,
    SHORT_TO_MEDIUM_TREND,
    SWING_TRADING,
    TREND_FOLLOWING,
    Strategy,
)

logger = logging.getLogger(__name__)


def select_strategy(timeframe: str) -> Strategy:
    """Map a free-text investment horizon to a fixed screening strategy."""
    tf = (timeframe or "").lower()
    if "day" in tf or "intraday" in tf:
        return INTRADAY_MOMENTUM
    if "week" in tf:
        return SWING_TRADING
    if "month" in tf:
        if any(d in tf for d in "123"):
            return SHORT_TO_MEDIUM_TREND
        if any(d in tf for d in "456"):
            return POSITION_TRADING
        return TREND_FOLLOWING
    if "year" in tf:
        return LONG_TERM_VALUE
    return BALANCED_GROWTH_VALUE


def _recommendation_items(data: Any) -> List[Any]:
    # structured output wraps the array in an object; a bare array is fine too
    if isinstance(data, dict):
        data = data.get("recommendations")
    if not isinstance(data, list):
        raise MalformedResponseError("expected a list of recommendations")
    return data


def _parse_recommendations(items: List[Any]) -> List[Recommendation]:
    picks: List[Recommendation] = []
    for i, item in enumerate(items):
        try:
            picks.append(Recommendation.model_validate(item))
        except ValidationError as e:
            logger.warning("Dropping malformed recommendation #%d: %s", i, e)
    return picks


async def screen_picks(
    market: Market = Market.US,
    timeframe: str = "",
    service: Optional[GenerationService] = None,
) -> ScreenerResult:
    """
    Ask for a handful of stock picks that fit the strategy implied by
    `timeframe`. The strategy label is always returned; the list is empty
    when the call or its JSON fails.
    """
    market = Market(market)
    timeframe = (timeframe or "").strip()
    strategy = select_strategy(timeframe)
    service = service or get_generation_service()

    try:
        reply = await service.generate(
            PICKS_PROMPT.format(
                market_context=MARKET_CONTEXT[market],
                timeframe=timeframe,
                strategy=strategy.label,
            ),
            model=get_settings().deep_model,
            config=GenerationConfig(web_search=True, response_schema=PICKS_SCHEMA, schema_name="stock_picks"),
        )
        items = _recommendation_items(parse_json_reply(reply.text))
    except Exception:
        logger.exception("Screener failed for %s / %s", market.value, timeframe)
        return ScreenerResult(recommendations=[], strategy=strategy.label)

    return ScreenerResult(recommendations=_parse_recommendations(items), strategy=strategy.label)
