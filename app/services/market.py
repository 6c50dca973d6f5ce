import logging
from typing import Optional

from pydantic import ValidationError

from ..schemas.analysis import Forecast, PriceQuote
from ..settings import get_settings
from .errors import EmptyResponseError, GenerationError, InvalidSymbolError
from .llm import GenerationConfig, GenerationService, get_generation_service, parse_json_reply
from .prompts import (
    FORECAST_CONTEXT_PROMPT,
    FORECAST_PROMPT,
    FORECAST_SCHEMA,
    FORECAST_THINKING_BUDGET,
    QUOTE_PROMPT,
    QUOTE_SCHEMA,
)

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str) -> str:
    """Upper-cased, trimmed symbol; any non-blank text is passed through."""
    s = (symbol or "").strip().upper()
    if not s:
        raise InvalidSymbolError("Symbol must not be empty.")
    return s


async def fetch_quote(symbol: str, service: Optional[GenerationService] = None) -> Optional[PriceQuote]:
    """
    Look up the live price of one symbol.

    Returns None when no price is available: transport errors, unparseable
    replies and quotes failing validation (non-positive price, bad currency)
    are logged and swallowed here.
    """
    symbol = normalize_symbol(symbol)
    service = service or get_generation_service()

    try:
        reply = await service.generate(
            QUOTE_PROMPT.format(symbol=symbol),
            model=get_settings().quick_model,
            config=GenerationConfig(web_search=True, response_schema=QUOTE_SCHEMA, schema_name="price_quote"),
        )
        data = parse_json_reply(reply.text)
        if not isinstance(data, dict):
            raise GenerationError(f"expected a JSON object, got {type(data).__name__}")
        return PriceQuote(symbol=symbol, **{k: data.get(k) for k in ("price", "currency", "exchange")})
    except ValidationError as e:
        logger.warning("Rejected quote for %s: %s", symbol, e)
    except Exception:
        logger.exception("Price fetch failed for %s", symbol)
    return None


async def compute_forecast(symbol: str, service: Optional[GenerationService] = None) -> Optional[Forecast]:
    """
    Build a 3-scenario price forecast in two steps: gather live price
    context, then ask the reasoning model for the structured forecast.

    Returns None if either step fails or the forecast does not hold exactly
    one bearish, base and bullish scenario. Scenario probabilities are taken
    as given; they are not checked to sum to 100.
    """
    symbol = normalize_symbol(symbol)
    service = service or get_generation_service()
    settings = get_settings()

    try:
        context = await service.generate(
            FORECAST_CONTEXT_PROMPT.format(symbol=symbol),
            model=settings.quick_model,
            config=GenerationConfig(web_search=True),
        )
        if not context.text.strip():
            raise EmptyResponseError(f"no price context for {symbol}")

        reply = await service.generate(
            FORECAST_PROMPT.format(symbol=symbol, context=context.text.strip()),
            model=settings.deep_model,
            config=GenerationConfig(
                response_schema=FORECAST_SCHEMA,
                schema_name="forecast",
                thinking_budget=FORECAST_THINKING_BUDGET,
            ),
        )
        data = parse_json_reply(reply.text)
        if not isinstance(data, dict):
            raise GenerationError(f"expected a JSON object, got {type(data).__name__}")
        data.setdefault("symbol", symbol)
        return Forecast.model_validate(data)
    except ValidationError as e:
        logger.warning("Rejected forecast for %s: %s", symbol, e)
    except Exception:
        logger.exception("Forecast failed for %s", symbol)
    return None
