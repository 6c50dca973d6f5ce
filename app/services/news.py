import logging
from typing import Optional

from ..schemas.analysis import MarketNews
from ..settings import get_settings
from .llm import GenerationConfig, GenerationService, get_generation_service
from .prompts import NEWS_PROMPT

logger = logging.getLogger(__name__)

NO_NEWS_TEXT = "Unable to fetch news."
NEWS_ERROR_TEXT = "Error fetching market news."


async def get_market_news(service: Optional[GenerationService] = None) -> MarketNews:
    """Top financial headlines right now, with the web sources behind them."""
    service = service or get_generation_service()
    try:
        reply = await service.generate(
            NEWS_PROMPT,
            model=get_settings().quick_model,
            config=GenerationConfig(web_search=True, temperature=0.3),
        )
    except Exception:
        logger.exception("Error fetching market news")
        return MarketNews(text=NEWS_ERROR_TEXT, sources=[])

    text = reply.text.strip()
    if not text:
        return MarketNews(text=NO_NEWS_TEXT, sources=reply.sources)
    return MarketNews(text=text, sources=reply.sources)
