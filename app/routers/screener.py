
import logging

from fastapi import APIRouter, Depends

from ..schemas.analysis import Market, ScreenerResult
from ..services.llm import GenerationService, get_generation_service
from ..services.screener import screen_picks


router = APIRouter(prefix="/picks", tags=["screener"])
logger = logging.getLogger("router.screener")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)


@router.get("", response_model=ScreenerResult)
async def top_picks(
    market: Market = Market.US,
    timeframe: str = "",
    service: GenerationService = Depends(get_generation_service),
):
    result = await screen_picks(market, timeframe, service=service)
    logger.info("Screener %s / %r -> %d picks", market.value, timeframe, len(result.recommendations))
    return result
