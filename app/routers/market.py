
import logging

from fastapi import APIRouter, Depends, HTTPException

from ..schemas.analysis import Forecast, MarketNews, PriceQuote
from ..services.errors import InvalidSymbolError
from ..services.llm import GenerationService, get_generation_service
from ..services.market import compute_forecast, fetch_quote, normalize_symbol
from ..services.news import get_market_news


router = APIRouter(tags=["market"])
logger = logging.getLogger("router.market")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)


def _validate_symbol(symbol: str) -> str:
    try:
        return normalize_symbol(symbol)
    except InvalidSymbolError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/quote/{symbol}", response_model=PriceQuote)
async def quote_symbol(symbol: str, service: GenerationService = Depends(get_generation_service)):
    symbol = _validate_symbol(symbol)
    quote = await fetch_quote(symbol, service=service)
    if quote is None:
        raise HTTPException(status_code=404, detail=f"No price available for {symbol}.")
    return quote


@router.get("/forecast/{symbol}", response_model=Forecast)
async def forecast_symbol(symbol: str, service: GenerationService = Depends(get_generation_service)):
    symbol = _validate_symbol(symbol)
    forecast = await compute_forecast(symbol, service=service)
    if forecast is None:
        raise HTTPException(status_code=404, detail=f"No forecast available for {symbol}.")
    return forecast


@router.get("/news", response_model=MarketNews)
async def market_news(service: GenerationService = Depends(get_generation_service)):
    return await get_market_news(service=service)
