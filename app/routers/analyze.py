
import asyncio
import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from ..schemas.analysis import AnalysisMode, ResearchReport
from ..services.analysis import analyze_with_quote, stream_analysis
from ..services.errors import InvalidSymbolError
from ..services.llm import GenerationService, get_generation_service
from ..services.market import fetch_quote, normalize_symbol


router = APIRouter(prefix="/analyze", tags=["analyze"])
logger = logging.getLogger("router.analyze")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)


def _validate_symbol(symbol: str) -> str:
    try:
        return normalize_symbol(symbol)
    except InvalidSymbolError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _event(kind: str, **payload: Any) -> str:
    # one JSON object per line (NDJSON)
    body: Dict[str, Any] = {"event": kind}
    body.update(payload)
    return json.dumps(body, ensure_ascii=False) + "\n"


@router.get("/{symbol}", response_model=ResearchReport)
async def analyze_symbol(
    symbol: str,
    mode: AnalysisMode = AnalysisMode.QUICK,
    service: GenerationService = Depends(get_generation_service),
):
    symbol = _validate_symbol(symbol)
    report = await analyze_with_quote(symbol, mode, service=service)
    logger.info("Analysis for %s (%s): sentiment=%s, quote=%s",
                symbol, mode.value, report.analysis.sentiment.value, report.quote is not None)
    return report


@router.get("/{symbol}/stream")
async def stream_symbol(
    symbol: str,
    mode: AnalysisMode = AnalysisMode.QUICK,
    service: GenerationService = Depends(get_generation_service),
):
    """
    Stream the analysis as NDJSON events: `partial` with the text so far,
    `quote` as soon as the price lookup finishes, and a final `result`.
    """
    symbol = _validate_symbol(symbol)

    async def events() -> AsyncIterator[str]:
        quote_task = asyncio.create_task(fetch_quote(symbol, service=service))
        quote_sent = False
        try:
            async with aclosing(stream_analysis(symbol, mode, service=service)) as updates:
                async for update in updates:
                    if not quote_sent and (update.done or quote_task.done()):
                        quote = await quote_task
                        quote_sent = True
                        yield _event("quote", data=quote.model_dump(mode="json") if quote else None)
                    if update.done:
                        yield _event("result", data=update.result.model_dump(mode="json"))
                    else:
                        yield _event("partial", text=update.text)
        finally:
            # client went away or the stream ended early
            if not quote_task.done():
                quote_task.cancel()

    return StreamingResponse(events(), media_type="application/x-ndjson")
