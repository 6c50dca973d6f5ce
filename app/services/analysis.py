import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional

from ..schemas.analysis import AnalysisMode, AnalysisResult, GroundingSource, ResearchReport, Sentiment
from .llm import GenerationService, get_generation_service
from .market import fetch_quote, normalize_symbol
from .prompts import analysis_profile

logger = logging.getLogger(__name__)

FAILURE_TEXT = "Failed to generate analysis. Please try again."

BULLISH_WORDS = ("invest", "buy", "bullish")
BEARISH_WORDS = ("pass", "sell", "bearish")


def classify_sentiment(text: str) -> Sentiment:
    """Keyword rule over the finished text; bullish words win ties."""
    lower = (text or "").lower()
    if any(w in lower for w in BULLISH_WORDS):
        return Sentiment.BULLISH
    if any(w in lower for w in BEARISH_WORDS):
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL


@dataclass
class AnalysisUpdate:
    """Buffer so far; `result` is set only on the terminal update."""

    text: str
    result: Optional[AnalysisResult] = None

    @property
    def done(self) -> bool:
        return self.result is not None


def _failed(symbol: str, mode: AnalysisMode) -> AnalysisResult:
    return AnalysisResult(symbol=symbol, mode=mode, text=FAILURE_TEXT, sentiment=Sentiment.NEUTRAL)


async def stream_analysis(
    symbol: str,
    mode: AnalysisMode = AnalysisMode.QUICK,
    service: Optional[GenerationService] = None,
) -> AsyncIterator[AnalysisUpdate]:
    """
    Stream an analysis of `symbol` as a sequence of AnalysisUpdate.

    One update per received chunk, then exactly one terminal update whose
    `result` holds the final text, sentiment and the citations of the last
    chunk. Service errors end the sequence with the fixed failure result.
    Closing this iterator closes the service stream.
    """
    symbol = normalize_symbol(symbol)
    service = service or get_generation_service()
    profile = analysis_profile(mode)

    buffer = ""
    sources: List[GroundingSource] = []
    try:
        chunks = service.stream(
            profile.render(symbol),
            model=profile.model,
            system_instruction=profile.system_instruction,
            config=profile.config,
        )
        async with aclosing(chunks):
            async for chunk in chunks:
                buffer += chunk.text
                sources = list(chunk.sources)
                yield AnalysisUpdate(text=buffer)
    except Exception:
        logger.exception("Analysis stream failed for %s (%s)", symbol, profile.mode.value)
        yield AnalysisUpdate(text=FAILURE_TEXT, result=_failed(symbol, profile.mode))
        return

    if not buffer.strip():
        logger.warning("Analysis stream for %s returned no text", symbol)
        yield AnalysisUpdate(text=FAILURE_TEXT, result=_failed(symbol, profile.mode))
        return

    yield AnalysisUpdate(
        text=buffer,
        result=AnalysisResult(
            symbol=symbol,
            mode=profile.mode,
            text=buffer,
            sentiment=classify_sentiment(buffer),
            sources=sources,
        ),
    )


async def run_analysis(
    symbol: str,
    mode: AnalysisMode = AnalysisMode.QUICK,
    on_partial: Optional[Callable[[str], None]] = None,
    service: Optional[GenerationService] = None,
) -> AnalysisResult:
    """Run a streamed analysis to completion, reporting each partial buffer."""
    result: Optional[AnalysisResult] = None
    async with aclosing(stream_analysis(symbol, mode, service=service)) as updates:
        async for update in updates:
            if update.done:
                result = update.result
            elif on_partial is not None:
                on_partial(update.text)
    return result


async def analyze_with_quote(
    symbol: str,
    mode: AnalysisMode = AnalysisMode.QUICK,
    on_partial: Optional[Callable[[str], None]] = None,
    service: Optional[GenerationService] = None,
) -> ResearchReport:
    """Fetch the live price alongside the analysis and join the two."""
    symbol = normalize_symbol(symbol)
    service = service or get_generation_service()

    quote_task = asyncio.create_task(fetch_quote(symbol, service=service))
    try:
        analysis = await run_analysis(symbol, mode, on_partial=on_partial, service=service)
    except BaseException:
        quote_task.cancel()
        raise
    quote = await quote_task
    return ResearchReport(quote=quote, analysis=analysis)
