"""
Shared fixtures: a scripted stand-in for the generation service so no test
touches the network.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, List, Optional

import pytest

from app.services.llm import GenerationChunk, GenerationConfig, GenerationService


@pytest.fixture
def anyio_backend():
    return "asyncio"


@dataclass
class Call:
    kind: str
    prompt: str
    model: str
    system_instruction: Optional[str]
    config: GenerationConfig


class FakeGenerationService(GenerationService):
    """
    Replays scripted replies.

    `replies` feed generate() in order: a str is returned as text, a dict or
    list is JSON-encoded, a GenerationChunk is returned as-is and an
    exception is raised. `chunks` feed stream() the same way, followed by a
    final empty chunk carrying `sources`.

    `hang_generate` parks every generate() call until it is cancelled;
    `generate_task` then holds the task that was running it.
    """

    def __init__(self, replies=(), chunks=(), sources=(), hang_after_chunks=False, hang_generate=False):
        self.replies: List[Any] = list(replies)
        self.chunks: List[Any] = list(chunks)
        self.sources = list(sources)
        self.hang_after_chunks = hang_after_chunks
        self.hang_generate = hang_generate
        self.generate_started = asyncio.Event()
        self.generate_task: Optional[asyncio.Task] = None
        self.calls: List[Call] = []
        self.stream_closed = False

    async def generate(self, prompt, *, model, system_instruction=None, config=GenerationConfig()):
        self.calls.append(Call("generate", prompt, model, system_instruction, config))
        self.generate_task = asyncio.current_task()
        self.generate_started.set()
        if self.hang_generate:
            await asyncio.Event().wait()
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, GenerationChunk):
            return reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return GenerationChunk(text=reply)

    async def stream(self, prompt, *, model, system_instruction=None, config=GenerationConfig()):
        self.calls.append(Call("stream", prompt, model, system_instruction, config))
        try:
            for piece in self.chunks:
                if isinstance(piece, BaseException):
                    raise piece
                yield GenerationChunk(text=piece)
                await asyncio.sleep(0)
            if self.hang_after_chunks:
                await asyncio.Event().wait()
            yield GenerationChunk(text="", sources=list(self.sources))
        finally:
            self.stream_closed = True

    def calls_of(self, kind: str) -> List[Call]:
        return [c for c in self.calls if c.kind == kind]


QUOTE_REPLY = {"price": 182.4, "currency": "USD", "exchange": "NASDAQ"}

FORECAST_REPLY = {
    "symbol": "NVDA",
    "timeframe": "3 months",
    "currentPrice": 182.4,
    "confidenceScore": 72,
    "scenarios": [
        {"type": "Bullish", "priceTarget": 230.0, "probability": 25, "reasoning": "Data-center demand."},
        {"type": "Bearish", "priceTarget": 140.0, "probability": 20, "reasoning": "Export curbs."},
        {"type": "Base", "priceTarget": 195.0, "probability": 55, "reasoning": "Steady growth."},
    ],
}

PICKS_REPLY = {
    "recommendations": [
        {
            "symbol": "AAPL",
            "name": "Apple Inc.",
            "price": "$228.10",
            "currency": "USD",
            "action": "Buy",
            "reasoning": "Services growth.",
            "riskLevel": "Low",
            "potentialUpside": "12%",
            "sources": ["Reuters"],
        },
        {
            "symbol": "PLTR",
            "name": "Palantir",
            "price": "$151.00",
            "currency": "USD",
            "action": "Strong Buy",
            "reasoning": "Government contracts.",
            "riskLevel": "High",
            "potentialUpside": "30%",
            "sources": ["Bloomberg", "WSJ"],
        },
    ]
}


@pytest.fixture
def fake_service():
    return FakeGenerationService()
