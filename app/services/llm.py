# app/services/llm.py  (LangChain client for the generation service)
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ..schemas.analysis import GroundingSource
from ..settings import Settings, get_settings
from .errors import EmptyResponseError, MalformedResponseError

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL = {"type": "web_search_preview"}

# first fenced block, optional language tag (```json, ```JSON, ```)
_FENCE_RE = re.compile(r"```[ \t]*[A-Za-z0-9_-]*[ \t]*\n?(.*?)```", re.S)


@dataclass(frozen=True)
class GenerationConfig:
    """Options for one call to the generation service."""

    web_search: bool = False
    temperature: Optional[float] = None
    response_schema: Optional[Dict[str, Any]] = None
    schema_name: str = "response"
    thinking_budget: Optional[int] = None


@dataclass
class GenerationChunk:
    """A reply, or one streamed piece of a reply."""

    text: str
    sources: List[GroundingSource] = field(default_factory=list)


class GenerationService(ABC):
    """Seam between the orchestrator and whatever model API backs it."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        system_instruction: Optional[str] = None,
        config: GenerationConfig = GenerationConfig(),
    ) -> GenerationChunk:
        raise NotImplementedError

    @abstractmethod
    def stream(
        self,
        prompt: str,
        *,
        model: str,
        system_instruction: Optional[str] = None,
        config: GenerationConfig = GenerationConfig(),
    ) -> AsyncIterator[GenerationChunk]:
        """Yield text deltas, then one final chunk carrying the citations."""
        raise NotImplementedError


def reasoning_effort(thinking_budget: int) -> str:
    if thinking_budget <= 1024:
        return "low"
    if thinking_budget <= 4096:
        return "medium"
    return "high"


def _content_blocks(content: Any) -> List[Any]:
    if isinstance(content, str):
        return [content]
    return list(content or [])


def message_text(message: BaseMessage) -> str:
    parts: List[str] = []
    for block in _content_blocks(message.content):
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") in ("text", "output_text"):
            parts.append(block.get("text") or "")
    return "".join(parts)


def message_sources(message: BaseMessage) -> List[GroundingSource]:
    # Responses API citations ride on text blocks as url_citation annotations
    sources: List[GroundingSource] = []
    for block in _content_blocks(message.content):
        if not isinstance(block, dict):
            continue
        for ann in block.get("annotations") or []:
            if not isinstance(ann, dict):
                continue
            uri = ann.get("url") or ann.get("uri")
            if not uri:
                continue
            sources.append(GroundingSource(title=ann.get("title") or uri, uri=uri))
    return dedupe_sources(sources)


def dedupe_sources(sources: List[GroundingSource]) -> List[GroundingSource]:
    seen, uniq = set(), []
    for s in sources:
        if s.uri not in seen:
            seen.add(s.uri)
            uniq.append(s)
    return uniq


def parse_json_reply(text: Optional[str]) -> Any:
    """Decode a JSON reply; prose around it is skipped when it sits in a Markdown code fence."""
    raw = (text or "").strip()
    if not raw:
        raise EmptyResponseError("empty reply from generation service")

    fenced = None if raw.startswith(("{", "[")) else _FENCE_RE.search(raw)
    if fenced:
        raw = fenced.group(1).strip()

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"reply is not valid JSON: {e}", raw_text=raw) from e


class LangChainGenerationService(GenerationService):
    """ChatOpenAI on the Responses API: web search, JSON schema, reasoning."""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "LangChainGenerationService":
        key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
        return cls(api_key=key, timeout=settings.request_timeout_seconds)

    def _chat(self, model: str, config: GenerationConfig):
        kwargs: Dict[str, Any] = {"model": model, "use_responses_api": True}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.timeout:
            kwargs["timeout"] = self.timeout
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        if config.thinking_budget:
            kwargs["reasoning"] = {"effort": reasoning_effort(config.thinking_budget)}
        llm = ChatOpenAI(**kwargs)

        bound: Dict[str, Any] = {}
        if config.web_search:
            bound["tools"] = [WEB_SEARCH_TOOL]
        if config.response_schema is not None:
            bound["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": config.schema_name,
                    "schema": config.response_schema,
                    "strict": False,
                },
            }
        return llm.bind(**bound) if bound else llm

    @staticmethod
    def _messages(prompt: str, system_instruction: Optional[str]) -> List[BaseMessage]:
        messages: List[BaseMessage] = []
        if system_instruction:
            messages.append(SystemMessage(content=system_instruction))
        messages.append(HumanMessage(content=prompt))
        return messages

    async def generate(self, prompt, *, model, system_instruction=None, config=GenerationConfig()):
        chat = self._chat(model, config)
        reply = await chat.ainvoke(self._messages(prompt, system_instruction))
        return GenerationChunk(text=message_text(reply), sources=message_sources(reply))

    async def stream(self, prompt, *, model, system_instruction=None, config=GenerationConfig()):
        chat = self._chat(model, config)
        collected: List[GroundingSource] = []
        async for piece in chat.astream(self._messages(prompt, system_instruction)):
            collected.extend(message_sources(piece))
            text = message_text(piece)
            if text:
                yield GenerationChunk(text=text)
        yield GenerationChunk(text="", sources=dedupe_sources(collected))


_service: Optional[GenerationService] = None


def get_generation_service() -> GenerationService:
    """Process-wide generation client, built from settings on first use."""
    global _service
    if _service is None:
        _service = LangChainGenerationService.from_settings(get_settings())
        logger.info("Generation service ready (quick=%s, deep=%s)",
                    get_settings().quick_model, get_settings().deep_model)
    return _service
