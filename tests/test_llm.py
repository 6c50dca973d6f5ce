"""
Tests for the LangChain generation client helpers.

Run with: pytest tests/test_llm.py -v
"""

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk

from app.schemas.analysis import GroundingSource
from app.services.errors import EmptyResponseError, MalformedResponseError
from app.services.llm import (
    WEB_SEARCH_TOOL,
    GenerationConfig,
    GenerationService,
    LangChainGenerationService,
    message_sources,
    message_text,
    parse_json_reply,
    reasoning_effort,
)
from app.services.prompts import QUOTE_SCHEMA


def _cited_block(text, *citations):
    return {
        "type": "text",
        "text": text,
        "annotations": [{"type": "url_citation", "url": url, "title": title} for title, url in citations],
    }


class FakeChat:
    """Stands in for a bound ChatOpenAI."""

    def __init__(self, reply=None, pieces=()):
        self.reply = reply
        self.pieces = list(pieces)
        self.messages = None

    async def ainvoke(self, messages):
        self.messages = messages
        return self.reply

    async def astream(self, messages):
        self.messages = messages
        for p in self.pieces:
            yield p


class TestParseJsonReply:

    def test_plain_json(self):
        assert parse_json_reply('{"a": 1}') == {"a": 1}

    def test_code_fence_stripped(self):
        assert parse_json_reply('```json\n[1, 2]\n```') == [1, 2]
        assert parse_json_reply('```\n{"b": true}\n```') == {"b": True}

    def test_fence_tag_is_case_insensitive(self):
        assert parse_json_reply('```JSON\n{"price": 1.5}\n```') == {"price": 1.5}
        assert parse_json_reply('```Json {"ok": 1}```') == {"ok": 1}

    def test_text_before_the_fence(self):
        reply = 'Here is the quote:\n```json\n{"currency": "USD"}\n```\nLet me know if you need more.'
        assert parse_json_reply(reply) == {"currency": "USD"}

    def test_first_fenced_block_wins(self):
        assert parse_json_reply('```json\n[1]\n```\nand\n```json\n[2]\n```') == [1]

    def test_backticks_inside_bare_json_left_alone(self):
        assert parse_json_reply('{"reasoning": "see ```json [1]```"}') == {"reasoning": "see ```json [1]```"}

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_reply(self, text):
        with pytest.raises(EmptyResponseError):
            parse_json_reply(text)

    def test_malformed_reply_keeps_raw_text(self):
        with pytest.raises(MalformedResponseError) as exc:
            parse_json_reply("{oops")
        assert exc.value.raw_text == "{oops"


class TestGenerationServiceContract:

    def test_cannot_instantiate_base(self):
        with pytest.raises(TypeError):
            GenerationService()

    def test_subclass_missing_stream_cannot_be_built(self):
        class GenerateOnly(GenerationService):
            async def generate(self, prompt, *, model, system_instruction=None, config=GenerationConfig()):
                return None

        with pytest.raises(TypeError):
            GenerateOnly()


class TestMessageHelpers:

    def test_text_from_string_content(self):
        assert message_text(AIMessage(content="hello")) == "hello"

    def test_text_from_blocks(self):
        msg = AIMessage(content=[
            {"type": "reasoning", "summary": []},
            _cited_block("Hello "),
            _cited_block("world"),
        ])
        assert message_text(msg) == "Hello world"

    def test_sources_deduplicated_in_order(self):
        msg = AIMessage(content=[
            _cited_block("x", ("Reuters", "https://r.com/1"), ("WSJ", "https://wsj.com/2")),
            _cited_block("y", ("Reuters again", "https://r.com/1")),
        ])
        assert message_sources(msg) == [
            GroundingSource(title="Reuters", uri="https://r.com/1"),
            GroundingSource(title="WSJ", uri="https://wsj.com/2"),
        ]

    def test_no_sources_for_plain_text(self):
        assert message_sources(AIMessage(content="plain")) == []


class TestReasoningEffort:

    @pytest.mark.parametrize("budget, effort", [(512, "low"), (1024, "low"), (2048, "medium"),
                                                (4096, "medium"), (16000, "high")])
    def test_budget_mapping(self, budget, effort):
        assert reasoning_effort(budget) == effort


class TestLangChainGenerationService:

    def test_binds_web_search_and_schema(self):
        service = LangChainGenerationService(api_key="sk-test", timeout=5)

        chat = service._chat("gpt-4o-mini", GenerationConfig(
            web_search=True, response_schema=QUOTE_SCHEMA, schema_name="price_quote"))

        assert chat.kwargs["tools"] == [WEB_SEARCH_TOOL]
        fmt = chat.kwargs["response_format"]
        assert fmt["type"] == "json_schema"
        assert fmt["json_schema"]["name"] == "price_quote"
        assert fmt["json_schema"]["schema"] is QUOTE_SCHEMA
        assert chat.bound.model_name == "gpt-4o-mini"

    def test_thinking_budget_sets_reasoning(self):
        service = LangChainGenerationService(api_key="sk-test")

        chat = service._chat("o4-mini", GenerationConfig(thinking_budget=4096))

        assert chat.reasoning == {"effort": "medium"}

    @pytest.mark.anyio
    async def test_generate_returns_text_and_citations(self, monkeypatch):
        service = LangChainGenerationService(api_key="sk-test")
        reply = AIMessage(content=[_cited_block('{"price": 1}', ("Yahoo", "https://finance.yahoo.com"))])
        fake = FakeChat(reply=reply)
        monkeypatch.setattr(service, "_chat", lambda model, config: fake)

        chunk = await service.generate("prompt", model="m", system_instruction="be terse")

        assert chunk.text == '{"price": 1}'
        assert chunk.sources == [GroundingSource(title="Yahoo", uri="https://finance.yahoo.com")]
        assert [m.type for m in fake.messages] == ["system", "human"]

    @pytest.mark.anyio
    async def test_stream_ends_with_citation_chunk(self, monkeypatch):
        service = LangChainGenerationService(api_key="sk-test")
        fake = FakeChat(pieces=[
            AIMessageChunk(content=[{"type": "text", "text": "NVDA ", "index": 0}]),
            AIMessageChunk(content=[_cited_block("rallies", ("CNBC", "https://cnbc.com/a"))]),
            AIMessageChunk(content=[]),
        ])
        monkeypatch.setattr(service, "_chat", lambda model, config: fake)

        chunks = [c async for c in service.stream("prompt", model="m")]

        assert [c.text for c in chunks] == ["NVDA ", "rallies", ""]
        assert chunks[-1].sources == [GroundingSource(title="CNBC", uri="https://cnbc.com/a")]
        assert all(not c.sources for c in chunks[:-1])
        assert [m.type for m in fake.messages] == ["human"]
