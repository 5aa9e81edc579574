"""Tests for the generation gateway: contract, parsing, degraded results."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from coauthor.gateway import (
    DEFAULT_TEMPERATURE,
    FALLBACK_SEGMENT,
    RESPONSE_SCHEMA,
    SYSTEM_INSTRUCTION,
    StoryGateway,
    parse_segment,
)
from coauthor.llm import HttpLLM, LLMError
from coauthor.models import Turn
from stubs import StubLLM, segment_json

CONTENTS = [Turn(role="user", text="Story Configuration: ...")]


class TestParseSegment:
    def test_valid_payload(self) -> None:
        seg = parse_segment(segment_json("You hide among crates.", ["Sneak out", "Stay hidden", "Call for help"]))
        assert seg.content == "You hide among crates."
        assert seg.choices == ["Sneak out", "Stay hidden", "Call for help"]

    @pytest.mark.parametrize("text", [
        "not json",
        '{"choices": ["a", "b", "c"]}',
        '{"narrative": "x"}',
        '{"narrative": "   ", "choices": ["a", "b", "c"]}',
        '{"narrative": "x", "choices": []}',
        '["x"]',
    ])
    def test_contract_gaps_raise(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_segment(text)


class TestStoryGateway:
    def test_build_request(self) -> None:
        gateway = StoryGateway(StubLLM({}))
        request = gateway.build_request(CONTENTS)
        assert request.contents == CONTENTS
        assert request.system_instruction == SYSTEM_INSTRUCTION
        assert request.response_schema == RESPONSE_SCHEMA
        assert request.temperature == DEFAULT_TEMPERATURE == 0.85

    def test_system_instruction_rules(self) -> None:
        for phrase in ("Vibe", "Setting", "Protagonist", "MEMORY", "edits", "'narrative' and 'choices'", "150-250 words"):
            assert phrase in SYSTEM_INSTRUCTION

    async def test_success(self) -> None:
        llm = StubLLM({"opening": [segment_json("You hide.", ["a", "b", "c"])]})
        result = await StoryGateway(llm).generate(CONTENTS, stage="opening")
        assert result.ok
        assert result.segment.content == "You hide."
        assert len(llm.calls) == 1
        assert llm.calls[0][1].contents == CONTENTS

    async def test_transport_error_degrades(self) -> None:
        llm = StubLLM({"continue": [LLMError("Cannot connect")]})
        result = await StoryGateway(llm).generate(CONTENTS)
        assert not result.ok
        assert "Cannot connect" in result.error
        assert result.segment == FALLBACK_SEGMENT
        assert result.segment.choices == ["Try again"]

    async def test_malformed_payload_degrades(self) -> None:
        llm = StubLLM({"continue": ['{"narrative": ""}']})
        result = await StoryGateway(llm).generate(CONTENTS)
        assert not result.ok
        assert result.segment.content == "The ink has run dry momentarily. Please try regenerating."

    async def test_unexpected_transport_exception_degrades(self) -> None:
        llm = StubLLM({"continue": [KeyError("candidates")]})
        result = await StoryGateway(llm).generate(CONTENTS)
        assert not result.ok
        assert "KeyError" in result.error
        assert result.segment == FALLBACK_SEGMENT

    async def test_odd_http_body_degrades(self) -> None:
        llm = HttpLLM(provider_url="http://llm.test", model="m")
        resp = MagicMock()
        resp.json.return_value = {"candidates": [{"content": None}]}
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=resp)):
            result = await StoryGateway(llm).generate(CONTENTS)
        assert not result.ok
        assert "Unexpected response format" in result.error
        assert result.segment.choices == ["Try again"]

    async def test_no_retry_on_failure(self) -> None:
        llm = StubLLM({"continue": [LLMError("boom"), segment_json("x", ["a", "b", "c"])]})
        await StoryGateway(llm).generate(CONTENTS)
        assert len(llm.calls) == 1

    async def test_reconfigure_swaps_transport(self) -> None:
        first = StubLLM({})
        second = StubLLM({"continue": [segment_json("x", ["a", "b", "c"])]})
        gateway = StoryGateway(first)
        gateway.reconfigure(second, 0.5)
        result = await gateway.generate(CONTENTS)
        assert result.ok
        assert second.calls[0][1].temperature == 0.5
