"""Generation gateway: one structured request in, one StorySegment out.

StoryGateway wraps an LLM transport with the fixed story contract:

  - the system directive (novelist rules, memory use, ~150-250 words)
  - the response schema {"narrative": str, "choices": [3-4 str]}
  - a fixed creative temperature (0.85)

generate() never raises. Every failure (transport error, invalid JSON,
missing or empty fields) is logged and turned into the degraded segment
FALLBACK_SEGMENT, whose single choice lets the user retry. The result
carries the failure reason so the orchestrator can decide whether a
rollback is needed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from pydantic import BaseModel, ValidationError, field_validator

from coauthor.llm import LLM, LLMError
from coauthor.models import GenerationRequest, StorySegment, Turn

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.85

SYSTEM_INSTRUCTION = (
    "You are a collaborative novelist.\n"
    "\n"
    "STRICT RULES:\n"
    '1. Adapt exactly to the user\'s defined "Vibe", "Setting", and "Protagonist".\n'
    '2. INCORPORATE the provided "MEMORY" items into the narrative logic if relevant.\n'
    "3. If the user edits a previous message or asks for a change, adapt the story "
    "flow immediately to match the new context.\n"
    "4. Output JSON with 'narrative' and 'choices'.\n"
    "5. Keep segments engaging (approx 150-250 words)."
)

RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "narrative": {
            "type": "STRING",
            "description": (
                "The narrative content of the story segment. "
                "Use markdown for formatting (bold, italics)."
            ),
        },
        "choices": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "minItems": 3,
            "maxItems": 4,
            "description": (
                "3 to 4 short, distinct plot options for the user to choose "
                "from to continue the story."
            ),
        },
    },
    "required": ["narrative", "choices"],
}

FALLBACK_SEGMENT = StorySegment(
    content="The ink has run dry momentarily. Please try regenerating.",
    choices=["Try again"],
)


class SegmentPayload(BaseModel):
    """The structured reply as the service sends it."""

    narrative: str
    choices: list[str]

    @field_validator("narrative")
    @classmethod
    def _narrative_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("narrative is empty")
        return v

    @field_validator("choices")
    @classmethod
    def _choices_not_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("no choices offered")
        return v


class GenerationResult(BaseModel):
    segment: StorySegment
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_segment(text: str) -> StorySegment:
    """Parse the structured reply. Raises ValueError on any contract gap."""
    try:
        payload = SegmentPayload.model_validate(json.loads(text))
    except json.JSONDecodeError as e:
        raise ValueError(f"reply is not valid JSON: {e}") from e
    except ValidationError as e:
        raise ValueError(f"reply does not match the schema: {e}") from e
    return StorySegment(content=payload.narrative, choices=payload.choices)


class StoryGateway:
    def __init__(self, llm: LLM, temperature: float = DEFAULT_TEMPERATURE) -> None:
        self._llm = llm
        self._temperature = temperature

    def build_request(self, contents: Sequence[Turn]) -> GenerationRequest:
        return GenerationRequest(
            contents=list(contents),
            system_instruction=SYSTEM_INSTRUCTION,
            response_schema=RESPONSE_SCHEMA,
            temperature=self._temperature,
        )

    async def generate(
        self, contents: Sequence[Turn], stage: str = "continue"
    ) -> GenerationResult:
        """Issue exactly one request. Failures come back as FALLBACK_SEGMENT."""
        request = self.build_request(contents)
        try:
            text = await self._llm(stage, request)
            segment = parse_segment(text)
        except (LLMError, ValueError) as e:
            logger.warning("Generation failed stage=%s: %s", stage, e)
            return _failed(str(e))
        except Exception as e:
            logger.exception("Unexpected generation error stage=%s", stage)
            return _failed(f"{type(e).__name__}: {e}")
        return GenerationResult(segment=segment)

    def reconfigure(self, llm: LLM, temperature: float) -> None:
        """Swap the transport after a settings change. In-flight calls keep the old one."""
        self._llm = llm
        self._temperature = temperature


def _failed(error: str) -> GenerationResult:
    return GenerationResult(segment=FALLBACK_SEGMENT.model_copy(deep=True), error=error)
