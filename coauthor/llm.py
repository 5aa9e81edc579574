"""LLM client — HTTP connection to a structured-output generation backend.

The gateway injects an LLM callable matching the protocol:

    async def __call__(self, stage: str, request: GenerationRequest) -> str: ...

`stage` identifies why the gateway is calling ("opening", "continue",
"regenerate"). Implementations use it for logging only. The return value is
the raw JSON text of the structured reply; parsing happens in the gateway.

Two implementations are provided:

    HttpLLM   — real HTTP client, supports the Gemini generateContent API and
                 OpenAI-compatible chat completions. Selected by provider_format.
    EchoLLM   — returns a canned segment echoing the last turn. Useful for
                 running the app without a model.

Production code builds an HttpLLM from config (see coauthor.config.build_llm).
Tests use StubLLM (defined in the test helpers) instead.
"""

from __future__ import annotations

import json
import logging
from typing import Literal, Protocol

import httpx

from coauthor.models import GenerationRequest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol — every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, request: GenerationRequest) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM — connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["gemini", "openai"]


class HttpLLM:
    """Async HTTP client for structured-output chat backends.

    Supported formats:
      "gemini"  — POST /v1beta/models/{model}:generateContent
                  Response: {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}
      "openai"  — POST /v1/chat/completions with a json_schema response_format
                  Response: {"choices": [{"message": {"content": "..."}}]}

    Args:
        provider_url:    Base URL of the backend.
        api_key:         API key, or empty string if not required.
        provider_format: Wire format to use. Defaults to "gemini".
        model:           Model identifier.
        timeout:         HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "gemini",
        model: str = "",
        timeout: float = 120.0,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            if self._format == "gemini":
                headers["x-goog-api-key"] = self._api_key
            else:
                headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, request: GenerationRequest) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        if self._format == "openai":
            url = f"{self._base_url}/v1/chat/completions"
            messages = [{"role": "system", "content": request.system_instruction}]
            for turn in request.contents:
                role = "assistant" if turn.role == "model" else "user"
                messages.append({"role": role, "content": turn.text})
            body: dict = {
                "messages": messages,
                "temperature": request.temperature,
                "response_format": {
                    "type": "json_schema",
                    "json_schema": {
                        "name": "story_segment",
                        "strict": True,
                        "schema": _lowercase_types(request.response_schema),
                    },
                },
            }
            if self._model:
                body["model"] = self._model
            return url, body

        # gemini (default)
        url = f"{self._base_url}/v1beta/models/{self._model}:generateContent"
        return url, {
            "contents": [
                {"role": turn.role, "parts": [{"text": turn.text}]}
                for turn in request.contents
            ],
            "systemInstruction": {"parts": [{"text": request.system_instruction}]},
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": request.response_schema,
                "temperature": request.temperature,
            },
        }

    def _parse_response(self, data: dict) -> str:
        """Extract the structured reply text from the response body."""
        if not isinstance(data, dict):
            raise LLMError("Unexpected response format from LLM backend")
        if self._format == "openai":
            choices = data.get("choices")
            if (
                not isinstance(choices, list)
                or not choices
                or not isinstance(choices[0], dict)
                or not isinstance(choices[0].get("message"), dict)
            ):
                raise LLMError("Unexpected response format from OpenAI-compatible backend")
            content = choices[0]["message"].get("content")
            if not content or not isinstance(content, str):
                raise LLMError("OpenAI-compatible backend returned no content")
            return content

        # gemini
        candidates = data.get("candidates")
        if (
            not isinstance(candidates, list)
            or not candidates
            or not isinstance(candidates[0], dict)
            or not isinstance(candidates[0].get("content"), dict)
        ):
            raise LLMError("Unexpected response format from Gemini backend")
        parts = candidates[0]["content"].get("parts") or []
        if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
            raise LLMError("Unexpected response format from Gemini backend")
        text = "".join(
            p["text"] for p in parts if isinstance(p.get("text"), str)
        )
        if not text:
            raise LLMError("Gemini backend returned no text")
        return text

    async def __call__(self, stage: str, request: GenerationRequest) -> str:
        url, body = self._build_request(request)
        logger.debug(
            "llm call stage=%s url=%s turns=%d", stage, url, len(request.contents)
        )

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"LLM request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("LLM backend returned a non-JSON body") from e
        text = self._parse_response(data)
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


def _lowercase_types(schema: dict) -> dict:
    """Gemini spells schema types in upper case; JSON Schema wants lower case."""
    out: dict = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            out[key] = value.lower()
        elif isinstance(value, dict):
            out[key] = _lowercase_types(value)
        else:
            out[key] = value
    if out.get("type") == "object":
        out.setdefault("additionalProperties", False)
    return out


# ---------------------------------------------------------------------------
# EchoLLM — canned segment, no network
# ---------------------------------------------------------------------------

class EchoLLM:
    """Returns a valid structured reply echoing the last turn. No network calls.

    Lets you click through the whole app (creation, turns, regenerate,
    export) without a running model.
    """

    async def __call__(self, stage: str, request: GenerationRequest) -> str:
        logger.debug("EchoLLM stage=%s turns=%d", stage, len(request.contents))
        last = request.contents[-1].text if request.contents else ""
        return json.dumps({
            "narrative": last,
            "choices": ["Continue", "Look around", "Wait"],
        })


# ---------------------------------------------------------------------------
# LLMError — raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
