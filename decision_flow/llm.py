"""OpenAI-compatible generation client shared by every wizard stage."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict

from openai import OpenAI, OpenAIError
from pydantic import TypeAdapter, ValidationError

from .config import LLMSettings, get_llm_settings
from .prompts import ResponseSchema

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to get a valid response from the AI. Please try again."
ARRAY_ENVELOPE_KEY = "items"


class FailureCause(str, Enum):
    """Internal reason behind a generation failure; never shown to the user."""

    TRANSPORT = "transport"
    PARSE = "parse"
    VALIDATION = "validation"


class GenerationFailure(Exception):
    """Raised when the service call, the JSON parse or schema validation fails."""

    def __init__(self, cause: FailureCause, message: str = GENERIC_FAILURE_MESSAGE) -> None:
        super().__init__(message)
        self.cause = cause
        self.message = message


def _strip_code_fence(raw_text: str) -> str:
    """Trim the payload and drop a surrounding markdown fence if present."""

    text = raw_text.strip()
    if text.startswith("```"):
        lines = [line.rstrip() for line in text.splitlines()]
        if len(lines) >= 2:
            lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    return text


def _wire_schema(schema: ResponseSchema) -> Dict[str, Any]:
    """Wrap array schemas in an object, since structured output needs an object root."""

    if not schema.is_array:
        return schema.json_schema
    return {
        "type": "object",
        "properties": {ARRAY_ENVELOPE_KEY: schema.json_schema},
        "required": [ARRAY_ENVELOPE_KEY],
        "additionalProperties": False,
    }


def _truncate(text: str, limit: int = 200) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


class GenerationClient:
    """Send a prompt plus response schema and return the validated value."""

    def __init__(self, client: Any, *, model: str, temperature: float = 0.5) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: LLMSettings | None = None) -> "GenerationClient":
        settings = settings or get_llm_settings()
        client = OpenAI(api_key=settings.resolved_api_key, base_url=settings.base_url)
        return cls(client, model=settings.resolved_model, temperature=settings.temperature)

    def generate(self, prompt: str, schema: ResponseSchema) -> Any:
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must not be empty.")

        logger.info("Requesting %s from %s", schema.name, self.model)
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt.strip()}],
                temperature=self.temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema.name,
                        "schema": _wire_schema(schema),
                        "strict": True,
                    },
                },
            )
        except OpenAIError as exc:
            logger.error("Generation request for %s failed: %s", schema.name, exc)
            raise GenerationFailure(FailureCause.TRANSPORT) from exc

        message = response.choices[0].message.content if response.choices else None
        if not message:
            logger.warning("Empty %s payload from %s", schema.name, self.model)
            raise GenerationFailure(FailureCause.PARSE)

        text = _strip_code_fence(message)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Unparseable %s payload: %s. Raw: %s", schema.name, exc, _truncate(text))
            raise GenerationFailure(FailureCause.PARSE) from exc

        if schema.is_array and isinstance(payload, dict) and ARRAY_ENVELOPE_KEY in payload:
            payload = payload[ARRAY_ENVELOPE_KEY]

        try:
            return TypeAdapter(schema.response_type).validate_python(payload)
        except ValidationError as exc:
            logger.warning(
                "%s payload failed validation (%d errors). Raw: %s",
                schema.name,
                exc.error_count(),
                _truncate(text),
            )
            raise GenerationFailure(FailureCause.VALIDATION) from exc
