from __future__ import annotations

import httpx
import openai
import pytest

from conftest import ASSUMPTIONS, STRUCTURE, as_text
from decision_flow.llm import FailureCause, GenerationClient, GenerationFailure
from decision_flow.prompts import ASSUMPTIONS_SCHEMA, RECOMMENDATION_SCHEMA, STRUCTURE_SCHEMA
from decision_flow.schemas import Assumption, AssumptionReliability, DecisionStructure


def test_generate_returns_typed_structure(llm, generation_client: GenerationClient) -> None:
    llm.queue(f"  {as_text(STRUCTURE)}\n")

    result = generation_client.generate("Structure this decision.", STRUCTURE_SCHEMA)

    assert isinstance(result, DecisionStructure)
    assert result.objective == STRUCTURE["objective"]
    assert result.variables == ["Start date", "Team placement"]


def test_generate_sends_structured_output_request(llm, generation_client: GenerationClient) -> None:
    llm.queue(as_text(STRUCTURE))

    generation_client.generate("Structure this decision.", STRUCTURE_SCHEMA)

    call = llm.calls[0]
    assert call["model"] == "test-model"
    assert call["temperature"] == 0.5
    assert call["messages"] == [{"role": "user", "content": "Structure this decision."}]
    response_format = call["response_format"]
    assert response_format["type"] == "json_schema"
    assert response_format["json_schema"]["name"] == "decision_structure"
    assert response_format["json_schema"]["schema"] == STRUCTURE_SCHEMA.json_schema


def test_array_schema_is_wrapped_and_unwrapped(llm, generation_client: GenerationClient) -> None:
    llm.queue(as_text({"items": ASSUMPTIONS}))

    result = generation_client.generate("List assumptions.", ASSUMPTIONS_SCHEMA)

    sent = llm.calls[0]["response_format"]["json_schema"]["schema"]
    assert sent["type"] == "object"
    assert sent["properties"]["items"] == ASSUMPTIONS_SCHEMA.json_schema
    assert [item.reliability for item in result] == [AssumptionReliability.WEAK, AssumptionReliability.STRONG]
    assert all(isinstance(item, Assumption) for item in result)


def test_bare_array_payload_is_accepted(llm, generation_client: GenerationClient) -> None:
    llm.queue(as_text(ASSUMPTIONS))

    result = generation_client.generate("List assumptions.", ASSUMPTIONS_SCHEMA)

    assert [item.text for item in result] == [item["text"] for item in ASSUMPTIONS]


def test_code_fenced_payload_is_parsed(llm, generation_client: GenerationClient) -> None:
    llm.queue(f"```json\n{as_text(STRUCTURE)}\n```")

    result = generation_client.generate("Structure this decision.", STRUCTURE_SCHEMA)

    assert result.success_criteria == STRUCTURE["success_criteria"]


@pytest.mark.parametrize("missing", ["objective", "constraints", "variables", "success_criteria"])
def test_missing_required_field_fails(llm, generation_client: GenerationClient, missing: str) -> None:
    payload = {key: value for key, value in STRUCTURE.items() if key != missing}
    llm.queue(as_text(payload))

    with pytest.raises(GenerationFailure) as excinfo:
        generation_client.generate("Structure this decision.", STRUCTURE_SCHEMA)

    assert excinfo.value.cause is FailureCause.VALIDATION


def test_missing_field_in_one_array_item_fails(llm, generation_client: GenerationClient) -> None:
    broken = [ASSUMPTIONS[0], {"text": "No rating given."}]
    llm.queue(as_text({"items": broken}))

    with pytest.raises(GenerationFailure) as excinfo:
        generation_client.generate("List assumptions.", ASSUMPTIONS_SCHEMA)

    assert excinfo.value.cause is FailureCause.VALIDATION


def test_out_of_range_confidence_fails(llm, generation_client: GenerationClient) -> None:
    llm.queue(
        as_text(
            {
                "primary_recommendation": "Go.",
                "confidence_score": 140,
                "confidence_reasoning": "Sure.",
                "change_factors": [],
                "reevaluation_timeline": "Never",
            }
        )
    )

    with pytest.raises(GenerationFailure):
        generation_client.generate("Recommend.", RECOMMENDATION_SCHEMA)


def test_unparseable_payload_fails(llm, generation_client: GenerationClient) -> None:
    llm.queue("The objective is to grow.")

    with pytest.raises(GenerationFailure) as excinfo:
        generation_client.generate("Structure this decision.", STRUCTURE_SCHEMA)

    assert excinfo.value.cause is FailureCause.PARSE
    assert str(excinfo.value) == excinfo.value.message


def test_empty_payload_fails(llm, generation_client: GenerationClient) -> None:
    llm.queue("")

    with pytest.raises(GenerationFailure) as excinfo:
        generation_client.generate("Structure this decision.", STRUCTURE_SCHEMA)

    assert excinfo.value.cause is FailureCause.PARSE


def test_transport_error_fails(llm, generation_client: GenerationClient) -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    llm.queue(openai.APIConnectionError(request=request))

    with pytest.raises(GenerationFailure) as excinfo:
        generation_client.generate("Structure this decision.", STRUCTURE_SCHEMA)

    assert excinfo.value.cause is FailureCause.TRANSPORT
    assert excinfo.value.message


def test_failure_message_does_not_reveal_cause(llm, generation_client: GenerationClient) -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    llm.queue(openai.APIConnectionError(request=request), "not json")

    messages = []
    for _ in range(2):
        with pytest.raises(GenerationFailure) as excinfo:
            generation_client.generate("Structure this decision.", STRUCTURE_SCHEMA)
        messages.append(excinfo.value.message)

    assert messages[0] == messages[1]


@pytest.mark.parametrize("prompt", ["", "   "])
def test_blank_prompt_is_rejected_before_any_call(llm, generation_client: GenerationClient, prompt: str) -> None:
    with pytest.raises(ValueError):
        generation_client.generate(prompt, STRUCTURE_SCHEMA)

    assert llm.calls == []
