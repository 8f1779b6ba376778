"""Prompt and response-schema builders for the four wizard stages."""

from __future__ import annotations

from dataclasses import dataclass
from textwrap import dedent
from typing import Any, Dict, List, Sequence

from .schemas import (
    Assumption,
    AssumptionReliability,
    DecisionStructure,
    Recommendation,
    Scenario,
    ScenarioDraft,
    ScenarioTitle,
    UserContext,
)


@dataclass(frozen=True)
class ResponseSchema:
    """Describe the exact shape expected back from the model.

    ``json_schema`` is sent to the service; ``response_type`` is the pydantic
    type the parsed payload is validated against.
    """

    name: str
    json_schema: Dict[str, Any]
    response_type: Any

    @property
    def is_array(self) -> bool:
        return self.json_schema.get("type") == "array"


@dataclass(frozen=True)
class PromptSpec:
    prompt: str
    schema: ResponseSchema


def _string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


def _string_list(description: str) -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def _object(properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


STRUCTURE_SCHEMA = ResponseSchema(
    name="decision_structure",
    json_schema=_object(
        {
            "objective": _string("A single, clear sentence defining the primary goal of the decision."),
            "constraints": _string_list("A list of limitations or boundaries."),
            "variables": _string_list("A list of key factors or choices to be made."),
            "success_criteria": _string_list("A list of measurable outcomes for success."),
        }
    ),
    response_type=DecisionStructure,
)

ASSUMPTIONS_SCHEMA = ResponseSchema(
    name="assumptions",
    json_schema={
        "type": "array",
        "items": _object(
            {
                "text": _string("The implicit assumption being made."),
                "reliability": {
                    "type": "string",
                    "enum": [reliability.value for reliability in AssumptionReliability],
                    "description": "The reliability of the assumption.",
                },
                "is_risky": {
                    "type": "boolean",
                    "description": "True if the decision's success hinges critically on this assumption.",
                },
            }
        ),
    },
    response_type=List[Assumption],
)

SCENARIOS_SCHEMA = ResponseSchema(
    name="scenarios",
    json_schema={
        "type": "array",
        "items": _object(
            {
                "title": {
                    "type": "string",
                    "enum": [title.label for title in ScenarioTitle],
                },
                "outcome": _string("A concise description of the final outcome in this scenario."),
                "time_impact": _string("The likely impact on the timeline."),
                "effort_cost": _string("The effort or opportunity cost involved."),
                "recovery_strategy": _string(
                    "A brief recovery strategy (most relevant for Failure Case, can be 'N/A' for others)."
                ),
            }
        ),
    },
    response_type=List[ScenarioDraft],
)

RECOMMENDATION_SCHEMA = ResponseSchema(
    name="recommendation",
    json_schema=_object(
        {
            "primary_recommendation": _string("The main, actionable advice."),
            "confidence_score": {
                "type": "integer",
                "minimum": 0,
                "maximum": 100,
                "description": "A confidence score from 0 to 100.",
            },
            "confidence_reasoning": _string("Why this level of confidence exists."),
            "change_factors": _string_list("What could change the decision."),
            "reevaluation_timeline": _string("When to reconsider this decision."),
        }
    ),
    response_type=Recommendation,
)


def _user_lines(user: UserContext, *, name: bool = False, horizon: bool = True) -> str:
    lines = []
    if name:
        lines.append(f"- Name: {user.name}")
    lines.append(f"- Role: {user.role.label}")
    lines.append(f"- Primary Goal: {user.goal.label}")
    if horizon:
        lines.append(f"- Time Horizon: {user.time_horizon.label}")
    return "\n".join(lines)


def _assumption_lines(assumptions: Sequence[Assumption], *, with_risk: bool = True) -> str:
    if not assumptions:
        return "- None identified."
    if with_risk:
        return "\n".join(
            f"- {item.text} (Reliability: {item.reliability.value}, Risky: {str(item.is_risky).lower()})"
            for item in assumptions
        )
    return "\n".join(f"- {item.text} (Reliability: {item.reliability.value})" for item in assumptions)


def _scenario_outcome(scenarios: Sequence[Scenario], title: ScenarioTitle) -> str:
    for scenario in scenarios:
        if scenario.title is title:
            return scenario.outcome
    return "Not simulated."


STRUCTURE_PROMPT = dedent(
    """
    Based on the following user context and decision, structure the decision-making process.
    User Context:
    {user_lines}

    Decision: "{decision}"

    Structure this decision by defining a clear objective, identifying key constraints (what must be
    avoided or preserved), listing the main variables (factors that can be changed or chosen), and
    establishing success criteria (how to measure a successful outcome). Be concise and analytical.
    """
).strip()

ASSUMPTIONS_PROMPT = dedent(
    """
    Given the following decision structure and user context, identify the key implicit assumptions being made.
    User Context:
    {user_lines}

    Decision Structure:
    - Objective: {objective}
    - Constraints: {constraints}
    - Variables: {variables}
    - Success Criteria: {success_criteria}

    For each assumption, rate its reliability as 'strong', 'medium', or 'weak'. An assumption is weak if it
    is unproven, highly uncertain, or dependent on many external factors. Also, identify if the assumption
    is risky (is_risky: true) meaning the entire decision fails if this assumption is wrong.
    """
).strip()

SCENARIOS_PROMPT = dedent(
    """
    Based on the decision structure and identified assumptions, simulate three scenarios: Best Case,
    Base Case, and Failure Case.
    User Context:
    {user_lines}

    Decision Structure:
    - Objective: {objective}

    Key Assumptions (especially risky/weak ones):
    {assumption_lines}

    For each case (Best, Base, Failure), provide a concise description of the outcome, the time impact,
    the effort/opportunity cost, and a potential recovery strategy for the failure case.
    """
).strip()

RECOMMENDATION_PROMPT = dedent(
    """
    Synthesize all the provided information to generate a final recommendation for the user.
    Be analytical, calm, and practical.
    User Context:
    {user_lines}

    Decision Structure:
    - Objective: {objective}

    Key Assumptions:
    {assumption_lines}

    Simulated Scenarios:
    - Best Case: {best_case}
    - Base Case: {base_case}
    - Failure Case: {failure_case}

    Based on this analysis, provide:
    1. A primary, actionable recommendation.
    2. A confidence score (0-100) for this recommendation.
    3. A brief explanation for the confidence score, referencing key assumptions or scenarios.
    4. A list of key factors that could change this recommendation.
    5. A suggested timeline for when to re-evaluate this decision.
    """
).strip()


def structure_request(decision_text: str, user: UserContext) -> PromptSpec:
    """Build the stage 1 request that breaks a decision into its parts."""

    prompt = STRUCTURE_PROMPT.format(user_lines=_user_lines(user), decision=decision_text.strip())
    return PromptSpec(prompt=prompt, schema=STRUCTURE_SCHEMA)


def assumptions_request(structure: DecisionStructure, user: UserContext) -> PromptSpec:
    """Build the stage 2 request that surfaces implicit assumptions."""

    prompt = ASSUMPTIONS_PROMPT.format(
        user_lines=_user_lines(user),
        objective=structure.objective,
        constraints=", ".join(structure.constraints),
        variables=", ".join(structure.variables),
        success_criteria=", ".join(structure.success_criteria),
    )
    return PromptSpec(prompt=prompt, schema=ASSUMPTIONS_SCHEMA)


def scenarios_request(
    structure: DecisionStructure,
    assumptions: Sequence[Assumption],
    user: UserContext,
) -> PromptSpec:
    """Build the stage 3 request that simulates best, base and failure cases."""

    prompt = SCENARIOS_PROMPT.format(
        user_lines=_user_lines(user, horizon=False),
        objective=structure.objective,
        assumption_lines=_assumption_lines(assumptions),
    )
    return PromptSpec(prompt=prompt, schema=SCENARIOS_SCHEMA)


def recommendation_request(
    structure: DecisionStructure,
    assumptions: Sequence[Assumption],
    scenarios: Sequence[Scenario],
    user: UserContext,
) -> PromptSpec:
    """Build the stage 4 request; only risky or weak assumptions are forwarded."""

    critical = [
        item for item in assumptions if item.is_risky or item.reliability is AssumptionReliability.WEAK
    ]
    prompt = RECOMMENDATION_PROMPT.format(
        user_lines=_user_lines(user, name=True),
        objective=structure.objective,
        assumption_lines=_assumption_lines(critical, with_risk=False),
        best_case=_scenario_outcome(scenarios, ScenarioTitle.BEST_CASE),
        base_case=_scenario_outcome(scenarios, ScenarioTitle.BASE_CASE),
        failure_case=_scenario_outcome(scenarios, ScenarioTitle.FAILURE_CASE),
    )
    return PromptSpec(prompt=prompt, schema=RECOMMENDATION_SCHEMA)
