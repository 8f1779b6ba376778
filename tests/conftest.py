from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, List

import pytest

from decision_flow.config import get_llm_settings
from decision_flow.llm import GenerationClient
from decision_flow.schemas import Goal, Role, TimeHorizon, UserContext


STRUCTURE = {
    "objective": "Decide whether accepting Job X moves my career forward within two years.",
    "constraints": ["Keep total compensation at or above the current level"],
    "variables": ["Start date", "Team placement"],
    "success_criteria": ["Promotion or scope increase within 18 months"],
}

ASSUMPTIONS = [
    {"text": "The new team will keep its funding next year.", "reliability": "weak", "is_risky": True},
    {"text": "My current skills transfer to the new role.", "reliability": "strong", "is_risky": False},
]

SCENARIOS = [
    {
        "title": "Failure Case",
        "outcome": "The team is cut and I look for a new role.",
        "time_impact": "Six months lost",
        "effort_cost": "High",
        "recovery_strategy": "Return to the previous employer's alumni network.",
    },
    {
        "title": "Best Case",
        "outcome": "Promoted within a year.",
        "time_impact": "Accelerates plans by a year",
        "effort_cost": "Moderate",
        "recovery_strategy": "N/A",
    },
    {
        "title": "Base Case",
        "outcome": "Steady growth at a similar pace.",
        "time_impact": "Neutral",
        "effort_cost": "Moderate",
        "recovery_strategy": "N/A",
    },
]

RECOMMENDATION = {
    "primary_recommendation": "Accept Job X after confirming the team's funding.",
    "confidence_score": 72,
    "confidence_reasoning": "Upside is clear but depends on one weak assumption.",
    "change_factors": ["Budget cuts announced", "A counter-offer"],
    "reevaluation_timeline": "In six months",
}


def as_text(payload: Any) -> str:
    return json.dumps(payload)


class ScriptedCompletions:
    """Stand-in for ``client.chat.completions`` that replays queued replies."""

    def __init__(self) -> None:
        self.replies: List[Any] = []
        self.calls: List[dict] = []

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if not self.replies:
            raise AssertionError("Unexpected generation call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class ScriptedOpenAI:
    def __init__(self) -> None:
        self.completions = ScriptedCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def queue(self, *replies: Any) -> None:
        self.completions.replies.extend(replies)

    @property
    def calls(self) -> List[dict]:
        return self.completions.calls


@pytest.fixture(autouse=True)
def clear_llm_cache() -> None:
    """Ensure cached settings do not leak between tests."""

    get_llm_settings.cache_clear()


@pytest.fixture
def llm() -> ScriptedOpenAI:
    return ScriptedOpenAI()


@pytest.fixture
def generation_client(llm: ScriptedOpenAI) -> GenerationClient:
    return GenerationClient(llm, model="test-model", temperature=0.5)


@pytest.fixture
def user() -> UserContext:
    return UserContext(
        session_id="temp_1700000000000_abc1234",
        name="Alex",
        role=Role.PROFESSIONAL,
        goal=Goal.DECISION_CONFIDENCE,
        time_horizon=TimeHorizon.MEDIUM,
    )
