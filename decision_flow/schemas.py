"""Pydantic models and enums for the Decision Flow wizard API."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Enumerate the roles offered during onboarding."""

    STUDENT = "student"
    PROFESSIONAL = "professional"
    OTHER = "other"

    @property
    def label(self) -> str:
        return self.value.title()


class Goal(str, Enum):
    """Enumerate what the user wants out of the session."""

    CAREER_CLARITY = "career_clarity"
    LEARNING_FOCUS = "learning_focus"
    DECISION_CONFIDENCE = "decision_confidence"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class TimeHorizon(str, Enum):
    """Enumerate the planning horizons."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"

    @property
    def label(self) -> str:
        labels = {
            TimeHorizon.SHORT: "short-term (<1 year)",
            TimeHorizon.MEDIUM: "medium-term (1-3 years)",
            TimeHorizon.LONG: "long-term (3+ years)",
        }
        return labels[self]


class AssumptionReliability(str, Enum):
    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"


class ScenarioTitle(str, Enum):
    """Enumerate the three simulated cases in canonical display order."""

    BEST_CASE = "best_case"
    BASE_CASE = "base_case"
    FAILURE_CASE = "failure_case"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class WizardStage(str, Enum):
    """Enumerate the four wizard stages."""

    STRUCTURING = "structuring"
    ASSUMPTIONS = "assumptions"
    SCENARIOS = "scenarios"
    RECOMMENDATION = "recommendation"

    @property
    def position(self) -> int:
        """Return the zero-based position of the stage."""
        stage_order = {
            WizardStage.STRUCTURING: 0,
            WizardStage.ASSUMPTIONS: 1,
            WizardStage.SCENARIOS: 2,
            WizardStage.RECOMMENDATION: 3,
        }
        return stage_order[self]

    @classmethod
    def from_index(cls, index: int) -> "WizardStage":
        for stage in cls:
            if stage.position == index:
                return stage
        raise ValueError(f"No wizard stage at index {index}.")


class StageStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Analysis entities
# ---------------------------------------------------------------------------


class UserContext(BaseModel):
    """Identity and preferences collected at onboarding."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    name: str
    role: Role
    goal: Goal
    time_horizon: TimeHorizon


class DecisionStructure(BaseModel):
    model_config = ConfigDict(frozen=True)

    objective: str
    constraints: List[str]
    variables: List[str]
    success_criteria: List[str]


class Assumption(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    reliability: AssumptionReliability
    is_risky: bool


class ScenarioDraft(BaseModel):
    """A scenario as returned by the model, before its title is checked."""

    title: str
    outcome: str
    time_impact: str
    effort_cost: str
    recovery_strategy: str


class Scenario(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: ScenarioTitle
    outcome: str
    time_impact: str
    effort_cost: str
    recovery_strategy: str


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_recommendation: str
    confidence_score: int = Field(..., ge=0, le=100)
    confidence_reasoning: str
    change_factors: List[str]
    reevaluation_timeline: str


class AnalysisRecord(BaseModel):
    """Accumulated result threaded through all four stages."""

    decision: str = ""
    structure: Optional[DecisionStructure] = None
    assumptions: Optional[List[Assumption]] = None
    scenarios: Optional[List[Scenario]] = None
    recommendation: Optional[Recommendation] = None


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class OnboardingRequest(BaseModel):
    """Payload collected by the onboarding form."""

    name: str = Field(..., description="First name shown in the console header.")
    role: Role = Field(default=Role.PROFESSIONAL)
    goal: Goal = Field(default=Goal.DECISION_CONFIDENCE)
    time_horizon: TimeHorizon = Field(default=TimeHorizon.MEDIUM)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Please enter your first name.")
        return value.strip()


class DecisionRequest(BaseModel):
    """Free-text description of the decision being structured."""

    decision: str = Field(..., description="The decision the user is facing.")

    @field_validator("decision")
    @classmethod
    def _require_decision(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Please describe the decision you're facing.")
        return value


class StageDefinition(BaseModel):
    """Expose metadata that describes a stage to the UI."""

    id: WizardStage
    index: int
    label: str
    description: str


class OptionDefinition(BaseModel):
    id: str
    label: str


class OnboardingOptions(BaseModel):
    """Closed option sets offered by the onboarding form."""

    roles: List[OptionDefinition]
    goals: List[OptionDefinition]
    time_horizons: List[OptionDefinition]


StagePayload = Union[DecisionStructure, List[Assumption], List[Scenario], Recommendation]


class ConsoleState(BaseModel):
    """Snapshot of a session's decision console."""

    session_id: str
    stage: WizardStage
    stage_index: int
    stage_label: str
    status: StageStatus
    is_loading: bool
    error: Optional[str] = None
    can_confirm: bool = False
    empty_state: Optional[str] = None
    pending: Optional[StagePayload] = None
    record: AnalysisRecord


class ReportResponse(BaseModel):
    """Markdown rendering of the accumulated analysis."""

    session_id: str
    device: str
    animation_duration: Optional[str] = None
    hover_effects: bool = False
    markdown: str
