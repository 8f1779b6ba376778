"""Wizard state machine, stage components and the per-session decision console."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from .llm import GenerationClient, GenerationFailure
from .prompts import (
    PromptSpec,
    assumptions_request,
    recommendation_request,
    scenarios_request,
    structure_request,
)
from .schemas import (
    AnalysisRecord,
    ConsoleState,
    Scenario,
    ScenarioDraft,
    ScenarioTitle,
    StageDefinition,
    StageStatus,
    UserContext,
    WizardStage,
)

logger = logging.getLogger(__name__)

LAST_STAGE_INDEX = WizardStage.RECOMMENDATION.position

NO_ASSUMPTIONS_MESSAGE = (
    "The analysis didn't find significant implicit assumptions. This could mean your decision is "
    "straightforward or relies on widely accepted facts. You can proceed to the next step."
)


class WizardStateError(RuntimeError):
    """Raised when an action does not fit the console's current stage or status."""


# ---------------------------------------------------------------------------
# Stage metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StageInfo:
    """Runtime definition used by the registry below."""

    slug: WizardStage
    label: str
    description: str
    prerequisites: Tuple[str, ...]


STAGE_REGISTRY: Dict[WizardStage, StageInfo] = {
    WizardStage.STRUCTURING: StageInfo(
        slug=WizardStage.STRUCTURING,
        label="Structuring",
        description="Break the decision into an objective, constraints, variables and success criteria.",
        prerequisites=(),
    ),
    WizardStage.ASSUMPTIONS: StageInfo(
        slug=WizardStage.ASSUMPTIONS,
        label="Assumptions",
        description="Surface the implicit assumptions and rate how reliable each one is.",
        prerequisites=("structure",),
    ),
    WizardStage.SCENARIOS: StageInfo(
        slug=WizardStage.SCENARIOS,
        label="Scenarios",
        description="Simulate the best, base and failure cases.",
        prerequisites=("structure", "assumptions"),
    ),
    WizardStage.RECOMMENDATION: StageInfo(
        slug=WizardStage.RECOMMENDATION,
        label="Recommendation",
        description="Synthesise a recommendation with a confidence score.",
        prerequisites=("structure", "assumptions", "scenarios"),
    ),
}


def list_stage_definitions() -> List[StageDefinition]:
    """Return UI-friendly descriptors for all stages."""

    return [
        StageDefinition(id=info.slug, index=info.slug.position, label=info.label, description=info.description)
        for info in sorted(STAGE_REGISTRY.values(), key=lambda item: item.slug.position)
    ]


def canonical_scenarios(drafts: Iterable[ScenarioDraft]) -> List[Scenario]:
    """Order scenarios as best, base, failure and drop any unknown title.

    Titles are matched loosely ("Best Case", "best_case", "best-case"). Missing
    cases are not filled in and the first draft seen for a title wins.
    """

    by_title: Dict[ScenarioTitle, Scenario] = {}
    for draft in drafts:
        key = draft.title.strip().lower().replace(" ", "_").replace("-", "_")
        try:
            title = ScenarioTitle(key)
        except ValueError:
            logger.info("Dropping scenario with unrecognised title %r", draft.title)
            continue
        if title in by_title:
            continue
        by_title[title] = Scenario(
            title=title,
            outcome=draft.outcome,
            time_impact=draft.time_impact,
            effort_cost=draft.effort_cost,
            recovery_strategy=draft.recovery_strategy,
        )
    return [by_title[title] for title in ScenarioTitle if title in by_title]


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class WizardController:
    """Hold the stage index and the accumulated analysis record."""

    def __init__(self) -> None:
        self.stage_index = 0
        self.record = AnalysisRecord()

    @property
    def stage(self) -> WizardStage:
        return WizardStage.from_index(self.stage_index)

    def advance(self, partial: Dict[str, Any]) -> None:
        """Merge *partial* into the record and move to the next stage, if any."""

        unknown = set(partial) - set(AnalysisRecord.model_fields)
        if unknown:
            raise ValueError(f"Unknown analysis fields: {', '.join(sorted(unknown))}")

        self.record = self.record.model_copy(update=partial)
        if self.stage_index < LAST_STAGE_INDEX:
            self.stage_index += 1
            logger.info("Advanced to stage %s", self.stage.value)

    def reset(self) -> None:
        self.stage_index = 0
        self.record = AnalysisRecord()
        logger.info("Wizard reset")

    def prerequisites_met(self, stage: WizardStage | None = None) -> bool:
        info = STAGE_REGISTRY[stage or self.stage]
        return all(getattr(self.record, field) is not None for field in info.prerequisites)


# ---------------------------------------------------------------------------
# Stage components
# ---------------------------------------------------------------------------


class StageComponent:
    """One generation call with its own Idle/Loading/Ready/Failed status."""

    stage: ClassVar[WizardStage]
    auto_start: ClassVar[bool] = True
    auto_advance: ClassVar[bool] = False

    def __init__(self, console: "DecisionConsole") -> None:
        self.console = console
        self.status = StageStatus.IDLE
        self.result: Any = None

    @property
    def record(self) -> AnalysisRecord:
        return self.console.controller.record

    def build_request(self) -> PromptSpec:
        raise NotImplementedError

    def postprocess(self, value: Any) -> Any:
        return value

    def handoff(self) -> Dict[str, Any]:
        """Return the fields this stage merges into the analysis record."""
        raise NotImplementedError

    def run(self) -> None:
        if self.status is StageStatus.LOADING:
            raise WizardStateError("A generation request is already in progress.")

        spec = self.build_request()
        self.status = StageStatus.LOADING
        self.result = None
        self.console.error = None
        self.console.is_loading = True
        try:
            value = self.console.client.generate(spec.prompt, spec.schema)
        except GenerationFailure as exc:
            self.status = StageStatus.FAILED
            self.console.error = exc.message
            logger.warning("Stage %s failed (%s)", self.stage.value, exc.cause.value)
            return
        finally:
            self.console.is_loading = False

        self.result = self.postprocess(value)
        self.status = StageStatus.READY
        if self.auto_advance:
            self.console.controller.advance(self.handoff())

    @property
    def can_confirm(self) -> bool:
        return self.status is StageStatus.READY and not self.auto_advance

    @property
    def empty_state(self) -> Optional[str]:
        return None


class StructuringStage(StageComponent):
    stage = WizardStage.STRUCTURING
    auto_start = False

    def __init__(self, console: "DecisionConsole") -> None:
        super().__init__(console)
        self.decision = console.controller.record.decision

    def submit(self, decision: str) -> None:
        if self.status not in (StageStatus.IDLE, StageStatus.FAILED):
            raise WizardStateError("The decision is already structured; confirm it or start a new decision.")
        if not decision.strip():
            raise ValueError("Please describe the decision you're facing.")
        self.decision = decision
        self.run()

    def build_request(self) -> PromptSpec:
        return structure_request(self.decision, self.console.user)

    def handoff(self) -> Dict[str, Any]:
        return {"decision": self.decision, "structure": self.result}


class AssumptionsStage(StageComponent):
    stage = WizardStage.ASSUMPTIONS

    def build_request(self) -> PromptSpec:
        return assumptions_request(self.record.structure, self.console.user)

    def handoff(self) -> Dict[str, Any]:
        return {"assumptions": list(self.result)}

    @property
    def empty_state(self) -> Optional[str]:
        if self.status is StageStatus.READY and not self.result:
            return NO_ASSUMPTIONS_MESSAGE
        return None


class ScenariosStage(StageComponent):
    stage = WizardStage.SCENARIOS

    def build_request(self) -> PromptSpec:
        return scenarios_request(self.record.structure, self.record.assumptions, self.console.user)

    def postprocess(self, value: Sequence[ScenarioDraft]) -> List[Scenario]:
        return canonical_scenarios(value)

    def handoff(self) -> Dict[str, Any]:
        return {"scenarios": list(self.result)}


class RecommendationStage(StageComponent):
    stage = WizardStage.RECOMMENDATION
    auto_advance = True

    def build_request(self) -> PromptSpec:
        return recommendation_request(
            self.record.structure,
            self.record.assumptions,
            self.record.scenarios,
            self.console.user,
        )

    def handoff(self) -> Dict[str, Any]:
        return {"recommendation": self.result}


STAGE_COMPONENTS: Dict[WizardStage, Type[StageComponent]] = {
    WizardStage.STRUCTURING: StructuringStage,
    WizardStage.ASSUMPTIONS: AssumptionsStage,
    WizardStage.SCENARIOS: ScenariosStage,
    WizardStage.RECOMMENDATION: RecommendationStage,
}


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------


class DecisionConsole:
    """Render exactly one stage component for the controller's current stage.

    Generation failures end up in ``error`` (the console banner) and never
    propagate to the caller.
    """

    def __init__(self, user: UserContext, client: GenerationClient) -> None:
        self.user = user
        self.client = client
        self.controller = WizardController()
        self.error: Optional[str] = None
        self.is_loading = False
        self.active: Optional[StageComponent] = None
        self._mount()

    def _mount(self) -> None:
        stage = self.controller.stage
        if not self.controller.prerequisites_met(stage):
            logger.warning("Not rendering stage %s: prerequisites missing", stage.value)
            self.active = None
            return
        self.active = STAGE_COMPONENTS[stage](self)
        if self.active.auto_start:
            self.active.run()

    def structure(self, decision: str) -> ConsoleState:
        """Run stage 1 for *decision*; allowed again only after a failure."""

        if not isinstance(self.active, StructuringStage):
            raise WizardStateError("The decision can only be structured in the first stage.")
        self.active.submit(decision)
        return self.state()

    def confirm(self) -> ConsoleState:
        """Hand the ready stage result to the controller and mount the next stage."""

        if self.active is None or not self.active.can_confirm:
            raise WizardStateError("There is no result ready to confirm.")
        self.controller.advance(self.active.handoff())
        self._mount()
        return self.state()

    def reset(self) -> ConsoleState:
        """Start a new decision from an empty record."""

        self.controller.reset()
        self.error = None
        self.is_loading = False
        self._mount()
        return self.state()

    def state(self) -> ConsoleState:
        stage = self.controller.stage
        active = self.active
        return ConsoleState(
            session_id=self.user.session_id,
            stage=stage,
            stage_index=self.controller.stage_index,
            stage_label=STAGE_REGISTRY[stage].label,
            status=active.status if active else StageStatus.IDLE,
            is_loading=self.is_loading,
            error=self.error,
            can_confirm=bool(active and active.can_confirm),
            empty_state=active.empty_state if active else None,
            pending=active.result if active and active.status is StageStatus.READY else None,
            record=self.controller.record,
        )
