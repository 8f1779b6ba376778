"""Device-class detection and Markdown rendering of an analysis record."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .schemas import (
    AnalysisRecord,
    Assumption,
    DecisionStructure,
    Recommendation,
    Scenario,
    ScenarioTitle,
)
from .wizard import NO_ASSUMPTIONS_MESSAGE

MOBILE_BREAKPOINT = 768
TABLET_BREAKPOINT = 1024

SCENARIO_ICONS: Dict[ScenarioTitle, str] = {
    ScenarioTitle.BEST_CASE: "☀️",
    ScenarioTitle.BASE_CASE: "⚖️",
    ScenarioTitle.FAILURE_CASE: "🌧️",
}


class DeviceKind(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


@dataclass(frozen=True)
class DeviceClass:
    """Capabilities of the requesting device.

    Unknown width defaults to mobile, the narrowest layout.
    """

    width: int = 0
    prefers_reduced_motion: bool = False
    has_pointer: bool = False

    @property
    def kind(self) -> DeviceKind:
        if self.width < MOBILE_BREAKPOINT:
            return DeviceKind.MOBILE
        if self.width < TABLET_BREAKPOINT:
            return DeviceKind.TABLET
        return DeviceKind.DESKTOP

    @property
    def is_mobile(self) -> bool:
        return self.kind is DeviceKind.MOBILE

    @property
    def animation_duration(self) -> Optional[str]:
        """Return the fade-in duration, or ``None`` when motion is reduced."""

        if self.prefers_reduced_motion:
            return None
        return "0.3s" if self.is_mobile else "0.5s"

    @property
    def hover_effects(self) -> bool:
        return self.has_pointer


def confidence_band(score: int) -> str:
    if score < 40:
        return "low"
    if score < 70:
        return "moderate"
    return "high"


def _bullet_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items if item)


def _table_cell(text: str) -> str:
    """Keep model text on one table row: pipes escaped, line breaks collapsed."""
    return " ".join(text.split()).replace("|", "\\|")


def _format_structure_markdown(decision: str, structure: DecisionStructure) -> str:
    return "\n\n".join(
        section
        for section in [
            f"## Decision\n\n{decision.strip()}" if decision.strip() else "",
            f"## Objective\n\n{structure.objective}",
            f"## Success Criteria\n\n{_bullet_list(structure.success_criteria)}" if structure.success_criteria else "",
            f"## Constraints\n\n{_bullet_list(structure.constraints)}" if structure.constraints else "",
            f"## Variables\n\n{_bullet_list(structure.variables)}" if structure.variables else "",
        ]
        if section
    )


def _format_assumptions_markdown(assumptions: List[Assumption]) -> str:
    if not assumptions:
        return f"## Assumptions\n\n_No key assumptions identified._ {NO_ASSUMPTIONS_MESSAGE}"
    lines = []
    for item in assumptions:
        badges = f"**{item.reliability.value.title()}**"
        if item.is_risky:
            badges += " · **Risky**"
        lines.append(f"{badges}: {item.text}")
    return f"## Assumptions\n\n{_bullet_list(lines)}"


def _format_scenarios_markdown(scenarios: List[Scenario], device: DeviceClass) -> str:
    if device.is_mobile:
        blocks = []
        for scenario in scenarios:
            details = [
                f"Outcome: {scenario.outcome}",
                f"Time impact: {scenario.time_impact}",
                f"Effort/cost: {scenario.effort_cost}",
            ]
            if scenario.title is ScenarioTitle.FAILURE_CASE:
                details.append(f"Recovery: {scenario.recovery_strategy}")
            blocks.append(
                f"### {SCENARIO_ICONS[scenario.title]} {scenario.title.label}\n\n{_bullet_list(details)}"
            )
        return "## Scenarios\n\n" + "\n\n".join(blocks)

    rows = [
        "| Scenario | Outcome | Time impact | Effort/cost | Recovery |",
        "| --- | --- | --- | --- | --- |",
    ]
    for scenario in scenarios:
        recovery = scenario.recovery_strategy if scenario.title is ScenarioTitle.FAILURE_CASE else ""
        cells = [
            f"{SCENARIO_ICONS[scenario.title]} {scenario.title.label}",
            _table_cell(scenario.outcome),
            _table_cell(scenario.time_impact),
            _table_cell(scenario.effort_cost),
            _table_cell(recovery),
        ]
        rows.append("| " + " | ".join(cells) + " |")
    return "## Scenarios\n\n" + "\n".join(rows)


def _format_recommendation_markdown(recommendation: Recommendation) -> str:
    score = recommendation.confidence_score
    return "\n\n".join(
        section
        for section in [
            f"## Recommendation\n\n{recommendation.primary_recommendation}",
            f"## Confidence\n\n**{score}/100** ({confidence_band(score)})\n\n{recommendation.confidence_reasoning}",
            f"## What Could Change This\n\n{_bullet_list(recommendation.change_factors)}"
            if recommendation.change_factors
            else "",
            f"## Re-evaluate\n\n{recommendation.reevaluation_timeline}" if recommendation.reevaluation_timeline else "",
        ]
        if section
    )


def render_record(record: AnalysisRecord, device: DeviceClass | None = None) -> str:
    """Render every populated part of *record* as Markdown for *device*."""

    device = device or DeviceClass()
    sections = []
    if record.structure is not None:
        sections.append(_format_structure_markdown(record.decision, record.structure))
    if record.assumptions is not None:
        sections.append(_format_assumptions_markdown(record.assumptions))
    if record.scenarios is not None:
        sections.append(_format_scenarios_markdown(record.scenarios, device))
    if record.recommendation is not None:
        sections.append(_format_recommendation_markdown(record.recommendation))
    return "\n\n---\n\n".join(sections)
