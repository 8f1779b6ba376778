"""Decision wizard endpoints for the Decision Flow FastAPI backend."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from ..llm import GenerationClient
from ..memory import SessionRegistry
from ..presentation import DeviceClass, render_record
from ..schemas import (
    ConsoleState,
    DecisionRequest,
    Goal,
    OnboardingOptions,
    OnboardingRequest,
    OptionDefinition,
    ReportResponse,
    Role,
    StageDefinition,
    TimeHorizon,
    UserContext,
)
from ..wizard import DecisionConsole, WizardStateError, list_stage_definitions


router = APIRouter(prefix="/wizard", tags=["wizard"])


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_generation_client(request: Request) -> GenerationClient:
    return request.app.state.generation_client


def get_console(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> DecisionConsole:
    console = registry.get_console(session_id)
    if console is None:
        raise HTTPException(status_code=404, detail=f"No session found for '{session_id}'.")
    return console


def get_device(
    width: int = Query(default=0, ge=0, description="Viewport width in CSS pixels."),
    reduced_motion: bool = Query(default=False),
    pointer: bool = Query(default=False, description="True when the device has a fine pointer."),
) -> DeviceClass:
    return DeviceClass(width=width, prefers_reduced_motion=reduced_motion, has_pointer=pointer)


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}


@router.get("/stages", response_model=list[StageDefinition])
async def list_stages() -> list[StageDefinition]:
    """Expose stage metadata to the UI."""

    return list_stage_definitions()


@router.get("/options", response_model=OnboardingOptions)
async def list_options() -> OnboardingOptions:
    """Expose the onboarding choices to the UI."""

    return OnboardingOptions(
        roles=[OptionDefinition(id=role.value, label=role.label) for role in Role],
        goals=[OptionDefinition(id=goal.value, label=goal.label) for goal in Goal],
        time_horizons=[OptionDefinition(id=horizon.value, label=horizon.label) for horizon in TimeHorizon],
    )


@router.post("/session", response_model=UserContext, status_code=status.HTTP_201_CREATED)
async def start_session(
    payload: OnboardingRequest,
    registry: SessionRegistry = Depends(get_registry),
    client: GenerationClient = Depends(get_generation_client),
) -> UserContext:
    """Complete onboarding and open a decision console."""

    return registry.start(payload, client)


@router.get("/session/{session_id}", response_model=UserContext)
async def fetch_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> UserContext:
    user = registry.get_user(session_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"No session found for '{session_id}'.")
    return user


@router.delete("/session/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> Response:
    """End the session and clear everything stored for it."""

    if not registry.end(session_id):
        raise HTTPException(status_code=404, detail=f"No session found for '{session_id}'.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session/{session_id}/console", response_model=ConsoleState)
async def fetch_console(console: DecisionConsole = Depends(get_console)) -> ConsoleState:
    return console.state()


@router.post("/session/{session_id}/structure", response_model=ConsoleState)
async def structure_decision(
    payload: DecisionRequest,
    console: DecisionConsole = Depends(get_console),
) -> ConsoleState:
    """Run the structuring stage for the submitted decision."""

    try:
        return console.structure(payload.decision)
    except WizardStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/session/{session_id}/confirm", response_model=ConsoleState)
async def confirm_stage(console: DecisionConsole = Depends(get_console)) -> ConsoleState:
    """Confirm the ready stage and move on; the next stage loads immediately."""

    try:
        return console.confirm()
    except WizardStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/session/{session_id}/reset", response_model=ConsoleState)
async def new_decision(console: DecisionConsole = Depends(get_console)) -> ConsoleState:
    """Discard the current analysis and start over at the first stage."""

    return console.reset()


@router.get("/session/{session_id}/report", response_model=ReportResponse)
async def fetch_report(
    console: DecisionConsole = Depends(get_console),
    device: DeviceClass = Depends(get_device),
) -> ReportResponse:
    """Render the analysis collected so far for the requesting device."""

    return ReportResponse(
        session_id=console.user.session_id,
        device=device.kind.value,
        animation_duration=device.animation_duration,
        hover_effects=device.hover_effects,
        markdown=render_record(console.controller.record, device),
    )
