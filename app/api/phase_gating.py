"""API endpoints for phase gating.

Stateless: every request carries a ProjectStateForActions snapshot and gets
derived results back. Nothing is read from or written to storage.
"""

import logging

from fastapi import APIRouter, HTTPException, Query

from app.core.logging import get_logger, log_with_context
from app.core.phase_gating import (
    PhaseTransitionError,
    can_advance_phase,
    evaluate_phase_criteria,
    evaluate_phase_status,
    get_criteria_for_role,
    get_outstanding_criteria_for_role,
    get_phase_for_project_status,
    list_criterion_definitions,
    summarize_phases,
    validate_phase_transition,
)
from app.core.schemas_phase_gating import (
    AdvanceCheck,
    CriterionDefinition,
    CriterionResult,
    PhaseOverview,
    PhaseStatus,
    ProjectPhase,
    ProjectStateForActions,
    ProjectStatus,
    UserRole,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get("/criteria", response_model=list[CriterionDefinition])
async def list_exit_criteria(
    phase: ProjectPhase | None = Query(None, description="Restrict to one phase"),
    role: UserRole | None = Query(None, description="Restrict to criteria assigned to a role"),
) -> list[CriterionDefinition]:
    """
    List the exit criteria table.

    Args:
        phase: Optional phase filter
        role: Optional role filter

    Returns:
        Criterion definitions in phase order, then table order
    """
    if role is not None:
        return get_criteria_for_role(role, phase)
    return list_criterion_definitions(phase)


@router.post("/evaluate", response_model=PhaseOverview)
async def evaluate_project_phases(state: ProjectStateForActions) -> PhaseOverview:
    """Evaluate all phases for a snapshot and return the project overview."""
    overview = summarize_phases(state)
    log_with_context(
        logger,
        logging.INFO,
        "Evaluated project phases",
        project_id=state.project_id or "-",
        active_phase=overview.active_phase.value,
        overall_percentage=overview.overall_percentage,
    )
    return overview


@router.post("/phases/{phase}/status", response_model=PhaseStatus)
async def get_phase_status(phase: ProjectPhase, state: ProjectStateForActions) -> PhaseStatus:
    """Evaluate a single phase."""
    return evaluate_phase_status(phase, state)


@router.post("/phases/{phase}/criteria", response_model=list[CriterionResult])
async def get_phase_criteria(phase: ProjectPhase, state: ProjectStateForActions) -> list[CriterionResult]:
    """Evaluate the full checklist of a phase, optional criteria included."""
    return evaluate_phase_criteria(phase, state)


@router.post("/phases/{phase}/can-advance", response_model=AdvanceCheck)
async def check_can_advance(phase: ProjectPhase, state: ProjectStateForActions) -> AdvanceCheck:
    """Check whether the project may move past ``phase``."""
    return can_advance_phase(phase, state)


@router.post("/transitions", response_model=AdvanceCheck)
async def check_transition(
    state: ProjectStateForActions,
    target: str = Query(..., description="Phase the project wants to move to"),
    force: bool = Query(False, description="Bypass ordering and criteria checks"),
) -> AdvanceCheck:
    """
    Validate a transition from the snapshot's current phase to ``target``.

    The current phase is derived from the snapshot's legacy status.

    Raises:
        HTTPException 409: If the transition is not allowed
    """
    current = get_phase_for_project_status(state.current_phase)
    try:
        return validate_phase_transition(current, target, state, force=force)
    except PhaseTransitionError as e:
        logger.warning(
            f"Rejected transition {current.value} -> {target} for project {state.project_id or '-'}: {e}"
        )
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.post("/roles/{role}/outstanding", response_model=list[CriterionResult])
async def get_role_outstanding(role: UserRole, state: ProjectStateForActions) -> list[CriterionResult]:
    """Unmet criteria a role is accountable for in unlocked phases."""
    return get_outstanding_criteria_for_role(role, state)


@router.get("/legacy-status/{status}")
async def map_legacy_status(status: ProjectStatus) -> dict:
    """Translate a legacy project status to its phase."""
    return {"status": status.value, "phase": get_phase_for_project_status(status).value}
