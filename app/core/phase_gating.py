"""Phase gating: exit criteria per phase and progression rules.

Linear phase flow:
  SCOPE_ASSESS → CLASSIFY_GOVERN → APPROVE_GATE → BUILD_TEST → EVALUATE_DECIDE

Each phase owns an ordered list of exit criteria. Required criteria gate
completion and advancement; optional criteria only count toward the
percentage. Criteria are declarative data, evaluation is pure functions over a
ProjectStateForActions snapshot.

Two separate notions of "done":
  - complete: every listed criterion passes (required and optional)
  - can advance: every required criterion passes
A phase is locked while the required criteria of the phase before it are unmet.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable

from app.core.logging import get_logger
from app.core.schemas_phase_gating import (
    AdvanceCheck,
    CriterionDefinition,
    CriterionResult,
    GateType,
    PhaseOverview,
    PhaseState,
    PhaseStatus,
    ProjectPhase,
    ProjectStateForActions,
    ProjectStatus,
    UserRole,
)

logger = get_logger(__name__)


class PhaseConfigurationError(Exception):
    """Raised when the exit-criteria table breaks its invariants."""


class PhaseTransitionError(Exception):
    """Raised when a phase transition is invalid."""


# =============================================================================
# Phase metadata
# =============================================================================

PHASE_ORDER: list[ProjectPhase] = list(ProjectPhase)

PHASE_LABELS: dict[ProjectPhase, str] = {
    ProjectPhase.SCOPE_ASSESS: "Scope & Assess",
    ProjectPhase.CLASSIFY_GOVERN: "Classify & Govern",
    ProjectPhase.APPROVE_GATE: "Approve & Gate",
    ProjectPhase.BUILD_TEST: "Build & Test",
    ProjectPhase.EVALUATE_DECIDE: "Evaluate & Decide",
}

PHASE_DESCRIPTIONS: dict[ProjectPhase, str] = {
    ProjectPhase.SCOPE_ASSESS: (
        "Define project scope, complete intake scoring, conduct readiness "
        "assessment, and assign team members."
    ),
    ProjectPhase.CLASSIFY_GOVERN: (
        "Draft policies, classify data, map compliance controls, define RACI, "
        "and classify risks."
    ),
    ProjectPhase.APPROVE_GATE: (
        "Pass governance gates, obtain executive approval, and address any "
        "exceptions or rejections."
    ),
    ProjectPhase.BUILD_TEST: (
        "Configure and validate the sandbox environment, design the pilot "
        "program, and run evaluation sprints."
    ),
    ProjectPhase.EVALUATE_DECIDE: (
        "Collect metrics, calculate ROI, generate stakeholder reports, and "
        "record the go/no-go decision."
    ),
}


# =============================================================================
# Criterion definitions
# =============================================================================


@dataclass(frozen=True)
class PhaseCriterion:
    """A named check over the project snapshot."""

    id: str
    label: str
    description: str
    check: Callable[[ProjectStateForActions], bool]
    required: bool
    assigned_roles: tuple[UserRole, ...]

    def to_definition(self, phase: ProjectPhase) -> CriterionDefinition:
        return CriterionDefinition(
            id=self.id,
            phase=phase,
            label=self.label,
            description=self.description,
            required=self.required,
            assigned_roles=list(self.assigned_roles),
        )

    def evaluate(self, phase: ProjectPhase, state: ProjectStateForActions) -> CriterionResult:
        return CriterionResult(
            **self.to_definition(phase).model_dump(),
            met=self.check(state),
        )


@dataclass(frozen=True)
class PhaseExitCriteria:
    """Ordered exit criteria bound to one phase."""

    phase: ProjectPhase
    criteria: tuple[PhaseCriterion, ...]


def _gate_passed(gate_type: GateType) -> Callable[[ProjectStateForActions], bool]:
    return lambda s: s.gate_passed(gate_type)


_R = UserRole

PHASE_EXIT_CRITERIA: list[PhaseExitCriteria] = [
    # Phase 1: Scope & Assess
    PhaseExitCriteria(
        phase=ProjectPhase.SCOPE_ASSESS,
        criteria=(
            PhaseCriterion(
                id="p1_questionnaire",
                label="Intake scored",
                description="Complete the assessment questionnaire and receive a readiness score.",
                check=lambda s: s.questionnaire_complete,
                required=True,
                assigned_roles=(_R.ADMIN, _R.CONSULTANT),
            ),
            PhaseCriterion(
                id="p1_readiness",
                label="Readiness assessed",
                description="Review and acknowledge the readiness assessment results.",
                check=lambda s: s.readiness_scored,
                required=True,
                assigned_roles=(_R.CONSULTANT, _R.ADMIN),
            ),
            PhaseCriterion(
                id="p1_team",
                label="Team assigned",
                description="Assign team members with appropriate roles to the project.",
                check=lambda s: s.team_assigned,
                required=True,
                assigned_roles=(_R.ADMIN,),
            ),
            PhaseCriterion(
                id="p1_prerequisites",
                label="Prerequisites started",
                description="Begin working through the prerequisite checklist items.",
                check=lambda s: s.prerequisites_complete,
                required=False,
                assigned_roles=(_R.ADMIN, _R.CONSULTANT),
            ),
        ),
    ),
    # Phase 2: Classify & Govern
    PhaseExitCriteria(
        phase=ProjectPhase.CLASSIFY_GOVERN,
        criteria=(
            PhaseCriterion(
                id="p2_policies",
                label="Policies drafted",
                description=(
                    "Draft Acceptable Use Policy, Incident Response Plan, and data "
                    "classification documents."
                ),
                check=lambda s: s.policies_drafted,
                required=True,
                assigned_roles=(_R.CONSULTANT, _R.LEGAL),
            ),
            PhaseCriterion(
                id="p2_compliance",
                label="Compliance mapped",
                description=(
                    "Map controls to applicable compliance frameworks "
                    "(SOC 2, HIPAA, NIST, GDPR)."
                ),
                check=lambda s: s.compliance_mapped,
                required=True,
                assigned_roles=(_R.LEGAL, _R.IT),
            ),
            PhaseCriterion(
                id="p2_risk",
                label="Risks classified",
                description="Identify, classify, and tier all project risks.",
                check=lambda s: s.risk_classified,
                required=True,
                assigned_roles=(_R.CONSULTANT, _R.IT),
            ),
            PhaseCriterion(
                id="p2_data",
                label="Data classified",
                description="Tag all data assets with classification levels and lawful basis.",
                check=lambda s: s.data_classification_complete,
                required=True,
                assigned_roles=(_R.IT,),
            ),
            PhaseCriterion(
                id="p2_raci",
                label="RACI defined",
                description=(
                    "Assign Responsible, Accountable, Consulted, Informed roles for "
                    "governance tasks."
                ),
                check=lambda s: s.raci_defined,
                required=False,
                assigned_roles=(_R.ADMIN, _R.CONSULTANT),
            ),
        ),
    ),
    # Phase 3: Approve & Gate
    PhaseExitCriteria(
        phase=ProjectPhase.APPROVE_GATE,
        criteria=(
            PhaseCriterion(
                id="p3_design_review",
                label="Design Review gate passed",
                description="Submit and pass the design review governance gate.",
                check=_gate_passed(GateType.DESIGN_REVIEW),
                required=True,
                assigned_roles=(_R.EXECUTIVE, _R.ADMIN),
            ),
            PhaseCriterion(
                id="p3_data_approval",
                label="Data Approval gate passed",
                description="Submit and pass the data approval governance gate.",
                check=_gate_passed(GateType.DATA_APPROVAL),
                required=True,
                assigned_roles=(_R.EXECUTIVE, _R.ADMIN),
            ),
            PhaseCriterion(
                id="p3_security_review",
                label="Security Review gate passed",
                description="Submit and pass the security review governance gate.",
                check=_gate_passed(GateType.SECURITY_REVIEW),
                required=True,
                assigned_roles=(_R.IT, _R.EXECUTIVE),
            ),
            PhaseCriterion(
                id="p3_no_critical_failures",
                label="No critical security failures",
                description="All critical security control checks must pass.",
                check=lambda s: s.critical_security_failures == 0,
                required=True,
                assigned_roles=(_R.IT,),
            ),
        ),
    ),
    # Phase 4: Build & Test
    PhaseExitCriteria(
        phase=ProjectPhase.BUILD_TEST,
        criteria=(
            PhaseCriterion(
                id="p4_sandbox_config",
                label="Sandbox configured",
                description="Create the sandbox infrastructure configuration.",
                check=lambda s: s.sandbox_config_created,
                required=True,
                assigned_roles=(_R.IT, _R.ENGINEERING),
            ),
            PhaseCriterion(
                id="p4_sandbox_validated",
                label="Sandbox validated",
                description="Run health checks to confirm sandbox meets requirements.",
                check=lambda s: s.sandbox_validated,
                required=True,
                assigned_roles=(_R.IT, _R.ENGINEERING),
            ),
            PhaseCriterion(
                id="p4_pilot_designed",
                label="Pilot designed",
                description="Define objectives, success criteria, and sprint cadence.",
                check=lambda s: s.pilot_designed,
                required=True,
                assigned_roles=(_R.ENGINEERING, _R.CONSULTANT),
            ),
            PhaseCriterion(
                id="p4_pilot_launched",
                label="Pilot launched",
                description="Kick off the first pilot sprint with participants.",
                check=lambda s: s.pilot_launched,
                required=True,
                assigned_roles=(_R.ENGINEERING,),
            ),
        ),
    ),
    # Phase 5: Evaluate & Decide
    PhaseExitCriteria(
        phase=ProjectPhase.EVALUATE_DECIDE,
        criteria=(
            PhaseCriterion(
                id="p5_metrics",
                label="Metrics collected",
                description="Log velocity, defect rate, satisfaction, and code quality metrics.",
                check=lambda s: s.metrics_collected,
                required=True,
                assigned_roles=(_R.ENGINEERING, _R.CONSULTANT),
            ),
            PhaseCriterion(
                id="p5_roi",
                label="ROI calculated",
                description="Complete ROI projections and business case analysis.",
                check=lambda s: s.roi_calculated,
                required=True,
                assigned_roles=(_R.CONSULTANT, _R.EXECUTIVE),
            ),
            PhaseCriterion(
                id="p5_reports",
                label="Reports generated",
                description="Generate persona-specific stakeholder reports.",
                check=lambda s: s.reports_generated,
                required=True,
                assigned_roles=(_R.CONSULTANT, _R.ADMIN),
            ),
            PhaseCriterion(
                id="p5_launch_gate",
                label="Decision recorded",
                description="Complete the launch review gate with a go/no-go decision.",
                check=_gate_passed(GateType.LAUNCH_REVIEW),
                required=True,
                assigned_roles=(_R.EXECUTIVE,),
            ),
        ),
    ),
]


def _validate_exit_criteria(table: list[PhaseExitCriteria]) -> dict[ProjectPhase, PhaseExitCriteria]:
    """Check table invariants and index it by phase."""
    phases = [ec.phase for ec in table]
    if phases != PHASE_ORDER:
        raise PhaseConfigurationError(
            f"Exit criteria must cover each phase once, in order; got {[p.value for p in phases]}"
        )
    for ec in table:
        if not ec.criteria:
            raise PhaseConfigurationError(f"Phase {ec.phase.value} has no exit criteria")
        ids = [c.id for c in ec.criteria]
        if len(ids) != len(set(ids)):
            raise PhaseConfigurationError(f"Duplicate criterion id in phase {ec.phase.value}")
    return {ec.phase: ec for ec in table}


_CRITERIA_BY_PHASE = _validate_exit_criteria(PHASE_EXIT_CRITERIA)


def get_exit_criteria(phase: ProjectPhase) -> tuple[PhaseCriterion, ...]:
    """Ordered criteria for ``phase`` (empty if the phase has none)."""
    exit_criteria = _CRITERIA_BY_PHASE.get(phase)
    return exit_criteria.criteria if exit_criteria else ()


# =============================================================================
# Phase navigation
# =============================================================================


def get_phase_index(phase: ProjectPhase | str) -> int:
    """Get the index of a phase in the linear progression."""
    return ProjectPhase(phase).position


def get_next_phase(phase: ProjectPhase | str) -> ProjectPhase | None:
    """Get the next phase, or None after the last one."""
    return ProjectPhase(phase).next


def get_previous_phase(phase: ProjectPhase | str) -> ProjectPhase | None:
    """Get the previous phase, or None before the first one."""
    return ProjectPhase(phase).previous


# =============================================================================
# Evaluation
# =============================================================================


def _percentage(met: int, total: int) -> int:
    # Round half up, integer-only
    if total <= 0:
        return 0
    return (200 * met + total) // (2 * total)


def _required_blockers(phase: ProjectPhase, state: ProjectStateForActions) -> list[str]:
    return [c.label for c in get_exit_criteria(phase) if c.required and not c.check(state)]


def _all_required_met(phase: ProjectPhase | None, state: ProjectStateForActions) -> bool:
    if phase is None:
        return True
    return not _required_blockers(phase, state)


def _build_status(
    phase: ProjectPhase,
    state: ProjectStateForActions,
    previous_required_met: bool,
) -> PhaseStatus:
    criteria = get_exit_criteria(phase)
    total = len(criteria)

    if total == 0:
        return PhaseStatus(
            phase=phase,
            status=PhaseState.ACTIVE if phase.is_first else PhaseState.LOCKED,
        )

    met = 0
    blockers: list[str] = []
    for criterion in criteria:
        if criterion.check(state):
            met += 1
        elif criterion.required:
            blockers.append(criterion.label)

    if met == total:
        status = PhaseState.COMPLETE
    elif not phase.is_first and not previous_required_met:
        status = PhaseState.LOCKED
    else:
        status = PhaseState.ACTIVE

    return PhaseStatus(
        phase=phase,
        status=status,
        completed_at=datetime.now(UTC) if status == PhaseState.COMPLETE else None,
        criteria_met=met,
        criteria_total=total,
        percentage=_percentage(met, total),
        blockers=blockers,
    )


def evaluate_phase_status(phase: ProjectPhase | str, state: ProjectStateForActions) -> PhaseStatus:
    """
    Evaluate a single phase against the project snapshot.

    A phase is complete when every listed criterion passes. Otherwise it is
    locked when a required criterion of the immediately preceding phase is
    unmet, and active in all other cases. The first phase is never locked.

    Args:
        phase: Phase to evaluate
        state: Project snapshot

    Returns:
        PhaseStatus with counts, percentage and required blockers in table order
    """
    phase = ProjectPhase(phase)
    return _build_status(phase, state, _all_required_met(phase.previous, state))


def evaluate_all_phases(state: ProjectStateForActions) -> list[PhaseStatus]:
    """Evaluate all five phases in progression order."""
    statuses: list[PhaseStatus] = []
    previous_required_met = True
    for phase in PHASE_ORDER:
        statuses.append(_build_status(phase, state, previous_required_met))
        previous_required_met = _all_required_met(phase, state)
    return statuses


def _first_incomplete_phase(statuses: list[PhaseStatus]) -> ProjectPhase:
    for status in statuses:
        if status.status != PhaseState.COMPLETE:
            return status.phase
    return PHASE_ORDER[-1]


def get_active_phase(state: ProjectStateForActions) -> ProjectPhase:
    """
    Return the first phase that is not complete.

    When every phase is complete the last phase is returned, so "all done" and
    "working on the last phase" look the same to callers.
    """
    return _first_incomplete_phase(evaluate_all_phases(state))


def can_advance_phase(phase: ProjectPhase | str, state: ProjectStateForActions) -> AdvanceCheck:
    """Check whether the required criteria of ``phase`` are all satisfied.

    Optional criteria are ignored, so a phase can be advance-eligible while
    still reported as active.
    """
    phase = ProjectPhase(phase)
    blockers = _required_blockers(phase, state)
    if blockers:
        logger.debug(
            f"Phase {phase.value} blocked for project {state.project_id or '-'}",
            extra={"extra_data": {"phase": phase.value, "blockers": len(blockers)}},
        )
    return AdvanceCheck(phase=phase, can_advance=not blockers, blockers=blockers)


_STATUS_TO_PHASE: dict[ProjectStatus, ProjectPhase] = {
    ProjectStatus.DISCOVERY: ProjectPhase.SCOPE_ASSESS,
    ProjectStatus.GOVERNANCE: ProjectPhase.CLASSIFY_GOVERN,
    ProjectStatus.SANDBOX: ProjectPhase.APPROVE_GATE,
    ProjectStatus.PILOT: ProjectPhase.BUILD_TEST,
    ProjectStatus.EVALUATION: ProjectPhase.EVALUATE_DECIDE,
    ProjectStatus.PRODUCTION: ProjectPhase.EVALUATE_DECIDE,
    ProjectStatus.COMPLETED: ProjectPhase.EVALUATE_DECIDE,
}


def get_phase_for_project_status(status: ProjectStatus | str) -> ProjectPhase:
    """Map a legacy project status onto the five-phase model.

    Unrecognised values map to the first phase.
    """
    try:
        return _STATUS_TO_PHASE[ProjectStatus(status)]
    except ValueError:
        return ProjectPhase.SCOPE_ASSESS


# =============================================================================
# Checklists and role views
# =============================================================================


def evaluate_phase_criteria(phase: ProjectPhase | str, state: ProjectStateForActions) -> list[CriterionResult]:
    """Evaluate every criterion of ``phase``, optional ones included, in table order."""
    phase = ProjectPhase(phase)
    return [c.evaluate(phase, state) for c in get_exit_criteria(phase)]


def list_criterion_definitions(phase: ProjectPhase | str | None = None) -> list[CriterionDefinition]:
    """Publish the criteria table, optionally for one phase."""
    phases = [ProjectPhase(phase)] if phase is not None else PHASE_ORDER
    return [c.to_definition(p) for p in phases for c in get_exit_criteria(p)]


def get_criteria_for_role(role: UserRole, phase: ProjectPhase | None = None) -> list[CriterionDefinition]:
    """List the criteria ``role`` is accountable for, optionally within one phase."""
    return [d for d in list_criterion_definitions(phase) if role in d.assigned_roles]


def get_outstanding_criteria_for_role(
    role: UserRole,
    state: ProjectStateForActions,
) -> list[CriterionResult]:
    """Unmet criteria assigned to ``role`` in phases that are not locked.

    Ordered by phase, then by table order within the phase.
    """
    outstanding: list[CriterionResult] = []
    for status in evaluate_all_phases(state):
        if status.status == PhaseState.LOCKED:
            continue
        for criterion in get_exit_criteria(status.phase):
            if role not in criterion.assigned_roles:
                continue
            result = criterion.evaluate(status.phase, state)
            if not result.met:
                outstanding.append(result)
    return outstanding


def summarize_phases(state: ProjectStateForActions) -> PhaseOverview:
    """Build the whole-project overview: statuses, active phase, overall progress."""
    phases = evaluate_all_phases(state)
    active_phase = _first_incomplete_phase(phases)
    advance = can_advance_phase(active_phase, state)

    overall = _percentage(
        sum(s.criteria_met for s in phases),
        sum(s.criteria_total for s in phases),
    )

    logger.debug(
        f"Phase overview for project {state.project_id or '-'}: "
        f"active={active_phase.value} overall={overall}%",
    )

    return PhaseOverview(
        phases=phases,
        active_phase=active_phase,
        overall_percentage=overall,
        can_advance=advance.can_advance,
        blockers=advance.blockers,
    )


# =============================================================================
# Transition validation
# =============================================================================


def validate_phase_transition(
    current: ProjectPhase | str,
    target: ProjectPhase | str,
    state: ProjectStateForActions,
    force: bool = False,
) -> AdvanceCheck:
    """Validate that ``current → target`` is a legal transition.

    Only a move to the immediately following phase is allowed, and only when
    the required criteria of ``current`` are satisfied. ``force`` bypasses the
    ordering and criteria checks but not unknown or identical targets.

    Returns:
        The advancement check for ``current``

    Raises:
        PhaseTransitionError: If the transition is not allowed
    """
    try:
        current = ProjectPhase(current)
        target = ProjectPhase(target)
    except ValueError as e:
        raise PhaseTransitionError(f"Unknown phase: {e}") from None

    if current == target:
        raise PhaseTransitionError("Already in that phase")

    check = can_advance_phase(current, state)
    if force:
        return check

    if target < current:
        raise PhaseTransitionError(
            f"Cannot move backward from {PHASE_LABELS[current]} "
            f"to {PHASE_LABELS[target]} without force"
        )

    if target != current.next:
        raise PhaseTransitionError(
            f"Cannot skip phases from {PHASE_LABELS[current]} "
            f"to {PHASE_LABELS[target]} without force"
        )

    if not check.can_advance:
        raise PhaseTransitionError(f"Exit criteria not met: {', '.join(check.blockers)}")

    return check
