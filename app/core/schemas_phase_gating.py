"""Pydantic models for the phase gating engine.

Five fixed phases, evaluated in order:
  scope_assess → classify_govern → approve_gate → build_test → evaluate_decide

The project snapshot (ProjectStateForActions) is assembled by the caller from
the assessment, governance, gate-review, security, sandbox/pilot and reporting
subsystems. Everything here is a value object; nothing is persisted.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class ProjectPhase(str, Enum):
    """Governance workflow phase. Declaration order is the progression order."""

    SCOPE_ASSESS = "scope_assess"
    CLASSIFY_GOVERN = "classify_govern"
    APPROVE_GATE = "approve_gate"
    BUILD_TEST = "build_test"
    EVALUATE_DECIDE = "evaluate_decide"

    @property
    def position(self) -> int:
        """Zero-based ordinal in the progression order."""
        return _PHASES.index(self)

    @property
    def previous(self) -> "ProjectPhase | None":
        return _PHASES[self.position - 1] if self.position > 0 else None

    @property
    def next(self) -> "ProjectPhase | None":
        return _PHASES[self.position + 1] if self.position < len(_PHASES) - 1 else None

    @property
    def is_first(self) -> bool:
        return self.position == 0

    @property
    def is_last(self) -> bool:
        return self.position == len(_PHASES) - 1

    # Ordering follows progression, not the alphabetical str ordering
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ProjectPhase):
            return NotImplemented
        return self.position < other.position

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ProjectPhase):
            return NotImplemented
        return self.position <= other.position

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ProjectPhase):
            return NotImplemented
        return self.position > other.position

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ProjectPhase):
            return NotImplemented
        return self.position >= other.position


_PHASES: tuple[ProjectPhase, ...] = tuple(ProjectPhase)


class PhaseState(str, Enum):
    """Derived status of a single phase."""

    LOCKED = "locked"
    ACTIVE = "active"
    COMPLETE = "complete"


class UserRole(str, Enum):
    """Roles that can be held accountable for a criterion."""

    ADMIN = "admin"
    CONSULTANT = "consultant"
    EXECUTIVE = "executive"
    IT = "it"
    LEGAL = "legal"
    ENGINEERING = "engineering"
    MARKETING = "marketing"


class ProjectStatus(str, Enum):
    """Legacy seven-value project status, predates the five-phase model."""

    DISCOVERY = "discovery"
    GOVERNANCE = "governance"
    SANDBOX = "sandbox"
    PILOT = "pilot"
    EVALUATION = "evaluation"
    PRODUCTION = "production"
    COMPLETED = "completed"


class GateType(str, Enum):
    """Formal governance gates reviewed by approvers."""

    DESIGN_REVIEW = "design_review"
    DATA_APPROVAL = "data_approval"
    SECURITY_REVIEW = "security_review"
    LAUNCH_REVIEW = "launch_review"


class GateDecision(str, Enum):
    """Decision recorded against a governance gate."""

    APPROVED = "approved"
    CONDITIONALLY_APPROVED = "conditionally_approved"
    REJECTED = "rejected"
    PENDING = "pending"
    DEFERRED = "deferred"

    @property
    def is_passed(self) -> bool:
        return self in (GateDecision.APPROVED, GateDecision.CONDITIONALLY_APPROVED)


# =============================================================================
# Input snapshot
# =============================================================================


class GateRecord(BaseModel):
    """A gate decision as reported by the gate-review subsystem."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    gate_type: GateType
    decision: GateDecision


class ProjectStateForActions(BaseModel):
    """Immutable snapshot of project facts consumed by the criteria.

    Every field is mandatory and unknown keys are rejected, so a missing or
    misspelled fact fails validation instead of reading as false.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_id: str
    current_phase: ProjectStatus

    # Discovery
    questionnaire_complete: bool
    readiness_scored: bool
    data_readiness_reviewed: bool
    prerequisites_complete: bool

    # Governance
    policies_drafted: bool
    compliance_mapped: bool
    risk_classified: bool
    raci_defined: bool
    ethics_reviewed: bool

    # Gates
    gates: tuple[GateRecord, ...]

    # Security
    security_pass_rate: float = Field(ge=0, le=100)
    critical_security_failures: int = Field(ge=0)

    # Sandbox
    sandbox_config_created: bool
    sandbox_validated: bool

    # Pilot
    pilot_designed: bool
    pilot_launched: bool
    metrics_collected: bool

    # Data
    data_classification_complete: bool

    # Reporting
    reports_generated: bool
    roi_calculated: bool

    # Team
    team_assigned: bool

    def gate_passed(self, gate_type: GateType) -> bool:
        """True when the first recorded decision for ``gate_type`` is a pass."""
        gate = next((g for g in self.gates if g.gate_type == gate_type), None)
        return gate is not None and gate.decision.is_passed


# =============================================================================
# Engine output
# =============================================================================


class PhaseStatus(BaseModel):
    """Evaluated status of one phase."""

    phase: ProjectPhase
    status: PhaseState
    completed_at: datetime | None = None
    criteria_met: int = 0
    criteria_total: int = 0
    percentage: int = Field(default=0, ge=0, le=100)
    blockers: list[str] = Field(default_factory=list)


class AdvanceCheck(BaseModel):
    """Whether a project may move past ``phase``."""

    phase: ProjectPhase
    can_advance: bool
    blockers: list[str] = Field(default_factory=list)


class CriterionDefinition(BaseModel):
    """Published view of an exit criterion (no predicate)."""

    id: str
    phase: ProjectPhase
    label: str
    description: str
    required: bool
    assigned_roles: list[UserRole] = Field(default_factory=list)


class CriterionResult(CriterionDefinition):
    """An exit criterion evaluated against a snapshot."""

    met: bool


class PhaseOverview(BaseModel):
    """Whole-project view for phase steppers and dashboards."""

    phases: list[PhaseStatus]
    active_phase: ProjectPhase
    overall_percentage: int = Field(ge=0, le=100)
    can_advance: bool
    blockers: list[str] = Field(default_factory=list)
