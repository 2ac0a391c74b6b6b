"""Stage, role and progress enums plus stage-advance validation.

Pure domain logic with no external dependencies.
"""
from dataclasses import dataclass
from enum import Enum


class Stage(str, Enum):
    """Fixed project lifecycle. Stored by label; ordered by ``order``."""

    DESIGN = "Design: Creating the software architecture"
    DEVELOPMENT = "Development: Writing the actual code"
    TESTING = "Testing: Ensuring the software works as expected"

    @property
    def order(self) -> int:
        return _STAGE_ORDER.index(self)

    @property
    def short_name(self) -> str:
        return self.value.split(":", 1)[0]

    @classmethod
    def parse(cls, value: str) -> "Stage":
        """Accept the full label or the short name ("Design", "development")."""
        for stage in cls:
            if value == stage.value or value.strip().lower() == stage.short_name.lower():
                return stage
        raise ValueError(f"Unknown stage: {value!r}")

    def following(self) -> "Stage | None":
        idx = self.order + 1
        return _STAGE_ORDER[idx] if idx < len(_STAGE_ORDER) else None


_STAGE_ORDER = [Stage.DESIGN, Stage.DEVELOPMENT, Stage.TESTING]


class InstanceStatus(str, Enum):
    IN_PROGRESS = "In Progress"
    COMPLETE = "Complete"
    ARCHIVED = "Archived"


class MemberRole(str, Enum):
    OWNER = "project_owner"
    LEADER = "project_leader"
    MEMBER = "member"

    @property
    def display_title(self) -> str:
        return ROLE_TITLES[self]


ROLE_TITLES = {
    MemberRole.OWNER: "Project Owner (Client)",
    MemberRole.LEADER: "Project Leader (Team Manager)",
    MemberRole.MEMBER: "Team Member",
}


class ProgressStatus(str, Enum):
    """Per-contributor progress within one stage instance.

    Owners carry no progress at all (``None``), never one of these values.
    """

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    STAGE_COMPLETE = "Stage Complete"


class Outcome(str, Enum):
    PROJECT_COMPLETED = "project-completed"
    USER_STAGE_COMPLETED = "user-stage-completed"
    STAGE_COMPLETED = "stage-completed"


class Branch(str, Enum):
    TERMINAL = "terminal"
    JOINED_EXISTING = "joined-existing"
    CREATED_NEXT = "created-next"


def tracks_progress(role: MemberRole) -> bool:
    """Owners do not complete stages; every other role does."""
    return role != MemberRole.OWNER


def initial_progress_for(
    role: MemberRole, default: ProgressStatus = ProgressStatus.NOT_STARTED
) -> ProgressStatus | None:
    """Progress a brand-new membership starts with."""
    return default if tracks_progress(role) else None


def migrated_progress_for(role: MemberRole, is_completing_user: bool) -> ProgressStatus | None:
    """Progress a member carries into a freshly created next-stage instance."""
    if not tracks_progress(role):
        return None
    return ProgressStatus.IN_PROGRESS if is_completing_user else ProgressStatus.NOT_STARTED


@dataclass
class AdvanceCheck:
    """Result of validating a stage-advance request."""

    allowed: bool
    reason: str = ""


def validate_stage_advance(current_stage: Stage, next_stage: Stage | None) -> AdvanceCheck:
    """Validate a completeStage request's stage pair.

    Pure function -- no side effects, no DB access.

    Rules:
        - No next stage means the current stage is the terminal one for this call
        - The next stage must be strictly later than the current stage
    """
    if next_stage is None:
        return AdvanceCheck(True)
    if next_stage.order <= current_stage.order:
        return AdvanceCheck(
            False,
            f"Next stage '{next_stage.short_name}' must come after '{current_stage.short_name}'",
        )
    return AdvanceCheck(True)


def classify_outcome(all_completed: bool, terminal: bool) -> Outcome:
    """Map the evaluator verdict onto the result reported to the caller."""
    if not all_completed:
        return Outcome.USER_STAGE_COMPLETED
    return Outcome.PROJECT_COMPLETED if terminal else Outcome.STAGE_COMPLETED


@dataclass
class TransitionResult:
    """What a completeStage call did."""

    outcome: Outcome
    branch: Branch
    stage_instance_id: object
    stage: Stage
    all_completed: bool
    completed_members: int | None = None
    total_members: int | None = None
