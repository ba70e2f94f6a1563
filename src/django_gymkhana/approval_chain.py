"""
Dynamic approval-chain state machine shared by calendars and proposals.

The next stage is not fixed: at the Student Affairs stage the approver picks
an ordered subset of the post-Student-Affairs stages, and the entity then
walks that chain by index. Records approved before chains existed fall back
to the static STAGE_TO_STATUS table.

``plan_approval`` is a pure function. ``apply_step`` / ``reset_chain`` write
its result onto any entity, addressed through ``ChainFields``.
"""

from dataclasses import dataclass

from .constants import (
    APPROVED,
    APPROVER_TO_STATUS,
    POST_STUDENT_AFFAIRS_APPROVERS,
    STAGE_TO_STATUS,
    STATUS_TO_APPROVER,
    Stage,
)
from .exceptions import BadRequest


@dataclass(frozen=True)
class ChainFields:
    """Attribute names holding chain state on an entity."""

    status: str = "status"
    stage: str = "current_approval_stage"
    chain: str = "custom_approval_chain"
    index: str = "current_chain_index"


DEFAULT_FIELDS = ChainFields()


@dataclass(frozen=True)
class ChainStep:
    """Where an approval moves the entity.

    Attributes:
        status: New status
        stage: Stage now expected to act (None once approved)
        chain: Chain to store (unchanged unless Student Affairs just chose it)
        index: Position in the chain (None when off-chain or approved)
    """

    status: str
    stage: str | None
    chain: list[str]
    index: int | None

    @property
    def is_final(self) -> bool:
        return self.status == APPROVED


def required_approver(status: str) -> str | None:
    """Return the stage that must act on an entity in ``status``, if any."""
    return STATUS_TO_APPROVER.get(status)


def valid_stage_names() -> str:
    return " / ".join(str(stage) for stage in POST_STUDENT_AFFAIRS_APPROVERS)


def validate_next_stages(next_stages) -> list[str]:
    """
    Validate the chain chosen at the Student Affairs stage.

    Must be a non-empty, duplicate-free list drawn from the
    post-Student-Affairs approvers. Order is kept as given.

    Raises:
        BadRequest: With the valid stage names in the message
    """
    if not isinstance(next_stages, (list, tuple)) or len(next_stages) == 0:
        raise BadRequest(
            "Student Affairs must select at least one next approval stage "
            f"({valid_stage_names()})"
        )

    stages = [str(stage) for stage in next_stages]
    if len(set(stages)) != len(stages):
        raise BadRequest(f"Next approval stages must be unique ({valid_stage_names()})")

    for stage in stages:
        if stage not in POST_STUDENT_AFFAIRS_APPROVERS:
            raise BadRequest(
                f"Invalid approval stage selected: {stage}. "
                f"Valid stages: {valid_stage_names()}"
            )

    return stages


def plan_approval(
    status: str,
    acting_stage: str,
    chain: list[str] | None,
    index: int | None,
    next_stages=None,
) -> ChainStep:
    """
    Compute the step an approval at ``acting_stage`` produces.

    Args:
        status: Current status (must be a pending_* value)
        acting_stage: Stage of the approver (already authorized)
        chain: Stored custom chain, possibly empty
        index: Stored chain index, possibly None
        next_stages: Chain selection; required at Student Affairs only

    Returns:
        ChainStep describing the new status/stage/chain/index

    Raises:
        BadRequest: Missing/invalid selection, or a stored chain that does
            not contain the acting stage
    """
    chain = list(chain or [])

    if acting_stage == Stage.STUDENT_AFFAIRS:
        selected = validate_next_stages(next_stages)
        first = selected[0]
        return ChainStep(status=APPROVER_TO_STATUS[first], stage=first, chain=selected, index=0)

    if chain and acting_stage in POST_STUDENT_AFFAIRS_APPROVERS:
        if index is None or not (0 <= index < len(chain)) or chain[index] != acting_stage:
            if acting_stage not in chain:
                raise BadRequest("Approval chain is misconfigured for this record")
            index = chain.index(acting_stage)

        next_index = index + 1
        if next_index >= len(chain):
            return ChainStep(status=APPROVED, stage=None, chain=chain, index=None)
        next_stage = chain[next_index]
        return ChainStep(
            status=APPROVER_TO_STATUS[next_stage],
            stage=next_stage,
            chain=chain,
            index=next_index,
        )

    # Legacy path: no chain was ever chosen for this record.
    next_status = STAGE_TO_STATUS.get(acting_stage)
    if next_status is None or next_status == APPROVED:
        return ChainStep(status=APPROVED, stage=None, chain=chain, index=None)
    return ChainStep(
        status=next_status,
        stage=STATUS_TO_APPROVER.get(next_status),
        chain=chain,
        index=index,
    )


def current_chain(entity, fields: ChainFields = DEFAULT_FIELDS) -> tuple[list[str], int | None]:
    return list(getattr(entity, fields.chain) or []), getattr(entity, fields.index)


def apply_step(entity, step: ChainStep, fields: ChainFields = DEFAULT_FIELDS) -> None:
    """Write a planned step onto ``entity`` (not saved)."""
    setattr(entity, fields.status, step.status)
    setattr(entity, fields.stage, step.stage)
    setattr(entity, fields.chain, [str(stage) for stage in step.chain])
    setattr(entity, fields.index, step.index)


def reset_chain(entity, status: str, stage: str | None, fields: ChainFields = DEFAULT_FIELDS) -> None:
    """Start a fresh approval cycle: new status/stage, no chain."""
    setattr(entity, fields.status, status)
    setattr(entity, fields.stage, stage)
    setattr(entity, fields.chain, [])
    setattr(entity, fields.index, None)
