"""Approval log adapter.

This is the ONLY place that writes ApprovalLog rows. Every workflow
transition calls ``log_transition`` inside the same transaction as the
status change, so an advanced status always has its audit entry.

Usage:
    from .audit import log_transition

    log_transition(
        kind=EntityKind.CALENDAR,
        entity=calendar,
        stage=Stage.PRESIDENT_GYMKHANA,
        action=ApprovalAction.SUBMITTED,
        actor=actor,
    )
"""

from .actors import Actor
from .constants import ApprovalAction, EntityKind, Stage
from .models import ApprovalLog


def log_transition(
    *,
    kind: str,
    entity,
    stage: str,
    action: str,
    actor: Actor,
    comments: str | None = None,
) -> ApprovalLog:
    """Append one approval log entry.

    Args:
        kind: EntityKind tag of the entity
        entity: The calendar/proposal/expense/amendment instance
        stage: Stage (role) the actor acted as
        action: ApprovalAction value
        actor: Who performed it
        comments: Optional reviewer comments or reason

    Returns:
        The created ApprovalLog
    """
    if kind not in EntityKind.values:
        raise ValueError(f"Unknown entity kind '{kind}'")
    if action not in ApprovalAction.values:
        raise ValueError(f"Unknown approval action '{action}'")

    return ApprovalLog.objects.create(
        entity_kind=kind,
        entity_id=str(entity.pk),
        stage=str(stage),
        action=action,
        performed_by=actor.id,
        comments=(comments or "").strip(),
    )


def get_history(kind: str, entity_id) -> list[ApprovalLog]:
    """Entries for one entity, oldest first."""
    return list(
        ApprovalLog.objects.filter(entity_kind=kind, entity_id=str(entity_id)).order_by("created_at", "id")
    )


def admin_stage(actor: Actor) -> str:
    """Stage recorded for Admin decisions; the Student Affairs office acts as Admin."""
    if actor.sub_role in Stage.values:
        return actor.sub_role
    return Stage.STUDENT_AFFAIRS.value
