"""Proposal Workflow.

A proposal is submitted once per event when its submission window opens
(``proposal_due_date``), then walks the same dynamic approval chain as a
calendar. Standard events are proposed by GS Gymkhana and reviewed first
by the President; mega events are proposed by the President and go straight
to Student Affairs.
"""

import logging
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .actors import Actor
from .approval_chain import apply_step, current_chain, plan_approval, required_approver, reset_chain
from .audit import get_history, log_transition
from .conf import get_clock, get_setting
from .constants import (
    SUBROLE_TO_PENDING_STATUS,
    ApprovalAction,
    EntityKind,
    EventStatus,
    ProposalStatus,
    Stage,
)
from .exceptions import BadRequest, Forbidden, InvalidPayload, NotFound
from .models import EventProposal, GymkhanaEvent, proposal_due_date_for
from .results import created, ok, service_operation
from .validators import (
    PROPOSAL_AMOUNTS,
    proposal_fields,
    to_decimal,
    validate_proposal,
    validate_rejection_reason,
)

logger = logging.getLogger(__name__)

CLOSED_EVENT_STATUSES = (EventStatus.CANCELLED, EventStatus.COMPLETED)
GS_EDITABLE = (ProposalStatus.REVISION_REQUESTED, ProposalStatus.REJECTED)
MEGA_PRESIDENT_EDITABLE = (
    ProposalStatus.PENDING_PRESIDENT,
    ProposalStatus.REVISION_REQUESTED,
    ProposalStatus.REJECTED,
)


def _get_event(event_id, for_update: bool = False) -> GymkhanaEvent:
    queryset = GymkhanaEvent.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=event_id)
    except (GymkhanaEvent.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Event")


def _get_proposal(proposal_id, for_update: bool = False) -> EventProposal:
    queryset = EventProposal.objects.select_related("event")
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=proposal_id)
    except (EventProposal.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Proposal")


def _is_mega(event: GymkhanaEvent) -> bool:
    return event.mega_event_series_id is not None


def _ensure_due_date(event: GymkhanaEvent):
    """Return the event's proposal due date, computing and caching it if absent."""
    if event.proposal_due_date is None:
        event.proposal_due_date = proposal_due_date_for(event.scheduled_start_date)
        event.save(update_fields=["proposal_due_date", "updated_at"])
    return event.proposal_due_date


def _apply_fields(proposal: EventProposal, fields: dict, event: GymkhanaEvent) -> None:
    """Write payload fields and re-derive the financial snapshot."""
    for name, value in fields.items():
        if name in PROPOSAL_AMOUNTS:
            setattr(proposal, name, to_decimal(value))
        elif name in ("accommodation_required", "has_registration_fee"):
            setattr(proposal, name, bool(value))
        else:
            setattr(proposal, name, str(value or "").strip())

    if not proposal.has_registration_fee:
        proposal.registration_fee_amount = to_decimal(0)

    proposal.event_budget_at_submission = to_decimal(event.estimated_budget)
    proposal.budget_deflection = to_decimal(proposal.total_expenditure) - proposal.event_budget_at_submission


def _clear_rejection(proposal: EventProposal) -> None:
    proposal.rejection_reason = ""
    proposal.rejected_by = ""
    proposal.rejected_at = None


# =============================================================================
# Submitter operations
# =============================================================================


@service_operation
@transaction.atomic
def create_proposal(event_id, data: dict, actor: Actor, clock=None):
    """
    Submit the proposal for an event.

    Returns:
        201 with ``proposal`` and ``event``

    Failures:
        403 wrong submitter; 400 duplicate, closed event, window not open,
        invalid payload
    """
    event = _get_event(event_id, for_update=True)
    mega = _is_mega(event)

    if mega and not actor.is_president:
        raise Forbidden("Only President Gymkhana can submit proposals for mega events")
    if not mega and not actor.is_gs:
        raise Forbidden("Only GS Gymkhana can submit event proposals")

    if event.proposal_submitted:
        raise BadRequest("Proposal already submitted for this event")

    if event.status in CLOSED_EVENT_STATUSES:
        raise BadRequest(f"Cannot submit a proposal for a {event.status} event")

    due_date = _ensure_due_date(event)
    today = get_clock(clock).today()
    if today < due_date:
        raise BadRequest(f"Proposal can be submitted on or after {due_date.isoformat()}")

    errors = validate_proposal(data)
    if errors:
        raise InvalidPayload(errors)

    proposal = EventProposal(event=event, submitted_by=actor.id)
    _apply_fields(proposal, proposal_fields(data), event)
    if mega:
        reset_chain(proposal, ProposalStatus.PENDING_STUDENT_AFFAIRS, Stage.STUDENT_AFFAIRS.value)
    else:
        reset_chain(proposal, ProposalStatus.PENDING_PRESIDENT, Stage.PRESIDENT_GYMKHANA.value)
    proposal.save()

    event.proposal_submitted = True
    event.proposal = proposal
    event.status = EventStatus.PROPOSAL_SUBMITTED
    event.save()

    log_transition(
        kind=EntityKind.PROPOSAL,
        entity=proposal,
        stage=event.submitter_stage,
        action=ApprovalAction.SUBMITTED,
        actor=actor,
    )
    logger.info(f"Proposal {proposal.pk} submitted for event {event.pk} -> {proposal.status}")
    return created("Proposal submitted successfully", proposal=proposal, event=event)


@service_operation
@transaction.atomic
def update_proposal(proposal_id, data: dict, actor: Actor):
    """
    Edit a proposal.

    GS revises a standard proposal after revision request or rejection,
    which restarts review at the President. The President may touch up a
    standard proposal still waiting on them, or revise a mega proposal,
    which restarts review at Student Affairs.
    """
    proposal = _get_proposal(proposal_id, for_update=True)
    event = proposal.event
    mega = _is_mega(event)
    revised_from = proposal.status

    if actor.is_gs:
        if mega:
            raise Forbidden("Mega event proposals are managed by President Gymkhana")
        if proposal.status not in GS_EDITABLE:
            raise BadRequest("GS can only update proposals that need revision or were rejected")
    elif actor.is_president:
        if mega and proposal.status not in MEGA_PRESIDENT_EDITABLE:
            raise BadRequest("Proposal can no longer be updated by President Gymkhana")
        if not mega and proposal.status != ProposalStatus.PENDING_PRESIDENT:
            raise BadRequest("President can only update proposals pending President review")
    else:
        raise Forbidden("Only GS or President Gymkhana can update proposals")

    errors = validate_proposal(data, partial=True)
    if errors:
        raise InvalidPayload(errors)

    _apply_fields(proposal, proposal_fields(data), event)

    comments = "Updated by President before approval"
    if revised_from in GS_EDITABLE:
        proposal.revision_count += 1
        _clear_rejection(proposal)
        comments = f"Revision #{proposal.revision_count}"

    if mega:
        reset_chain(proposal, ProposalStatus.PENDING_STUDENT_AFFAIRS, Stage.STUDENT_AFFAIRS.value)
    else:
        reset_chain(proposal, ProposalStatus.PENDING_PRESIDENT, Stage.PRESIDENT_GYMKHANA.value)
    proposal.save()

    log_transition(
        kind=EntityKind.PROPOSAL,
        entity=proposal,
        stage=actor.sub_role,
        action=ApprovalAction.SUBMITTED,
        actor=actor,
        comments=comments,
    )
    logger.info(f"Proposal {proposal.pk} updated by {actor.sub_role} ({revised_from} -> {proposal.status})")
    return ok("Proposal updated successfully", proposal=proposal)


# =============================================================================
# Approval operations
# =============================================================================


def _authorize_stage(proposal: EventProposal, actor: Actor, verb: str) -> str:
    required = required_approver(proposal.status)
    if required is None:
        raise BadRequest("Proposal is not pending approval")
    if actor.sub_role != required:
        raise Forbidden(f"Only {required} can {verb} at this stage")
    return required


@service_operation
@transaction.atomic
def approve_proposal(proposal_id, comments, actor: Actor, next_approval_stages=None):
    """Approve at the current stage; the final approval marks the event approved."""
    proposal = _get_proposal(proposal_id, for_update=True)
    stage = _authorize_stage(proposal, actor, "approve")

    chain, index = current_chain(proposal)
    step = plan_approval(proposal.status, stage, chain, index, next_approval_stages)
    apply_step(proposal, step)

    if step.is_final:
        proposal.approved_at = timezone.now()
    proposal.save()

    if step.is_final:
        event = _get_event(proposal.event_id, for_update=True)
        event.status = EventStatus.PROPOSAL_APPROVED
        event.save(update_fields=["status", "updated_at"])

    log_transition(
        kind=EntityKind.PROPOSAL,
        entity=proposal,
        stage=stage,
        action=ApprovalAction.APPROVED,
        actor=actor,
        comments=comments,
    )
    logger.info(f"Proposal {proposal.pk} approved at {stage} -> {proposal.status}")

    message = "Proposal approved successfully" if step.is_final else "Proposal moved to next approval stage"
    return ok(message, proposal=proposal)


@service_operation
@transaction.atomic
def reject_proposal(proposal_id, reason, actor: Actor):
    proposal = _get_proposal(proposal_id, for_update=True)
    stage = _authorize_stage(proposal, actor, "reject")
    errors = validate_rejection_reason(reason)
    if errors:
        raise InvalidPayload(errors)

    proposal.status = ProposalStatus.REJECTED
    proposal.current_approval_stage = None
    proposal.rejection_reason = (reason or "").strip()
    proposal.rejected_by = actor.id
    proposal.rejected_at = timezone.now()
    proposal.save()

    log_transition(
        kind=EntityKind.PROPOSAL,
        entity=proposal,
        stage=stage,
        action=ApprovalAction.REJECTED,
        actor=actor,
        comments=reason,
    )
    logger.info(f"Proposal {proposal.pk} rejected at {stage}")
    return ok("Proposal rejected", proposal=proposal)


@service_operation
@transaction.atomic
def request_revision(proposal_id, comments, actor: Actor):
    """Send the proposal back to its submitter (GS, or President for mega events)."""
    proposal = _get_proposal(proposal_id, for_update=True)
    stage = _authorize_stage(proposal, actor, "request revision")

    reset_chain(proposal, ProposalStatus.REVISION_REQUESTED, proposal.event.submitter_stage)
    proposal.rejection_reason = (comments or "").strip()
    proposal.rejected_by = actor.id
    proposal.rejected_at = timezone.now()
    proposal.save()

    log_transition(
        kind=EntityKind.PROPOSAL,
        entity=proposal,
        stage=stage,
        action=ApprovalAction.REVISION_REQUESTED,
        actor=actor,
        comments=comments,
    )
    logger.info(f"Revision requested on proposal {proposal.pk} at {stage}")
    return ok("Revision requested", proposal=proposal)


# =============================================================================
# Read operations
# =============================================================================


@service_operation
def get_pending_proposals(days_until_due=None, clock=None):
    """
    Standard events starting within ``days_until_due`` days that still need
    a proposal, soonest due first.

    Each entry carries ``days_until_event_start``, ``days_until_proposal_due``
    and ``is_proposal_window_open``.
    """
    if days_until_due is None:
        days_until_due = get_setting("PENDING_PROPOSALS_DAYS")
    try:
        days_until_due = int(days_until_due)
    except (TypeError, ValueError):
        raise BadRequest("days_until_due must be a whole number of days")
    if days_until_due < 0:
        raise BadRequest("days_until_due cannot be negative")

    today = get_clock(clock).today()
    events = (
        GymkhanaEvent.objects.filter(
            mega_event_series__isnull=True,
            proposal_submitted=False,
            scheduled_start_date__gte=today,
            scheduled_start_date__lte=today + timedelta(days=days_until_due),
        )
        .exclude(status__in=CLOSED_EVENT_STATUSES)
        .order_by("proposal_due_date", "scheduled_start_date")
    )

    pending = []
    for event in events:
        due_date = event.proposal_due_date or proposal_due_date_for(event.scheduled_start_date)
        pending.append({
            "event": event,
            "proposal_due_date": due_date,
            "days_until_event_start": (event.scheduled_start_date - today).days,
            "days_until_proposal_due": (due_date - today).days,
            "is_proposal_window_open": today >= due_date,
        })
    return ok(events=pending, count=len(pending))


@service_operation
def get_proposal_by_id(proposal_id):
    return ok(proposal=_get_proposal(proposal_id))


@service_operation
def get_proposal_by_event(event_id):
    event = _get_event(event_id)
    proposal = event.proposals.order_by("-created_at").first()
    if proposal is None:
        raise NotFound("Proposal")
    return ok(proposal=proposal)


@service_operation
def get_proposals_for_approval(actor: Actor):
    """Proposals waiting on the actor's stage, oldest first."""
    status = SUBROLE_TO_PENDING_STATUS.get(actor.sub_role)
    if status is None:
        raise Forbidden("Your role does not review event proposals")
    proposals = EventProposal.objects.select_related("event").filter(status=status).order_by("created_at")
    return ok(proposals=list(proposals))


@service_operation
def get_approval_history(proposal_id):
    return ok(history=get_history(EntityKind.PROPOSAL, proposal_id))
