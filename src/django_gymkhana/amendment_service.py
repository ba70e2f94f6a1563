"""Amendment Workflow.

Once a calendar is locked, GS Gymkhana changes it through amendments:
``edit`` patches a materialized event, ``new_event`` adds one under the most
recently approved calendar. Admin approval applies the change immediately.
"""

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .actors import Actor
from .audit import admin_stage, log_transition
from .constants import (
    AmendmentStatus,
    AmendmentType,
    ApprovalAction,
    CalendarStatus,
    EntityKind,
    EventStatus,
    Stage,
)
from .exceptions import BadRequest, Forbidden, InvalidPayload, NotFound
from .models import ActivityCalendar, CalendarAmendment, GymkhanaEvent
from .overlap import to_date
from .results import created, ok, service_operation
from .validators import normalize_calendar_event, to_decimal, validate_calendar_event

logger = logging.getLogger(__name__)


def _get_amendment(amendment_id, for_update: bool = False) -> CalendarAmendment:
    queryset = CalendarAmendment.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=amendment_id)
    except (CalendarAmendment.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Amendment")


def _latest_approved_calendar():
    return (
        ActivityCalendar.objects.filter(status=CalendarStatus.APPROVED)
        .order_by("-approved_at", "-created_at")
        .first()
    )


@service_operation
@transaction.atomic
def create_amendment(data: dict, actor: Actor):
    """
    Request an amendment (GS only).

    Expects ``type``, ``proposed_changes`` (a full event description) and
    ``reason``; ``edit`` also needs ``event_id``.
    """
    if not actor.is_gs:
        raise Forbidden("Only GS Gymkhana can request calendar amendments")

    amendment_type = data.get("type")
    if amendment_type not in AmendmentType.values:
        raise BadRequest(f"Invalid amendment type. Valid types: {', '.join(AmendmentType.values)}")

    reason = str(data.get("reason") or "").strip()
    changes = data.get("proposed_changes", data.get("proposedChanges"))
    errors = validate_calendar_event(changes)
    if len(reason) < 10:
        errors.append("Reason must be at least 10 characters")
    if errors:
        raise InvalidPayload(errors)

    event = None
    if amendment_type == AmendmentType.EDIT:
        event_id = data.get("event_id") or data.get("eventId")
        if not event_id:
            raise BadRequest("Event is required for edit amendments")
        try:
            event = GymkhanaEvent.objects.get(pk=event_id)
        except (GymkhanaEvent.DoesNotExist, ValidationError, ValueError):
            raise NotFound("Event")
        calendar = event.calendar
    else:
        calendar = _latest_approved_calendar()
        if calendar is None:
            raise BadRequest("No approved calendar found to add the event to")

    changes = normalize_calendar_event(changes)
    changes.pop("id")

    amendment = CalendarAmendment.objects.create(
        calendar=calendar,
        type=amendment_type,
        event=event,
        proposed_changes=changes,
        reason=reason,
        requested_by=actor.id,
    )

    log_transition(
        kind=EntityKind.AMENDMENT,
        entity=amendment,
        stage=Stage.GS_GYMKHANA,
        action=ApprovalAction.SUBMITTED,
        actor=actor,
        comments=reason,
    )
    logger.info(f"Amendment {amendment.pk} ({amendment_type}) requested by {actor.id}")
    return created("Amendment request submitted", amendment=amendment)


def _review(amendment_id, actor: Actor, verb: str) -> CalendarAmendment:
    if not actor.is_admin:
        raise Forbidden(f"Only Admin can {verb} amendments")
    amendment = _get_amendment(amendment_id, for_update=True)
    if amendment.status != AmendmentStatus.PENDING:
        raise BadRequest(f"Amendment has already been {amendment.status}")
    return amendment


def _apply_changes(amendment: CalendarAmendment):
    changes = amendment.proposed_changes
    fields = {
        "title": changes["title"],
        "category": changes["category"],
        "scheduled_start_date": to_date(changes["start_date"]),
        "scheduled_end_date": to_date(changes["end_date"]),
        "estimated_budget": to_decimal(changes["estimated_budget"]),
        "description": changes["description"],
    }

    if amendment.type == AmendmentType.EDIT:
        event = GymkhanaEvent.objects.select_for_update().get(pk=amendment.event_id)
        for name, value in fields.items():
            setattr(event, name, value)
        # The cached proposal due date stays as first computed.
        event.save()
        return event

    return GymkhanaEvent.objects.create(
        calendar=amendment.calendar,
        status=EventStatus.UPCOMING,
        **fields,
    )


@service_operation
@transaction.atomic
def approve_amendment(amendment_id, comments, actor: Actor):
    """Approve and apply an amendment (Admin / Super Admin)."""
    amendment = _review(amendment_id, actor, "approve")

    event = _apply_changes(amendment)
    if amendment.event_id is None:
        amendment.event = event

    amendment.status = AmendmentStatus.APPROVED
    amendment.reviewed_by = actor.id
    amendment.reviewed_at = timezone.now()
    amendment.review_comments = (comments or "").strip()
    amendment.save()

    log_transition(
        kind=EntityKind.AMENDMENT,
        entity=amendment,
        stage=admin_stage(actor),
        action=ApprovalAction.APPROVED,
        actor=actor,
        comments=comments,
    )
    logger.info(f"Amendment {amendment.pk} approved; event {event.pk} {amendment.type}")
    return ok("Amendment approved and applied", amendment=amendment, event=event)


@service_operation
@transaction.atomic
def reject_amendment(amendment_id, comments, actor: Actor):
    amendment = _review(amendment_id, actor, "reject")

    amendment.status = AmendmentStatus.REJECTED
    amendment.reviewed_by = actor.id
    amendment.reviewed_at = timezone.now()
    amendment.review_comments = (comments or "").strip()
    amendment.save()

    log_transition(
        kind=EntityKind.AMENDMENT,
        entity=amendment,
        stage=admin_stage(actor),
        action=ApprovalAction.REJECTED,
        actor=actor,
        comments=comments,
    )
    logger.info(f"Amendment {amendment.pk} rejected")
    return ok("Amendment rejected", amendment=amendment)


@service_operation
def get_pending_amendments():
    amendments = CalendarAmendment.objects.filter(status=AmendmentStatus.PENDING).order_by("created_at")
    return ok(amendments=list(amendments))


@service_operation
def get_amendments_by_calendar(calendar_id):
    try:
        calendar = ActivityCalendar.objects.get(pk=calendar_id)
    except (ActivityCalendar.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Activity calendar")
    amendments = CalendarAmendment.objects.filter(calendar=calendar).order_by("-created_at")
    return ok(amendments=list(amendments))
