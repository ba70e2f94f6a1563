"""Calendar Manager.

Owns the annual activity calendar: draft -> lock -> submission -> dynamic
approval chain -> materialization of one GymkhanaEvent per embedded event.
All write operations are atomic transactions and lock the calendar row.
"""

import logging

from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import transaction
from django.utils import timezone

from .actors import Actor
from .approval_chain import apply_step, current_chain, plan_approval, required_approver, reset_chain
from .audit import get_history, log_transition
from .constants import ApprovalAction, CalendarStatus, EntityKind, EventStatus, Stage
from .conf import page_bounds
from .exceptions import BadRequest, Forbidden, InvalidPayload, NotFound
from .models import ActivityCalendar, GymkhanaEvent, proposal_due_date_for
from .overlap import analyze_overlaps, to_date
from .results import created, ok, service_operation
from .validators import (
    normalize_calendar_event,
    to_decimal,
    validate_academic_year,
    validate_calendar_event,
    validate_rejection_reason,
)

logger = logging.getLogger(__name__)

GS_EDITABLE = (CalendarStatus.DRAFT, CalendarStatus.REJECTED)
# pending_president only arises on calendars submitted before submission went
# straight to Student Affairs.
PRESIDENT_EDITABLE = (
    CalendarStatus.DRAFT,
    CalendarStatus.REJECTED,
    CalendarStatus.PENDING_PRESIDENT,
)


def _get_calendar(calendar_id, for_update: bool = False) -> ActivityCalendar:
    queryset = ActivityCalendar.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=calendar_id)
    except (ActivityCalendar.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Activity calendar")


def _require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise Forbidden(f"Only Admin can {action}")


def _clean_events(events) -> list[dict]:
    if not isinstance(events, (list, tuple)):
        raise BadRequest("Events must be a list")
    errors = []
    for event in events:
        errors.extend(validate_calendar_event(event))
    if errors:
        raise InvalidPayload(errors)
    return [normalize_calendar_event(event) for event in events]


# =============================================================================
# Admin operations
# =============================================================================


@service_operation
@transaction.atomic
def create_calendar(data: dict, actor: Actor):
    """Create a draft calendar for an academic year (Admin / Super Admin).

    Returns:
        201 with ``calendar``; 400 if the year already has a calendar
    """
    _require_admin(actor, "create activity calendars")

    academic_year = data.get("academic_year") or data.get("academicYear")
    errors = validate_academic_year(academic_year)
    if errors:
        raise InvalidPayload(errors)

    if ActivityCalendar.objects.filter(academic_year=academic_year).exists():
        raise BadRequest(f"Activity calendar for {academic_year} already exists")

    calendar = ActivityCalendar.objects.create(
        academic_year=academic_year,
        events=_clean_events(data.get("events") or []),
        created_by=actor.id,
        status=CalendarStatus.DRAFT,
        is_locked=False,
    )
    logger.info(f"Calendar {academic_year} created by {actor.id}")
    return created("Activity calendar created", calendar=calendar)


@service_operation
@transaction.atomic
def lock_calendar(calendar_id, actor: Actor):
    """Lock a calendar against direct edits (Admin only)."""
    _require_admin(actor, "lock calendars")
    calendar = _get_calendar(calendar_id, for_update=True)

    if calendar.is_locked:
        raise BadRequest("Calendar is already locked")

    calendar.is_locked = True
    calendar.locked_by = actor.id
    calendar.locked_at = timezone.now()
    calendar.save(update_fields=["is_locked", "locked_by", "locked_at", "updated_at"])
    logger.info(f"Calendar {calendar.academic_year} locked by {actor.id}")
    return ok("Calendar locked successfully", calendar=calendar)


@service_operation
@transaction.atomic
def unlock_calendar(calendar_id, actor: Actor):
    """Unlock a calendar so Gymkhana can edit it again (Admin only)."""
    _require_admin(actor, "unlock calendars")
    calendar = _get_calendar(calendar_id, for_update=True)

    if not calendar.is_locked:
        raise BadRequest("Calendar is already unlocked")

    calendar.is_locked = False
    calendar.locked_by = ""
    calendar.locked_at = None
    calendar.save(update_fields=["is_locked", "locked_by", "locked_at", "updated_at"])
    logger.info(f"Calendar {calendar.academic_year} unlocked by {actor.id}")
    return ok("Calendar unlocked successfully", calendar=calendar)


# =============================================================================
# Gymkhana operations
# =============================================================================


@service_operation
@transaction.atomic
def update_calendar(calendar_id, events, actor: Actor):
    """
    Replace the embedded events of a calendar.

    GS may edit draft/rejected calendars; the President may also edit
    calendars still waiting on the President. Editing a rejected calendar
    returns it to draft and clears the rejection.
    """
    calendar = _get_calendar(calendar_id, for_update=True)

    if not (actor.is_gs or actor.is_president):
        raise Forbidden("Only GS or President Gymkhana can update calendar events")

    if calendar.is_locked:
        raise Forbidden("Calendar is locked. Please request edit permission through an amendment.")

    if actor.is_gs and calendar.status not in GS_EDITABLE:
        raise BadRequest("GS can only update draft or rejected calendars")

    if actor.is_president and calendar.status not in PRESIDENT_EDITABLE:
        raise BadRequest("President can only update calendars before Student Affairs review")

    if events is not None:
        calendar.events = _clean_events(events)

    if calendar.status == CalendarStatus.REJECTED:
        reset_chain(calendar, CalendarStatus.DRAFT, None)
        calendar.rejection_reason = ""
        calendar.rejected_by = ""
        calendar.rejected_at = None

    calendar.save()
    return ok("Calendar updated successfully", calendar=calendar)


@service_operation
@transaction.atomic
def submit_calendar(calendar_id, actor: Actor, allow_overlapping_dates: bool = False):
    """
    Submit a draft calendar to Student Affairs (President only).

    Overlapping embedded events do not block submission, but unless
    ``allow_overlapping_dates`` is set the call returns the conflicting
    pairs without changing anything, and the caller must re-invoke with
    the flag set.
    """
    calendar = _get_calendar(calendar_id, for_update=True)

    if not calendar.events:
        raise BadRequest("Calendar must have at least one event")

    if not actor.is_president:
        raise Forbidden("Only President Gymkhana can submit calendars")

    if calendar.is_locked:
        raise Forbidden("Calendar is locked. Cannot submit.")

    if calendar.status != CalendarStatus.DRAFT:
        raise BadRequest("Only draft calendars can be submitted")

    analysis = analyze_overlaps(calendar.events)
    if analysis.has_overlaps and not allow_overlapping_dates:
        return ok(
            "Overlapping date ranges found. Confirm to submit anyway.",
            requires_overlap_confirmation=True,
            overlaps=analysis.overlaps,
            overlap_summary=analysis.summary,
            calendar=calendar,
        )

    # The President stage is submit-only; review starts at Student Affairs.
    reset_chain(calendar, CalendarStatus.PENDING_STUDENT_AFFAIRS, Stage.STUDENT_AFFAIRS.value)
    calendar.save()

    log_transition(
        kind=EntityKind.CALENDAR,
        entity=calendar,
        stage=Stage.PRESIDENT_GYMKHANA,
        action=ApprovalAction.SUBMITTED,
        actor=actor,
    )
    logger.info(f"Calendar {calendar.academic_year} submitted by {actor.id}")
    return ok(
        "Calendar submitted for approval",
        calendar=calendar,
        requires_overlap_confirmation=False,
        overlap_summary=analysis.summary,
    )


# =============================================================================
# Approval operations
# =============================================================================


def _authorize_stage(calendar: ActivityCalendar, actor: Actor, verb: str) -> str:
    required = required_approver(calendar.status)
    if required is None:
        raise BadRequest("Calendar is not pending approval")
    if actor.sub_role != required:
        raise Forbidden(f"Only {required} can {verb} at this stage")
    return required


@service_operation
@transaction.atomic
def approve_calendar(calendar_id, comments, actor: Actor, next_approval_stages=None):
    """
    Approve the calendar at its current stage.

    At Student Affairs, ``next_approval_stages`` picks the remaining chain.
    Final approval stamps ``approved_at`` and materializes the events.
    """
    calendar = _get_calendar(calendar_id, for_update=True)
    stage = _authorize_stage(calendar, actor, "approve")

    chain, index = current_chain(calendar)
    step = plan_approval(calendar.status, stage, chain, index, next_approval_stages)
    apply_step(calendar, step)

    materialized = []
    if step.is_final:
        calendar.approved_at = timezone.now()
        materialized = _materialize_events(calendar)

    calendar.save()

    log_transition(
        kind=EntityKind.CALENDAR,
        entity=calendar,
        stage=stage,
        action=ApprovalAction.APPROVED,
        actor=actor,
        comments=comments,
    )
    logger.info(f"Calendar {calendar.academic_year} approved at {stage} -> {calendar.status}")

    message = "Calendar approved successfully" if step.is_final else "Calendar moved to next approval stage"
    return ok(message, calendar=calendar, events_created=len(materialized))


@service_operation
@transaction.atomic
def reject_calendar(calendar_id, reason, actor: Actor):
    """Reject the calendar at its current stage. Editable again afterwards."""
    calendar = _get_calendar(calendar_id, for_update=True)
    stage = _authorize_stage(calendar, actor, "reject")
    errors = validate_rejection_reason(reason)
    if errors:
        raise InvalidPayload(errors)

    calendar.status = CalendarStatus.REJECTED
    calendar.rejection_reason = (reason or "").strip()
    calendar.rejected_by = actor.id
    calendar.rejected_at = timezone.now()
    calendar.current_approval_stage = None
    calendar.save()

    log_transition(
        kind=EntityKind.CALENDAR,
        entity=calendar,
        stage=stage,
        action=ApprovalAction.REJECTED,
        actor=actor,
        comments=reason,
    )
    logger.info(f"Calendar {calendar.academic_year} rejected at {stage} by {actor.id}")
    return ok("Calendar rejected", calendar=calendar)


def _materialize_events(calendar: ActivityCalendar) -> list[GymkhanaEvent]:
    """Create one GymkhanaEvent per embedded event of an approved calendar."""
    events = []
    for embedded in calendar.events:
        start = to_date(embedded.get("start_date"))
        events.append(GymkhanaEvent(
            calendar=calendar,
            title=embedded.get("title") or "",
            category=embedded.get("category"),
            scheduled_start_date=start,
            scheduled_end_date=to_date(embedded.get("end_date")),
            estimated_budget=to_decimal(embedded.get("estimated_budget")),
            description=embedded.get("description") or "",
            status=EventStatus.UPCOMING,
            proposal_due_date=proposal_due_date_for(start),
        ))
    # bulk_create skips save(), so the due date is set explicitly above.
    return GymkhanaEvent.objects.bulk_create(events)


# =============================================================================
# Read operations
# =============================================================================


@service_operation
def get_calendar_by_id(calendar_id):
    return ok(calendar=_get_calendar(calendar_id))


@service_operation
def get_calendar_by_year(year: str):
    calendar = ActivityCalendar.objects.filter(academic_year=year).first()
    if calendar is None:
        raise NotFound("Activity calendar")
    return ok(calendar=calendar)


@service_operation
def get_calendars(status=None, academic_year=None, page=1, limit=None):
    """Paginated calendar list, newest academic year first."""
    queryset = ActivityCalendar.objects.all()
    if status:
        queryset = queryset.filter(status=status)
    if academic_year:
        queryset = queryset.filter(academic_year=academic_year)

    page, limit = page_bounds(page, limit)
    paginator = Paginator(queryset.order_by("-academic_year"), limit)
    page_obj = paginator.get_page(page)
    return ok(
        calendars=list(page_obj.object_list),
        pagination={
            "page": page_obj.number,
            "limit": limit,
            "total": paginator.count,
            "pages": paginator.num_pages,
        },
    )


@service_operation
def get_academic_years():
    years = [
        {
            "id": str(calendar.pk),
            "academic_year": calendar.academic_year,
            "status": calendar.status,
            "is_locked": calendar.is_locked,
        }
        for calendar in ActivityCalendar.objects.order_by("-academic_year")
    ]
    return ok(years=years)


@service_operation
def get_approval_history(calendar_id):
    return ok(history=get_history(EntityKind.CALENDAR, calendar_id))


@service_operation
def check_event_overlap(calendar_id, event_data: dict):
    """
    Check one candidate event against a calendar's embedded events.

    ``event_data`` may carry ``event_id`` to exclude the embedded event
    being edited from the comparison.
    """
    calendar = _get_calendar(calendar_id)

    start = event_data.get("start_date") or event_data.get("startDate")
    end = event_data.get("end_date") or event_data.get("endDate")
    if to_date(start) is None or to_date(end) is None:
        raise BadRequest("Start date and end date are required")
    if to_date(end) < to_date(start):
        raise BadRequest("End date cannot be before start date")

    candidate = {
        "title": event_data.get("title") or "Untitled event",
        "category": event_data.get("category") or "academic",
        "start_date": start,
        "end_date": end,
    }
    analysis = analyze_overlaps(
        calendar.events,
        candidate=candidate,
        exclude_event_id=event_data.get("event_id") or event_data.get("eventId"),
    )
    return ok(
        has_overlap=analysis.has_overlaps,
        overlaps=analysis.overlaps,
        overlap_summary=analysis.summary,
    )
