"""Expense Workflow.

One expense per event, submitted by GS Gymkhana after the proposal is
approved. Two states only: pending -> approved. Totals are always derived
from the bills.
"""

import logging

from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import transaction
from django.utils import timezone

from .actors import Actor
from .audit import admin_stage, get_history, log_transition
from .conf import page_bounds
from .constants import ApprovalAction, EntityKind, EventStatus, ExpenseStatus, Stage
from .exceptions import BadRequest, Forbidden, InvalidPayload, NotFound
from .models import EventExpense, GymkhanaEvent
from .results import created, ok, service_operation
from .validators import normalize_bills, to_decimal, validate_bills

logger = logging.getLogger(__name__)


def _get_expense(expense_id, for_update: bool = False) -> EventExpense:
    queryset = EventExpense.objects.select_related("event")
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=expense_id)
    except (EventExpense.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Expense")


def _require_gs(actor: Actor, action: str) -> None:
    if not actor.is_gs:
        raise Forbidden(f"Only GS Gymkhana can {action}")


def _report_url(data: dict) -> str:
    return str(data.get("event_report_document_url") or data.get("eventReportDocumentUrl") or "").strip()


@service_operation
@transaction.atomic
def submit_expense(event_id, data: dict, actor: Actor):
    """
    Submit bills for an event whose proposal is approved.

    Returns:
        201 with ``expense``; 400 wrong event status, duplicate or invalid bills
    """
    _require_gs(actor, "submit expenses")

    try:
        event = GymkhanaEvent.objects.select_for_update().get(pk=event_id)
    except (GymkhanaEvent.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Event")

    if event.status != EventStatus.PROPOSAL_APPROVED:
        raise BadRequest("Expenses can only be submitted for events with an approved proposal")

    if EventExpense.objects.filter(event=event).exists():
        raise BadRequest("Expense already submitted for this event")

    errors = validate_bills(data.get("bills"))
    if not _report_url(data):
        errors.append("Event report document is required")
    if errors:
        raise InvalidPayload(errors)

    # Snapshot of the approved proposal's plan; a zero plan falls back to
    # the calendar estimate.
    proposal = event.proposal
    if proposal is not None and proposal.total_expenditure:
        estimated_budget = proposal.total_expenditure
    else:
        estimated_budget = event.estimated_budget

    expense = EventExpense.objects.create(
        event=event,
        submitted_by=actor.id,
        bills=normalize_bills(data["bills"]),
        event_report_document_url=_report_url(data),
        notes=str(data.get("notes") or "").strip(),
        estimated_budget=to_decimal(estimated_budget),
    )

    log_transition(
        kind=EntityKind.EXPENSE,
        entity=expense,
        stage=Stage.GS_GYMKHANA,
        action=ApprovalAction.SUBMITTED,
        actor=actor,
    )
    logger.info(f"Expense {expense.pk} submitted for event {event.pk}: {expense.total_expenditure}")
    return created("Expense submitted successfully", expense=expense)


@service_operation
@transaction.atomic
def update_expense(expense_id, data: dict, actor: Actor):
    """Edit a pending expense. Any edit clears a previous approval decision."""
    _require_gs(actor, "update expenses")
    expense = _get_expense(expense_id, for_update=True)

    if expense.approval_status == ExpenseStatus.APPROVED:
        raise Forbidden("Approved expenses cannot be modified")

    if "bills" in data:
        errors = validate_bills(data["bills"])
        if errors:
            raise InvalidPayload(errors)
        expense.bills = normalize_bills(data["bills"])

    if "event_report_document_url" in data or "eventReportDocumentUrl" in data:
        expense.event_report_document_url = _report_url(data)
    if "notes" in data:
        expense.notes = str(data["notes"] or "").strip()

    expense.approval_status = ExpenseStatus.PENDING
    expense.approved_by = ""
    expense.approved_at = None
    expense.approval_comments = ""
    expense.save()

    return ok("Expense updated successfully", expense=expense)


@service_operation
@transaction.atomic
def approve_expense(expense_id, comments, actor: Actor):
    """Approve an expense (Admin / Super Admin); completes the event."""
    if not actor.is_admin:
        raise Forbidden("Only Admin can approve expenses")

    expense = _get_expense(expense_id, for_update=True)
    if expense.approval_status == ExpenseStatus.APPROVED:
        raise BadRequest("Expense is already approved")

    expense.approval_status = ExpenseStatus.APPROVED
    expense.approved_by = actor.id
    expense.approved_at = timezone.now()
    expense.approval_comments = (comments or "").strip()
    expense.save()

    event = GymkhanaEvent.objects.select_for_update().get(pk=expense.event_id)
    event.status = EventStatus.COMPLETED
    event.expense = expense
    event.save(update_fields=["status", "expense", "updated_at"])

    log_transition(
        kind=EntityKind.EXPENSE,
        entity=expense,
        stage=admin_stage(actor),
        action=ApprovalAction.APPROVED,
        actor=actor,
        comments=comments,
    )
    logger.info(f"Expense {expense.pk} approved by {actor.id}; event {event.pk} completed")
    return ok("Expense approved successfully", expense=expense, event=event)


@service_operation
def get_expense_by_id(expense_id):
    return ok(expense=_get_expense(expense_id))


@service_operation
def get_expense_by_event(event_id):
    try:
        expense = EventExpense.objects.filter(event_id=event_id).first()
    except (ValidationError, ValueError):
        raise NotFound("Expense")
    if expense is None:
        raise NotFound("Expense")
    return ok(expense=expense)


@service_operation
def get_expenses(actor: Actor, status=None, page=1, limit=None):
    """Paginated expenses. Gymkhana users only see their own submissions."""
    queryset = EventExpense.objects.select_related("event")
    if not actor.is_admin:
        queryset = queryset.filter(submitted_by=actor.id)
    if status:
        if status not in ExpenseStatus.values:
            raise BadRequest(f"Invalid expense status: {status}")
        queryset = queryset.filter(approval_status=status)

    page, limit = page_bounds(page, limit)
    paginator = Paginator(queryset.order_by("-created_at"), limit)
    page_obj = paginator.get_page(page)
    return ok(
        expenses=list(page_obj.object_list),
        pagination={
            "page": page_obj.number,
            "limit": limit,
            "total": paginator.count,
            "pages": paginator.num_pages,
        },
    )


@service_operation
def get_approval_history(expense_id):
    return ok(history=get_history(EntityKind.EXPENSE, expense_id))
