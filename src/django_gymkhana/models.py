"""Models for django-gymkhana.

Provides:
- ActivityCalendar: Annual calendar with embedded events and its approval chain
- MegaEventSeries: Recurring flagship series that mega events belong to
- GymkhanaEvent: Event materialized from an approved calendar (or a mega event)
- EventProposal: Per-event proposal with its own approval chain
- EventExpense: Post-event bills, one per event
- CalendarAmendment: Out-of-band edit/addition against a locked calendar
- ApprovalLog: Append-only audit trail of every workflow transition

Actor references are opaque strings; identities belong to the external
auth collaborator.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

from django.core.validators import MinValueValidator, RegexValidator
from django.db import models

from .conf import proposal_due_days
from .constants import (
    ACADEMIC_YEAR_PATTERN,
    AmendmentStatus,
    AmendmentType,
    ApprovalAction,
    CalendarStatus,
    EntityKind,
    EventCategory,
    EventStatus,
    ExpenseStatus,
    ProposalStatus,
    Stage,
)
from .overlap import to_date
from .validators import sum_bills, to_decimal

MONEY = {"max_digits": 12, "decimal_places": 2}


def proposal_due_date_for(start_date):
    """Proposal due date for an event starting on ``start_date``."""
    start = to_date(start_date)
    if start is None:
        return None
    return start - timedelta(days=proposal_due_days())


class GymkhanaBaseModel(models.Model):
    """Base model with UUID primary key and timestamps."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ActivityCalendar(GymkhanaBaseModel):
    """
    Annual activity calendar.

    Created by Admin, filled in by Gymkhana, submitted by the President and
    approved through a dynamic chain. ``is_locked`` is a business-level edit
    lock; amendments are the only way around it.
    """

    academic_year = models.CharField(
        max_length=7,
        unique=True,
        validators=[RegexValidator(ACADEMIC_YEAR_PATTERN, "Academic year must be YYYY-YY")],
        help_text="Academic year in YYYY-YY format (e.g., 2025-26)",
    )
    status = models.CharField(
        max_length=40,
        choices=CalendarStatus.choices,
        default=CalendarStatus.DRAFT,
    )
    events = models.JSONField(
        default=list,
        blank=True,
        help_text="Embedded events: id, title, category, start_date, end_date, estimated_budget, description",
    )

    current_approval_stage = models.CharField(
        max_length=50, choices=Stage.choices, null=True, blank=True
    )
    custom_approval_chain = models.JSONField(
        default=list,
        blank=True,
        help_text="Stages chosen by Student Affairs for this approval cycle",
    )
    current_chain_index = models.PositiveSmallIntegerField(null=True, blank=True)

    created_by = models.CharField(max_length=64, blank=True)
    is_locked = models.BooleanField(default=False)
    locked_by = models.CharField(max_length=64, blank=True)
    locked_at = models.DateTimeField(null=True, blank=True)

    rejection_reason = models.TextField(blank=True)
    rejected_by = models.CharField(max_length=64, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-academic_year"]
        indexes = [
            models.Index(fields=["status"], name="gymkhana_calendar_status_idx"),
        ]

    def __str__(self):
        return f"Activity Calendar {self.academic_year} ({self.status})"


class MegaEventSeries(GymkhanaBaseModel):
    """A recurring flagship event series (e.g., the annual cultural fest)."""

    name = models.CharField(max_length=200, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.CharField(max_length=64, blank=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Mega event series"

    def __str__(self):
        return self.name


class GymkhanaEvent(GymkhanaBaseModel):
    """
    An individual event.

    Materialized from an approved calendar, added by an approved amendment,
    or scheduled as an occurrence of a mega event series. Schedule fields
    are not edited after creation except through an approved amendment.
    """

    calendar = models.ForeignKey(
        ActivityCalendar,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="materialized_events",
        help_text="Source calendar (null for mega events)",
    )
    title = models.CharField(max_length=200)
    category = models.CharField(max_length=20, choices=EventCategory.choices)
    scheduled_start_date = models.DateField()
    scheduled_end_date = models.DateField()
    estimated_budget = models.DecimalField(
        **MONEY, default=Decimal("0"), validators=[MinValueValidator(Decimal("0"))]
    )
    description = models.TextField()
    status = models.CharField(
        max_length=30,
        choices=EventStatus.choices,
        default=EventStatus.UPCOMING,
    )

    proposal_due_date = models.DateField(
        null=True,
        blank=True,
        help_text="scheduled_start_date - 21 days; computed once and cached",
    )
    proposal_submitted = models.BooleanField(default=False)
    proposal = models.ForeignKey(
        "EventProposal",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    expense = models.ForeignKey(
        "EventExpense",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    is_mega_event = models.BooleanField(default=False)
    mega_event_series = models.ForeignKey(
        MegaEventSeries,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="occurrences",
    )

    class Meta:
        ordering = ["scheduled_start_date", "title"]
        indexes = [
            models.Index(fields=["status"], name="gymkhana_event_status_idx"),
            models.Index(fields=["scheduled_start_date"], name="gymkhana_event_start_idx"),
            models.Index(fields=["proposal_due_date"], name="gymkhana_event_due_idx"),
            models.Index(fields=["is_mega_event"], name="gymkhana_event_mega_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.scheduled_start_date})"

    def save(self, *args, **kwargs):
        # Due date is filled exactly once; later schedule changes keep it.
        if self.proposal_due_date is None:
            self.proposal_due_date = proposal_due_date_for(self.scheduled_start_date)
        if self.mega_event_series_id is not None:
            self.is_mega_event = True
        super().save(*args, **kwargs)

    @property
    def submitter_stage(self) -> str:
        """Stage that submits (and revises) this event's proposal."""
        if self.mega_event_series_id is not None:
            return Stage.PRESIDENT_GYMKHANA.value
        return Stage.GS_GYMKHANA.value


class EventProposal(GymkhanaBaseModel):
    """
    Detailed proposal for one event.

    Financial snapshot fields are derived on every submit/update and never
    taken from the client.
    """

    event = models.ForeignKey(
        GymkhanaEvent,
        on_delete=models.PROTECT,
        related_name="proposals",
    )
    submitted_by = models.CharField(max_length=64)
    status = models.CharField(
        max_length=40,
        choices=ProposalStatus.choices,
        default=ProposalStatus.DRAFT,
    )
    current_approval_stage = models.CharField(
        max_length=50, choices=Stage.choices, null=True, blank=True
    )
    custom_approval_chain = models.JSONField(default=list, blank=True)
    current_chain_index = models.PositiveSmallIntegerField(null=True, blank=True)

    proposal_text = models.TextField()
    proposal_document_url = models.CharField(max_length=4000, blank=True)
    external_guests_details = models.TextField(blank=True)
    chief_guest_document_url = models.CharField(max_length=4000, blank=True)
    accommodation_required = models.BooleanField(default=False)
    has_registration_fee = models.BooleanField(default=False)
    registration_fee_amount = models.DecimalField(**MONEY, default=Decimal("0"))
    total_expected_income = models.DecimalField(**MONEY, default=Decimal("0"))

    total_expenditure = models.DecimalField(**MONEY, default=Decimal("0"))
    event_budget_at_submission = models.DecimalField(**MONEY, default=Decimal("0"))
    budget_deflection = models.DecimalField(
        **MONEY,
        default=Decimal("0"),
        help_text="total_expenditure - event_budget_at_submission",
    )

    rejection_reason = models.TextField(blank=True)
    rejected_by = models.CharField(max_length=64, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    revision_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="gymkhana_proposal_status_idx"),
            models.Index(fields=["submitted_by"], name="gymkhana_proposal_by_idx"),
        ]

    def __str__(self):
        return f"Proposal for {self.event.title} ({self.status})"


class EventExpense(GymkhanaBaseModel):
    """
    Post-event bills for one event.

    ``total_expenditure`` and ``budget_variance`` are recomputed from the
    bills on every save.
    """

    event = models.OneToOneField(
        GymkhanaEvent,
        on_delete=models.PROTECT,
        related_name="+",
    )
    submitted_by = models.CharField(max_length=64)
    bills = models.JSONField(
        default=list,
        blank=True,
        help_text="description, amount, bill_number, bill_date, vendor, attachments",
    )
    event_report_document_url = models.CharField(max_length=4000, blank=True)
    notes = models.TextField(blank=True)

    total_expenditure = models.DecimalField(**MONEY, default=Decimal("0"))
    estimated_budget = models.DecimalField(**MONEY, null=True, blank=True)
    budget_variance = models.DecimalField(**MONEY, null=True, blank=True)

    approval_status = models.CharField(
        max_length=20,
        choices=ExpenseStatus.choices,
        default=ExpenseStatus.PENDING,
    )
    approved_by = models.CharField(max_length=64, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approval_comments = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["approval_status"], name="gymkhana_expense_status_idx"),
            models.Index(fields=["submitted_by"], name="gymkhana_expense_by_idx"),
        ]

    def __str__(self):
        return f"Expense for event {self.event_id} ({self.approval_status})"

    def recalculate(self):
        self.total_expenditure = sum_bills(self.bills)
        if self.estimated_budget is not None:
            self.budget_variance = self.total_expenditure - to_decimal(self.estimated_budget)

    def save(self, *args, **kwargs):
        self.recalculate()
        super().save(*args, **kwargs)


class CalendarAmendment(GymkhanaBaseModel):
    """Request to edit a materialized event or add a new one after lock."""

    calendar = models.ForeignKey(
        ActivityCalendar,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="amendments",
    )
    type = models.CharField(max_length=20, choices=AmendmentType.choices)
    event = models.ForeignKey(
        GymkhanaEvent,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="amendments",
        help_text="Target event (edits only)",
    )
    proposed_changes = models.JSONField(default=dict)
    reason = models.TextField()
    status = models.CharField(
        max_length=20,
        choices=AmendmentStatus.choices,
        default=AmendmentStatus.PENDING,
    )
    requested_by = models.CharField(max_length=64)
    reviewed_by = models.CharField(max_length=64, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_comments = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="gymkhana_amend_status_idx"),
            models.Index(fields=["requested_by"], name="gymkhana_amend_by_idx"),
        ]

    def __str__(self):
        return f"Amendment ({self.type}) {self.status}"


class ApprovalLog(models.Model):
    """
    Immutable record of one workflow transition.

    The entity is referenced as a tagged union (kind + id) rather than a
    foreign key, so one table serves every workflow. Entries are never
    updated or deleted; entity status fields only reflect the latest state.
    """

    id = models.BigAutoField(primary_key=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    entity_kind = models.CharField(max_length=20, choices=EntityKind.choices)
    entity_id = models.CharField(max_length=64)
    stage = models.CharField(
        max_length=50,
        choices=Stage.choices,
        help_text="Stage (role) that acted",
    )
    action = models.CharField(max_length=30, choices=ApprovalAction.choices)
    performed_by = models.CharField(max_length=64)
    comments = models.TextField(blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["entity_kind", "entity_id"], name="gymkhana_log_entity_idx"),
            models.Index(fields=["performed_by"], name="gymkhana_log_actor_idx"),
        ]

    def __str__(self):
        return f"{self.entity_kind}:{self.entity_id} {self.action} by {self.stage}"

    def save(self, *args, **kwargs):
        # Approval logs are append-only - prevent updates
        if self.pk and ApprovalLog.objects.filter(pk=self.pk).exists():
            raise ValueError("Approval logs are immutable and cannot be updated")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Approval logs are immutable and cannot be deleted")
