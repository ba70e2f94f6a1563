# Generated manually for standalone django-gymkhana package

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

from django_gymkhana.constants import (
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


def money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=12, **kwargs)


def base_fields():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


def chain_fields():
    return [
        (
            "current_approval_stage",
            models.CharField(blank=True, choices=Stage.choices, max_length=50, null=True),
        ),
        ("custom_approval_chain", models.JSONField(blank=True, default=list)),
        ("current_chain_index", models.PositiveSmallIntegerField(blank=True, null=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ActivityCalendar",
            fields=base_fields() + [
                (
                    "academic_year",
                    models.CharField(
                        help_text="Academic year in YYYY-YY format (e.g., 2025-26)",
                        max_length=7,
                        unique=True,
                        validators=[
                            django.core.validators.RegexValidator(
                                ACADEMIC_YEAR_PATTERN, "Academic year must be YYYY-YY"
                            )
                        ],
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=CalendarStatus.choices,
                        default=CalendarStatus.DRAFT,
                        max_length=40,
                    ),
                ),
                (
                    "events",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Embedded events: id, title, category, start_date, end_date, estimated_budget, description",
                    ),
                ),
                (
                    "current_approval_stage",
                    models.CharField(blank=True, choices=Stage.choices, max_length=50, null=True),
                ),
                (
                    "custom_approval_chain",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Stages chosen by Student Affairs for this approval cycle",
                    ),
                ),
                ("current_chain_index", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("created_by", models.CharField(blank=True, max_length=64)),
                ("is_locked", models.BooleanField(default=False)),
                ("locked_by", models.CharField(blank=True, max_length=64)),
                ("locked_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True)),
                ("rejected_by", models.CharField(blank=True, max_length=64)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-academic_year"],
                "indexes": [
                    models.Index(fields=["status"], name="gymkhana_calendar_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MegaEventSeries",
            fields=base_fields() + [
                ("name", models.CharField(max_length=200, unique=True)),
                ("description", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_by", models.CharField(blank=True, max_length=64)),
            ],
            options={
                "ordering": ["name"],
                "verbose_name_plural": "Mega event series",
            },
        ),
        migrations.CreateModel(
            name="GymkhanaEvent",
            fields=base_fields() + [
                ("title", models.CharField(max_length=200)),
                ("category", models.CharField(choices=EventCategory.choices, max_length=20)),
                ("scheduled_start_date", models.DateField()),
                ("scheduled_end_date", models.DateField()),
                (
                    "estimated_budget",
                    money(
                        default=Decimal("0"),
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                ("description", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=EventStatus.choices,
                        default=EventStatus.UPCOMING,
                        max_length=30,
                    ),
                ),
                (
                    "proposal_due_date",
                    models.DateField(
                        blank=True,
                        help_text="scheduled_start_date - 21 days; computed once and cached",
                        null=True,
                    ),
                ),
                ("proposal_submitted", models.BooleanField(default=False)),
                ("is_mega_event", models.BooleanField(default=False)),
                (
                    "calendar",
                    models.ForeignKey(
                        blank=True,
                        help_text="Source calendar (null for mega events)",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="materialized_events",
                        to="django_gymkhana.activitycalendar",
                    ),
                ),
                (
                    "mega_event_series",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="occurrences",
                        to="django_gymkhana.megaeventseries",
                    ),
                ),
            ],
            options={
                "ordering": ["scheduled_start_date", "title"],
                "indexes": [
                    models.Index(fields=["status"], name="gymkhana_event_status_idx"),
                    models.Index(fields=["scheduled_start_date"], name="gymkhana_event_start_idx"),
                    models.Index(fields=["proposal_due_date"], name="gymkhana_event_due_idx"),
                    models.Index(fields=["is_mega_event"], name="gymkhana_event_mega_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="EventProposal",
            fields=base_fields() + [
                ("submitted_by", models.CharField(max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=ProposalStatus.choices,
                        default=ProposalStatus.DRAFT,
                        max_length=40,
                    ),
                ),
            ] + chain_fields() + [
                ("proposal_text", models.TextField()),
                ("proposal_document_url", models.CharField(blank=True, max_length=4000)),
                ("external_guests_details", models.TextField(blank=True)),
                ("chief_guest_document_url", models.CharField(blank=True, max_length=4000)),
                ("accommodation_required", models.BooleanField(default=False)),
                ("has_registration_fee", models.BooleanField(default=False)),
                ("registration_fee_amount", money(default=Decimal("0"))),
                ("total_expected_income", money(default=Decimal("0"))),
                ("total_expenditure", money(default=Decimal("0"))),
                ("event_budget_at_submission", money(default=Decimal("0"))),
                (
                    "budget_deflection",
                    money(
                        default=Decimal("0"),
                        help_text="total_expenditure - event_budget_at_submission",
                    ),
                ),
                ("rejection_reason", models.TextField(blank=True)),
                ("rejected_by", models.CharField(blank=True, max_length=64)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("revision_count", models.PositiveIntegerField(default=0)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="proposals",
                        to="django_gymkhana.gymkhanaevent",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="gymkhana_proposal_status_idx"),
                    models.Index(fields=["submitted_by"], name="gymkhana_proposal_by_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="EventExpense",
            fields=base_fields() + [
                ("submitted_by", models.CharField(max_length=64)),
                (
                    "bills",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="description, amount, bill_number, bill_date, vendor, attachments",
                    ),
                ),
                ("event_report_document_url", models.CharField(blank=True, max_length=4000)),
                ("notes", models.TextField(blank=True)),
                ("total_expenditure", money(default=Decimal("0"))),
                ("estimated_budget", money(blank=True, null=True)),
                ("budget_variance", money(blank=True, null=True)),
                (
                    "approval_status",
                    models.CharField(
                        choices=ExpenseStatus.choices,
                        default=ExpenseStatus.PENDING,
                        max_length=20,
                    ),
                ),
                ("approved_by", models.CharField(blank=True, max_length=64)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("approval_comments", models.TextField(blank=True)),
                (
                    "event",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="django_gymkhana.gymkhanaevent",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["approval_status"], name="gymkhana_expense_status_idx"),
                    models.Index(fields=["submitted_by"], name="gymkhana_expense_by_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CalendarAmendment",
            fields=base_fields() + [
                ("type", models.CharField(choices=AmendmentType.choices, max_length=20)),
                ("proposed_changes", models.JSONField(default=dict)),
                ("reason", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=AmendmentStatus.choices,
                        default=AmendmentStatus.PENDING,
                        max_length=20,
                    ),
                ),
                ("requested_by", models.CharField(max_length=64)),
                ("reviewed_by", models.CharField(blank=True, max_length=64)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("review_comments", models.TextField(blank=True)),
                (
                    "calendar",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="amendments",
                        to="django_gymkhana.activitycalendar",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        blank=True,
                        help_text="Target event (edits only)",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="amendments",
                        to="django_gymkhana.gymkhanaevent",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="gymkhana_amend_status_idx"),
                    models.Index(fields=["requested_by"], name="gymkhana_amend_by_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ApprovalLog",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("entity_kind", models.CharField(choices=EntityKind.choices, max_length=20)),
                ("entity_id", models.CharField(max_length=64)),
                (
                    "stage",
                    models.CharField(
                        choices=Stage.choices,
                        help_text="Stage (role) that acted",
                        max_length=50,
                    ),
                ),
                ("action", models.CharField(choices=ApprovalAction.choices, max_length=30)),
                ("performed_by", models.CharField(max_length=64)),
                ("comments", models.TextField(blank=True)),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["entity_kind", "entity_id"], name="gymkhana_log_entity_idx"),
                    models.Index(fields=["performed_by"], name="gymkhana_log_actor_idx"),
                ],
            },
        ),
        migrations.AddField(
            model_name="gymkhanaevent",
            name="proposal",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="django_gymkhana.eventproposal",
            ),
        ),
        migrations.AddField(
            model_name="gymkhanaevent",
            name="expense",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="django_gymkhana.eventexpense",
            ),
        ),
    ]
