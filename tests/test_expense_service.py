"""Tests for expense workflow services."""

from decimal import Decimal

import pytest

from django_gymkhana import expense_service
from django_gymkhana.actors import Actor
from django_gymkhana.constants import EventStatus, ExpenseStatus, ProposalStatus, Roles, Stage
from django_gymkhana.models import EventExpense, EventProposal, GymkhanaEvent
from tests.factories import bills_payload


def expense_payload(*amounts, **extra):
    payload = {
        "bills": bills_payload(*amounts),
        "event_report_document_url": "https://files.example/report.pdf",
        "notes": "All bills attached.",
    }
    payload.update(extra)
    return payload


@pytest.fixture
def approved_event(standard_event):
    """Event whose proposal planned 45000 of expenditure and is approved."""
    proposal = EventProposal.objects.create(
        event=standard_event,
        submitted_by="gs-1",
        status=ProposalStatus.APPROVED,
        proposal_text="Detailed plan, schedule and logistics.",
        total_expenditure=Decimal("45000"),
    )
    standard_event.proposal = proposal
    standard_event.proposal_submitted = True
    standard_event.status = EventStatus.PROPOSAL_APPROVED
    standard_event.save()
    return standard_event


@pytest.fixture
def expense(approved_event, gs):
    result = expense_service.submit_expense(approved_event.pk, expense_payload(20000, 15000), gs)
    assert result.success, result.message
    return result["expense"]


@pytest.mark.django_db
class TestSubmitExpense:
    """Tests for submit_expense."""

    def test_total_is_sum_of_bills(self, approved_event, gs):
        payload = expense_payload(20000, "15000.50", total_expenditure=1)

        result = expense_service.submit_expense(approved_event.pk, payload, gs)

        assert result.status_code == 201
        expense = result["expense"]
        assert expense.total_expenditure == Decimal("35000.50")
        assert expense.approval_status == ExpenseStatus.PENDING

    def test_estimate_comes_from_proposal(self, expense):
        assert expense.estimated_budget == Decimal("45000")
        assert expense.budget_variance == Decimal("-10000")

    def test_estimate_falls_back_to_event_budget(self, approved_event, gs):
        GymkhanaEvent.objects.filter(pk=approved_event.pk).update(proposal=None)

        result = expense_service.submit_expense(approved_event.pk, expense_payload(100), gs)

        assert result["expense"].estimated_budget == Decimal("50000")

    def test_zero_proposal_plan_falls_back_to_event_budget(self, approved_event, gs):
        EventProposal.objects.filter(pk=approved_event.proposal_id).update(total_expenditure=Decimal("0"))

        result = expense_service.submit_expense(approved_event.pk, expense_payload(100), gs)

        assert result["expense"].estimated_budget == Decimal("50000")

    def test_stored_total_matches_bills(self, approved_event, gs):
        result = expense_service.submit_expense(approved_event.pk, expense_payload("0.25", "1000.10"), gs)

        stored = EventExpense.objects.get(pk=result["expense"].pk)
        assert stored.total_expenditure == Decimal("1000.35")
        assert stored.total_expenditure == sum(Decimal(bill["amount"]) for bill in stored.bills)

    def test_sub_cent_amount_rejected(self, approved_event, gs):
        result = expense_service.submit_expense(approved_event.pk, expense_payload("0.004", "0.004"), gs)

        assert result.status_code == 400
        assert "Bill #1: Bill amount cannot have more than 2 decimal places" in result.message
        assert not EventExpense.objects.exists()

    def test_oversized_amount_rejected(self, approved_event, gs):
        result = expense_service.submit_expense(approved_event.pk, expense_payload("10000000000000"), gs)

        assert result.status_code == 400
        assert "cannot exceed 999999999.99" in result.message
        assert not EventExpense.objects.exists()

    def test_bill_without_attachment_rejected(self, approved_event, gs):
        payload = expense_payload(100)
        del payload["bills"][0]["attachments"]

        result = expense_service.submit_expense(approved_event.pk, payload, gs)

        assert result.status_code == 400
        assert "Bill #1: At least one attachment is required" in result.message

    def test_event_must_have_approved_proposal(self, standard_event, gs):
        result = expense_service.submit_expense(standard_event.pk, expense_payload(100), gs)

        assert result.status_code == 400
        assert not EventExpense.objects.exists()

    def test_one_expense_per_event(self, expense, approved_event, gs):
        result = expense_service.submit_expense(approved_event.pk, expense_payload(100), gs)

        assert result.status_code == 400
        assert result.message == "Expense already submitted for this event"

    def test_only_gs_submits(self, approved_event, president, admin):
        assert expense_service.submit_expense(approved_event.pk, expense_payload(1), president).status_code == 403
        assert expense_service.submit_expense(approved_event.pk, expense_payload(1), admin).status_code == 403

    def test_bills_required(self, approved_event, gs):
        result = expense_service.submit_expense(
            approved_event.pk, {"bills": [], "event_report_document_url": "https://x"}, gs
        )

        assert result.status_code == 400
        assert "At least one bill is required" in result.message

    def test_report_required(self, approved_event, gs):
        result = expense_service.submit_expense(approved_event.pk, {"bills": bills_payload(1)}, gs)

        assert result.status_code == 400
        assert "Event report document is required" in result.message

    def test_unknown_event(self, db, gs):
        result = expense_service.submit_expense("00000000-0000-0000-0000-000000000000", expense_payload(1), gs)

        assert result.status_code == 404


@pytest.mark.django_db
class TestUpdateExpense:
    """Tests for update_expense."""

    def test_update_recomputes_total(self, expense, gs):
        result = expense_service.update_expense(
            expense.pk, {"bills": bills_payload(500, 700), "total_expenditure": 99}, gs
        )

        updated = result["expense"]
        assert updated.total_expenditure == Decimal("1200")
        assert updated.budget_variance == Decimal("-43800")
        assert updated.approval_status == ExpenseStatus.PENDING

    def test_notes_only_update_keeps_bills(self, expense, gs):
        result = expense_service.update_expense(expense.pk, {"notes": "Corrected vendor name"}, gs)

        updated = result["expense"]
        assert updated.notes == "Corrected vendor name"
        assert updated.total_expenditure == Decimal("35000")

    def test_approved_expense_is_immutable(self, expense, admin, gs):
        expense_service.approve_expense(expense.pk, "", admin)

        result = expense_service.update_expense(expense.pk, {"notes": "late change"}, gs)

        assert result.status_code == 403
        expense.refresh_from_db()
        assert expense.notes == "All bills attached."

    def test_only_gs_updates(self, expense, president):
        assert expense_service.update_expense(expense.pk, {"notes": "x"}, president).status_code == 403


@pytest.mark.django_db
class TestApproveExpense:
    """Tests for approve_expense."""

    def test_admin_approves(self, expense, admin):
        result = expense_service.approve_expense(expense.pk, "Verified", admin)

        approved = result["expense"]
        assert approved.approval_status == ExpenseStatus.APPROVED
        assert approved.approved_by == "admin-1"
        assert approved.approval_comments == "Verified"

        event = GymkhanaEvent.objects.get(pk=approved.event_id)
        assert event.status == EventStatus.COMPLETED
        assert event.expense_id == approved.pk

    def test_no_reapproval(self, expense, admin):
        expense_service.approve_expense(expense.pk, "", admin)

        result = expense_service.approve_expense(expense.pk, "", admin)

        assert result.status_code == 400

    def test_only_admin_approves(self, expense, gs):
        assert expense_service.approve_expense(expense.pk, "", gs).status_code == 403

    def test_history(self, expense, super_admin):
        expense_service.approve_expense(expense.pk, "", super_admin)

        history = expense_service.get_approval_history(expense.pk)["history"]

        assert [(item.stage, item.action) for item in history] == [
            ("GS Gymkhana", "submitted"),
            ("Student Affairs", "approved"),
        ]


@pytest.mark.django_db
class TestQueries:
    def test_get_by_id_and_event(self, expense, approved_event):
        assert expense_service.get_expense_by_id(expense.pk)["expense"] == expense
        assert expense_service.get_expense_by_event(approved_event.pk)["expense"] == expense

    def test_get_by_event_missing(self, standard_event):
        assert expense_service.get_expense_by_event(standard_event.pk).status_code == 404

    def test_malformed_ids(self, db):
        assert expense_service.get_expense_by_event("not-a-uuid").status_code == 404
        assert expense_service.get_expense_by_id("not-a-uuid").status_code == 404

    def test_gymkhana_sees_own_expenses(self, expense, admin):
        other_gs = Actor(id="gs-2", role=Roles.GYMKHANA, sub_role=Stage.GS_GYMKHANA.value)

        assert expense_service.get_expenses(other_gs)["expenses"] == []
        assert expense_service.get_expenses(admin)["expenses"] == [expense]
        assert expense_service.get_expenses(admin, status="approved")["expenses"] == []

    def test_invalid_status_filter(self, db, admin):
        assert expense_service.get_expenses(admin, status="rejected").status_code == 400
