"""Tests for the shared approval-chain state machine."""

from types import SimpleNamespace

import pytest

from django_gymkhana.approval_chain import (
    ChainFields,
    apply_step,
    plan_approval,
    required_approver,
    reset_chain,
    validate_next_stages,
)
from django_gymkhana.exceptions import BadRequest

SA = "Student Affairs"
JR = "Joint Registrar SA"
AD = "Associate Dean SA"
DEAN = "Dean SA"


class TestRequiredApprover:
    """Pending statuses map to exactly one approver stage."""

    @pytest.mark.parametrize(
        "status,stage",
        [
            ("pending_president", "President Gymkhana"),
            ("pending_student_affairs", SA),
            ("pending_joint_registrar", JR),
            ("pending_associate_dean", AD),
            ("pending_dean", DEAN),
        ],
    )
    def test_pending_statuses(self, status, stage):
        assert required_approver(status) == stage

    @pytest.mark.parametrize("status", ["draft", "approved", "rejected", "revision_requested"])
    def test_non_pending_statuses(self, status):
        assert required_approver(status) is None


class TestValidateNextStages:
    """Student Affairs chain selection rules."""

    def test_empty_selection_rejected(self):
        with pytest.raises(BadRequest) as exc_info:
            validate_next_stages([])

        assert "Joint Registrar SA / Associate Dean SA / Dean SA" in exc_info.value.message

    def test_missing_selection_rejected(self):
        with pytest.raises(BadRequest):
            validate_next_stages(None)

    def test_duplicates_rejected(self):
        with pytest.raises(BadRequest) as exc_info:
            validate_next_stages([DEAN, DEAN])

        assert "unique" in exc_info.value.message

    def test_unknown_stage_rejected(self):
        with pytest.raises(BadRequest) as exc_info:
            validate_next_stages(["President Gymkhana"])

        assert "Invalid approval stage selected: President Gymkhana" in exc_info.value.message

    def test_order_is_kept(self):
        assert validate_next_stages([DEAN, JR]) == [DEAN, JR]


class TestPlanApproval:
    """Tests for plan_approval."""

    def test_student_affairs_starts_chain(self):
        step = plan_approval("pending_student_affairs", SA, [], None, [JR, DEAN])

        assert step.status == "pending_joint_registrar"
        assert step.stage == JR
        assert step.chain == [JR, DEAN]
        assert step.index == 0
        assert step.is_final is False

    def test_student_affairs_requires_selection(self):
        with pytest.raises(BadRequest):
            plan_approval("pending_student_affairs", SA, [], None, [])

    def test_chain_advances_by_index(self):
        """Approving as Joint Registrar moves to Dean at index 1."""
        step = plan_approval("pending_joint_registrar", JR, [JR, DEAN], 0)

        assert step.status == "pending_dean"
        assert step.stage == DEAN
        assert step.index == 1

    def test_end_of_chain_approves(self):
        step = plan_approval("pending_dean", DEAN, [JR, DEAN], 1)

        assert step.status == "approved"
        assert step.stage is None
        assert step.index is None
        assert step.is_final is True

    def test_single_stage_chain(self):
        step = plan_approval("pending_dean", DEAN, [DEAN], 0)

        assert step.is_final is True

    def test_stale_index_is_recovered_from_chain(self):
        step = plan_approval("pending_dean", DEAN, [JR, DEAN], None)

        assert step.is_final is True

    def test_stage_missing_from_chain_is_misconfigured(self):
        with pytest.raises(BadRequest) as exc_info:
            plan_approval("pending_associate_dean", AD, [DEAN], 0)

        assert "misconfigured" in exc_info.value.message

    def test_president_moves_to_student_affairs(self):
        step = plan_approval("pending_president", "President Gymkhana", [], None)

        assert step.status == "pending_student_affairs"
        assert step.stage == SA

    def test_legacy_record_without_chain_uses_static_route(self):
        step = plan_approval("pending_joint_registrar", JR, [], None)

        assert step.status == "pending_associate_dean"
        assert step.stage == AD

    def test_legacy_dean_approves(self):
        step = plan_approval("pending_dean", DEAN, [], None)

        assert step.is_final is True


class TestEntityAdapters:
    """apply_step/reset_chain write through ChainFields."""

    def test_apply_step(self):
        entity = SimpleNamespace(
            status="pending_student_affairs",
            current_approval_stage=SA,
            custom_approval_chain=[],
            current_chain_index=None,
        )

        apply_step(entity, plan_approval(entity.status, SA, [], None, [AD]))

        assert entity.status == "pending_associate_dean"
        assert entity.current_approval_stage == AD
        assert entity.custom_approval_chain == [AD]
        assert entity.current_chain_index == 0

    def test_reset_chain_with_custom_fields(self):
        fields = ChainFields(status="state", stage="stage", chain="route", index="position")
        entity = SimpleNamespace(state="rejected", stage=None, route=[JR], position=0)

        reset_chain(entity, "pending_president", "President Gymkhana", fields)

        assert entity.state == "pending_president"
        assert entity.stage == "President Gymkhana"
        assert entity.route == []
        assert entity.position is None
