"""Tests for calendar manager services."""

import uuid
from datetime import date

import pytest

from django_gymkhana import calendar_service
from django_gymkhana.constants import CalendarStatus
from django_gymkhana.models import ActivityCalendar, ApprovalLog, GymkhanaEvent
from tests.factories import event_payload

FRESHERS = event_payload("Freshers Night", "2025-08-10", "2025-08-11")
HACKATHON = event_payload("Hackathon", "2025-09-05", "2025-09-07", category="technical")
# Overlaps HACKATHON on 2025-09-07.
QUIZ = event_payload("Quiz Bowl", "2025-09-07", "2025-09-08", category="academic")


@pytest.fixture
def calendar(db, admin):
    """Draft calendar with two non-overlapping events."""
    result = calendar_service.create_calendar(
        {"academic_year": "2025-26", "events": [FRESHERS, HACKATHON]}, admin
    )
    return result["calendar"]


@pytest.fixture
def submitted(calendar, president):
    result = calendar_service.submit_calendar(calendar.pk, president)
    assert result.success
    return result["calendar"]


@pytest.mark.django_db
class TestCreateCalendar:
    """Tests for create_calendar."""

    def test_admin_creates_draft(self, admin):
        result = calendar_service.create_calendar({"academic_year": "2025-26"}, admin)

        assert result.success is True
        assert result.status_code == 201
        calendar = result["calendar"]
        assert calendar.status == CalendarStatus.DRAFT
        assert calendar.is_locked is False
        assert calendar.created_by == "admin-1"

    def test_super_admin_can_create(self, super_admin):
        result = calendar_service.create_calendar({"academicYear": "2026-27"}, super_admin)

        assert result.success is True

    def test_gymkhana_cannot_create(self, gs):
        result = calendar_service.create_calendar({"academic_year": "2025-26"}, gs)

        assert result.success is False
        assert result.status_code == 403

    def test_duplicate_year_rejected(self, calendar, admin):
        result = calendar_service.create_calendar({"academic_year": "2025-26"}, admin)

        assert result.status_code == 400
        assert "already exists" in result.message
        assert ActivityCalendar.objects.filter(academic_year="2025-26").count() == 1

    def test_bad_year_format(self, admin):
        result = calendar_service.create_calendar({"academic_year": "2025"}, admin)

        assert result.status_code == 400
        assert "YYYY-YY" in result.message

    def test_invalid_event_rejected(self, admin):
        bad = event_payload("Freshers", "2025-08-10", "2025-08-01")

        result = calendar_service.create_calendar({"academic_year": "2025-26", "events": [bad]}, admin)

        assert result.status_code == 400
        assert "End date cannot be before start date" in result.message
        assert not ActivityCalendar.objects.exists()

    def test_embedded_events_get_ids(self, calendar):
        assert all(event["id"] for event in calendar.events)
        assert len({event["id"] for event in calendar.events}) == 2


@pytest.mark.django_db
class TestLocking:
    """Tests for lock_calendar / unlock_calendar."""

    def test_lock_and_unlock(self, calendar, admin):
        locked = calendar_service.lock_calendar(calendar.pk, admin)

        assert locked.success is True
        assert locked["calendar"].is_locked is True
        assert locked["calendar"].locked_by == "admin-1"

        unlocked = calendar_service.unlock_calendar(calendar.pk, admin)

        assert unlocked["calendar"].is_locked is False
        assert unlocked["calendar"].locked_at is None

    def test_double_lock_rejected(self, calendar, admin):
        calendar_service.lock_calendar(calendar.pk, admin)

        result = calendar_service.lock_calendar(calendar.pk, admin)

        assert result.status_code == 400
        assert result.message == "Calendar is already locked"

    def test_unlock_unlocked_rejected(self, calendar, admin):
        result = calendar_service.unlock_calendar(calendar.pk, admin)

        assert result.status_code == 400

    def test_gymkhana_cannot_lock(self, calendar, gs):
        assert calendar_service.lock_calendar(calendar.pk, gs).status_code == 403

    def test_unknown_calendar(self, db, admin):
        result = calendar_service.lock_calendar(uuid.uuid4(), admin)

        assert result.status_code == 404
        assert result.message == "Activity calendar not found"


@pytest.mark.django_db
class TestUpdateCalendar:
    """Tests for update_calendar."""

    def test_gs_updates_draft(self, calendar, gs):
        result = calendar_service.update_calendar(calendar.pk, [FRESHERS], gs)

        assert result.success is True
        calendar.refresh_from_db()
        assert [event["title"] for event in calendar.events] == ["Freshers Night"]

    def test_locked_calendar_forbidden(self, calendar, admin, gs):
        calendar_service.lock_calendar(calendar.pk, admin)

        result = calendar_service.update_calendar(calendar.pk, [FRESHERS], gs)

        assert result.status_code == 403
        assert "locked" in result.message

    def test_gs_cannot_edit_submitted(self, submitted, gs):
        result = calendar_service.update_calendar(submitted.pk, [FRESHERS], gs)

        assert result.status_code == 400

    def test_president_edits_calendar_waiting_on_president(self, calendar, president):
        ActivityCalendar.objects.filter(pk=calendar.pk).update(status=CalendarStatus.PENDING_PRESIDENT)

        result = calendar_service.update_calendar(calendar.pk, [HACKATHON], president)

        assert result.success is True
        assert result["calendar"].status == CalendarStatus.PENDING_PRESIDENT

    def test_other_roles_forbidden(self, calendar, outsider, admin):
        assert calendar_service.update_calendar(calendar.pk, [], outsider).status_code == 403
        assert calendar_service.update_calendar(calendar.pk, [], admin).status_code == 403

    def test_editing_rejected_calendar_returns_to_draft(self, submitted, student_affairs, gs):
        calendar_service.reject_calendar(submitted.pk, "Too many events in August", student_affairs)

        result = calendar_service.update_calendar(submitted.pk, [FRESHERS], gs)

        calendar = result["calendar"]
        assert calendar.status == CalendarStatus.DRAFT
        assert calendar.rejection_reason == ""
        assert calendar.rejected_by == ""
        assert calendar.rejected_at is None

    def test_invalid_events_leave_calendar_untouched(self, calendar, gs):
        result = calendar_service.update_calendar(calendar.pk, [{"title": "?"}], gs)

        assert result.status_code == 400
        calendar.refresh_from_db()
        assert len(calendar.events) == 2


@pytest.mark.django_db
class TestSubmitCalendar:
    """Tests for submit_calendar."""

    def test_president_submits_to_student_affairs(self, calendar, president):
        result = calendar_service.submit_calendar(calendar.pk, president)

        assert result.success is True
        assert result["requires_overlap_confirmation"] is False
        calendar = result["calendar"]
        assert calendar.status == CalendarStatus.PENDING_STUDENT_AFFAIRS
        assert calendar.current_approval_stage == "Student Affairs"

        entry = ApprovalLog.objects.get(entity_id=str(calendar.pk))
        assert entry.action == "submitted"
        assert entry.stage == "President Gymkhana"

    @pytest.mark.parametrize("actor_name", ["president", "gs", "admin", "outsider"])
    def test_zero_events_is_bad_request_for_any_actor(self, request, admin, actor_name):
        empty = calendar_service.create_calendar({"academic_year": "2030-31"}, admin)["calendar"]

        result = calendar_service.submit_calendar(empty.pk, request.getfixturevalue(actor_name))

        assert result.status_code == 400
        assert result.message == "Calendar must have at least one event"

    def test_only_president_submits(self, calendar, gs):
        assert calendar_service.submit_calendar(calendar.pk, gs).status_code == 403

    def test_locked_calendar_cannot_be_submitted(self, calendar, admin, president):
        calendar_service.lock_calendar(calendar.pk, admin)

        assert calendar_service.submit_calendar(calendar.pk, president).status_code == 403

    def test_only_draft_submits(self, submitted, president):
        result = calendar_service.submit_calendar(submitted.pk, president)

        assert result.status_code == 400

    def test_overlaps_require_confirmation(self, calendar, gs, president):
        calendar_service.update_calendar(calendar.pk, [FRESHERS, HACKATHON, QUIZ], gs)

        result = calendar_service.submit_calendar(calendar.pk, president)

        assert result.success is True
        assert result["requires_overlap_confirmation"] is True
        assert result["overlap_summary"] == {"total_overlaps": 1, "has_overlaps": True}
        pair = result["overlaps"][0]
        assert {pair["event_a"]["title"], pair["event_b"]["title"]} == {"Hackathon", "Quiz Bowl"}

        calendar.refresh_from_db()
        assert calendar.status == CalendarStatus.DRAFT
        assert not ApprovalLog.objects.exists()

    def test_confirmed_overlaps_submit(self, calendar, gs, president):
        calendar_service.update_calendar(calendar.pk, [FRESHERS, HACKATHON, QUIZ], gs)

        result = calendar_service.submit_calendar(calendar.pk, president, allow_overlapping_dates=True)

        assert result["calendar"].status == CalendarStatus.PENDING_STUDENT_AFFAIRS


@pytest.mark.django_db
class TestApproveCalendar:
    """Tests for approve_calendar and the dynamic chain."""

    def test_student_affairs_requires_chain(self, submitted, student_affairs):
        result = calendar_service.approve_calendar(submitted.pk, "", student_affairs, [])

        assert result.status_code == 400
        assert "Joint Registrar SA / Associate Dean SA / Dean SA" in result.message

    def test_duplicate_chain_rejected(self, submitted, student_affairs):
        result = calendar_service.approve_calendar(
            submitted.pk, "", student_affairs, ["Dean SA", "Dean SA"]
        )

        assert result.status_code == 400
        submitted.refresh_from_db()
        assert submitted.status == CalendarStatus.PENDING_STUDENT_AFFAIRS

    def test_wrong_approver_forbidden(self, submitted, dean):
        result = calendar_service.approve_calendar(submitted.pk, "", dean, ["Dean SA"])

        assert result.status_code == 403
        assert result.message == "Only Student Affairs can approve at this stage"

    def test_draft_is_not_pending(self, calendar, student_affairs):
        result = calendar_service.approve_calendar(calendar.pk, "", student_affairs, ["Dean SA"])

        assert result.status_code == 400
        assert result.message == "Calendar is not pending approval"

    def test_full_chain(self, submitted, student_affairs, joint_registrar, dean):
        step1 = calendar_service.approve_calendar(
            submitted.pk, "Looks good", student_affairs, ["Joint Registrar SA", "Dean SA"]
        )
        calendar = step1["calendar"]
        assert calendar.status == CalendarStatus.PENDING_JOINT_REGISTRAR
        assert calendar.custom_approval_chain == ["Joint Registrar SA", "Dean SA"]
        assert calendar.current_chain_index == 0

        step2 = calendar_service.approve_calendar(submitted.pk, "", joint_registrar)
        calendar = step2["calendar"]
        assert calendar.status == CalendarStatus.PENDING_DEAN
        assert calendar.current_chain_index == 1
        assert not GymkhanaEvent.objects.exists()

        step3 = calendar_service.approve_calendar(submitted.pk, "Approved", dean)
        calendar = step3["calendar"]
        assert step3.message == "Calendar approved successfully"
        assert calendar.status == CalendarStatus.APPROVED
        assert calendar.current_chain_index is None
        assert calendar.current_approval_stage is None
        assert calendar.approved_at is not None
        assert step3["events_created"] == 2

        history = calendar_service.get_approval_history(submitted.pk)["history"]
        assert [(item.stage, item.action) for item in history] == [
            ("President Gymkhana", "submitted"),
            ("Student Affairs", "approved"),
            ("Joint Registrar SA", "approved"),
            ("Dean SA", "approved"),
        ]

    def test_skipped_stage_cannot_approve(self, submitted, student_affairs, associate_dean):
        calendar_service.approve_calendar(submitted.pk, "", student_affairs, ["Dean SA"])

        result = calendar_service.approve_calendar(submitted.pk, "", associate_dean)

        assert result.status_code == 403

    def test_materialized_events(self, submitted, student_affairs, dean):
        calendar_service.approve_calendar(submitted.pk, "", student_affairs, ["Dean SA"])
        calendar_service.approve_calendar(submitted.pk, "", dean)

        events = list(GymkhanaEvent.objects.order_by("scheduled_start_date"))
        assert [event.title for event in events] == ["Freshers Night", "Hackathon"]
        assert events[0].calendar_id == submitted.pk
        assert events[0].status == "upcoming"
        assert events[0].proposal_due_date == date(2025, 7, 20)
        assert events[1].proposal_due_date == date(2025, 8, 15)
        assert events[1].category == "technical"


@pytest.mark.django_db
class TestRejectCalendar:
    """Tests for reject_calendar."""

    def test_reject(self, submitted, student_affairs):
        result = calendar_service.reject_calendar(submitted.pk, "Budget too high", student_affairs)

        calendar = result["calendar"]
        assert calendar.status == CalendarStatus.REJECTED
        assert calendar.rejection_reason == "Budget too high"
        assert calendar.rejected_by == "sa-1"
        assert calendar.rejected_at is not None
        assert calendar.current_approval_stage is None

    def test_second_reject_is_bad_request(self, submitted, student_affairs):
        calendar_service.reject_calendar(submitted.pk, "Budget too high", student_affairs)

        result = calendar_service.reject_calendar(submitted.pk, "Again", student_affairs)

        assert result.status_code == 400
        assert "not pending approval" in result.message

    def test_reject_is_role_gated(self, submitted, dean):
        assert calendar_service.reject_calendar(submitted.pk, "No", dean).status_code == 403

    @pytest.mark.parametrize("reason", ["", None, "   too short "])
    def test_reject_requires_reason(self, submitted, student_affairs, reason):
        result = calendar_service.reject_calendar(submitted.pk, reason, student_affairs)

        assert result.status_code == 400
        assert result.message == "Rejection reason must be between 10 and 1000 characters"
        submitted.refresh_from_db()
        assert submitted.status == CalendarStatus.PENDING_STUDENT_AFFAIRS
        assert calendar_service.get_approval_history(submitted.pk)["history"][-1].action == "submitted"


@pytest.mark.django_db
class TestReadOperations:
    """Tests for calendar queries."""

    def test_get_by_id(self, calendar):
        assert calendar_service.get_calendar_by_id(calendar.pk)["calendar"] == calendar

    def test_get_by_id_not_found(self, db):
        assert calendar_service.get_calendar_by_id(uuid.uuid4()).status_code == 404

    def test_get_by_id_malformed(self, db):
        assert calendar_service.get_calendar_by_id("not-a-uuid").status_code == 404

    def test_get_by_year(self, calendar):
        assert calendar_service.get_calendar_by_year("2025-26")["calendar"] == calendar
        assert calendar_service.get_calendar_by_year("1999-00").status_code == 404

    def test_get_calendars_paginates(self, admin):
        for year in ("2023-24", "2024-25", "2025-26"):
            calendar_service.create_calendar({"academic_year": year}, admin)

        result = calendar_service.get_calendars(page=1, limit=2)

        assert [c.academic_year for c in result["calendars"]] == ["2025-26", "2024-25"]
        assert result["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    def test_get_calendars_filters_status(self, submitted, admin):
        calendar_service.create_calendar({"academic_year": "2026-27"}, admin)

        result = calendar_service.get_calendars(status=CalendarStatus.DRAFT)

        assert [c.academic_year for c in result["calendars"]] == ["2026-27"]

    def test_academic_years(self, calendar, admin):
        calendar_service.create_calendar({"academic_year": "2026-27"}, admin)

        years = calendar_service.get_academic_years()["years"]

        assert [item["academic_year"] for item in years] == ["2026-27", "2025-26"]
        assert years[1]["status"] == "draft"

    def test_to_dict_is_json_safe(self, calendar):
        payload = calendar_service.get_calendar_by_id(calendar.pk).to_dict()

        assert payload["success"] is True
        assert payload["statusCode"] == 200
        assert payload["calendar"]["id"] == str(calendar.pk)
        assert payload["calendar"]["academic_year"] == "2025-26"
        assert isinstance(payload["calendar"]["created_at"], str)


@pytest.mark.django_db
class TestCheckEventOverlap:
    """Tests for the standalone overlap check."""

    def test_candidate_overlap(self, calendar):
        result = calendar_service.check_event_overlap(
            calendar.pk, {"title": "Robotics", "start_date": "2025-09-06", "end_date": "2025-09-06"}
        )

        assert result["has_overlap"] is True
        assert result["overlaps"][0]["event_b"]["title"] == "Hackathon"

    def test_editing_event_ignores_itself(self, calendar):
        hackathon_id = calendar.events[1]["id"]

        result = calendar_service.check_event_overlap(
            calendar.pk,
            {"event_id": hackathon_id, "start_date": "2025-09-05", "end_date": "2025-09-08"},
        )

        assert result["has_overlap"] is False

    def test_dates_required(self, calendar):
        result = calendar_service.check_event_overlap(calendar.pk, {"start_date": "2025-09-06"})

        assert result.status_code == 400
