"""Tests for ServiceResult and the service_operation boundary."""

from datetime import date

import pytest

from django_gymkhana.exceptions import BadRequest, Forbidden, InvalidPayload, NotFound
from django_gymkhana.results import ServiceResult, created, ok, service_operation


class TestServiceOperation:
    """Expected failures become results; everything else propagates."""

    @pytest.mark.parametrize(
        "exc,code",
        [
            (NotFound("Event"), 404),
            (Forbidden("Only Admin can lock calendars"), 403),
            (BadRequest("Calendar is already locked"), 400),
            (InvalidPayload(["a", "b"]), 400),
        ],
    )
    def test_workflow_errors_become_results(self, exc, code):
        @service_operation
        def operation():
            raise exc

        result = operation()

        assert result.success is False
        assert result.status_code == code
        assert result.message == exc.message

    def test_invalid_payload_joins_errors(self):
        assert InvalidPayload(["a", "b"]).message == "a; b"

    def test_unexpected_errors_propagate(self):
        @service_operation
        def operation():
            raise RuntimeError("database unavailable")

        with pytest.raises(RuntimeError):
            operation()

    def test_success_passes_through(self):
        @service_operation
        def operation():
            return ok("done", value=1)

        result = operation()

        assert result.success is True
        assert result["value"] == 1


class TestServiceResult:
    def test_created(self):
        assert created("made").status_code == 201

    def test_to_dict(self):
        result = ServiceResult(success=True, message="ok", data={"due": date(2025, 9, 19), "items": [{"n": 1}]})

        assert result.to_dict() == {
            "success": True,
            "statusCode": 200,
            "message": "ok",
            "due": "2025-09-19",
            "items": [{"n": 1}],
        }
