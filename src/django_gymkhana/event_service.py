"""Event catalogue and mega event scheduling."""

import logging

from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import IntegrityError, transaction
from django.db.models import Count

from .actors import Actor
from .conf import page_bounds
from .constants import EventCategory, EventStatus
from .exceptions import BadRequest, Forbidden, InvalidPayload, NotFound
from .models import GymkhanaEvent, MegaEventSeries
from .overlap import to_date
from .results import created, ok, service_operation
from .validators import normalize_calendar_event, to_decimal, validate_calendar_event

logger = logging.getLogger(__name__)

OCCURRENCE_ORDER = ("-scheduled_start_date", "-scheduled_end_date", "-created_at")


@service_operation
def get_event_by_id(event_id):
    try:
        event = GymkhanaEvent.objects.select_related("calendar", "mega_event_series").get(pk=event_id)
    except (GymkhanaEvent.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Event")
    return ok(event=event)


@service_operation
def get_events(
    status=None,
    category=None,
    calendar_id=None,
    proposal_submitted=None,
    is_mega_event=None,
    page=1,
    limit=None,
):
    """Paginated events ordered by start date."""
    queryset = GymkhanaEvent.objects.all()
    if status:
        if status not in EventStatus.values:
            raise BadRequest(f"Invalid event status: {status}")
        queryset = queryset.filter(status=status)
    if category:
        if category not in EventCategory.values:
            raise BadRequest(f"Invalid category: {category}")
        queryset = queryset.filter(category=category)
    if calendar_id:
        try:
            queryset = queryset.filter(calendar_id=calendar_id)
        except (ValidationError, ValueError):
            raise BadRequest(f"Invalid calendar id: {calendar_id}")
    if proposal_submitted is not None:
        queryset = queryset.filter(proposal_submitted=bool(proposal_submitted))
    if is_mega_event is not None:
        queryset = queryset.filter(is_mega_event=bool(is_mega_event))

    page, limit = page_bounds(page, limit)
    paginator = Paginator(queryset.order_by("scheduled_start_date", "title"), limit)
    page_obj = paginator.get_page(page)
    return ok(
        events=list(page_obj.object_list),
        pagination={
            "page": page_obj.number,
            "limit": limit,
            "total": paginator.count,
            "pages": paginator.num_pages,
        },
    )


# =============================================================================
# Mega events
# =============================================================================


@service_operation
@transaction.atomic
def create_mega_event_series(data: dict, actor: Actor):
    if not actor.is_admin:
        raise Forbidden("Only Admin can create mega event series")

    name = str(data.get("name") or "").strip()
    if not 2 <= len(name) <= 200:
        raise BadRequest("Series name must be between 2 and 200 characters")
    if MegaEventSeries.objects.filter(name__iexact=name).exists():
        raise BadRequest(f"Mega event series '{name}' already exists")

    try:
        with transaction.atomic():
            series = MegaEventSeries.objects.create(
                name=name,
                description=str(data.get("description") or "").strip(),
                created_by=actor.id,
            )
    except IntegrityError:
        raise BadRequest(f"Mega event series '{name}' already exists")

    logger.info(f"Mega event series '{name}' created by {actor.id}")
    return created("Mega event series created", series=series)


def _get_series(series_id) -> MegaEventSeries:
    try:
        return MegaEventSeries.objects.get(pk=series_id)
    except (MegaEventSeries.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Mega event series")


@service_operation
def get_mega_event_series():
    """Active series by name, each with its occurrence count and latest occurrence."""
    queryset = (
        MegaEventSeries.objects.filter(is_active=True)
        .annotate(occurrences_count=Count("occurrences"))
        .order_by("name")
    )
    summary = [
        {
            "series": series,
            "latest_occurrence": series.occurrences.order_by(*OCCURRENCE_ORDER).first(),
            "occurrences_count": series.occurrences_count,
        }
        for series in queryset
    ]
    return ok(series=summary)


@service_operation
def get_mega_event_series_by_id(series_id):
    """
    One active series with its occurrences, newest first.

    ``history`` holds every occurrence except the latest one.
    """
    series = _get_series(series_id)
    if not series.is_active:
        raise NotFound("Mega event series")

    occurrences = list(series.occurrences.order_by(*OCCURRENCE_ORDER))
    return ok(
        series=series,
        latest_occurrence=occurrences[0] if occurrences else None,
        history=occurrences[1:],
        occurrences=occurrences,
    )


@service_operation
@transaction.atomic
def schedule_mega_event(series_id, data: dict, actor: Actor):
    """
    Schedule one occurrence of a mega event series.

    The occurrence has no calendar; its proposal is submitted by the
    President and reviewed from Student Affairs onwards.
    """
    if not actor.is_admin:
        raise Forbidden("Only Admin can schedule mega events")

    series = _get_series(series_id)
    if not series.is_active:
        raise BadRequest(f"Mega event series '{series.name}' is inactive")

    errors = validate_calendar_event(data)
    if errors:
        raise InvalidPayload(errors)
    details = normalize_calendar_event(data)

    event = GymkhanaEvent.objects.create(
        calendar=None,
        mega_event_series=series,
        title=details["title"],
        category=details["category"],
        scheduled_start_date=to_date(details["start_date"]),
        scheduled_end_date=to_date(details["end_date"]),
        estimated_budget=to_decimal(details["estimated_budget"]),
        description=details["description"],
        status=EventStatus.UPCOMING,
    )
    logger.info(f"Mega event {event.pk} scheduled in series '{series.name}'")
    return created("Mega event scheduled", event=event)
