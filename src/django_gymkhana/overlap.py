"""
Pure functions for detecting date-range conflicts between events.

These functions take plain dicts or model instances and never touch the
database. Used by calendar submission (pairwise over every embedded event)
and by the standalone single-candidate overlap check.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from django.utils.dateparse import parse_date, parse_datetime

from .constants import EventCategory

_START_KEYS = ("start_date", "startDate", "scheduled_start_date", "scheduledStartDate")
_END_KEYS = ("end_date", "endDate", "scheduled_end_date", "scheduledEndDate")


@dataclass
class OverlapAnalysis:
    """Result of an overlap scan.

    Attributes:
        overlaps: Conflicting pairs, each ``{"event_a": ..., "event_b": ...}``
    """

    overlaps: list[dict] = field(default_factory=list)

    @property
    def has_overlaps(self) -> bool:
        return len(self.overlaps) > 0

    @property
    def summary(self) -> dict:
        return {
            "total_overlaps": len(self.overlaps),
            "has_overlaps": self.has_overlaps,
        }


def to_date(value) -> date | None:
    """
    Coerce a date, datetime or ISO string to a calendar day.

    Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_date(value)
            if parsed is None:
                parsed_dt = parse_datetime(value)
                parsed = parsed_dt.date() if parsed_dt else None
        except ValueError:
            return None
        return parsed
    return None


def _read(event, keys):
    for key in keys:
        if isinstance(event, dict):
            if event.get(key) is not None:
                return event[key]
        elif getattr(event, key, None) is not None:
            return getattr(event, key)
    return None


def event_range(event) -> tuple[date, date] | None:
    """
    Extract the closed day range of an embedded or materialized event.

    Returns None when either bound is missing or unparseable, or when the
    end falls before the start. Such events never count as overlapping.
    """
    start = to_date(_read(event, _START_KEYS))
    end = to_date(_read(event, _END_KEYS))
    if start is None or end is None:
        return None
    if end < start:
        return None
    return start, end


def ranges_overlap(range_a, range_b) -> bool:
    """Closed ranges [s1, e1] and [s2, e2] overlap iff s1 <= e2 and s2 <= e1."""
    if range_a is None or range_b is None:
        return False
    start_a, end_a = range_a
    start_b, end_b = range_b
    return start_a <= end_b and start_b <= end_a


def events_overlap(event_a, event_b) -> bool:
    return ranges_overlap(event_range(event_a), event_range(event_b))


def _event_id(event):
    if isinstance(event, dict):
        return event.get("id")
    return getattr(event, "pk", None)


def serialize_overlap_event(event) -> dict:
    """Describe one side of a conflicting pair."""
    event_id = _event_id(event)
    return {
        "event_id": str(event_id) if event_id is not None else None,
        "title": _read(event, ("title",)) or "Untitled event",
        "category": _read(event, ("category",)) or EventCategory.ACADEMIC.value,
        "start_date": _read(event, _START_KEYS),
        "end_date": _read(event, _END_KEYS),
        "estimated_budget": _read(event, ("estimated_budget", "estimatedBudget")) or 0,
    }


def analyze_overlaps(events, candidate=None, exclude_event_id=None) -> OverlapAnalysis:
    """
    Find conflicting date ranges.

    Args:
        events: Embedded event dicts or event instances
        candidate: If given, compare only this event against ``events``;
            otherwise compare every pair in ``events``
        exclude_event_id: Drop the event with this id before comparing
            (the one being edited)

    Returns:
        OverlapAnalysis listing every conflicting pair
    """
    events = list(events or [])
    if exclude_event_id not in (None, ""):
        events = [e for e in events if str(_event_id(e) or "") != str(exclude_event_id)]

    analysis = OverlapAnalysis()

    if candidate is not None:
        for existing in events:
            if events_overlap(candidate, existing):
                analysis.overlaps.append({
                    "event_a": serialize_overlap_event(candidate),
                    "event_b": serialize_overlap_event(existing),
                })
        return analysis

    for i in range(len(events)):
        for j in range(i + 1, len(events)):
            if events_overlap(events[i], events[j]):
                analysis.overlaps.append({
                    "event_a": serialize_overlap_event(events[i]),
                    "event_b": serialize_overlap_event(events[j]),
                })

    return analysis
