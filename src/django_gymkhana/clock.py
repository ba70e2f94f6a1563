"""Clock abstraction for due-date and window checks."""

from datetime import date, datetime

from django.utils import timezone


class BaseClock:
    """
    Source of wall-clock time for the workflows.

    Services never call the system time directly; they ask a clock.
    Subclass this and point ``GYMKHANA_CLOCK`` at it, or pass an
    instance as ``clock=`` to any time-dependent service.
    """

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return timezone.localdate(self.now())


class SystemClock(BaseClock):
    """Clock backed by ``django.utils.timezone.now``."""

    def now(self) -> datetime:
        return timezone.now()


class FixedClock(BaseClock):
    """Clock frozen at a given moment. Accepts a date or an aware datetime."""

    def __init__(self, moment):
        if isinstance(moment, datetime):
            self._now = moment
        else:
            self._now = timezone.make_aware(datetime(moment.year, moment.month, moment.day, 12))

    def now(self) -> datetime:
        return self._now
