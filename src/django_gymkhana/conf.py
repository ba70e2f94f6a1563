"""Configuration helpers for django-gymkhana."""

from functools import lru_cache
from importlib import import_module

from django.conf import settings

from .exceptions import ClockLoadError


DEFAULTS = {
    "PROPOSAL_DUE_DAYS": 21,
    "PENDING_PROPOSALS_DAYS": 21,
    "PAGE_SIZE": 10,
    "MAX_PAGE_SIZE": 100,
    "CLOCK": "django_gymkhana.clock.SystemClock",
}


def get_setting(name: str, default=None):
    """Get a setting with GYMKHANA_ prefix, falling back to package defaults."""
    if default is None:
        default = DEFAULTS.get(name)
    return getattr(settings, f"GYMKHANA_{name}", default)


@lru_cache(maxsize=16)
def load_clock(dotted_path: str):
    """
    Import and instantiate a clock from dotted path.

    Raises ClockLoadError for bad imports or non-subclass clocks.
    """
    from .clock import BaseClock

    try:
        module_path, class_name = dotted_path.rsplit(".", 1)
    except ValueError:
        raise ClockLoadError(dotted_path, "Invalid dotted path format")

    try:
        module = import_module(module_path)
    except ImportError as e:
        raise ClockLoadError(dotted_path, f"Cannot import module: {e}")

    try:
        clock_class = getattr(module, class_name)
    except AttributeError:
        raise ClockLoadError(dotted_path, f"Class '{class_name}' not found in module")

    if not isinstance(clock_class, type) or not issubclass(clock_class, BaseClock):
        raise ClockLoadError(dotted_path, f"'{class_name}' must be a subclass of BaseClock")

    return clock_class()


def get_clock(clock=None):
    """Return the explicit clock if given, else the configured one."""
    if clock is not None:
        return clock
    return load_clock(get_setting("CLOCK"))


def clear_clock_cache():
    """Clear the clock loading cache. Useful for testing."""
    load_clock.cache_clear()


def proposal_due_days() -> int:
    return int(get_setting("PROPOSAL_DUE_DAYS"))


def page_bounds(page, limit) -> tuple[int, int]:
    """Clamp page/limit query values the way list endpoints expect."""
    try:
        page = max(1, int(page or 1))
    except (TypeError, ValueError):
        page = 1
    max_limit = int(get_setting("MAX_PAGE_SIZE"))
    try:
        limit = int(limit or get_setting("PAGE_SIZE"))
    except (TypeError, ValueError):
        limit = int(get_setting("PAGE_SIZE"))
    return page, min(max_limit, max(1, limit))
