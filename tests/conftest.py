"""Shared fixtures for django-gymkhana tests."""

from datetime import date
from decimal import Decimal

import pytest

from django_gymkhana.actors import Actor
from django_gymkhana.clock import FixedClock
from django_gymkhana.conf import clear_clock_cache
from django_gymkhana.constants import Roles, Stage
from django_gymkhana.models import GymkhanaEvent


@pytest.fixture(autouse=True)
def clear_clock():
    """Clear clock cache before and after each test."""
    clear_clock_cache()
    yield
    clear_clock_cache()


@pytest.fixture
def admin():
    return Actor(id="admin-1", role=Roles.ADMIN)


@pytest.fixture
def super_admin():
    return Actor(id="super-1", role=Roles.SUPER_ADMIN)


@pytest.fixture
def gs():
    return Actor(id="gs-1", role=Roles.GYMKHANA, sub_role=Stage.GS_GYMKHANA.value)


@pytest.fixture
def president():
    return Actor(id="president-1", role=Roles.GYMKHANA, sub_role=Stage.PRESIDENT_GYMKHANA.value)


@pytest.fixture
def student_affairs():
    return Actor(id="sa-1", role=Roles.ADMIN, sub_role=Stage.STUDENT_AFFAIRS.value)


@pytest.fixture
def joint_registrar():
    return Actor(id="jr-1", role=Roles.ADMIN, sub_role=Stage.JOINT_REGISTRAR_SA.value)


@pytest.fixture
def associate_dean():
    return Actor(id="ad-1", role=Roles.ADMIN, sub_role=Stage.ASSOCIATE_DEAN_SA.value)


@pytest.fixture
def dean():
    return Actor(id="dean-1", role=Roles.ADMIN, sub_role=Stage.DEAN_SA.value)


@pytest.fixture
def outsider():
    return Actor(id="member-1", role=Roles.GYMKHANA)


@pytest.fixture
def today():
    return date(2025, 9, 1)


@pytest.fixture
def clock(today):
    return FixedClock(today)


@pytest.fixture
def standard_event(db):
    """Standard event starting 2025-10-10; proposal window opens 2025-09-19."""
    return GymkhanaEvent.objects.create(
        title="Inter-hostel Dance Night",
        category="cultural",
        scheduled_start_date=date(2025, 10, 10),
        scheduled_end_date=date(2025, 10, 11),
        estimated_budget=Decimal("50000"),
        description="Annual inter-hostel dance competition.",
    )
