"""Structured results returned across the package boundary.

Every public service function returns a ``ServiceResult``. Expected
business outcomes (not found, forbidden, bad request) are reported via
``success=False`` and a status code; only unexpected failures raise.
"""

import functools
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.forms.models import model_to_dict

from .exceptions import GymkhanaError

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """Outcome of a service call.

    Attributes:
        success: Whether the operation succeeded
        status_code: HTTP-style status code (200, 201, 400, 403, 404)
        message: Human-readable, actionable message
        data: Payload (model instances, dicts, lists)
    """

    success: bool
    status_code: int = 200
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key):
        return self.data[key]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-safe representation (ISO-8601 dates, flattened models)."""
        payload = {
            "success": self.success,
            "statusCode": self.status_code,
            "message": self.message,
        }
        payload.update({key: _flatten(value) for key, value in self.data.items()})
        return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


def _flatten(value):
    if isinstance(value, models.Model):
        flat = model_to_dict(value)
        flat["id"] = value.pk
        for attr in ("created_at", "updated_at"):
            if hasattr(value, attr):
                flat[attr] = getattr(value, attr)
        return flat
    if isinstance(value, models.QuerySet):
        return [_flatten(item) for item in value]
    if isinstance(value, (list, tuple)):
        return [_flatten(item) for item in value]
    if isinstance(value, dict):
        return {key: _flatten(item) for key, item in value.items()}
    return value


def ok(message: str = "", status_code: int = 200, **data) -> ServiceResult:
    return ServiceResult(success=True, status_code=status_code, message=message, data=data)


def created(message: str = "", **data) -> ServiceResult:
    return ok(message, status_code=201, **data)


def failure(exc: GymkhanaError) -> ServiceResult:
    return ServiceResult(success=False, status_code=exc.status_code, message=exc.message)


def service_operation(func):
    """
    Convert workflow exceptions raised by ``func`` into failed results.

    Apply outside ``transaction.atomic`` so a business-rule failure rolls
    back whatever the call wrote before it failed. Exceptions that are not
    ``GymkhanaError`` propagate unchanged.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GymkhanaError as exc:
            logger.warning(f"{func.__name__} refused ({exc.status_code}): {exc.message}")
            return failure(exc)

    return wrapper
