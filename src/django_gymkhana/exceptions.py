"""Custom exceptions for django-gymkhana.

These are expected business-rule outcomes. Service functions raise them
internally; ``results.service_operation`` turns them into failed
``ServiceResult`` objects so they never cross the package boundary.
"""


class GymkhanaError(Exception):
    """Base exception for workflow errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFound(GymkhanaError):
    """Raised when the requested entity does not exist."""

    status_code = 404

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found")


class Forbidden(GymkhanaError):
    """Raised when the actor may not perform the operation."""

    status_code = 403


class BadRequest(GymkhanaError):
    """Raised when the entity is in the wrong state or the payload is invalid."""

    status_code = 400


class InvalidPayload(BadRequest):
    """Raised when payload validation collects one or more errors."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class ClockLoadError(Exception):
    """Raised when the configured clock cannot be loaded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load clock '{path}': {reason}")
