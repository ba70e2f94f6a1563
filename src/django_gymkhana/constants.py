"""Stable constants for the Gymkhana approval workflows.

Status and stage strings are stored in the database and in the approval log.
DO NOT RENAME - existing rows and audit history depend on them.
"""

from decimal import Decimal

from django.db import models


class Roles:
    """Top-level roles supplied by the auth collaborator."""

    ADMIN = "Admin"
    SUPER_ADMIN = "Super Admin"
    GYMKHANA = "Gymkhana"

    ADMIN_LEVEL = (ADMIN, SUPER_ADMIN)


class Stage(models.TextChoices):
    """Named approver roles. A stage is also the sub-role that acts at it."""

    GS_GYMKHANA = "GS Gymkhana", "GS Gymkhana"
    PRESIDENT_GYMKHANA = "President Gymkhana", "President Gymkhana"
    STUDENT_AFFAIRS = "Student Affairs", "Student Affairs"
    JOINT_REGISTRAR_SA = "Joint Registrar SA", "Joint Registrar SA"
    ASSOCIATE_DEAN_SA = "Associate Dean SA", "Associate Dean SA"
    DEAN_SA = "Dean SA", "Dean SA"


# Stages Student Affairs may route an approval through, in canonical order.
POST_STUDENT_AFFAIRS_APPROVERS = (
    Stage.JOINT_REGISTRAR_SA.value,
    Stage.ASSOCIATE_DEAN_SA.value,
    Stage.DEAN_SA.value,
)


class CalendarStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING_PRESIDENT = "pending_president", "Pending President"
    PENDING_STUDENT_AFFAIRS = "pending_student_affairs", "Pending Student Affairs"
    PENDING_JOINT_REGISTRAR = "pending_joint_registrar", "Pending Joint Registrar"
    PENDING_ASSOCIATE_DEAN = "pending_associate_dean", "Pending Associate Dean"
    PENDING_DEAN = "pending_dean", "Pending Dean"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class ProposalStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING_PRESIDENT = "pending_president", "Pending President"
    PENDING_STUDENT_AFFAIRS = "pending_student_affairs", "Pending Student Affairs"
    PENDING_JOINT_REGISTRAR = "pending_joint_registrar", "Pending Joint Registrar"
    PENDING_ASSOCIATE_DEAN = "pending_associate_dean", "Pending Associate Dean"
    PENDING_DEAN = "pending_dean", "Pending Dean"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    REVISION_REQUESTED = "revision_requested", "Revision Requested"


class EventStatus(models.TextChoices):
    UPCOMING = "upcoming", "Upcoming"
    PROPOSAL_PENDING = "proposal_pending", "Proposal Pending"
    PROPOSAL_SUBMITTED = "proposal_submitted", "Proposal Submitted"
    PROPOSAL_APPROVED = "proposal_approved", "Proposal Approved"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class ExpenseStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"


class AmendmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class AmendmentType(models.TextChoices):
    EDIT = "edit", "Edit Event"
    NEW_EVENT = "new_event", "New Event"


class EventCategory(models.TextChoices):
    ACADEMIC = "academic", "Academic"
    CULTURAL = "cultural", "Cultural"
    TECHNICAL = "technical", "Technical"
    SPORTS = "sports", "Sports"


class ApprovalAction(models.TextChoices):
    SUBMITTED = "submitted", "Submitted"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    REVISION_REQUESTED = "revision_requested", "Revision Requested"


class EntityKind(models.TextChoices):
    """Tag of the entity an approval log entry refers to."""

    CALENDAR = "Calendar", "Activity Calendar"
    PROPOSAL = "Proposal", "Event Proposal"
    EXPENSE = "Expense", "Event Expense"
    AMENDMENT = "Amendment", "Calendar Amendment"


# =============================================================================
# Routing tables
# =============================================================================
# Calendar and proposal statuses share their pending_* values, so one set of
# tables routes both.

# Sub-role required to act on an entity in a given status.
STATUS_TO_APPROVER = {
    "pending_president": Stage.PRESIDENT_GYMKHANA.value,
    "pending_student_affairs": Stage.STUDENT_AFFAIRS.value,
    "pending_joint_registrar": Stage.JOINT_REGISTRAR_SA.value,
    "pending_associate_dean": Stage.ASSOCIATE_DEAN_SA.value,
    "pending_dean": Stage.DEAN_SA.value,
}

# Status an entity sits in while waiting on a stage.
APPROVER_TO_STATUS = {stage: status for status, stage in STATUS_TO_APPROVER.items()}

# Static next status after a stage approves. Used when no custom chain exists.
STAGE_TO_STATUS = {
    Stage.GS_GYMKHANA.value: "pending_president",
    Stage.PRESIDENT_GYMKHANA.value: "pending_student_affairs",
    Stage.STUDENT_AFFAIRS.value: "pending_joint_registrar",
    Stage.JOINT_REGISTRAR_SA.value: "pending_associate_dean",
    Stage.ASSOCIATE_DEAN_SA.value: "pending_dean",
    Stage.DEAN_SA.value: "approved",
}

APPROVED = "approved"

# Sub-role -> proposal status that sub-role reviews.
SUBROLE_TO_PENDING_STATUS = {
    Stage.PRESIDENT_GYMKHANA.value: ProposalStatus.PENDING_PRESIDENT,
    Stage.STUDENT_AFFAIRS.value: ProposalStatus.PENDING_STUDENT_AFFAIRS,
    Stage.JOINT_REGISTRAR_SA.value: ProposalStatus.PENDING_JOINT_REGISTRAR,
    Stage.ASSOCIATE_DEAN_SA.value: ProposalStatus.PENDING_ASSOCIATE_DEAN,
    Stage.DEAN_SA.value: ProposalStatus.PENDING_DEAN,
}

ACADEMIC_YEAR_PATTERN = r"^\d{4}-\d{2}$"

# Largest single amount accepted in a payload. Sums and differences of two
# such amounts still fit a DecimalField(max_digits=12, decimal_places=2).
MAX_AMOUNT = Decimal("999999999.99")
AMOUNT_PLACES = 2

REJECTION_REASON_MIN_LENGTH = 10
REJECTION_REASON_MAX_LENGTH = 1000
