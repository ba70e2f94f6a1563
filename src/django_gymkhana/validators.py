"""
Pure payload validators and normalizers.

Validators return a list of error messages (empty = valid) so callers can
report every problem at once. Normalizers turn client payloads into the
shape stored on the models; they never trust client-computed totals.
"""

import re
import uuid
from decimal import Decimal, InvalidOperation

from .constants import (
    ACADEMIC_YEAR_PATTERN,
    AMOUNT_PLACES,
    MAX_AMOUNT,
    REJECTION_REASON_MAX_LENGTH,
    REJECTION_REASON_MIN_LENGTH,
    EventCategory,
)
from .overlap import to_date

CENT = Decimal(1).scaleb(-AMOUNT_PLACES)


def to_decimal(value, default=Decimal("0")) -> Decimal:
    """Coerce a number or numeric string to Decimal; junk becomes ``default``."""
    if value is None or value == "":
        return default
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    return number if number.is_finite() else default


def amount_limit_error(number: Decimal, label: str):
    """Return the reason a non-negative amount cannot be stored, or None."""
    if number > MAX_AMOUNT:
        return f"{label} cannot exceed {MAX_AMOUNT}"
    if number != number.quantize(CENT):
        return f"{label} cannot have more than {AMOUNT_PLACES} decimal places"
    return None


def _text(value) -> str:
    return str(value or "").strip()


def _pick(data: dict, *keys):
    for key in keys:
        if key in data:
            return data[key]
    return None


def validate_academic_year(value) -> list[str]:
    if not isinstance(value, str) or not re.fullmatch(ACADEMIC_YEAR_PATTERN, value):
        return ["Academic year must be in format YYYY-YY (e.g., 2025-26)"]
    return []


def validate_calendar_event(data) -> list[str]:
    """
    Validate one embedded calendar event (or amendment proposed change).

    Checks:
    - title present, 2-200 characters
    - category is a known EventCategory
    - start/end dates parse and end is not before start
    - estimated budget is a non-negative amount with at most two decimals
    - description present, at least 10 characters
    """
    if not isinstance(data, dict):
        return ["Event must be an object"]

    errors = []
    label = _text(data.get("title")) or "event"

    title = _text(data.get("title"))
    if not 2 <= len(title) <= 200:
        errors.append("Event title must be between 2 and 200 characters")

    if data.get("category") not in EventCategory.values:
        errors.append(
            f"Invalid category for '{label}'. Valid categories: {', '.join(EventCategory.values)}"
        )

    start = to_date(_pick(data, "start_date", "startDate"))
    end = to_date(_pick(data, "end_date", "endDate"))
    if start is None:
        errors.append(f"Start date is required for '{label}'")
    if end is None:
        errors.append(f"End date is required for '{label}'")
    if start and end and end < start:
        errors.append(f"End date cannot be before start date for '{label}'")

    budget = _pick(data, "estimated_budget", "estimatedBudget")
    if budget is None or to_decimal(budget, default=None) is None:
        errors.append(f"Estimated budget is required for '{label}'")
    elif to_decimal(budget) < 0:
        errors.append(f"Estimated budget cannot be negative for '{label}'")
    else:
        limit_error = amount_limit_error(to_decimal(budget), f"Estimated budget for '{label}'")
        if limit_error:
            errors.append(limit_error)

    description = _text(data.get("description"))
    if len(description) < 10:
        errors.append(f"Description for '{label}' must be at least 10 characters")

    return errors


def normalize_calendar_event(data: dict) -> dict:
    """Return the stored form of an embedded event, keeping or assigning its id."""
    start = to_date(_pick(data, "start_date", "startDate"))
    end = to_date(_pick(data, "end_date", "endDate"))
    return {
        "id": str(data.get("id") or uuid.uuid4()),
        "title": _text(data.get("title")),
        "category": data.get("category"),
        "start_date": start.isoformat() if start else None,
        "end_date": end.isoformat() if end else None,
        "estimated_budget": str(to_decimal(_pick(data, "estimated_budget", "estimatedBudget"))),
        "description": _text(data.get("description")),
    }


def validate_bill(bill) -> list[str]:
    if not isinstance(bill, dict):
        return ["Bill must be an object"]
    errors = []
    if not _text(bill.get("description")):
        errors.append("Bill description is required")
    amount = bill.get("amount")
    if amount is None or to_decimal(amount, default=None) is None:
        errors.append("Bill amount is required")
    elif to_decimal(amount) < 0:
        errors.append("Bill amount cannot be negative")
    else:
        limit_error = amount_limit_error(to_decimal(amount), "Bill amount")
        if limit_error:
            errors.append(limit_error)

    attachments = bill.get("attachments")
    if not isinstance(attachments, (list, tuple)) or len(attachments) == 0:
        errors.append("At least one attachment is required")
    else:
        for position, attachment in enumerate(attachments, start=1):
            if (
                not isinstance(attachment, dict)
                or not _text(attachment.get("filename"))
                or not _text(attachment.get("url"))
            ):
                errors.append(f"Attachment #{position} needs a filename and url")
    return errors


def validate_bills(bills, required: bool = True) -> list[str]:
    if bills is None:
        return ["At least one bill is required"] if required else []
    if not isinstance(bills, (list, tuple)) or (required and len(bills) == 0):
        return ["At least one bill is required"]
    errors = []
    for position, bill in enumerate(bills, start=1):
        errors.extend(f"Bill #{position}: {error}" for error in validate_bill(bill))
    if not errors and sum_bills(bills) > MAX_AMOUNT:
        errors.append(f"Total of bills cannot exceed {MAX_AMOUNT}")
    return errors


def normalize_bills(bills) -> list[dict]:
    normalized = []
    for bill in bills or []:
        bill_date = to_date(_pick(bill, "bill_date", "billDate"))
        normalized.append({
            "description": _text(bill.get("description")),
            "amount": str(to_decimal(bill.get("amount"))),
            "bill_number": _text(_pick(bill, "bill_number", "billNumber")),
            "bill_date": bill_date.isoformat() if bill_date else None,
            "vendor": _text(bill.get("vendor")),
            "attachments": [
                {"filename": _text(attachment["filename"]), "url": _text(attachment["url"])}
                for attachment in bill["attachments"]
            ],
        })
    return normalized


def sum_bills(bills) -> Decimal:
    """Total of bill amounts. The only source of an expense's total."""
    return sum((to_decimal(bill.get("amount")) for bill in bills or []), Decimal("0"))


PROPOSAL_FIELDS = {
    "proposal_text": "proposalText",
    "proposal_document_url": "proposalDocumentUrl",
    "external_guests_details": "externalGuestsDetails",
    "chief_guest_document_url": "chiefGuestDocumentUrl",
    "accommodation_required": "accommodationRequired",
    "has_registration_fee": "hasRegistrationFee",
    "registration_fee_amount": "registrationFeeAmount",
    "total_expected_income": "totalExpectedIncome",
    "total_expenditure": "totalExpenditure",
}
PROPOSAL_AMOUNTS = ("registration_fee_amount", "total_expected_income", "total_expenditure")


def proposal_fields(data) -> dict:
    """Pick the known proposal fields out of a payload, keyed by model field name."""
    if not isinstance(data, dict):
        return {}
    picked = {}
    for name, alias in PROPOSAL_FIELDS.items():
        if name in data or alias in data:
            picked[name] = _pick(data, name, alias)
    return picked


def validate_proposal(data, partial: bool = False) -> list[str]:
    """
    Validate a proposal payload.

    With ``partial`` only the supplied fields are checked, but at least one
    field must be present.
    """
    fields = proposal_fields(data)
    if partial and not fields:
        return ["Provide at least one proposal field to update"]

    errors = []
    if not partial or "proposal_text" in fields:
        text = str(fields.get("proposal_text") or "").strip()
        if not 10 <= len(text) <= 5000:
            errors.append("Proposal text must be between 10 and 5000 characters")

    for name in PROPOSAL_AMOUNTS:
        value = fields.get(name)
        required = not partial and name != "registration_fee_amount"
        if name == "registration_fee_amount" and not partial and fields.get("has_registration_fee"):
            required = True
        if value is None:
            if required:
                errors.append(f"{PROPOSAL_FIELDS[name]} is required")
            continue
        number = to_decimal(value, default=None)
        if number is None:
            errors.append(f"{PROPOSAL_FIELDS[name]} must be a number")
        elif number < 0:
            errors.append(f"{PROPOSAL_FIELDS[name]} cannot be negative")
        else:
            limit_error = amount_limit_error(number, PROPOSAL_FIELDS[name])
            if limit_error:
                errors.append(limit_error)

    return errors


def validate_rejection_reason(reason) -> list[str]:
    """A rejection must tell the submitter what to fix."""
    text = _text(reason)
    if not REJECTION_REASON_MIN_LENGTH <= len(text) <= REJECTION_REASON_MAX_LENGTH:
        return [
            f"Rejection reason must be between {REJECTION_REASON_MIN_LENGTH} "
            f"and {REJECTION_REASON_MAX_LENGTH} characters"
        ]
    return []
