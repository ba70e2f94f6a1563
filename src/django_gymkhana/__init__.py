"""
django-gymkhana: Event-approval workflows for a student Gymkhana.

Provides:
- ActivityCalendar: Annual calendar approved through a dynamic chain
- GymkhanaEvent: Events materialized from approved calendars or mega series
- EventProposal / EventExpense: Per-event proposal and bill workflows
- CalendarAmendment: Edits and additions after a calendar is locked
- ApprovalLog: Append-only audit trail shared by every workflow

Service modules (``calendar_service``, ``proposal_service``,
``expense_service``, ``amendment_service``, ``event_service``) return
``ServiceResult`` objects instead of raising for business-rule failures.
"""

__version__ = "0.1.0"
