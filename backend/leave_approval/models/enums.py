from __future__ import annotations

import enum


class LeaveKind(enum.StrEnum):
    """What the employee is asking for."""

    VACATION = "vacation"
    LATE = "late"
    EARLY = "early"


class LeaveStatus(enum.StrEnum):
    """Status of a single approver slot and, derived from those, of the whole request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING


class ApprovalStep(enum.IntEnum):
    """Tier of the approval chain a slot belongs to."""

    GROUP = 1
    FINAL = 2


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_REQUEST = "LEAVE_REQUEST"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"


class WorkflowEventKind(enum.StrEnum):
    """What happened to a request, as seen by the notification fanout."""

    SUBMITTED = "SUBMITTED"
    DECIDED = "DECIDED"
    CANCELLED = "CANCELLED"


class NotificationVariant(enum.StrEnum):
    """Message variant sent to a stakeholder."""

    SUBMITTED = "submitted"
    PROGRESS = "progress"
    AWAITING_FINAL_APPROVAL = "awaiting_final_approval"
    FINAL_APPROVED = "final_approved"
    FINAL_REJECTED = "final_rejected"
    CANCELLED = "cancelled"


class RecipientRole(enum.StrEnum):
    """Why a stakeholder receives a notification."""

    REQUESTER = "requester"
    APPROVER = "approver"
    FINAL_APPROVER = "final_approver"
    OBSERVER = "observer"


class DeliveryStatus(enum.StrEnum):
    """Outcome reported by a notification transport."""

    DELIVERED = "delivered"
    FAILED = "failed"
