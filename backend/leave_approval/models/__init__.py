from sqlmodel import SQLModel

from leave_approval.models.approver import LeaveApproverSlot
from leave_approval.models.audit import AuditLog
from leave_approval.models.base import TimestampMixin, UUIDBase
from leave_approval.models.enums import (
    ApprovalStep,
    AuditAction,
    AuditEntityType,
    DeliveryStatus,
    LeaveKind,
    LeaveStatus,
    NotificationVariant,
    RecipientRole,
    WorkflowEventKind,
)
from leave_approval.models.request import LeaveRequest

__all__ = [
    "ApprovalStep",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "DeliveryStatus",
    "LeaveApproverSlot",
    "LeaveKind",
    "LeaveRequest",
    "LeaveStatus",
    "NotificationVariant",
    "RecipientRole",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "WorkflowEventKind",
]
