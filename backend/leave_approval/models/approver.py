# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from leave_approval.models.base import UUIDBase
from leave_approval.models.enums import LeaveStatus


class LeaveApproverSlot(UUIDBase, table=True):
    """One approver's decision record within a leave request.

    Slots are created with the request and never added or removed afterwards.
    When someone other than ``approver_id`` decides, the slot keeps its
    approver and records the acting user in the ``proxy_actor_*`` columns.
    """

    __tablename__ = "leave_approver_slot"
    __table_args__ = (sa.UniqueConstraint("request_id", "approver_id", name="uq_slot_request_approver"),)

    request_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_request.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    position: int
    step: int
    approver_id: uuid.UUID = Field(index=True)
    status: str = Field(default=LeaveStatus.PENDING, max_length=20, sa_column_kwargs={"server_default": "pending"})
    decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    proxy_actor_id: uuid.UUID | None = None
    proxy_actor_name: str | None = Field(default=None, max_length=255)
