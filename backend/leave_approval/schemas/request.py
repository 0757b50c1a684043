# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from leave_approval.models.enums import ApprovalStep, LeaveKind, LeaveStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeavePayload(BaseModel):
    """Request body for submitting a new leave request."""

    leave_kind: LeaveKind = LeaveKind.VACATION
    date: date
    reason: str = Field(min_length=1, max_length=2000)
    group_ids: list[uuid.UUID] = Field(default_factory=list)
    approver_ids: list[uuid.UUID] = Field(default_factory=list)

    @field_validator("reason")
    @classmethod
    def _reason_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "reason must not be blank"
            raise ValueError(msg)
        return value


class DecisionPayload(BaseModel):
    """Request body for approve/reject actions.

    ``approver_id`` selects the slot to decide. It defaults to the acting
    user; naming someone else makes it a proxy decision.
    """

    approver_id: uuid.UUID | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ProxyInfo(BaseModel):
    """Who actually decided a slot on the approver's behalf."""

    actor_id: uuid.UUID
    actor_name: str


class ApproverSlotResponse(BaseModel):
    """One approver's decision record."""

    step: ApprovalStep
    approver_id: uuid.UUID
    status: LeaveStatus
    decided_at: datetime | None = None
    proxy: ProxyInfo | None = None


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    requester_id: uuid.UUID
    leave_kind: LeaveKind
    date: date
    reason: str
    status: LeaveStatus
    version: int
    approvers: list[ApproverSlotResponse]
    created_at: datetime
    updated_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int
