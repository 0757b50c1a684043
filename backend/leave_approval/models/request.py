# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_approval.models.base import TimestampMixin, UUIDBase
from leave_approval.models.enums import LeaveStatus


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """A single-day leave request and its aggregate approval status.

    ``status`` mirrors ``derive_status`` over the request's approver slots and
    is only ever written together with them. ``version`` is bumped on every
    write so concurrent decisions can detect each other.
    """

    __tablename__ = "leave_request"
    __table_args__ = (sa.Index("ix_leave_request_requester_date", "requester_id", "date"),)

    requester_id: uuid.UUID = Field(index=True)
    leave_kind: str = Field(max_length=20)
    date: datetime.date = Field(index=True)
    reason: str = Field(max_length=2000)
    status: str = Field(
        default=LeaveStatus.PENDING, max_length=20, index=True, sa_column_kwargs={"server_default": "pending"}
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
