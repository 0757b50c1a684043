# ruff: noqa: TC003
"""Persistence of leave requests and their approver slots.

Every write that changes a request is guarded by its ``version`` column:
the UPDATE/DELETE only matches the version the caller read, and a miss is
reported as ``ConcurrentModificationError`` so the caller can re-read and
reapply instead of merging partial state.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import col

from leave_approval.exceptions import ConcurrentModificationError, RequestNotFoundError
from leave_approval.models.approver import LeaveApproverSlot
from leave_approval.models.base import now_utc
from leave_approval.models.enums import LeaveStatus
from leave_approval.models.request import LeaveRequest


async def load_slots(session: AsyncSession, request_id: uuid.UUID) -> list[LeaveApproverSlot]:
    """Return a request's slots in approval order."""
    result = await session.execute(
        select(LeaveApproverSlot)
        .where(col(LeaveApproverSlot.request_id) == request_id)
        .order_by(col(LeaveApproverSlot.position))
    )
    return list(result.scalars().all())


async def load_slots_for(
    session: AsyncSession, request_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, list[LeaveApproverSlot]]:
    """Return slots for many requests at once, grouped by request."""
    grouped: dict[uuid.UUID, list[LeaveApproverSlot]] = {request_id: [] for request_id in request_ids}
    if not request_ids:
        return grouped
    result = await session.execute(
        select(LeaveApproverSlot)
        .where(col(LeaveApproverSlot.request_id).in_(request_ids))
        .order_by(col(LeaveApproverSlot.request_id), col(LeaveApproverSlot.position))
    )
    for slot in result.scalars().all():
        grouped[slot.request_id].append(slot)
    return grouped


async def load_request(session: AsyncSession, request_id: uuid.UUID) -> tuple[LeaveRequest, list[LeaveApproverSlot]]:
    """Fetch a request and its slots. Raises 404 if not found."""
    result = await session.execute(select(LeaveRequest).where(col(LeaveRequest.id) == request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise RequestNotFoundError
    return request, await load_slots(session, request.id)


async def add_request(
    session: AsyncSession, request: LeaveRequest, slots: Sequence[LeaveApproverSlot]
) -> None:
    """Stage a new request and its slots in the caller's transaction."""
    session.add(request)
    await session.flush()
    session.add_all(slots)
    await session.flush()


async def save_request_atomic(
    session: AsyncSession,
    request: LeaveRequest,
    expected_version: int,
    new_status: LeaveStatus,
) -> None:
    """Write the request's new status, failing if someone else wrote first.

    Pending slot changes are flushed in the same transaction by autoflush.
    On success the in-memory request reflects the stored row.
    """
    now = now_utc()
    result = await session.execute(
        update(LeaveRequest)
        .where(
            col(LeaveRequest.id) == request.id,
            col(LeaveRequest.version) == expected_version,
        )
        .values(status=new_status.value, version=expected_version + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:  # type: ignore[attr-defined]
        raise ConcurrentModificationError
    set_committed_value(request, "status", new_status.value)
    set_committed_value(request, "version", expected_version + 1)
    set_committed_value(request, "updated_at", now)


async def delete_request_atomic(session: AsyncSession, request: LeaveRequest, expected_version: int) -> None:
    """Delete a request and its slots, failing if it changed since it was read."""
    result = await session.execute(
        delete(LeaveRequest)
        .where(
            col(LeaveRequest.id) == request.id,
            col(LeaveRequest.version) == expected_version,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:  # type: ignore[attr-defined]
        raise ConcurrentModificationError
    await session.execute(
        delete(LeaveApproverSlot)
        .where(col(LeaveApproverSlot.request_id) == request.id)
        .execution_options(synchronize_session=False)
    )
