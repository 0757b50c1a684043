# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from leave_approval.exceptions import DuplicateDateRequestError
from leave_approval.models.enums import LeaveStatus
from leave_approval.models.request import LeaveRequest


def check_no_conflict(
    requester_id: uuid.UUID,
    date: datetime.date,
    existing_requests: Iterable[LeaveRequest],
) -> None:
    """Raise if the requester already has a live request for ``date``.

    Rejected requests do not block a new submission for the same day.
    """
    for existing in existing_requests:
        if (
            existing.requester_id == requester_id
            and existing.date == date
            and existing.status != LeaveStatus.REJECTED
        ):
            raise DuplicateDateRequestError(
                f"A {existing.status} leave request already exists for {date.isoformat()}; "
                "cancel it or choose another date"
            )


async def ensure_no_conflict(session: AsyncSession, requester_id: uuid.UUID, date: datetime.date) -> None:
    """Load the requester's requests for ``date`` and run the duplicate check."""
    result = await session.execute(
        select(LeaveRequest).where(
            col(LeaveRequest.requester_id) == requester_id,
            col(LeaveRequest.date) == date,
        )
    )
    check_no_conflict(requester_id, date, result.scalars().all())
