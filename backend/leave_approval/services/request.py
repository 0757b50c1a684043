# ruff: noqa: TC003
from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_approval.config import get_settings
from leave_approval.exceptions import (
    ConcurrentModificationError,
    InvalidListFilterError,
    NotAuthorizedError,
    RequestAlreadyTerminalError,
)
from leave_approval.models.approver import LeaveApproverSlot
from leave_approval.models.base import now_utc
from leave_approval.models.enums import (
    AuditAction,
    AuditEntityType,
    LeaveKind,
    LeaveStatus,
    WorkflowEventKind,
)
from leave_approval.models.request import LeaveRequest
from leave_approval.schemas.request import LeaveRequestListResponse, LeaveRequestResponse
from leave_approval.services.approvers import find_final_approver, resolve_approvers
from leave_approval.services.audit import request_audit_snapshot, write_audit_log
from leave_approval.services.conflicts import ensure_no_conflict
from leave_approval.services.directory import (
    GroupDirectory,
    UserDirectory,
    get_group_directory,
    get_user_directory,
)
from leave_approval.services.store import (
    add_request,
    delete_request_atomic,
    load_request,
    load_slots_for,
    save_request_atomic,
)
from leave_approval.services.workflow import (
    Decision,
    WorkflowEvent,
    WorkflowOutcome,
    apply_decision,
    derive_status,
    slot_to_response,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_approval.schemas.auth import AuthContext, AuthorizationContext
    from leave_approval.schemas.request import SubmitLeavePayload

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(
    request: LeaveRequest,
    slots: Sequence[LeaveApproverSlot],
    status: LeaveStatus | None = None,
) -> LeaveRequestResponse:
    """Map a request model and its slots to the response schema."""
    return LeaveRequestResponse(
        id=request.id,
        requester_id=request.requester_id,
        leave_kind=LeaveKind(request.leave_kind),
        date=request.date,
        reason=request.reason,
        status=status or LeaveStatus(request.status),
        version=request.version,
        approvers=[slot_to_response(slot) for slot in slots],
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def _derived_status(request: LeaveRequest, slots: Sequence[LeaveApproverSlot]) -> LeaveStatus:
    """Status computed from the slots; a disagreeing stored column is logged, not trusted."""
    derived = derive_status(slots)
    if derived != request.status:
        logger.error(
            "Leave request %s stored status %s disagrees with its approvers (%s)",
            request.id,
            request.status,
            derived,
        )
    return derived


async def _with_retries(
    session: AsyncSession,
    request_id: uuid.UUID,
    operation: Callable[[], Awaitable[WorkflowOutcome]],
) -> WorkflowOutcome:
    """Run a read-modify-write operation, re-running it on a version conflict.

    Each attempt starts from a clean transaction, so a retry re-reads the
    request and reapplies the change rather than merging partial state.
    """
    attempts = max(1, get_settings().decide_max_retries)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ConcurrentModificationError:
            await session.rollback()
            if attempt == attempts:
                logger.warning("Request %s still conflicting after %d attempts", request_id, attempts)
                raise
            logger.info("Request %s modified concurrently, retrying (%d/%d)", request_id, attempt, attempts)
    raise ConcurrentModificationError


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitLeavePayload,
    groups: GroupDirectory | None = None,
    users: UserDirectory | None = None,
) -> WorkflowOutcome:
    """Submit a leave request with every approver slot pending.

    Flow:
    1. Resolve the final approver and the approver plan
    2. Reject a second live request for the same date
    3. Create the request and its slots
    4. Write audit log
    5. Commit
    """
    groups = groups or get_group_directory()
    users = users or get_user_directory()
    settings = get_settings()

    # 1. Resolve approvers.
    final_approver_id = await find_final_approver(users, settings.final_approver_role)
    plan = await resolve_approvers(groups, payload.group_ids, payload.approver_ids, final_approver_id)

    # 2. Duplicate-date guard.
    await ensure_no_conflict(session, auth.user_id, payload.date)

    # 3. Create request and slots.
    leave_request = LeaveRequest(
        requester_id=auth.user_id,
        leave_kind=payload.leave_kind.value,
        date=payload.date,
        reason=payload.reason,
        status=LeaveStatus.PENDING.value,
    )
    slots = plan.to_slots(leave_request.id)
    await add_request(session, leave_request, slots)

    # 4. Audit log.
    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=leave_request.id,
        action=AuditAction.SUBMIT,
        after_json=request_audit_snapshot(leave_request, slots),
    )

    # 5. Commit.
    await session.commit()

    response = _build_request_response(leave_request, slots)
    logger.info(
        "Leave request %s submitted by %s for %s with %d approver(s)",
        leave_request.id,
        auth.user_id,
        payload.date,
        len(slots),
    )
    return WorkflowOutcome(
        request=response,
        event=WorkflowEvent(
            kind=WorkflowEventKind.SUBMITTED,
            request=response,
            actor_id=auth.user_id,
            actor_name=auth.user_name,
        ),
    )


async def decide_request(
    session: AsyncSession,
    authz: AuthorizationContext,
    request_id: uuid.UUID,
    approver_id: uuid.UUID,
    approved: bool,
) -> WorkflowOutcome:
    """Record an approval or rejection for ``approver_id``'s slot.

    When ``authz.user_id`` differs from ``approver_id`` the decision is a
    proxy decision and requires the leave-manager capability or admin role.

    Flow (retried as a whole on a version conflict):
    1. Load request and slots, remember the version
    2. Apply the decision and recompute the aggregate status
    3. Write slot and status guarded by the version
    4. Audit log
    5. Commit
    """
    decision = Decision.from_context(authz, approver_id, approved)

    async def _attempt() -> WorkflowOutcome:
        # 1. Load.
        leave_request, slots = await load_request(session, request_id)
        expected_version = leave_request.version
        before_dict = request_audit_snapshot(leave_request, slots)

        # 2. Apply.
        transition = apply_decision(leave_request.status, slots, decision, authz, now_utc())

        # 3. Atomic write.
        await save_request_atomic(session, leave_request, expected_version, transition.new_status)

        # 4. Audit log.
        await write_audit_log(
            session,
            actor_id=authz.user_id,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            action=AuditAction.APPROVE if approved else AuditAction.REJECT,
            before_json=before_dict,
            after_json=request_audit_snapshot(leave_request, slots),
        )

        # 5. Commit.
        await session.commit()

        logger.info(
            "Leave request %s: %s %s slot of %s%s (%s -> %s)",
            leave_request.id,
            authz.user_id,
            decision.outcome,
            approver_id,
            " as proxy" if decision.is_proxy else "",
            transition.previous_status,
            transition.new_status,
        )
        response = _build_request_response(leave_request, slots)
        return WorkflowOutcome(
            request=response,
            event=WorkflowEvent(
                kind=WorkflowEventKind.DECIDED,
                request=response,
                actor_id=authz.user_id,
                actor_name=authz.user_name,
                transition=transition,
            ),
        )

    return await _with_retries(session, request_id, _attempt)


async def cancel_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> WorkflowOutcome:
    """Withdraw a pending request, deleting it and its slots.

    The requester or an admin can cancel. Approved or rejected requests
    cannot be cancelled.
    """
    settings = get_settings()

    async def _attempt() -> WorkflowOutcome:
        leave_request, slots = await load_request(session, request_id)

        if auth.user_id != leave_request.requester_id and auth.role != settings.admin_role:
            raise NotAuthorizedError("Only the requester or an administrator can cancel this leave request")

        status = LeaveStatus(leave_request.status)
        if status.is_terminal:
            raise RequestAlreadyTerminalError(f"The leave request is already {status} and can no longer be cancelled")

        snapshot = _build_request_response(leave_request, slots)
        before_dict = request_audit_snapshot(leave_request, slots)

        await delete_request_atomic(session, leave_request, leave_request.version)

        await write_audit_log(
            session,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            action=AuditAction.CANCEL,
            before_json=before_dict,
        )
        await session.commit()

        logger.info("Leave request %s cancelled by %s", request_id, auth.user_id)
        return WorkflowOutcome(
            request=None,
            event=WorkflowEvent(
                kind=WorkflowEventKind.CANCELLED,
                request=snapshot,
                actor_id=auth.user_id,
                actor_name=auth.user_name,
            ),
        )

    return await _with_retries(session, request_id, _attempt)


async def get_request(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequestResponse:
    """Get a single request, with its status re-derived from the slots."""
    leave_request, slots = await load_request(session, request_id)
    return _build_request_response(leave_request, slots, status=_derived_status(leave_request, slots))


async def list_requests(
    session: AsyncSession,
    requester_id: uuid.UUID | None = None,
    approver_id: uuid.UUID | None = None,
    awaiting_decision: bool | None = None,
    status_filter: LeaveStatus | None = None,
    date_from: datetime.date | None = None,
    date_to: datetime.date | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """List requests with optional filters, ordered by created_at DESC.

    ``approver_id`` restricts to requests where that user holds a slot;
    ``awaiting_decision`` further restricts to slots still pending (True) or
    already decided (False) and is only valid together with ``approver_id``.
    Each item's status is derived from its slots, as in ``get_request``.
    """
    if awaiting_decision is not None and approver_id is None:
        raise InvalidListFilterError

    filters = []

    if requester_id is not None:
        filters.append(col(LeaveRequest.requester_id) == requester_id)
    if status_filter is not None:
        filters.append(col(LeaveRequest.status) == status_filter.value)
    if date_from is not None:
        filters.append(col(LeaveRequest.date) >= date_from)
    if date_to is not None:
        filters.append(col(LeaveRequest.date) <= date_to)
    if approver_id is not None:
        slot_query = select(LeaveApproverSlot.request_id).where(col(LeaveApproverSlot.approver_id) == approver_id)
        if awaiting_decision is True:
            slot_query = slot_query.where(col(LeaveApproverSlot.status) == LeaveStatus.PENDING.value)
        elif awaiting_decision is False:
            slot_query = slot_query.where(col(LeaveApproverSlot.status) != LeaveStatus.PENDING.value)
        filters.append(col(LeaveRequest.id).in_(slot_query))

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*filters)
        .order_by(col(LeaveRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(result.scalars().all())
    slots_by_request = await load_slots_for(session, [r.id for r in requests])

    return LeaveRequestListResponse(
        items=[
            _build_request_response(r, slots_by_request[r.id], status=_derived_status(r, slots_by_request[r.id]))
            for r in requests
        ],
        total=total,
    )
