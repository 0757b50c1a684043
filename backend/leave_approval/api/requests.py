# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import datetime
import uuid

from fastapi import APIRouter, BackgroundTasks, Query, Response, status

from leave_approval.api.deps import AuthDep, AuthorizationDep
from leave_approval.db import SessionDep
from leave_approval.models.enums import LeaveStatus
from leave_approval.schemas.request import (
    DecisionPayload,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    SubmitLeavePayload,
)
from leave_approval.services import request as request_service
from leave_approval.services.notification import run_fanout
from leave_approval.services.workflow import WorkflowOutcome

requests_router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


def _respond(outcome: WorkflowOutcome, background_tasks: BackgroundTasks) -> LeaveRequestResponse:
    """Schedule notification fanout after the response and return the stored request."""
    background_tasks.add_task(run_fanout, outcome.event)
    return outcome.event.request


@requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_request(
    payload: SubmitLeavePayload,
    session: SessionDep,
    auth: AuthDep,
    background_tasks: BackgroundTasks,
) -> LeaveRequestResponse:
    """Submit a new leave request for the calling user."""
    outcome = await request_service.submit_request(session, auth, payload)
    return _respond(outcome, background_tasks)


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_requests(
    session: SessionDep,
    auth: AuthDep,
    requester_id: uuid.UUID | None = Query(default=None),
    approver_id: uuid.UUID | None = Query(default=None),
    awaiting_decision: bool | None = Query(default=None, description="Only with approver_id"),
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    date_from: datetime.date | None = Query(default=None),
    date_to: datetime.date | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests with optional filters."""
    return await request_service.list_requests(
        session,
        requester_id=requester_id,
        approver_id=approver_id,
        awaiting_decision=awaiting_decision,
        status_filter=status_filter,
        date_from=date_from,
        date_to=date_to,
        offset=offset,
        limit=limit,
    )


@requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request and its approval status."""
    return await request_service.get_request(session, request_id)


@requests_router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_request(
    request_id: uuid.UUID,
    session: SessionDep,
    authz: AuthorizationDep,
    background_tasks: BackgroundTasks,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Approve the caller's slot, or another approver's slot as a proxy."""
    approver_id = payload.approver_id if payload and payload.approver_id else authz.user_id
    outcome = await request_service.decide_request(session, authz, request_id, approver_id, approved=True)
    return _respond(outcome, background_tasks)


@requests_router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_request(
    request_id: uuid.UUID,
    session: SessionDep,
    authz: AuthorizationDep,
    background_tasks: BackgroundTasks,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Reject the caller's slot, or another approver's slot as a proxy."""
    approver_id = payload.approver_id if payload and payload.approver_id else authz.user_id
    outcome = await request_service.decide_request(session, authz, request_id, approver_id, approved=False)
    return _respond(outcome, background_tasks)


@requests_router.post("/{request_id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    background_tasks: BackgroundTasks,
) -> Response:
    """Cancel a pending leave request."""
    outcome = await request_service.cancel_request(session, auth, request_id)
    background_tasks.add_task(run_fanout, outcome.event)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
