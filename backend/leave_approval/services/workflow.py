# ruff: noqa: TC003
"""Leave approval state machine.

A request's aggregate status is a pure function of its approver slots:

* any rejected slot, in any step, rejects the whole request;
* otherwise, the request is approved once every present step is fully
  approved (a step without slots never blocks);
* otherwise it is pending.

``apply_decision`` records one approver's decision on its slot and reports
the resulting transition. It never touches the database; persistence and
notification happen in the caller.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from leave_approval.exceptions import (
    NoPendingSlotForApproverError,
    ProxyNotAuthorizedError,
    RequestAlreadyTerminalError,
)
from leave_approval.models.approver import LeaveApproverSlot
from leave_approval.models.enums import ApprovalStep, LeaveStatus, WorkflowEventKind
from leave_approval.schemas.auth import AuthorizationContext
from leave_approval.schemas.request import ApproverSlotResponse, LeaveRequestResponse, ProxyInfo

logger = logging.getLogger(__name__)


class SlotState(Protocol):
    """The two slot attributes status derivation depends on."""

    step: int
    status: str


@dataclass(frozen=True)
class Decision:
    """An approve/reject action against one approver's slot."""

    slot_approver_id: uuid.UUID
    approved: bool
    acting_user_id: uuid.UUID
    acting_user_name: str

    @classmethod
    def from_context(cls, authz: AuthorizationContext, slot_approver_id: uuid.UUID, approved: bool) -> Decision:
        return cls(
            slot_approver_id=slot_approver_id,
            approved=approved,
            acting_user_id=authz.user_id,
            acting_user_name=authz.user_name,
        )

    @property
    def is_proxy(self) -> bool:
        return self.acting_user_id != self.slot_approver_id

    @property
    def outcome(self) -> LeaveStatus:
        return LeaveStatus.APPROVED if self.approved else LeaveStatus.REJECTED


@dataclass(frozen=True)
class WorkflowTransition:
    """Result of applying one decision to a request."""

    previous_status: LeaveStatus
    new_status: LeaveStatus
    slot: ApproverSlotResponse
    step1_completed: bool

    @property
    def is_proxy(self) -> bool:
        return self.slot.proxy is not None

    @property
    def is_terminal(self) -> bool:
        return self.new_status.is_terminal


# ---------------------------------------------------------------------------
# Status derivation
# ---------------------------------------------------------------------------


def _slots_in_step(slots: Sequence[SlotState], step: int) -> list[SlotState]:
    return [s for s in slots if s.step == step]


def step_approved(slots: Sequence[SlotState], step: int) -> bool:
    """True when every slot of ``step`` is approved. Vacuously true for an empty step."""
    in_step = _slots_in_step(slots, step)
    return sum(1 for s in in_step if s.status == LeaveStatus.APPROVED) == len(in_step)


def step_rejected(slots: Sequence[SlotState], step: int) -> bool:
    """True when any slot of ``step`` is rejected."""
    return any(s.status == LeaveStatus.REJECTED for s in _slots_in_step(slots, step))


def derive_status(slots: Sequence[SlotState]) -> LeaveStatus:
    """Compute a request's aggregate status from its slots."""
    steps = sorted({s.step for s in slots})
    if any(step_rejected(slots, step) for step in steps):
        return LeaveStatus.REJECTED
    if all(step_approved(slots, step) for step in steps):
        return LeaveStatus.APPROVED
    return LeaveStatus.PENDING


def slot_to_response(slot: LeaveApproverSlot) -> ApproverSlotResponse:
    """Map a slot model to its response schema."""
    proxy = None
    if slot.proxy_actor_id is not None:
        proxy = ProxyInfo(actor_id=slot.proxy_actor_id, actor_name=slot.proxy_actor_name or "")
    return ApproverSlotResponse(
        step=ApprovalStep(slot.step),
        approver_id=slot.approver_id,
        status=LeaveStatus(slot.status),
        decided_at=slot.decided_at,
        proxy=proxy,
    )


# ---------------------------------------------------------------------------
# Decision application
# ---------------------------------------------------------------------------


def apply_decision(
    request_status: LeaveStatus | str,
    slots: Sequence[LeaveApproverSlot],
    decision: Decision,
    authz: AuthorizationContext,
    now: datetime,
) -> WorkflowTransition:
    """Record ``decision`` on the matching pending slot and recompute the status.

    Checks, in order: proxy authorization, request not yet terminal, a pending
    slot exists for the approver. Mutates that slot in place.
    """
    if decision.is_proxy and not authz.can_act_as_proxy:
        logger.warning(
            "Proxy decision refused: user %s tried to decide for approver %s without leave-manager capability",
            decision.acting_user_id,
            decision.slot_approver_id,
        )
        raise ProxyNotAuthorizedError

    previous_status = LeaveStatus(request_status)
    if previous_status.is_terminal:
        raise RequestAlreadyTerminalError(f"The leave request is already {previous_status}; no further decisions")

    slot = next(
        (s for s in slots if s.approver_id == decision.slot_approver_id and s.status == LeaveStatus.PENDING),
        None,
    )
    if slot is None:
        raise NoPendingSlotForApproverError

    step1_was_approved = step_approved(slots, ApprovalStep.GROUP)

    slot.status = decision.outcome
    slot.decided_at = now
    if decision.is_proxy:
        slot.proxy_actor_id = decision.acting_user_id
        slot.proxy_actor_name = decision.acting_user_name

    new_status = derive_status(slots)
    final_pending = any(
        s.step == ApprovalStep.FINAL and s.status == LeaveStatus.PENDING for s in slots
    )
    step1_completed = (
        not step1_was_approved
        and step_approved(slots, ApprovalStep.GROUP)
        and new_status == LeaveStatus.PENDING
        and final_pending
    )

    return WorkflowTransition(
        previous_status=previous_status,
        new_status=new_status,
        slot=slot_to_response(slot),
        step1_completed=step1_completed,
    )


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowEvent:
    """Something that happened to a request, emitted after it was committed."""

    kind: WorkflowEventKind
    request: LeaveRequestResponse
    actor_id: uuid.UUID
    actor_name: str = ""
    transition: WorkflowTransition | None = None


@dataclass(frozen=True)
class WorkflowOutcome:
    """What a workflow operation returns: the request as stored and the event to fan out.

    ``request`` is None after a cancellation, since the request no longer exists.
    """

    request: LeaveRequestResponse | None
    event: WorkflowEvent
