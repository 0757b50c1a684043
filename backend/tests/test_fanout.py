"""Tests for notification classification (who gets which message)."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

import pytest

from leave_approval.models.enums import (
    ApprovalStep,
    LeaveKind,
    LeaveStatus,
    NotificationVariant,
    RecipientRole,
    WorkflowEventKind,
)
from leave_approval.schemas.request import ApproverSlotResponse, LeaveRequestResponse, ProxyInfo
from leave_approval.services.directory import UserInfo
from leave_approval.services.fanout import classify, event_variant
from leave_approval.services.workflow import WorkflowEvent, WorkflowTransition

NOW = datetime(2025, 7, 1, 9, 0, tzinfo=UTC)

REQUESTER = UserInfo(id=uuid.uuid4(), name="Rin", email="rin@example.com")
A = UserInfo(id=uuid.uuid4(), name="Aoi", email="aoi@example.com")
B = UserInfo(id=uuid.uuid4(), name="Ben", email="ben@example.com")
C = UserInfo(id=uuid.uuid4(), name="Chiyo", email="chiyo@example.com", roles=["president"])
HR = UserInfo(id=uuid.uuid4(), name="Hana", email="hana@example.com", roles=["hr"])
MANAGER = UserInfo(id=uuid.uuid4(), name="Mei", email="mei@example.com")


def _request(status: LeaveStatus = LeaveStatus.PENDING) -> LeaveRequestResponse:
    return LeaveRequestResponse(
        id=uuid.uuid4(),
        requester_id=REQUESTER.id,
        leave_kind=LeaveKind.LATE,
        date=date(2025, 7, 1),
        reason="Doctor",
        status=status,
        version=1,
        approvers=[
            ApproverSlotResponse(step=ApprovalStep.GROUP, approver_id=A.id, status=LeaveStatus.PENDING),
            ApproverSlotResponse(step=ApprovalStep.GROUP, approver_id=B.id, status=LeaveStatus.PENDING),
            ApproverSlotResponse(step=ApprovalStep.FINAL, approver_id=C.id, status=LeaveStatus.PENDING),
        ],
        created_at=NOW,
        updated_at=NOW,
    )


def _decided(
    new_status: LeaveStatus,
    *,
    approver: UserInfo = A,
    slot_status: LeaveStatus = LeaveStatus.APPROVED,
    step1_completed: bool = False,
    proxy: UserInfo | None = None,
) -> WorkflowEvent:
    slot = ApproverSlotResponse(
        step=ApprovalStep.GROUP,
        approver_id=approver.id,
        status=slot_status,
        decided_at=NOW,
        proxy=ProxyInfo(actor_id=proxy.id, actor_name=proxy.name) if proxy else None,
    )
    transition = WorkflowTransition(
        previous_status=LeaveStatus.PENDING,
        new_status=new_status,
        slot=slot,
        step1_completed=step1_completed,
    )
    actor = proxy or approver
    return WorkflowEvent(
        kind=WorkflowEventKind.DECIDED,
        request=_request(new_status),
        actor_id=actor.id,
        actor_name=actor.name,
        transition=transition,
    )


def _classify(event: WorkflowEvent, step1: list[UserInfo] | None = None, final: UserInfo | None = C):
    return classify(
        event,
        requester=REQUESTER,
        step1_approvers=[A, B] if step1 is None else step1,
        final_approver=final,
        hr_observers=[HR],
    )


def _recipients(messages) -> list[tuple[uuid.UUID, RecipientRole]]:
    return [(m.recipient_id, m.audience) for m in messages]


# ---------------------------------------------------------------------------
# Variant selection
# ---------------------------------------------------------------------------


def test_variant_precedence() -> None:
    assert event_variant(_decided(LeaveStatus.REJECTED, slot_status=LeaveStatus.REJECTED)) == (
        NotificationVariant.FINAL_REJECTED
    )
    assert event_variant(_decided(LeaveStatus.APPROVED)) == NotificationVariant.FINAL_APPROVED
    assert event_variant(_decided(LeaveStatus.PENDING, step1_completed=True)) == (
        NotificationVariant.AWAITING_FINAL_APPROVAL
    )
    assert event_variant(_decided(LeaveStatus.PENDING)) == NotificationVariant.PROGRESS


def test_submitted_and_cancelled_variants() -> None:
    submitted = WorkflowEvent(kind=WorkflowEventKind.SUBMITTED, request=_request(), actor_id=REQUESTER.id)
    cancelled = WorkflowEvent(kind=WorkflowEventKind.CANCELLED, request=_request(), actor_id=REQUESTER.id)
    assert event_variant(submitted) == NotificationVariant.SUBMITTED
    assert event_variant(cancelled) == NotificationVariant.CANCELLED


# ---------------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------------


def test_submitted_reaches_every_stakeholder() -> None:
    event = WorkflowEvent(kind=WorkflowEventKind.SUBMITTED, request=_request(), actor_id=REQUESTER.id)

    messages = _classify(event)

    assert _recipients(messages) == [
        (REQUESTER.id, RecipientRole.REQUESTER),
        (A.id, RecipientRole.APPROVER),
        (B.id, RecipientRole.APPROVER),
        (C.id, RecipientRole.FINAL_APPROVER),
        (HR.id, RecipientRole.OBSERVER),
    ]
    assert {m.variant for m in messages} == {NotificationVariant.SUBMITTED}
    action = {m.recipient_id: m.action_required for m in messages}
    assert action == {REQUESTER.id: False, A.id: True, B.id: True, C.id: False, HR.id: False}


def test_progress_only_informs_requester() -> None:
    messages = _classify(_decided(LeaveStatus.PENDING))

    assert _recipients(messages) == [(REQUESTER.id, RecipientRole.REQUESTER)]
    assert messages[0].variant == NotificationVariant.PROGRESS
    assert messages[0].body == "Aoi approved your late arrival request for 2025-07-01."


def test_progress_names_proxy_actor() -> None:
    messages = _classify(_decided(LeaveStatus.PENDING, proxy=MANAGER))
    assert messages[0].body == "Mei (on behalf of Aoi) approved your late arrival request for 2025-07-01."


def test_awaiting_final_approval_asks_final_approver_to_act() -> None:
    messages = _classify(_decided(LeaveStatus.PENDING, approver=B, step1_completed=True))

    assert _recipients(messages) == [
        (C.id, RecipientRole.FINAL_APPROVER),
        (REQUESTER.id, RecipientRole.REQUESTER),
        (A.id, RecipientRole.APPROVER),
        (B.id, RecipientRole.APPROVER),
        (HR.id, RecipientRole.OBSERVER),
    ]
    final_message = messages[0]
    assert final_message.action_required is True
    assert final_message.title == "Final approval required"
    assert all(not m.action_required for m in messages[1:])


def test_final_outcomes_reach_every_stakeholder() -> None:
    approved = _classify(_decided(LeaveStatus.APPROVED))
    rejected = _classify(_decided(LeaveStatus.REJECTED, slot_status=LeaveStatus.REJECTED))

    assert len(approved) == len(rejected) == 5
    assert {m.variant for m in approved} == {NotificationVariant.FINAL_APPROVED}
    assert {m.variant for m in rejected} == {NotificationVariant.FINAL_REJECTED}
    assert approved[0].body == "Your late arrival request for 2025-07-01 was approved."
    assert rejected[1].body == "Rin's late arrival request for 2025-07-01 was rejected."


def test_person_in_two_roles_gets_one_message() -> None:
    event = WorkflowEvent(kind=WorkflowEventKind.SUBMITTED, request=_request(), actor_id=REQUESTER.id)

    messages = _classify(event, step1=[A, HR, REQUESTER], final=A)

    assert _recipients(messages) == [
        (REQUESTER.id, RecipientRole.REQUESTER),
        (A.id, RecipientRole.APPROVER),
        (HR.id, RecipientRole.APPROVER),
    ]


def test_missing_final_approver_is_skipped() -> None:
    messages = _classify(_decided(LeaveStatus.APPROVED), final=None)
    assert C.id not in {m.recipient_id for m in messages}


def test_payload_identifies_request() -> None:
    event = _decided(LeaveStatus.APPROVED)
    payload = _classify(event)[0].payload
    assert payload == {
        "request_id": str(event.request.id),
        "requester_id": str(REQUESTER.id),
        "leave_kind": "late",
        "date": "2025-07-01",
        "status": "approved",
    }


def test_decided_event_without_transition_is_refused() -> None:
    event = WorkflowEvent(kind=WorkflowEventKind.DECIDED, request=_request(), actor_id=A.id)
    with pytest.raises(ValueError, match="must carry a transition"):
        _classify(event)
