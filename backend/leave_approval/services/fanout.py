# ruff: noqa: TC003
"""Notification fanout: which stakeholder gets which message for a workflow event.

Pure functions only. Delivery lives in ``leave_approval.services.notification``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from leave_approval.models.enums import (
    LeaveKind,
    LeaveStatus,
    NotificationVariant,
    RecipientRole,
    WorkflowEventKind,
)
from leave_approval.services.directory import UserInfo
from leave_approval.services.workflow import WorkflowEvent, WorkflowTransition

LEAVE_KIND_LABELS: dict[LeaveKind, str] = {
    LeaveKind.VACATION: "vacation",
    LeaveKind.LATE: "late arrival",
    LeaveKind.EARLY: "early departure",
}


@dataclass(frozen=True)
class NotificationMessage:
    """One message for one recipient."""

    recipient_id: uuid.UUID
    recipient_email: str
    variant: NotificationVariant
    audience: RecipientRole
    title: str
    body: str
    action_required: bool = False
    payload: dict[str, Any] = field(default_factory=dict)


def _unique_recipients(candidates: list[tuple[UserInfo | None, RecipientRole]]) -> list[tuple[UserInfo, RecipientRole]]:
    """Keep the first occurrence of every user, so nobody gets two messages."""
    seen: set[uuid.UUID] = set()
    recipients: list[tuple[UserInfo, RecipientRole]] = []
    for user, role in candidates:
        if user is None or user.id in seen:
            continue
        seen.add(user.id)
        recipients.append((user, role))
    return recipients


def _transition_of(event: WorkflowEvent) -> WorkflowTransition:
    if event.transition is None:
        msg = "DECIDED events must carry a transition"
        raise ValueError(msg)
    return event.transition


def _decision_variant(event: WorkflowEvent) -> NotificationVariant:
    transition = _transition_of(event)
    if transition.new_status == LeaveStatus.REJECTED:
        return NotificationVariant.FINAL_REJECTED
    if transition.new_status == LeaveStatus.APPROVED:
        return NotificationVariant.FINAL_APPROVED
    if transition.step1_completed:
        return NotificationVariant.AWAITING_FINAL_APPROVAL
    return NotificationVariant.PROGRESS


def event_variant(event: WorkflowEvent) -> NotificationVariant:
    """Map a workflow event to the message variant it produces."""
    if event.kind == WorkflowEventKind.SUBMITTED:
        return NotificationVariant.SUBMITTED
    if event.kind == WorkflowEventKind.CANCELLED:
        return NotificationVariant.CANCELLED
    return _decision_variant(event)


def _decider_phrase(event: WorkflowEvent, approvers: list[UserInfo]) -> tuple[str, str]:
    """Return (verb, who) for a decision, naming the proxy actor when there is one."""
    transition = _transition_of(event)
    verb = "approved" if transition.slot.status == LeaveStatus.APPROVED else "rejected"
    names = {u.id: u.name for u in approvers}
    approver_name = names.get(transition.slot.approver_id, "An approver")
    if transition.slot.proxy is not None:
        return verb, f"{transition.slot.proxy.actor_name} (on behalf of {approver_name})"
    return verb, approver_name


def _compose(
    variant: NotificationVariant,
    role: RecipientRole,
    event: WorkflowEvent,
    requester: UserInfo,
    approvers: list[UserInfo],
) -> tuple[str, str, bool]:
    """Return (title, body, action_required) for one recipient."""
    kind = LEAVE_KIND_LABELS[event.request.leave_kind]
    day = event.request.date.isoformat()
    is_requester = role == RecipientRole.REQUESTER
    subject = f"your {kind} request for {day}" if is_requester else f"{requester.name}'s {kind} request for {day}"
    sentence_subject = subject[:1].upper() + subject[1:]

    if variant == NotificationVariant.SUBMITTED:
        if is_requester:
            return "Leave request submitted", f"You submitted a {kind} request for {day}.", False
        return (
            "New leave request",
            f"{requester.name} submitted a {kind} request for {day}.",
            role == RecipientRole.APPROVER,
        )

    if variant == NotificationVariant.PROGRESS:
        verb, who = _decider_phrase(event, approvers)
        return "Leave request progress", f"{who} {verb} {subject}.", False

    if variant == NotificationVariant.AWAITING_FINAL_APPROVAL:
        if role == RecipientRole.FINAL_APPROVER:
            return (
                "Final approval required",
                f"{requester.name}'s {kind} request for {day} passed group approval and needs your final approval.",
                True,
            )
        return "Leave request progress", f"Group approval is complete for {subject}; awaiting final approval.", False

    if variant == NotificationVariant.FINAL_APPROVED:
        return "Leave request approved", f"{sentence_subject} was approved.", False

    if variant == NotificationVariant.FINAL_REJECTED:
        return "Leave request rejected", f"{sentence_subject} was rejected.", False

    return "Leave request cancelled", f"{sentence_subject} was cancelled.", False


def classify(
    event: WorkflowEvent,
    requester: UserInfo,
    step1_approvers: list[UserInfo],
    final_approver: UserInfo | None,
    hr_observers: list[UserInfo],
) -> list[NotificationMessage]:
    """Expand one workflow event into per-recipient messages.

    Individual decisions that leave the request pending only inform the
    requester. Every other event reaches all stakeholders. Each person gets
    exactly one message, in the role listed first for them.
    """
    variant = event_variant(event)

    if variant == NotificationVariant.PROGRESS:
        candidates: list[tuple[UserInfo | None, RecipientRole]] = [(requester, RecipientRole.REQUESTER)]
    elif variant == NotificationVariant.AWAITING_FINAL_APPROVAL:
        candidates = [
            (final_approver, RecipientRole.FINAL_APPROVER),
            (requester, RecipientRole.REQUESTER),
            *((u, RecipientRole.APPROVER) for u in step1_approvers),
            *((u, RecipientRole.OBSERVER) for u in hr_observers),
        ]
    else:
        candidates = [
            (requester, RecipientRole.REQUESTER),
            *((u, RecipientRole.APPROVER) for u in step1_approvers),
            (final_approver, RecipientRole.FINAL_APPROVER),
            *((u, RecipientRole.OBSERVER) for u in hr_observers),
        ]

    approvers = [*step1_approvers, *([final_approver] if final_approver else [])]
    payload = {
        "request_id": str(event.request.id),
        "requester_id": str(requester.id),
        "leave_kind": event.request.leave_kind.value,
        "date": event.request.date.isoformat(),
        "status": event.request.status.value,
    }

    messages: list[NotificationMessage] = []
    for user, role in _unique_recipients(candidates):
        title, body, action_required = _compose(variant, role, event, requester, approvers)
        messages.append(
            NotificationMessage(
                recipient_id=user.id,
                recipient_email=user.email,
                variant=variant,
                audience=role,
                title=title,
                body=body,
                action_required=action_required,
                payload=payload,
            )
        )
    return messages
