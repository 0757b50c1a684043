# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from leave_approval.config import get_settings
from leave_approval.models.enums import ApprovalStep, DeliveryStatus
from leave_approval.services.directory import UserDirectory, UserInfo, get_user_directory
from leave_approval.services.fanout import NotificationMessage, classify
from leave_approval.services.workflow import WorkflowEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationTransport(Protocol):
    """Interface for push/email/in-app delivery."""

    async def send(self, message: NotificationMessage) -> DeliveryStatus:
        """Deliver one message to its recipient."""
        ...


class LoggingNotificationTransport:
    """Development transport that only writes messages to the log."""

    async def send(self, message: NotificationMessage) -> DeliveryStatus:
        logger.info(
            "Notify %s [%s/%s]: %s",
            message.recipient_id,
            message.variant,
            message.audience,
            message.body,
        )
        return DeliveryStatus.DELIVERED


class InMemoryNotificationTransport:
    """In-memory stub implementation that records every delivered message."""

    def __init__(self) -> None:
        self.sent: list[NotificationMessage] = []
        self._failing: set[uuid.UUID] = set()

    def fail_for(self, recipient_id: uuid.UUID) -> None:
        """Make deliveries to ``recipient_id`` report FAILED."""
        self._failing.add(recipient_id)

    def messages_for(self, recipient_id: uuid.UUID) -> list[NotificationMessage]:
        return [m for m in self.sent if m.recipient_id == recipient_id]

    async def send(self, message: NotificationMessage) -> DeliveryStatus:
        if message.recipient_id in self._failing:
            return DeliveryStatus.FAILED
        self.sent.append(message)
        return DeliveryStatus.DELIVERED


_transport: NotificationTransport = LoggingNotificationTransport()


def get_notification_transport() -> NotificationTransport:
    """Return the active notification transport."""
    return _transport


def set_notification_transport(transport: NotificationTransport) -> None:
    """Override the transport (for testing or production wiring)."""
    global _transport
    _transport = transport


@dataclass
class FanoutResult:
    """Per-recipient delivery summary for one event."""

    delivered: list[uuid.UUID] = field(default_factory=list)
    failed: list[uuid.UUID] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def _lookup_users(users: UserDirectory, user_ids: list[uuid.UUID]) -> list[UserInfo]:
    found: list[UserInfo] = []
    for user_id in user_ids:
        user = await users.get_user(user_id)
        if user is None:
            logger.warning("User %s not found in directory; skipping notification", user_id)
            continue
        found.append(user)
    return found


async def _deliver(transport: NotificationTransport, message: NotificationMessage) -> DeliveryStatus:
    """Send one message. A failure here never affects other recipients."""
    try:
        status = await transport.send(message)
    except Exception:
        logger.exception("Notification to %s (%s) raised", message.recipient_id, message.variant)
        return DeliveryStatus.FAILED
    if status != DeliveryStatus.DELIVERED:
        logger.warning("Notification to %s (%s) was not delivered", message.recipient_id, message.variant)
    return status


async def dispatch_event(
    event: WorkflowEvent,
    users: UserDirectory | None = None,
    transport: NotificationTransport | None = None,
) -> FanoutResult:
    """Resolve stakeholders for ``event``, classify, and deliver best-effort per recipient.

    Directory failures propagate; delivery failures are logged and counted.
    """
    users = users or get_user_directory()
    transport = transport or get_notification_transport()
    settings = get_settings()

    request = event.request
    requester = await users.get_user(request.requester_id)
    if requester is None:
        logger.warning("Requester %s not found in directory", request.requester_id)
        requester = UserInfo(id=request.requester_id, name="A colleague", email="")

    step1_ids = [a.approver_id for a in request.approvers if a.step == ApprovalStep.GROUP]
    final_ids = [a.approver_id for a in request.approvers if a.step == ApprovalStep.FINAL]
    step1_approvers = await _lookup_users(users, step1_ids)
    final_approvers = await _lookup_users(users, final_ids)
    hr_observers = await users.list_users_with_role(settings.hr_observer_role)

    messages = classify(
        event,
        requester=requester,
        step1_approvers=step1_approvers,
        final_approver=final_approvers[0] if final_approvers else None,
        hr_observers=hr_observers,
    )

    statuses = await asyncio.gather(*(_deliver(transport, m) for m in messages))

    result = FanoutResult()
    for message, status in zip(messages, statuses, strict=True):
        if status == DeliveryStatus.DELIVERED:
            result.delivered.append(message.recipient_id)
        else:
            result.failed.append(message.recipient_id)

    logger.info(
        "Fanout for request %s (%s): delivered=%d failed=%d",
        request.id,
        event.kind,
        len(result.delivered),
        len(result.failed),
    )
    return result


async def run_fanout(event: WorkflowEvent) -> None:
    """Background-task entry point. Never raises; the transition is already committed."""
    try:
        await dispatch_event(event)
    except Exception:
        logger.exception("Notification fanout failed for request %s (%s)", event.request.id, event.kind)
