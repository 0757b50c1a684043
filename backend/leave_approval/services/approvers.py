# ruff: noqa: TC003
"""Approver set resolution.

Turns the approval groups and extra approvers picked at submission time into
the ordered list of step-1 approvers plus the optional final approver.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from leave_approval.exceptions import NoApproversSelectedError
from leave_approval.models.approver import LeaveApproverSlot
from leave_approval.models.enums import ApprovalStep, LeaveStatus

if TYPE_CHECKING:
    from leave_approval.services.directory import GroupDirectory, UserDirectory


@dataclass(frozen=True)
class ApproverPlan:
    """Required approvers for a new request."""

    step1: tuple[uuid.UUID, ...]
    step2: uuid.UUID | None = None

    @property
    def approver_ids(self) -> list[uuid.UUID]:
        ids = list(self.step1)
        if self.step2 is not None:
            ids.append(self.step2)
        return ids

    def to_slots(self, request_id: uuid.UUID) -> list[LeaveApproverSlot]:
        """Create one pending slot per planned approver, in plan order."""
        slots = [
            LeaveApproverSlot(
                request_id=request_id,
                position=position,
                step=ApprovalStep.GROUP,
                approver_id=approver_id,
                status=LeaveStatus.PENDING,
            )
            for position, approver_id in enumerate(self.step1)
        ]
        if self.step2 is not None:
            slots.append(
                LeaveApproverSlot(
                    request_id=request_id,
                    position=len(slots),
                    step=ApprovalStep.FINAL,
                    approver_id=self.step2,
                    status=LeaveStatus.PENDING,
                )
            )
        return slots


def build_approver_plan(
    group_members: Iterable[Iterable[uuid.UUID]],
    manual_approver_ids: Iterable[uuid.UUID],
    final_approver_id: uuid.UUID | None,
) -> ApproverPlan:
    """Union group members with manual approvers and place the final approver.

    Duplicates collapse to their first occurrence. The final approver gets a
    step-2 slot only when they are not already a step-1 approver.
    """
    step1: dict[uuid.UUID, None] = {}
    for members in group_members:
        step1.update(dict.fromkeys(members))
    step1.update(dict.fromkeys(manual_approver_ids))

    if not step1:
        raise NoApproversSelectedError("The selected approval groups have no members and no approver was added")

    step2 = final_approver_id if final_approver_id is not None and final_approver_id not in step1 else None
    return ApproverPlan(step1=tuple(step1), step2=step2)


async def find_final_approver(users: UserDirectory, role: str) -> uuid.UUID | None:
    """Return the first user holding the final-approver role, if any."""
    candidates = await users.list_users_with_role(role)
    return candidates[0].id if candidates else None


async def resolve_approvers(
    groups: GroupDirectory,
    selected_group_ids: Iterable[uuid.UUID],
    manual_approver_ids: Iterable[uuid.UUID],
    final_approver_id: uuid.UUID | None,
) -> ApproverPlan:
    """Resolve group membership through the directory and build the plan."""
    group_ids = list(dict.fromkeys(selected_group_ids))
    manual_ids = list(dict.fromkeys(manual_approver_ids))
    if not group_ids and not manual_ids:
        raise NoApproversSelectedError

    group_members = [await groups.members_of(group_id) for group_id in group_ids]
    return build_approver_plan(group_members, manual_ids, final_approver_id)
