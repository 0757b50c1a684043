"""Unit tests for leave request API schemas."""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from pydantic import ValidationError

from leave_approval.models.enums import LeaveKind
from leave_approval.schemas.request import DecisionPayload, SubmitLeavePayload

# ---------------------------------------------------------------------------
# SubmitLeavePayload
# ---------------------------------------------------------------------------


def test_submit_payload_defaults() -> None:
    p = SubmitLeavePayload(date=date(2025, 7, 1), reason="Family trip", group_ids=[uuid.uuid4()])
    assert p.leave_kind == LeaveKind.VACATION
    assert p.approver_ids == []


def test_submit_payload_parses_json() -> None:
    group_id = uuid.uuid4()
    p = SubmitLeavePayload.model_validate(
        {"leave_kind": "early", "date": "2025-07-01", "reason": "  Dentist  ", "group_ids": [str(group_id)]}
    )
    assert p.leave_kind == LeaveKind.EARLY
    assert p.date == date(2025, 7, 1)
    assert p.reason == "Dentist"
    assert p.group_ids == [group_id]


def test_submit_payload_rejects_blank_reason() -> None:
    with pytest.raises(ValidationError, match="reason must not be blank"):
        SubmitLeavePayload(date=date(2025, 7, 1), reason="   ")


def test_submit_payload_rejects_empty_reason() -> None:
    with pytest.raises(ValidationError):
        SubmitLeavePayload(date=date(2025, 7, 1), reason="")


def test_submit_payload_rejects_long_reason() -> None:
    with pytest.raises(ValidationError):
        SubmitLeavePayload(date=date(2025, 7, 1), reason="x" * 2001)


def test_submit_payload_rejects_unknown_kind() -> None:
    with pytest.raises(ValidationError):
        SubmitLeavePayload.model_validate({"leave_kind": "sabbatical", "date": "2025-07-01", "reason": "Rest"})


def test_submit_payload_requires_date() -> None:
    with pytest.raises(ValidationError):
        SubmitLeavePayload.model_validate({"reason": "Trip"})


# ---------------------------------------------------------------------------
# DecisionPayload
# ---------------------------------------------------------------------------


def test_decision_payload_defaults_to_own_slot() -> None:
    assert DecisionPayload().approver_id is None


def test_decision_payload_names_approver() -> None:
    approver_id = uuid.uuid4()
    assert DecisionPayload.model_validate({"approver_id": str(approver_id)}).approver_id == approver_id
