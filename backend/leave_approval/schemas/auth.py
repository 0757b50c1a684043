# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel


class AuthContext(BaseModel):
    """Dev auth context extracted from request headers."""

    user_id: uuid.UUID
    user_name: str = ""
    role: str = "employee"


class AuthorizationContext(BaseModel):
    """Everything the workflow needs to know about the acting user.

    Built once by the caller and passed into ``decide_request``; the engine
    never looks roles or capabilities up on its own.
    """

    user_id: uuid.UUID
    user_name: str = ""
    is_admin: bool = False
    is_leave_manager: bool = False

    @property
    def can_act_as_proxy(self) -> bool:
        return self.is_leave_manager or self.is_admin
