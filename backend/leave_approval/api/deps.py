# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from leave_approval.schemas.auth import AuthContext, AuthorizationContext
from leave_approval.services.directory import build_authorization_context


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_user_name: str = Header(default=""),
    x_role: str = Header(default="employee"),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id, user_name=x_user_name, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def get_authorization_context(auth: AuthDep) -> AuthorizationContext:
    """Resolve the caller's role and leave-manager capability for workflow decisions."""
    return await build_authorization_context(auth)


AuthorizationDep = Annotated[AuthorizationContext, Depends(get_authorization_context)]
