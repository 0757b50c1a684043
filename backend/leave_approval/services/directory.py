# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from leave_approval.config import get_settings
from leave_approval.schemas.auth import AuthContext, AuthorizationContext


class UserInfo(BaseModel):
    """User metadata from the User Directory."""

    id: uuid.UUID
    name: str
    email: str
    roles: list[str] = Field(default_factory=list)  # e.g. ["president"], ["hr"], ["admin"]

    def has_role(self, role: str) -> bool:
        return role in self.roles


@runtime_checkable
class UserDirectory(Protocol):
    """Interface for the User Directory."""

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch user metadata. Returns None if not found."""
        ...

    async def list_users_with_role(self, role: str) -> list[UserInfo]:
        """List every user holding the given role."""
        ...


@runtime_checkable
class GroupDirectory(Protocol):
    """Interface for the approval-group directory."""

    async def members_of(self, group_id: uuid.UUID) -> list[uuid.UUID]:
        """Return the members of a leave approval group. Unknown groups have no members."""
        ...


@runtime_checkable
class LeaveManagerCapability(Protocol):
    """Interface answering whether a user may decide on behalf of other approvers."""

    async def is_active_for(self, user_id: uuid.UUID) -> bool:
        """True if the user currently holds the leave-manager capability."""
        ...


class InMemoryUserDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserInfo] = {}

    def seed(self, user: UserInfo) -> None:
        """Seed a user for testing."""
        self._users[user.id] = user

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch user metadata. Returns None if not found."""
        return self._users.get(user_id)

    async def list_users_with_role(self, role: str) -> list[UserInfo]:
        """List every user holding the given role."""
        return [u for u in self._users.values() if u.has_role(role)]


class InMemoryGroupDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._groups: dict[uuid.UUID, list[uuid.UUID]] = {}

    def seed(self, group_id: uuid.UUID, members: list[uuid.UUID]) -> None:
        """Seed a group and its members for testing."""
        self._groups[group_id] = list(members)

    async def members_of(self, group_id: uuid.UUID) -> list[uuid.UUID]:
        """Return the members of a leave approval group. Unknown groups have no members."""
        return list(self._groups.get(group_id, []))


class InMemoryLeaveManagerCapability:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._active: set[uuid.UUID] = set()

    def grant(self, user_id: uuid.UUID) -> None:
        self._active.add(user_id)

    def revoke(self, user_id: uuid.UUID) -> None:
        self._active.discard(user_id)

    async def is_active_for(self, user_id: uuid.UUID) -> bool:
        """True if the user currently holds the leave-manager capability."""
        return user_id in self._active


_user_directory: UserDirectory = InMemoryUserDirectory()
_group_directory: GroupDirectory = InMemoryGroupDirectory()
_leave_manager_capability: LeaveManagerCapability = InMemoryLeaveManagerCapability()


def get_user_directory() -> UserDirectory:
    """FastAPI dependency for the User Directory."""
    return _user_directory


def set_user_directory(directory: UserDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _user_directory
    _user_directory = directory


def get_group_directory() -> GroupDirectory:
    """FastAPI dependency for the Group Directory."""
    return _group_directory


def set_group_directory(directory: GroupDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _group_directory
    _group_directory = directory


def get_leave_manager_capability() -> LeaveManagerCapability:
    """FastAPI dependency for the leave-manager capability check."""
    return _leave_manager_capability


def set_leave_manager_capability(capability: LeaveManagerCapability) -> None:
    """Override the capability source (for testing or production wiring)."""
    global _leave_manager_capability
    _leave_manager_capability = capability


async def build_authorization_context(
    auth: AuthContext,
    capability: LeaveManagerCapability | None = None,
) -> AuthorizationContext:
    """Resolve the acting user's proxy rights once, up front."""
    capability = capability or get_leave_manager_capability()
    return AuthorizationContext(
        user_id=auth.user_id,
        user_name=auth.user_name,
        is_admin=auth.role == get_settings().admin_role,
        is_leave_manager=await capability.is_active_for(auth.user_id),
    )
