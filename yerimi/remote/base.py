"""Contracts for the hosted auth and database collaborators.

Both backends (``local`` and ``supabase``) speak these types so the bookmark
hook never has to know which one it is talking to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

SESSION_EXPIRED_MARKERS = ("JWT",)


class RemoteError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreError(RemoteError):
    pass


class AuthError(RemoteError):
    pass


def is_session_expired(error: Exception) -> bool:
    message = getattr(error, "message", None) or str(error)
    return any(marker in message for marker in SESSION_EXPIRED_MARKERS)


@dataclass
class RemoteUser:
    id: str
    email: str
    identities: list[str] = field(default_factory=list)
    email_confirmed: bool = False


@dataclass
class RemoteSession:
    access_token: str
    refresh_token: str | None
    user: RemoteUser | None = None

    def as_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "user_id": self.user.id if self.user else None,
            "email": self.user.email if self.user else None,
        }

    @classmethod
    def from_dict(cls, payload: dict | None) -> RemoteSession | None:
        if not payload or not payload.get("access_token"):
            return None
        user = None
        if payload.get("user_id"):
            user = RemoteUser(id=payload["user_id"], email=payload.get("email") or "")
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            user=user,
        )


@dataclass
class SignUpResult:
    user: RemoteUser | None
    session: RemoteSession | None = None


class RemoteAuth(ABC):
    @abstractmethod
    def sign_up(
        self, email: str, password: str, options: dict[str, Any] | None = None
    ) -> SignUpResult: ...

    @abstractmethod
    def sign_in(self, email: str, password: str) -> RemoteSession: ...

    @abstractmethod
    def get_user(self, access_token: str) -> RemoteUser | None: ...

    @abstractmethod
    def refresh_session(self, refresh_token: str) -> RemoteSession: ...

    @abstractmethod
    def sign_out(self, access_token: str) -> None: ...

    def confirm_email(self, token: str) -> RemoteUser:
        raise AuthError("Email confirmation is handled by the auth provider")


class RemoteStore(ABC):
    """Row CRUD scoped by the caller's access token.

    ``any_of`` is an OR of equality predicates, ``match`` an AND of them.
    Every method returns the rows it read or touched as plain dicts.
    """

    @abstractmethod
    def select(
        self,
        access_token: str,
        table: str,
        any_of: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict]: ...

    @abstractmethod
    def insert(self, access_token: str, table: str, rows: list[dict]) -> list[dict]: ...

    @abstractmethod
    def update(
        self, access_token: str, table: str, values: dict, match: dict[str, Any]
    ) -> list[dict]: ...

    @abstractmethod
    def delete(
        self, access_token: str, table: str, match: dict[str, Any]
    ) -> list[dict]: ...
