from __future__ import annotations

import logging
from typing import Callable

from flask import session as flask_session
from flask_login import UserMixin

from yerimi.extensions import login_manager
from yerimi.remote import get_remote
from yerimi.remote.base import AuthError, RemoteAuth, RemoteSession, RemoteUser

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"


class SessionUser(UserMixin):
    def __init__(self, user_id: str, email: str):
        self.id = user_id
        self.email = email


class SessionKeeper:
    """Owns the token pair for one caller and rotates it on refresh."""

    def __init__(
        self,
        auth: RemoteAuth,
        session: RemoteSession | None = None,
        on_change: Callable[[RemoteSession], None] | None = None,
    ):
        self.auth = auth
        self.session = session
        self._on_change = on_change

    @property
    def access_token(self) -> str | None:
        return self.session.access_token if self.session else None

    def current_user(self) -> RemoteUser | None:
        if self.session is None:
            return None
        return self.auth.get_user(self.session.access_token)

    def refresh(self) -> RemoteSession:
        if self.session is None or not self.session.refresh_token:
            raise AuthError("Auth session missing!")
        previous_user = self.session.user
        logger.info(
            "Refreshing session for %s", previous_user.id if previous_user else "unknown"
        )
        refreshed = self.auth.refresh_session(self.session.refresh_token)
        if refreshed.user is None:
            refreshed.user = previous_user
        self.session = refreshed
        if self._on_change:
            self._on_change(refreshed)
        return refreshed


def load_session() -> RemoteSession | None:
    return RemoteSession.from_dict(flask_session.get(SESSION_KEY))


def store_session(remote_session: RemoteSession) -> None:
    flask_session[SESSION_KEY] = remote_session.as_dict()


def clear_session() -> None:
    flask_session.pop(SESSION_KEY, None)


def request_keeper() -> SessionKeeper:
    return SessionKeeper(get_remote().auth, load_session(), on_change=store_session)


@login_manager.user_loader
def load_user(user_id: str):
    remote_session = load_session()
    if not remote_session or not remote_session.user:
        return None
    if remote_session.user.id != user_id:
        return None
    return SessionUser(remote_session.user.id, remote_session.user.email)
