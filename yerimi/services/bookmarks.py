"""The bookmark collection owned by one request.

Every mutation goes straight to the remote store and is followed by a full
re-fetch, so ``items`` always mirrors what the store returns for the current
user: their own rows plus everybody's public rows, newest first.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping

from dateutil import parser as dt_parser

from yerimi import messages
from yerimi.models import utcnow
from yerimi.remote.base import RemoteError, RemoteStore, RemoteUser, is_session_expired
from yerimi.services.notices import Notifier
from yerimi.services.sessions import SessionKeeper

logger = logging.getLogger(__name__)

TABLE = "bookmarks"
SESSION_ATTEMPTS = 2
EDITABLE_FIELDS = ("url", "title", "description", "tags", "is_public")


class Unauthenticated(Exception):
    def __init__(self, message: str = messages.LOGIN_REQUIRED):
        super().__init__(message)
        self.message = message


@dataclass
class BookmarkFormData:
    url: str = ""
    title: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    is_public: bool = True

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class Bookmark:
    id: str
    user_id: str
    url: str
    title: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    is_public: bool = True
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Bookmark:
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = dt_parser.isoparse(created_at)
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            url=row.get("url") or "",
            title=row.get("title") or "",
            description=row.get("description") or "",
            tags=list(row.get("tags") or []),
            is_public=bool(row.get("is_public")),
            created_at=created_at,
        )

    def as_dict(self) -> dict:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat() if self.created_at else None
        return payload


def _payload(data: BookmarkFormData | Mapping[str, Any]) -> dict:
    if isinstance(data, BookmarkFormData):
        data = data.as_dict()
    return {key: data[key] for key in EDITABLE_FIELDS if key in data}


def _error_message(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc) or messages.GENERIC_ERROR


class BookmarkCollection:
    def __init__(
        self,
        store: RemoteStore,
        sessions: SessionKeeper,
        notifier: Notifier,
    ):
        self.store = store
        self.sessions = sessions
        self.notifier = notifier
        self.items: list[Bookmark] = []
        self.loading = True

    def find(self, bookmark_id: str) -> Bookmark | None:
        for item in self.items:
            if item.id == bookmark_id:
                return item
        return None

    def _with_session_retry(self, operation: Callable[[], Any]) -> Any:
        for attempt in range(1, SESSION_ATTEMPTS + 1):
            try:
                return operation()
            except RemoteError as exc:
                if attempt < SESSION_ATTEMPTS and is_session_expired(exc):
                    self.sessions.refresh()
                    continue
                raise

    def _require_user(self) -> RemoteUser:
        user = self.sessions.current_user()
        if user is None:
            raise Unauthenticated()
        return user

    def _select_visible(self) -> list[dict]:
        user = self.sessions.current_user()
        if user is None:
            return []
        return self.store.select(
            self.sessions.access_token,
            TABLE,
            any_of={"user_id": user.id, "is_public": True},
            order_by="created_at",
            descending=True,
        )

    def fetch(self) -> list[Bookmark]:
        self.loading = True
        try:
            rows = self._with_session_retry(self._select_visible)
            self.items = [Bookmark.from_row(row) for row in rows]
        except Exception as exc:
            logger.error("Error fetching bookmarks: %s", exc)
            self.notifier.error(messages.FETCH_FAILED)
        finally:
            self.loading = False
        return self.items

    def add(self, data: BookmarkFormData | Mapping[str, Any]) -> dict | None:
        payload = _payload(data)

        def insert():
            user = self._require_user()
            row = {**payload, "user_id": user.id, "created_at": utcnow().isoformat()}
            return self.store.insert(self.sessions.access_token, TABLE, [row])

        try:
            rows = self._with_session_retry(insert)
        except Exception as exc:
            logger.error("Error adding bookmark: %s", exc)
            self.notifier.error(_error_message(exc))
            raise

        self.fetch()
        self.notifier.success(messages.BOOKMARK_ADDED)
        return rows[0] if rows else None

    def update(self, bookmark_id: str, changes: BookmarkFormData | Mapping[str, Any]) -> int:
        payload = _payload(changes)

        def patch():
            user = self._require_user()
            return self.store.update(
                self.sessions.access_token,
                TABLE,
                payload,
                match={"id": bookmark_id, "user_id": user.id},
            )

        try:
            rows = self._with_session_retry(patch)
        except Exception as exc:
            logger.error("Error updating bookmark: %s", exc)
            self.notifier.error(_error_message(exc))
            raise

        self.fetch()
        self.notifier.success(messages.BOOKMARK_UPDATED)
        return len(rows)

    def delete(self, bookmark_id: str) -> bool:
        def remove():
            user = self._require_user()
            return self.store.delete(
                self.sessions.access_token,
                TABLE,
                match={"id": bookmark_id, "user_id": user.id},
            )

        try:
            self._with_session_retry(remove)
            self.fetch()
        except Exception as exc:
            logger.error("Error deleting bookmark: %s", exc)
            self.notifier.error(_error_message(exc))
            return False

        self.notifier.success(messages.BOOKMARK_DELETED)
        return True
