from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from yerimi import messages
from yerimi.services.bookmarks import Bookmark, BookmarkFormData
from yerimi.services.metadata import MetadataError, PageMetadata
from yerimi.services.notices import Notifier

logger = logging.getLogger(__name__)

ACTION_SAVE = "save"
ACTION_ADD_TAG = "add_tag"
ACTION_REMOVE_TAG = "remove_tag"
ACTION_TOGGLE_PUBLIC = "toggle_public"
ACTION_FETCH_METADATA = "fetch_metadata"

_TRUTHY = {"1", "true", "yes", "on"}


def _unique(values) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


@dataclass
class BookmarkDraft:
    """Working copy behind the bookmark form.

    ``bookmark_id`` switches the draft into edit mode: it is never reset after
    saving and never auto-fills on URL changes. ``autofilled_url`` remembers the
    last URL sent to the metadata lookup so re-posting the same form does not
    trigger another one.
    """

    url: str = ""
    title: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    is_public: bool = True
    bookmark_id: str | None = None
    tag_input: str = ""
    autofilled_url: str = ""

    @property
    def is_edit(self) -> bool:
        return self.bookmark_id is not None

    @classmethod
    def from_form(cls, form, bookmark_id: str | None = None) -> BookmarkDraft:
        return cls(
            url=(form.get("url") or "").strip(),
            title=form.get("title") or "",
            description=form.get("description") or "",
            tags=_unique(form.getlist("tags")),
            is_public=(form.get("is_public") or "").strip().lower() in _TRUTHY,
            bookmark_id=bookmark_id,
            tag_input=form.get("tag_input") or "",
            autofilled_url=(form.get("autofilled_url") or "").strip(),
        )

    @classmethod
    def from_bookmark(cls, bookmark: Bookmark) -> BookmarkDraft:
        return cls(
            url=bookmark.url,
            title=bookmark.title,
            description=bookmark.description,
            tags=list(bookmark.tags),
            is_public=bookmark.is_public,
            bookmark_id=bookmark.id,
            autofilled_url=bookmark.url,
        )

    def form_data(self) -> BookmarkFormData:
        return BookmarkFormData(
            url=self.url,
            title=self.title,
            description=self.description,
            tags=list(self.tags),
            is_public=self.is_public,
        )

    def reset(self) -> None:
        self.url = ""
        self.title = ""
        self.description = ""
        self.tags = []
        self.is_public = True
        self.tag_input = ""
        self.autofilled_url = ""

    def add_tag(self, tag: str | None = None) -> bool:
        value = (self.tag_input if tag is None else tag).strip()
        if not value or value in self.tags:
            return False
        self.tags.append(value)
        self.tag_input = ""
        return True

    def remove_tag(self, tag: str) -> None:
        self.tags = [existing for existing in self.tags if existing != tag]

    def toggle_public(self) -> None:
        self.is_public = not self.is_public

    def apply_metadata(self, metadata: PageMetadata, overwrite: bool = True) -> None:
        # Fetched values win over whatever was typed unless overwrite is off.
        if metadata.title and (overwrite or not self.title):
            self.title = metadata.title
        if metadata.description and (overwrite or not self.description):
            self.description = metadata.description

    def wants_autofill(self) -> bool:
        return not self.is_edit and bool(self.url) and self.url != self.autofilled_url

    def autofill(
        self,
        lookup: Callable[[str], PageMetadata],
        notifier: Notifier,
        overwrite: bool = True,
    ) -> bool:
        if not self.url:
            return False
        self.autofilled_url = self.url
        try:
            metadata = lookup(self.url)
        except MetadataError as exc:
            logger.warning("Metadata lookup failed for %s: %s", self.url, exc)
            notifier.error(messages.METADATA_FAILED)
            return False
        self.apply_metadata(metadata, overwrite=overwrite)
        notifier.success(messages.METADATA_FETCHED)
        return True

    def submit(self, save: Callable[[BookmarkFormData], Any], notifier: Notifier) -> bool:
        if not self.url:
            return False
        try:
            save(self.form_data())
        except Exception as exc:
            logger.warning("Bookmark draft was not saved: %s", exc)
            notifier.error(messages.DRAFT_SAVE_FAILED)
            return False
        if not self.is_edit:
            self.reset()
        notifier.success(messages.DRAFT_SAVED)
        return True
