from __future__ import annotations

from typing import Iterable


def _lower(value: str | None) -> str:
    return (value or "").lower()


def matches_search(bookmark, query: str) -> bool:
    q = _lower(query)
    if not q:
        return True
    return (
        q in _lower(bookmark.title)
        or q in _lower(bookmark.description)
        or q in _lower(bookmark.url)
    )


def matches_tag(bookmark, tag: str | None) -> bool:
    if not tag:
        return True
    return tag in bookmark.tags


def filter_bookmarks(bookmarks: Iterable, query: str = "", tag: str | None = None) -> list:
    return [
        bookmark
        for bookmark in bookmarks
        if matches_search(bookmark, query) and matches_tag(bookmark, tag)
    ]


def available_tags(bookmarks: Iterable) -> list[str]:
    return sorted({tag for bookmark in bookmarks for tag in bookmark.tags})
