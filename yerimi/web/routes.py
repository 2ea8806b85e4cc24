from __future__ import annotations

from flask import flash, jsonify, redirect, render_template, request, url_for
from flask_login import login_required

from yerimi import messages
from yerimi.remote import get_remote
from yerimi.services.bookmarks import BookmarkCollection
from yerimi.services.forms import (
    ACTION_ADD_TAG,
    ACTION_FETCH_METADATA,
    ACTION_REMOVE_TAG,
    ACTION_SAVE,
    ACTION_TOGGLE_PUBLIC,
    BookmarkDraft,
)
from yerimi.services.listing import available_tags, filter_bookmarks
from yerimi.services.metadata import lookup_metadata
from yerimi.services.notices import FlashNotifier
from yerimi.services.sessions import request_keeper
from yerimi.web import web_bp


def _safe_redirect_target(raw_next: str | None, fallback: str) -> str:
    candidate = (raw_next or "").strip()
    if candidate.startswith("/") and not candidate.startswith("//"):
        return candidate
    return fallback


def _new_collection() -> BookmarkCollection:
    return BookmarkCollection(get_remote().store, request_keeper(), FlashNotifier())


def _render_index(
    collection: BookmarkCollection,
    draft: BookmarkDraft,
    active_tag: str | None = None,
):
    if collection.loading:
        collection.fetch()
    q = request.args.get("q") or ""
    items = filter_bookmarks(collection.items, q, active_tag)
    return render_template(
        "index.html",
        app_name="Yerimi",
        items=items,
        tags=available_tags(collection.items),
        active_tag=active_tag,
        q=q,
        draft=draft,
    )


def _apply_draft_action(collection: BookmarkCollection, draft: BookmarkDraft):
    action = request.form.get("action") or ACTION_SAVE
    notifier = collection.notifier

    if action.startswith(f"{ACTION_REMOVE_TAG}:"):
        draft.remove_tag(action.split(":", 1)[1])
    elif action == ACTION_ADD_TAG:
        draft.add_tag()
    elif action == ACTION_TOGGLE_PUBLIC:
        draft.toggle_public()
    elif action == ACTION_FETCH_METADATA:
        draft.autofill(lookup_metadata, notifier)

    if action != ACTION_FETCH_METADATA and draft.wants_autofill():
        # The URL changed on a post that also carries typed fields; keep them.
        draft.autofill(lookup_metadata, notifier, overwrite=False)

    if action == ACTION_SAVE:
        if draft.is_edit:
            saved = draft.submit(
                lambda data: collection.update(draft.bookmark_id, data), notifier
            )
        else:
            saved = draft.submit(collection.add, notifier)
        if saved:
            return redirect(
                _safe_redirect_target(request.form.get("next"), url_for("web.index"))
            )

    return _render_index(collection, draft)


@web_bp.route("/")
@login_required
def index():
    return _render_index(_new_collection(), BookmarkDraft())


@web_bp.route("/tag/<path:tag>")
@login_required
def by_tag(tag: str):
    return _render_index(_new_collection(), BookmarkDraft(), active_tag=tag)


@web_bp.route("/bookmarks", methods=["POST"])
@login_required
def bookmarks_create():
    return _apply_draft_action(_new_collection(), BookmarkDraft.from_form(request.form))


@web_bp.route("/bookmarks/<bookmark_id>/edit", methods=["GET", "POST"])
@login_required
def bookmarks_edit(bookmark_id: str):
    collection = _new_collection()
    if request.method == "POST":
        draft = BookmarkDraft.from_form(request.form, bookmark_id=bookmark_id)
        return _apply_draft_action(collection, draft)

    collection.fetch()
    item = collection.find(bookmark_id)
    if item is None:
        flash(messages.BOOKMARK_NOT_FOUND, "error")
        return redirect(url_for("web.index"))
    return _render_index(collection, BookmarkDraft.from_bookmark(item))


@web_bp.route("/bookmarks/<bookmark_id>/delete", methods=["POST"])
@login_required
def bookmarks_delete(bookmark_id: str):
    _new_collection().delete(bookmark_id)
    return redirect(
        _safe_redirect_target(request.form.get("next"), url_for("web.index"))
    )


@web_bp.app_errorhandler(404)
def not_found(error):
    if request.path.startswith("/api/"):
        return jsonify({"error": "not found"}), 404
    return redirect(url_for("web.index"))
