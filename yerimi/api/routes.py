from __future__ import annotations

from flask import g, jsonify, request

from yerimi.api import api_bp
from yerimi.remote import get_remote
from yerimi.remote.base import RemoteError
from yerimi.services.bookmarks import EDITABLE_FIELDS, BookmarkCollection, Unauthenticated
from yerimi.services.forms import BookmarkDraft
from yerimi.services.listing import available_tags, filter_bookmarks
from yerimi.services.metadata import MetadataError, lookup_metadata
from yerimi.services.notices import CollectingNotifier
from yerimi.services.security import api_auth_required


def _to_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _tag_list(raw) -> list[str]:
    draft = BookmarkDraft()
    if isinstance(raw, list):
        for item in raw:
            if item is not None:
                draft.add_tag(str(item))
    return draft.tags


def _changes_from_payload(payload: dict) -> dict:
    changes = {}
    for field in EDITABLE_FIELDS:
        if field not in payload:
            continue
        value = payload.get(field)
        if field == "tags":
            value = _tag_list(value)
        elif field == "is_public":
            value = _to_bool(value, default=True)
        elif field == "url":
            value = (value or "").strip()
        else:
            value = value or ""
        changes[field] = value
    return changes


def _collection() -> BookmarkCollection:
    return BookmarkCollection(get_remote().store, g.api_sessions, CollectingNotifier())


def _items_payload(collection: BookmarkCollection) -> list[dict]:
    return [item.as_dict() for item in collection.items]


def _failure(collection: BookmarkCollection, exc: Exception):
    status_code = 401 if isinstance(exc, Unauthenticated) else 400
    return jsonify({"ok": False, "errors": collection.notifier.errors}), status_code


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "Yerimi"})


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required()
def bookmarks_list_api():
    collection = _collection()
    collection.fetch()
    q = request.args.get("q") or ""
    tag = (request.args.get("tag") or "").strip() or None
    items = filter_bookmarks(collection.items, q, tag)
    payload = {
        "items": [item.as_dict() for item in items],
        "tags": available_tags(collection.items),
        "errors": collection.notifier.errors,
    }
    return jsonify(payload), 400 if payload["errors"] else 200


@api_bp.route("/bookmarks", methods=["POST"])
@api_auth_required()
def bookmarks_create_api():
    payload = request.get_json(silent=True) or {}
    changes = _changes_from_payload(payload)
    if not changes.get("url"):
        return jsonify({"ok": False, "errors": ["url is required"]}), 400
    changes.setdefault("is_public", True)

    collection = _collection()
    try:
        row = collection.add(changes)
    except (RemoteError, Unauthenticated) as exc:
        return _failure(collection, exc)
    return jsonify({"ok": True, "bookmark": row, "items": _items_payload(collection)}), 201


@api_bp.route("/bookmarks/<bookmark_id>", methods=["PATCH"])
@api_auth_required()
def bookmarks_update_api(bookmark_id: str):
    payload = request.get_json(silent=True) or {}
    changes = _changes_from_payload(payload)
    if "url" in changes and not changes["url"]:
        return jsonify({"ok": False, "errors": ["url is required"]}), 400

    collection = _collection()
    try:
        updated = collection.update(bookmark_id, changes)
    except (RemoteError, Unauthenticated) as exc:
        return _failure(collection, exc)
    return jsonify({"ok": True, "updated": updated, "items": _items_payload(collection)})


@api_bp.route("/bookmarks/<bookmark_id>", methods=["DELETE"])
@api_auth_required()
def bookmarks_delete_api(bookmark_id: str):
    collection = _collection()
    if not collection.delete(bookmark_id):
        return jsonify({"ok": False, "errors": collection.notifier.errors}), 400
    return jsonify({"ok": True, "items": _items_payload(collection)})


@api_bp.route("/metadata", methods=["GET"])
@api_auth_required()
def metadata_api():
    url = (request.args.get("url") or "").strip()
    if not url:
        return jsonify({"error": "url is required"}), 400
    try:
        metadata = lookup_metadata(url)
    except MetadataError as exc:
        return jsonify({"error": str(exc)}), 502
    return jsonify({"title": metadata.title, "description": metadata.description})
