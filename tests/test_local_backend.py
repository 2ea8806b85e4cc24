import pytest

from yerimi.extensions import db
from yerimi.models import AuthUser, BookmarkRecord
from yerimi.remote.base import AuthError, StoreError, is_session_expired
from yerimi.remote.local import LocalAuth, LocalStore, TokenSigner
from yerimi.services.bookmarks import BookmarkCollection
from yerimi.services.notices import CollectingNotifier
from yerimi.services.sessions import SessionKeeper


def _backend(ttl_seconds=3600, **auth_options):
    signer = TokenSigner("test-secret", ttl_seconds)
    options = {"autoconfirm": True}
    options.update(auth_options)
    return LocalAuth(signer, **options), LocalStore(signer)


def _session(auth, email, password="secret1"):
    auth.sign_up(email, password)
    return auth.sign_in(email, password)


def _visible(store, session):
    return store.select(
        session.access_token,
        "bookmarks",
        any_of={"user_id": session.user.id, "is_public": True},
        order_by="created_at",
        descending=True,
    )


def _insert(store, session, url, is_public=True, **fields):
    row = {"url": url, "is_public": is_public, "user_id": session.user.id}
    row.update(fields)
    return store.insert(session.access_token, "bookmarks", [row])[0]


def test_users_see_own_rows_and_public_rows(app):
    with app.app_context():
        auth, store = _backend()
        s1 = _session(auth, "u1@example.com")
        s2 = _session(auth, "u2@example.com")
        _insert(store, s1, "https://u1-public.example", is_public=True)
        _insert(store, s1, "https://u1-private.example", is_public=False)
        _insert(store, s2, "https://u2-private.example", is_public=False)

        seen_by_u1 = {row["url"] for row in _visible(store, s1)}
        seen_by_u2 = {row["url"] for row in _visible(store, s2)}

    assert seen_by_u1 == {"https://u1-public.example", "https://u1-private.example"}
    assert seen_by_u2 == {"https://u1-public.example", "https://u2-private.example"}


def test_rows_come_back_newest_first(app):
    with app.app_context():
        auth, store = _backend()
        s1 = _session(auth, "u1@example.com")
        _insert(store, s1, "https://old.example", created_at="2024-01-01T00:00:00+00:00")
        _insert(store, s1, "https://new.example", created_at="2024-06-01T00:00:00+00:00")

        urls = [row["url"] for row in _visible(store, s1)]

    assert urls == ["https://new.example", "https://old.example"]


def test_insert_for_another_user_violates_row_level_security(app):
    with app.app_context():
        auth, store = _backend()
        s1 = _session(auth, "u1@example.com")
        s2 = _session(auth, "u2@example.com")

        with pytest.raises(StoreError) as excinfo:
            store.insert(
                s1.access_token,
                "bookmarks",
                [{"url": "https://x.example", "user_id": s2.user.id}],
            )

    assert "row-level security" in excinfo.value.message


def test_insert_without_url_violates_not_null(app):
    with app.app_context():
        auth, store = _backend()
        s1 = _session(auth, "u1@example.com")

        with pytest.raises(StoreError) as excinfo:
            store.insert(s1.access_token, "bookmarks", [{"user_id": s1.user.id}])

    assert "not-null" in excinfo.value.message


def test_update_and_delete_only_touch_owned_rows(app):
    with app.app_context():
        auth, store = _backend()
        s1 = _session(auth, "u1@example.com")
        s2 = _session(auth, "u2@example.com")
        created = _insert(store, s1, "https://u1.example", title="Original")

        foreign_update = store.update(
            s2.access_token,
            "bookmarks",
            {"title": "Changed"},
            match={"id": created["id"], "user_id": s2.user.id},
        )
        foreign_delete = store.delete(
            s2.access_token,
            "bookmarks",
            match={"id": created["id"], "user_id": s2.user.id},
        )
        unscoped_delete = store.delete(
            s2.access_token, "bookmarks", match={"id": created["id"]}
        )
        title_after = db.session.get(BookmarkRecord, created["id"]).title

        own_update = store.update(
            s1.access_token,
            "bookmarks",
            {"title": "Changed", "tags": ["news"]},
            match={"id": created["id"], "user_id": s1.user.id},
        )
        own_delete = store.delete(
            s1.access_token,
            "bookmarks",
            match={"id": created["id"], "user_id": s1.user.id},
        )

    assert foreign_update == []
    assert foreign_delete == []
    assert unscoped_delete == []
    assert title_after == "Original"
    assert own_update[0]["title"] == "Changed"
    assert own_update[0]["tags"] == ["news"]
    assert [row["id"] for row in own_delete] == [created["id"]]


def test_unknown_column_is_rejected(app):
    with app.app_context():
        auth, store = _backend()
        s1 = _session(auth, "u1@example.com")

        with pytest.raises(StoreError) as excinfo:
            store.select(s1.access_token, "bookmarks", any_of={"owner": "x"})

    assert excinfo.value.message == "column bookmarks.owner does not exist"


def test_expired_access_token_reads_as_session_expiry(app):
    with app.app_context():
        auth, store = _backend(ttl_seconds=-1)
        s1 = _session(auth, "u1@example.com")

        with pytest.raises(StoreError) as excinfo:
            _visible(store, s1)

    assert excinfo.value.message == "JWT expired"
    assert is_session_expired(excinfo.value)


def test_tampered_access_token_is_rejected(app):
    with app.app_context():
        auth, store = _backend()
        s1 = _session(auth, "u1@example.com")

        with pytest.raises(StoreError) as excinfo:
            store.select(s1.access_token + "x", "bookmarks")

    assert "invalid JWT" in excinfo.value.message


def test_refresh_tokens_rotate_and_are_single_use(app):
    with app.app_context():
        auth, _ = _backend()
        s1 = _session(auth, "u1@example.com")

        refreshed = auth.refresh_session(s1.refresh_token)
        with pytest.raises(AuthError):
            auth.refresh_session(s1.refresh_token)
        user = auth.get_user(refreshed.access_token)

    assert refreshed.refresh_token != s1.refresh_token
    assert user.email == "u1@example.com"


def test_sign_out_revokes_refresh_tokens(app):
    with app.app_context():
        auth, _ = _backend()
        s1 = _session(auth, "u1@example.com")

        auth.sign_out(s1.access_token)
        with pytest.raises(AuthError):
            auth.refresh_session(s1.refresh_token)


def test_sign_up_rules(app):
    with app.app_context():
        auth, _ = _backend(allowed_domains=["example.com"], min_password_length=6)

        first = auth.sign_up("u1@example.com", "secret1", {"data": {"email": "u1@example.com"}})
        again = auth.sign_up("U1@example.com", "another1")
        with pytest.raises(AuthError) as not_allowed:
            auth.sign_up("u1@elsewhere.org", "secret1")
        with pytest.raises(AuthError) as too_short:
            auth.sign_up("u2@example.com", "abc")
        stored = AuthUser.query.filter_by(email="u1@example.com").one()

    assert first.user.identities == ["email"]
    assert again.user.identities == []
    assert not_allowed.value.message == "Email address not authorized"
    assert "at least 6 characters" in too_short.value.message
    assert stored.user_metadata == {"email": "u1@example.com"}


def test_unconfirmed_users_cannot_sign_in_until_confirmed(app):
    with app.app_context():
        auth, _ = _backend(autoconfirm=False)
        result = auth.sign_up("u1@example.com", "secret1", {"email_redirect_to": "http://localhost/"})

        with pytest.raises(AuthError) as unconfirmed:
            auth.sign_in("u1@example.com", "secret1")
        with pytest.raises(AuthError) as wrong_password:
            auth.sign_in("u1@example.com", "wrong-password")

        token = auth.signer.issue_confirmation_token(result.user.id)
        confirmed = auth.confirm_email(token)
        session = auth.sign_in("u1@example.com", "secret1")

    assert result.session is None
    assert unconfirmed.value.message == "Email not confirmed"
    assert wrong_password.value.message == "Invalid login credentials"
    assert confirmed.email_confirmed is True
    assert session.user.id == result.user.id


def test_collection_over_local_backend_gives_up_after_one_refresh(app):
    with app.app_context():
        auth, store = _backend(ttl_seconds=-1)
        s1 = _session(auth, "u1@example.com")
        notifier = CollectingNotifier()
        collection = BookmarkCollection(store, SessionKeeper(auth, s1), notifier)

        items = collection.fetch()
        first_refresh_token = s1.refresh_token
        rotated = collection.sessions.session.refresh_token

    assert items == []
    assert notifier.errors
    assert rotated != first_refresh_token


def test_collection_over_local_backend_scenario(app):
    with app.app_context():
        auth, store = _backend()
        s1 = _session(auth, "u1@example.com")
        s2 = _session(auth, "u2@example.com")
        u1 = BookmarkCollection(store, SessionKeeper(auth, s1), CollectingNotifier())
        u2 = BookmarkCollection(store, SessionKeeper(auth, s2), CollectingNotifier())

        u1.add({"url": "https://x.com", "title": "", "tags": [], "is_public": True})
        created = u1.items[0]
        seen_by_u2 = u2.fetch()

    assert created.id
    assert created.user_id == s1.user.id
    assert created.created_at is not None
    assert [item.id for item in seen_by_u2] == [created.id]
