from __future__ import annotations

from supabase import AuthError as ProviderAuthError
from supabase import ClientOptions, PostgrestAPIError, create_client

from yerimi.remote.base import (
    AuthError,
    RemoteAuth,
    RemoteSession,
    RemoteStore,
    RemoteUser,
    SignUpResult,
    StoreError,
)


def _literal(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _remote_user(user) -> RemoteUser | None:
    if user is None:
        return None
    identities = getattr(user, "identities", None)
    return RemoteUser(
        id=str(user.id),
        email=user.email or "",
        identities=["email"]
        if identities is None
        else [identity.provider for identity in identities],
        email_confirmed=bool(getattr(user, "email_confirmed_at", None)),
    )


def _remote_session(response) -> RemoteSession:
    session = getattr(response, "session", None)
    if session is None:
        raise AuthError("Auth session missing!")
    return RemoteSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        user=_remote_user(getattr(response, "user", None) or session.user),
    )


class _SupabaseClientFactory:
    def __init__(self, url: str, key: str):
        if not url or not key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        self.url = url
        self.key = key

    def client(self, access_token: str | None = None):
        # One client per call: sessions belong to the request, not the process.
        client = create_client(
            self.url,
            self.key,
            options=ClientOptions(auto_refresh_token=False, persist_session=False),
        )
        if access_token:
            client.postgrest.auth(access_token)
        return client


class SupabaseAuth(_SupabaseClientFactory, RemoteAuth):
    def sign_up(self, email, password, options=None):
        payload = {"email": email, "password": password}
        if options:
            payload["options"] = options
        try:
            response = self.client().auth.sign_up(payload)
        except ProviderAuthError as exc:
            raise AuthError(exc.message) from exc
        session = None
        if getattr(response, "session", None) is not None:
            session = _remote_session(response)
        return SignUpResult(user=_remote_user(response.user), session=session)

    def sign_in(self, email, password):
        try:
            response = self.client().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except ProviderAuthError as exc:
            raise AuthError(exc.message) from exc
        return _remote_session(response)

    def get_user(self, access_token):
        if not access_token:
            return None
        try:
            response = self.client().auth.get_user(access_token)
        except ProviderAuthError as exc:
            raise AuthError(exc.message) from exc
        return _remote_user(response.user) if response else None

    def refresh_session(self, refresh_token):
        try:
            response = self.client().auth.refresh_session(refresh_token)
        except ProviderAuthError as exc:
            raise AuthError(exc.message) from exc
        return _remote_session(response)

    def sign_out(self, access_token):
        try:
            self.client().auth.admin.sign_out(access_token)
        except ProviderAuthError as exc:
            raise AuthError(exc.message) from exc


class SupabaseStore(_SupabaseClientFactory, RemoteStore):
    def _execute(self, query) -> list[dict]:
        try:
            response = query.execute()
        except PostgrestAPIError as exc:
            raise StoreError(exc.message or str(exc)) from exc
        return list(response.data or [])

    def select(self, access_token, table, any_of=None, order_by=None, descending=False):
        query = self.client(access_token).table(table).select("*")
        if any_of:
            query = query.or_(
                ",".join(f"{name}.eq.{_literal(value)}" for name, value in any_of.items())
            )
        if order_by:
            query = query.order(order_by, desc=descending)
        return self._execute(query)

    def insert(self, access_token, table, rows):
        return self._execute(self.client(access_token).table(table).insert(rows))

    def update(self, access_token, table, values, match):
        query = self.client(access_token).table(table).update(values)
        for name, value in match.items():
            query = query.eq(name, value)
        return self._execute(query)

    def delete(self, access_token, table, match):
        query = self.client(access_token).table(table).delete()
        for name, value in match.items():
            query = query.eq(name, value)
        return self._execute(query)
