from __future__ import annotations

import logging
from typing import Any

from dateutil import parser as dt_parser
from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy import or_

from yerimi.extensions import db
from yerimi.models import AuthUser, BookmarkRecord, RefreshToken, utcnow
from yerimi.remote.base import (
    AuthError,
    RemoteAuth,
    RemoteError,
    RemoteSession,
    RemoteStore,
    RemoteUser,
    SignUpResult,
    StoreError,
)

logger = logging.getLogger(__name__)

CONFIRM_TTL_SECONDS = 24 * 3600

_TABLES = {"bookmarks": BookmarkRecord}
_WRITABLE_COLUMNS = {"url", "title", "description", "tags", "is_public", "created_at"}


class TokenSigner:
    def __init__(self, secret_key: str, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._access = URLSafeTimedSerializer(secret_key, salt="access-token")
        self._confirm = URLSafeTimedSerializer(secret_key, salt="email-confirm")

    def issue_access_token(self, user: AuthUser) -> str:
        return self._access.dumps({"sub": user.id, "email": user.email})

    def user_id(
        self,
        token: str,
        error_cls: type[RemoteError] = StoreError,
        verify_expiry: bool = True,
    ) -> str:
        max_age = self.ttl_seconds if verify_expiry else None
        try:
            payload = self._access.loads(token or "", max_age=max_age)
        except SignatureExpired as exc:
            raise error_cls("JWT expired") from exc
        except BadData as exc:
            raise error_cls("invalid JWT: unable to verify signature") from exc
        return payload["sub"]

    def issue_confirmation_token(self, user_id: str) -> str:
        return self._confirm.dumps(user_id)

    def confirmed_user_id(self, token: str) -> str:
        try:
            return self._confirm.loads(token or "", max_age=CONFIRM_TTL_SECONDS)
        except BadData as exc:
            raise AuthError("Email link is invalid or has expired") from exc


def _remote_user(user: AuthUser, identities: list[str] | None = None) -> RemoteUser:
    return RemoteUser(
        id=user.id,
        email=user.email,
        identities=["email"] if identities is None else identities,
        email_confirmed=user.email_confirmed_at is not None,
    )


class LocalAuth(RemoteAuth):
    def __init__(
        self,
        signer: TokenSigner,
        autoconfirm: bool = False,
        allowed_domains: list[str] | None = None,
        min_password_length: int = 6,
    ):
        self.signer = signer
        self.autoconfirm = autoconfirm
        self.allowed_domains = [d.lower() for d in (allowed_domains or [])]
        self.min_password_length = min_password_length

    def _issue_session(self, user: AuthUser) -> RemoteSession:
        token, token_hash = RefreshToken.issue_token()
        db.session.add(RefreshToken(user_id=user.id, token_hash=token_hash))
        db.session.commit()
        return RemoteSession(
            access_token=self.signer.issue_access_token(user),
            refresh_token=token,
            user=_remote_user(user),
        )

    def sign_up(self, email, password, options=None):
        options = options or {}
        email = (email or "").strip().lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise AuthError("Unable to validate email address: invalid format")
        domain = email.rsplit("@", 1)[1]
        if self.allowed_domains and domain not in self.allowed_domains:
            raise AuthError("Email address not authorized")
        if len(password or "") < self.min_password_length:
            raise AuthError(
                f"Password should be at least {self.min_password_length} characters."
            )

        existing = AuthUser.query.filter_by(email=email).first()
        if existing:
            return SignUpResult(user=_remote_user(existing, identities=[]))

        user = AuthUser(email=email, user_metadata=dict(options.get("data") or {}))
        user.set_password(password)
        if self.autoconfirm:
            user.email_confirmed_at = utcnow()
        db.session.add(user)
        db.session.commit()

        if self.autoconfirm:
            return SignUpResult(user=_remote_user(user), session=self._issue_session(user))

        redirect_to = (options.get("email_redirect_to") or "/").rstrip("/")
        token = self.signer.issue_confirmation_token(user.id)
        logger.info(
            "Confirmation link for %s: %s/auth/confirm?token=%s",
            email,
            redirect_to,
            token,
        )
        return SignUpResult(user=_remote_user(user))

    def confirm_email(self, token):
        user = db.session.get(AuthUser, self.signer.confirmed_user_id(token))
        if not user:
            raise AuthError("User not found")
        if user.email_confirmed_at is None:
            user.email_confirmed_at = utcnow()
            db.session.commit()
        return _remote_user(user)

    def sign_in(self, email, password):
        email = (email or "").strip().lower()
        user = AuthUser.query.filter_by(email=email).first()
        if not user or not user.check_password(password or ""):
            raise AuthError("Invalid login credentials")
        if user.email_confirmed_at is None:
            raise AuthError("Email not confirmed")
        return self._issue_session(user)

    def get_user(self, access_token):
        if not access_token:
            return None
        user_id = self.signer.user_id(access_token, error_cls=AuthError)
        user = db.session.get(AuthUser, user_id)
        return _remote_user(user) if user else None

    def refresh_session(self, refresh_token):
        row = RefreshToken.query.filter_by(
            token_hash=RefreshToken.hash_token(refresh_token or "")
        ).first()
        if not row or row.revoked_at is not None:
            raise AuthError("Invalid Refresh Token: Refresh Token Not Found")
        row.revoked_at = utcnow()
        return self._issue_session(row.user)

    def sign_out(self, access_token):
        user_id = self.signer.user_id(
            access_token, error_cls=AuthError, verify_expiry=False
        )
        RefreshToken.query.filter_by(user_id=user_id, revoked_at=None).update(
            {"revoked_at": utcnow()}
        )
        db.session.commit()


class LocalStore(RemoteStore):
    """Row-level security evaluated in SQL: owners see and change their rows,
    everybody sees public rows."""

    def __init__(self, signer: TokenSigner):
        self.signer = signer

    @staticmethod
    def _model(table: str):
        model = _TABLES.get(table)
        if model is None:
            raise StoreError(f'relation "public.{table}" does not exist')
        return model

    @staticmethod
    def _column(model, table: str, name: str):
        if name not in model.__table__.columns:
            raise StoreError(f"column {table}.{name} does not exist")
        return getattr(model, name)

    def _values(self, table: str, values: dict, user_id: str) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if key in {"id", "user_id"}:
                if key == "user_id" and value != user_id:
                    raise StoreError(
                        f'new row violates row-level security policy for table "{table}"'
                    )
                continue
            if key not in _WRITABLE_COLUMNS:
                raise StoreError(f"column {table}.{key} does not exist")
            if key == "created_at" and isinstance(value, str):
                value = dt_parser.isoparse(value)
            if key == "url" and value is None:
                raise StoreError(
                    f'null value in column "url" of relation "{table}" '
                    "violates not-null constraint"
                )
            if key in {"title", "description"} and value is None:
                value = ""
            cleaned[key] = value
        return cleaned

    def select(self, access_token, table, any_of=None, order_by=None, descending=False):
        user_id = self.signer.user_id(access_token)
        model = self._model(table)
        query = model.query.filter(
            or_(model.user_id == user_id, model.is_public.is_(True))
        )
        if any_of:
            query = query.filter(
                or_(
                    *[
                        self._column(model, table, name) == value
                        for name, value in any_of.items()
                    ]
                )
            )
        if order_by:
            column = self._column(model, table, order_by)
            query = query.order_by(column.desc() if descending else column.asc())
        return [row.as_dict() for row in query.all()]

    def insert(self, access_token, table, rows):
        user_id = self.signer.user_id(access_token)
        model = self._model(table)
        created = []
        for row in rows:
            if row.get("user_id") != user_id:
                raise StoreError(
                    f'new row violates row-level security policy for table "{table}"'
                )
            values = self._values(table, row, user_id)
            if "url" not in values:
                raise StoreError(
                    f'null value in column "url" of relation "{table}" '
                    "violates not-null constraint"
                )
            record = model(user_id=user_id, **values)
            db.session.add(record)
            created.append(record)
        db.session.commit()
        return [record.as_dict() for record in created]

    def _owned(self, model, table: str, user_id: str, match: dict):
        query = model.query.filter(model.user_id == user_id)
        for name, value in match.items():
            query = query.filter(self._column(model, table, name) == value)
        return query.all()

    def update(self, access_token, table, values, match):
        user_id = self.signer.user_id(access_token)
        model = self._model(table)
        cleaned = self._values(table, values, user_id)
        rows = self._owned(model, table, user_id, match)
        for row in rows:
            for key, value in cleaned.items():
                setattr(row, key, value)
        db.session.commit()
        return [row.as_dict() for row in rows]

    def delete(self, access_token, table, match):
        user_id = self.signer.user_id(access_token)
        model = self._model(table)
        rows = self._owned(model, table, user_id, match)
        payload = [row.as_dict() for row in rows]
        for row in rows:
            db.session.delete(row)
        db.session.commit()
        return payload
