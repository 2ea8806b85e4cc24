from __future__ import annotations

import logging
from dataclasses import dataclass

from yerimi import messages
from yerimi.remote.base import AuthError, RemoteAuth, RemoteSession

logger = logging.getLogger(__name__)

MODE_SIGN_IN = "signin"
MODE_SIGN_UP = "signup"


@dataclass
class AuthOutcome:
    ok: bool
    message: str
    mode: str
    session: RemoteSession | None = None


def _fallback(message: str | None) -> str:
    return message or messages.GENERIC_ERROR


def localize_sign_up_error(message: str | None) -> str:
    if message == "Email address not authorized":
        return messages.EMAIL_NOT_AUTHORIZED
    return _fallback(message)


def localize_sign_in_error(message: str | None) -> str:
    text = message or ""
    if "Email not confirmed" in text:
        return messages.EMAIL_NOT_CONFIRMED
    if "Invalid login credentials" in text:
        return messages.INVALID_CREDENTIALS
    return _fallback(message)


def sign_up(auth: RemoteAuth, email: str, password: str, redirect_to: str) -> AuthOutcome:
    try:
        result = auth.sign_up(
            email,
            password,
            {"email_redirect_to": redirect_to, "data": {"email": email}},
        )
    except AuthError as exc:
        logger.warning("Auth error: %s", exc.message)
        return AuthOutcome(False, localize_sign_up_error(exc.message), MODE_SIGN_UP)

    if result.user is None:
        return AuthOutcome(False, messages.SIGN_UP_FAILED, MODE_SIGN_UP)
    if not result.user.identities:
        return AuthOutcome(False, messages.EMAIL_IN_USE, MODE_SIGN_UP)

    # Signing up never signs in; the address has to be confirmed first.
    return AuthOutcome(True, messages.SIGN_UP_SUCCEEDED, MODE_SIGN_IN)


def sign_in(auth: RemoteAuth, email: str, password: str) -> AuthOutcome:
    try:
        session = auth.sign_in(email, password)
    except AuthError as exc:
        logger.warning("Auth error: %s", exc.message)
        return AuthOutcome(False, localize_sign_in_error(exc.message), MODE_SIGN_IN)
    return AuthOutcome(True, messages.SIGN_IN_SUCCEEDED, MODE_SIGN_IN, session=session)
