from yerimi import messages
from yerimi.remote.base import AuthError, RemoteSession, RemoteUser, SignUpResult
from yerimi.services import auth_flow


class StubAuth:
    def __init__(self, sign_up_result=None, error=None):
        self.sign_up_result = sign_up_result
        self.error = error
        self.sign_up_calls = []

    def sign_up(self, email, password, options=None):
        self.sign_up_calls.append((email, password, options))
        if self.error is not None:
            raise AuthError(self.error)
        return self.sign_up_result

    def sign_in(self, email, password):
        if self.error is not None:
            raise AuthError(self.error)
        return RemoteSession("access", "refresh", RemoteUser(id="U1", email=email))


def _user(identities=("email",)):
    return RemoteUser(id="U1", email="u1@example.com", identities=list(identities))


def test_sign_up_success_switches_to_sign_in_without_session():
    auth = StubAuth(sign_up_result=SignUpResult(user=_user()))

    outcome = auth_flow.sign_up(auth, "u1@example.com", "secret1", "http://localhost/")

    assert outcome.ok is True
    assert outcome.mode == auth_flow.MODE_SIGN_IN
    assert outcome.session is None
    assert outcome.message == messages.SIGN_UP_SUCCEEDED
    assert auth.sign_up_calls[0][2] == {
        "email_redirect_to": "http://localhost/",
        "data": {"email": "u1@example.com"},
    }


def test_sign_up_known_failures_are_localized():
    cases = [
        (StubAuth(error="Email address not authorized"), messages.EMAIL_NOT_AUTHORIZED),
        (StubAuth(sign_up_result=SignUpResult(user=None)), messages.SIGN_UP_FAILED),
        (StubAuth(sign_up_result=SignUpResult(user=_user(()))), messages.EMAIL_IN_USE),
        (StubAuth(error="Password should be at least 6 characters."), "Password should be at least 6 characters."),
    ]
    for auth, expected in cases:
        outcome = auth_flow.sign_up(auth, "u1@example.com", "secret1", "/")
        assert outcome.ok is False
        assert outcome.mode == auth_flow.MODE_SIGN_UP
        assert outcome.message == expected


def test_sign_in_known_failures_are_localized():
    assert (
        auth_flow.sign_in(StubAuth(error="Email not confirmed"), "a@b.c", "x").message
        == messages.EMAIL_NOT_CONFIRMED
    )
    assert (
        auth_flow.sign_in(StubAuth(error="Invalid login credentials"), "a@b.c", "x").message
        == messages.INVALID_CREDENTIALS
    )
    assert auth_flow.sign_in(StubAuth(error="Rate limited"), "a@b.c", "x").message == "Rate limited"
    assert auth_flow.sign_in(StubAuth(error=""), "a@b.c", "x").message == messages.GENERIC_ERROR


def test_sign_in_success_returns_session():
    outcome = auth_flow.sign_in(StubAuth(), "u1@example.com", "secret1")

    assert outcome.ok is True
    assert outcome.session.user.email == "u1@example.com"
    assert outcome.message == messages.SIGN_IN_SUCCEEDED
