import logging

from flask import flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from yerimi import messages
from yerimi.auth import auth_bp
from yerimi.remote import get_remote
from yerimi.remote.base import AuthError
from yerimi.services import auth_flow
from yerimi.services.sessions import (
    SessionUser,
    clear_session,
    load_session,
    store_session,
)

logger = logging.getLogger(__name__)


def _credentials() -> tuple[str, str]:
    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""
    return email, password


def _render(mode: str, email: str = ""):
    return render_template("auth.html", app_name="Yerimi", mode=mode, email=email)


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("web.index"))

    if request.method == "POST":
        email, password = _credentials()
        outcome = auth_flow.sign_in(get_remote().auth, email, password)
        if outcome.ok:
            store_session(outcome.session)
            user = outcome.session.user
            login_user(SessionUser(user.id, user.email))
            flash(outcome.message, "success")
            return redirect(url_for("web.index"))
        flash(outcome.message, "error")
        return _render(outcome.mode, email)

    return _render(auth_flow.MODE_SIGN_IN)


@auth_bp.route("/signup", methods=["GET", "POST"])
def signup():
    if current_user.is_authenticated:
        return redirect(url_for("web.index"))

    if request.method == "POST":
        email, password = _credentials()
        outcome = auth_flow.sign_up(
            get_remote().auth, email, password, url_for("web.index", _external=True)
        )
        flash(outcome.message, "success" if outcome.ok else "error")
        if outcome.ok:
            return redirect(url_for("auth.login"))
        return _render(outcome.mode, email)

    return _render(auth_flow.MODE_SIGN_UP)


@auth_bp.route("/auth/confirm")
def confirm_email():
    try:
        get_remote().auth.confirm_email(request.args.get("token") or "")
    except AuthError as exc:
        flash(exc.message, "error")
    else:
        flash(messages.EMAIL_CONFIRMED, "success")
    return redirect(url_for("auth.login"))


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    remote_session = load_session()
    if remote_session:
        try:
            get_remote().auth.sign_out(remote_session.access_token)
        except AuthError as exc:
            logger.warning("Remote sign-out failed: %s", exc.message)
    clear_session()
    logout_user()
    flash(messages.SIGNED_OUT, "success")
    return redirect(url_for("auth.login"))
