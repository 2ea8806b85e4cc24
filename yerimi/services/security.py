from functools import wraps

from flask import g, jsonify, make_response, request

from yerimi.remote import get_remote
from yerimi.remote.base import RemoteSession
from yerimi.services.sessions import SessionKeeper


def _session_from_headers() -> RemoteSession | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        return None
    refresh_token = (request.headers.get("X-Refresh-Token") or "").strip() or None
    return RemoteSession(access_token=token, refresh_token=refresh_token)


def api_auth_required():
    def decorator(func):
        @wraps(func)
        def wrapped(*args, **kwargs):
            remote_session = _session_from_headers()
            if remote_session is None:
                return jsonify({"error": "authentication required"}), 401
            keeper = SessionKeeper(get_remote().auth, remote_session)
            g.api_sessions = keeper
            response = make_response(func(*args, **kwargs))
            if keeper.session is not remote_session:
                # Rotated during a refresh-and-retry; hand the new pair back.
                response.headers["X-Access-Token"] = keeper.session.access_token
                response.headers["X-Refresh-Token"] = keeper.session.refresh_token or ""
            return response

        return wrapped

    return decorator
