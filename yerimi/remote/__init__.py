from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from yerimi.remote.base import RemoteAuth, RemoteStore

EXTENSION_KEY = "yerimi.remote"


@dataclass
class Remote:
    auth: RemoteAuth
    store: RemoteStore


def build_remote(app: Flask) -> Remote:
    backend = (app.config.get("STORE_BACKEND") or "local").strip().lower()
    if backend == "supabase":
        from yerimi.remote.supabase_backend import SupabaseAuth, SupabaseStore

        url = app.config["SUPABASE_URL"]
        key = app.config["SUPABASE_ANON_KEY"]
        return Remote(auth=SupabaseAuth(url, key), store=SupabaseStore(url, key))

    if backend == "local":
        from yerimi.remote.local import LocalAuth, LocalStore, TokenSigner

        signer = TokenSigner(app.config["SECRET_KEY"], app.config["ACCESS_TOKEN_TTL_SECONDS"])
        auth = LocalAuth(
            signer,
            autoconfirm=app.config["AUTH_AUTOCONFIRM"],
            allowed_domains=app.config["AUTH_ALLOWED_EMAIL_DOMAINS"],
            min_password_length=app.config["AUTH_MIN_PASSWORD_LENGTH"],
        )
        return Remote(auth=auth, store=LocalStore(signer))

    raise ValueError(f"unknown STORE_BACKEND: {backend!r}")


def init_remote(app: Flask) -> Remote:
    remote = build_remote(app)
    app.extensions[EXTENSION_KEY] = remote
    return remote


def get_remote() -> Remote:
    return current_app.extensions[EXTENSION_KEY]
