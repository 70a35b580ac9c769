# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

from fastapi import HTTPException, Request

from healthapp.auth.session import SessionManager
from healthapp.errors import NotFoundOrForbidden, Unauthenticated


class AuthorizationGuard:
    """Decides whether a session is authenticated and whether it owns a record."""

    def __init__(self, sessions: SessionManager):
        self._sessions = sessions

    def require_auth(self, handle: str) -> str:
        user_id = self._sessions.current_user(handle)
        if not user_id:
            raise Unauthenticated()
        return user_id

    @staticmethod
    def authorize_owner(record: Any, user_id: str) -> None:
        # A missing record and someone else's record must look the same.
        if record is None or getattr(record, "user_id", None) != user_id:
            raise NotFoundOrForbidden()


@dataclass(frozen=True)
class CurrentUser:
    id: str
    username: str


def _session_handle(request: Request) -> str:
    settings = request.app.state.settings
    return request.cookies.get(settings.cookie_name, "")


async def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    guard: AuthorizationGuard = request.app.state.guard
    try:
        user_id = guard.require_auth(_session_handle(request))
    except Unauthenticated:
        return None
    u = await request.app.state.credentials.get(user_id)
    if not u:
        return None
    return CurrentUser(id=u.id, username=u.username)


async def current_user_optional(request: Request) -> Optional[CurrentUser]:
    u = getattr(request.state, "user", None)
    if u is not None:
        return u
    return await load_user_from_request(request)


async def require_user(request: Request) -> CurrentUser:
    u = await current_user_optional(request)
    if u:
        return u
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    raise HTTPException(status_code=303, headers={"Location": f"/login?next={quote(next_url, safe='/')}"})


def safe_next(target: str, default: str = "/dashboard") -> str:
    """Only local paths are accepted as post-login redirect targets."""
    t = (target or "").strip()
    if not t.startswith("/") or t.startswith("//") or "\\" in t:
        return default
    return t
