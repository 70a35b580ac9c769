# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

DEFAULT_SALT = "healthapp.session.v1"
DEFAULT_MAX_AGE_SECONDS = 28800  # 8 hours


@dataclass(frozen=True)
class SessionRecord:
    token: str
    user_id: str
    created_at: datetime


class SessionManager:
    """Server-side sessions addressed by a signed, opaque cookie handle.

    The handle only carries a random token; the bound user id lives here,
    so destroying the record invalidates the cookie even before it expires.
    """

    def __init__(
        self,
        secret_key: Optional[str],
        *,
        salt: str = DEFAULT_SALT,
        max_age: int = DEFAULT_MAX_AGE_SECONDS,
    ):
        if not secret_key:
            raise RuntimeError("Missing SECRET_KEY (or HEALTHAPP_SECRET_KEY) in environment")
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)
        self.max_age = max_age
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def _token_from(self, handle: str) -> Optional[str]:
        if not handle:
            return None
        try:
            data = self._serializer.loads(handle, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        t = (data or {}).get("t") if isinstance(data, dict) else None
        t = str(t or "").strip()
        return t or None

    def _evict_expired(self, now: datetime) -> None:
        # Caller holds the lock.
        cutoff = now - timedelta(seconds=self.max_age)
        stale = [t for t, rec in self._sessions.items() if rec.created_at < cutoff]
        for t in stale:
            del self._sessions[t]

    def create(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        now = datetime.now(timezone.utc)
        rec = SessionRecord(token=token, user_id=user_id, created_at=now)
        with self._lock:
            self._evict_expired(now)
            self._sessions[token] = rec
        return self._serializer.dumps({"t": token})

    def get(self, handle: str) -> Optional[SessionRecord]:
        token = self._token_from(handle)
        if token is None:
            return None
        with self._lock:
            return self._sessions.get(token)

    def current_user(self, handle: str) -> Optional[str]:
        rec = self.get(handle)
        return rec.user_id if rec else None

    def destroy(self, handle: str) -> bool:
        """Drop the session behind ``handle``; False when there was none."""
        token = self._token_from(handle)
        if token is None:
            return False
        with self._lock:
            return self._sessions.pop(token, None) is not None
