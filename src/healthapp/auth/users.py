# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from starlette.concurrency import run_in_threadpool

from healthapp.auth.passwords import PasswordHasher
from healthapp.errors import DuplicateKeyError, DuplicateUser, InvalidCredentials
from healthapp.infra.document_store import ID_FIELD, DocumentCollection

logger = logging.getLogger("healthapp.auth")


@dataclass(frozen=True)
class UserRecord:
    id: str
    username: str
    password_hash: str

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=str(doc[ID_FIELD]),
            username=str(doc.get("username") or ""),
            password_hash=str(doc.get("password_hash") or ""),
        )


class CredentialStore:
    """Username -> password-hash records with unique usernames."""

    def __init__(self, users: DocumentCollection, hasher: PasswordHasher):
        self._users = users
        self._users.ensure_unique("username")
        self._hasher = hasher
        # Verified against when the username is unknown, so both failure
        # cases cost one hash verification.
        self._dummy_hash = hasher.hash("healthapp-dummy-password")

    async def get(self, user_id: str) -> Optional[UserRecord]:
        if not user_id:
            return None
        doc = await self._users.find_one({ID_FIELD: user_id})
        return UserRecord.from_doc(doc) if doc else None

    async def get_by_username(self, username: str) -> Optional[UserRecord]:
        u = (username or "").strip()
        if not u:
            return None
        doc = await self._users.find_one({"username": u})
        return UserRecord.from_doc(doc) if doc else None

    async def register(self, username: str, password: str) -> str:
        u = (username or "").strip()
        if not u:
            raise ValueError("Empty username")
        if await self.get_by_username(u) is not None:
            logger.warning("User already exists: %s", u)
            raise DuplicateUser(u)

        password_hash = await run_in_threadpool(self._hasher.hash, password)
        try:
            doc = await self._users.insert({"username": u, "password_hash": password_hash})
        except DuplicateKeyError as e:
            logger.warning("User already exists: %s", u)
            raise DuplicateUser(u) from e
        logger.info("Registered user: %s", u)
        return str(doc[ID_FIELD])

    async def authenticate(self, username: str, password: str) -> str:
        user = await self.get_by_username(username)
        hash_value = user.password_hash if user else self._dummy_hash
        ok = await run_in_threadpool(self._hasher.verify, password or "", hash_value)
        if user is None or not ok:
            logger.warning("Invalid username or password for user: %s", (username or "").strip())
            raise InvalidCredentials()
        logger.info("Successful login for user: %s", user.username)
        return user.id
