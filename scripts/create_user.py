#!/usr/bin/env python3
from __future__ import annotations

import asyncio
from getpass import getpass

from healthapp.auth.passwords import PasswordHasher
from healthapp.auth.users import CredentialStore
from healthapp.config import Settings
from healthapp.errors import DuplicateUser
from healthapp.infra.document_store import DocumentCollection


async def _register(settings: Settings, username: str, password: str) -> str:
    users = DocumentCollection(settings.collection_path("users"))
    store = CredentialStore(users, PasswordHasher(time_cost=settings.hash_time_cost))
    return await store.register(username, password)


def main() -> None:
    settings = Settings.from_env()

    username = input("Username: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user_id = asyncio.run(_register(settings, username, pw1))
    except DuplicateUser:
        raise SystemExit(f"User already exists: {username}")
    print(f"OK -> {settings.collection_path('users')} ({user_id})")


if __name__ == "__main__":
    main()
