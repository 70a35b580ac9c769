# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import argon2
from argon2.exceptions import HashingError as _Argon2HashingError
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from healthapp.errors import HashingError

DEFAULT_TIME_COST = 3


class PasswordHasher:
    """Salted one-way password digests with a fixed cost (argon2id)."""

    def __init__(self, time_cost: int = DEFAULT_TIME_COST):
        self._ph = argon2.PasswordHasher(time_cost=time_cost)

    def hash(self, plain: str) -> str:
        if not plain:
            raise ValueError("Empty password")
        try:
            return self._ph.hash(plain)
        except _Argon2HashingError as e:
            raise HashingError("Password hashing failed") from e

    def verify(self, plain: str, hash_value: str) -> bool:
        """Constant-time check of ``plain`` against ``hash_value``.

        A wrong password yields False; a malformed digest raises HashingError.
        """
        try:
            return self._ph.verify(hash_value, plain or "")
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as e:
            raise HashingError("Malformed password hash") from e
