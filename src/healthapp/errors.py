# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the auth layer, the services and the web app."""

from __future__ import annotations


class HealthAppError(Exception):
    """Base class for every error raised by healthapp."""


class StoreError(HealthAppError):
    """A collection could not be read or written."""


class DuplicateKeyError(StoreError):
    """An insert would break a unique field of a collection."""

    def __init__(self, field: str, value: object):
        super().__init__(f"Duplicate value for unique field '{field}'")
        self.field = field
        self.value = value


class HashingError(HealthAppError):
    """Password hashing failed, or a stored digest is malformed."""


class DuplicateUser(HealthAppError):
    """The username is already registered."""


class InvalidCredentials(HealthAppError):
    """Unknown username or wrong password (deliberately not distinguished)."""


class Unauthenticated(HealthAppError):
    """No identity could be resolved from the session handle."""


class NotFoundOrForbidden(HealthAppError):
    """The record does not exist or belongs to another user."""
