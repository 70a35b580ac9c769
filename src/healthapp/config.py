# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_TRUTHY = {"1", "true", "yes", "y"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from the environment by ``from_env``."""

    data_dir: Path
    secret_key: Optional[str]
    session_salt: str = "healthapp.session.v1"
    cookie_name: str = "healthapp_session"
    session_max_age: int = 28800  # 8 hours
    cookie_secure: bool = False
    hash_time_cost: int = 3
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=Path(os.getenv("HEALTHAPP_DATA_DIR", "data")).resolve(),
            secret_key=os.getenv("SECRET_KEY") or os.getenv("HEALTHAPP_SECRET_KEY"),
            session_salt=os.getenv("HEALTHAPP_SESSION_SALT", "healthapp.session.v1"),
            cookie_name=os.getenv("HEALTHAPP_COOKIE_NAME", "healthapp_session"),
            session_max_age=int(os.getenv("HEALTHAPP_SESSION_MAX_AGE", "28800")),
            cookie_secure=_flag("HEALTHAPP_COOKIE_SECURE"),
            hash_time_cost=int(os.getenv("HEALTHAPP_HASH_TIME_COST", "3")),
            log_level=os.getenv("HEALTHAPP_LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HEALTHAPP_HOST", "0.0.0.0"),
            port=int(os.getenv("HEALTHAPP_PORT", "8000")),
            reload=_flag("HEALTHAPP_RELOAD"),
        )

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}

    def collection_path(self, name: str) -> Path:
        return self.data_dir / f"{name}.yml"
