# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from healthapp.infra.document_store import ID_FIELD, DocumentCollection


@dataclass(frozen=True)
class Achievement:
    id: str
    user_id: str
    goal_id: str
    timestamp: str
    details: str

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Achievement":
        return cls(
            id=str(doc[ID_FIELD]),
            user_id=str(doc.get("user_id") or ""),
            goal_id=str(doc.get("goal_id") or ""),
            timestamp=str(doc.get("timestamp") or ""),
            details=str(doc.get("details") or ""),
        )


class AchievementService:
    """Append-only achievements, scoped to their owner."""

    def __init__(self, achievements: DocumentCollection):
        self._achievements = achievements

    async def create(self, user_id: str, goal_id: str, timestamp: str, details: str) -> Achievement:
        # goal_id is stored as given: it is not checked against the goals collection.
        ts = (timestamp or "").strip() or datetime.now(timezone.utc).isoformat(timespec="seconds")
        doc = await self._achievements.insert(
            {"user_id": user_id, "goal_id": goal_id, "timestamp": ts, "details": details}
        )
        return Achievement.from_doc(doc)

    async def list(self, user_id: str) -> List[Achievement]:
        return [Achievement.from_doc(d) for d in await self._achievements.find({"user_id": user_id})]

    async def count(self, user_id: str) -> int:
        return await self._achievements.count({"user_id": user_id})
