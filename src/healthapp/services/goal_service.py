# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from healthapp.errors import NotFoundOrForbidden
from healthapp.infra.document_store import ID_FIELD, DocumentCollection
from healthapp.permissions import AuthorizationGuard

# Only these fields can be changed after creation; id and owner never move.
EDITABLE_FIELDS = ("category", "description", "due_date")


@dataclass(frozen=True)
class Goal:
    id: str
    user_id: str
    category: str
    description: str
    due_date: str

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Goal":
        return cls(
            id=str(doc[ID_FIELD]),
            user_id=str(doc.get("user_id") or ""),
            category=str(doc.get("category") or ""),
            description=str(doc.get("description") or ""),
            due_date=str(doc.get("due_date") or ""),
        )


class GoalService:
    """Owner-scoped CRUD over the goals collection.

    Every read or mutation of a single goal filters on both the goal id and
    the acting user id, so another user's goal looks exactly like a missing one.
    """

    def __init__(self, goals: DocumentCollection):
        self._goals = goals

    async def list(self, user_id: str) -> List[Goal]:
        return [Goal.from_doc(d) for d in await self._goals.find({"user_id": user_id})]

    async def create(self, user_id: str, category: str, description: str, due_date: str) -> Goal:
        doc = await self._goals.insert(
            {
                "user_id": user_id,
                "category": category,
                "description": description,
                "due_date": due_date,
            }
        )
        return Goal.from_doc(doc)

    async def get(self, goal_id: str, user_id: str) -> Goal:
        doc = await self._goals.find_one({ID_FIELD: goal_id})
        goal = Goal.from_doc(doc) if doc else None
        AuthorizationGuard.authorize_owner(goal, user_id)
        return goal

    async def update(self, goal_id: str, user_id: str, fields: Dict[str, Any]) -> None:
        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        n = await self._goals.update({ID_FIELD: goal_id, "user_id": user_id}, changes)
        if n == 0:
            raise NotFoundOrForbidden(goal_id)

    async def delete(self, goal_id: str, user_id: str) -> None:
        n = await self._goals.remove({ID_FIELD: goal_id, "user_id": user_id})
        if n == 0:
            raise NotFoundOrForbidden(goal_id)
