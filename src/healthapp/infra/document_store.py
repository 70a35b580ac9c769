# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Embedded, file-backed document collections.

Each collection is a YAML file holding ``{version: 1, records: [...]}``.
The whole file is loaded once (autoload) and rewritten atomically after
every mutation. Queries are simple field-equality filters.

The public methods are coroutines: the blocking body runs in Starlette's
thread pool, and every operation holds a per-collection lock.
"""

from __future__ import annotations

import copy
import logging
import os
import secrets
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml
from starlette.concurrency import run_in_threadpool

from healthapp.errors import DuplicateKeyError, StoreError

logger = logging.getLogger("healthapp.store")

FILE_VERSION = 1
ID_FIELD = "_id"

Document = Dict[str, Any]


def new_id() -> str:
    """Random 16-char identifier for a new document."""
    return secrets.token_hex(8)


def _matches(doc: Document, flt: Dict[str, Any]) -> bool:
    return all(k in doc and doc[k] == v for k, v in flt.items())


class DocumentCollection:
    def __init__(self, path: Optional[Path] = None, *, name: str = ""):
        self.path = Path(path).resolve() if path is not None else None
        self.name = name or (self.path.stem if self.path else "memory")
        self._docs: List[Document] = []
        self._unique: Set[str] = set()
        self._lock = threading.Lock()
        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Cannot load collection '{self.name}'") from e
        records = (raw.get("records") or []) if isinstance(raw, dict) else []
        self._docs = [dict(r) for r in records if isinstance(r, dict) and r.get(ID_FIELD)]
        logger.info("Loaded %d record(s) from %s", len(self._docs), self.path)

    def _persist(self) -> None:
        if self.path is None:
            return
        payload = {"version": FILE_VERSION, "records": self._docs}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    yaml.safe_dump(payload, fh, sort_keys=False, allow_unicode=True)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Cannot write collection '{self.name}'") from e

    def ensure_unique(self, field: str) -> None:
        """Declare ``field`` unique; later inserts reject duplicates."""
        self._unique.add(field)

    # ------------------------------------------------------------------
    # Blocking operations
    # ------------------------------------------------------------------

    def _first_index(self, flt: Dict[str, Any]) -> Optional[int]:
        for i, doc in enumerate(self._docs):
            if _matches(doc, flt):
                return i
        return None

    def _insert(self, doc: Document) -> Document:
        with self._lock:
            for field in self._unique:
                if field in doc and any(d.get(field) == doc[field] for d in self._docs):
                    raise DuplicateKeyError(field, doc[field])
            stored = {ID_FIELD: new_id(), **{k: v for k, v in doc.items() if k != ID_FIELD}}
            self._docs.append(stored)
            try:
                self._persist()
            except StoreError:
                self._docs.pop()
                raise
            return dict(stored)

    def _find(self, flt: Dict[str, Any]) -> List[Document]:
        with self._lock:
            return [dict(d) for d in self._docs if _matches(d, flt)]

    def _find_one(self, flt: Dict[str, Any]) -> Optional[Document]:
        with self._lock:
            for doc in self._docs:
                if _matches(doc, flt):
                    return dict(doc)
        return None

    def _update(self, flt: Dict[str, Any], fields: Dict[str, Any]) -> int:
        with self._lock:
            i = self._first_index(flt)
            if i is None:
                return 0
            before = copy.deepcopy(self._docs[i])
            self._docs[i].update({k: v for k, v in fields.items() if k != ID_FIELD})
            try:
                self._persist()
            except StoreError:
                self._docs[i] = before
                raise
            return 1

    def _remove(self, flt: Dict[str, Any]) -> int:
        with self._lock:
            i = self._first_index(flt)
            if i is None:
                return 0
            removed = self._docs.pop(i)
            try:
                self._persist()
            except StoreError:
                self._docs.insert(i, removed)
                raise
            return 1

    # ------------------------------------------------------------------
    # Async API
    # ------------------------------------------------------------------

    async def insert(self, doc: Document) -> Document:
        return await run_in_threadpool(self._insert, doc)

    async def find(self, flt: Optional[Dict[str, Any]] = None) -> List[Document]:
        return await run_in_threadpool(self._find, flt or {})

    async def find_one(self, flt: Dict[str, Any]) -> Optional[Document]:
        return await run_in_threadpool(self._find_one, flt)

    async def update(self, flt: Dict[str, Any], fields: Dict[str, Any]) -> int:
        """Set ``fields`` on the first document matching ``flt``; returns 0 or 1."""
        return await run_in_threadpool(self._update, flt, fields)

    async def remove(self, flt: Dict[str, Any]) -> int:
        return await run_in_threadpool(self._remove, flt)

    async def count(self, flt: Optional[Dict[str, Any]] = None) -> int:
        return len(await self.find(flt))
