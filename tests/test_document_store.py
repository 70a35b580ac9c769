from pathlib import Path

import pytest
import yaml

from healthapp.errors import DuplicateKeyError, StoreError
from healthapp.infra.document_store import DocumentCollection

pytestmark = pytest.mark.anyio


async def test_insert_assigns_id_and_persists(tmp_path: Path):
    path = tmp_path / "goals.yml"
    col = DocumentCollection(path)
    doc = await col.insert({"user_id": "u1", "description": "run 5k"})

    assert len(doc["_id"]) == 16
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert raw["version"] == 1
    assert raw["records"] == [doc]


async def test_reload_from_file(tmp_path: Path):
    path = tmp_path / "goals.yml"
    first = DocumentCollection(path)
    a = await first.insert({"user_id": "u1", "n": 1})
    await first.insert({"user_id": "u2", "n": 2})

    second = DocumentCollection(path)
    assert await second.count() == 2
    assert await second.find_one({"_id": a["_id"]}) == a


async def test_find_filters_on_every_key():
    col = DocumentCollection()
    await col.insert({"user_id": "u1", "category": "fitness"})
    await col.insert({"user_id": "u1", "category": "nutrition"})
    await col.insert({"user_id": "u2", "category": "fitness"})

    hits = await col.find({"user_id": "u1", "category": "fitness"})
    assert len(hits) == 1
    assert await col.find_one({"user_id": "nobody"}) is None
    assert await col.count({"user_id": "u1"}) == 2


async def test_update_sets_fields_on_first_match_and_keeps_id():
    col = DocumentCollection()
    doc = await col.insert({"user_id": "u1", "description": "old"})

    n = await col.update({"_id": doc["_id"], "user_id": "u1"}, {"description": "new", "_id": "hijack"})
    assert n == 1
    stored = await col.find_one({"_id": doc["_id"]})
    assert stored["description"] == "new"
    assert stored["user_id"] == "u1"

    assert await col.update({"_id": doc["_id"], "user_id": "u2"}, {"description": "x"}) == 0


async def test_remove_returns_count():
    col = DocumentCollection()
    doc = await col.insert({"user_id": "u1"})
    assert await col.remove({"_id": doc["_id"], "user_id": "u2"}) == 0
    assert await col.remove({"_id": doc["_id"]}) == 1
    assert await col.remove({"_id": doc["_id"]}) == 0
    assert await col.count() == 0


async def test_returned_documents_are_copies():
    col = DocumentCollection()
    doc = await col.insert({"user_id": "u1"})
    doc["user_id"] = "u2"
    found = await col.find({"user_id": "u1"})
    found[0]["user_id"] = "u3"
    assert await col.count({"user_id": "u1"}) == 1


async def test_unique_field_rejects_duplicates():
    col = DocumentCollection()
    col.ensure_unique("username")
    await col.insert({"username": "alice"})
    with pytest.raises(DuplicateKeyError):
        await col.insert({"username": "alice"})
    await col.insert({"username": "Alice"})
    assert await col.count() == 2


async def test_corrupt_file_raises_store_error(tmp_path: Path):
    path = tmp_path / "users.yml"
    path.write_text("records: [unclosed", encoding="utf-8")
    with pytest.raises(StoreError):
        DocumentCollection(path)


async def test_failed_write_rolls_back(tmp_path: Path, monkeypatch):
    col = DocumentCollection(tmp_path / "goals.yml")
    await col.insert({"user_id": "u1"})

    def _boom():
        raise StoreError("disk full")

    monkeypatch.setattr(col, "_persist", _boom)
    with pytest.raises(StoreError):
        await col.insert({"user_id": "u2"})
    assert await col.count() == 1


async def test_reads_stay_consistent_during_concurrent_removes():
    import asyncio

    col = DocumentCollection()
    docs = [await col.insert({"n": i}) for i in range(200)]
    target = docs[-1]["_id"]

    async def reader():
        for _ in range(200):
            hit = await col.find_one({"_id": target})
            assert hit is not None and hit["_id"] == target

    removes = [col.remove({"_id": d["_id"]}) for d in docs[:-1]]
    await asyncio.gather(reader(), reader(), *removes)
    assert [d["_id"] for d in await col.find()] == [target]
