"""Tests for the in-process memory store."""

import pytest

from llm_workspace.models import MemoryRecord
from llm_workspace.storage.memory_store import InMemoryMemoryStore


@pytest.mark.asyncio
async def test_create_returns_record_id():
    store = InMemoryMemoryStore()
    record = MemoryRecord(user_id="u1", content="likes tea")
    assert await store.create(record) == record.id
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_query_scopes_by_user_and_conversation():
    store = InMemoryMemoryStore()
    await store.create(MemoryRecord(user_id="u1", content="a", conversation_id="c1"))
    await store.create(MemoryRecord(user_id="u1", content="b", conversation_id="c2"))
    await store.create(MemoryRecord(user_id="u2", content="c", conversation_id="c1"))

    assert {r.content for r in await store.query("u1")} == {"a", "b"}
    assert [r.content for r in await store.query("u1", "c2")] == ["b"]
    assert await store.query("nobody") == []


@pytest.mark.asyncio
async def test_count_by_user():
    store = InMemoryMemoryStore()
    assert await store.count() == 0
    await store.create(MemoryRecord(user_id="u1", content="a"))
    await store.create(MemoryRecord(user_id="u1", content="b"))
    await store.create(MemoryRecord(user_id="u2", content="c"))

    assert await store.count() == 3
    assert await store.count("u1") == 2


@pytest.mark.asyncio
async def test_empty_store_is_usable_as_given():
    store = InMemoryMemoryStore()
    assert store
    await store.create(MemoryRecord(user_id="u1", content="a"))
    assert [r.content for r in await store.query("u1")] == ["a"]
