"""Tests for the SQLite endpoint store."""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from indexer.models import EndpointRecordInput
from indexer.sqlite_adapter import EndpointStore, StoreError


def make_input(name, category="ai", link=None):
    return EndpointRecordInput(
        category=category,
        name=name,
        return_type="Json",
        description=f"{name} endpoint",
        parameters="q",
        link=link or f"/{category}/{name.lower().replace(' ', '-')}"
    )


@pytest.fixture
def store(tmp_path):
    store = EndpointStore(str(tmp_path / "data" / "catalog.db"))
    asyncio.run(store.initialize())
    yield store
    asyncio.run(store.close())


def seed(store, *records):
    async def _seed():
        return [await store.insert_endpoint(r) for r in records]
    return asyncio.run(_seed())


def test_insert_assigns_id_and_timestamp(store):
    record = seed(store, make_input("Gemini Chat"))[0]
    
    assert record.id > 0
    assert record.scraped_at is not None
    assert record.name == "Gemini Chat"
    assert asyncio.run(store.count_endpoints()) == 1


def test_duplicates_are_stored(store):
    seed(store, make_input("Gemini Chat"), make_input("Gemini Chat"))
    assert asyncio.run(store.count_endpoints()) == 2


def test_category_filter_is_exact(store):
    seed(store, make_input("Gemini Chat"), make_input("Llama"), make_input("TikTok", category="download"))
    
    ai = asyncio.run(store.list_endpoints(category="ai"))
    assert sorted(r.name for r in ai) == ["Gemini Chat", "Llama"]
    assert asyncio.run(store.list_endpoints(category="a")) == []
    assert len(asyncio.run(store.list_endpoints())) == 3


def test_search_is_case_insensitive_substring(store):
    seed(store, make_input("Gemini Chat"), make_input("Weather Lookup", category="tools"))
    
    names = [r.name for r in asyncio.run(store.list_endpoints(search="gem"))]
    assert names == ["Gemini Chat"]
    names = [r.name for r in asyncio.run(store.list_endpoints(search="CHAT"))]
    assert names == ["Gemini Chat"]


def test_search_folds_non_ascii_case(store):
    seed(store, make_input("Édition Tool"), make_input("Straße Finder", category="tools"))
    
    assert [r.name for r in asyncio.run(store.list_endpoints(search="édition"))] == ["Édition Tool"]
    assert [r.name for r in asyncio.run(store.list_endpoints(search="STRASSE"))] == ["Straße Finder"]


def test_search_and_category_are_combined(store):
    seed(store, make_input("Gemini Chat"), make_input("Gemini Image", category="tools"))
    
    results = asyncio.run(store.list_endpoints(search="gemini", category="tools"))
    assert [r.name for r in results] == ["Gemini Image"]


def test_search_wildcards_are_literal(store):
    seed(store, make_input("100% Uptime"), make_input("Plain"))
    
    assert [r.name for r in asyncio.run(store.list_endpoints(search="%"))] == ["100% Uptime"]
    assert asyncio.run(store.list_endpoints(search="_")) == []


def test_clear_removes_everything(store):
    seed(store, make_input("Gemini Chat"), make_input("Llama"))
    
    asyncio.run(store.clear_endpoints())
    
    assert asyncio.run(store.count_endpoints()) == 0
    assert asyncio.run(store.list_endpoints()) == []


def test_in_memory_store():
    async def scenario():
        store = EndpointStore(":memory:")
        await store.initialize()
        await store.insert_endpoint(make_input("Gemini Chat"))
        count = await store.count_endpoints()
        await store.close()
        return count
    
    assert asyncio.run(scenario()) == 1


def test_operations_before_initialize_raise_store_error():
    store = EndpointStore(":memory:")
    with pytest.raises(StoreError):
        asyncio.run(store.count_endpoints())
