"""Tests for the document-store adapters (both backends)."""

from datetime import date, datetime

import pytest

from records_api.database import (
    Contains,
    Either,
    MemoryStore,
    SQLiteStore,
    _sqlite_path_from_url,
    compile_filter,
    contains_ci,
    matches,
    open_store,
)
from records_api.errors import StoreUnavailable


async def test_insert_assigns_id_and_timestamps(store):
    patients = store.collection("patients")
    doc = await patients.insert({"name": "Jane Doe", "dob": date(1990, 5, 1)})

    assert doc["_id"]
    assert doc["name"] == "Jane Doe"
    assert isinstance(doc["createdAt"], datetime)
    assert doc["createdAt"] == doc["updatedAt"]


async def test_ids_are_unique(store):
    patients = store.collection("patients")
    ids = {(await patients.insert({"name": f"P{i}"}))["_id"] for i in range(5)}
    assert len(ids) == 5


async def test_caller_cannot_supply_reserved_fields(store):
    patients = store.collection("patients")
    doc = await patients.insert({"_id": "chosen", "name": "Jane"})
    assert doc["_id"] != "chosen"

    updated = await patients.update_by_id(doc["_id"], {"_id": "other", "createdAt": "x"})
    assert updated["_id"] == doc["_id"]
    assert updated["createdAt"] == doc["createdAt"]


async def test_find_by_id(store):
    patients = store.collection("patients")
    doc = await patients.insert({"name": "Jane"})
    found = await patients.find_by_id(doc["_id"])
    assert found["name"] == "Jane"
    assert found["createdAt"] == doc["createdAt"]
    assert await patients.find_by_id("missing") is None


async def test_find_empty_filter_returns_all_in_insertion_order(store):
    patients = store.collection("patients")
    for name in ("Charlie", "Alice", "Bob"):
        await patients.insert({"name": name})
    docs = await patients.find({})
    assert [d["name"] for d in docs] == ["Charlie", "Alice", "Bob"]
    assert [d["name"] for d in await patients.find()] == ["Charlie", "Alice", "Bob"]


async def test_find_exact_and_contains(store):
    labs = store.collection("labs")
    await labs.insert({"patientId": "p1", "testName": "Complete Blood Count"})
    await labs.insert({"patientId": "p1", "testName": "Lipid Panel"})
    await labs.insert({"patientId": "p2", "testName": "blood glucose"})

    assert len(await labs.find({"patientId": "p1"})) == 2
    names = [d["testName"] for d in await labs.find({"testName": Contains("BLOOD")})]
    assert names == ["Complete Blood Count", "blood glucose"]
    both = await labs.find({"patientId": "p1", "testName": Contains("blood")})
    assert [d["testName"] for d in both] == ["Complete Blood Count"]


async def test_contains_is_unicode_case_insensitive(store):
    patients = store.collection("patients")
    await patients.insert({"name": "José Álvarez"})
    await patients.insert({"name": "Jose Alvarez"})

    found = await patients.find({"name": Contains("JOSÉ")})
    assert [d["name"] for d in found] == ["José Álvarez"]
    assert await patients.count({"name": Contains("álvarez")}) == 1


async def test_find_either(store):
    providers = store.collection("providers")
    await providers.insert({"name": "Ann Heart", "specialty": "Dermatology"})
    await providers.insert({"name": "Bo Smith", "specialty": "Cardiology"})
    await providers.insert({"name": "Cy Jones", "specialty": "Oncology"})

    query = {"term": Either((("name", Contains("card")), ("specialty", Contains("card"))))}
    assert [d["name"] for d in await providers.find(query)] == ["Bo Smith"]

    query = {"term": Either((("name", Contains("heart")), ("specialty", Contains("heart"))))}
    assert [d["name"] for d in await providers.find(query)] == ["Ann Heart"]
    assert await providers.count(query) == 1


async def test_exact_match_on_boolean(store):
    providers = store.collection("providers")
    await providers.insert({"name": "Active", "active": True})
    await providers.insert({"name": "Retired", "active": False})
    assert [d["name"] for d in await providers.find({"active": False})] == ["Retired"]


async def test_update_merges_partial_fields(store):
    patients = store.collection("patients")
    doc = await patients.insert({"name": "Jane", "gender": "O", "dob": date(1990, 5, 1)})
    updated = await patients.update_by_id(doc["_id"], {"gender": "F"})

    assert updated["gender"] == "F"
    assert updated["name"] == "Jane"
    assert updated["createdAt"] == doc["createdAt"]
    assert updated["updatedAt"] >= doc["updatedAt"]


async def test_update_missing_returns_none(store):
    patients = store.collection("patients")
    await patients.insert({"name": "Jane"})
    assert await patients.update_by_id("missing", {"name": "X"}) is None
    assert await patients.count({"name": "X"}) == 0


async def test_delete(store):
    patients = store.collection("patients")
    doc = await patients.insert({"name": "Jane"})
    await patients.delete_by_id("missing")
    assert await patients.count() == 1

    await patients.delete_by_id(doc["_id"])
    assert await patients.count() == 0
    assert await patients.find_by_id(doc["_id"]) is None


async def test_collections_are_independent(store):
    await store.collection("patients").insert({"name": "Jane"})
    assert await store.collection("providers").count() == 0


async def test_sqlite_dates_stored_as_iso_strings(sqlite_store):
    labs = sqlite_store.collection("labs")
    doc = await labs.insert({"date": date(2024, 3, 2)})
    found = await labs.find_by_id(doc["_id"])
    # Schema-level revival happens in the resource module, not the adapter
    assert found["date"] == "2024-03-02"
    assert isinstance(found["createdAt"], datetime)


async def test_sqlite_rejects_unsafe_collection_names(sqlite_store):
    with pytest.raises(ValueError):
        sqlite_store.collection('patients"; DROP TABLE x; --')


async def test_sqlite_closed_connection_raises_store_unavailable():
    store = await SQLiteStore.connect(":memory:")
    await store.close()
    with pytest.raises(StoreUnavailable):
        await store.collection("patients").count()


class TestFilters:
    def test_matches_empty_filter(self):
        assert matches({"name": "x"}, {})
        assert matches({"name": "x"}, None)

    def test_contains_only_matches_strings(self):
        assert not matches({"quantity": 10}, {"quantity": Contains("1")})
        assert not matches({}, {"name": Contains("a")})

    def test_contains_ci_folds_unicode(self):
        assert contains_ci("Hauptstrasse", "STRASSE")
        assert contains_ci("HAUPTSTRASSE", "straße")
        assert contains_ci("Müller", "MÜLL")
        assert contains_ci("José", "josé")
        assert not contains_ci(None, "a")
        assert not contains_ci(12, "1")

    def test_compile_filter(self):
        where, params = compile_filter(
            {"patientId": "p1", "term": Either((("name", Contains("a")), ("specialty", Contains("a"))))}
        )
        assert where.count("json_extract") == 3
        assert " OR " in where and " AND " in where
        assert params == ["$.patientId", "p1", "$.name", "a", "$.specialty", "a"]

    def test_compile_empty_filter(self):
        assert compile_filter({}) == ("1", [])


class TestOpenStore:
    async def test_memory_url(self):
        store = await open_store(url="memory://")
        assert isinstance(store, MemoryStore)

    async def test_sqlite_path(self):
        store = await open_store(url="", path=":memory:")
        try:
            assert store.engine == "sqlite"
        finally:
            await store.close()

    async def test_unsupported_scheme(self):
        with pytest.raises(ValueError):
            await open_store(url="postgres://localhost/records")

    def test_sqlite_path_from_url(self):
        assert _sqlite_path_from_url("sqlite:///records.db") == "records.db"
        assert _sqlite_path_from_url("sqlite:////var/data/records.db") == "/var/data/records.db"
        assert _sqlite_path_from_url("sqlite:///") == ""
