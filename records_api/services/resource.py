"""Generic CRUD/search engine shared by every record type."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from records_api.database import Collection, Contains, DocumentStore, Either, Filter
from records_api.errors import NotFound, StoreUnavailable
from records_api.models.records import ResourceDefinition, SearchParam
from records_api.services.validation import validate_create, validate_update

logger = logging.getLogger(__name__)

NOTE_ACK = {"status": "note added"}


def _matcher(param: SearchParam, value: str) -> Any:
    return Contains(value) if param.mode == "contains" else value


def build_filter(params: tuple[SearchParam, ...], query: Mapping[str, str]) -> Filter:
    """Build a store filter from the recognized parameters present in ``query``.

    Missing or empty parameters are left out entirely; anything not declared
    in ``params`` is ignored.
    """
    result: Filter = {}
    for param in params:
        value = query.get(param.name)
        if not value:
            continue
        if len(param.fields) == 1:
            result[param.fields[0]] = _matcher(param, value)
        else:
            result[param.name] = Either(
                tuple((name, _matcher(param, value)) for name in param.fields)
            )
    return result


class ResourceModule:
    def __init__(self, definition: ResourceDefinition, store: DocumentStore | None) -> None:
        self.definition = definition
        self.schema = definition.schema
        self.store = store

    @property
    def name(self) -> str:
        return self.definition.path

    @property
    def collection(self) -> Collection:
        if self.store is None:
            raise StoreUnavailable(f"No store configured for {self.definition.collection_name}")
        return self.store.collection(self.definition.collection_name)

    def _load(self, document: dict | None) -> dict | None:
        return self.schema.revive(document) if document is not None else None

    async def list(self) -> list[dict]:
        return [self._load(d) for d in await self.collection.find({})]

    async def count(self) -> int:
        return await self.collection.count({})

    async def search(self, query: Mapping[str, str]) -> list[dict]:
        query_filter = build_filter(self.definition.search_params, query)
        return [self._load(d) for d in await self.collection.find(query_filter)]

    async def get(self, record_id: str) -> dict:
        document = await self.collection.find_by_id(record_id)
        if document is None:
            raise NotFound(self.name, record_id)
        return self._load(document)

    async def create(self, payload: Any) -> dict:
        fields = validate_create(self.schema, payload)
        document = await self.collection.insert(fields)
        logger.debug("Created %s %s", self.schema.name, document["_id"])
        return self._load(document)

    async def update(self, record_id: str, payload: Any) -> dict:
        fields = validate_update(self.schema, payload)
        document = await self.collection.update_by_id(record_id, fields)
        if document is None:
            raise NotFound(self.name, record_id)
        logger.debug("Updated %s %s (%s)", self.schema.name, record_id, ", ".join(fields) or "no fields")
        return self._load(document)

    async def transition(self, record_id: str, fields: dict) -> dict:
        """Force-set ``fields`` with no validation and no prior-state check."""
        document = await self.collection.update_by_id(record_id, fields)
        if document is None:
            raise NotFound(self.name, record_id)
        logger.debug("Transitioned %s %s to %s", self.schema.name, record_id, fields)
        return self._load(document)

    async def delete(self, record_id: str) -> None:
        await self.collection.delete_by_id(record_id)
        logger.debug("Deleted %s %s", self.schema.name, record_id)

    # Placeholder sub-resources: no store access and no id lookup.

    async def history(self, record_id: str) -> list:
        return []

    async def add_note(self, record_id: str, payload: Any = None) -> dict:
        return dict(NOTE_ACK)

    async def related(self, record_id: str) -> list:
        return []
