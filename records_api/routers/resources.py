"""HTTP surface shared by every record type.

``build_router`` turns a ``ResourceDefinition`` into an ``APIRouter`` with the
same operation set for every type. Domain errors raised by the services are
mapped to JSON bodies by the handlers registered in ``records_api.main``.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request, Response

from records_api.models.records import ResourceDefinition
from records_api.models.responses import CountResponse, ErrorResponse, NoteAck
from records_api.services.resource import ResourceModule

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Record not found"}}
_INVALID = {400: {"model": ErrorResponse, "description": "Validation error"}}


def build_router(definition: ResourceDefinition) -> APIRouter:
    router = APIRouter(prefix=f"/{definition.path}", tags=[definition.tag or definition.path])

    def get_module(request: Request) -> ResourceModule:
        return request.app.state.registry[definition.path]

    Module = Annotated[ResourceModule, Depends(get_module)]
    label = definition.schema.name

    @router.get("", summary=f"List all {definition.path}")
    async def list_records(module: Module) -> list[dict]:
        return await module.list()

    @router.get("/count", response_model=CountResponse, summary=f"Count all {definition.path}")
    async def count_records(module: Module):
        return CountResponse(count=await module.count())

    @router.get("/search", summary=f"Search {definition.path}")
    async def search_records(request: Request, module: Module) -> list[dict]:
        """Filter by the recognized query parameters; others are ignored."""
        return await module.search(request.query_params)

    @router.get("/{record_id}", responses=_NOT_FOUND, summary=f"Get a {label} by id")
    async def get_record(record_id: str, module: Module) -> dict:
        return await module.get(record_id)

    @router.post("", status_code=201, responses=_INVALID, summary=f"Create a {label}")
    async def create_record(module: Module, payload: Annotated[Any, Body()] = None) -> dict:
        return await module.create(payload)

    @router.put(
        "/{record_id}",
        responses={**_NOT_FOUND, **_INVALID},
        summary=f"Update a {label}",
    )
    async def update_record(
        record_id: str, module: Module, payload: Annotated[Any, Body()] = None
    ) -> dict:
        return await module.update(record_id, payload)

    @router.delete("/{record_id}", status_code=204, response_class=Response, summary=f"Delete a {label}")
    async def delete_record(record_id: str, module: Module):
        await module.delete(record_id)
        return Response(status_code=204)

    @router.get("/{record_id}/history", summary=f"{label} history (placeholder)")
    async def record_history(record_id: str, module: Module) -> list:
        return await module.history(record_id)

    @router.post("/{record_id}/notes", response_model=NoteAck, summary=f"Add a note to a {label} (placeholder)")
    async def add_record_note(
        record_id: str, module: Module, payload: Annotated[Any, Body()] = None
    ):
        return await module.add_note(record_id, payload)

    @router.get("/{record_id}/related", summary=f"Records related to a {label} (placeholder)")
    async def related_records(record_id: str, module: Module) -> list:
        return await module.related(record_id)

    for action, fields in definition.transitions.items():
        _add_transition(router, get_module, label, action, fields)

    return router


def _add_transition(router: APIRouter, get_module, label: str, action: str, fields: dict) -> None:
    @router.patch(f"/{{record_id}}/{action}", responses=_NOT_FOUND, summary=f"{action.capitalize()} a {label}")
    async def transition_record(
        record_id: str, module: Annotated[ResourceModule, Depends(get_module)]
    ) -> dict:
        return await module.transition(record_id, dict(fields))
