"""
Generated entity routers.

``build_entity_router`` turns one entity configuration into the full set of
administrative endpoints; ``menu_router`` lists the registered entities.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from crudgen.api.dependencies import ActorDep, RegistryDep, admin_dependency
from crudgen.models import (
    DeleteResult,
    EntityConfig,
    FormView,
    ListParams,
    OperationResponse,
    RecordPage,
    RecordRead,
)
from crudgen.registry import MenuItem
from crudgen.services.lifecycle import EntityAdmin
from crudgen.utils.forms import read_submission

menu_router = APIRouter(tags=["Admin"])


@menu_router.get("/entities", response_model=list[MenuItem])
async def list_entities(registry: RegistryDep) -> list[MenuItem]:
    """Navigation menu of registered, enabled entities."""
    return registry.menu()


def build_entity_router(config: EntityConfig) -> APIRouter:
    """Create the administrative endpoints for one entity.

    Restore and permanent delete are only routed for soft-delete entities.

    Args:
        config: Entity configuration

    Returns:
        Router to be mounted under ``/api/admin/<model_name>``
    """
    AdminDep = Annotated[EntityAdmin, Depends(admin_dependency(config.model_name))]
    router = APIRouter(
        tags=[config.title],
        responses={
            400: {"description": "Invalid identity or operation"},
            404: {"description": "Not found"},
            409: {"description": "Duplicate value"},
            422: {"description": "Validation failed"},
        },
    )

    @router.get("/", response_model=RecordPage)
    async def list_records(request: Request, admin: AdminDep, actor: ActorDep) -> RecordPage:
        """List records with search, filters, sorting and pagination."""
        params = ListParams.from_query(dict(request.query_params))
        return await admin.list(params, actor)

    @router.get("/create", response_model=FormView)
    async def create_form(admin: AdminDep, actor: ActorDep) -> FormView:
        return await admin.create_form(actor)

    @router.post("/", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
    async def insert_record(request: Request, admin: AdminDep, actor: ActorDep) -> OperationResponse:
        """Create a record from a JSON, urlencoded or multipart body."""
        submission = await read_submission(request)
        result = await admin.insert(submission.payload, submission.files, actor)
        return OperationResponse(
            message=f"{config.title} created successfully",
            record=RecordRead.model_validate(result.record),
            warnings=result.warnings,
        )

    @router.get("/{record_id}/edit", response_model=FormView)
    async def edit_form(record_id: str, admin: AdminDep, actor: ActorDep) -> FormView:
        return await admin.edit_form(record_id, actor)

    @router.api_route("/{record_id}", methods=["PUT", "POST"], response_model=OperationResponse)
    async def update_record(
        record_id: str,
        request: Request,
        admin: AdminDep,
        actor: ActorDep,
        include_deleted: Annotated[bool, Query()] = False,
    ) -> OperationResponse:
        """Update a record; ``include_deleted`` also targets soft-deleted records."""
        submission = await read_submission(request)
        result = await admin.update(
            record_id, submission.payload, submission.files, actor, include_deleted=include_deleted
        )
        return OperationResponse(
            message=f"{config.title} updated successfully",
            record=RecordRead.model_validate(result.record),
            warnings=result.warnings,
        )

    @router.delete("/{record_id}", response_model=DeleteResult)
    async def delete_record(record_id: str, admin: AdminDep, actor: ActorDep) -> DeleteResult:
        return await admin.delete(record_id, actor)

    if config.soft_delete:

        @router.post("/{record_id}/restore", response_model=DeleteResult)
        async def restore_record(record_id: str, admin: AdminDep, actor: ActorDep) -> DeleteResult:
            return await admin.restore(record_id, actor)

        @router.delete("/{record_id}/permanent-delete", response_model=DeleteResult)
        async def permanent_delete_record(
            record_id: str, admin: AdminDep, actor: ActorDep
        ) -> DeleteResult:
            return await admin.permanent_delete(record_id, actor)

    return router
