"""
api/routes/entities.py
----------------------
Generic lifecycle endpoints, generated once per entity type.

GET    /{entity}                 — Default scope, paginated, sortable
GET    /{entity}/trash           — TrashOnly scope, paginated        (trashable)
GET    /{entity}/{id}            — Default scope
POST   /{entity}                 — Create (flags start cleared)
DELETE /{entity}/{id}            — Move to trash (trashable) / hide (hidden-only)
PUT    /{entity}/{id}/restore    — Restore from trash                (trashable)
DELETE /{entity}/{id}/force      — Permanently delete a trashed row  (trashable)
PUT    /{entity}/{id}/hide       — Hide
PUT    /{entity}/{id}/unhide     — Unhide

Every endpoint runs against the TenantContext bound for the request host.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Tuple

from fastapi import APIRouter, Depends, Query, status

from bizcore.core.config import settings
from bizcore.db.tenant_router import TenantContext
from bizcore.dependencies import get_current_actor, get_tenant_context
from bizcore.entities import ENTITY_TYPES
from bizcore.lifecycle.capabilities import EntityType
from bizcore.lifecycle.manager import trash_bin_for, visibility_for
from bizcore.lifecycle.scope import EntityLifecycleScope
from bizcore.schemas.entity import Page
from bizcore.services.entity_service import EntityService

Ctx = Annotated[TenantContext, Depends(get_tenant_context)]
Actor = Annotated[Optional[str], Depends(get_current_actor)]


def _paging(
    skip: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(
        default=settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Results per page",
    ),
) -> Tuple[int, int]:
    return skip, limit


Paging = Annotated[Tuple[int, int], Depends(_paging)]


def build_entity_router(entity_type: EntityType) -> APIRouter:
    router = APIRouter(
        prefix=f"/{entity_type.name}",
        tags=[entity_type.name.capitalize()],
    )
    Read = entity_type.read_schema
    Create = entity_type.create_schema
    label = entity_type.name

    SortField = Enum(
        f"{entity_type.name.capitalize()}SortField",
        {f: f for f in entity_type.sortable},
        type=str,
    )

    def sorting(
        order_by: SortField = Query(default=SortField("created_at"), description="Sort column"),
        order: Literal["asc", "desc"] = Query(default="desc"),
    ) -> Tuple[str, bool]:
        return order_by.value, order == "desc"

    Sorting = Annotated[Tuple[str, bool], Depends(sorting)]

    async def _page(ctx: TenantContext, scope: EntityLifecycleScope, paging, sort):
        skip, limit = paging
        order_by, descending = sort
        total, records = await EntityService.list_records(
            ctx, entity_type, scope=scope, skip=skip, limit=limit,
            order_by=order_by, descending=descending,
        )
        return Page[Read](total=total, items=[Read.model_validate(r) for r in records])

    @router.get("", response_model=Page[Read], summary=f"List {label}")
    async def list_visible(ctx: Ctx, paging: Paging, sort: Sorting):
        return await _page(ctx, EntityLifecycleScope.DEFAULT, paging, sort)

    if entity_type.trashable:
        # Registered before /{entity_id} so "trash" is not read as an id.
        @router.get("/trash", response_model=Page[Read], summary=f"List {label} in the trash")
        async def list_trash(ctx: Ctx, paging: Paging, sort: Sorting):
            return await _page(ctx, EntityLifecycleScope.TRASH_ONLY, paging, sort)

    @router.get("/{entity_id}", response_model=Read, summary=f"Get one of {label}")
    async def get_one(entity_id: int, ctx: Ctx):
        record = await EntityService.get(
            ctx, entity_type, entity_id, scope=EntityLifecycleScope.DEFAULT
        )
        return Read.model_validate(record)

    @router.post(
        "",
        response_model=Read,
        status_code=status.HTTP_201_CREATED,
        summary=f"Create one of {label}",
    )
    async def create(body: Create, ctx: Ctx):
        record = await EntityService.create(ctx, entity_type, body)
        return Read.model_validate(record)

    @router.put("/{entity_id}/hide", response_model=Read, summary="Hide from listings")
    async def hide(entity_id: int, ctx: Ctx, actor: Actor):
        record = await visibility_for(ctx, entity_type).hide(entity_id, actor)
        return Read.model_validate(record)

    @router.put("/{entity_id}/unhide", response_model=Read, summary="Show in listings again")
    async def unhide(entity_id: int, ctx: Ctx, actor: Actor):
        record = await visibility_for(ctx, entity_type).unhide(entity_id, actor)
        return Read.model_validate(record)

    if not entity_type.trashable:
        @router.delete("/{entity_id}", response_model=Read, summary="Hide (no trash bin)")
        async def delete_hides(entity_id: int, ctx: Ctx, actor: Actor):
            record = await visibility_for(ctx, entity_type).hide(entity_id, actor)
            return Read.model_validate(record)

        return router

    @router.delete("/{entity_id}", response_model=Read, summary="Move to the trash")
    async def move_to_trash(
        entity_id: int,
        ctx: Ctx,
        actor: Actor,
        reason: Optional[str] = Query(default=None, max_length=500),
    ):
        record = await trash_bin_for(ctx, entity_type).move_to_trash(entity_id, actor, reason)
        return Read.model_validate(record)

    @router.put("/{entity_id}/restore", response_model=Read, summary="Restore from the trash")
    async def restore(entity_id: int, ctx: Ctx, actor: Actor):
        record = await trash_bin_for(ctx, entity_type).restore(entity_id, actor)
        return Read.model_validate(record)

    @router.delete(
        "/{entity_id}/force",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Permanently delete a trashed record",
    )
    async def force_delete(entity_id: int, ctx: Ctx, actor: Actor) -> None:
        await trash_bin_for(ctx, entity_type).force_delete(entity_id, actor)

    return router


routers = [build_entity_router(et) for et in ENTITY_TYPES.values()]
