"""
services/entity_service.py
--------------------------
Generic reads and creation for tenant entities.

Every read takes an explicit EntityLifecycleScope; there is no implicit
default filter. All queries run on the session of the TenantContext they
are given, so they can only ever see that tenant's database.
"""

from typing import Any

from pydantic import BaseModel
from sqlalchemy import func, select

from bizcore.core.exceptions import EntityNotFound
from bizcore.core.logging import get_logger
from bizcore.db.base import FLAG_OFF
from bizcore.db.tenant_router import TenantContext
from bizcore.lifecycle.capabilities import EntityType
from bizcore.lifecycle.scope import EntityLifecycleScope

logger = get_logger(__name__)


class EntityService:

    @staticmethod
    async def create(
        ctx: TenantContext,
        entity_type: EntityType,
        data: BaseModel,
    ) -> Any:
        """Insert a new record; lifecycle flags start cleared."""
        record = entity_type.model(
            **data.model_dump(),
            hidden=FLAG_OFF,
            trashed=FLAG_OFF,
            hidden_audit=None,
            trashed_audit=None,
        )
        ctx.session.add(record)
        await ctx.session.flush()
        await ctx.session.refresh(record)
        await ctx.session.commit()
        logger.info(
            "Record created",
            tenant_id=ctx.tenant_id,
            entity=entity_type.name,
            entity_id=record.id,
        )
        return record

    @staticmethod
    async def get(
        ctx: TenantContext,
        entity_type: EntityType,
        entity_id: int,
        *,
        scope: EntityLifecycleScope,
    ) -> Any:
        """
        Fetch one record within `scope`.
        Raises EntityNotFound when the id is absent or outside the scope.
        """
        model = entity_type.model
        stmt = scope.apply(select(model).where(model.id == entity_id), model)
        result = await ctx.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise EntityNotFound(entity_type.name, entity_id)
        return record

    @staticmethod
    async def list_records(
        ctx: TenantContext,
        entity_type: EntityType,
        *,
        scope: EntityLifecycleScope,
        skip: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> tuple[int, list[Any]]:
        """
        Paginated listing within `scope`.

        Raises:
            ValueError: `order_by` is not one of entity_type.sortable.

        Returns:
            (total_count, page_of_records)
        """
        if order_by not in entity_type.sortable:
            raise ValueError(f"Cannot order {entity_type.name} by '{order_by}'")
        model = entity_type.model

        count_result = await ctx.session.execute(
            scope.apply(select(func.count()).select_from(model), model)
        )
        total = count_result.scalar_one()

        # id breaks ties, in the same direction
        columns = [getattr(model, order_by)]
        if order_by != "id":
            columns.append(model.id)
        ordering = [c.desc() if descending else c.asc() for c in columns]

        result = await ctx.session.execute(
            scope.apply(select(model), model)
            .order_by(*ordering)
            .offset(skip)
            .limit(limit)
        )
        return total, list(result.scalars().all())
