"""
lifecycle/manager.py
--------------------
Mutations of the hidden/trashed envelope.

State machine per record:

    Active  --hide-->          Hidden
    Active | Hidden  --move_to_trash-->  Trashed
    Trashed --restore-->       Active | Hidden
    Trashed --force_delete-->  Removed (row gone)

Each transition is one conditional UPDATE/DELETE guarded on the current
flag value, so two concurrent transitions on the same row cannot both
apply to the same starting state. A flag and its audit stamp are always
written in the same statement. When the guard matches nothing, the record
is re-read without any scope to tell "not found" from "already there" from
"not allowed".
"""

from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import delete, update

from bizcore.core.exceptions import InvalidLifecycleTransition
from bizcore.core.logging import get_logger
from bizcore.db.base import FLAG_OFF, FLAG_ON
from bizcore.db.tenant_router import TenantContext
from bizcore.lifecycle.audit import (
    HIDDEN_VERB,
    TRASHED_VERB,
    AuditTrailRecorder,
    utc_now,
)
from bizcore.lifecycle.capabilities import (
    Auditable,
    EntityType,
    SoftDeletable,
    Trashable,
)
from bizcore.lifecycle.scope import EntityLifecycleScope, flag_not_set
from bizcore.services.entity_service import EntityService

logger = get_logger(__name__)


class _RecordMutator:
    """Shared plumbing: unscoped lookup, guarded statements, commit."""

    def __init__(self, ctx: TenantContext, entity_type: EntityType, recorder: Auditable) -> None:
        self._ctx = ctx
        self._entity = entity_type
        self._recorder = recorder

    @property
    def _model(self):
        return self._entity.model

    async def _locate(self, entity_id: int) -> Any:
        return await EntityService.get(
            self._ctx, self._entity, entity_id, scope=EntityLifecycleScope.UNSCOPED
        )

    async def _execute(self, stmt) -> int:
        result = await self._ctx.session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        changed = result.rowcount
        await self._ctx.session.commit()
        return changed

    def _log(self, event: str, entity_id: int, actor: str, **extra) -> None:
        logger.info(
            event,
            tenant_id=self._ctx.tenant_id,
            entity=self._entity.name,
            entity_id=entity_id,
            actor=actor,
            **extra,
        )


class VisibilityManager(_RecordMutator):
    """SoftDeletable: toggles the hidden flag only."""

    async def hide(self, entity_id: int, actor: Optional[str]) -> Any:
        """Hide a record. Hiding an already hidden record is a no-op."""
        record = await self._locate(entity_id)
        stamp = self._recorder.stamp(actor, self._entity.label_of(record))
        model = self._model
        changed = await self._execute(
            update(model)
            .where(model.id == entity_id, flag_not_set(model.hidden))
            .values({
                model.hidden: FLAG_ON,
                model.hidden_audit: stamp.to_json(HIDDEN_VERB, self._entity.table),
            })
        )
        if changed:
            self._log("Record hidden", entity_id, stamp.actor)
        return await self._locate(entity_id)

    async def unhide(self, entity_id: int, actor: Optional[str]) -> Any:
        """Make a hidden record visible again. No-op when it is not hidden."""
        record = await self._locate(entity_id)
        stamp = self._recorder.stamp(actor, self._entity.label_of(record))
        model = self._model
        changed = await self._execute(
            update(model)
            .where(model.id == entity_id, model.hidden == FLAG_ON)
            .values({model.hidden: FLAG_OFF, model.hidden_audit: None})
        )
        if changed:
            self._log("Record unhidden", entity_id, stamp.actor)
        return await self._locate(entity_id)


class TrashLifecycleManager(_RecordMutator):
    """
    Trashable + SoftDeletable. Visibility toggling is delegated to a
    VisibilityManager sharing the same context and recorder.
    """

    def __init__(self, ctx: TenantContext, entity_type: EntityType, recorder: Auditable) -> None:
        super().__init__(ctx, entity_type, recorder)
        self.visibility = VisibilityManager(ctx, entity_type, recorder)

    async def hide(self, entity_id: int, actor: Optional[str]) -> Any:
        return await self.visibility.hide(entity_id, actor)

    async def unhide(self, entity_id: int, actor: Optional[str]) -> Any:
        return await self.visibility.unhide(entity_id, actor)

    def _require_trash_bin(self, entity_id: int, transition: str) -> None:
        if not self._entity.trashable:
            raise InvalidLifecycleTransition(
                self._entity.name, entity_id, transition, "entity type has no trash bin"
            )

    async def move_to_trash(
        self,
        entity_id: int,
        actor: Optional[str],
        reason: Optional[str] = None,
    ) -> Any:
        """Move a record to the trash. Already trashed records are left as is."""
        self._require_trash_bin(entity_id, "move to trash")
        record = await self._locate(entity_id)
        stamp = self._recorder.stamp(actor, self._entity.label_of(record), reason)
        model = self._model
        changed = await self._execute(
            update(model)
            .where(model.id == entity_id, flag_not_set(model.trashed))
            .values({
                model.trashed: FLAG_ON,
                model.trashed_audit: stamp.to_json(TRASHED_VERB, self._entity.table),
            })
        )
        if changed:
            self._log("Record moved to trash", entity_id, stamp.actor, reason=reason)
        return await self._locate(entity_id)

    async def restore(self, entity_id: int, actor: Optional[str]) -> Any:
        """
        Take a record out of the trash.

        Raises:
            EntityNotFound: no such record.
            InvalidLifecycleTransition: the record is not in the trash.
        """
        self._require_trash_bin(entity_id, "restore")
        stamp = self._recorder.stamp(actor)
        model = self._model
        values = {model.trashed: FLAG_OFF, model.trashed_audit: None}
        if self._entity.restore_clears_hidden:
            values.update({model.hidden: FLAG_OFF, model.hidden_audit: None})

        changed = await self._execute(
            update(model)
            .where(model.id == entity_id, model.trashed == FLAG_ON)
            .values(values)
        )
        if not changed:
            await self._locate(entity_id)
            raise InvalidLifecycleTransition(
                self._entity.name, entity_id, "restore", "record is not in the trash"
            )
        self._log("Record restored", entity_id, stamp.actor)
        return await self._locate(entity_id)

    async def force_delete(self, entity_id: int, actor: Optional[str]) -> None:
        """
        Permanently remove a trashed record.

        Raises:
            EntityNotFound: no such record.
            InvalidLifecycleTransition: the record is not in the trash.
        """
        self._require_trash_bin(entity_id, "permanently delete")
        stamp = self._recorder.stamp(actor)
        model = self._model
        changed = await self._execute(
            delete(model).where(model.id == entity_id, model.trashed == FLAG_ON)
        )
        if not changed:
            await self._locate(entity_id)
            raise InvalidLifecycleTransition(
                self._entity.name, entity_id, "permanently delete", "record is not in the trash"
            )
        self._log("Record permanently deleted", entity_id, stamp.actor)


def visibility_for(
    ctx: TenantContext,
    entity_type: EntityType,
    clock: Callable[[], datetime] = utc_now,
) -> SoftDeletable:
    """Hide/unhide, available on every entity type."""
    recorder = AuditTrailRecorder(ctx.meta, clock)
    if entity_type.trashable:
        return TrashLifecycleManager(ctx, entity_type, recorder)
    return VisibilityManager(ctx, entity_type, recorder)


def trash_bin_for(
    ctx: TenantContext,
    entity_type: EntityType,
    clock: Callable[[], datetime] = utc_now,
) -> Trashable:
    """
    Trash workflow for the entity type. Types without a trash bin get a
    manager whose transitions raise InvalidLifecycleTransition.
    """
    return TrashLifecycleManager(ctx, entity_type, AuditTrailRecorder(ctx.meta, clock))
