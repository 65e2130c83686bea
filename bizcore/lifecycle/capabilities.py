"""
lifecycle/capabilities.py
-------------------------
Capability interfaces composed per entity type, and the per-entity
lifecycle policy.

  Auditable      stamp()                 → AuditTrailRecorder
  SoftDeletable  hide() / unhide()       → VisibilityManager
  Trashable      move_to_trash() / restore() / force_delete()
                                         → TrashLifecycleManager
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple, Type, runtime_checkable

from pydantic import BaseModel

from bizcore.lifecycle.audit import AuditRecord


@runtime_checkable
class Auditable(Protocol):
    def stamp(
        self,
        actor: Optional[str],
        entity_label: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> AuditRecord: ...


@runtime_checkable
class SoftDeletable(Protocol):
    async def hide(self, entity_id: int, actor: Optional[str]) -> Any: ...

    async def unhide(self, entity_id: int, actor: Optional[str]) -> Any: ...


@runtime_checkable
class Trashable(Protocol):
    async def move_to_trash(
        self, entity_id: int, actor: Optional[str], reason: Optional[str] = None
    ) -> Any: ...

    async def restore(self, entity_id: int, actor: Optional[str]) -> Any: ...

    async def force_delete(self, entity_id: int, actor: Optional[str]) -> None: ...


@dataclass(frozen=True)
class EntityType:
    """
    Everything the generic lifecycle and HTTP layers need to know about one
    entity type.

    trashable:             the type has a trash bin (move/restore/force).
                           False means hidden-only visibility toggling.
    restore_clears_hidden: restoring from the trash also un-hides the record.
    sortable:              columns listings may be ordered by.
    """

    name: str
    model: Type[Any]
    create_schema: Type[BaseModel]
    read_schema: Type[BaseModel]
    label_field: str = "name"
    trashable: bool = True
    restore_clears_hidden: bool = False
    sortable: Tuple[str, ...] = ("id", "created_at", "name")

    @property
    def table(self) -> str:
        return self.model.__tablename__

    def label_of(self, record) -> Optional[str]:
        value = getattr(record, self.label_field, None)
        return None if value is None else str(value)
