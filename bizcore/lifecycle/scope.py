"""
lifecycle/scope.py
------------------
Named read filters for entity queries.

Every read of a tenant entity picks one scope explicitly:

  DEFAULT     hidden != 's' AND trashed != 's'   (normal listings)
  TRASH_ONLY  trashed == 's'                      (trash bin, hidden ignored)
  UNSCOPED    no filter                           (lifecycle managers only)

Legacy rows may carry NULL flags; NULL counts as "not set".
"""

from enum import Enum
from typing import Optional

from sqlalchemy import ColumnElement, Select, and_, or_

from bizcore.db.base import FLAG_ON


def flag_not_set(column) -> ColumnElement[bool]:
    return or_(column.is_(None), column != FLAG_ON)


class EntityLifecycleScope(str, Enum):
    DEFAULT = "default"
    TRASH_ONLY = "trash_only"
    UNSCOPED = "unscoped"

    def predicate(self, model) -> Optional[ColumnElement[bool]]:
        """SQL predicate for `model`, or None when the scope filters nothing."""
        if self is EntityLifecycleScope.DEFAULT:
            return and_(flag_not_set(model.hidden), flag_not_set(model.trashed))
        if self is EntityLifecycleScope.TRASH_ONLY:
            return model.trashed == FLAG_ON
        return None

    def apply(self, stmt: Select, model) -> Select:
        clause = self.predicate(model)
        if clause is None:
            return stmt
        return stmt.where(clause)
