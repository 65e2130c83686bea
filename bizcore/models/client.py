"""
models/client.py
----------------
CRM client record, stored in the tenant's own database.

Uses the full trash workflow. Restoring a client clears only the trashed
flag; a client hidden before it was trashed stays hidden.
"""

from typing import Any, Optional

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bizcore.db.base import LifecycleEnvelopeMixin, TenantBase, TimestampMixin


class Client(TenantBase, TimestampMixin, LifecycleEnvelopeMixin):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, index=True)
    document: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Client id={self.id} name={self.name}>"
