"""
models/option.py
----------------
Tenant key/value option. Options only use the hidden flag: they can be
toggled out of listings but have no trash bin.
"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizcore.db.base import LifecycleEnvelopeMixin, TenantBase, TimestampMixin


class Option(TenantBase, TimestampMixin, LifecycleEnvelopeMixin):
    __tablename__ = "options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Option id={self.id} url={self.url}>"
