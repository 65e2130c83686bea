"""
models/course.py
----------------
LMS course record. Trashing a course and restoring it brings it fully
back: restore clears both the trashed and the hidden flag.
"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizcore.db.base import LifecycleEnvelopeMixin, TenantBase, TimestampMixin


class Course(TenantBase, TimestampMixin, LifecycleEnvelopeMixin):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Course id={self.id} name={self.name}>"
