"""
entities.py
-----------
Entity types served by the generic lifecycle API, with their policies.

  clients   trash workflow; restore leaves `hidden` as it was
  courses   trash workflow; restore also clears `hidden`
  options   hidden-only visibility toggle, no trash bin
"""

from bizcore.lifecycle.capabilities import EntityType
from bizcore.models import Client, Course, Option
from bizcore.schemas.entity import (
    ClientCreate,
    ClientRead,
    CourseCreate,
    CourseRead,
    OptionCreate,
    OptionRead,
)

CLIENTS = EntityType(
    name="clients",
    model=Client,
    create_schema=ClientCreate,
    read_schema=ClientRead,
    label_field="name",
    trashable=True,
    restore_clears_hidden=False,
    sortable=("id", "created_at", "name", "email"),
)

COURSES = EntityType(
    name="courses",
    model=Course,
    create_schema=CourseCreate,
    read_schema=CourseRead,
    label_field="name",
    trashable=True,
    restore_clears_hidden=True,
    sortable=("id", "created_at", "name", "title"),
)

OPTIONS = EntityType(
    name="options",
    model=Option,
    create_schema=OptionCreate,
    read_schema=OptionRead,
    label_field="name",
    trashable=False,
    sortable=("id", "created_at", "name", "url"),
)

ENTITY_TYPES = {et.name: et for et in (CLIENTS, COURSES, OPTIONS)}
