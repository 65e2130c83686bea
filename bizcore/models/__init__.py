"""
models/__init__.py
------------------
Re-export all models so both metadata trees are populated by a single
import:

    from bizcore.models import Base, TenantBase
"""

from bizcore.db.base import Base, TenantBase
from bizcore.models.client import Client
from bizcore.models.course import Course
from bizcore.models.option import Option
from bizcore.models.tenant import Domain, Tenant

__all__ = ["Base", "TenantBase", "Tenant", "Domain", "Client", "Course", "Option"]
