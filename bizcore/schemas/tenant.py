"""
schemas/tenant.py
-----------------
Pydantic request/response models for the central tenant registry.

Naming convention:
  TenantCreate  → inbound request body
  TenantUpdate  → partial update body
  TenantRead    → outbound response body
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# Tenant ids become part of a database name.
TENANT_ID_PATTERN = r"^[a-z0-9][a-z0-9_-]{0,62}$"


def _clean_domain(value: str) -> str:
    value = value.strip().lower()
    if not value or " " in value or "/" in value:
        raise ValueError(f"Invalid domain '{value}'")
    return value


class TenantCreate(BaseModel):
    id: str = Field(
        ...,
        pattern=TENANT_ID_PATTERN,
        examples=["yellow"],
        description="Stable tenant slug; also names the tenant's database",
    )
    name: str = Field(..., min_length=2, max_length=255, examples=["Yellow Seguradora"])
    domains: List[str] = Field(..., min_length=1, examples=[["yellow.localhost"]])
    active: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("domains")
    @classmethod
    def clean_domains(cls, v: List[str]) -> List[str]:
        cleaned = [_clean_domain(d) for d in v]
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Duplicate domains")
        return cleaned


class TenantUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    active: Optional[bool] = None
    config: Optional[Dict[str, Any]] = None


class DomainAttach(BaseModel):
    domain: str = Field(..., examples=["portal.yellow.com.br"])

    @field_validator("domain")
    @classmethod
    def clean(cls, v: str) -> str:
        return _clean_domain(v)


class TenantRead(BaseModel):
    id: str
    name: str
    active: bool
    config: Dict[str, Any]
    domains: List[str]
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("domains", mode="before")
    @classmethod
    def domain_names(cls, v):
        return [getattr(d, "domain", d) for d in v]
