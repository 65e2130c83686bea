"""
schemas/entity.py
-----------------
Pydantic models for tenant entities and their lifecycle envelope.

The stored 's'/'n' flags are exposed as booleans and the audit JSON is
parsed back into a structured AuditRead.
"""

import json
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, EmailStr, Field, field_validator

from bizcore.db.base import FLAG_ON
from bizcore.lifecycle.audit import HIDDEN_VERB, TRASHED_VERB, AuditRecord

T = TypeVar("T")


class AuditRead(BaseModel):
    actor: str
    timestamp: Optional[datetime] = None
    entity_label: Optional[str] = None
    ip: Optional[str] = None
    reason: Optional[str] = None


def _audit(verb: str, value):
    """Persisted stamp JSON → AuditRead input; already parsed values pass through."""
    if value is None or isinstance(value, AuditRead):
        return value
    if isinstance(value, dict) and "actor" in value:
        return value
    if isinstance(value, str):  # legacy rows hold the stamp as a JSON string
        value = json.loads(value) if value.strip() else None
    record = AuditRecord.from_json(verb, value)
    return asdict(record) if record else None


class EnvelopeRead(BaseModel):
    id: int
    hidden: bool
    trashed: bool
    hidden_audit: Optional[AuditRead] = None
    trashed_audit: Optional[AuditRead] = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("hidden", "trashed", mode="before")
    @classmethod
    def flag(cls, v) -> bool:
        return v is True or v == FLAG_ON

    @field_validator("hidden_audit", mode="before")
    @classmethod
    def hidden_stamp(cls, v):
        return _audit(HIDDEN_VERB, v)

    @field_validator("trashed_audit", mode="before")
    @classmethod
    def trashed_stamp(cls, v):
        return _audit(TRASHED_VERB, v)


class Page(BaseModel, Generic[T]):
    total: int
    items: List[T]


# ── Clients ───────────────────────────────────────────────────────────────────

class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Maria Souza"])
    email: Optional[EmailStr] = None
    document: Optional[str] = Field(default=None, max_length=32)
    config: Optional[Dict[str, Any]] = None


class ClientRead(EnvelopeRead):
    name: str
    email: Optional[str] = None
    document: Optional[str] = None
    config: Optional[Dict[str, Any]] = None


# ── Courses ───────────────────────────────────────────────────────────────────

class CourseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["pp-asa"])
    title: Optional[str] = Field(default=None, max_length=255, examples=["Piloto Privado"])
    description: Optional[str] = None


class CourseRead(EnvelopeRead):
    name: str
    title: Optional[str] = None
    description: Optional[str] = None


# ── Options ───────────────────────────────────────────────────────────────────

class OptionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Default currency"])
    url: str = Field(..., min_length=1, max_length=255, examples=["default_currency"])
    value: Optional[str] = None


class OptionRead(EnvelopeRead):
    name: str
    url: str
    value: Optional[str] = None
