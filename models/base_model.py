#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the Ask API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- SoftDeleteMixin for records that are deactivated instead of removed

Notes:
- Timestamps that the application compares (expiry, last use) are stored as
  naive UTC datetimes, see utcnow().
- SoftDelete: put mixin FIRST in your model's inheritance list.
  Example:
    class User(SoftDeleteMixin, BaseModel, Base): ...
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (SQLite drops tzinfo anyway)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class BaseModel:
    """
    Base mixin for all persistent models.

    - id, created_at, updated_at
    - kwargs constructor that does not need a session
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        We do NOT force created_at/updated_at in __init__; DB defaults handle those on insert.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if caller passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"


class SoftDeleteMixin:
    """
    Adds a deleted_at timestamp for entities that are deactivated while
    preserving history and relations.
    IMPORTANT: Place this mixin BEFORE BaseModel in your class base list.
    """

    deleted_at = Column(DateTime, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    def soft_delete(self, now: datetime | None = None):
        """Mark as deleted; the caller's transaction persists the change."""
        self.deleted_at = now or utcnow()

    def restore(self):
        self.deleted_at = None
