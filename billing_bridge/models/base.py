"""
Base model class for all SQLAlchemy models.

WHY: Centralizing common model functionality (timestamps, ID, collection
name) in a base class keeps every billing table consistent.
"""

from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    `__collection__` is the short name the billing services use to refer to
    a model ("customer", "product", ...). It is independent of the table name
    so that services never hard-code table names.
    """

    __collection__: ClassVar[str] = ""


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    Note: these are local bookkeeping columns. Stripe's own timestamps are
    stored separately as ISO-8601 strings on the billing models.
    """

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class PrimaryKeyMixin:
    """Mixin to add an auto-incrementing integer primary key."""

    id = Column(Integer, primary_key=True, index=True)
