"""Base model classes and mixins for all SQLAlchemy models."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Uuid, func, inspect
from sqlalchemy.orm import Mapped, mapped_column

from token_engine.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModelMixin:
    """Provides as_record() and __repr__ for all models."""

    def as_record(self) -> dict[str, Any]:
        """Plain dict of mapped attribute values, keyed by attribute name."""
        return {attr.key: getattr(self, attr.key) for attr in inspect(type(self)).column_attrs}

    def __repr__(self) -> str:
        pk = getattr(self, "id", None)
        return f"<{self.__class__.__name__}(id={pk})>"


class BaseModel(Base, ModelMixin):
    """Abstract base for mutable records: UUID pk and timestamps."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class TimestampedModel(Base, ModelMixin):
    """Abstract base for append-only tables: UUID pk + created_at only."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class SubResourceModel(Base, ModelMixin):
    """Abstract base for per-standard collection rows owned by a token."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    position: Mapped[int] = mapped_column(default=0, server_default="0", nullable=False)
