"""Token core record, status history, deployment record and templates."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from token_engine.core.database import JSONType
from token_engine.models.base import BaseModel, TimestampedModel


class Token(BaseModel):
    __tablename__ = "tokens"
    __table_args__ = (
        Index("ix_tokens_project_standard", "project_id", "standard"),
        Index("ix_tokens_parent_token_id", "parent_token_id"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    decimals: Mapped[int] = mapped_column(Integer, default=18, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # Canonical text ("ERC-20"); parsed on read so unknown values fail loudly
    standard: Mapped[str] = mapped_column(String(16), nullable=False)
    # Storage form ("UNDER REVIEW", "READY TO MINT", ...)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="DRAFT")
    transition_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    token_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )
    blocks: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    config_mode: Mapped[str] = mapped_column(String(8), default="min", nullable=False)
    parent_token_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tokens.id", ondelete="SET NULL"), nullable=True
    )
    tier: Mapped[str | None] = mapped_column(String(16))
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)


class TokenStatusTransition(TimestampedModel):
    """Append-only record of every applied status change."""

    __tablename__ = "token_status_transitions"
    __table_args__ = (
        Index("ix_token_status_transitions_token_time", "token_id", "created_at"),
    )

    token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tokens.id", ondelete="CASCADE"), nullable=False
    )
    from_status: Mapped[str] = mapped_column(String(32), nullable=False)
    to_status: Mapped[str] = mapped_column(String(32), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)


class TokenDeployment(BaseModel):
    """The single evolving deployment record of a token."""

    __tablename__ = "token_deployments"
    __table_args__ = (UniqueConstraint("token_id", name="uq_token_deployments_token_id"),)

    token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tokens.id", ondelete="CASCADE"), nullable=False
    )
    network: Mapped[str] = mapped_column(String(32), nullable=False)
    environment: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    contract_address: Mapped[str | None] = mapped_column(String(42))
    transaction_hash: Mapped[str | None] = mapped_column(String(66))
    error_message: Mapped[str | None] = mapped_column(Text)
    attempts: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    override_validation: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    findings: Mapped[list[Any]] = mapped_column(JSONType, default=list, nullable=False)
    config: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    deployed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    deployed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class TokenTemplate(BaseModel):
    """Reusable token configuration: a standard plus default form values."""

    __tablename__ = "token_templates"
    __table_args__ = (Index("ix_token_templates_project_id", "project_id"),)

    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    standard: Mapped[str] = mapped_column(String(16), nullable=False)
    # Partial flat form merged under the caller's values on use
    blocks: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    template_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
