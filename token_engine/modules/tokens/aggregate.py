"""In-memory shapes of a loaded token: core record, extension, collections."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from token_engine.models.enums import DeploymentStatus, TokenStandard, TokenStatus, TokenTier
from token_engine.modules.tokens.exceptions import AggregateIntegrityError
from token_engine.modules.tokens.lifecycle import parse_status
from token_engine.modules.tokens.mapper import core_to_form, to_form
from token_engine.modules.tokens.registry import parse_standard, schema_for


@dataclass(frozen=True)
class TokenRecord:
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    symbol: str
    decimals: int
    standard: TokenStandard
    status: TokenStatus
    raw_status: str
    transition_count: int = 0
    description: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    blocks: Mapping[str, Any] = field(default_factory=dict)
    config_mode: str = "min"
    parent_token_id: uuid.UUID | None = None
    tier: TokenTier | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> TokenRecord:
        """Build from a ``tokens`` row; unknown standards or statuses raise."""
        tier = row.get("tier")
        return cls(
            id=row["id"],
            project_id=row["project_id"],
            name=row["name"],
            symbol=row["symbol"],
            decimals=row["decimals"],
            standard=parse_standard(row["standard"]),
            status=parse_status(row["status"]),
            raw_status=row["status"],
            transition_count=row.get("transition_count") or 0,
            description=row.get("description"),
            metadata=dict(row.get("token_metadata") or {}),
            blocks=dict(row.get("blocks") or {}),
            config_mode=row.get("config_mode") or "min",
            parent_token_id=row.get("parent_token_id"),
            tier=TokenTier(tier) if tier else None,
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def as_row(self) -> dict[str, Any]:
        """Storage-shaped core values, as the field mapper reads them."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "description": self.description,
            "config_mode": self.config_mode,
            "blocks": dict(self.blocks),
            "token_metadata": dict(self.metadata),
            "parent_token_id": self.parent_token_id,
            "tier": self.tier.value if self.tier else None,
        }


@dataclass(frozen=True)
class ExtensionRecord:
    """The per-standard extension, tagged with the standard it belongs to."""

    standard: TokenStandard
    fields: Mapping[str, Any]
    id: uuid.UUID | None = None

    @classmethod
    def from_row(cls, standard: TokenStandard, row: Mapping[str, Any]) -> ExtensionRecord:
        columns = {spec.column for spec in schema_for(standard).fields}
        return cls(
            standard=standard,
            fields={key: value for key, value in row.items() if key in columns},
            id=row.get("id"),
        )


@dataclass(frozen=True)
class DeploymentRecord:
    id: uuid.UUID
    token_id: uuid.UUID
    network: str
    environment: str
    status: DeploymentStatus
    contract_address: str | None = None
    transaction_hash: str | None = None
    error_message: str | None = None
    attempts: int = 1
    override_validation: bool = False
    findings: tuple[Mapping[str, Any], ...] = ()
    config: Mapping[str, Any] = field(default_factory=dict)
    deployed_by: uuid.UUID | None = None
    deployed_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> DeploymentRecord:
        return cls(
            id=row["id"],
            token_id=row["token_id"],
            network=row["network"],
            environment=row["environment"],
            status=DeploymentStatus(row["status"]),
            contract_address=row.get("contract_address"),
            transaction_hash=row.get("transaction_hash"),
            error_message=row.get("error_message"),
            attempts=row.get("attempts") or 1,
            override_validation=bool(row.get("override_validation")),
            findings=tuple(row.get("findings") or ()),
            config=dict(row.get("config") or {}),
            deployed_by=row.get("deployed_by"),
            deployed_at=row.get("deployed_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True)
class TokenAggregate:
    token: TokenRecord
    extension: ExtensionRecord
    collections: Mapping[str, tuple[Mapping[str, Any], ...]] = field(default_factory=dict)
    deployment: DeploymentRecord | None = None

    def __post_init__(self) -> None:
        if self.extension.standard != self.token.standard:
            raise AggregateIntegrityError(
                f"Token {self.token.id} is {self.token.standard.value} "
                f"but its extension is {self.extension.standard.value}"
            )
        unknown = set(self.collections) - set(schema_for(self.token.standard).collection_keys)
        if unknown:
            raise AggregateIntegrityError(
                f"Token {self.token.id} carries collections not declared for "
                f"{self.token.standard.value}: {sorted(unknown)}"
            )

    @property
    def standard(self) -> TokenStandard:
        return self.token.standard

    @property
    def status(self) -> TokenStatus:
        return self.token.status

    def form(self) -> dict[str, Any]:
        """Flat form view: core fields, extension fields and collections."""
        data = core_to_form(self.token.as_row())
        data.update(to_form(self.standard, self.extension.fields, self.collections))
        data["standard"] = self.standard.value
        return data
