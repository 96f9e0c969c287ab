"""Variable-length collections owned by a token of one standard."""

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from token_engine.core.database import JSONType
from token_engine.models.base import SubResourceModel


class TokenSubResource(SubResourceModel):
    __abstract__ = True

    token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tokens.id"), nullable=False, index=True
    )


# ── ERC-721 ───────────────────────────────────────────────────────────────────


class ERC721Attribute(TokenSubResource):
    __tablename__ = "token_erc721_attributes"

    trait_type: Mapped[str] = mapped_column(String(128))
    trait_values: Mapped[list[str]] = mapped_column(JSONType, default=list)


# ── ERC-1155 ──────────────────────────────────────────────────────────────────


class ERC1155Type(TokenSubResource):
    __tablename__ = "token_erc1155_types"

    token_type_id: Mapped[str] = mapped_column(String(78))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    max_supply: Mapped[Decimal | None]
    fungibility_type: Mapped[str | None] = mapped_column(String(32))
    type_metadata: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)


class ERC1155Balance(TokenSubResource):
    __tablename__ = "token_erc1155_balances"

    token_type_id: Mapped[str] = mapped_column(String(78))
    address: Mapped[str] = mapped_column(String(42))
    amount: Mapped[Decimal]


class ERC1155UriMapping(TokenSubResource):
    __tablename__ = "token_erc1155_uri_mappings"

    token_type_id: Mapped[str] = mapped_column(String(78))
    uri: Mapped[str] = mapped_column(Text)


# ── ERC-1400 ──────────────────────────────────────────────────────────────────


class ERC1400Partition(TokenSubResource):
    __tablename__ = "token_erc1400_partitions"

    partition_id: Mapped[str] = mapped_column(String(66))
    name: Mapped[str] = mapped_column(String(255))
    amount: Mapped[Decimal | None]
    transferable: Mapped[bool] = mapped_column(default=True)
    partition_type: Mapped[str | None] = mapped_column(String(64))


class ERC1400Controller(TokenSubResource):
    __tablename__ = "token_erc1400_controllers"

    address: Mapped[str] = mapped_column(String(42))
    permissions: Mapped[list[str]] = mapped_column(JSONType, default=list)


class ERC1400Document(TokenSubResource):
    __tablename__ = "token_erc1400_documents"

    name: Mapped[str] = mapped_column(String(255))
    document_uri: Mapped[str] = mapped_column(Text)
    document_type: Mapped[str | None] = mapped_column(String(64))
    document_hash: Mapped[str | None] = mapped_column(String(128))


# ── ERC-3525 ──────────────────────────────────────────────────────────────────


class ERC3525Slot(TokenSubResource):
    __tablename__ = "token_erc3525_slots"

    slot_id: Mapped[str] = mapped_column(String(78))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    value_units: Mapped[str | None] = mapped_column(String(32))
    slot_transferable: Mapped[bool] = mapped_column(default=True)


class ERC3525Allocation(TokenSubResource):
    __tablename__ = "token_erc3525_allocations"

    slot_id: Mapped[str] = mapped_column(String(78))
    recipient: Mapped[str] = mapped_column(String(42))
    allocated_value: Mapped[Decimal]
    linked_token_id: Mapped[str | None] = mapped_column(String(78))


# ── ERC-4626 ──────────────────────────────────────────────────────────────────


class ERC4626StrategyParam(TokenSubResource):
    __tablename__ = "token_erc4626_strategy_params"

    name: Mapped[str] = mapped_column(String(128))
    param_value: Mapped[str | None] = mapped_column(Text)
    param_type: Mapped[str | None] = mapped_column(String(32))
    description: Mapped[str | None] = mapped_column(Text)
    is_default: Mapped[bool] = mapped_column(default=False)


class ERC4626AssetAllocation(TokenSubResource):
    __tablename__ = "token_erc4626_asset_allocations"

    asset: Mapped[str] = mapped_column(String(255))
    percentage: Mapped[Decimal]
    protocol: Mapped[str | None] = mapped_column(String(128))
    expected_apy: Mapped[Decimal | None]
