"""Per-standard extension records: exactly one row per token."""

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from token_engine.core.database import JSONType
from token_engine.models.base import BaseModel


class TokenExtension(BaseModel):
    __abstract__ = True

    token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tokens.id"), nullable=False, unique=True
    )


class ERC20Properties(TokenExtension):
    __tablename__ = "token_erc20_properties"

    initial_supply: Mapped[Decimal | None]
    cap: Mapped[Decimal | None]
    token_type: Mapped[str | None] = mapped_column(String(32))
    is_mintable: Mapped[bool] = mapped_column(default=False)
    is_burnable: Mapped[bool] = mapped_column(default=False)
    is_pausable: Mapped[bool] = mapped_column(default=False)
    access_control: Mapped[str | None] = mapped_column(String(32))
    allow_management: Mapped[bool] = mapped_column(default=False)
    permit: Mapped[bool] = mapped_column(default=False)
    snapshot: Mapped[bool] = mapped_column(default=False)
    fee_on_transfer: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    rebasing: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    governance_features: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)


class ERC721Properties(TokenExtension):
    __tablename__ = "token_erc721_properties"

    base_uri: Mapped[str | None] = mapped_column(Text)
    metadata_storage: Mapped[str | None] = mapped_column(String(32))
    max_supply: Mapped[Decimal | None]
    has_royalty: Mapped[bool] = mapped_column(default=False)
    royalty_percentage: Mapped[Decimal | None]
    royalty_receiver: Mapped[str | None] = mapped_column(String(42))
    is_mintable: Mapped[bool] = mapped_column(default=True)
    is_burnable: Mapped[bool] = mapped_column(default=False)
    is_pausable: Mapped[bool] = mapped_column(default=False)
    asset_type: Mapped[str | None] = mapped_column(String(64))
    minting_method: Mapped[str | None] = mapped_column(String(64))
    auto_increment_ids: Mapped[bool] = mapped_column(default=True)
    enumerable: Mapped[bool] = mapped_column(default=True)
    uri_storage: Mapped[str | None] = mapped_column(String(32))
    access_control: Mapped[str | None] = mapped_column(String(32))
    updatable_uris: Mapped[bool] = mapped_column(default=False)


class ERC1155Properties(TokenExtension):
    __tablename__ = "token_erc1155_properties"

    base_uri: Mapped[str | None] = mapped_column(Text)
    metadata_storage: Mapped[str | None] = mapped_column(String(32))
    has_royalty: Mapped[bool] = mapped_column(default=False)
    royalty_percentage: Mapped[Decimal | None]
    royalty_receiver: Mapped[str | None] = mapped_column(String(42))
    is_burnable: Mapped[bool] = mapped_column(default=False)
    is_pausable: Mapped[bool] = mapped_column(default=False)
    access_control: Mapped[str | None] = mapped_column(String(32))
    updatable_uris: Mapped[bool] = mapped_column(default=False)
    supply_tracking: Mapped[bool] = mapped_column(default=True)
    enable_approval_for_all: Mapped[bool] = mapped_column(default=True)
    batch_minting_enabled: Mapped[bool] = mapped_column(default=False)
    container_enabled: Mapped[bool] = mapped_column(default=False)
    dynamic_uris: Mapped[bool] = mapped_column(default=False)


class ERC1400Properties(TokenExtension):
    __tablename__ = "token_erc1400_properties"

    initial_supply: Mapped[Decimal | None]
    cap: Mapped[Decimal | None]
    is_mintable: Mapped[bool] = mapped_column(default=False)
    is_burnable: Mapped[bool] = mapped_column(default=False)
    is_pausable: Mapped[bool] = mapped_column(default=False)
    document_uri: Mapped[str | None] = mapped_column(Text)
    document_hash: Mapped[str | None] = mapped_column(String(128))
    controller_address: Mapped[str | None] = mapped_column(String(42))
    enforce_kyc: Mapped[bool] = mapped_column(default=True)
    forced_transfers: Mapped[bool] = mapped_column(default=False)
    forced_redemption_enabled: Mapped[bool] = mapped_column(default=False)
    whitelist_enabled: Mapped[bool] = mapped_column(default=False)
    investor_accreditation: Mapped[bool] = mapped_column(default=False)
    holding_period: Mapped[int | None]
    max_investor_count: Mapped[int | None]
    auto_compliance: Mapped[bool] = mapped_column(default=False)
    manual_approvals: Mapped[bool] = mapped_column(default=False)
    compliance_module: Mapped[str | None] = mapped_column(String(255))
    security_type: Mapped[str | None] = mapped_column(String(32))
    issuing_jurisdiction: Mapped[str | None] = mapped_column(String(128))
    issuing_entity_name: Mapped[str | None] = mapped_column(String(255))
    issuing_entity_lei: Mapped[str | None] = mapped_column(String(32))
    regulation_type: Mapped[str | None] = mapped_column(String(64))
    is_multi_class: Mapped[bool] = mapped_column(default=False)
    tranche_transferability: Mapped[bool] = mapped_column(default=False)
    is_issuable: Mapped[bool] = mapped_column(default=True)
    granular_control: Mapped[bool] = mapped_column(default=False)
    dividend_distribution: Mapped[bool] = mapped_column(default=False)
    corporate_actions: Mapped[bool] = mapped_column(default=False)
    geographic_restrictions: Mapped[list[str]] = mapped_column(JSONType, default=list)
    compliance_automation_level: Mapped[str | None] = mapped_column(String(32))


class ERC3525Properties(TokenExtension):
    __tablename__ = "token_erc3525_properties"

    value_decimals: Mapped[int | None]
    base_uri: Mapped[str | None] = mapped_column(Text)
    metadata_storage: Mapped[str | None] = mapped_column(String(32))
    slot_type: Mapped[str | None] = mapped_column(String(64))
    is_burnable: Mapped[bool] = mapped_column(default=False)
    is_pausable: Mapped[bool] = mapped_column(default=False)
    has_royalty: Mapped[bool] = mapped_column(default=False)
    royalty_percentage: Mapped[Decimal | None]
    royalty_receiver: Mapped[str | None] = mapped_column(String(42))
    slot_approvals: Mapped[bool] = mapped_column(default=True)
    value_approvals: Mapped[bool] = mapped_column(default=True)
    access_control: Mapped[str | None] = mapped_column(String(32))
    updatable_uris: Mapped[bool] = mapped_column(default=False)
    updatable_slots: Mapped[bool] = mapped_column(default=False)
    value_transfers_enabled: Mapped[bool] = mapped_column(default=True)
    fractional_ownership_enabled: Mapped[bool] = mapped_column(default=False)
    mergable: Mapped[bool] = mapped_column(default=False)
    splittable: Mapped[bool] = mapped_column(default=False)
    dynamic_metadata: Mapped[bool] = mapped_column(default=False)
    allows_slot_enumeration: Mapped[bool] = mapped_column(default=True)
    value_aggregation: Mapped[bool] = mapped_column(default=False)
    financial_instrument: Mapped[str | None] = mapped_column(String(64))


class ERC4626Properties(TokenExtension):
    __tablename__ = "token_erc4626_properties"

    asset_address: Mapped[str | None] = mapped_column(String(42))
    asset_name: Mapped[str | None] = mapped_column(String(255))
    asset_symbol: Mapped[str | None] = mapped_column(String(32))
    asset_decimals: Mapped[int | None]
    vault_type: Mapped[str | None] = mapped_column(String(32))
    vault_strategy: Mapped[str | None] = mapped_column(String(64))
    custom_strategy: Mapped[bool] = mapped_column(default=False)
    strategy_controller: Mapped[str | None] = mapped_column(String(42))
    access_control: Mapped[str | None] = mapped_column(String(32))
    is_mintable: Mapped[bool] = mapped_column(default=False)
    is_burnable: Mapped[bool] = mapped_column(default=False)
    is_pausable: Mapped[bool] = mapped_column(default=False)
    permit: Mapped[bool] = mapped_column(default=False)
    flash_loans: Mapped[bool] = mapped_column(default=False)
    emergency_shutdown: Mapped[bool] = mapped_column(default=False)
    performance_metrics: Mapped[bool] = mapped_column(default=False)
    yield_optimization_enabled: Mapped[bool] = mapped_column(default=False)
    automated_rebalancing: Mapped[bool] = mapped_column(default=False)
    yield_source: Mapped[str | None] = mapped_column(String(32))
    rebalance_threshold: Mapped[Decimal | None]
    liquidity_reserve: Mapped[Decimal | None]
    max_slippage: Mapped[Decimal | None]
    deposit_limit: Mapped[Decimal | None]
    withdrawal_limit: Mapped[Decimal | None]
    min_deposit: Mapped[Decimal | None]
    max_deposit: Mapped[Decimal | None]
    min_withdrawal: Mapped[Decimal | None]
    max_withdrawal: Mapped[Decimal | None]
    deposit_fee: Mapped[Decimal | None]
    withdrawal_fee: Mapped[Decimal | None]
    management_fee: Mapped[Decimal | None]
    performance_fee: Mapped[Decimal | None]
    fee_recipient: Mapped[str | None] = mapped_column(String(42))
    rebalancing_rules: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    strategy_defaults: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
