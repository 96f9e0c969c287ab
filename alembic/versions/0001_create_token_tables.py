"""create token tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def _token_fk(**kwargs) -> sa.Column:
    return sa.Column(
        "token_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("tokens.id"),
        nullable=False,
        **kwargs,
    )


def _amount(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.Numeric(38, 8), nullable=nullable)


def _flag(name: str, default: bool = False) -> sa.Column:
    return sa.Column(name, sa.Boolean, nullable=False, server_default=sa.true() if default else sa.false())


def _json(name: str, empty: str = "{}") -> sa.Column:
    return sa.Column(name, postgresql.JSONB, nullable=False, server_default=empty)


def _extension(table: str, *columns: sa.Column) -> None:
    op.create_table(table, _id(), _token_fk(unique=True), *columns, *_timestamps())


def _collection(table: str, *columns: sa.Column) -> None:
    op.create_table(
        table,
        _id(),
        _token_fk(),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        *columns,
    )
    op.create_index(f"ix_{table}_token_id", table, ["token_id"])


EXTENSION_TABLES = (
    "token_erc20_properties",
    "token_erc721_properties",
    "token_erc1155_properties",
    "token_erc1400_properties",
    "token_erc3525_properties",
    "token_erc4626_properties",
)

COLLECTION_TABLES = (
    "token_erc721_attributes",
    "token_erc1155_types",
    "token_erc1155_balances",
    "token_erc1155_uri_mappings",
    "token_erc1400_partitions",
    "token_erc1400_controllers",
    "token_erc1400_documents",
    "token_erc3525_slots",
    "token_erc3525_allocations",
    "token_erc4626_strategy_params",
    "token_erc4626_asset_allocations",
)


def upgrade() -> None:
    # ── Core ──────────────────────────────────────────────────────────────────
    op.create_table(
        "tokens",
        _id(),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("symbol", sa.String(20), nullable=False),
        sa.Column("decimals", sa.Integer, nullable=False, server_default="18"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("standard", sa.String(16), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="DRAFT"),
        sa.Column("transition_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("blocks", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("config_mode", sa.String(8), nullable=False, server_default="min"),
        sa.Column(
            "parent_token_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tokens.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("tier", sa.String(16), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tokens_project_id", "tokens", ["project_id"])
    op.create_index("ix_tokens_project_standard", "tokens", ["project_id", "standard"])
    op.create_index("ix_tokens_parent_token_id", "tokens", ["parent_token_id"])

    op.create_table(
        "token_status_transitions",
        _id(),
        sa.Column(
            "token_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tokens.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(32), nullable=False),
        sa.Column("to_status", sa.String(32), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index(
        "ix_token_status_transitions_token_time",
        "token_status_transitions",
        ["token_id", "created_at"],
    )

    op.create_table(
        "token_deployments",
        _id(),
        sa.Column(
            "token_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tokens.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("network", sa.String(32), nullable=False),
        sa.Column("environment", sa.String(16), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("contract_address", sa.String(42), nullable=True),
        sa.Column("transaction_hash", sa.String(66), nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="1"),
        _flag("override_validation"),
        sa.Column("findings", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("config", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("deployed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("deployed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("token_id", name="uq_token_deployments_token_id"),
    )

    # ── Extensions ────────────────────────────────────────────────────────────
    _extension(
        "token_erc20_properties",
        _amount("initial_supply"),
        _amount("cap"),
        sa.Column("token_type", sa.String(32), nullable=True),
        _flag("is_mintable"),
        _flag("is_burnable"),
        _flag("is_pausable"),
        sa.Column("access_control", sa.String(32), nullable=True),
        _flag("allow_management"),
        _flag("permit"),
        _flag("snapshot"),
        _json("fee_on_transfer"),
        _json("rebasing"),
        _json("governance_features"),
    )
    _extension(
        "token_erc721_properties",
        sa.Column("base_uri", sa.Text, nullable=True),
        sa.Column("metadata_storage", sa.String(32), nullable=True),
        _amount("max_supply"),
        _flag("has_royalty"),
        _amount("royalty_percentage"),
        sa.Column("royalty_receiver", sa.String(42), nullable=True),
        _flag("is_mintable", default=True),
        _flag("is_burnable"),
        _flag("is_pausable"),
        sa.Column("asset_type", sa.String(64), nullable=True),
        sa.Column("minting_method", sa.String(64), nullable=True),
        _flag("auto_increment_ids", default=True),
        _flag("enumerable", default=True),
        sa.Column("uri_storage", sa.String(32), nullable=True),
        sa.Column("access_control", sa.String(32), nullable=True),
        _flag("updatable_uris"),
    )
    _extension(
        "token_erc1155_properties",
        sa.Column("base_uri", sa.Text, nullable=True),
        sa.Column("metadata_storage", sa.String(32), nullable=True),
        _flag("has_royalty"),
        _amount("royalty_percentage"),
        sa.Column("royalty_receiver", sa.String(42), nullable=True),
        _flag("is_burnable"),
        _flag("is_pausable"),
        sa.Column("access_control", sa.String(32), nullable=True),
        _flag("updatable_uris"),
        _flag("supply_tracking", default=True),
        _flag("enable_approval_for_all", default=True),
        _flag("batch_minting_enabled"),
        _flag("container_enabled"),
        _flag("dynamic_uris"),
    )
    _extension(
        "token_erc1400_properties",
        _amount("initial_supply"),
        _amount("cap"),
        _flag("is_mintable"),
        _flag("is_burnable"),
        _flag("is_pausable"),
        sa.Column("document_uri", sa.Text, nullable=True),
        sa.Column("document_hash", sa.String(128), nullable=True),
        sa.Column("controller_address", sa.String(42), nullable=True),
        _flag("enforce_kyc", default=True),
        _flag("forced_transfers"),
        _flag("forced_redemption_enabled"),
        _flag("whitelist_enabled"),
        _flag("investor_accreditation"),
        sa.Column("holding_period", sa.Integer, nullable=True),
        sa.Column("max_investor_count", sa.Integer, nullable=True),
        _flag("auto_compliance"),
        _flag("manual_approvals"),
        sa.Column("compliance_module", sa.String(255), nullable=True),
        sa.Column("security_type", sa.String(32), nullable=True),
        sa.Column("issuing_jurisdiction", sa.String(128), nullable=True),
        sa.Column("issuing_entity_name", sa.String(255), nullable=True),
        sa.Column("issuing_entity_lei", sa.String(32), nullable=True),
        sa.Column("regulation_type", sa.String(64), nullable=True),
        _flag("is_multi_class"),
        _flag("tranche_transferability"),
        _flag("is_issuable", default=True),
        _flag("granular_control"),
        _flag("dividend_distribution"),
        _flag("corporate_actions"),
        _json("geographic_restrictions", empty="[]"),
        sa.Column("compliance_automation_level", sa.String(32), nullable=True),
    )
    _extension(
        "token_erc3525_properties",
        sa.Column("value_decimals", sa.Integer, nullable=True),
        sa.Column("base_uri", sa.Text, nullable=True),
        sa.Column("metadata_storage", sa.String(32), nullable=True),
        sa.Column("slot_type", sa.String(64), nullable=True),
        _flag("is_burnable"),
        _flag("is_pausable"),
        _flag("has_royalty"),
        _amount("royalty_percentage"),
        sa.Column("royalty_receiver", sa.String(42), nullable=True),
        _flag("slot_approvals", default=True),
        _flag("value_approvals", default=True),
        sa.Column("access_control", sa.String(32), nullable=True),
        _flag("updatable_uris"),
        _flag("updatable_slots"),
        _flag("value_transfers_enabled", default=True),
        _flag("fractional_ownership_enabled"),
        _flag("mergable"),
        _flag("splittable"),
        _flag("dynamic_metadata"),
        _flag("allows_slot_enumeration", default=True),
        _flag("value_aggregation"),
        sa.Column("financial_instrument", sa.String(64), nullable=True),
    )
    _extension(
        "token_erc4626_properties",
        sa.Column("asset_address", sa.String(42), nullable=True),
        sa.Column("asset_name", sa.String(255), nullable=True),
        sa.Column("asset_symbol", sa.String(32), nullable=True),
        sa.Column("asset_decimals", sa.Integer, nullable=True),
        sa.Column("vault_type", sa.String(32), nullable=True),
        sa.Column("vault_strategy", sa.String(64), nullable=True),
        _flag("custom_strategy"),
        sa.Column("strategy_controller", sa.String(42), nullable=True),
        sa.Column("access_control", sa.String(32), nullable=True),
        _flag("is_mintable"),
        _flag("is_burnable"),
        _flag("is_pausable"),
        _flag("permit"),
        _flag("flash_loans"),
        _flag("emergency_shutdown"),
        _flag("performance_metrics"),
        _flag("yield_optimization_enabled"),
        _flag("automated_rebalancing"),
        sa.Column("yield_source", sa.String(32), nullable=True),
        _amount("rebalance_threshold"),
        _amount("liquidity_reserve"),
        _amount("max_slippage"),
        _amount("deposit_limit"),
        _amount("withdrawal_limit"),
        _amount("min_deposit"),
        _amount("max_deposit"),
        _amount("min_withdrawal"),
        _amount("max_withdrawal"),
        _amount("deposit_fee"),
        _amount("withdrawal_fee"),
        _amount("management_fee"),
        _amount("performance_fee"),
        sa.Column("fee_recipient", sa.String(42), nullable=True),
        _json("rebalancing_rules"),
        _json("strategy_defaults"),
    )

    # ── Collections ───────────────────────────────────────────────────────────
    _collection(
        "token_erc721_attributes",
        sa.Column("trait_type", sa.String(128), nullable=False),
        _json("trait_values", empty="[]"),
    )
    _collection(
        "token_erc1155_types",
        sa.Column("token_type_id", sa.String(78), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        _amount("max_supply"),
        sa.Column("fungibility_type", sa.String(32), nullable=True),
        _json("type_metadata"),
    )
    _collection(
        "token_erc1155_balances",
        sa.Column("token_type_id", sa.String(78), nullable=False),
        sa.Column("address", sa.String(42), nullable=False),
        _amount("amount", nullable=False),
    )
    _collection(
        "token_erc1155_uri_mappings",
        sa.Column("token_type_id", sa.String(78), nullable=False),
        sa.Column("uri", sa.Text, nullable=False),
    )
    _collection(
        "token_erc1400_partitions",
        sa.Column("partition_id", sa.String(66), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        _amount("amount"),
        _flag("transferable", default=True),
        sa.Column("partition_type", sa.String(64), nullable=True),
    )
    _collection(
        "token_erc1400_controllers",
        sa.Column("address", sa.String(42), nullable=False),
        _json("permissions", empty="[]"),
    )
    _collection(
        "token_erc1400_documents",
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("document_uri", sa.Text, nullable=False),
        sa.Column("document_type", sa.String(64), nullable=True),
        sa.Column("document_hash", sa.String(128), nullable=True),
    )
    _collection(
        "token_erc3525_slots",
        sa.Column("slot_id", sa.String(78), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("value_units", sa.String(32), nullable=True),
        _flag("slot_transferable", default=True),
    )
    _collection(
        "token_erc3525_allocations",
        sa.Column("slot_id", sa.String(78), nullable=False),
        sa.Column("recipient", sa.String(42), nullable=False),
        _amount("allocated_value", nullable=False),
        sa.Column("linked_token_id", sa.String(78), nullable=True),
    )
    _collection(
        "token_erc4626_strategy_params",
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("param_value", sa.Text, nullable=True),
        sa.Column("param_type", sa.String(32), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        _flag("is_default"),
    )
    _collection(
        "token_erc4626_asset_allocations",
        sa.Column("asset", sa.String(255), nullable=False),
        _amount("percentage", nullable=False),
        sa.Column("protocol", sa.String(128), nullable=True),
        _amount("expected_apy"),
    )


def downgrade() -> None:
    for table in reversed(COLLECTION_TABLES):
        op.drop_index(f"ix_{table}_token_id", table_name=table)
        op.drop_table(table)
    for table in reversed(EXTENSION_TABLES):
        op.drop_table(table)
    op.drop_table("token_deployments")
    op.drop_index("ix_token_status_transitions_token_time", table_name="token_status_transitions")
    op.drop_table("token_status_transitions")
    op.drop_index("ix_tokens_parent_token_id", table_name="tokens")
    op.drop_index("ix_tokens_project_standard", table_name="tokens")
    op.drop_index("ix_tokens_project_id", table_name="tokens")
    op.drop_table("tokens")
