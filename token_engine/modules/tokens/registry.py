"""Standard schema registry: the declared shape of every token standard.

Pure data. For each of the six standards it lists the extension table, the
extension fields and the sub-resource collections. The field mapper, the
aggregate loader and the deployment gate all read from here, so a field
declared once is mapped, stored and validated everywhere.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from token_engine.models.enums import ConfigMode, TokenStandard, TokenTier
from token_engine.modules.tokens.exceptions import UnknownStandard


class FieldKind(str, enum.Enum):
    TEXT = "text"
    CHOICE = "choice"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"        # non-negative amount, unbounded above
    PERCENT = "percent"        # decimal in [0, 100]
    ADDRESS = "address"
    TEXT_LIST = "text_list"
    NESTED = "nested"          # JSON object mapped key-by-key through children
    JSON = "json"              # opaque JSON object


@dataclass(frozen=True)
class FieldSpec:
    """One declared field.

    ``minimum``/``maximum`` bound the value for numeric kinds and the length
    for ``TEXT``. ``required`` fields must be present whenever a full form is
    mapped; ``deploy_required`` fields are only enforced by the deployment gate.
    """

    key: str
    column: str
    kind: FieldKind
    required: bool = False
    deploy_required: bool = False
    default: Any = None
    choices: tuple[str, ...] = ()
    minimum: Decimal | int | None = None
    maximum: Decimal | int | None = None
    children: tuple[FieldSpec, ...] = ()


@dataclass(frozen=True)
class CollectionSpec:
    key: str
    table: str
    fields: tuple[FieldSpec, ...]
    percent_field: str | None = None   # rows of this field must total <= 100


@dataclass(frozen=True)
class StandardSchema:
    standard: TokenStandard
    table: str
    fields: tuple[FieldSpec, ...]
    collections: tuple[CollectionSpec, ...] = ()

    def field(self, key: str) -> FieldSpec:
        for spec in self.fields:
            if spec.key == key:
                return spec
        raise KeyError(key)

    def collection(self, key: str) -> CollectionSpec:
        for spec in self.collections:
            if spec.key == key:
                return spec
        raise KeyError(key)

    @property
    def collection_keys(self) -> tuple[str, ...]:
        return tuple(spec.key for spec in self.collections)


# ── Field constructors ────────────────────────────────────────────────────────

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _field(kind: FieldKind, key: str, column: str | None = None, **kwargs: Any) -> FieldSpec:
    return FieldSpec(key=key, column=column or snake_case(key), kind=kind, **kwargs)


def text(key: str, column: str | None = None, **kwargs: Any) -> FieldSpec:
    return _field(FieldKind.TEXT, key, column, **kwargs)


def choice(key: str, choices: tuple[str, ...], column: str | None = None, **kwargs: Any) -> FieldSpec:
    return _field(FieldKind.CHOICE, key, column, choices=choices, **kwargs)


def integer(key: str, column: str | None = None, **kwargs: Any) -> FieldSpec:
    return _field(FieldKind.INTEGER, key, column, **kwargs)


def flag(key: str, column: str | None = None, default: bool = False, **kwargs: Any) -> FieldSpec:
    return _field(FieldKind.BOOLEAN, key, column, default=default, **kwargs)


def amount(key: str, column: str | None = None, **kwargs: Any) -> FieldSpec:
    return _field(FieldKind.DECIMAL, key, column, minimum=Decimal("0"), **kwargs)


def percent(key: str, column: str | None = None, **kwargs: Any) -> FieldSpec:
    return _field(
        FieldKind.PERCENT, key, column, minimum=Decimal("0"), maximum=Decimal("100"), **kwargs
    )


def address(key: str, column: str | None = None, **kwargs: Any) -> FieldSpec:
    return _field(FieldKind.ADDRESS, key, column, **kwargs)


def text_list(key: str, column: str | None = None, **kwargs: Any) -> FieldSpec:
    return _field(FieldKind.TEXT_LIST, key, column, **kwargs)


def nested(key: str, children: tuple[FieldSpec, ...], column: str | None = None) -> FieldSpec:
    return _field(FieldKind.NESTED, key, column, children=children)


def json_object(key: str, column: str | None = None) -> FieldSpec:
    return _field(FieldKind.JSON, key, column)


# ── Shared choices ────────────────────────────────────────────────────────────

ACCESS_CONTROL = ("ownable", "roles", "none")
METADATA_STORAGE = ("ipfs", "arweave", "centralized")

_royalty_fields = (
    flag("hasRoyalty"),
    percent("royaltyPercentage"),
    address("royaltyReceiver"),
)


# ── Core token fields ─────────────────────────────────────────────────────────

CORE_FIELDS: tuple[FieldSpec, ...] = (
    text("name", required=True, minimum=2, maximum=100),
    text("symbol", required=True, minimum=2, maximum=20),
    integer("decimals", default=18, minimum=0, maximum=18),
    text("description"),
    choice("configMode", tuple(mode.value for mode in ConfigMode), default=ConfigMode.MIN.value),
    json_object("blocks"),
    json_object("metadata", column="token_metadata"),
    text("parentTokenId", column="parent_token_id"),
    choice("tokenTier", tuple(tier.value for tier in TokenTier), column="tier"),
)

CONFIG_MODE_ALIASES = {"basic": ConfigMode.MIN.value, "advanced": ConfigMode.MAX.value}


# ── ERC-20 ────────────────────────────────────────────────────────────────────

ERC20 = StandardSchema(
    standard=TokenStandard.ERC20,
    table="token_erc20_properties",
    fields=(
        amount("initialSupply", required=True),
        amount("cap"),
        choice(
            "tokenType",
            ("utility", "currency", "share", "commodity", "security",
             "governance", "stablecoin", "asset_backed", "debt"),
            default="utility",
        ),
        flag("isMintable"),
        flag("isBurnable"),
        flag("isPausable"),
        choice("accessControl", ACCESS_CONTROL, default="ownable"),
        flag("allowanceManagement", column="allow_management"),
        flag("permit"),
        flag("snapshot"),
        nested("feeOnTransfer", (
            flag("enabled"),
            percent("fee"),
            choice("feeType", ("percentage", "fixed"), default="percentage"),
            address("recipient"),
        )),
        nested("rebasing", (
            flag("enabled"),
            choice("mode", ("automatic", "governance"), default="automatic"),
            amount("targetSupply"),
        )),
        nested("governanceFeatures", (
            flag("enabled"),
            integer("votingPeriod", minimum=0),
            percent("votingThreshold"),
        )),
    ),
)


# ── ERC-721 ───────────────────────────────────────────────────────────────────

ERC721 = StandardSchema(
    standard=TokenStandard.ERC721,
    table="token_erc721_properties",
    fields=(
        text("baseUri", required=True),
        choice("metadataStorage", METADATA_STORAGE, default="ipfs"),
        amount("maxSupply"),
        *_royalty_fields,
        flag("isMintable", default=True),
        flag("isBurnable"),
        flag("isPausable"),
        text("assetType", default="unique_asset"),
        text("mintingMethod", default="open"),
        flag("autoIncrementIds", default=True),
        flag("enumerable", default=True),
        choice("uriStorage", ("tokenId", "custom"), default="tokenId"),
        choice("accessControl", ACCESS_CONTROL, default="ownable"),
        flag("updatableUris"),
    ),
    collections=(
        CollectionSpec(
            key="tokenAttributes",
            table="token_erc721_attributes",
            fields=(
                text("traitType", required=True),
                text_list("values", column="trait_values"),
            ),
        ),
    ),
)


# ── ERC-1155 ──────────────────────────────────────────────────────────────────

ERC1155 = StandardSchema(
    standard=TokenStandard.ERC1155,
    table="token_erc1155_properties",
    fields=(
        text("baseUri", required=True),
        choice("metadataStorage", METADATA_STORAGE, default="ipfs"),
        *_royalty_fields,
        flag("isBurnable"),
        flag("isPausable"),
        choice("accessControl", ACCESS_CONTROL, default="ownable"),
        flag("updatableUris"),
        flag("supplyTracking", default=True),
        flag("enableApprovalForAll", default=True),
        flag("batchMinting", column="batch_minting_enabled"),
        flag("containerEnabled"),
        flag("dynamicUris"),
    ),
    collections=(
        CollectionSpec(
            key="tokenTypes",
            table="token_erc1155_types",
            fields=(
                text("tokenTypeId", required=True),
                text("name", required=True),
                text("description"),
                amount("maxSupply"),
                choice(
                    "fungibilityType",
                    ("fungible", "non-fungible", "semi-fungible"),
                    default="non-fungible",
                ),
                nested("metadata", (
                    choice("rarityLevel", ("common", "uncommon", "rare", "legendary"),
                           default="common"),
                ), column="type_metadata"),
            ),
        ),
        CollectionSpec(
            key="balances",
            table="token_erc1155_balances",
            fields=(
                text("tokenTypeId", required=True),
                address("address", required=True),
                amount("amount", required=True),
            ),
        ),
        CollectionSpec(
            key="uriMappings",
            table="token_erc1155_uri_mappings",
            fields=(
                text("tokenTypeId", required=True),
                text("uri", required=True),
            ),
        ),
    ),
)


# ── ERC-1400 ──────────────────────────────────────────────────────────────────

ERC1400 = StandardSchema(
    standard=TokenStandard.ERC1400,
    table="token_erc1400_properties",
    fields=(
        amount("initialSupply", required=True),
        amount("cap"),
        flag("isMintable"),
        flag("isBurnable"),
        flag("isPausable"),
        text("documentUri"),
        text("documentHash"),
        address("controllerAddress"),
        flag("enforceKYC", column="enforce_kyc", default=True),
        flag("forcedTransfers"),
        flag("forcedRedemptionEnabled"),
        flag("whitelistEnabled"),
        flag("investorAccreditation"),
        integer("holdingPeriod", minimum=0),
        integer("maxInvestorCount", minimum=0),
        flag("autoCompliance"),
        flag("manualApprovals"),
        text("complianceModule"),
        choice(
            "securityType",
            ("equity", "debt", "derivative", "fund", "reit", "other"),
            default="equity",
        ),
        text("issuingJurisdiction", required=True),
        text("issuingEntityName", deploy_required=True),
        text("issuingEntityLei"),
        text("regulationType"),
        flag("isMultiClass"),
        flag("trancheTransferability"),
        flag("isIssuable", default=True),
        flag("granularControl"),
        flag("dividendDistribution"),
        flag("corporateActions"),
        text_list("geographicRestrictions"),
        choice(
            "complianceAutomationLevel",
            ("manual", "semi-automated", "fully-automated"),
            default="manual",
        ),
    ),
    collections=(
        CollectionSpec(
            key="partitions",
            table="token_erc1400_partitions",
            fields=(
                text("partitionId", required=True),
                text("name", required=True),
                amount("amount"),
                flag("transferable", default=True),
                text("partitionType"),
            ),
        ),
        CollectionSpec(
            key="controllers",
            table="token_erc1400_controllers",
            fields=(
                address("address", required=True),
                text_list("permissions", default=("ADMIN",)),
            ),
        ),
        CollectionSpec(
            key="documents",
            table="token_erc1400_documents",
            fields=(
                text("name", required=True),
                text("documentUri", required=True),
                text("documentType"),
                text("documentHash"),
            ),
        ),
    ),
)


# ── ERC-3525 ──────────────────────────────────────────────────────────────────

ERC3525 = StandardSchema(
    standard=TokenStandard.ERC3525,
    table="token_erc3525_properties",
    fields=(
        integer("valueDecimals", required=True, minimum=0, maximum=18),
        text("baseUri", required=True),
        choice("metadataStorage", METADATA_STORAGE, default="ipfs"),
        text("slotType", default="generic"),
        flag("isBurnable"),
        flag("isPausable"),
        *_royalty_fields,
        flag("slotApprovals", default=True),
        flag("valueApprovals", default=True),
        choice("accessControl", ACCESS_CONTROL, default="ownable"),
        flag("updatableUris"),
        flag("updatableSlots"),
        flag("valueTransfersEnabled", default=True),
        flag("fractionalOwnershipEnabled"),
        flag("mergable"),
        flag("splittable"),
        flag("dynamicMetadata"),
        flag("allowsSlotEnumeration", default=True),
        flag("valueAggregation"),
        text("financialInstrument"),
    ),
    collections=(
        CollectionSpec(
            key="slots",
            table="token_erc3525_slots",
            fields=(
                text("slotId", required=True),
                text("name", required=True),
                text("description"),
                text("valueUnits", default="units"),
                flag("transferable", column="slot_transferable", default=True),
            ),
        ),
        CollectionSpec(
            key="allocations",
            table="token_erc3525_allocations",
            fields=(
                text("slotId", required=True),
                address("recipient", required=True),
                amount("value", column="allocated_value", required=True),
                text("linkedTokenId"),
            ),
        ),
    ),
)


# ── ERC-4626 ──────────────────────────────────────────────────────────────────

FEE_FIELDS = ("depositFee", "withdrawalFee", "managementFee", "performanceFee")

ERC4626 = StandardSchema(
    standard=TokenStandard.ERC4626,
    table="token_erc4626_properties",
    fields=(
        address("assetAddress", required=True),
        text("assetName", required=True),
        text("assetSymbol", required=True),
        integer("assetDecimals", default=18, minimum=0, maximum=18),
        choice("vaultType", ("yield", "fund", "staking", "lending"), default="yield"),
        text("vaultStrategy", default="simple"),
        flag("customStrategy"),
        address("strategyController"),
        choice("accessControl", ACCESS_CONTROL, default="ownable"),
        flag("isMintable"),
        flag("isBurnable"),
        flag("isPausable"),
        flag("permit"),
        flag("flashLoans"),
        flag("emergencyShutdown"),
        flag("performanceMetrics"),
        flag("yieldOptimizationEnabled"),
        flag("automatedRebalancing"),
        choice("yieldSource", ("external", "internal", "hybrid"), default="external"),
        percent("rebalanceThreshold"),
        percent("liquidityReserve", default="10"),
        percent("maxSlippage"),
        amount("depositLimit"),
        amount("withdrawalLimit"),
        amount("minDeposit"),
        amount("maxDeposit"),
        amount("minWithdrawal"),
        amount("maxWithdrawal"),
        *(percent(key) for key in FEE_FIELDS),
        address("feeRecipient"),
        nested("rebalancingRules", (
            choice("frequency", ("daily", "weekly", "monthly", "threshold")),
            percent("maxDeviation"),
            integer("minInterval", minimum=0),
        )),
        nested("strategyDefaults", (
            percent("targetApy"),
            choice("riskLevel", ("low", "medium", "high"), default="medium"),
            choice("harvestFrequency", ("daily", "weekly", "monthly"), default="weekly"),
            flag("compounding", default=True),
        )),
    ),
    collections=(
        CollectionSpec(
            key="strategyParams",
            table="token_erc4626_strategy_params",
            fields=(
                text("name", required=True),
                text("value", column="param_value"),
                choice(
                    "paramType",
                    ("string", "number", "percentage", "boolean", "address"),
                    default="string",
                ),
                text("description"),
                flag("isDefault"),
            ),
        ),
        CollectionSpec(
            key="assetAllocations",
            table="token_erc4626_asset_allocations",
            fields=(
                text("asset", required=True),
                percent("percentage", required=True),
                text("protocol"),
                percent("expectedApy"),
            ),
            percent_field="percentage",
        ),
    ),
)


REGISTRY: dict[TokenStandard, StandardSchema] = {
    schema.standard: schema
    for schema in (ERC20, ERC721, ERC1155, ERC1400, ERC3525, ERC4626)
}

_missing = set(TokenStandard) - set(REGISTRY)
if _missing:
    raise RuntimeError(f"No schema registered for {sorted(s.value for s in _missing)}")


def schema_for(standard: TokenStandard) -> StandardSchema:
    return REGISTRY[standard]


# ── Standard parsing ──────────────────────────────────────────────────────────

_STANDARD_PATTERN = re.compile(r"^ERC-?(\d+)$")


def parse_standard(raw: Any) -> TokenStandard:
    """Normalize ``ERC20``/``erc-20``/``ERC-20`` to a TokenStandard.

    Raises UnknownStandard for anything outside the six registered standards.
    """
    if isinstance(raw, TokenStandard):
        return raw
    if not isinstance(raw, str):
        raise UnknownStandard(raw)
    match = _STANDARD_PATTERN.match(raw.strip().upper())
    if not match:
        raise UnknownStandard(raw)
    try:
        return TokenStandard(f"ERC-{match.group(1)}")
    except ValueError:
        raise UnknownStandard(raw) from None


def all_tables() -> list[str]:
    """Every extension and collection table, in registry order."""
    tables: list[str] = []
    for schema in REGISTRY.values():
        tables.append(schema.table)
        tables.extend(spec.table for spec in schema.collections)
    return tables
