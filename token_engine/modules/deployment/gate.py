"""Deployment validation gate.

Runs a security review over a MINTED token and reports findings. It reads
the aggregate through its form view, so finding fields are form paths
(``feeRecipient``, ``feeOnTransfer.recipient``, ``balances[0].tokenTypeId``).
CRITICAL and HIGH findings block deployment; the rest are advisory.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, assert_never

from token_engine.models.enums import FindingSeverity, TokenStandard, TokenStatus
from token_engine.modules.tokens.aggregate import TokenAggregate
from token_engine.modules.tokens.exceptions import InvalidTransition
from token_engine.modules.tokens.mapper import collect_form
from token_engine.modules.tokens.registry import FEE_FIELDS, FieldKind, FieldSpec, schema_for
from token_engine.modules.tokens.validators import (
    InvalidValue,
    bounded_decimal,
    check_address,
    is_unset,
    is_zero_address,
)

BLOCKING_SEVERITIES = frozenset({FindingSeverity.CRITICAL, FindingSeverity.HIGH})

_SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]+$")


@dataclass(frozen=True)
class Finding:
    severity: FindingSeverity
    message: str
    field: str | None = None

    @property
    def blocking(self) -> bool:
        return self.severity in BLOCKING_SEVERITIES

    def as_dict(self) -> dict[str, Any]:
        return {"severity": self.severity.value, "message": self.message, "field": self.field}


@dataclass(frozen=True)
class SecurityValidationResult:
    findings: tuple[Finding, ...] = ()

    @property
    def has_issues(self) -> bool:
        return any(finding.blocking for finding in self.findings)

    @property
    def blocking(self) -> list[Finding]:
        return [finding for finding in self.findings if finding.blocking]


def validate(aggregate: TokenAggregate) -> SecurityValidationResult:
    """Review a MINTED token. Any other status raises InvalidTransition."""
    if aggregate.status != TokenStatus.MINTED:
        raise InvalidTransition(
            aggregate.status,
            TokenStatus.DEPLOYED,
            "security validation only runs on MINTED tokens",
        )

    form = aggregate.form()
    findings: list[Finding] = []

    # Same field rules the mapper enforces before storage, re-run on stored data
    _, _, issues = collect_form(aggregate.standard, form)
    findings.extend(Finding(FindingSeverity.HIGH, issue.message, issue.field) for issue in issues)

    findings.extend(_core_findings(form))
    findings.extend(_declared_field_findings(aggregate.standard, form))
    findings.extend(_standard_findings(aggregate.standard, form))
    return SecurityValidationResult(findings=tuple(_dedupe(findings)))


# ── Generic checks ────────────────────────────────────────────────────────────


def _core_findings(form: Mapping[str, Any]) -> list[Finding]:
    findings: list[Finding] = []
    symbol = form.get("symbol") or ""
    if symbol and not _SYMBOL_PATTERN.match(symbol):
        findings.append(Finding(
            FindingSeverity.LOW, "symbol is conventionally uppercase letters and digits", "symbol"
        ))
    return findings


def _walk_fields(
    specs: tuple[FieldSpec, ...], values: Mapping[str, Any], prefix: str = ""
) -> list[tuple[FieldSpec, str, Any]]:
    walked: list[tuple[FieldSpec, str, Any]] = []
    for spec in specs:
        path = f"{prefix}{spec.key}"
        value = values.get(spec.key)
        walked.append((spec, path, value))
        if spec.kind == FieldKind.NESTED and isinstance(value, Mapping):
            walked.extend(_walk_fields(spec.children, value, f"{path}."))
    return walked


def _declared_field_findings(standard: TokenStandard, form: Mapping[str, Any]) -> list[Finding]:
    schema = schema_for(standard)
    walked = _walk_fields(schema.fields, form)
    for collection in schema.collections:
        for index, row in enumerate(form.get(collection.key) or []):
            walked.extend(_walk_fields(collection.fields, row, f"{collection.key}[{index}]."))

    findings: list[Finding] = []
    for spec, path, value in walked:
        if spec.deploy_required and is_unset(value):
            findings.append(Finding(FindingSeverity.HIGH, "is required for deployment", path))
        if spec.kind == FieldKind.ADDRESS and is_zero_address(value):
            findings.append(Finding(FindingSeverity.HIGH, "must not be the zero address", path))
    return findings


def _decimal(value: Any) -> Decimal | None:
    try:
        return bounded_decimal(value, None, None)
    except InvalidValue:
        return None


def _missing(form: Mapping[str, Any], *path: str) -> bool:
    value: Any = form
    for key in path:
        if not isinstance(value, Mapping):
            return True
        value = value.get(key)
    return is_unset(value)


def _high(message: str, field: str) -> Finding:
    return Finding(FindingSeverity.HIGH, message, field)


# ── Per-standard rules ────────────────────────────────────────────────────────


def _standard_findings(standard: TokenStandard, form: Mapping[str, Any]) -> list[Finding]:
    match standard:
        case TokenStandard.ERC20:
            return _erc20_findings(form)
        case TokenStandard.ERC721:
            return _royalty_findings(form)
        case TokenStandard.ERC1155:
            return _royalty_findings(form) + _erc1155_findings(form)
        case TokenStandard.ERC1400:
            return _erc1400_findings(form)
        case TokenStandard.ERC3525:
            return _royalty_findings(form) + _erc3525_findings(form)
        case TokenStandard.ERC4626:
            return _erc4626_findings(form)
        case _:
            assert_never(standard)


def _erc20_findings(form: Mapping[str, Any]) -> list[Finding]:
    findings: list[Finding] = []
    fee = form.get("feeOnTransfer") or {}
    if fee.get("enabled"):
        if is_unset(fee.get("recipient")):
            findings.append(_high("is required when fee on transfer is enabled", "feeOnTransfer.recipient"))
        if is_unset(fee.get("fee")):
            findings.append(_high("is required when fee on transfer is enabled", "feeOnTransfer.fee"))

    supply, cap = _decimal(form.get("initialSupply")), _decimal(form.get("cap"))
    if supply is not None and cap is not None and cap < supply:
        findings.append(_high("must not be below the initial supply", "cap"))

    rebasing = form.get("rebasing") or {}
    if rebasing.get("enabled") and is_unset(rebasing.get("targetSupply")):
        findings.append(Finding(
            FindingSeverity.MEDIUM, "rebasing without a target supply", "rebasing.targetSupply"
        ))
    return findings


def _royalty_findings(form: Mapping[str, Any]) -> list[Finding]:
    if not form.get("hasRoyalty"):
        return []
    findings: list[Finding] = []
    if is_unset(form.get("royaltyReceiver")):
        findings.append(_high("is required when royalties are enabled", "royaltyReceiver"))
    if is_unset(form.get("royaltyPercentage")):
        findings.append(_high("is required when royalties are enabled", "royaltyPercentage"))
    return findings


def _erc1155_findings(form: Mapping[str, Any]) -> list[Finding]:
    findings: list[Finding] = []
    types = form.get("tokenTypes") or []
    if not types:
        findings.append(Finding(FindingSeverity.MEDIUM, "no token types are defined", "tokenTypes"))

    seen: set[str] = set()
    for index, row in enumerate(types):
        type_id = row.get("tokenTypeId")
        if type_id in seen:
            findings.append(_high("duplicates another token type", f"tokenTypes[{index}].tokenTypeId"))
        seen.add(type_id)

    for key in ("balances", "uriMappings"):
        for index, row in enumerate(form.get(key) or []):
            if row.get("tokenTypeId") not in seen:
                findings.append(_high(
                    "references an undeclared token type", f"{key}[{index}].tokenTypeId"
                ))
    return findings


def _erc1400_findings(form: Mapping[str, Any]) -> list[Finding]:
    findings: list[Finding] = []
    if form.get("forcedTransfers") and not form.get("controllers") and is_unset(
        form.get("controllerAddress")
    ):
        findings.append(_high("forced transfers need at least one controller", "controllers"))

    supply = _decimal(form.get("initialSupply"))
    partitioned = sum(
        (_decimal(row.get("amount")) or Decimal("0") for row in form.get("partitions") or []),
        Decimal("0"),
    )
    if supply is not None and partitioned > supply:
        findings.append(_high("partition amounts exceed the initial supply", "partitions"))

    if not form.get("enforceKYC"):
        findings.append(Finding(
            FindingSeverity.MEDIUM, "security token without KYC enforcement", "enforceKYC"
        ))
    return findings


def _erc3525_findings(form: Mapping[str, Any]) -> list[Finding]:
    findings: list[Finding] = []
    slots = form.get("slots") or []
    if not slots:
        findings.append(Finding(FindingSeverity.MEDIUM, "no slots are defined", "slots"))
    slot_ids = {row.get("slotId") for row in slots}
    for index, row in enumerate(form.get("allocations") or []):
        if row.get("slotId") not in slot_ids:
            findings.append(_high("references an undeclared slot", f"allocations[{index}].slotId"))
    return findings


def _erc4626_findings(form: Mapping[str, Any]) -> list[Finding]:
    findings: list[Finding] = []
    charges_fees = any((_decimal(form.get(key)) or Decimal("0")) > 0 for key in FEE_FIELDS)
    if charges_fees and is_unset(form.get("feeRecipient")):
        findings.append(_high("is required when the vault charges fees", "feeRecipient"))

    # Yield optimization implies automated rebalancing
    if form.get("yieldOptimizationEnabled") or form.get("automatedRebalancing"):
        if is_unset(form.get("rebalanceThreshold")):
            findings.append(_high("is required for automated rebalancing", "rebalanceThreshold"))
        if _missing(form, "rebalancingRules", "frequency"):
            findings.append(_high(
                "is required for automated rebalancing", "rebalancingRules.frequency"
            ))

    for low, high in (("minDeposit", "maxDeposit"), ("minWithdrawal", "maxWithdrawal")):
        minimum, maximum = _decimal(form.get(low)), _decimal(form.get(high))
        if minimum is not None and maximum is not None and minimum > maximum:
            findings.append(_high(f"must not exceed {high}", low))

    for index, row in enumerate(form.get("strategyParams") or []):
        message = _strategy_value_problem(row.get("paramType"), row.get("value"))
        if message:
            findings.append(_high(message, f"strategyParams[{index}].value"))
    return findings


def _strategy_value_problem(param_type: Any, value: Any) -> str | None:
    if is_unset(value):
        return None
    try:
        match param_type:
            case "number":
                bounded_decimal(value, None, None)
            case "percentage":
                bounded_decimal(value)
            case "address":
                check_address(value)
            case "boolean":
                if str(value).strip().lower() not in ("true", "false"):
                    return "must be true or false"
            case _:
                return None
    except InvalidValue as exc:
        return str(exc)
    return None


def _dedupe(findings: list[Finding]) -> list[Finding]:
    seen: set[tuple[FindingSeverity, str, str | None]] = set()
    unique: list[Finding] = []
    for finding in findings:
        key = (finding.severity, finding.message, finding.field)
        if key not in seen:
            seen.add(key)
            unique.append(finding)
    return unique
