"""Field mapper: flat form data <-> normalized storage records.

``to_storage`` and ``to_form`` are pure and total over the fields declared
in the schema registry: every declared field survives a round trip, optional
fields that were absent come back with their defaults, and decimal strings
come back normalized ("2.50" -> "2.5").

Problems are collected over the whole form and raised once, as
``ValidationFailed`` when any value is invalid, otherwise as
``FieldMappingIncomplete`` when required fields are missing.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, assert_never

from token_engine.models.enums import TokenStandard
from token_engine.modules.tokens.exceptions import FieldIssue, raise_for_issues
from token_engine.modules.tokens.registry import (
    CONFIG_MODE_ALIASES,
    CORE_FIELDS,
    CollectionSpec,
    FieldKind,
    FieldSpec,
    schema_for,
)
from token_engine.modules.tokens.validators import (
    InvalidValue,
    bounded_decimal,
    check_address,
    check_percentage_total,
    is_unset,
    normalize_decimal,
)

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}

LEGACY_PARENT_KEYS = ("primaryTokenId", "parentId")
LEGACY_TIER_KEY = "tokenTier"


@dataclass(frozen=True)
class StoragePayload:
    """Storage-shaped extension columns plus collection rows, keyed by column."""

    extension: dict[str, Any]
    collections: dict[str, list[dict[str, Any]]] = field(default_factory=dict)


# ── Single values ─────────────────────────────────────────────────────────────


def _lookup(form: Mapping[str, Any], spec: FieldSpec) -> tuple[bool, Any]:
    if spec.key in form:
        return True, form[spec.key]
    if spec.column in form:
        return True, form[spec.column]
    return False, None


def _json_safe(value: Any) -> Any:
    if isinstance(value, Decimal):
        return normalize_decimal(value)
    return value


def _convert(spec: FieldSpec, value: Any, path: str, issues: list[FieldIssue]) -> Any:
    """Convert one present, non-empty form value to its storage value."""
    try:
        match spec.kind:
            case FieldKind.TEXT:
                if not isinstance(value, str):
                    raise InvalidValue("must be text")
                value = value.strip()
                if spec.minimum is not None and len(value) < spec.minimum:
                    raise InvalidValue(f"must be at least {spec.minimum} characters")
                if spec.maximum is not None and len(value) > spec.maximum:
                    raise InvalidValue(f"must be at most {spec.maximum} characters")
                return value
            case FieldKind.CHOICE:
                if not isinstance(value, str) or value.strip() not in spec.choices:
                    raise InvalidValue(f"must be one of {', '.join(spec.choices)}")
                return value.strip()
            case FieldKind.INTEGER:
                if isinstance(value, bool):
                    raise InvalidValue("must be a whole number")
                if isinstance(value, str) and value.strip().isdigit():
                    value = int(value.strip())
                if not isinstance(value, int):
                    raise InvalidValue("must be a whole number")
                if spec.minimum is not None and value < spec.minimum:
                    raise InvalidValue(f"must be at least {spec.minimum}")
                if spec.maximum is not None and value > spec.maximum:
                    raise InvalidValue(f"must be at most {spec.maximum}")
                return value
            case FieldKind.BOOLEAN:
                if isinstance(value, bool):
                    return value
                if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS:
                    return True
                if isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
                    return False
                raise InvalidValue("must be true or false")
            case FieldKind.DECIMAL | FieldKind.PERCENT:
                return bounded_decimal(value, spec.minimum, spec.maximum)
            case FieldKind.ADDRESS:
                return check_address(value)
            case FieldKind.TEXT_LIST:
                if isinstance(value, str) or not isinstance(value, Sequence):
                    raise InvalidValue("must be a list of text values")
                if not all(isinstance(item, str) for item in value):
                    raise InvalidValue("must be a list of text values")
                return [item.strip() for item in value if item.strip()]
            case FieldKind.NESTED:
                if not isinstance(value, Mapping):
                    raise InvalidValue("must be an object")
                return _nested_to_storage(spec, value, path, issues)
            case FieldKind.JSON:
                if not isinstance(value, Mapping):
                    raise InvalidValue("must be an object")
                return dict(value)
            case _:
                assert_never(spec.kind)
    except InvalidValue as exc:
        issues.append(FieldIssue(path, str(exc)))
        return None


def _default(spec: FieldSpec) -> Any:
    if spec.kind == FieldKind.NESTED:
        return {}
    if spec.kind == FieldKind.TEXT_LIST:
        return list(spec.default or ())
    if spec.kind == FieldKind.JSON:
        return {}
    return spec.default


def _field_to_storage(
    spec: FieldSpec, form: Mapping[str, Any], prefix: str, issues: list[FieldIssue]
) -> Any:
    path = f"{prefix}{spec.key}"
    present, value = _lookup(form, spec)
    if not present or is_unset(value):
        if spec.required:
            issues.append(FieldIssue(path, "is required", missing=True))
            return None
        value = _default(spec)
        if value is None:
            return None
        if spec.kind in (FieldKind.TEXT_LIST, FieldKind.JSON):
            return value
    return _convert(spec, value, path, issues)


def _nested_to_storage(
    spec: FieldSpec, value: Mapping[str, Any], path: str, issues: list[FieldIssue]
) -> dict[str, Any]:
    stored: dict[str, Any] = {}
    for child in spec.children:
        stored[child.column] = _json_safe(_field_to_storage(child, value, f"{path}.", issues))
    return stored


def _fields_to_storage(
    specs: Sequence[FieldSpec], form: Mapping[str, Any], prefix: str, issues: list[FieldIssue]
) -> dict[str, Any]:
    return {spec.column: _field_to_storage(spec, form, prefix, issues) for spec in specs}


def _collection_to_storage(
    spec: CollectionSpec, rows: Any, issues: list[FieldIssue]
) -> list[dict[str, Any]]:
    if isinstance(rows, str) or not isinstance(rows, Sequence):
        issues.append(FieldIssue(spec.key, "must be a list"))
        return []
    stored_rows: list[dict[str, Any]] = []
    for index, row in enumerate(rows):
        prefix = f"{spec.key}[{index}]."
        if not isinstance(row, Mapping):
            issues.append(FieldIssue(f"{spec.key}[{index}]", "must be an object"))
            continue
        stored = _fields_to_storage(spec.fields, row, prefix, issues)
        stored["position"] = index
        stored_rows.append(stored)
    if spec.percent_field:
        column = next(f.column for f in spec.fields if f.key == spec.percent_field)
        try:
            check_percentage_total(stored_rows, column)
        except InvalidValue as exc:
            issues.append(FieldIssue(f"{spec.key}.{spec.percent_field}", str(exc)))
    return stored_rows


# ── Per-standard input coercions ──────────────────────────────────────────────


def _coerce_legacy_shapes(standard: TokenStandard, form: Mapping[str, Any]) -> dict[str, Any]:
    """Accept the older shapes some callers still send for a few fields."""
    data = dict(form)
    match standard:
        case TokenStandard.ERC20 | TokenStandard.ERC3525:
            pass
        case TokenStandard.ERC721:
            attributes = data.get("tokenAttributes")
            if isinstance(attributes, list):
                data["tokenAttributes"] = [
                    {**row, "values": [v.strip() for v in row["values"].split(",")]}
                    if isinstance(row, Mapping) and isinstance(row.get("values"), str)
                    else row
                    for row in attributes
                ]
        case TokenStandard.ERC1155:
            types = data.get("tokenTypes")
            if isinstance(types, list):
                data["tokenTypes"] = [_coerce_1155_type(row) for row in types]
        case TokenStandard.ERC1400:
            controllers = data.get("controllers")
            if isinstance(controllers, list):
                data["controllers"] = [
                    {"address": row} if isinstance(row, str) else row for row in controllers
                ]
        case TokenStandard.ERC4626:
            fee_structure = data.get("feeStructure")
            if isinstance(fee_structure, Mapping):
                for key, value in fee_structure.items():
                    data.setdefault(key, value)
        case _:
            assert_never(standard)
    return data


def _coerce_1155_type(row: Any) -> Any:
    if not isinstance(row, Mapping):
        return row
    row = dict(row)
    if "fungible" in row and "fungibilityType" not in row:
        row["fungibilityType"] = "fungible" if row.pop("fungible") else "non-fungible"
    if "rarityLevel" in row:
        metadata = dict(row.get("metadata") or {})
        metadata.setdefault("rarityLevel", row.pop("rarityLevel"))
        row["metadata"] = metadata
    return row


# ── Extension mapping ─────────────────────────────────────────────────────────


def collect_storage(
    standard: TokenStandard, form: Mapping[str, Any]
) -> tuple[StoragePayload, list[FieldIssue]]:
    """Map without raising; returns the payload and every issue found."""
    schema = schema_for(standard)
    data = _coerce_legacy_shapes(standard, form)
    issues: list[FieldIssue] = []
    extension = _fields_to_storage(schema.fields, data, "", issues)
    collections = {
        spec.key: _collection_to_storage(spec, data[spec.key], issues)
        for spec in schema.collections
        if spec.key in data and data[spec.key] is not None
    }
    return StoragePayload(extension=extension, collections=collections), issues


def to_storage(standard: TokenStandard, form: Mapping[str, Any]) -> StoragePayload:
    """Map a full form to storage. Collections absent from the form are omitted."""
    payload, issues = collect_storage(standard, form)
    raise_for_issues(issues)
    return payload


def _field_to_form(spec: FieldSpec, stored: Any) -> Any:
    if stored is None:
        stored = spec.default
    match spec.kind:
        case FieldKind.TEXT | FieldKind.CHOICE | FieldKind.ADDRESS:
            return "" if stored is None else str(stored)
        case FieldKind.INTEGER:
            return stored
        case FieldKind.BOOLEAN:
            return bool(stored)
        case FieldKind.DECIMAL | FieldKind.PERCENT:
            if stored is None or stored == "":
                return ""
            try:
                return normalize_decimal(Decimal(str(stored)))
            except InvalidOperation:
                return str(stored)
        case FieldKind.TEXT_LIST:
            return list(stored or [])
        case FieldKind.NESTED:
            stored = stored if isinstance(stored, Mapping) else {}
            return {child.key: _field_to_form(child, stored.get(child.column)) for child in spec.children}
        case FieldKind.JSON:
            return dict(stored or {})
        case _:
            assert_never(spec.kind)


def to_form(
    standard: TokenStandard,
    extension: Mapping[str, Any],
    collections: Mapping[str, Sequence[Mapping[str, Any]]] | None = None,
) -> dict[str, Any]:
    """Render storage records as flat form data, every declared field present."""
    schema = schema_for(standard)
    form = {spec.key: _field_to_form(spec, extension.get(spec.column)) for spec in schema.fields}
    collections = collections or {}
    for spec in schema.collections:
        rows = sorted(collections.get(spec.key, ()), key=lambda row: row.get("position") or 0)
        form[spec.key] = [
            {f.key: _field_to_form(f, row.get(f.column)) for f in spec.fields} for row in rows
        ]
    return form


# ── Core token fields ─────────────────────────────────────────────────────────


def _coerce_core(form: Mapping[str, Any]) -> dict[str, Any]:
    data = dict(form)
    if isinstance(data.get("parentTokenId"), uuid.UUID):
        data["parentTokenId"] = str(data["parentTokenId"])
    mode = data.get("configMode", data.get("config_mode"))
    if isinstance(mode, str) and mode.strip().lower() in CONFIG_MODE_ALIASES:
        data["configMode"] = CONFIG_MODE_ALIASES[mode.strip().lower()]
        data.pop("config_mode", None)

    # Parent and tier used to live in free-form metadata
    metadata = data.get("metadata")
    if isinstance(metadata, Mapping):
        if is_unset(data.get("parentTokenId")):
            for key in LEGACY_PARENT_KEYS:
                if not is_unset(metadata.get(key)):
                    data["parentTokenId"] = metadata[key]
                    break
        if is_unset(data.get("tokenTier")) and not is_unset(metadata.get(LEGACY_TIER_KEY)):
            data["tokenTier"] = metadata[LEGACY_TIER_KEY]
    return data


def collect_core(form: Mapping[str, Any]) -> tuple[dict[str, Any], list[FieldIssue]]:
    issues: list[FieldIssue] = []
    core = _fields_to_storage(CORE_FIELDS, _coerce_core(form), "", issues)
    parent = core.get("parent_token_id")
    if parent is not None:
        try:
            core["parent_token_id"] = uuid.UUID(str(parent))
        except ValueError:
            issues.append(FieldIssue("parentTokenId", "must be a token id"))
            core["parent_token_id"] = None
    return core, issues


def core_to_storage(form: Mapping[str, Any]) -> dict[str, Any]:
    core, issues = collect_core(form)
    raise_for_issues(issues)
    return core


def core_to_form(token: Mapping[str, Any]) -> dict[str, Any]:
    return {spec.key: _field_to_form(spec, token.get(spec.column)) for spec in CORE_FIELDS}


def collect_form(
    standard: TokenStandard, form: Mapping[str, Any]
) -> tuple[dict[str, Any], StoragePayload, list[FieldIssue]]:
    """Map core and extension fields together, collecting every issue."""
    core, core_issues = collect_core(form)
    payload, issues = collect_storage(standard, form)
    return core, payload, core_issues + issues


# ── Partial edits ─────────────────────────────────────────────────────────────


def canonical_keys(standard: TokenStandard, form: Mapping[str, Any]) -> dict[str, Any]:
    """Rename storage-column aliases to form keys."""
    aliases = {spec.column: spec.key for spec in CORE_FIELDS}
    aliases.update({spec.column: spec.key for spec in schema_for(standard).fields})
    return {
        aliases[key] if key in aliases and aliases[key] not in form else key: value
        for key, value in form.items()
    }


def merge_form(
    standard: TokenStandard, current: Mapping[str, Any], patch: Mapping[str, Any]
) -> dict[str, Any]:
    """Overlay a partial edit on the current form.

    Objects merge key-by-key so unspecified sibling keys survive; lists
    (collections, text lists) are replaced wholesale.
    """
    return _deep_merge(current, canonical_keys(standard, patch))


def _deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
