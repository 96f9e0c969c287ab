"""Tests for the standard schema registry."""

import pytest
from sqlalchemy import inspect

from token_engine.core.database import Base
from token_engine.models.enums import TokenStandard
from token_engine.modules.tokens.exceptions import UnknownStandard
from token_engine.modules.tokens.registry import (
    CORE_FIELDS,
    REGISTRY,
    FieldKind,
    all_tables,
    parse_standard,
    schema_for,
    snake_case,
)


def _columns_by_table() -> dict[str, set[str]]:
    return {
        mapper.class_.__tablename__: {attr.key for attr in inspect(mapper.class_).column_attrs}
        for mapper in Base.registry.mappers
    }


class TestRegistryCoverage:
    def test_every_standard_has_a_schema(self):
        assert set(REGISTRY) == set(TokenStandard)

    def test_schema_for_returns_matching_standard(self):
        for standard in TokenStandard:
            assert schema_for(standard).standard == standard

    def test_extension_columns_exist_on_models(self):
        columns = _columns_by_table()
        for schema in REGISTRY.values():
            assert schema.table in columns, schema.table
            for spec in schema.fields:
                assert spec.column in columns[schema.table], (schema.table, spec.column)

    def test_collection_columns_exist_on_models(self):
        columns = _columns_by_table()
        for schema in REGISTRY.values():
            for collection in schema.collections:
                table_columns = columns[collection.table]
                assert "position" in table_columns
                for spec in collection.fields:
                    assert spec.column in table_columns, (collection.table, spec.column)

    def test_core_columns_exist_on_tokens(self):
        columns = _columns_by_table()["tokens"]
        for spec in CORE_FIELDS:
            assert spec.column in columns, spec.column

    def test_tables_are_unique(self):
        tables = all_tables()
        assert len(tables) == len(set(tables))

    def test_nested_fields_declare_children(self):
        for schema in REGISTRY.values():
            for spec in schema.fields:
                if spec.kind == FieldKind.NESTED:
                    assert spec.children, spec.key

    def test_percent_fields_are_declared_in_their_collection(self):
        for schema in REGISTRY.values():
            for collection in schema.collections:
                if collection.percent_field:
                    spec = next(f for f in collection.fields if f.key == collection.percent_field)
                    assert spec.kind == FieldKind.PERCENT

    def test_lookup_by_key(self):
        schema = schema_for(TokenStandard.ERC4626)
        assert schema.field("feeRecipient").column == "fee_recipient"
        assert schema.collection("assetAllocations").percent_field == "percentage"
        with pytest.raises(KeyError):
            schema.field("nope")


class TestParseStandard:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("ERC-20", TokenStandard.ERC20),
            ("erc20", TokenStandard.ERC20),
            (" ERC721 ", TokenStandard.ERC721),
            ("erc-1155", TokenStandard.ERC1155),
            ("ERC1400", TokenStandard.ERC1400),
            ("ERC-3525", TokenStandard.ERC3525),
            ("erc4626", TokenStandard.ERC4626),
            (TokenStandard.ERC20, TokenStandard.ERC20),
        ],
    )
    def test_accepts_known_spellings(self, raw, expected):
        assert parse_standard(raw) == expected

    @pytest.mark.parametrize("raw", ["ERC-777", "BEP-20", "", None, 20, "ERC"])
    def test_rejects_unknown(self, raw):
        with pytest.raises(UnknownStandard):
            parse_standard(raw)

    def test_unknown_standard_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_standard("ERC-9999")


def test_snake_case():
    assert snake_case("initialSupply") == "initial_supply"
    assert snake_case("enableApprovalForAll") == "enable_approval_for_all"
    assert snake_case("name") == "name"
