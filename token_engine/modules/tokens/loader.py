"""Aggregate loader: reads and writes a token as core + extension + collections."""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from token_engine.models.enums import TokenStandard, TokenStatus
from token_engine.modules.tokens.aggregate import (
    DeploymentRecord,
    ExtensionRecord,
    TokenAggregate,
    TokenRecord,
)
from token_engine.modules.tokens.exceptions import (
    AggregateIntegrityError,
    ConcurrentModification,
    TokenNotFound,
)
from token_engine.modules.tokens.lifecycle import parse_status
from token_engine.modules.tokens.mapper import StoragePayload
from token_engine.modules.tokens.registry import schema_for
from token_engine.modules.tokens.store import RecordStore

logger = structlog.get_logger()

TOKENS = "tokens"
TRANSITIONS = "token_status_transitions"
DEPLOYMENTS = "token_deployments"
TEMPLATES = "token_templates"


class TokenAggregateLoader:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def get_token(self, token_id: uuid.UUID) -> TokenRecord:
        row = await self.store.get(TOKENS, token_id)
        if row is None:
            raise TokenNotFound(token_id)
        return TokenRecord.from_row(row)

    async def load(self, token_id: uuid.UUID) -> TokenAggregate:
        """Point-in-time snapshot of one token and everything it owns."""
        token = await self.get_token(token_id)
        schema = schema_for(token.standard)

        extension_rows = await self.store.find(schema.table, token_id=token_id)
        if len(extension_rows) != 1:
            raise AggregateIntegrityError(
                f"Token {token_id} has {len(extension_rows)} {token.standard.value} "
                "extension records, expected exactly one"
            )

        collections = {
            spec.key: tuple(
                await self.store.find(spec.table, order_by="position", token_id=token_id)
            )
            for spec in schema.collections
        }

        deployment_rows = await self.store.find(DEPLOYMENTS, token_id=token_id)
        deployment = DeploymentRecord.from_row(deployment_rows[0]) if deployment_rows else None

        return TokenAggregate(
            token=token,
            extension=ExtensionRecord.from_row(token.standard, extension_rows[0]),
            collections=collections,
            deployment=deployment,
        )

    async def list_tokens(
        self,
        project_id: uuid.UUID | None = None,
        standard: TokenStandard | None = None,
        status: TokenStatus | None = None,
    ) -> list[TokenRecord]:
        filters: dict[str, Any] = {}
        if project_id is not None:
            filters["project_id"] = project_id
        if standard is not None:
            filters["standard"] = standard.value
        rows = await self.store.find(TOKENS, order_by="created_at", **filters)
        tokens = [TokenRecord.from_row(row) for row in rows]
        if status is not None:
            # Stored text varies ("UNDER REVIEW"), so compare parsed values
            tokens = [token for token in tokens if token.status == status]
        return tokens

    async def history(self, token_id: uuid.UUID) -> list[dict[str, Any]]:
        rows = await self.store.find(TRANSITIONS, order_by="created_at", token_id=token_id)
        return [
            {**row, "from_status": parse_status(row["from_status"]),
             "to_status": parse_status(row["to_status"])}
            for row in rows
        ]

    # ── Writes ────────────────────────────────────────────────────────────────

    async def insert(
        self,
        core: Mapping[str, Any],
        standard: TokenStandard,
        payload: StoragePayload,
    ) -> uuid.UUID:
        """Insert core row, extension row and any collection rows."""
        token_row = await self.store.insert(TOKENS, {**core, "standard": standard.value})
        token_id = token_row["id"]
        schema = schema_for(standard)
        await self.store.insert(schema.table, {**payload.extension, "token_id": token_id})
        for key, rows in payload.collections.items():
            await self._insert_rows(schema.collection(key).table, token_id, rows)
        return token_id

    async def update(
        self,
        token: TokenRecord,
        core: Mapping[str, Any],
        payload: StoragePayload,
        collection_keys: Iterable[str],
    ) -> None:
        """Write core and extension fields and replace the named collections.

        The core row is only written while the status is still the one read
        into ``token``; otherwise nothing is written.
        """
        schema = schema_for(token.standard)
        changed = await self.store.update(TOKENS, token.id, core, expected={"status": token.raw_status})
        if changed == 0:
            raise ConcurrentModification(token.id, token.status)

        extension_rows = await self.store.find(schema.table, token_id=token.id)
        if len(extension_rows) != 1:
            raise AggregateIntegrityError(
                f"Token {token.id} has {len(extension_rows)} extension records"
            )
        await self.store.update(schema.table, extension_rows[0]["id"], payload.extension)

        for key in collection_keys:
            table = schema.collection(key).table
            await self.store.delete_where(table, token_id=token.id)
            await self._insert_rows(table, token.id, payload.collections.get(key, []))

    async def _insert_rows(
        self, table: str, token_id: uuid.UUID, rows: Iterable[Mapping[str, Any]]
    ) -> None:
        for row in rows:
            await self.store.insert(table, {**row, "token_id": token_id})

    async def delete(self, token: TokenRecord) -> None:
        """Delete sub-resources, then the extension, then the core record.

        A failure part way propagates before the core row is touched, so a
        core record never outlives only some of its children.
        """
        schema = schema_for(token.standard)
        for spec in schema.collections:
            await self.store.delete_where(spec.table, token_id=token.id)
        await self.store.delete_where(schema.table, token_id=token.id)
        await self.store.delete_where(TRANSITIONS, token_id=token.id)
        await self.store.delete_where(DEPLOYMENTS, token_id=token.id)
        await self.store.delete(TOKENS, token.id)
        logger.info("token.deleted", token_id=str(token.id), standard=token.standard.value)
