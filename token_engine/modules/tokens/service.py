"""Token service: create, edit, delete, clone and transition tokens.

Also keeps per-project token templates and validates batches of forms.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from token_engine.models.enums import TokenStandard, TokenStatus
from token_engine.modules.tokens.aggregate import TokenAggregate, TokenRecord
from token_engine.modules.tokens.batch import BatchItem, label_for
from token_engine.modules.tokens.exceptions import (
    ConcurrentModification,
    FieldIssue,
    TemplateNotFound,
    TokenNotEditable,
    TokenNotFound,
    UnknownStandard,
    UnknownStatus,
    raise_for_issues,
)
from token_engine.modules.tokens.lifecycle import (
    INITIAL_STATUS,
    ON_CHAIN_STATUSES,
    available_transitions,
    check_transition,
    parse_status,
    storage_status,
)
from token_engine.modules.tokens.loader import TEMPLATES, TOKENS, TRANSITIONS, TokenAggregateLoader
from token_engine.modules.tokens.mapper import StoragePayload, canonical_keys, collect_form, merge_form
from token_engine.modules.tokens.registry import parse_standard, schema_for
from token_engine.modules.tokens.store import RecordStore
from token_engine.modules.tokens.tiers import TierClassification, classify
from token_engine.modules.tokens.validators import is_unset

logger = structlog.get_logger()

# Metadata keys describing an on-chain deployment; never copied to a clone
DEPLOYMENT_METADATA_KEYS = (
    "address", "blockchain", "network", "deployedAt", "transactionHash", "explorerUrl",
)


class TokenService:
    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self.loader = TokenAggregateLoader(store)

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def load_aggregate(self, token_id: uuid.UUID) -> TokenAggregate:
        return await self.loader.load(token_id)

    async def list_tokens(
        self,
        project_id: uuid.UUID | None = None,
        standard: TokenStandard | str | None = None,
        status: TokenStatus | str | None = None,
    ) -> list[TokenRecord]:
        return await self.loader.list_tokens(
            project_id=project_id,
            standard=parse_standard(standard) if standard is not None else None,
            status=parse_status(status) if status is not None else None,
        )

    async def classify_for_display(self, project_id: uuid.UUID) -> TierClassification:
        return classify(await self.loader.list_tokens(project_id=project_id))

    async def transition_history(self, token_id: uuid.UUID) -> list[dict[str, Any]]:
        await self.loader.get_token(token_id)
        return await self.loader.history(token_id)

    async def workflow(self, token_id: uuid.UUID) -> dict[str, Any]:
        """Current status, the edges a caller may request, and the history."""
        token = await self.loader.get_token(token_id)
        return {
            "token_id": token.id,
            "status": token.status,
            "transition_count": token.transition_count,
            "available_transitions": available_transitions(token.status),
            "history": await self.loader.history(token_id),
        }

    # ── Writes ────────────────────────────────────────────────────────────────

    async def create_token(
        self,
        project_id: uuid.UUID,
        form: Mapping[str, Any],
        *,
        actor_id: uuid.UUID | None = None,
    ) -> TokenAggregate:
        standard = parse_standard(form.get("standard"))
        core, payload, issues = await self._check_new_form(standard, form)
        raise_for_issues(issues)

        token_id = await self.loader.insert(
            {
                **core,
                "project_id": project_id,
                "status": storage_status(INITIAL_STATUS),
                "transition_count": 0,
                "created_by": actor_id,
            },
            standard,
            payload,
        )
        logger.info(
            "token.created",
            token_id=str(token_id),
            project_id=str(project_id),
            standard=standard.value,
        )
        return await self.loader.load(token_id)

    async def save_form(self, token_id: uuid.UUID, patch: Mapping[str, Any]) -> TokenAggregate:
        """Apply a full or partial form edit.

        Fields absent from ``patch`` keep their stored values; nested objects
        merge key-by-key; a collection present in ``patch`` replaces the stored
        rows. The form can never change the standard or the status.
        """
        aggregate = await self.loader.load(token_id)
        token = aggregate.token
        if token.status in ON_CHAIN_STATUSES:
            raise TokenNotEditable(token_id, token.status)

        patch = canonical_keys(token.standard, patch)
        issues: list[FieldIssue] = []
        if "standard" in patch:
            issues.extend(_standard_issues(patch.pop("standard"), token.standard))
        if "status" in patch:
            issues.extend(_status_issues(patch.pop("status"), token.status))

        merged = merge_form(token.standard, aggregate.form(), patch)
        core, payload, mapping_issues = collect_form(token.standard, merged)
        issues.extend(mapping_issues)
        issues.extend(await self._parent_issues(token_id, core.get("parent_token_id")))
        raise_for_issues(issues)

        collection_keys = [key for key in schema_for(token.standard).collection_keys if key in patch]
        await self.loader.update(token, core, payload, collection_keys)
        logger.info(
            "token.saved",
            token_id=str(token_id),
            fields=len(patch),
            collections=collection_keys,
        )
        return await self.loader.load(token_id)

    async def delete_token(self, token_id: uuid.UUID) -> None:
        token = await self.loader.get_token(token_id)
        await self.loader.delete(token)

    async def clone_token(
        self,
        token_id: uuid.UUID,
        overrides: Mapping[str, Any] | None = None,
        *,
        project_id: uuid.UUID | None = None,
        include_collections: bool = True,
        actor_id: uuid.UUID | None = None,
    ) -> TokenAggregate:
        """Copy a token's configuration into a new DRAFT token."""
        source = await self.loader.load(token_id)
        form = source.form()
        form["name"] = f"{source.token.name} (Copy)"
        form["metadata"] = {
            key: value for key, value in form["metadata"].items()
            if key not in DEPLOYMENT_METADATA_KEYS
        }
        if not include_collections:
            for key in schema_for(source.standard).collection_keys:
                form.pop(key, None)
        overrides = dict(overrides or {})
        overrides.pop("standard", None)
        form = merge_form(source.standard, form, overrides)

        clone = await self.create_token(project_id or source.token.project_id, form, actor_id=actor_id)
        logger.info("token.cloned", source_id=str(token_id), token_id=str(clone.token.id))
        return clone

    # ── Templates ─────────────────────────────────────────────────────────────

    async def create_template(
        self,
        project_id: uuid.UUID,
        name: str,
        standard: TokenStandard | str,
        *,
        blocks: Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
        description: str | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> dict[str, Any]:
        """Save a standard plus default form values for reuse in a project.

        Blocks may be partial, but every value they do carry must map.
        """
        standard = parse_standard(standard)
        blocks = canonical_keys(standard, blocks or {})
        issues: list[FieldIssue] = []
        if is_unset(name):
            issues.append(FieldIssue("name", "is required", missing=True))
        if "standard" in blocks:
            issues.extend(_standard_issues(blocks.pop("standard"), standard))
        if blocks.pop("status", None) is not None:
            issues.append(FieldIssue("status", "templates cannot set a status"))
        _, _, mapping_issues = collect_form(standard, blocks)
        issues.extend(issue for issue in mapping_issues if not issue.missing)
        raise_for_issues(issues)

        row = await self.store.insert(
            TEMPLATES,
            {
                "project_id": project_id,
                "name": name.strip(),
                "description": description,
                "standard": standard.value,
                "blocks": blocks,
                "template_metadata": dict(metadata or {}),
                "created_by": actor_id,
            },
        )
        logger.info(
            "token_template.created",
            template_id=str(row["id"]),
            project_id=str(project_id),
            standard=standard.value,
        )
        return row

    async def list_templates(
        self, project_id: uuid.UUID, standard: TokenStandard | str | None = None
    ) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {"project_id": project_id}
        if standard is not None:
            filters["standard"] = parse_standard(standard).value
        return await self.store.find(TEMPLATES, order_by="created_at", **filters)

    async def get_template(self, template_id: uuid.UUID) -> dict[str, Any]:
        row = await self.store.get(TEMPLATES, template_id)
        if row is None:
            raise TemplateNotFound(template_id)
        return row

    async def create_from_template(
        self,
        template_id: uuid.UUID,
        overrides: Mapping[str, Any] | None = None,
        *,
        project_id: uuid.UUID | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> TokenAggregate:
        """Create a DRAFT token from a template's blocks under ``overrides``."""
        template = await self.get_template(template_id)
        standard = parse_standard(template["standard"])
        overrides = dict(overrides or {})
        overrides.pop("standard", None)
        form = merge_form(standard, template["blocks"], overrides)
        form["standard"] = standard.value

        aggregate = await self.create_token(
            project_id or template["project_id"], form, actor_id=actor_id
        )
        logger.info(
            "token.created_from_template",
            template_id=str(template_id),
            token_id=str(aggregate.token.id),
        )
        return aggregate

    # ── Batch validation ──────────────────────────────────────────────────────

    async def validate_batch(self, forms: Iterable[Mapping[str, Any]]) -> list[BatchItem]:
        """Check each form as ``create_token`` would, without writing anything."""
        items = []
        for index, form in enumerate(forms):
            standard: TokenStandard | None = None
            try:
                standard = parse_standard(form.get("standard"))
            except UnknownStandard:
                missing = is_unset(form.get("standard"))
                issues = [
                    FieldIssue(
                        "standard",
                        "is required" if missing else "is not a supported token standard",
                        missing=missing,
                    )
                ]
            else:
                _, _, issues = await self._check_new_form(standard, form)
            items.append(BatchItem(index, label_for(index, form), standard, issues))

        logger.info(
            "token.batch_validated",
            total=len(items),
            invalid=sum(1 for item in items if not item.valid),
        )
        return items

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def request_transition(
        self,
        token_id: uuid.UUID,
        observed_status: TokenStatus | str,
        target_status: TokenStatus | str,
        *,
        notes: str | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> TokenRecord:
        return await self.apply_transition(
            token_id,
            parse_status(observed_status),
            parse_status(target_status),
            notes=notes,
            actor_id=actor_id,
        )

    async def apply_transition(
        self,
        token_id: uuid.UUID,
        observed: TokenStatus,
        target: TokenStatus,
        *,
        notes: str | None = None,
        actor_id: uuid.UUID | None = None,
        via_deployment: bool = False,
        metadata: Mapping[str, Any] | None = None,
    ) -> TokenRecord:
        """Compare-and-set the status; ``metadata`` is written in the same update.

        An edge outside the table is refused before the stored status is
        compared, so a bad request never reads as a concurrency conflict.
        """
        check_transition(observed, target, via_deployment=via_deployment)
        token = await self.loader.get_token(token_id)
        if token.status != observed:
            raise ConcurrentModification(token_id, observed, token.status)

        values: dict[str, Any] = {
            "status": storage_status(target),
            "transition_count": token.transition_count + 1,
        }
        if metadata is not None:
            values["token_metadata"] = {**token.metadata, **metadata}

        changed = await self.store.update(
            TOKENS, token_id, values, expected={"status": token.raw_status}
        )
        if changed == 0:
            logger.warning(
                "token.transition.conflict",
                token_id=str(token_id),
                observed=observed.value,
                target=target.value,
            )
            raise ConcurrentModification(token_id, observed)

        await self.store.insert(
            TRANSITIONS,
            {
                "token_id": token_id,
                "from_status": storage_status(token.status),
                "to_status": storage_status(target),
                "notes": notes,
                "actor_id": actor_id,
            },
        )
        logger.info(
            "token.transition.applied",
            token_id=str(token_id),
            from_status=token.status.value,
            to_status=target.value,
        )
        return await self.loader.get_token(token_id)

    # ── Helpers ───────────────────────────────────────────────────────────────

    async def _check_new_form(
        self, standard: TokenStandard, form: Mapping[str, Any]
    ) -> tuple[dict[str, Any], StoragePayload, list[FieldIssue]]:
        core, payload, issues = collect_form(standard, form)
        if "status" in form:
            issues.extend(_status_issues(form["status"], INITIAL_STATUS))
        issues.extend(await self._parent_issues(None, core.get("parent_token_id")))
        return core, payload, issues

    async def _parent_issues(
        self, token_id: uuid.UUID | None, parent_id: uuid.UUID | None
    ) -> list[FieldIssue]:
        if parent_id is None:
            return []
        if parent_id == token_id:
            return [FieldIssue("parentTokenId", "a token cannot be its own parent")]
        try:
            parent = await self.loader.get_token(parent_id)
        except TokenNotFound:
            return [FieldIssue("parentTokenId", "must reference an existing token")]
        if parent.parent_token_id is not None:
            return [FieldIssue("parentTokenId", "parent token must not itself have a parent")]
        return []


def _standard_issues(raw: Any, current: TokenStandard) -> list[FieldIssue]:
    try:
        requested = parse_standard(raw)
    except ValueError:
        return [FieldIssue("standard", "is not a supported token standard")]
    if requested != current:
        return [FieldIssue("standard", "cannot be changed after creation")]
    return []


def _status_issues(raw: Any, current: TokenStatus) -> list[FieldIssue]:
    try:
        requested = parse_status(raw)
    except UnknownStatus:
        return [FieldIssue("status", "is not a known status")]
    if requested != current:
        return [FieldIssue("status", "status changes go through a lifecycle transition")]
    return []

