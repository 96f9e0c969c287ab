"""Batch form validation results and their summary."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from token_engine.models.enums import TokenStandard
from token_engine.modules.tokens.exceptions import FieldIssue
from token_engine.modules.tokens.validators import is_unset


@dataclass(frozen=True)
class BatchItem:
    index: int
    name: str
    standard: TokenStandard | None
    issues: list[FieldIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues


@dataclass(frozen=True)
class BatchSummary:
    total: int
    valid_count: int
    invalid: list[BatchItem]
    # How many forms fail on each field
    issues_by_field: dict[str, int]

    @property
    def valid(self) -> bool:
        return not self.invalid

    @property
    def invalid_count(self) -> int:
        return len(self.invalid)


def label_for(index: int, form: Mapping[str, Any]) -> str:
    name = form.get("name")
    if is_unset(name) or not isinstance(name, str):
        return f"Token {index}"
    return name.strip()


def summarize(items: Iterable[BatchItem]) -> BatchSummary:
    items = list(items)
    invalid = [item for item in items if not item.valid]
    counts: Counter[str] = Counter()
    for item in invalid:
        counts.update({issue.field for issue in item.issues})
    return BatchSummary(
        total=len(items),
        valid_count=len(items) - len(invalid),
        invalid=invalid,
        issues_by_field=dict(sorted(counts.items())),
    )
