"""Tier resolver: groups a project's tokens into primary/secondary/tertiary."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from token_engine.models.enums import TokenTier

UNKNOWN_PARENT = "unknown"


class Tiered(Protocol):
    id: uuid.UUID
    name: str
    parent_token_id: uuid.UUID | None
    tier: TokenTier | None


@dataclass(frozen=True)
class TierClassification:
    primary: list[Tiered] = field(default_factory=list)
    secondary_by_parent: dict[str, list[Tiered]] = field(default_factory=dict)
    tertiary_by_parent: dict[str, list[Tiered]] = field(default_factory=dict)


def tier_of(token: Tiered) -> TokenTier:
    """An explicit tag wins; untagged tokens with a parent are secondary."""
    if token.tier is not None:
        return token.tier
    if token.parent_token_id is not None:
        return TokenTier.SECONDARY
    return TokenTier.PRIMARY


def _sort_key(token: Tiered) -> tuple[str, str]:
    return token.name, str(token.id)


def classify(tokens: Iterable[Tiered]) -> TierClassification:
    """Group tokens for display. Pure; the result does not depend on input order.

    Children are keyed by parent id when that parent is in ``tokens``, and
    under ``"unknown"`` otherwise (no parent, a missing parent, or a token
    naming itself).
    Parent cycles are never followed, so they cannot loop.
    """
    tokens = list(tokens)
    known_ids = {token.id for token in tokens}

    primary: list[Tiered] = []
    secondary: dict[str, list[Tiered]] = {}
    tertiary: dict[str, list[Tiered]] = {}

    for token in tokens:
        tier = tier_of(token)
        if tier == TokenTier.PRIMARY:
            primary.append(token)
            continue
        parent = token.parent_token_id
        if parent is not None and parent in known_ids and parent != token.id:
            key = str(parent)
        else:
            key = UNKNOWN_PARENT
        bucket = secondary if tier == TokenTier.SECONDARY else tertiary
        bucket.setdefault(key, []).append(token)

    return TierClassification(
        primary=sorted(primary, key=_sort_key),
        secondary_by_parent={k: sorted(v, key=_sort_key) for k, v in sorted(secondary.items())},
        tertiary_by_parent={k: sorted(v, key=_sort_key) for k, v in sorted(tertiary.items())},
    )
