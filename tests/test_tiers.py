"""Tests for the tier resolver."""

import random
import uuid
from dataclasses import dataclass

from token_engine.models.enums import TokenTier
from token_engine.modules.tokens.tiers import UNKNOWN_PARENT, classify, tier_of


@dataclass(frozen=True)
class _Token:
    name: str
    id: uuid.UUID
    parent_token_id: uuid.UUID | None = None
    tier: TokenTier | None = None


def _token(name: str, parent: "_Token | uuid.UUID | None" = None, tier: TokenTier | None = None) -> _Token:
    parent_id = parent.id if isinstance(parent, _Token) else parent
    return _Token(name=name, id=uuid.uuid4(), parent_token_id=parent_id, tier=tier)


class TestTierOf:
    def test_no_parent_is_primary(self):
        assert tier_of(_token("Root")) == TokenTier.PRIMARY

    def test_parent_makes_secondary(self):
        assert tier_of(_token("Child", uuid.uuid4())) == TokenTier.SECONDARY

    def test_tertiary_tag_wins(self):
        assert tier_of(_token("Leaf", uuid.uuid4(), TokenTier.TERTIARY)) == TokenTier.TERTIARY

    def test_secondary_tag_without_parent_is_secondary(self):
        assert tier_of(_token("Orphan", tier=TokenTier.SECONDARY)) == TokenTier.SECONDARY

    def test_primary_tag_wins_over_parent(self):
        assert tier_of(_token("Tagged", uuid.uuid4(), TokenTier.PRIMARY)) == TokenTier.PRIMARY

    def test_tertiary_tag_without_parent(self):
        assert tier_of(_token("Loose", tier=TokenTier.TERTIARY)) == TokenTier.TERTIARY


class TestClassify:
    def test_groups_by_parent(self):
        root = _token("Root")
        child_b = _token("B child", root)
        child_a = _token("A child", root)
        leaf = _token("Leaf", child_a, TokenTier.TERTIARY)

        result = classify([leaf, child_b, root, child_a])

        assert result.primary == [root]
        assert result.secondary_by_parent == {str(root.id): [child_a, child_b]}
        assert result.tertiary_by_parent == {str(child_a.id): [leaf]}

    def test_missing_parent_goes_to_unknown(self):
        orphan = _token("Orphan", uuid.uuid4())
        result = classify([orphan])
        assert result.primary == []
        assert result.secondary_by_parent == {UNKNOWN_PARENT: [orphan]}

    def test_primary_tagged_child_is_primary(self):
        root = _token("Root")
        tagged = _token("Tagged", root, TokenTier.PRIMARY)

        result = classify([root, tagged])

        assert result.primary == [root, tagged]
        assert result.secondary_by_parent == {}

    def test_secondary_tag_without_parent_goes_to_unknown(self):
        orphan = _token("Orphan", tier=TokenTier.SECONDARY)
        result = classify([orphan])
        assert result.primary == []
        assert result.secondary_by_parent == {UNKNOWN_PARENT: [orphan]}

    def test_self_reference_goes_to_unknown(self):
        token_id = uuid.uuid4()
        selfish = _Token(name="Self", id=token_id, parent_token_id=token_id)
        result = classify([selfish])
        assert result.secondary_by_parent == {UNKNOWN_PARENT: [selfish]}

    def test_cycle_terminates(self):
        first_id, second_id = uuid.uuid4(), uuid.uuid4()
        first = _Token(name="First", id=first_id, parent_token_id=second_id)
        second = _Token(name="Second", id=second_id, parent_token_id=first_id)

        result = classify([first, second])

        assert result.primary == []
        assert result.secondary_by_parent == {str(second_id): [first], str(first_id): [second]}

    def test_order_independent(self):
        root = _token("Root")
        other_root = _token("Other")
        tokens = [
            root,
            other_root,
            _token("C", root),
            _token("A", other_root),
            _token("B", uuid.uuid4()),
            _token("T", root, TokenTier.TERTIARY),
        ]
        expected = classify(tokens)
        shuffled = list(tokens)
        random.Random(7).shuffle(shuffled)

        assert classify(shuffled) == expected
        assert classify(reversed(tokens)) == expected

    def test_empty(self):
        result = classify([])
        assert result.primary == []
        assert result.secondary_by_parent == {}
        assert result.tertiary_by_parent == {}
