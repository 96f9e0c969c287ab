"""Tests for the batch validation summary."""

from token_engine.models.enums import TokenStandard
from token_engine.modules.tokens.batch import BatchItem, label_for, summarize
from token_engine.modules.tokens.exceptions import FieldIssue


def _item(index, *fields):
    return BatchItem(index, f"Token {index}", TokenStandard.ERC20, [FieldIssue(f, "is invalid") for f in fields])


class TestSummarize:
    def test_all_valid(self):
        summary = summarize([_item(0), _item(1)])

        assert summary.valid
        assert summary.total == 2
        assert summary.valid_count == 2
        assert summary.invalid_count == 0
        assert summary.issues_by_field == {}

    def test_counts_each_field_once_per_form(self):
        summary = summarize([_item(0, "symbol", "symbol"), _item(1), _item(2, "decimals", "symbol")])

        assert not summary.valid
        assert [item.index for item in summary.invalid] == [0, 2]
        assert summary.valid_count == 1
        assert summary.issues_by_field == {"decimals": 1, "symbol": 2}

    def test_empty(self):
        summary = summarize([])
        assert summary.valid
        assert summary.total == 0


def test_label_for():
    assert label_for(3, {"name": " Bond "}) == "Bond"
    assert label_for(3, {"name": ""}) == "Token 3"
    assert label_for(3, {"name": 7}) == "Token 3"
    assert label_for(3, {}) == "Token 3"
