"""Tests for lenient AI JSON parsing."""

import pytest
from pydantic import Field

from ai_bookkeeper.ai_json import LenientPayload, extract_json_array, parse_items
from ai_bookkeeper.errors import AIResponseParseError


class Suggestion(LenientPayload):
    transaction_id: str = Field(alias="transactionId")
    confidence: float = 0.5
    reasoning: str = "n/a"


class TestExtractJsonArray:
    def test_array_inside_prose_and_fences(self):
        text = 'Sure! Here it is:\n```json\n[{"a": 1}, {"a": 2}]\n```\nLet me know.'

        assert extract_json_array(text) == [{"a": 1}, {"a": 2}]

    def test_skips_brackets_that_are_not_json(self):
        text = "Transactions [see below] were reviewed: [1, 2, 3] and [4]"

        assert extract_json_array(text) == [1, 2, 3]

    def test_no_array_raises(self):
        with pytest.raises(AIResponseParseError):
            extract_json_array("No issues found.")

    def test_truncated_array_raises(self):
        with pytest.raises(AIResponseParseError):
            extract_json_array('[{"a": 1}, {"a": ')


class TestParseItems:
    def test_defaults_fill_nulls_and_empties(self):
        text = '[{"transactionId": "t1", "confidence": null, "reasoning": ""}]'

        [item] = parse_items(text, Suggestion)

        assert item.transaction_id == "t1"
        assert item.confidence == 0.5
        assert item.reasoning == "n/a"

    def test_invalid_items_quarantined(self):
        text = '[{"transactionId": "t1"}, {"confidence": 0.9}, "junk", {"transactionId": "t2"}]'

        items = parse_items(text, Suggestion)

        assert [i.transaction_id for i in items] == ["t1", "t2"]

    def test_unknown_fields_ignored(self):
        [item] = parse_items('[{"transactionId": "t1", "vendor": "Esso"}]', Suggestion)

        assert not hasattr(item, "vendor")
