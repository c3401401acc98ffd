"""Tests for finance_assistant.categorizer -- decoding, assignment, and batches.

All tests use the scripted FakeClient from helpers. No real API calls are made.
"""

from __future__ import annotations

import json

import pytest
from helpers import FakeClient, json_reply, make_txn

from finance_assistant.categorizer import (
    TEXT_FALLBACK_RATIONALE,
    CategoryAssigner,
    FixedDelayPacer,
    NoPacing,
    NotAnObjectError,
    decode_assignment,
    decode_json,
    decode_text,
)
from finance_assistant.errors import CompletionError, DecodeError
from finance_assistant.models import CATEGORY_NAMES, UNCATEGORIZED
from finance_assistant.prompts import CATEGORY_ASSIGNMENT_PROMPT
from finance_assistant.store import TransactionStore

# ---------------------------------------------------------------------------
# Strict JSON stage
# ---------------------------------------------------------------------------


class TestDecodeJson:
    """Tests for the strict JSON decode stage."""

    def test_well_formed_reply(self):
        """A JSON object reply decodes to its category and rationale."""
        result = decode_json('{"rationale":"groceries","category":"Basic Outcomes"}')
        assert result.category == "Basic Outcomes"
        assert result.rationale == "groceries"
        assert result.source == "json"

    def test_legacy_thoughts_key(self):
        """The older _thoughts key is accepted as the rationale."""
        result = decode_json('{"_thoughts": "a course", "category": "Education"}')
        assert result.rationale == "a course"
        assert result.category == "Education"

    def test_missing_rationale_is_empty(self):
        """A reply with only a category still decodes."""
        assert decode_json('{"category": "Pleasures"}').rationale == ""

    def test_invalid_json_raises_json_error(self):
        """Invalid JSON raises the JSON error that triggers the fallback."""
        with pytest.raises(json.JSONDecodeError):
            decode_json("category: Education")

    def test_non_object_raises_not_an_object(self):
        """Valid JSON that is not an object is reported apart from a missing field."""
        with pytest.raises(NotAnObjectError):
            decode_json('["Education"]')
        with pytest.raises(NotAnObjectError):
            decode_json("null")

    def test_object_without_category_raises_decode_error(self):
        """An object lacking the category field is rejected."""
        with pytest.raises(DecodeError):
            decode_json('{"rationale": "no idea"}')


# ---------------------------------------------------------------------------
# Text fallback stage
# ---------------------------------------------------------------------------


class TestDecodeText:
    """Tests for the line-scraping fallback stage."""

    def test_preamble_then_category_line(self):
        """The first line mentioning category is scraped after its last colon."""
        result = decode_text('Some preamble\nFinal category: "Education"\n')
        assert result.category == "Education"
        assert result.source == "text"
        assert result.rationale == TEXT_FALLBACK_RATIONALE

    def test_case_insensitive_token(self):
        """The token match ignores case."""
        assert decode_text("CATEGORY: Pleasures").category == "Pleasures"

    def test_strips_trailing_comma_and_brace(self):
        """Quotes, commas and closing braces around the value are removed."""
        text = '{\n  "rationale": "rent",\n  "category": "Basic Outcomes",}\n'
        assert decode_text(text).category == "Basic Outcomes"

    def test_uses_last_colon_on_line(self):
        """Only the text after the last colon on the line is kept."""
        assert decode_text("Note: the category is: Emergency Fund").category == "Emergency Fund"

    def test_first_matching_line_wins(self):
        """Later category lines are ignored."""
        text = "category: Education\ncategory: Pleasures"
        assert decode_text(text).category == "Education"

    def test_no_category_line_raises(self):
        """Without any category line there is nothing to recover."""
        with pytest.raises(DecodeError):
            decode_text("I am not sure what this is.\nSorry.")

    def test_empty_value_raises(self):
        """A category line with nothing after the colon is not a category."""
        with pytest.raises(DecodeError):
            decode_text('category: ""')


# ---------------------------------------------------------------------------
# Two-stage decoder and closed set
# ---------------------------------------------------------------------------


class TestDecodeAssignment:
    """Tests for the combined decoder and the closed-set boundary."""

    def test_json_path(self):
        """Valid JSON is decoded strictly."""
        result = decode_assignment(json_reply("Kids Education"))
        assert result.category == "Kids Education"
        assert result.source == "json"

    def test_falls_back_on_invalid_json(self):
        """Invalid JSON is handed to the text stage."""
        result = decode_assignment('Some preamble\nFinal category: "Education"\n')
        assert result.category == "Education"
        assert result.source == "text"

    def test_falls_back_on_json_array(self):
        """A JSON array is not an assignment, so its category line is scraped."""
        reply = '[\n  {\n    "rationale": "course",\n    "category": "Education"\n  }\n]'
        result = decode_assignment(reply)
        assert result.category == "Education"
        assert result.source == "text"

    def test_falls_back_on_json_string(self):
        """A bare JSON string is scraped like free text."""
        result = decode_assignment('"category: Education"')
        assert result.category == "Education"
        assert result.source == "text"

    def test_non_object_without_category_line_raises(self):
        """A non-object reply with nothing to scrape still fails to decode."""
        with pytest.raises(DecodeError):
            decode_assignment('["Education"]')

    def test_decode_error_from_json_stage_is_not_retried_as_text(self):
        """Valid JSON without a category does not fall back."""
        with pytest.raises(DecodeError):
            decode_assignment('{"note": "category unknown"}')

    def test_case_is_canonicalized(self):
        """Category names are matched case-insensitively."""
        result = decode_assignment(json_reply("basic outcomes"))
        assert result.category == "Basic Outcomes"
        assert result.raw_category == "basic outcomes"

    def test_unknown_category_coerced(self):
        """Names outside the closed set become Uncategorized."""
        result = decode_assignment(json_reply("Groceries"))
        assert result.category == UNCATEGORIZED
        assert result.raw_category == "Groceries"

    def test_unknown_category_from_text_coerced(self):
        """The closed set is enforced on the fallback path as well."""
        assert decode_text("category: Vacation").category == UNCATEGORIZED


# ---------------------------------------------------------------------------
# Single assignment
# ---------------------------------------------------------------------------


class TestAssign:
    """Tests for CategoryAssigner.assign."""

    def test_request_messages(self):
        """The request is the fixed system prompt plus the description."""
        client = FakeClient([json_reply("Basic Outcomes")])
        CategoryAssigner(client).assign("BIEDRONKA 1234")

        assert len(client.calls) == 1
        messages = client.calls[0]
        assert messages[0] == {"role": "system", "content": CATEGORY_ASSIGNMENT_PROMPT}
        assert messages[1] == {"role": "user", "content": "BIEDRONKA 1234"}

    def test_prompt_lists_every_category(self):
        """The system prompt enumerates the closed category set."""
        for name in CATEGORY_NAMES:
            assert f"- {name}" in CATEGORY_ASSIGNMENT_PROMPT
        assert '"category"' in CATEGORY_ASSIGNMENT_PROMPT
        assert '"rationale"' in CATEGORY_ASSIGNMENT_PROMPT

    def test_returns_decoded_assignment(self):
        """The decoded reply is returned."""
        client = FakeClient(['{"rationale":"groceries","category":"Basic Outcomes"}'])
        result = CategoryAssigner(client).assign("BIEDRONKA")
        assert result.category == "Basic Outcomes"
        assert result.rationale == "groceries"

    def test_completion_error_propagates(self):
        """A provider failure aborts the single assignment."""
        client = FakeClient([CompletionError("quota exceeded")])
        with pytest.raises(CompletionError, match="quota"):
            CategoryAssigner(client).assign("X")

    def test_empty_reply_raises_decode_error(self):
        """An empty reply is not a category."""
        client = FakeClient(["   "])
        with pytest.raises(DecodeError):
            CategoryAssigner(client).assign("X")

    def test_undecodable_reply_raises_decode_error(self):
        """A reply with no recoverable category raises DecodeError."""
        client = FakeClient(["I cannot help with that."])
        with pytest.raises(DecodeError):
            CategoryAssigner(client).assign("X")


# ---------------------------------------------------------------------------
# Batch assignment
# ---------------------------------------------------------------------------


def _unassigned_store(count: int) -> TransactionStore:
    return TransactionStore([make_txn(f"2024-01-{i + 1:02d}", f"SHOP {i}") for i in range(count)])


class TestAssignAll:
    """Tests for CategoryAssigner.assign_all."""

    def test_caps_at_ten(self):
        """15 unassigned transactions: 10 assigned, 5 left."""
        store = _unassigned_store(15)
        client = FakeClient()
        report = CategoryAssigner(client).assign_all(store)

        assert report.assigned == 10
        assert report.failed == 0
        assert len(client.calls) == 10
        assert len(store.unassigned()) == 5
        assert [t.description for t in store.unassigned()] == [f"SHOP {i}" for i in range(10, 15)]

    def test_failure_does_not_stop_batch(self):
        """A failure on the third transaction does not prevent 4-10."""
        store = _unassigned_store(10)
        replies = [json_reply("Pleasures")] * 10
        replies[2] = CompletionError("rate limited")
        client = FakeClient(replies)

        report = CategoryAssigner(client).assign_all(store)

        assert len(client.calls) == 10
        assert report.assigned == 9
        assert report.failed == 1
        assert "SHOP 2" in report.errors[0]
        remaining = store.unassigned()
        assert [t.description for t in remaining] == ["SHOP 2"]

    def test_decode_failure_does_not_stop_batch(self):
        """An undecodable reply is recorded like a provider failure."""
        store = _unassigned_store(3)
        client = FakeClient([json_reply("Education"), "no idea", json_reply("Education")])
        report = CategoryAssigner(client).assign_all(store)
        assert report.assigned == 2
        assert report.failed == 1

    def test_in_stored_order_skipping_assigned(self):
        """Already assigned transactions are skipped; order is preserved."""
        store = TransactionStore(
            [
                make_txn("2024-01-01", "A", assigned_category="Education"),
                make_txn("2024-01-02", "B"),
                make_txn("2024-01-03", "C"),
            ]
        )
        client = FakeClient()
        CategoryAssigner(client).assign_all(store)

        sent = [call[1]["content"] for call in client.calls]
        assert sent == ["B", "C"]
        assert store.find("2024-01-01", "A").assigned_category == "Education"

    def test_configurable_limit(self):
        """The cap is a parameter."""
        store = _unassigned_store(5)
        report = CategoryAssigner(FakeClient()).assign_all(store, limit=2)
        assert report.assigned == 2
        assert len(store.unassigned()) == 3

    def test_all_failing_leaves_store_unassigned(self, failing_client):
        """When every call fails the batch still returns normally."""
        store = _unassigned_store(4)
        report = CategoryAssigner(failing_client).assign_all(store)
        assert report.assigned == 0
        assert report.failed == 4
        assert len(store.unassigned()) == 4

    def test_empty_store(self):
        """Nothing to do means no calls."""
        client = FakeClient()
        report = CategoryAssigner(client).assign_all(TransactionStore())
        assert report.assigned == 0
        assert client.calls == []

    def test_pacer_waits_between_calls(self):
        """The pacer runs between consecutive calls, not after the last."""
        waits: list[float] = []
        pacer = FixedDelayPacer(0.1, sleep=waits.append)
        CategoryAssigner(FakeClient(), pacer=pacer).assign_all(_unassigned_store(4))
        assert waits == [0.1, 0.1, 0.1]

    def test_pacer_waits_after_failures_too(self, failing_client):
        """Failed calls are paced like successful ones."""
        waits: list[float] = []
        pacer = FixedDelayPacer(0.5, sleep=waits.append)
        CategoryAssigner(failing_client, pacer=pacer).assign_all(_unassigned_store(3))
        assert waits == [0.5, 0.5]


class TestPacers:
    """Tests for the pacing policies."""

    def test_zero_delay_does_not_sleep(self):
        """A zero delay never calls sleep."""
        waits: list[float] = []
        FixedDelayPacer(0, sleep=waits.append).wait()
        assert waits == []

    def test_no_pacing(self):
        """NoPacing returns immediately."""
        assert NoPacing().wait() is None
