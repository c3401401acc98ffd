"""Test doubles and builders shared by the test modules.

- FakeClient: a scripted stand-in for the completion provider that records
  every conversation it receives.
- json_reply: a well-formed JSON assignment reply.
- make_txn: a Transaction with sensible defaults.
"""

from __future__ import annotations

import json

from finance_assistant.models import Transaction


class FakeClient:
    """Completion client that replays scripted replies.

    Each entry of *replies* is returned in turn; an exception instance is
    raised instead of returned. When the script runs out, *default* is
    returned.
    """

    def __init__(
        self,
        replies: list | None = None,
        default: str | Exception | None = None,
    ) -> None:
        self.replies = list(replies or [])
        self.default = default if default is not None else json_reply("Basic Outcomes")
        self.calls: list[list[dict]] = []

    def complete(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        if self.replies:
            reply = self.replies.pop(0)
        else:
            reply = self.default
        if isinstance(reply, Exception):
            raise reply
        return reply


def json_reply(category: str, rationale: str = "test rationale") -> str:
    """Build a well-formed JSON assignment reply."""
    return json.dumps({"rationale": rationale, "category": category})


def make_txn(
    date: str,
    description: str,
    amount: str = "-10,00",
    assigned_category: str = "",
) -> Transaction:
    """Helper to build a Transaction with sensible defaults."""
    return Transaction(
        date=date,
        description=description,
        account="eKonto 1111 ... 2222",
        source_category="Inne",
        amount=amount,
        assigned_category=assigned_category,
    )
