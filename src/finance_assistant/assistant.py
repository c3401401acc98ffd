"""Service facade over the store, the parser and the completion client.

:class:`FinanceAssistant` is what an outer surface (the CLI, or a web
layer) talks to. It owns one :class:`~finance_assistant.store.TransactionStore`
and exposes the upload, assignment and chat operations against it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from finance_assistant.categorizer import (
    DEFAULT_BATCH_LIMIT,
    AssignmentReport,
    CategoryAssigner,
    Pacer,
)
from finance_assistant.errors import FormatError, ValidationError
from finance_assistant.llm import CompletionClient, normalize_messages
from finance_assistant.models import CategoryAssignment, Transaction, canonical_category
from finance_assistant.parsers import get_parser
from finance_assistant.prompts import CATEGORY_CHAT_PROMPT, build_transaction_context
from finance_assistant.splits import Number, format_split, validate_split
from finance_assistant.store import TransactionStore

logger = logging.getLogger(__name__)


class FinanceAssistant:
    """Upload, categorize and chat about one batch of transactions.

    Args:
        client: Completion client used for assignment and chat.
        store: Store to operate on. A fresh empty store by default.
        pacer: Pacing policy for batch assignment.
        batch_limit: Default cap for :meth:`assign_all`.
        parser: Function turning upload bytes into Transactions. Defaults
            to the registered default parser.
    """

    def __init__(
        self,
        client: CompletionClient,
        store: TransactionStore | None = None,
        pacer: Pacer | None = None,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        parser: Callable[[bytes], list[Transaction]] | None = None,
    ) -> None:
        self.client = client
        self.store = store if store is not None else TransactionStore()
        self.assigner = CategoryAssigner(client, pacer=pacer)
        self.batch_limit = batch_limit
        self.parser = parser or get_parser()

    def upload(self, raw: bytes) -> list[Transaction]:
        """Parse an uploaded export and replace the current batch with it.

        The store is untouched when parsing fails.

        Raises:
            FormatError: If the upload is empty or has no header row.
        """
        if not raw:
            raise FormatError("No file uploaded")
        transactions = self.parser(raw)
        self.store.replace(transactions)
        logger.info("Successfully parsed %d transactions", len(transactions))
        return transactions

    def assign_category(
        self, date: str, description: str, guidance: str = ""
    ) -> tuple[Transaction, CategoryAssignment]:
        """Assign a category to one transaction, guided by the user's text.

        Args:
            date: Transaction date as stored.
            description: Transaction description as stored.
            guidance: Free text sent to the model in place of the
                description. Blank guidance falls back to the description.

        Raises:
            NotFoundError: If no transaction matches.
            CompletionError: If the completion call fails.
            DecodeError: If the reply holds no category.
        """
        txn = self.store.get(date, description)
        prompt = guidance if guidance.strip() else txn.description
        logger.info("Requesting category assignment for: %s", prompt)
        assignment = self.assigner.assign(prompt)
        self.store.assign(txn, assignment.category)
        logger.info("Category assigned: %s", assignment.category)
        return txn, assignment

    def assign_split(
        self, date: str, description: str, amounts: Mapping[str, Number]
    ) -> Transaction:
        """Store a split across several categories after reconciling it.

        Raises:
            NotFoundError: If no transaction matches.
            ValidationError: If no category is given or the amounts do not
                sum to the transaction amount.
        """
        txn = self.store.get(date, description)
        if not amounts:
            raise ValidationError("Select at least one category")

        split: dict[str, Number] = {}
        for name, value in amounts.items():
            category = canonical_category(name)
            if category is None:
                raise ValidationError(f"Unknown category: {name!r}")
            split[category] = value

        try:
            error = validate_split(split, txn.amount_value())
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if error is not None:
            raise ValidationError(error)
        return self.store.assign(txn, format_split(split))

    def assign_all(self, limit: int | None = None) -> AssignmentReport:
        """Assign categories to the next unassigned transactions.

        Per-transaction failures are reported, never raised.
        """
        return self.assigner.assign_all(self.store, self.batch_limit if limit is None else limit)

    def chat(self, messages: list[dict], include_transactions: bool = True) -> str:
        """Continue a general conversation, optionally grounded in the batch.

        Raises:
            CompletionError: If the completion call fails.
        """
        conversation: list[dict] = []
        transactions = self.store.all()
        if include_transactions and transactions:
            conversation.append(
                {"role": "system", "content": build_transaction_context(transactions)}
            )
        conversation.extend(normalize_messages(messages))
        return self.client.complete(conversation)

    def category_chat(self, message: str) -> str:
        """Answer a question about how to categorize or split a transaction."""
        return self.client.complete(
            [
                {"role": "system", "content": CATEGORY_CHAT_PROMPT},
                {"role": "user", "content": message},
            ]
        )
