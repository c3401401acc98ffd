"""Category assignment: request, two-stage decoding, and batch workflow.

A single assignment sends the fixed system prompt plus the transaction
description (or the user's free-text guidance) to a completion client and
decodes the reply in two stages:

1. **Strict JSON** -- the whole reply is parsed as a JSON object carrying
   ``rationale`` and ``category``.
2. **Text fallback** -- only when the reply is not a JSON object (invalid
   JSON, or an array or string), the first line mentioning "category" is
   scraped for whatever follows its last colon.

Either way the recovered string is checked against the closed category set
and anything outside it becomes ``Uncategorized``.

Batch assignment walks the store's unassigned transactions in order, up to
a limit, one call at a time with a pacing policy between calls. A failure
on one transaction is logged and the batch moves on.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from finance_assistant.errors import CompletionError, DecodeError
from finance_assistant.llm import CompletionClient
from finance_assistant.models import UNCATEGORIZED, CategoryAssignment, canonical_category
from finance_assistant.prompts import CATEGORY_ASSIGNMENT_PROMPT
from finance_assistant.store import TransactionStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 10
TEXT_FALLBACK_RATIONALE = "Category extracted from text response"

# Characters stripped around a scraped category value.
_STRIP_CHARS = "\"' ,}\t"


# ---------------------------------------------------------------------------
# Pacing policies
# ---------------------------------------------------------------------------


class Pacer(Protocol):
    """Waits between consecutive completion calls in a batch."""

    def wait(self) -> None: ...


class NoPacing:
    """Pacer that never waits."""

    def wait(self) -> None:
        return None


class FixedDelayPacer:
    """Pacer that sleeps for a fixed delay.

    Args:
        delay_seconds: Seconds to wait between calls.
        sleep: Sleep function, defaulting to :func:`time.sleep`.
    """

    def __init__(
        self, delay_seconds: float, sleep: Callable[[float], None] | None = None
    ) -> None:
        self.delay_seconds = delay_seconds
        self._sleep = sleep or time.sleep

    def wait(self) -> None:
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class NotAnObjectError(DecodeError):
    """The reply is valid JSON but not an object, so it is not an assignment."""


def decode_json(text: str) -> CategoryAssignment:
    """Strictly decode a JSON object reply.

    Accepts ``rationale`` or the older ``_thoughts`` key for the rationale.

    Raises:
        json.JSONDecodeError: If *text* is not valid JSON.
        NotAnObjectError: If the JSON is valid but not an object.
        DecodeError: If the object has no category.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise NotAnObjectError("Failed to deserialize category assignment")
    category = data.get("category")
    if category is None:
        raise DecodeError("Category assignment is missing the 'category' field")
    rationale = data.get("rationale", data.get("_thoughts", ""))
    return _resolve(str(category), str(rationale or ""), source="json")


def decode_text(text: str) -> CategoryAssignment:
    """Scrape a category out of a free-text reply.

    Takes the first line mentioning "category" (any case), keeps what
    follows its last colon, and strips quotes, whitespace, commas and
    closing braces.

    Raises:
        DecodeError: If no line mentions a category or nothing is left.
    """
    for line in text.splitlines():
        if "category" in line.lower():
            value = line.split(":")[-1].strip(_STRIP_CHARS)
            if not value:
                break
            return _resolve(value, TEXT_FALLBACK_RATIONALE, source="text")
    raise DecodeError("Could not extract category from response")


def decode_assignment(text: str) -> CategoryAssignment:
    """Decode a reply, falling back to text scraping when it is not a JSON object."""
    try:
        return decode_json(text)
    except (json.JSONDecodeError, NotAnObjectError):
        logger.debug("Reply is not a JSON object, trying text fallback")
        return decode_text(text)


def _resolve(raw: str, rationale: str, source: str) -> CategoryAssignment:
    category = canonical_category(raw)
    if category is None:
        logger.warning("Model returned unknown category %r, using %s", raw, UNCATEGORIZED)
        category = UNCATEGORIZED
    return CategoryAssignment(
        rationale=rationale,
        category=category,
        source=source,
        raw_category=raw,
    )


# ---------------------------------------------------------------------------
# Assigner
# ---------------------------------------------------------------------------


@dataclass
class AssignmentReport:
    """Outcome of one batch run.

    Attributes:
        assigned: Number of transactions that received a category.
        failed: Number of transactions whose assignment failed.
        errors: One message per failure, prefixed with the description.
    """

    assigned: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class CategoryAssigner:
    """Assigns categories through a completion client.

    Args:
        client: Any object implementing ``complete(messages) -> str``.
        pacer: Pacing policy for batch runs. Default: no pacing.
    """

    def __init__(self, client: CompletionClient, pacer: Pacer | None = None) -> None:
        self.client = client
        self.pacer = pacer or NoPacing()

    def assign(self, description: str) -> CategoryAssignment:
        """Ask the model for the category of one description.

        Args:
            description: The transaction description, or the user's
                guidance when categorizing with help.

        Raises:
            CompletionError: If the completion call fails.
            DecodeError: If no category can be recovered from the reply.
        """
        messages = [
            {"role": "system", "content": CATEGORY_ASSIGNMENT_PROMPT},
            {"role": "user", "content": description},
        ]
        text = self.client.complete(messages)
        if not text or not text.strip():
            raise DecodeError("Empty response from completion provider")
        return decode_assignment(text)

    def assign_all(
        self,
        store: TransactionStore,
        limit: int = DEFAULT_BATCH_LIMIT,
    ) -> AssignmentReport:
        """Assign categories to up to *limit* unassigned transactions.

        Transactions are processed in stored order, sequentially. A
        ``CompletionError`` or ``DecodeError`` on one transaction is logged
        and recorded in the report; the batch continues with the next.

        Args:
            store: The store holding the current batch.
            limit: Maximum number of transactions to attempt.

        Returns:
            An :class:`AssignmentReport`. The store holds whatever state
            the run reached.
        """
        report = AssignmentReport()
        pending = store.unassigned(limit)
        logger.info("Processing %d unassigned transactions", len(pending))

        for index, txn in enumerate(pending):
            try:
                assignment = self.assign(txn.description)
            except (CompletionError, DecodeError) as exc:
                logger.warning("Error auto-assigning category for %r: %s", txn.description, exc)
                report.failed += 1
                report.errors.append(f"{txn.description}: {exc}")
            else:
                store.assign(txn, assignment.category)
                report.assigned += 1
                logger.info("Assigned %r -> %s", txn.description, assignment.category)

            if index < len(pending) - 1:
                self.pacer.wait()

        return report
