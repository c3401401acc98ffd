"""Core data models for Finance Assistant.

This module defines the dataclasses and the closed category set used
throughout the package. Apart from the amount parser it has no internal
imports -- everything depends on it, but it depends on almost nothing
within the package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from finance_assistant.amounts import parse_amount


class Category(str, Enum):
    """The closed set of budget categories a transaction can be assigned to."""

    BASIC_OUTCOMES = "Basic Outcomes"
    FINANCIAL_FREEDOM = "Financial Freedom"
    EMERGENCY_FUND = "Emergency Fund"
    EDUCATION = "Education"
    KIDS_EDUCATION = "Kids Education"
    PLEASURES = "Pleasures"


# Single source for the system prompt and for split parsing.
CATEGORY_NAMES: tuple[str, ...] = tuple(c.value for c in Category)

UNCATEGORIZED = "Uncategorized"


def canonical_category(value: str) -> str | None:
    """Return the canonical spelling of *value* if it names a known category.

    Matching is case-insensitive and ignores surrounding whitespace.

    Args:
        value: A category name as produced by a user or a model.

    Returns:
        The matching entry of :data:`CATEGORY_NAMES`, or ``None``.
    """
    wanted = value.strip().casefold()
    for name in CATEGORY_NAMES:
        if name.casefold() == wanted:
            return name
    return None


@dataclass
class Transaction:
    """A single transaction decoded from a bank export.

    Identity is the ``(date, description)`` pair; the source format has no
    stable row id.

    Attributes:
        date: Transaction date exactly as written in the export.
        description: Operation description from the export.
        account: Account label from the export.
        source_category: The bank's own category for the row.
        amount: The original textual amount, e.g. ``"-1 234,56"``. Kept as
            text so locale separators are never corrupted; use
            :meth:`amount_value` for arithmetic.
        assigned_category: Empty until set. Either a single category name
            or a ``"Category: amount, Category: amount"`` split string.
    """

    date: str
    description: str
    account: str = ""
    source_category: str = ""
    amount: str = ""
    assigned_category: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.date, self.description)

    def amount_value(self) -> Decimal:
        """Parse :attr:`amount` into a Decimal.

        Raises:
            ValueError: If the amount text is not a number.
        """
        return parse_amount(self.amount)

    def to_dict(self) -> dict[str, str]:
        return {
            "date": self.date,
            "description": self.description,
            "account": self.account,
            "source_category": self.source_category,
            "amount": self.amount,
            "assigned_category": self.assigned_category,
        }


@dataclass(frozen=True)
class CategoryAssignment:
    """The decoded LLM output for a single-category assignment.

    Attributes:
        rationale: The model's explanation, or a fixed note when the
            category had to be scraped from free text.
        category: A member of :data:`CATEGORY_NAMES`, or
            :data:`UNCATEGORIZED` when the model named something else.
        source: ``"json"`` when the response decoded as a JSON object,
            ``"text"`` when the line-scraping fallback recovered it.
        raw_category: The category string exactly as the model wrote it.
    """

    rationale: str
    category: str
    source: str = "json"
    raw_category: str = ""


@dataclass
class CsvLayout:
    """Where to find the header row and each column in a bank export.

    Attributes:
        header_anchor: Substring identifying the header line.
        marker: Stray character stripped from every header name.
        delimiter: Field delimiter.
        columns: Maps Transaction field names (``date``, ``description``,
            ``account``, ``category``, ``amount``) to header names.
    """

    header_anchor: str = "Data operacji"
    marker: str = "#"
    delimiter: str = ";"
    columns: dict[str, str] = field(
        default_factory=lambda: {
            "date": "Data operacji",
            "description": "Opis operacji",
            "account": "Rachunek",
            "category": "Kategoria",
            "amount": "Kwota",
        }
    )


@dataclass
class AppConfig:
    """Top-level application configuration loaded from finance.toml.

    Attributes:
        llm_provider: ``"openai"`` or ``"anthropic"``.
        llm_model: Model identifier sent with each completion request.
        llm_api_key_env: Name of the environment variable holding the key.
        llm_timeout: Per-request timeout in seconds.
        batch_limit: Maximum transactions assigned by one "assign all" run.
        delay_seconds: Pause between consecutive completion calls in a batch.
        parser: Name of the registered export parser.
        csv_layout: Header and column names of the bank export.
        output_dir: Directory for exported CSV files.
    """

    llm_provider: str = "openai"
    llm_model: str = "gpt-4"
    llm_api_key_env: str = "OPENAI_API_KEY"
    llm_timeout: float = 60.0
    batch_limit: int = 10
    delay_seconds: float = 0.1
    parser: str = "mbank"
    csv_layout: CsvLayout = field(default_factory=CsvLayout)
    output_dir: str = "output"
