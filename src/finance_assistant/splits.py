"""Splitting one transaction's amount across several categories.

A split is stored on the transaction as ``"Category: amount, Category:
amount"`` with two-decimal amounts, and parsed back into a mapping when a
split transaction is reopened. The allocations must sum to the transaction
amount within one cent before the split can be confirmed.

All arithmetic is done in Decimal; numbers and numeric strings are accepted
wherever an amount is expected.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from finance_assistant.amounts import TWO_PLACES, format_amount, parse_amount
from finance_assistant.errors import ValidationError
from finance_assistant.models import CATEGORY_NAMES, canonical_category

TOLERANCE = Decimal("0.01")

Number = int | float | str | Decimal


def validate_split(amounts: Mapping[str, Number], total: Number) -> str | None:
    """Check that per-category amounts reconcile with the transaction total.

    Args:
        amounts: Category name to allocated amount.
        total: The transaction amount.

    Returns:
        ``None`` when the sum is within one cent of *total*, otherwise a
        message naming the sum, the total and each allocation, all to two
        decimals.
    """
    allocations = {name: parse_amount(value) for name, value in amounts.items()}
    expected = parse_amount(total)
    actual = sum(allocations.values(), Decimal("0"))
    if abs(actual - expected) <= TOLERANCE:
        return None
    detail = ", ".join(f"{name}: {format_amount(value)}" for name, value in allocations.items())
    message = (
        f"Sum of amounts ({format_amount(actual)}) must equal "
        f"transaction amount ({format_amount(expected)})"
    )
    if detail:
        message += f": {detail}"
    return message


def equal_split(categories: Iterable[str], total: Number) -> dict[str, Decimal]:
    """Divide *total* evenly across *categories*.

    Shares are rounded to cents; the last category absorbs the rounding
    remainder so the split always reconciles exactly.
    """
    names = list(categories)
    if not names:
        return {}
    amount = parse_amount(total)
    share = (amount / len(names)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    split = {name: share for name in names[:-1]}
    split[names[-1]] = amount - share * (len(names) - 1)
    return split


def format_split(amounts: Mapping[str, Number]) -> str:
    """Render a split as ``"Category: 12.50, Category: 7.50"``."""
    return ", ".join(
        f"{name}: {format_amount(parse_amount(value))}" for name, value in amounts.items()
    )


def parse_split(text: str) -> dict[str, Decimal]:
    """Parse a stored split string back into a mapping.

    Entries naming a category outside the closed set, and entries without
    a readable amount, are skipped.
    """
    result: dict[str, Decimal] = {}
    if not text:
        return result
    for entry in text.split(", "):
        if ": " not in entry:
            continue
        name, amount_text = entry.split(": ", 1)
        if name not in CATEGORY_NAMES:
            continue
        try:
            result[name] = parse_amount(amount_text)
        except ValueError:
            continue
    return result


class SplitEditor:
    """Interactive state for assigning one transaction to several categories.

    Toggling a category redistributes the total evenly across the current
    selection; amounts can then be edited one by one. Every change re-runs
    :func:`validate_split` and keeps the result in :attr:`error`.

    Args:
        total: The transaction amount.
        amounts: Initial allocations, e.g. from :func:`parse_split`.
    """

    def __init__(self, total: Number, amounts: Mapping[str, Number] | None = None) -> None:
        self.total = parse_amount(total)
        self.amounts: dict[str, Decimal] = {
            name: parse_amount(value) for name, value in (amounts or {}).items()
        }
        self.error: str | None = None
        if self.amounts:
            self._revalidate()

    @classmethod
    def from_assignment(cls, total: Number, assigned: str) -> SplitEditor:
        """Reopen a stored assignment.

        A split string is parsed into its allocations; a bare category name
        is treated as the whole total going to that category.
        """
        amounts: dict[str, Decimal] = parse_split(assigned)
        if not amounts and assigned:
            name = canonical_category(assigned)
            if name is not None:
                amounts = {name: parse_amount(total)}
        return cls(total, amounts)

    @property
    def selected(self) -> list[str]:
        return list(self.amounts)

    @property
    def can_confirm(self) -> bool:
        return bool(self.amounts) and self.error is None

    def toggle(self, category: str) -> None:
        """Select or deselect *category* and split the total evenly.

        Raises:
            ValidationError: If *category* is not in the closed set.
        """
        name = canonical_category(category)
        if name is None:
            raise ValidationError(f"Unknown category: {category!r}")
        selected = self.selected
        if name in selected:
            selected.remove(name)
        else:
            selected.append(name)
        self.amounts = equal_split(selected, self.total)
        self._revalidate()

    def set_amount(self, category: str, value: Number) -> None:
        """Hand-edit the amount of a selected category.

        Unreadable input counts as zero, as a cleared field would.

        Raises:
            ValidationError: If *category* is not currently selected.
        """
        name = canonical_category(category)
        if name is None or name not in self.amounts:
            raise ValidationError(f"Category is not selected: {category!r}")
        try:
            self.amounts[name] = parse_amount(value)
        except ValueError:
            self.amounts[name] = Decimal("0")
        self._revalidate()

    def confirm(self) -> str:
        """Return the split in its stored string form.

        Raises:
            ValidationError: If nothing is selected or the amounts do not
                reconcile.
        """
        if not self.amounts:
            raise ValidationError("Select at least one category")
        if self.error is not None:
            raise ValidationError(self.error)
        return format_split(self.amounts)

    def _revalidate(self) -> None:
        self.error = validate_split(self.amounts, self.total) if self.amounts else None
