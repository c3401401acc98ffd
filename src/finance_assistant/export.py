"""CSV export writer and categorization summary printer.

- :func:`export` writes the current batch, with its assigned categories,
  to a semicolon-delimited CSV.
- :func:`category_totals` and :func:`print_summary` report how the batch
  is spread across categories, counting each part of a split separately.
"""

from __future__ import annotations

import csv
from collections import defaultdict
from decimal import Decimal
from pathlib import Path

from finance_assistant.models import Transaction, canonical_category
from finance_assistant.splits import parse_split

CSV_COLUMNS = [
    "date",
    "description",
    "account",
    "source_category",
    "amount",
    "assigned_category",
]


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def export(transactions: list[Transaction], output_path: str | Path) -> Path:
    """Write *transactions* to *output_path* in stored order.

    Creates the parent directory if needed and overwrites an existing file.

    Returns:
        The :class:`~pathlib.Path` to the written CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, delimiter=";")
        writer.writeheader()
        for txn in transactions:
            writer.writerow(txn.to_dict())

    return output_path


# ---------------------------------------------------------------------------
# Summary printer
# ---------------------------------------------------------------------------


def category_totals(transactions: list[Transaction]) -> dict[str, Decimal]:
    """Sum amounts per assigned category.

    Split assignments contribute each component amount to its own
    category. Transactions whose amount cannot be read are skipped.
    """
    totals: defaultdict[str, Decimal] = defaultdict(Decimal)
    for txn in transactions:
        if not txn.assigned_category:
            continue
        split = parse_split(txn.assigned_category)
        if split:
            for name, amount in split.items():
                totals[name] += amount
            continue
        try:
            amount = txn.amount_value()
        except ValueError:
            continue
        name = canonical_category(txn.assigned_category) or txn.assigned_category
        totals[name] += amount
    return dict(totals)


def print_summary(transactions: list[Transaction]) -> None:
    """Print a human-readable categorization summary to stdout."""
    assigned = [t for t in transactions if t.assigned_category]
    unassigned_count = len(transactions) - len(assigned)
    pct = len(assigned) / len(transactions) * 100 if transactions else 0.0

    print()
    print("== Categorization Summary ==")
    print(f"Total:      {len(transactions)} transactions")
    print(f"Assigned:   {len(assigned)} / {len(transactions)} ({pct:.1f}%)")
    print(f"Unassigned: {unassigned_count}")

    totals = category_totals(transactions)
    if totals:
        print()
        print("By category:")
        for name, total in sorted(totals.items(), key=lambda pair: pair[1]):
            print(f"  {name + ':':<25} {total:,.2f}")

    print()
