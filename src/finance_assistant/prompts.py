"""Fixed prompts sent to the completion provider.

The category list is rendered from :data:`~finance_assistant.models.CATEGORY_NAMES`
so the prompts and the split editor always offer the same closed set.
"""

from __future__ import annotations

from finance_assistant.models import CATEGORY_NAMES, Transaction

_CATEGORY_LINES = "\n".join(f"- {name}" for name in CATEGORY_NAMES)

CATEGORY_ASSIGNMENT_PROMPT = (
    "You are a helpful assistant that categorizes financial transactions.\n"
    "Given a transaction description, assign it to one of the following categories:\n"
    f"{_CATEGORY_LINES}\n"
    "\n"
    "Respond with a JSON object containing your rationale for the categorization "
    "and the final category assignment, like this:\n"
    "{\n"
    '  "rationale": "This transaction appears to be for groceries which is a basic necessity",\n'
    '  "category": "Basic Outcomes"\n'
    "}"
)

CATEGORY_CHAT_PROMPT = (
    "You are a helpful assistant that helps users categorize their transactions. "
    f"Available categories are: {', '.join(CATEGORY_NAMES)}. "
    "You can also help split transactions between multiple categories. "
    "Keep responses concise and focused on category assignment."
)


def build_transaction_context(transactions: list[Transaction], currency: str = "PLN") -> str:
    """Render the loaded batch as a system message for general chat.

    Args:
        transactions: The current batch.
        currency: Currency label appended to each amount.

    Returns:
        One line per transaction under a short preamble.
    """
    lines = ["You have access to the following transactions:"]
    for txn in transactions:
        amount = txn.amount if currency in txn.amount else f"{txn.amount} {currency}"
        line = f"- {txn.date} {txn.description}: {amount} ({txn.source_category})"
        if txn.assigned_category:
            line += f" [assigned: {txn.assigned_category}]"
        lines.append(line)
    return "\n".join(lines)
