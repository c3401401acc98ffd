"""Exception classes for Finance Assistant."""


class FinanceAssistantError(Exception):
    """Base exception for Finance Assistant."""


class FormatError(FinanceAssistantError):
    """The uploaded CSV has no recognizable header or a row cannot be read."""


class CompletionError(FinanceAssistantError):
    """The completion provider failed: network, auth, quota or timeout."""


class DecodeError(FinanceAssistantError):
    """A completion response could not be interpreted as a category."""


class ValidationError(FinanceAssistantError):
    """Split amounts do not reconcile with the transaction amount."""


class NotFoundError(FinanceAssistantError):
    """No transaction matches the requested date and description."""
