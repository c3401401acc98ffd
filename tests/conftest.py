"""Shared pytest fixtures for Finance Assistant tests.

Provides reusable fixtures for:
- sample_csv_bytes / sample_transactions: a realistic bank export with a
  preamble, and the Transactions it decodes to.
- store: a TransactionStore loaded with sample_transactions.
- failing_client: a FakeClient whose every call fails.
- tmp_project_dir: a temporary directory with a default finance.toml.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import FakeClient

from finance_assistant.config import initialize
from finance_assistant.errors import CompletionError
from finance_assistant.models import Transaction
from finance_assistant.store import TransactionStore

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the tests/fixtures/ directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_csv_path() -> Path:
    """Path to the sample bank export."""
    return FIXTURES_DIR / "mbank_sample.csv"


@pytest.fixture
def sample_csv_bytes(sample_csv_path: Path) -> bytes:
    """Raw bytes of the sample bank export."""
    return sample_csv_path.read_bytes()


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """The five transactions contained in the sample export."""
    return [
        Transaction(
            date="2024-01-05",
            description="COFFEE SHOP",
            account="eKonto 1111 ... 2222",
            source_category="Jedzenie poza domem",
            amount="-12,50 PLN",
        ),
        Transaction(
            date="2024-01-06",
            description="BIEDRONKA 1234 WARSZAWA",
            account="eKonto 1111 ... 2222",
            source_category="Żywność i chemia domowa",
            amount="-187,34 PLN",
        ),
        Transaction(
            date="2024-01-10",
            description="SZKOLA JEZYKOWA OPLATA",
            account="eKonto 1111 ... 2222",
            source_category="Edukacja",
            amount="-450,00 PLN",
        ),
        Transaction(
            date="2024-01-15",
            description="WYNAGRODZENIE STYCZEN",
            account="eKonto 1111 ... 2222",
            source_category="Wpływy",
            amount="5 000,00 PLN",
        ),
        Transaction(
            date="2024-01-20",
            description="KINO HELIOS",
            account="eKonto 1111 ... 2222",
            source_category="Rozrywka",
            amount="-54,36 PLN",
        ),
    ]


@pytest.fixture
def store(sample_transactions: list[Transaction]) -> TransactionStore:
    """A store holding the sample transactions."""
    return TransactionStore(sample_transactions)


@pytest.fixture
def failing_client() -> FakeClient:
    """A client whose every call fails."""
    return FakeClient(default=CompletionError("provider unavailable"))


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """A temporary project root containing the default finance.toml."""
    project = tmp_path / "finance-project"
    initialize(project)
    return project
