"""mBank-style semicolon CSV parser.

The export starts with a variable-length preamble (account summary,
balances) before the real header line, whose column names carry a stray
``#`` prefix::

    #Data operacji;#Opis operacji;#Rachunek;#Kategoria;#Kwota;
    2024-01-05;"COFFEE SHOP";"eKonto 1234";"Jedzenie";-12,50 PLN;

Fields are looked up by header name, so reordered columns still parse.
Amounts are kept exactly as written; see :mod:`finance_assistant.amounts`.
"""

from __future__ import annotations

import csv
import io
import logging

from finance_assistant.errors import FormatError
from finance_assistant.models import CsvLayout, Transaction

logger = logging.getLogger(__name__)


def parse(raw: bytes | str, layout: CsvLayout | None = None) -> list[Transaction]:
    """Parse a bank export into Transactions.

    Args:
        raw: The uploaded file contents. Bytes are decoded as UTF-8 (with
            or without BOM), falling back to cp1250.
        layout: Header anchor, marker, delimiter and column names. Defaults
            to the mBank layout.

    Returns:
        One Transaction per non-blank line after the header, in file order,
        each with an empty ``assigned_category``.

    Raises:
        FormatError: If no line contains the header anchor, or a row cannot
            be read as delimited text.
    """
    layout = layout or CsvLayout()
    lines = _decode(raw).splitlines()

    header_index = _find_header(lines, layout.header_anchor)
    if header_index is None:
        raise FormatError("Could not find transaction headers in the CSV file")
    logger.debug("Header found on line %d", header_index)

    header = lines[header_index]
    if layout.marker:
        header = header.replace(layout.marker, "")
    body = [line for line in lines[header_index + 1 :] if line.strip()]
    table = "\n".join([header, *body])

    reader = csv.DictReader(io.StringIO(table), delimiter=layout.delimiter)
    reader.fieldnames = [name.strip() for name in reader.fieldnames or []]

    columns = layout.columns
    transactions: list[Transaction] = []
    try:
        for row in reader:
            transactions.append(
                Transaction(
                    date=_field(row, columns.get("date")),
                    description=_field(row, columns.get("description")),
                    account=_field(row, columns.get("account")),
                    source_category=_field(row, columns.get("category")),
                    amount=_field(row, columns.get("amount")),
                )
            )
    except csv.Error as exc:
        raise FormatError(f"Malformed row {reader.line_num}: {exc}") from exc

    logger.debug("Parsed %d transactions", len(transactions))
    return transactions


def _decode(raw: bytes | str) -> str:
    """Decode upload bytes, trying UTF-8 before the Windows Central European code page."""
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("Upload is not UTF-8, decoding as cp1250")
        return raw.decode("cp1250")


def _find_header(lines: list[str], anchor: str) -> int | None:
    for index, line in enumerate(lines):
        if anchor in line:
            return index
    return None


def _field(row: dict, name: str | None) -> str:
    """Return a stripped field value, or "" for absent columns and short rows."""
    if not name:
        return ""
    return (row.get(name) or "").strip()
