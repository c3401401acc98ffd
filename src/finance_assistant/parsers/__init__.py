"""Bank export parsers, selected by the ``[csv] parser`` config key.

A parser is a ``parse(raw, layout=None)`` function turning upload bytes
into :class:`~finance_assistant.models.Transaction` objects. Only the
mBank-style semicolon layout ships today; other banks register here.
"""

from __future__ import annotations

import functools
from collections.abc import Callable

from finance_assistant.models import CsvLayout, Transaction
from finance_assistant.parsers import mbank

DEFAULT_PARSER = "mbank"

PARSERS: dict[str, Callable[..., list[Transaction]]] = {
    "mbank": mbank.parse,
}


def get_parser(
    name: str = DEFAULT_PARSER, layout: CsvLayout | None = None
) -> Callable[[bytes], list[Transaction]]:
    """Return the named parser, bound to *layout* when one is given.

    Raises:
        KeyError: If no parser is registered under *name*.
    """
    try:
        parse = PARSERS[name]
    except KeyError:
        raise KeyError(
            f"Unknown parser {name!r}; available: {', '.join(sorted(PARSERS))}"
        ) from None
    if layout is None:
        return parse
    return functools.partial(parse, layout=layout)
