"""Configuration loading, writing, and project initialization.

Reads ``finance.toml`` using stdlib ``tomllib`` and writes it using
``tomli_w``.  Depends only on ``models.py``.
"""

from __future__ import annotations

import sys
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from finance_assistant.models import AppConfig, CsvLayout

CONFIG_FILENAME = "finance.toml"

# ---------------------------------------------------------------------------
# Default file content
# ---------------------------------------------------------------------------

_DEFAULT_CONFIG_TOML = """\
# Finance Assistant configuration

[general]
output_dir = "output"

[llm]
provider = "openai"                # "openai" or "anthropic"
model = "gpt-4"
api_key_env = "OPENAI_API_KEY"     # Name of env var containing the API key
timeout_seconds = 60.0

[assignment]
batch_limit = 10                   # Transactions per "assign all" run
delay_seconds = 0.1                # Pause between completion calls

[csv]
parser = "mbank"                   # Export format, see finance_assistant.parsers
header_anchor = "Data operacji"    # Substring identifying the header line
marker = "#"                       # Stripped from header names
delimiter = ";"

[csv.columns]
date = "Data operacji"
description = "Opis operacji"
account = "Rachunek"
category = "Kategoria"
amount = "Kwota"
"""

# Directories that ``initialize`` creates.
_INIT_DIRS = [
    "output",
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(root: Path) -> AppConfig:
    """Load ``finance.toml`` from *root* and return an :class:`AppConfig`.

    Keys missing from the file take their defaults.

    Args:
        root: Project root directory containing ``finance.toml``.

    Returns:
        A fully-populated :class:`AppConfig` instance.

    Raises:
        FileNotFoundError: If ``finance.toml`` does not exist.
    """
    data = _read_toml(Path(root) / CONFIG_FILENAME)
    defaults = AppConfig()

    general = data.get("general", {})
    llm = data.get("llm", {})
    assignment = data.get("assignment", {})
    csv_section = data.get("csv", {})

    default_layout = defaults.csv_layout
    columns = dict(default_layout.columns)
    columns.update(csv_section.get("columns", {}))

    layout = CsvLayout(
        header_anchor=csv_section.get("header_anchor", default_layout.header_anchor),
        marker=csv_section.get("marker", default_layout.marker),
        delimiter=csv_section.get("delimiter", default_layout.delimiter),
        columns=columns,
    )

    return AppConfig(
        llm_provider=llm.get("provider", defaults.llm_provider),
        llm_model=llm.get("model", defaults.llm_model),
        llm_api_key_env=llm.get("api_key_env", defaults.llm_api_key_env),
        llm_timeout=float(llm.get("timeout_seconds", defaults.llm_timeout)),
        batch_limit=int(assignment.get("batch_limit", defaults.batch_limit)),
        delay_seconds=float(assignment.get("delay_seconds", defaults.delay_seconds)),
        parser=csv_section.get("parser", defaults.parser),
        csv_layout=layout,
        output_dir=general.get("output_dir", defaults.output_dir),
    )


def save_config(root: Path, config: AppConfig) -> Path:
    """Write *config* to ``finance.toml`` in *root*, replacing the file.

    Comments in an existing file are not preserved.

    Returns:
        The path written.
    """
    layout = config.csv_layout
    data = {
        "general": {"output_dir": config.output_dir},
        "llm": {
            "provider": config.llm_provider,
            "model": config.llm_model,
            "api_key_env": config.llm_api_key_env,
            "timeout_seconds": config.llm_timeout,
        },
        "assignment": {
            "batch_limit": config.batch_limit,
            "delay_seconds": config.delay_seconds,
        },
        "csv": {
            "parser": config.parser,
            "header_anchor": layout.header_anchor,
            "marker": layout.marker,
            "delimiter": layout.delimiter,
            "columns": dict(layout.columns),
        },
    }
    path = Path(root) / CONFIG_FILENAME
    path.write_text(tomli_w.dumps(data), encoding="utf-8")
    return path


def initialize(target_dir: Path) -> None:
    """Create the standard directory structure and the default config file.

    Idempotent: existing directories are left alone and an existing
    ``finance.toml`` is **not** overwritten.

    Args:
        target_dir: The directory in which to create the project structure.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    for d in _INIT_DIRS:
        (target_dir / d).mkdir(parents=True, exist_ok=True)

    _write_if_missing(target_dir / CONFIG_FILENAME, _DEFAULT_CONFIG_TOML)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_toml(path: Path) -> dict:
    """Read and parse a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _write_if_missing(path: Path, content: str) -> None:
    """Write *content* to *path* only if the file does not already exist."""
    if not path.exists():
        path.write_text(content, encoding="utf-8")
