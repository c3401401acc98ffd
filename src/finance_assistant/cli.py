"""Click CLI entry point for the finance command.

Handles argument parsing, config loading, and error display. All business
logic is delegated to ``assistant``, ``config``, ``parsers`` and ``export``.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from finance_assistant import __version__
from finance_assistant.errors import FinanceAssistantError
from finance_assistant.models import AppConfig

_PROVIDER_DEFAULTS = {
    "openai": ("gpt-4", "OPENAI_API_KEY"),
    "anthropic": ("claude-sonnet-4-20250514", "ANTHROPIC_API_KEY"),
}

_EXIT_WORDS = {"exit", "quit"}


def _configure_logging(verbose: bool, debug: bool) -> None:
    """Set up logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _load_config_or_exit() -> AppConfig:
    from finance_assistant.config import load_config

    try:
        return load_config(Path.cwd())
    except FileNotFoundError as exc:
        click.echo(
            f"Error: {exc}. Run 'finance init' to create the project structure.",
            err=True,
        )
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error loading configuration: {exc}", err=True)
        sys.exit(1)


def _build_assistant(config: AppConfig):
    from finance_assistant.assistant import FinanceAssistant
    from finance_assistant.categorizer import FixedDelayPacer
    from finance_assistant.llm import build_adapter

    try:
        client = build_adapter(config)
    except KeyError:
        click.echo(f"Error: unknown LLM provider {config.llm_provider!r}", err=True)
        sys.exit(1)

    return FinanceAssistant(
        client=client,
        pacer=FixedDelayPacer(config.delay_seconds),
        batch_limit=config.batch_limit,
        parser=_parser_or_exit(config),
    )


def _parser_or_exit(config: AppConfig):
    from finance_assistant.parsers import get_parser

    try:
        return get_parser(config.parser, layout=config.csv_layout)
    except KeyError as exc:
        click.echo(f"Error: {exc.args[0]}", err=True)
        sys.exit(1)


def _upload_or_exit(assistant, file: str) -> None:
    raw = Path(file).read_bytes()
    try:
        assistant.upload(raw)
    except FinanceAssistantError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="finance-assistant")
def cli() -> None:
    """Categorize bank transactions into budget categories and chat about them."""


@cli.command()
@click.option(
    "--dir", "target_dir", default=".", type=click.Path(), help="Directory to initialize."
)
@click.option(
    "--provider",
    type=click.Choice(sorted(_PROVIDER_DEFAULTS)),
    default=None,
    help="LLM provider to configure.",
)
def init(target_dir: str, provider: str | None) -> None:
    """Initialize a new data directory with the default configuration."""
    from finance_assistant.config import initialize, load_config, save_config

    target = Path(target_dir).resolve()

    try:
        initialize(target)
        if provider is not None:
            config = load_config(target)
            config.llm_provider = provider
            config.llm_model, config.llm_api_key_env = _PROVIDER_DEFAULTS[provider]
            save_config(target, config)
    except Exception as exc:
        click.echo(f"Error initializing project: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Initialized finance assistant project in {target}")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--verbose", is_flag=True, default=False, help="Detailed progress output.")
@click.option("--debug", is_flag=True, default=False, help="Developer-level diagnostics.")
def parse(file: str, verbose: bool, debug: bool) -> None:
    """Parse a bank export and list its transactions."""
    _configure_logging(verbose, debug)
    config = _load_config_or_exit()

    from finance_assistant.errors import FormatError

    parse_export = _parser_or_exit(config)
    try:
        transactions = parse_export(Path(file).read_bytes())
    except FormatError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    for txn in transactions:
        click.echo(f"{txn.date:<12} {txn.amount:>14}  {txn.description}")
    click.echo(f"{len(transactions)} transactions")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--limit", type=int, default=None, help="Maximum transactions to assign.")
@click.option("--output", "output_path", type=click.Path(), default=None, help="Output CSV path.")
@click.option("--verbose", is_flag=True, default=False, help="Detailed progress output.")
@click.option("--debug", is_flag=True, default=False, help="Developer-level diagnostics.")
def categorize(
    file: str, limit: int | None, output_path: str | None, verbose: bool, debug: bool
) -> None:
    """Assign categories to a bank export and write the result."""
    _configure_logging(verbose, debug)
    config = _load_config_or_exit()
    assistant = _build_assistant(config)
    _upload_or_exit(assistant, file)

    if verbose:
        click.echo(f"Using LLM: {config.llm_provider} ({config.llm_model})")

    report = assistant.assign_all(limit)
    for message in report.errors:
        click.echo(f"Warning: {message}", err=True)

    from finance_assistant.export import export, print_summary

    if output_path is None:
        output_path = str(Path.cwd() / config.output_dir / f"{Path(file).stem}-categorized.csv")
    try:
        written = export(assistant.store.all(), output_path)
    except OSError as exc:
        click.echo(f"Error writing output: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Assigned {report.assigned}, failed {report.failed}. Wrote {written}")
    print_summary(assistant.store.all())


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--date", "txn_date", required=True, help="Transaction date as in the export.")
@click.option("--description", required=True, help="Transaction description as in the export.")
@click.option("--guidance", default="", help="Free-text hint sent to the model.")
@click.option(
    "--split",
    "splits",
    multiple=True,
    metavar="CATEGORY=AMOUNT",
    help="Allocate part of the amount to a category. Repeatable.",
)
def assign(file: str, txn_date: str, description: str, guidance: str, splits: tuple) -> None:
    """Assign one transaction to a category, or split it across several."""
    _configure_logging(verbose=False, debug=False)
    config = _load_config_or_exit()
    assistant = _build_assistant(config)
    _upload_or_exit(assistant, file)

    try:
        if splits:
            amounts = _parse_split_options(splits)
            txn = assistant.assign_split(txn_date, description, amounts)
        else:
            txn, assignment = assistant.assign_category(txn_date, description, guidance)
            if assignment.rationale:
                click.echo(f"Rationale: {assignment.rationale}")
    except FinanceAssistantError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"{txn.date} {txn.description}: {txn.assigned_category}")


def _parse_split_options(splits: tuple) -> dict[str, str]:
    amounts: dict[str, str] = {}
    for item in splits:
        if "=" not in item:
            raise click.BadParameter(
                f"Expected CATEGORY=AMOUNT, got {item!r}", param_hint="--split"
            )
        name, value = item.split("=", 1)
        amounts[name.strip()] = value.strip()
    return amounts


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--no-transactions",
    is_flag=True,
    default=False,
    help="Do not send the transaction list as context.",
)
@click.option(
    "--categories",
    is_flag=True,
    default=False,
    help="Ask for help choosing or splitting categories. Each question stands alone.",
)
def chat(file: str, no_transactions: bool, categories: bool) -> None:
    """Chat about the transactions in a bank export.

    With --categories every message goes to the category helper instead,
    without the transaction list or earlier turns.
    """
    _configure_logging(verbose=False, debug=False)
    config = _load_config_or_exit()
    assistant = _build_assistant(config)
    _upload_or_exit(assistant, file)

    click.echo(f"Loaded {len(assistant.store)} transactions. Type 'exit' to quit.")
    history: list[dict] = []
    while True:
        message = click.prompt("you", prompt_suffix="> ")
        if message.strip().lower() in _EXIT_WORDS:
            break
        if categories:
            try:
                click.echo(assistant.category_chat(message))
            except FinanceAssistantError as exc:
                click.echo(f"Error: {exc}", err=True)
            continue

        history.append({"role": "user", "content": message})
        try:
            reply = assistant.chat(history, include_transactions=not no_transactions)
        except FinanceAssistantError as exc:
            history.pop()
            click.echo(f"Error: {exc}", err=True)
            continue
        history.append({"role": "assistant", "content": reply})
        click.echo(reply)
