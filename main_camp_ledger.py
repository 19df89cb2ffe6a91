"""Mini README: Entry point CLI for inspecting the camp ledger.

This script exposes a Typer CLI over a seeded demo roster so operators can
check balances, the currency table, and the effect of a group expense
split. Logging follows the configured level and the currency table comes
from environment-aware settings.
"""

from __future__ import annotations

from typing import List, Optional

import typer

from juniorbank.configuration import get_settings
from juniorbank.currency import CurrencyCatalog, get_catalog
from juniorbank.errors import LedgerError
from juniorbank.ledger import LedgerService, build_demo_session, seed_demo_roster
from juniorbank.logging_utils import configure_root_logger, get_logger

cli = typer.Typer(help="Inspect balances and group expenses for a camp session.")


def _build_service() -> LedgerService:
    """Configure logging and return a ledger seeded with the demo roster."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    service = LedgerService(
        build_demo_session("demo-session"),
        catalog=get_catalog(),
        logger=get_logger("juniorbank.cli"),
    )
    seed_demo_roster(service)
    return service


def _echo_roster(service: LedgerService, filter_text: str = "") -> None:
    catalog: CurrencyCatalog = service.catalog
    for participant in service.list_participants(filter_text):
        primary = participant.primary_balance(catalog)
        rendered = primary.display(catalog) if primary else catalog.format_amount(0, catalog.base_currency)
        total = participant.total_balance_in_base(catalog)
        typer.echo(
            f"{participant.full_name:<24} {rendered:>10}   "
            f"~{total:.0f} {catalog.symbol_for(catalog.base_currency)}"
        )


@cli.command()
def roster(
    filter_text: Optional[str] = typer.Option(None, "--filter", help="Match first, last or full name."),
) -> None:
    """List the demo roster sorted by last name."""

    service = _build_service()
    typer.echo(service.session.display_label)
    _echo_roster(service, filter_text or "")


@cli.command()
def currencies() -> None:
    """Show configured currencies with symbol and rate into the base currency."""

    catalog = get_catalog()
    for code in catalog.codes:
        marker = " (base)" if catalog.is_base_currency(code) else ""
        typer.echo(f"{code} {catalog.symbol_for(code)} {catalog.rate_to_base(code):g}{marker}")


@cli.command()
def split(
    name: str = typer.Argument(..., help="Name of the shared expense."),
    total: float = typer.Argument(..., help="Total amount to split."),
    currency: str = typer.Argument(..., help="Currency code of the expense."),
    participant: List[str] = typer.Option(
        [], "--participant", "-p", help="Last name of a participant sharing the cost."
    ),
) -> None:
    """Split a group expense across demo participants and show the new balances."""

    service = _build_service()
    by_last_name = {entry.last_name.lower(): entry for entry in service.list_participants()}
    missing = [last_name for last_name in participant if last_name.lower() not in by_last_name]
    if missing:
        typer.echo(f"Unknown participants: {', '.join(missing)}", err=True)
        raise typer.Exit(code=1)

    participant_ids = [by_last_name[last_name.lower()].participant_id for last_name in participant]
    try:
        expense, _ = service.create_group_expense(name, total, currency.upper(), participant_ids)
    except LedgerError as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1) from error

    typer.echo(
        f"{expense.name}: {expense.total_amount:g} {expense.currency_code} split "
        f"{expense.participant_count} ways, {expense.amount_per_person:.2f} each"
    )
    for participant_id in expense.participant_ids:
        updated = service.get_participant(participant_id)
        balance = updated.balance_for(expense.currency_code)
        typer.echo(f"{updated.full_name:<24} {balance.display(service.catalog):>10}")


if __name__ == "__main__":
    cli()
