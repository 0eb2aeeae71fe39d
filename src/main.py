"""CLI entry point for mileage ledger generation."""

from typing import Annotated

import typer
from pydantic import ValidationError

from ledger_generator import generate_and_persist
from mileage_pipeline.config import (
    DEFAULT_ACCOUNT_COUNT,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DAILY_TRANSACTION_MAX,
    DEFAULT_DAILY_TRANSACTION_MIN,
    DEFAULT_HORIZON_DAYS,
    DEFAULT_MAX_BALANCE,
    GenerationConfig,
)
from mileage_pipeline.db import DatabaseSession, MileageRepository
from mileage_pipeline.logging import configure_logging, get_logger
from mileage_pipeline.models import MileageEventType

app = typer.Typer(
    name="mileage-ledger-gen",
    help="Reconciled synthetic mileage ledger generation.",
    add_completion=False,
)

DatabaseUrlOption = Annotated[
    str | None,
    typer.Option("--database-url", envvar="DATABASE_URL", help="Database URL"),
]


@app.command()
def seed(
    accounts: Annotated[
        int,
        typer.Option("--accounts", "-a", help="Number of member accounts"),
    ] = DEFAULT_ACCOUNT_COUNT,
    max_balance: Annotated[
        int,
        typer.Option("--max-balance", help="Largest target balance"),
    ] = DEFAULT_MAX_BALANCE,
    days: Annotated[
        int,
        typer.Option("--days", "-d", help="Number of days of history, ending today"),
    ] = DEFAULT_HORIZON_DAYS,
    min_daily: Annotated[
        int,
        typer.Option("--min-daily", help="Minimum transactions per day"),
    ] = DEFAULT_DAILY_TRANSACTION_MIN,
    max_daily: Annotated[
        int,
        typer.Option("--max-daily", help="Maximum transactions per day"),
    ] = DEFAULT_DAILY_TRANSACTION_MAX,
    batch_size: Annotated[
        int,
        typer.Option("--batch-size", "-b", help="Batch size for database inserts"),
    ] = DEFAULT_BATCH_SIZE,
    seed_value: Annotated[
        int | None,
        typer.Option("--seed", "-s", help="Random seed for reproducibility"),
    ] = None,
    database_url: DatabaseUrlOption = None,
    drop_tables: Annotated[
        bool,
        typer.Option("--drop-tables", help="Drop existing tables before seeding"),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Output logs in JSON format"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
) -> None:
    """Generate member balances and a reconciled mileage history.

    Example:
        mileage-ledger-gen seed --accounts 1000 --days 7 --min-daily 500 --max-daily 2000
    """
    configure_logging(level="DEBUG" if verbose else "INFO", json_format=json_logs)
    log = get_logger("seed")

    try:
        config = GenerationConfig(
            account_count=accounts,
            max_balance=max_balance,
            horizon_days=days,
            daily_transaction_min=min_daily,
            daily_transaction_max=max_daily,
            batch_size=batch_size,
            seed=seed_value,
        )
    except ValidationError as e:
        log.error("Invalid generation options", error_count=e.error_count())
        raise typer.BadParameter(str(e)) from e

    try:
        summary = generate_and_persist(
            config,
            database_url=database_url,
            drop_tables=drop_tables,
            echo=verbose,
        )
    except Exception as e:
        log.error(
            "Database operation failed", error=str(e), error_type=type(e).__name__
        )
        raise typer.Exit(code=1) from e

    typer.echo(
        f"\nGenerated {summary.accounts} accounts and "
        f"{summary.total_events} history records "
        f"({summary.start_date} to {summary.end_date})"
    )
    typer.echo(f"  Organic events: {summary.organic_events}")
    typer.echo(f"  Adjustment events: {summary.adjustment_events}")
    typer.echo(f"  Elapsed: {summary.elapsed_seconds:.1f}s")


@app.command()
def init_db(
    database_url: DatabaseUrlOption = None,
    drop_tables: Annotated[
        bool,
        typer.Option("--drop-tables", help="Drop existing tables before creating"),
    ] = False,
) -> None:
    """Initialize the database schema without seeding data."""
    configure_logging()
    log = get_logger("init_db")

    log.info("Initializing database")
    db = DatabaseSession(database_url=database_url)

    if drop_tables:
        log.warning("Dropping existing tables")
        db.drop_tables()

    log.info("Creating tables")
    db.create_tables()

    log.info("Database initialization complete")
    typer.echo("Database initialized successfully")


@app.command()
def stats(database_url: DatabaseUrlOption = None) -> None:
    """Show statistics about the generated ledger."""
    configure_logging()
    log = get_logger("stats")

    db = DatabaseSession(database_url=database_url)
    with db.get_session() as session:
        repository = MileageRepository(session)
        account_count = repository.count_accounts()
        total_balance = repository.total_balance()
        by_kind = repository.history_totals_by_kind()

    history_count = sum(count for count, _ in by_kind.values())
    log.info(
        "Database statistics",
        accounts=account_count,
        history_records=history_count,
        total_balance=total_balance,
    )

    typer.echo("\nLedger Statistics:")
    typer.echo(f"  Accounts: {account_count}")
    typer.echo(f"  Total balance: {total_balance}")
    typer.echo(f"  History records: {history_count}")
    for kind, (count, amount) in sorted(by_kind.items()):
        typer.echo(f"  {kind}: {count} records, {amount} total")


@app.command()
def verify(
    database_url: DatabaseUrlOption = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum mismatches to list"),
    ] = 20,
) -> None:
    """Check that every account's history sums to its balance."""
    configure_logging()
    log = get_logger("verify")

    db = DatabaseSession(database_url=database_url)
    with db.get_session() as session:
        mismatches = MileageRepository(session).find_mismatched_balances()

    if not mismatches:
        log.info("Ledger is reconciled")
        typer.echo("All account balances match their history")
        return

    log.error("Ledger mismatches found", count=len(mismatches))
    typer.echo(f"{len(mismatches)} accounts do not match their history:")
    for member_id, balance, history_sum in mismatches[:limit]:
        typer.echo(f"  member {member_id}: balance={balance} history={history_sum}")
    raise typer.Exit(code=1)


@app.command()
def account(
    member_id: Annotated[int, typer.Argument(help="Member ID to look up")],
    kind: Annotated[
        MileageEventType | None,
        typer.Option("--kind", "-k", help="Only show history of this kind"),
    ] = None,
    database_url: DatabaseUrlOption = None,
) -> None:
    """Show one member's balance and mileage history."""
    configure_logging()

    db = DatabaseSession(database_url=database_url)
    with db.get_session() as session:
        repository = MileageRepository(session)
        found = repository.get_account(member_id)
        history = repository.get_history(member_id, kind=kind) if found else []

    if found is None:
        typer.echo(f"Member {member_id} not found", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Member {found.member_id}: balance {found.balance}")
    for event in history:
        typer.echo(
            f"  {event.occurred_at:%Y-%m-%d %H:%M:%S}  {event.kind.value:<6} "
            f"{event.amount:>8}  {event.description}"
        )


if __name__ == "__main__":
    app()
