#!/usr/bin/env python3
"""
Command-line interface for Paranoia Toolkit.

Provides inspection, restoration and purging of soft-deleted rows. Models are
given as ``package.module:ClassName`` and must be enrolled in soft delete.
"""

import importlib
import sys
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__
from .config import get_config
from .soft_delete import (
    SoftDeleteError,
    controller_for,
    find_deleted,
    is_soft_delete_enabled,
    only_deleted,
    restore,
)

console = Console()


def load_model(path: str) -> type:
    """Import an enrolled model from ``module:ClassName``."""
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise click.BadParameter(f"Expected 'module:ClassName', got '{path}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import module '{module_name}': {e}")

    model = getattr(module, class_name, None)
    if not isinstance(model, type):
        raise click.BadParameter(f"'{class_name}' not found in '{module_name}'")
    if not is_soft_delete_enabled(model):
        raise click.BadParameter(f"{class_name} is not enrolled in soft delete")
    return model


def convert_ids(model: type, raw_ids: List[str]) -> List[Any]:
    """Convert command-line IDs to the primary key's Python type."""
    pk = inspect(model).primary_key[0]
    try:
        python_type = pk.type.python_type
    except NotImplementedError:
        return list(raw_ids)
    if python_type is int:
        try:
            return [int(raw_id) for raw_id in raw_ids]
        except ValueError:
            raise click.BadParameter(f"{model.__name__} IDs must be integers")
    return list(raw_ids)


@contextmanager
def open_session(database_url: Optional[str]) -> Iterator[Session]:
    """Yield a session on a fresh engine, disposing the engine afterwards."""
    url = database_url or get_config().database_url
    if not url:
        console.print(
            "[red]No database configured. "
            "Use --database-url or set PARANOIA_DATABASE_URL.[/red]"
        )
        sys.exit(1)
    engine = create_engine(url)
    try:
        with Session(engine) as session:
            yield session
    finally:
        engine.dispose()


database_option = click.option(
    "--database-url",
    envvar="PARANOIA_DATABASE_URL",
    help="SQLAlchemy database URL",
)


def describe(record: Any) -> dict:
    """Column values of a record as strings."""
    mapper = inspect(type(record))
    return {
        attr.key: str(getattr(record, attr.key)) for attr in mapper.column_attrs
    }


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Paranoia Toolkit - soft deletion tools for SQLAlchemy models."""
    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]Paranoia Toolkit[/bold blue] v{__version__}\n"
                "[dim]Soft deletion tools for SQLAlchemy models[/dim]\n\n"
                "Use [bold]paranoia --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.group()
def config() -> None:
    """Show toolkit configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    config_dict = get_config().to_dict()

    if format == "json":
        console.print_json(data=config_dict)
        return
    if format == "yaml":
        console.print(yaml.safe_dump(config_dict, default_flow_style=False))
        return

    table = Table(title="Paranoia Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in config_dict.items():
        if value is None:
            value = "[dim]Not configured[/dim]"
        elif isinstance(value, bool):
            value = "✓" if value else "✗"
        table.add_row(key, str(value))
    console.print(table)


@cli.command()
@click.argument("model_path")
@database_option
def status(model_path: str, database_url: Optional[str]) -> None:
    """Count active and soft-deleted rows of MODEL_PATH."""
    model = load_model(model_path)
    marker = controller_for(model).marker_attribute()
    option = get_config().include_deleted_option

    try:
        with open_session(database_url) as session:
            base = select(func.count()).select_from(model)
            base = base.execution_options(**{option: True})
            total = session.scalar(base) or 0
            deleted_count = session.scalar(base.where(marker.is_not(None))) or 0
    except SQLAlchemyError as e:
        console.print(f"[red]Database error: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"{model.__name__} rows", show_header=True)
    table.add_column("State", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Active", str(total - deleted_count))
    table.add_row("Soft-deleted", str(deleted_count))
    table.add_row("[bold]Total[/bold]", f"[bold]{total}[/bold]")
    console.print(table)


@cli.command("list-deleted")
@click.argument("model_path")
@database_option
@click.option("--limit", type=int, default=100, help="Maximum rows to show")
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
def list_deleted(
    model_path: str, database_url: Optional[str], limit: int, format: str
) -> None:
    """List soft-deleted rows of MODEL_PATH, newest first."""
    model = load_model(model_path)
    marker = controller_for(model).marker_attribute()

    try:
        with open_session(database_url) as session:
            statement = only_deleted(model).order_by(marker.desc()).limit(limit)
            rows = [describe(record) for record in session.scalars(statement)]
    except SQLAlchemyError as e:
        console.print(f"[red]Database error: {e}[/red]")
        sys.exit(1)

    if format == "json":
        console.print_json(data=rows)
        return

    if not rows:
        console.print(f"[yellow]No soft-deleted {model.__name__} rows[/yellow]")
        return

    table = Table(title=f"Soft-deleted {model.__name__} rows", show_header=True)
    for key in rows[0]:
        table.add_column(key)
    for row in rows:
        table.add_row(*row.values())
    console.print(table)


@cli.command("restore")
@click.argument("model_path")
@click.argument("ids", nargs=-1, required=True)
@database_option
def restore_command(
    model_path: str, ids: List[str], database_url: Optional[str]
) -> None:
    """Restore soft-deleted rows of MODEL_PATH by primary key.

    Stops at the first ID that is not soft-deleted; nothing is committed then.
    """
    model = load_model(model_path)

    try:
        with open_session(database_url) as session:
            restored = restore(session, model, convert_ids(model, list(ids)))
            session.commit()
    except (SoftDeleteError, SQLAlchemyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    console.print(
        f"[green]✓ Restored {len(restored)} {model.__name__} row(s)[/green]"
    )


@cli.command()
@click.argument("model_path")
@click.argument("ids", nargs=-1, required=True)
@database_option
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def purge(
    model_path: str, ids: List[str], database_url: Optional[str], yes: bool
) -> None:
    """Permanently remove soft-deleted rows of MODEL_PATH.

    Only soft-deleted rows can be purged; nothing is committed if any ID fails.
    """
    model = load_model(model_path)

    if not yes:
        click.confirm(
            f"Permanently remove {len(ids)} {model.__name__} row(s)?", abort=True
        )

    try:
        with open_session(database_url) as session:
            for ident in convert_ids(model, list(ids)):
                record = find_deleted(session, model, ident)
                controller_for(model).hard_delete(record)
            session.commit()
    except (SoftDeleteError, SQLAlchemyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ Purged {len(ids)} {model.__name__} row(s)[/green]")


if __name__ == "__main__":
    cli()
