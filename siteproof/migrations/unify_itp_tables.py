"""Migration: fold the legacy ``itps`` table into the canonical ITP schema.

Older databases stored each ITP twice over: an ``itps`` row that was
either a template or a per-lot copy of one, with ``itp_items.itp_id`` and
``lots.itp_id`` pointing at it. The canonical schema keeps templates in
``itp_templates``, per-lot instances in ``lot_itp_templates`` and uses
``itp_template_id`` everywhere.

Steps (each only when the legacy shape is present):
1. ``itps`` rows without a ``template_id`` become ``itp_templates`` (same id)
2. ``itps`` rows with a ``lot_id`` become ``lot_itp_templates`` (same id)
3. ``itp_items.itp_id`` is copied into ``itp_items.itp_template_id``
4. ``lots.itp_id`` is copied into ``lots.itp_template_id``

The legacy table and columns are left in place.

Usage:
    python -m siteproof.migrations.unify_itp_tables --execute
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog
import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.db.connection import get_session

logger = structlog.get_logger()
console = Console()

app = typer.Typer()


@dataclass(frozen=True)
class MigrationStep:
    description: str
    sql: str


COPY_TEMPLATES_SQL = """
INSERT INTO itp_templates (id, org_id, name, description, category, version, is_active,
                           created_by, created_at, updated_at)
SELECT i.id, 'default', i.name, i.description, COALESCE(i.category, 'general'), '1.0', true,
       i.created_by, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
FROM itps i
WHERE i.template_id IS NULL
  AND NOT EXISTS (SELECT 1 FROM itp_templates t WHERE t.id = i.id)
"""

COPY_ASSIGNMENTS_SQL = """
INSERT INTO lot_itp_templates (id, lot_id, itp_template_id, instance_name, status, is_active,
                               assigned_by, assigned_at, created_at, updated_at)
SELECT i.id, i.lot_id, COALESCE(i.template_id, i.id), i.name, COALESCE(i.status, 'pending'), true,
       i.created_by, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
FROM itps i
WHERE i.lot_id IS NOT NULL
  AND NOT EXISTS (
      SELECT 1 FROM lot_itp_templates a
      WHERE a.lot_id = i.lot_id AND a.itp_template_id = COALESCE(i.template_id, i.id)
  )
"""

BACKFILL_ITEMS_SQL = """
UPDATE itp_items
SET itp_template_id = COALESCE(
    (SELECT i.template_id FROM itps i WHERE i.id = itp_items.itp_id),
    itp_id
)
WHERE itp_template_id IS NULL AND itp_id IS NOT NULL
"""

BACKFILL_ITEMS_NO_ITPS_SQL = """
UPDATE itp_items
SET itp_template_id = itp_id
WHERE itp_template_id IS NULL AND itp_id IS NOT NULL
"""

BACKFILL_LOTS_SQL = """
UPDATE lots
SET itp_template_id = itp_id
WHERE itp_template_id IS NULL AND itp_id IS NOT NULL
"""


def _uuid_type(dialect: str) -> str:
    return "UUID" if dialect == "postgresql" else "CHAR(32)"


def _schema(sync_conn) -> dict[str, set[str]]:
    inspector = inspect(sync_conn)
    return {
        name: {column["name"] for column in inspector.get_columns(name)}
        for name in inspector.get_table_names()
    }


async def plan_migration(session: AsyncSession) -> list[MigrationStep]:
    """Steps needed for the database behind ``session``; empty when already canonical."""
    connection = await session.connection()
    schema = await connection.run_sync(_schema)
    dialect = connection.dialect.name

    steps: list[MigrationStep] = []
    has_itps = "itps" in schema

    if has_itps:
        steps.append(MigrationStep("Copy template rows from itps into itp_templates", COPY_TEMPLATES_SQL))
        if "lot_id" in schema["itps"]:
            steps.append(
                MigrationStep("Copy per-lot rows from itps into lot_itp_templates", COPY_ASSIGNMENTS_SQL)
            )

    for table, backfill in (
        ("itp_items", BACKFILL_ITEMS_SQL if has_itps else BACKFILL_ITEMS_NO_ITPS_SQL),
        ("lots", BACKFILL_LOTS_SQL),
    ):
        columns = schema.get(table, set())
        if "itp_id" not in columns:
            continue
        if "itp_template_id" not in columns:
            steps.append(
                MigrationStep(
                    f"Add {table}.itp_template_id",
                    f"ALTER TABLE {table} ADD COLUMN itp_template_id {_uuid_type(dialect)}",
                )
            )
        steps.append(MigrationStep(f"Copy {table}.itp_id into {table}.itp_template_id", backfill))

    return steps


def print_plan(steps: list[MigrationStep]) -> None:
    table = Table(title="ITP schema migration")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Step")
    for number, step in enumerate(steps, start=1):
        table.add_row(str(number), step.description)
    console.print(table)


async def run_migration(session: AsyncSession, dry_run: bool = True) -> list[MigrationStep]:
    """Plan, then execute unless ``dry_run``. Returns the planned steps."""
    steps = await plan_migration(session)
    if not steps:
        console.print("[bold green]✓[/bold green] Schema already uses the canonical ITP tables")
        return steps

    print_plan(steps)

    if dry_run:
        console.print("[yellow]DRY RUN MODE - No changes will be made[/yellow]\n")
        for step in steps:
            console.print(f"[bold]{step.description}[/bold]")
            console.print(step.sql.strip())
        return steps

    console.print("[bold]Executing ITP schema migration...[/bold]")
    try:
        for step in steps:
            result = await session.execute(text(step.sql))
            logger.info("itp_migration_step", step=step.description, rows=result.rowcount)
            console.print(f"  [green]✓[/green] {step.description} ({max(result.rowcount, 0)} rows)")
        await session.commit()
    except Exception as e:
        await session.rollback()
        console.print(f"[bold red]✗[/bold red] Migration failed: {e}")
        raise

    console.print("[bold green]✓[/bold green] Migration completed successfully!")
    return steps


@app.command()
def migrate(
    execute: bool = typer.Option(False, "--execute", help="Execute migration (default: dry-run)"),
):
    """Unify legacy ``itps`` / ``itp_id`` data into the canonical ITP tables."""

    async def _run():
        async with get_session() as session:
            await run_migration(session, dry_run=not execute)

    asyncio.run(_run())


if __name__ == "__main__":
    app()
