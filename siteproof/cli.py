"""SiteProof CLI - async commands over the QA database.

Commands:
- init: Initialize database schema
- seed: Load a demo project, lot and ITP template
- stats: Show row counts and inspection progress
- check-integrity: Report orphaned or mismatched ITP foreign keys
- migrate-itps: Unify a legacy itps / itp_id schema (dry-run by default)
- web serve: Run the FastAPI app under uvicorn
"""

from __future__ import annotations

import asyncio
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from siteproof.actions import dashboard as dashboard_actions
from siteproof.actions import itp_templates as template_actions
from siteproof.actions import lots as lot_actions
from siteproof.actions import projects as project_actions
from siteproof.actions.result import ActionResult
from siteproof.config import get_config
from siteproof.core.logging import configure_logging
from siteproof.db import repository
from siteproof.db.connection import close_db, get_session, init_db
from siteproof.diagnostics import integrity_report

app = typer.Typer(
    name="siteproof",
    help="SiteProof - construction quality assurance",
    no_args_is_help=True,
)

web_cli = typer.Typer(help="Web UI / API")
app.add_typer(web_cli, name="web")

console = Console()

SEED_USER = {"user_id": None, "username": "seed"}

SEED_TEMPLATE = {
    "name": "Concrete Pour",
    "description": "Pre-pour and pour inspection for cast in-situ concrete",
    "category": "Concrete",
    "items": [
        {
            "itemNumber": "1",
            "description": "Formwork dimensions checked against drawings",
            "acceptanceCriteria": "±5 mm",
            "itemType": "pass_fail",
        },
        {
            "itemNumber": "2",
            "description": "Reinforcement cover",
            "acceptanceCriteria": "≥ 40 mm",
            "itemType": "numeric",
        },
        {
            "itemNumber": "3",
            "description": "Slump test result recorded",
            "itemType": "text",
            "isMandatory": False,
        },
    ],
}


@app.callback()
def main_callback():
    configure_logging()


def _unwrap(result: ActionResult, what: str):
    if not result.success:
        console.print(f"[bold red]✗[/bold red] {what} failed: {result.error}")
        raise typer.Exit(code=1)
    return result.data


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        if drop:
            console.print("[yellow]Dropping existing tables...[/yellow]")
        console.print("[green]Creating tables...[/green]")
        await init_db(drop=drop)
        await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def seed():
    """Load a demo project with one lot and an assigned ITP template."""

    async def _seed():
        async with get_session() as session:
            project = _unwrap(
                await project_actions.create_project(
                    session,
                    {"name": "Demo Project", "projectNumber": "DEMO-001", "location": "Site A"},
                    SEED_USER,
                ),
                "Project",
            )
            template = _unwrap(
                await template_actions.create_template(session, SEED_TEMPLATE, SEED_USER),
                "Template",
            )
            lot = _unwrap(
                await lot_actions.create_lot(
                    session,
                    {"projectId": project["id"], "lotNumber": "L-001", "description": "Ground slab"},
                    SEED_USER,
                ),
                "Lot",
            )
            _unwrap(
                await lot_actions.assign_itp_to_lot(
                    session, UUID(lot["id"]), UUID(template["id"]), SEED_USER
                ),
                "Assignment",
            )
        await close_db()

        console.print(f"  Project: {project['name']} ({project['id']})")
        console.print(f"  Lot:     {lot['lot_number']} ({lot['id']})")
        console.print(f"  ITP:     {template['name']} with {len(template['items'])} items")

    asyncio.run(_seed())
    console.print("[bold green]✓[/bold green] Demo data loaded")


@app.command()
def stats():
    """Show row counts and inspection progress."""

    async def _stats():
        async with get_session() as session:
            counts = {name: await repository.count_rows(session, name) for name in repository.TABLES}
            dashboard = _unwrap(await dashboard_actions.get_dashboard_stats(session), "Stats")
        await close_db()

        table = Table(title="Tables")
        table.add_column("Table", style="cyan")
        table.add_column("Rows", justify="right", style="green")
        for name, count in counts.items():
            table.add_row(name, str(count))
        console.print(table)

        progress = Table(title="Inspections")
        progress.add_column("Metric", style="cyan")
        progress.add_column("Count", justify="right", style="green")
        for key, value in dashboard.items():
            progress.add_row(key.replace("_", " ").capitalize(), str(value))
        console.print(progress)

    asyncio.run(_stats())


@app.command(name="check-integrity")
def check_integrity():
    """Report orphaned or mismatched ITP foreign keys. Exits 1 when issues exist."""

    async def _check():
        async with get_session() as session:
            report = await integrity_report(session)
        await close_db()
        return report

    report = asyncio.run(_check())

    table = Table(title="ITP integrity")
    table.add_column("Check", style="cyan")
    table.add_column("Issues", justify="right")
    for name, count in report["counts"].items():
        table.add_row(name, f"[red]{count}[/red]" if count else "[green]0[/green]")
    console.print(table)

    if report["ok"]:
        console.print("[bold green]✓[/bold green] No integrity issues found")
        return

    for name, ids in report["issues"].items():
        for row_id in ids[:5]:
            console.print(f"  {name}: {row_id}", style="dim")
    console.print("[yellow]⚠[/yellow] Run 'siteproof migrate-itps' to repair legacy ITP data")
    raise typer.Exit(code=1)


@app.command(name="migrate-itps")
def migrate_itps(
    execute: bool = typer.Option(False, "--execute", help="Execute migration (default: dry-run)"),
):
    """Unify a legacy itps / itp_id schema into the canonical ITP tables."""
    from siteproof.migrations.unify_itp_tables import run_migration

    async def _run():
        async with get_session() as session:
            await run_migration(session, dry_run=not execute)
        await close_db()

    asyncio.run(_run())


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI web UI and JSON API."""
    import uvicorn

    typer.echo(f"Starting SiteProof on http://{host}:{port}")
    uvicorn.run("siteproof.web.app:app", host=host, port=port, reload=reload, workers=1)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
