"""Custom database and task CLI commands for codeshare-py.

Adds schema setup, expired project cleanup, and query helpers for
inspecting projects and their assets.
"""

from __future__ import annotations

import asyncio
import os
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import rich_click as click
from litestar.plugins import CLIPluginProtocol
from rich.console import Console
from rich.table import Table
from sqlalchemy import create_engine, func, inspect, select, text
from sqlalchemy.orm import Session, sessionmaker

from codeshare_py.core.logging import configure_logging_from_env
from codeshare_py.storage.db.models import AssetModel, ProjectModel

if TYPE_CHECKING:
    from collections.abc import Generator

console = Console()


def get_database_url() -> str:
    """Get the database URL from environment, converted to a sync driver."""
    from codeshare_py.storage.db.setup import get_database_url as get_async_database_url, to_sync_url

    return to_sync_url(get_async_database_url())


@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    """Get a sync database session for CLI operations."""
    engine = create_engine(get_database_url())
    session_factory = sessionmaker(bind=engine)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@click.group(name="codeshare", help="Manage codeshare projects and database.")
def codeshare_group() -> None:
    """Manage codeshare projects and database."""


@codeshare_group.command(name="init-db", help="Create the projects and project_assets tables.")
def init_db() -> None:
    """Create all tables that do not exist yet."""
    from codeshare_py.storage.db.setup import DatabaseManager

    async def _init() -> str:
        db = DatabaseManager()
        await db.init()
        try:
            return db.display_url
        finally:
            await db.close()

    url = asyncio.run(_init())
    console.print(f"[green]Database initialized:[/green] {url}")


@codeshare_group.command(name="cleanup", help="Delete expired projects now.")
@click.option("--queue", "-q", is_flag=True, help="Hand the cleanup to the task consumer instead of running it here")
def cleanup(queue: bool) -> None:
    """Delete every project whose expiry has passed."""
    from codeshare_py.core.tasks import _run_cleanup_expired_projects

    configure_logging_from_env()

    if queue:
        from codeshare_py.core.tasks import enqueue_project_cleanup

        task_id = enqueue_project_cleanup()
        console.print(f"[green]Cleanup queued:[/green] task {task_id}")
        return

    console.print("[cyan]Running project cleanup...[/cyan]")
    result = _run_cleanup_expired_projects()
    if "error" in result:
        console.print(f"[red]Cleanup failed: {result['error']}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Cleanup complete:[/green] Deleted {result['deleted']} expired projects")


@codeshare_group.command(name="projects", help="List saved projects.")
@click.option("--limit", "-l", default=20, help="Number of projects to show")
@click.option("--expired", "-e", is_flag=True, help="Show only expired projects")
def list_projects(limit: int, expired: bool) -> None:
    """List saved projects with their asset counts."""
    now = datetime.now(UTC)

    with get_sync_session() as session:
        asset_count = (
            select(func.count(AssetModel.id))
            .where(AssetModel.project_slug == ProjectModel.slug)
            .correlate(ProjectModel)
            .scalar_subquery()
        )
        stmt = select(ProjectModel, asset_count).order_by(ProjectModel.updated_at.desc()).limit(limit)
        if expired:
            stmt = stmt.where(ProjectModel.expires_at < now)
        rows = session.execute(stmt).all()

        table = Table(title=f"Projects (showing {len(rows)})")
        table.add_column("Code", style="cyan")
        table.add_column("Size", style="green", justify="right")
        table.add_column("Assets", style="yellow", justify="right")
        table.add_column("Updated", style="magenta")
        table.add_column("Status")

        for project, assets in rows:
            is_expired = project.expires_at < now
            table.add_row(
                project.slug,
                str(len(project.code or "")),
                str(assets),
                project.updated_at.strftime("%Y-%m-%d %H:%M") if project.updated_at else "-",
                "[red]Expired[/red]" if is_expired else "[green]Active[/green]",
            )

        console.print(table)


@codeshare_group.command(name="assets", help="List the assets attached to a project.")
@click.argument("project_id")
def list_assets(project_id: str) -> None:
    """List the assets attached to a project."""
    with get_sync_session() as session:
        stmt = select(AssetModel).where(AssetModel.project_slug == project_id).order_by(AssetModel.created_at)
        assets = session.execute(stmt).scalars().all()

        table = Table(title=f"Assets of {project_id} ({len(assets)})")
        table.add_column("URL", style="cyan")
        table.add_column("Filename", style="green")
        table.add_column("Type", style="yellow")
        table.add_column("Size", style="magenta", justify="right")

        for asset in assets:
            table.add_row(asset.url, asset.filename, asset.media_type, str(asset.size))

        console.print(table)


@codeshare_group.command(name="tables", help="List all database tables and row counts.")
def list_tables() -> None:
    """List all database tables and row counts."""
    engine = create_engine(get_database_url())

    table = Table(title="Database Tables")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", style="green", justify="right")

    try:
        with engine.connect() as conn:
            for table_name in sorted(inspect(engine).get_table_names()):
                count = conn.execute(text(f'SELECT COUNT(*) FROM "{table_name}"')).scalar()
                table.add_row(table_name, str(count))
    finally:
        engine.dispose()

    console.print(table)


@click.group(name="tasks", help="Manage background task queue (Huey).")
def tasks_group() -> None:
    """Manage background task queue (Huey)."""


@tasks_group.command(name="run", help="Start the Huey task consumer.")
@click.option("--workers", "-w", default=1, help="Number of worker threads")
@click.option("--periodic/--no-periodic", default=True, help="Enable periodic tasks")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def tasks_run(workers: int, periodic: bool, verbose: bool) -> None:
    """Start the Huey task consumer to process background tasks."""
    configure_logging_from_env()

    try:
        from huey.consumer import Consumer

        from codeshare_py.core.tasks import get_huey, register_tasks
    except ImportError:
        console.print("[red]Error: Huey is not installed.[/red]")
        console.print("Install with: [cyan]pip install codeshare-py[tasks][/cyan]")
        raise SystemExit(1) from None

    huey = get_huey()

    if periodic:
        register_tasks()
        console.print("[green]Registered periodic tasks[/green]")

    console.print(f"[cyan]Starting Huey consumer with {workers} workers...[/cyan]")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    consumer = Consumer(huey, workers=workers, periodic=periodic, verbose=verbose)
    try:
        consumer.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Consumer stopped[/yellow]")


@tasks_group.command(name="status", help="Show task queue status.")
def tasks_status() -> None:
    """Show task queue status and pending tasks."""
    from codeshare_py.core.tasks import TaskQueueSettings, get_huey

    settings = TaskQueueSettings.from_env()

    table = Table(title="Task Queue Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Enabled", "[green]Yes[/green]" if settings.enabled else "[red]No[/red]")
    table.add_row("Database", settings.db_path)
    table.add_row("Immediate Mode", "[yellow]Yes[/yellow]" if settings.immediate else "No")
    table.add_row("Project TTL (days)", os.environ.get("PROJECT_TTL_DAYS", "5"))

    console.print(table)

    if not settings.enabled:
        return

    try:
        huey = get_huey(settings)
    except ImportError:
        console.print("[red]Error: Huey is not installed.[/red]")
        return

    queue_table = Table(title="Queue Stats")
    queue_table.add_column("Metric", style="cyan")
    queue_table.add_column("Count", style="green", justify="right")
    queue_table.add_row("Pending Tasks", str(huey.pending_count()))
    queue_table.add_row("Scheduled Tasks", str(huey.scheduled_count()))

    console.print(queue_table)


@tasks_group.command(name="list", help="List registered periodic tasks.")
def tasks_list() -> None:
    """List all registered periodic tasks."""
    table = Table(title="Scheduled Tasks")
    table.add_column("Task", style="cyan")
    table.add_column("Schedule", style="green")
    table.add_column("Description", style="dim")

    table.add_row("cleanup_expired_projects", "Hourly", "Delete projects past their expiry, with their assets")

    console.print(table)
    console.print("\n[dim]Run 'litestar tasks run' to start the task consumer[/dim]")


class CodeshareCLIPlugin(CLIPluginProtocol):
    """CLI plugin that adds the codeshare and task queue commands.

    Adds the `codeshare` command group with subcommands:
    - init-db: Create the database tables
    - cleanup: Delete expired projects now
    - projects: List saved projects
    - assets: List the assets attached to a project
    - tables: List all database tables and row counts

    Adds the `tasks` command group with subcommands:
    - run: Start the Huey task consumer
    - status: Show task queue status
    - list: List registered periodic tasks
    """

    def on_cli_init(self, cli: click.Group) -> None:
        """Register the codeshare and tasks command groups."""
        cli.add_command(codeshare_group)
        cli.add_command(tasks_group)
