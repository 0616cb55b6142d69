"""Command line interface for PumpFlix."""

import asyncio
import sys
from decimal import Decimal
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy import select

from pumpflix.config import settings

app = typer.Typer(
    name="pumpflix",
    help="PumpFlix - multi-tenant workflow automation",
    add_completion=False,
)

console = Console()

DEFAULT_PLANS = [
    {
        "name": "Starter",
        "description": "For individuals automating their first workflows",
        "price": Decimal("29.00"),
        "features": ["1,000 executions per month", "Email support"],
        "execution_limit": 1000,
    },
    {
        "name": "Pro",
        "description": "For growing teams",
        "price": Decimal("99.00"),
        "features": ["10,000 executions per month", "AI workflow generation", "Priority support"],
        "execution_limit": 10000,
    },
    {
        "name": "Enterprise",
        "description": "For organizations running automation at scale",
        "price": Decimal("4990.00"),
        "interval": "year",
        "features": ["100,000 executions per month", "Audit exports", "Dedicated support"],
        "execution_limit": 100000,
    },
]


@app.command("version")
def version():
    """Show version information."""
    version_info = f"""
PumpFlix v{settings.app_version}

Environment: {settings.environment}
Python: {sys.version}
"""
    console.print(Panel(version_info.strip(), title="Version Information", border_style="green"))


@app.command("server")
def start_server(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Server port"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Number of workers"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug mode"),
):
    """Start the API server."""
    from pumpflix.server import main as server_main

    # Override settings if provided
    if host:
        settings.host = host
    if port:
        settings.port = port
    if reload:
        settings.reload = reload
    if workers:
        settings.workers = workers
    if debug:
        settings.debug = debug

    server_main()


@app.command("worker")
def start_worker(
    concurrency: int = typer.Option(4, "--concurrency", "-c", help="Worker concurrency"),
):
    """Start a Celery worker for all job queues."""
    from pumpflix.worker import main as worker_main

    worker_main(concurrency)


@app.command("config")
def show_config():
    """Show current configuration."""
    config_table = Table(title="PumpFlix Configuration")

    config_table.add_column("Setting", style="cyan")
    config_table.add_column("Value", style="green")

    config_items = [
        ("App Name", settings.app_name),
        ("Version", settings.app_version),
        ("Environment", settings.environment),
        ("Debug", str(settings.debug)),
        ("Host", settings.host),
        ("Port", str(settings.port)),
        ("Database URL", settings.database_url[:50] + "..." if len(settings.database_url) > 50 else settings.database_url),
        ("Redis URL", settings.redis_url),
        ("Celery Broker", settings.celery_broker_url),
        ("Stripe Configured", str(bool(settings.stripe_secret_key))),
        ("OpenAI Model", settings.openai_model),
        ("Metrics Enabled", str(settings.metrics_enabled)),
    ]

    for setting, value in config_items:
        config_table.add_row(setting, value)

    console.print(config_table)


async def _init_db() -> None:
    from pumpflix.database import db_manager

    await db_manager.initialize()
    try:
        await db_manager.create_all()
    finally:
        await db_manager.close()


async def _seed() -> tuple:
    from pumpflix.billing.models import SubscriptionPlan
    from pumpflix.billing.schemas import PlanCreate
    from pumpflix.billing.service import BillingService
    from pumpflix.database import db_manager
    from pumpflix.exports.service import ExportTemplateService

    await db_manager.initialize()
    try:
        async with db_manager.get_postgres_session() as session:
            billing = BillingService(session)
            plans_created = 0
            for plan in DEFAULT_PLANS:
                exists = await session.scalar(
                    select(SubscriptionPlan.id).where(SubscriptionPlan.name == plan["name"])
                )
                if not exists:
                    await billing.create_plan(PlanCreate(**plan))
                    plans_created += 1

            templates_created = await ExportTemplateService(session).seed_defaults()
        return plans_created, templates_created
    finally:
        await db_manager.close()


@app.command("init-db")
def init_db():
    """Create all tables. Use Alembic migrations in production."""
    asyncio.run(_init_db())
    console.print("[green]Database tables created[/green]")


@app.command("generate-key")
def generate_key():
    """Print a new ENCRYPTION_KEY for credential storage."""
    from pumpflix.credentials.encryption import generate_encryption_key

    console.print(generate_encryption_key())


@app.command("seed")
def seed():
    """Create default subscription plans and export templates."""
    plans, templates = asyncio.run(_seed())
    console.print(f"[green]Seeded {plans} plan(s) and {templates} export template(s)[/green]")


def main():
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
