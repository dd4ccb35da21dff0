from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import click
import schedule
import uvicorn
from rich.console import Console
from rich.table import Table

from api.app import create_app
from models.email_message import EmailMessage
from services.account_fetcher import AccountFetcher
from services.account_registry import AccountRegistry
from services.auth_service import AuthService, load_token_file
from services.feed_service import FeedService
from services.fetch_orchestrator import FetchOrchestrator
from services.gmail_service import GmailService
from services.statistics_service import StatisticsService
from utils.config import AppConfig, load_config
from utils.logger import configure_logging


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    config: AppConfig
    registry: AccountRegistry
    gmail: GmailService
    orchestrator: FetchOrchestrator
    feed: FeedService
    stats: StatisticsService
    auth: Optional[AuthService]
    console: Console


def build_context(env_file: str) -> AppContext:
    config = load_config(env_file)
    configure_logging(config.log_dir, config.log_level)

    registry = AccountRegistry()
    for account in config.accounts:
        try:
            registry.register(account.address, load_token_file(account.token_file))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Skipping account %s: %s", account.address, exc)

    gmail = GmailService()
    fetcher = AccountFetcher(
        gmail,
        partitions=config.partitions,
        max_results=config.max_results_per_partition,
        detail_concurrency=config.detail_concurrency,
    )
    stats = StatisticsService()
    orchestrator = FetchOrchestrator(registry, fetcher, stats, result_limit=config.result_limit)
    feed = FeedService(orchestrator, ttl_seconds=config.cache_ttl_seconds)
    auth = AuthService(config, gmail) if config.oauth_configured else None
    if auth is None:
        LOGGER.warning("Google OAuth client is not configured; /auth is disabled")

    return AppContext(
        config=config,
        registry=registry,
        gmail=gmail,
        orchestrator=orchestrator,
        feed=feed,
        stats=stats,
        auth=auth,
        console=Console(),
    )


@click.group()
@click.option("--env-file", default=".env", show_default=True, help="Path to the .env file")
@click.pass_context
def cli(ctx: click.Context, env_file: str) -> None:
    """Merge the inboxes of several Gmail accounts into one feed."""

    try:
        ctx.obj = build_context(env_file)
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc


@cli.command("serve")
@click.option("--host", default=None, help="Interface to bind (defaults to HOST)")
@click.option("--port", type=int, default=None, help="Port to listen on (defaults to PORT)")
@click.pass_obj
def serve(app: AppContext, host: Optional[str], port: Optional[int]) -> None:
    """Serve the feed and OAuth routes over HTTP."""

    if app.auth is None:
        raise click.ClickException(
            "Missing Google OAuth settings: set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REDIRECT_URI."
        )
    web_app = create_app(
        app.registry,
        app.feed,
        app.stats,
        auth=app.auth,
        frontend_url=app.config.frontend_url,
    )
    uvicorn.run(
        web_app,
        host=host or app.config.host,
        port=port or app.config.port,
        log_config=None,
    )


@cli.command("fetch")
@click.option("--limit", type=int, default=None, help="Maximum number of emails to show")
@click.pass_obj
def fetch_emails(app: AppContext, limit: int | None) -> None:
    """Run one fetch cycle over the configured accounts and print the feed."""

    emails = _perform_fetch(app)
    if emails:
        app.console.print(_build_feed_table(emails[:limit] if limit else emails))
    else:
        app.console.print("[bold green]No emails found.[/bold green]")


@cli.command("poll")
@click.option("--interval", type=int, default=None, help="Interval in minutes (defaults to POLL_INTERVAL_MINUTES)")
@click.option("--limit", type=int, default=20, show_default=True, help="Emails to show per run")
@click.pass_obj
def poll(app: AppContext, interval: int | None, limit: int) -> None:
    """Run fetch cycles on an interval using the schedule library."""

    minutes = interval or app.config.poll_interval_minutes

    def job() -> None:
        emails = _perform_fetch(app)
        app.console.print(
            f"[scheduler] Retrieved {len(emails)} email(s) across {len(app.registry)} account(s)."
        )
        if emails:
            app.console.print(_build_feed_table(emails[:limit]))

    schedule.every(minutes).minutes.do(job)

    app.console.print(f"Polling every {minutes} minute(s). Press Ctrl+C to stop.")
    job()
    try:
        while True:
            schedule.run_pending()
            time.sleep(1)
    except KeyboardInterrupt:
        app.console.print("Scheduler stopped.")


@cli.command("accounts")
@click.pass_obj
def accounts(app: AppContext) -> None:
    """List the accounts seeded from the accounts file."""

    snapshot = app.registry.list()
    if not snapshot:
        app.console.print(f"No accounts configured in {app.config.accounts_file}.")
        return
    table = Table(title="Connected accounts")
    table.add_column("Address")
    table.add_column("Refresh token")
    for account in snapshot:
        table.add_row(account.address, "yes" if account.credential.get("refresh_token") else "no")
    app.console.print(table)


@cli.command("stats")
@click.pass_obj
def stats(app: AppContext) -> None:
    """Run one fetch cycle and display the per-account outcome."""

    _perform_fetch(app)
    snapshot = app.stats.snapshot()

    table = Table(title="Fetch cycle")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Fetch runs", str(snapshot.get("fetch_runs", 0)))
    table.add_row("Last run", str(snapshot.get("last_run", "-")))
    table.add_row("Emails returned", str(snapshot.get("last_emails_returned", 0)))
    app.console.print(table)

    accounts = snapshot.get("accounts", {})
    if accounts:
        acct_table = Table(title="Per-account status")
        acct_table.add_column("Account")
        acct_table.add_column("Status")
        acct_table.add_column("Emails")
        acct_table.add_column("Failed partitions")
        acct_table.add_column("Dropped")
        acct_table.add_column("Error")
        for name, data in accounts.items():
            acct_table.add_row(
                name,
                data.get("status", "-"),
                str(data.get("emails", 0)),
                ", ".join(data.get("failed_partitions", [])) or "-",
                str(data.get("dropped", 0)),
                data.get("error") or "-",
            )
        app.console.print(acct_table)


def main() -> None:
    cli(standalone_mode=True)


def _perform_fetch(app: AppContext) -> List[EmailMessage]:
    snapshot = asyncio.run(app.feed.get_emails(force=True))
    return snapshot.emails


def _build_feed_table(emails: List[EmailMessage]) -> Table:
    table = Table(title="Merged inbox", show_lines=False)
    table.add_column("Date")
    table.add_column("Account")
    table.add_column("Label")
    table.add_column("Sender")
    table.add_column("Subject")
    for email in emails:
        style = None if email.is_read else "bold"
        table.add_row(
            email.date,
            email.account,
            email.label.value,
            email.sender_name,
            email.subject,
            style=style,
        )
    return table


if __name__ == "__main__":
    main()
