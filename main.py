#!/usr/bin/env python3
# ============================================================
# SQLDesk - Remote SQL Console
# main.py — Application Entry Point
# ============================================================
#
# Usage:
#   python main.py                 → Launch full TUI
#   python main.py simple          → Launch simple CLI (no TUI)
#   python main.py check           → Pre-flight probe of gateway + assistant
#   python main.py run "SQL"       → Execute one statement and print it
#   python main.py version         → Show version info
#
# Prerequisites:
#   1. The SQL gateway endpoint reachable at GATEWAY_URL
#   2. OPENAI_API_KEY set (or ASSISTANT_PROVIDER=ollama + `ollama serve`)
#   3. .env file configured (copy from .env.example)
# ============================================================

import sys
import os
from functools import wraps

import click
from loguru import logger

# Add project root to path
sys.path.insert(0, os.path.dirname(__file__))

from utils.logger import setup_logger
from config import app_config, assistant_config, gateway_config


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx):
    """SQLDesk — Remote SQL Console CLI"""
    if ctx.invoked_subcommand is None:
        launch_tui()


@cli.command()
def tui():
    """Launch the full Textual TUI interface (default)."""
    launch_tui()


@cli.command()
def simple():
    """Launch the simple single-panel CLI interface."""
    launch_simple_cli()


@cli.command()
def version():
    """Display SQLDesk version information."""
    show_version()


@cli.command()
def check():
    """Probe the SQL gateway and the assistant configuration."""
    setup_logger(app_config.log_file, "WARNING")
    if not _check_environment():
        sys.exit(1)


# ── One-shot Commands ─────────────────────────────────────────

def password_option(f):
    """Require the master password before a one-shot command touches the gateway."""
    @click.option(
        "--password",
        prompt="Master password",
        hide_input=True,
        envvar="SQLDESK_PASSWORD",
        help="Master password (or SQLDESK_PASSWORD).",
    )
    @wraps(f)
    def wrapper(password, *args, **kwargs):
        from core.auth import SessionContext
        session = SessionContext()
        if not session.login(password):
            click.echo("❌ Invalid password", err=True)
            sys.exit(1)
        return f(*args, **kwargs)
    return wrapper


@cli.command()
@click.argument("sql")
@click.option("--csv", "as_csv", is_flag=True, help="Print the result as CSV.")
@password_option
def run(sql: str, as_csv: bool):
    """Execute SQL through the gateway and print the result."""
    setup_logger(app_config.log_file, "WARNING")

    from core.errors import QueryError
    from core.export import to_csv
    from core.gateway import RemoteQueryGateway
    from core.renderer import format_result_as_text

    with RemoteQueryGateway() as gateway:
        try:
            result = gateway.execute(sql)
        except QueryError as e:
            click.echo(f"ERROR: {e}", err=True)
            sys.exit(1)

    click.echo(to_csv(result) if as_csv else format_result_as_text(result))


@cli.command()
@click.argument("term", required=False, default="")
@password_option
def tables(term: str):
    """List tables, optionally filtered by a substring."""
    setup_logger(app_config.log_file, "WARNING")

    from core.errors import QueryError
    from core.gateway import RemoteQueryGateway
    from core.schema_cache import SchemaCache

    with RemoteQueryGateway() as gateway:
        cache = SchemaCache(gateway)
        try:
            cache.list_tables()
        except QueryError as e:
            click.echo(f"ERROR: {e}", err=True)
            sys.exit(1)

    for name in cache.search(term):
        click.echo(name)


@cli.command()
@click.argument("table")
@password_option
def describe(table: str):
    """Print the columns of TABLE."""
    setup_logger(app_config.log_file, "WARNING")

    from core.errors import QueryError
    from core.gateway import RemoteQueryGateway
    from core.schema_cache import SchemaCache

    with RemoteQueryGateway() as gateway:
        try:
            schema = SchemaCache(gateway).table_schema(table)
        except QueryError as e:
            click.echo(f"ERROR: {e}", err=True)
            sys.exit(1)

    click.echo(f"Table {schema.name}:")
    for column in schema.columns:
        click.echo(f"- {column.describe()}")


@cli.command()
@click.argument("prompt")
@password_option
def ask(prompt: str):
    """Ask the assistant to write a query for PROMPT."""
    setup_logger(app_config.log_file, "WARNING")

    from core.assistant import QueryAssistantSession
    from core.errors import AssistantError
    from core.gateway import RemoteQueryGateway
    from core.schema_cache import SchemaCache

    with RemoteQueryGateway() as gateway:
        session = QueryAssistantSession(schema_cache=SchemaCache(gateway))
        try:
            exchange = session.ask(prompt)
        except AssistantError as e:
            click.echo(f"ERROR: {e}", err=True)
            sys.exit(1)

    click.echo(exchange.explanation)
    if exchange.has_query():
        click.echo("\n-- Generated SQL --")
        click.echo(exchange.extracted_query)


@cli.command("format")
@click.argument("sql")
def format_command(sql: str):
    """Reformat SQL with one clause per line."""
    from utils.helpers import format_sql
    click.echo(format_sql(sql))


# ── Launch Functions ──────────────────────────────────────────

def launch_tui():
    """Start the full Textual TUI application."""
    setup_logger(app_config.log_file, app_config.log_level)
    logger.info(f"Starting SQLDesk v{app_config.version} (TUI mode)")

    from ui.tui import SQLDeskApp
    app = SQLDeskApp()
    app.run()


def launch_simple_cli():
    """
    Simple CLI mode — no Textual TUI, just a prompt_toolkit shell.
    Useful for environments where TUI doesn't work or for debugging.
    """
    setup_logger(app_config.log_file, app_config.log_level)
    logger.info(f"Starting SQLDesk v{app_config.version} (simple mode)")

    from simple_cli import SimpleCLI
    cli_app = SimpleCLI()
    cli_app.run()


def show_version():
    """Display version and configuration info."""
    model = f"{assistant_config.provider}/{assistant_config.model}"
    print(f"""
╔══════════════════════════════════════════════════════╗
║            SQLDesk — Remote SQL Console              ║
╠══════════════════════════════════════════════════════╣
║  Version    : {app_config.version:<38}║
║  Gateway    : {gateway_config.url[:38]:<38}║
║  Assistant  : {model[:38]:<38}║
╚══════════════════════════════════════════════════════╝
""")


# ── Pre-flight Checks ─────────────────────────────────────────

def _check_environment() -> bool:
    """Probe the gateway with a trivial query and report assistant status."""
    from core.assistant import QueryAssistantSession
    from core.errors import NetworkFailure, QueryError
    from core.gateway import RemoteQueryGateway

    issues = []

    if not os.path.exists(".env"):
        print("⚠️  No .env file found, using defaults and environment variables")

    with RemoteQueryGateway() as gateway:
        try:
            result = gateway.execute("SELECT 1;")
            print(f"✅ Gateway OK at {gateway_config.url} ({result.execution_ms} ms)")
        except NetworkFailure as e:
            issues.append(f"Gateway unreachable ({gateway_config.url}): {e}")
        except QueryError as e:
            issues.append(f"Gateway error ({gateway_config.url}): {e}")

    assistant = QueryAssistantSession(schema_cache=None)
    if assistant.is_available:
        print(f"✅ Assistant configured ({assistant_config.provider}/{assistant_config.model})")
    else:
        print(
            f"⚠️  Assistant not available for provider '{assistant_config.provider}'.\n"
            f"   Set OPENAI_API_KEY, or ASSISTANT_PROVIDER=ollama with ASSISTANT_BASE_URL.\n"
            f"   SQLDesk will start but the query assistant will be disabled."
        )

    if issues:
        for issue in issues:
            print(f"❌ {issue}")
        return False

    return True


# ── Entry Point ───────────────────────────────────────────────

if __name__ == "__main__":
    cli()
