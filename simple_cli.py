# ============================================================
# SQLDesk - Remote SQL Console
# simple_cli.py — Fallback Simple CLI (no Textual TUI)
# ============================================================
#
# A prompt_toolkit REPL over the same core services as the TUI.
# Plain input is SQL; lines starting with "/" are commands.
# ============================================================

import os
from pathlib import Path
from typing import Iterable, Optional

from prompt_toolkit import PromptSession, prompt
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from loguru import logger

from core.assistant import QueryAssistantSession
from core.auth import SessionContext
from core.completion import EditorCompletionProvider
from core.console import ConsoleController, ConsoleState
from core.errors import AssistantError, NothingToExport, QueryError
from core.gateway import RemoteQueryGateway
from core.models import AssistantExchange
from core.renderer import (
    build_result_table,
    format_history,
    format_result_as_text,
    format_sql_syntax,
    row_count_line,
)
from core.schema_cache import SchemaCache
from config import app_config, gateway_config


HELP_TEXT = """
[bold]Commands[/bold]
  [cyan]<SQL>[/cyan]               Execute SQL against the remote gateway
  [cyan]/format[/cyan]             Reformat the last SQL and show it
  [cyan]/history[/cyan]            List query history (newest first)
  [cyan]/recall N[/cyan]           Run history entry N again
  [cyan]/tables [term][/cyan]      List tables (optionally filtered)
  [cyan]/describe TABLE[/cyan]     Show a table's columns
  [cyan]/select TABLE[/cyan]       SELECT * FROM TABLE LIMIT 100
  [cyan]/ask PROMPT[/cyan]         Ask the assistant for a query
  [cyan]/use[/cyan]                Run the assistant's last query
  [cyan]/export csv|xlsx PATH[/cyan] Save the last result
  [cyan]/reload[/cyan]             Reload the schema cache
  [cyan]/logout[/cyan]             End the session
  [cyan]/help[/cyan]  [cyan]/exit[/cyan]
"""


class SQLCompleter(Completer):
    """prompt_toolkit adapter over EditorCompletionProvider."""

    def __init__(self, provider: EditorCompletionProvider):
        self.provider = provider

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        text = document.text
        if text.lstrip().startswith("/"):
            return
        cursor = document.cursor_position
        for suggestion in self.provider.complete(text, cursor):
            start = suggestion.context.start if suggestion.context else cursor
            yield Completion(
                suggestion.plain_insert_text,
                start_position=start - cursor,
                display=suggestion.label,
                display_meta=suggestion.kind.value,
            )


class SimpleCLI:
    """
    Single-window CLI for SQLDesk.
    Same gateway, schema cache, assistant and controller as the TUI.
    """

    def __init__(
        self,
        gateway: Optional[RemoteQueryGateway] = None,
        session: Optional[SessionContext] = None,
        assistant: Optional[QueryAssistantSession] = None,
        console: Optional[Console] = None,
    ):
        self.console = console or Console()
        self.auth = session or SessionContext()
        self.gateway = gateway or RemoteQueryGateway()
        self.schema_cache = SchemaCache(self.gateway)
        self.assistant = assistant or QueryAssistantSession(schema_cache=self.schema_cache)
        self.controller = ConsoleController(self.gateway, session=self.auth)
        self.completion = EditorCompletionProvider(self.schema_cache)

        self._last_exchange: Optional[AssistantExchange] = None
        self._running: bool = True

        self._prompt_session: Optional[PromptSession] = None

    @property
    def prompt_session(self) -> PromptSession:
        """Built on first use; it needs a real terminal."""
        if self._prompt_session is None:
            history_file = os.path.expanduser("~/.sqldesk_history")
            self._prompt_session = PromptSession(
                history=FileHistory(history_file),
                auto_suggest=AutoSuggestFromHistory(),
                completer=SQLCompleter(self.completion),
                complete_while_typing=True,
            )
        return self._prompt_session

    def run(self):
        """Main loop."""
        self._print_banner()
        if not self._login():
            return
        self._initialize()

        while self._running:
            try:
                user_input = self._get_input()
                if user_input is None:
                    break
                user_input = user_input.strip()
                if not user_input:
                    continue
                self.handle_input(user_input)
            except KeyboardInterrupt:
                self.console.print("\n[dim]Use /exit to quit[/dim]")
            except EOFError:
                break

        self._shutdown()

    def _login(self) -> bool:
        """Prompt for the master password until it matches or input ends."""
        while not self.auth.is_authenticated:
            try:
                password = prompt(
                    HTML("<ansiyellow>🔒 Master password: </ansiyellow>"),
                    is_password=True,
                )
            except (KeyboardInterrupt, EOFError):
                return False
            if not password:
                continue
            if not self.auth.login(password):
                self.console.print("[bold red]Invalid password[/bold red]")
        return True

    def _initialize(self):
        """Load the table list so completion has something to offer."""
        self.console.print(f"[dim]Gateway: {gateway_config.url}[/dim]")
        try:
            tables = self.schema_cache.list_tables()
        except QueryError as e:
            self.console.print(f"[yellow]⚠ Could not load tables: {escape(str(e))}[/yellow]")
        else:
            self.console.print(f"[green]✓ {len(tables)} tables loaded[/green]")

        status = "[green]ready[/green]" if self.assistant.is_available else "[yellow]not configured[/yellow]"
        self.console.print(f"[dim]Assistant:[/dim] {status}")
        self.console.print("[dim]Type [bold]/help[/bold] for commands, or enter SQL.[/dim]\n")

    def _get_input(self) -> Optional[str]:
        try:
            return self.prompt_session.prompt(
                HTML("<ansigreen><b>sqldesk</b></ansigreen><ansicyan> ▶ </ansicyan>")
            )
        except KeyboardInterrupt:
            return ""
        except EOFError:
            return None

    # ── Routing ───────────────────────────────────────────────

    def handle_input(self, user_input: str):
        """Route input: slash commands, otherwise SQL."""
        if user_input.startswith("/"):
            self._handle_command(user_input)
            return
        self.controller.set_sql(user_input)
        self._execute()

    def _execute(self):
        state = self.controller.execute()
        if state is None:
            return
        if state is ConsoleState.FAILED:
            self.console.print(f"[bold red]ERROR[/bold red][red]: {escape(self.controller.error_message)}[/red]")
            return
        self._print_result()

    def _print_result(self):
        result = self.controller.result
        if result.rows:
            if self.console.is_terminal:
                self.console.print(build_result_table(result))
            else:
                self.console.print(format_result_as_text(result), markup=False, highlight=False)
                return
        self.console.print(f"[dim]{row_count_line(result)}[/dim]")

    def _handle_command(self, command: str):
        parts = command.strip().split(maxsplit=1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd in ("/exit", "/quit"):
            self._running = False

        elif cmd == "/help":
            self.console.print(HELP_TEXT)

        elif cmd == "/format":
            formatted = self.controller.format()
            if formatted:
                self.console.print(format_sql_syntax(formatted))

        elif cmd == "/history":
            self.console.print(format_history(self.controller.history), markup=False, highlight=False)

        elif cmd == "/recall":
            self._recall(arg)

        elif cmd == "/tables":
            self._list_tables(arg)

        elif cmd == "/describe" and arg:
            self._describe(arg)

        elif cmd == "/select" and arg:
            self.controller.select_from_schema(arg)
            self._execute()

        elif cmd == "/ask":
            self._ask(arg)

        elif cmd == "/use":
            if self._last_exchange and self._last_exchange.has_query():
                self.controller.apply_assistant_query(self._last_exchange.extracted_query)
                self.console.print(format_sql_syntax(self.controller.sql))
                self._execute()
            else:
                self.console.print("[yellow]No assistant query to use. Try /ask first.[/yellow]")

        elif cmd == "/export":
            self._export(arg)

        elif cmd == "/reload":
            self.schema_cache.reset()
            self._list_tables("")

        elif cmd == "/logout":
            self.auth.logout()
            self.console.print("[dim]Logged out[/dim]")
            if not self._login():
                self._running = False

        elif cmd == "/version":
            self.console.print(f"{app_config.name} v{app_config.version}")

        else:
            self.console.print(f"[yellow]Unknown command: {command}. Type /help[/yellow]")

    # ── Commands ──────────────────────────────────────────────

    def _recall(self, arg: str):
        history = self.controller.history
        try:
            index = int(arg) - 1
        except ValueError:
            self.console.print("[yellow]Usage: /recall N[/yellow]")
            return
        if not 0 <= index < len(history):
            self.console.print(f"[yellow]No history entry {arg}[/yellow]")
            return
        sql = self.controller.recall_history(index)
        self.console.print(format_sql_syntax(sql))
        self._execute()

    def _list_tables(self, term: str):
        try:
            self.schema_cache.list_tables()
        except QueryError as e:
            self.console.print(f"[red]Failed to load tables: {escape(str(e))}[/red]")
            return
        tables = self.schema_cache.search(term)
        if not tables:
            self.console.print("[dim]No tables found[/dim]")
            return
        for name in tables:
            self.console.print(f"  • {name}")
        self.console.print(f"[dim]{len(tables)} tables[/dim]")

    def _describe(self, table: str):
        try:
            columns = self.schema_cache.columns_of(table)
        except QueryError as e:
            self.console.print(f"[red]Failed to load columns for {escape(table)}: {escape(str(e))}[/red]")
            return
        self.console.print(f"[bold #58a6ff]{escape(table)}[/bold #58a6ff]")
        for column in columns:
            self.console.print(f"  - {column.describe()}", markup=False)

    def _ask(self, prompt: str):
        self.console.print("[dim]Thinking...[/dim]")
        try:
            exchange = self.assistant.ask(prompt)
        except AssistantError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return

        self._last_exchange = exchange
        self.console.print(Panel(
            Text(exchange.explanation or "(no explanation)"),
            title="[bold green]Assistant[/bold green]",
            border_style="green",
        ))
        if exchange.has_query():
            self.console.print("[dim]Generated SQL:[/dim]")
            self.console.print(format_sql_syntax(exchange.extracted_query))
            self.console.print("[dim]Type /use to run it.[/dim]")

    def _export(self, arg: str):
        parts = arg.split(maxsplit=1)
        if len(parts) != 2 or parts[0].lower() not in ("csv", "xlsx"):
            self.console.print("[yellow]Usage: /export csv|xlsx PATH[/yellow]")
            return
        kind, path = parts[0].lower(), Path(parts[1]).expanduser()
        try:
            if kind == "csv":
                written = self.controller.export_csv(path)
            else:
                written = self.controller.export_xlsx(path)
        except NothingToExport as e:
            self.console.print(f"[yellow]{e}[/yellow]")
            return
        except OSError as e:
            logger.error(f"Export failed: {e}")
            self.console.print(f"[red]Export failed: {escape(str(e))}[/red]")
            return
        self.console.print(f"[green]Saved {written}[/green]")

    # ── Banner / Shutdown ─────────────────────────────────────

    def _print_banner(self):
        banner = """
[bold #58a6ff]
  ███████╗ ██████╗ ██╗     ██████╗ ███████╗███████╗██╗  ██╗
  ██╔════╝██╔═══██╗██║     ██╔══██╗██╔════╝██╔════╝██║ ██╔╝
  ███████╗██║   ██║██║     ██║  ██║█████╗  ███████╗█████╔╝
  ╚════██║██║▄▄ ██║██║     ██║  ██║██╔══╝  ╚════██║██╔═██╗
  ███████║╚██████╔╝███████╗██████╔╝███████╗███████║██║  ██╗
  ╚══════╝ ╚══▀▀═╝ ╚══════╝╚═════╝ ╚══════╝╚══════╝╚═╝  ╚═╝
[/bold #58a6ff][bold]  Remote SQL Console v{version}[/bold]
[dim]  HTTP SQL gateway • Schema browser • Query assistant[/dim]
""".format(version=app_config.version)
        self.console.print(banner)

    def _shutdown(self):
        self.console.print("\n[dim]Shutting down SQLDesk...[/dim]")
        self.gateway.close()
        self.console.print("[green]Goodbye![/green]")
