# ============================================================
# SQLDesk - Remote SQL Console
# ui/tui.py — Main Textual TUI Application
# ============================================================
#
# Screens:
#   login   → password gate (SessionContext)
#   console → schema browser | SQL editor + assistant | results/history
#
# All network I/O (gateway, schema, assistant) runs in
# @work(thread=True) workers; UI updates come back through
# app.call_from_thread().
# ============================================================

from pathlib import Path
from typing import List, Optional, Tuple

from textual import work
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.screen import Screen
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Input,
    Label,
    OptionList,
    Static,
    TabbedContent,
    TabPane,
    TextArea,
    Tree,
)
from textual.widgets.tree import TreeNode
from loguru import logger

from config import app_config, gateway_config
from core.assistant import QueryAssistantSession
from core.auth import CONSOLE_ROUTE, LOGIN_ROUTE, RouteGuard, SessionContext
from core.completion import EditorCompletionProvider, Suggestion, should_trigger
from core.console import ConsoleController, ConsoleState
from core.errors import (
    AssistantError,
    AuthenticationRequired,
    EmptyPrompt,
    NothingToExport,
    QueryError,
)
from core.gateway import RemoteQueryGateway
from core.models import AssistantExchange, ColumnInfo, QueryResult
from core.schema_cache import SchemaCache
from utils.helpers import (
    format_duration,
    format_timestamp,
    quote_identifier,
    single_line,
    truncate_string,
)


# ── Text Offset Helpers ───────────────────────────────────────

def location_to_offset(text: str, location: Tuple[int, int]) -> int:
    """Convert a TextArea (row, col) location to a flat text offset."""
    row, col = location
    lines = text.split("\n")
    offset = sum(len(lines[i]) + 1 for i in range(min(row, len(lines))))
    return min(offset + col, len(text))


def offset_to_location(text: str, offset: int) -> Tuple[int, int]:
    """Convert a flat text offset back to a TextArea (row, col) location."""
    lines = text.split("\n")
    current = 0
    for row, line in enumerate(lines):
        if current + len(line) >= offset:
            return row, offset - current
        current += len(line) + 1
    return len(lines) - 1, len(lines[-1]) if lines else 0


def _escape(text: str) -> str:
    return text.replace("[", "\\[")


def execution_status(controller: ConsoleController) -> str:
    """Header status once an execution has finished."""
    state = controller.state
    if state is ConsoleState.SUCCEEDED and controller.result is not None:
        result = controller.result
        return f"[green]✓ {len(result)} rows in {format_duration(result.execution_ms)}[/green]"
    if state is ConsoleState.FAILED:
        return "[red]✗ Query failed[/red]"
    return f"[dim]{state.value}[/dim]"



# ── Login Screen ──────────────────────────────────────────────
class LoginScreen(Screen):
    """Master-password gate. Success hands control back to the route guard."""

    def compose(self) -> ComposeResult:
        with Container(id="login-container"):
            yield Label(f"🔒 {app_config.name}", id="login-title")
            yield Label("Enter master password to access the SQL editor", id="login-subtitle")
            yield Input(placeholder="Enter master password", password=True, id="login-password")
            yield Label("", id="login-error")
            yield Button("Login", id="btn-login", variant="primary")
            yield Label("Protected SQL Editor for Database Management", id="login-footer")

    def on_mount(self) -> None:
        self.query_one("#login-password", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._attempt_login()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-login":
            self._attempt_login()

    def _attempt_login(self) -> None:
        field = self.query_one("#login-password", Input)
        password = field.value
        if not password:
            return

        if self.app.session.login(password):
            self.app.navigate(CONSOLE_ROUTE)
        else:
            field.value = ""
            self.query_one("#login-error", Label).update("[bold #f85149]Invalid password[/bold #f85149]")


# ── Console Screen ────────────────────────────────────────────
class ConsoleScreen(Screen):
    """
    Split layout:
        left:   schema tree with search
        top:    SQL editor (+ suggestion list) and AI assistant
        bottom: Results / History tabs
    """

    BINDINGS = [
        ("f5",     "execute",          "Execute"),
        ("f6",     "format_sql",       "Format"),
        ("f7",     "copy_sql",         "Copy"),
        ("f8",     "export_csv",       "Export CSV"),
        ("f9",     "export_xlsx",      "Export Excel"),
        ("ctrl+t", "accept_suggestion", "Complete"),
        ("ctrl+k", "query_table",      "Query table"),
        ("ctrl+r", "reload_schema",    "Reload schema"),
        ("ctrl+o", "logout",           "Logout"),
        ("right_square_bracket", "next_page", "Next page"),
        ("left_square_bracket",  "prev_page", "Prev page"),
    ]

    def __init__(self):
        super().__init__()
        self._suggestions: List[Suggestion] = []
        self._exchange: Optional[AssistantExchange] = None
        self._result_sort: Optional[Tuple[str, bool]] = None
        self._result_page = 0
        self._syncing_editor = False

    # ── Layout ────────────────────────────────────────────────

    def compose(self) -> ComposeResult:
        yield Horizontal(
            Label(f"◆ {app_config.name} v{app_config.version}", id="header-title"),
            Label("", id="header-status"),
            id="header",
        )

        with Horizontal(id="main-container"):
            with Vertical(id="schema-panel"):
                yield Label(" 🗂 Schema", id="schema-panel-header")
                yield Input(placeholder="Search tables...", id="schema-search")
                yield Tree("Tables", id="schema-tree")

            with Vertical(id="work-panel"):
                with Horizontal(id="editor-row"):
                    with Vertical(id="editor-panel"):
                        yield Label(" ✎ SQL Editor", id="editor-header")
                        yield TextArea("", id="sql-editor", show_line_numbers=True)
                        yield OptionList(id="suggestions")

                    with Vertical(id="assistant-panel"):
                        yield Label(" ✨ Query Assistant", id="assistant-header")
                        yield Input(
                            placeholder="E.g., all invoices from last month with their totals",
                            id="assistant-input",
                        )
                        yield ScrollableContainer(
                            Static("Describe the query you want to create", id="assistant-response"),
                            id="assistant-scroll",
                        )
                        yield Button("Use This Query", id="btn-use-query", disabled=True)

                with TabbedContent(id="result-tabs", initial="tab-results"):
                    with TabPane("Results", id="tab-results"):
                        yield Horizontal(
                            Input(placeholder="Search all columns...", id="result-filter"),
                            Label("", id="result-count"),
                            id="result-toolbar",
                        )
                        yield DataTable(id="result-grid", zebra_stripes=True)
                        yield Static("Execute a query to see results", id="result-message")
                    with TabPane("History", id="tab-history"):
                        yield OptionList(id="history-list")

        yield Horizontal(
            Label("", id="status-left"),
            Label("", id="status-right"),
            id="status-bar",
        )
        yield Footer()

    def on_mount(self) -> None:
        tree = self.query_one("#schema-tree", Tree)
        tree.show_root = False
        self.query_one("#suggestions", OptionList).display = False

        editor = self.query_one("#sql-editor", TextArea)
        self._set_editor_text(self.app.controller.sql)
        editor.focus()

        self._refresh_history()
        self._render_outcome()
        self._update_status_bar()
        self._load_tables()

    # ── Schema Browser ────────────────────────────────────────

    @work(thread=True, exclusive=True, group="schema")
    def _load_tables(self) -> None:
        self.app.call_from_thread(self._set_status, "Loading schema...")
        try:
            tables = self.app.schema_cache.list_tables()
        except QueryError as e:
            logger.error(f"Schema load failed: {e}")
            self.app.call_from_thread(self._set_status, f"[red]Failed to load tables: {_escape(str(e))}[/red]")
            return

        self.app.call_from_thread(self._populate_tree, tables)
        self.app.call_from_thread(self._set_status, f"[green]✓ {len(tables)} tables[/green]")

        if app_config.preload_columns and tables:
            failed = self.app.schema_cache.preload_columns(tables, max_workers=app_config.preload_workers)
            if failed:
                self.app.call_from_thread(
                    self._set_status, f"[yellow]Columns unavailable for {len(failed)} tables[/yellow]"
                )

    def _populate_tree(self, tables: List[str]) -> None:
        tree = self.query_one("#schema-tree", Tree)
        tree.clear()
        if not tables:
            tree.root.add_leaf("[dim]No tables found[/dim]")
            return
        for table in tables:
            node = tree.root.add(table, data=("table", table), allow_expand=True)
            cached = self.app.schema_cache.cached_columns(table)
            if cached is not None:
                self._populate_columns(node, table, cached)
        tree.root.expand()

    def _populate_columns(self, node: TreeNode, table: str, columns: List[ColumnInfo]) -> None:
        node.remove_children()
        for column in columns:
            label = f"{'🔑 ' if column.is_primary_key else ''}{column.field} [dim]{_escape(column.type)}[/dim]"
            node.add_leaf(label, data=("column", table, column.field))

    @work(thread=True, exclusive=False, group="columns")
    def _load_columns(self, node: TreeNode, table: str) -> None:
        try:
            columns = self.app.schema_cache.columns_of(table)
        except QueryError as e:
            logger.warning(f"Failed to fetch columns for {table}: {e}")
            self.app.call_from_thread(self._set_status, f"[red]Columns for {table}: {_escape(str(e))}[/red]")
            return
        self.app.call_from_thread(self._populate_columns, node, table, columns)

    def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        data = event.node.data
        if data and data[0] == "table" and not event.node.children:
            self._load_columns(event.node, data[1])

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        data = event.node.data
        if data and data[0] == "column":
            _, table, column = data
            self.app.controller.set_sql(
                f"SELECT {quote_identifier(column)} FROM {quote_identifier(table)} LIMIT 10;"
            )
            self._set_editor_text(self.app.controller.sql)

    def action_query_table(self) -> None:
        node = self.query_one("#schema-tree", Tree).cursor_node
        if node is None or not node.data:
            return
        table = node.data[1]
        self.app.controller.select_from_schema(table)
        self._set_editor_text(self.app.controller.sql)

    def action_reload_schema(self) -> None:
        self.app.schema_cache.reset()
        self._load_tables()

    # ── Input Handlers ────────────────────────────────────────

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "schema-search":
            self._populate_tree(self.app.schema_cache.search(event.value))
        elif event.input.id == "result-filter":
            self._result_page = 0
            self._render_grid()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "assistant-input":
            self._ask_assistant(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-use-query" and self._exchange and self._exchange.has_query():
            self.app.controller.apply_assistant_query(self._exchange.extracted_query)
            self._set_editor_text(self.app.controller.sql)
            self.query_one("#sql-editor", TextArea).focus()

    # ── Editor & Completion ───────────────────────────────────

    def _set_editor_text(self, text: str) -> None:
        editor = self.query_one("#sql-editor", TextArea)
        if editor.text != text:
            self._syncing_editor = True
            editor.load_text(text)
        editor.move_cursor(offset_to_location(text, len(text)))
        self._hide_suggestions()

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if event.text_area.id != "sql-editor":
            return
        text = event.text_area.text
        self.app.controller.set_sql(text)

        if self._syncing_editor:
            self._syncing_editor = False
            return

        cursor = location_to_offset(text, event.text_area.cursor_location)
        typed = text[cursor - 1] if cursor > 0 else ""
        if should_trigger(typed):
            self._show_suggestions(self.app.completion.complete(text, cursor))
        else:
            self._hide_suggestions()

    def _show_suggestions(self, suggestions: List[Suggestion]) -> None:
        self._suggestions = suggestions
        option_list = self.query_one("#suggestions", OptionList)
        option_list.clear_options()
        if not suggestions:
            option_list.display = False
            return
        option_list.add_options(
            f"{s.label}  [dim]{s.kind.value}[/dim]" for s in suggestions
        )
        option_list.highlighted = 0
        option_list.display = True

    def _hide_suggestions(self) -> None:
        self._suggestions = []
        option_list = self.query_one("#suggestions", OptionList)
        option_list.clear_options()
        option_list.display = False

    def action_accept_suggestion(self) -> None:
        if not self._suggestions:
            return
        option_list = self.query_one("#suggestions", OptionList)
        index = option_list.highlighted or 0
        self._apply_suggestion(self._suggestions[index])

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option_list.id == "suggestions" and self._suggestions:
            self._apply_suggestion(self._suggestions[event.option_index])
        elif event.option_list.id == "history-list":
            sql = self.app.controller.recall_history(event.option_index)
            self._set_editor_text(sql)
            self.query_one("#result-tabs", TabbedContent).active = "tab-results"
            self.query_one("#sql-editor", TextArea).focus()

    def _apply_suggestion(self, suggestion: Suggestion) -> None:
        editor = self.query_one("#sql-editor", TextArea)
        text = editor.text
        context = suggestion.context
        if context is None:
            cursor = location_to_offset(text, editor.cursor_location)
            start = end = cursor
        else:
            start, end = context.start, context.end

        insert = suggestion.plain_insert_text
        new_text = text[:start] + insert + text[end:]
        self.app.controller.set_sql(new_text)
        if new_text != text:
            self._syncing_editor = True
            editor.load_text(new_text)
        editor.move_cursor(offset_to_location(new_text, start + len(insert)))
        self._hide_suggestions()
        editor.focus()

    def action_format_sql(self) -> None:
        self._set_editor_text(self.app.controller.format())

    def action_copy_sql(self) -> None:
        self.app.copy_to_clipboard(self.app.controller.sql)
        self.notify("SQL copied to clipboard")

    # ── Query Execution ───────────────────────────────────────

    def action_execute(self) -> None:
        controller = self.app.controller
        if controller.is_executing:
            self.notify("A query is already running", severity="warning")
            return
        if not controller.sql.strip():
            return
        self._set_status("⏳ Executing...")
        self.query_one("#editor-header", Label).update(" ⏳ Executing...")
        self._execute_sql()

    @work(thread=True, exclusive=False, group="execute")
    def _execute_sql(self) -> None:
        try:
            state = self.app.controller.execute()
        except AuthenticationRequired:
            self.app.call_from_thread(self.app.navigate, CONSOLE_ROUTE)
            return
        self.app.call_from_thread(self._on_executed, state)

    def _on_executed(self, state: Optional[ConsoleState]) -> None:
        self.query_one("#editor-header", Label).update(" ✎ SQL Editor")
        self._set_status(execution_status(self.app.controller))
        if state is None:
            return
        self._result_sort = None
        self._result_page = 0
        self._render_outcome()
        self._refresh_history()
        self.query_one("#result-tabs", TabbedContent).active = "tab-results"
        self._update_status_bar()

    def _render_outcome(self) -> None:
        controller = self.app.controller
        message = self.query_one("#result-message", Static)
        if controller.state is ConsoleState.FAILED:
            self.query_one("#result-grid", DataTable).clear(columns=True)
            self.query_one("#result-count", Label).update("")
            message.update(f"[bold red]ERROR[/bold red][red]: {_escape(controller.error_message or '')}[/red]")
            message.display = True
        elif controller.result is not None:
            message.display = False
            self._render_grid()
        else:
            message.update("Execute a query to see results")
            message.display = True

    def _current_view(self) -> Optional[QueryResult]:
        result = self.app.controller.result
        if result is None:
            return None
        term = self.query_one("#result-filter", Input).value
        view = result.filter(term)
        if self._result_sort:
            view = view.sorted_by(*self._result_sort)
        return view

    def _render_grid(self) -> None:
        view = self._current_view()
        grid = self.query_one("#result-grid", DataTable)
        grid.clear(columns=True)
        if view is None:
            return

        size = app_config.page_size
        self._result_page = min(self._result_page, view.page_count(size) - 1)
        page = view.page(self._result_page, size)

        for column in view.columns:
            marker = ""
            if self._result_sort and self._result_sort[0] == column:
                marker = " ▼" if self._result_sort[1] else " ▲"
            grid.add_column(f"{column}{marker}", key=column)
        for row in page.as_matrix():
            grid.add_row(*["NULL" if v is None else str(v) for v in row])

        self.query_one("#result-count", Label).update(
            f" {len(view)} rows │ page {self._result_page + 1}/{view.page_count(size)} "
        )

    def on_data_table_header_selected(self, event: DataTable.HeaderSelected) -> None:
        column = event.column_key.value
        if self._result_sort and self._result_sort[0] == column:
            self._result_sort = (column, not self._result_sort[1])
        else:
            self._result_sort = (column, False)
        self._render_grid()

    def action_next_page(self) -> None:
        self._result_page += 1
        self._render_grid()

    def action_prev_page(self) -> None:
        self._result_page = max(0, self._result_page - 1)
        self._render_grid()

    # ── History ───────────────────────────────────────────────

    def _refresh_history(self) -> None:
        history_list = self.query_one("#history-list", OptionList)
        history_list.clear_options()
        history_list.add_options(
            f"[dim]{format_timestamp(e.timestamp)}[/dim]  {_escape(truncate_string(single_line(e.sql), 120))}"
            for e in self.app.controller.history
        )

    # ── Assistant ─────────────────────────────────────────────

    @work(thread=True, exclusive=True, group="assistant")
    def _ask_assistant(self, prompt: str) -> None:
        self.app.call_from_thread(self._set_assistant_text, "[dim]⏳ Generating...[/dim]", False)
        try:
            exchange = self.app.assistant.ask(prompt)
        except EmptyPrompt:
            self.app.call_from_thread(self._set_assistant_text, "Describe the query you want to create", False)
            return
        except AssistantError as e:
            logger.error(f"Assistant error: {e}")
            self.app.call_from_thread(
                self._set_assistant_text, f"[bold #f85149]⚠️ {_escape(str(e))}[/bold #f85149]", False
            )
            return

        self._exchange = exchange
        text = _escape(exchange.explanation)
        if exchange.has_query():
            text += f"\n\n[dim]Generated SQL:[/dim]\n[bold #79c0ff]{_escape(exchange.extracted_query)}[/bold #79c0ff]"
        self.app.call_from_thread(self._set_assistant_text, text, exchange.has_query())

    def _set_assistant_text(self, text: str, can_use: bool) -> None:
        self.query_one("#assistant-response", Static).update(text)
        self.query_one("#btn-use-query", Button).disabled = not can_use

    # ── Export ────────────────────────────────────────────────

    def action_export_csv(self) -> None:
        self._export("csv")

    def action_export_xlsx(self) -> None:
        self._export("xlsx")

    def _export(self, kind: str) -> None:
        controller = self.app.controller
        path = Path.cwd() / f"query-results.{kind}"
        try:
            if kind == "csv":
                controller.export_csv(path)
            else:
                controller.export_xlsx(path)
        except NothingToExport as e:
            self.notify(str(e), severity="warning")
            return
        except OSError as e:
            logger.error(f"Export failed: {e}")
            self.notify(f"Export failed: {e}", severity="error")
            return
        self.notify(f"Saved {path}")

    # ── Session ───────────────────────────────────────────────

    def action_logout(self) -> None:
        self.app.session.logout()
        self.app.navigate(CONSOLE_ROUTE)

    # ── UI Helpers ────────────────────────────────────────────

    def _set_status(self, text: str) -> None:
        try:
            self.query_one("#header-status", Label).update(text)
        except Exception as e:
            logger.debug(f"_set_status: {e}")

    def _update_status_bar(self) -> None:
        controller = self.app.controller
        state_colors = {
            ConsoleState.IDLE: "dim",
            ConsoleState.EXECUTING: "yellow",
            ConsoleState.SUCCEEDED: "green",
            ConsoleState.FAILED: "red",
        }
        color = state_colors[controller.state]
        rows = "Rows: -"
        if controller.result is not None:
            rows = f"Rows: {len(controller.result)} in {format_duration(controller.result.execution_ms)}"
        self.query_one("#status-left", Label).update(
            f"[{color}]● {controller.state.value}[/{color}]  │  {rows}  │  History: {len(controller.history)}"
        )
        self.query_one("#status-right", Label).update(f"{gateway_config.url}")


# ── Main SQLDesk TUI Application ──────────────────────────────
class SQLDeskApp(App):
    """
    Wires the core services together and routes between the login
    and console screens through the RouteGuard.
    """

    CSS_PATH = str(Path(__file__).parent / "sqldesk.tcss")
    TITLE = "SQLDesk — Remote SQL Console"

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
    ]

    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        gateway: Optional[RemoteQueryGateway] = None,
        session: Optional[SessionContext] = None,
        assistant: Optional[QueryAssistantSession] = None,
    ):
        super().__init__()
        self.session = session or SessionContext()
        self.guard = RouteGuard(self.session)
        self.gateway = gateway or RemoteQueryGateway()
        self.schema_cache = SchemaCache(self.gateway)
        self.completion = EditorCompletionProvider(self.schema_cache)
        self.assistant = assistant or QueryAssistantSession(schema_cache=self.schema_cache)
        self.controller = ConsoleController(self.gateway, session=self.session)

    def on_mount(self) -> None:
        self.navigate(CONSOLE_ROUTE)

    def navigate(self, route: str) -> None:
        """Show the screen the guard allows for the requested route."""
        target = self.guard.resolve(route)
        logger.debug(f"Navigate {route} → {target}")
        screen = LoginScreen() if target == LOGIN_ROUTE else ConsoleScreen()
        if len(self.screen_stack) > 1:
            self.switch_screen(screen)
        else:
            self.push_screen(screen)

    def action_quit(self) -> None:
        self.gateway.close()
        self.exit()
