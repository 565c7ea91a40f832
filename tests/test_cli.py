from click.testing import CliRunner
from rich.console import Console
from prompt_toolkit.completion import CompleteEvent
from prompt_toolkit.document import Document

from core.auth import SessionContext
from core.completion import EditorCompletionProvider
from core.console import ConsoleState
from core.errors import MalformedResponse
from core.models import AssistantExchange
from core.schema_cache import SchemaCache
from main import cli
from simple_cli import SimpleCLI, SQLCompleter


def completions_for(text, gateway):
    cache = SchemaCache(gateway)
    cache.list_tables()
    completer = SQLCompleter(EditorCompletionProvider(cache))
    document = Document(text, cursor_position=len(text))
    return list(completer.get_completions(document, CompleteEvent()))


def test_completer_replaces_current_word(erp_gateway):
    completions = completions_for("SELECT * FROM llx_us", erp_gateway)
    assert [c.text for c in completions] == ["llx_user", "llx_usergroup"]
    assert all(c.start_position == -6 for c in completions)


def test_completer_inserts_plain_function_text(erp_gateway):
    [completion] = completions_for("SELECT su", erp_gateway)
    assert completion.text == "SUM(column)"
    assert completion.display_meta_text == "Function"


def test_completer_ignores_slash_commands(erp_gateway):
    assert completions_for("/desc", erp_gateway) == []


def test_format_command():
    result = CliRunner().invoke(cli, ["format", "SELECT a FROM b WHERE c=1"])
    assert result.exit_code == 0
    assert result.output == "SELECT a\nFROM b\nWHERE c=1\n"


def test_run_rejects_wrong_password():
    result = CliRunner().invoke(cli, ["run", "SELECT 1", "--password", "definitely-wrong"])
    assert result.exit_code == 1


class CannedAssistant:
    is_available = True

    def __init__(self, exchange):
        self.exchange = exchange

    def ask(self, prompt):
        return self.exchange


def make_simple_cli(gateway, assistant=None):
    session = SessionContext(password="secret")
    session.login("secret")
    console = Console(record=True, width=120, force_terminal=False)
    return SimpleCLI(gateway=gateway, session=session, assistant=assistant, console=console)


def test_ask_prints_bracketed_explanation_verbatim(erp_gateway):
    exchange = AssistantExchange(
        prompt="q",
        raw_response="Use arr[/i] indexing [/b]",
        explanation="Use arr[/i] indexing [/b]",
    )
    cli_app = make_simple_cli(erp_gateway, CannedAssistant(exchange))

    cli_app.handle_input("/ask q")

    assert "Use arr[/i] indexing [/b]" in cli_app.console.export_text()


def test_describe_prints_bracketed_table_name(fake_gateway):
    gateway = fake_gateway({"SHOW COLUMNS FROM `odd[/b]`;": [{"Field": "id", "Type": "int"}]})
    cli_app = make_simple_cli(gateway, CannedAssistant(None))

    cli_app.handle_input("/describe odd[/b]")

    output = cli_app.console.export_text()
    assert "odd[/b]" in output
    assert "- id (int)" in output


def test_malformed_rows_are_reported_as_errors(fake_gateway):
    gateway = fake_gateway(default=MalformedResponse("Row 0 is not a JSON object"))
    cli_app = make_simple_cli(gateway, CannedAssistant(None))

    cli_app.handle_input("SELECT 1")

    assert "ERROR: Row 0 is not a JSON object" in cli_app.console.export_text()
    assert cli_app.controller.state is ConsoleState.FAILED
