import pytest

from core.console import ConsoleController, ConsoleState
from core.errors import QueryRejected
from ui.tui import execution_status, location_to_offset, offset_to_location

TEXT = "SELECT *\nFROM llx_user\nWHERE rowid = 1"


@pytest.mark.parametrize("location,offset", [
    ((0, 0), 0),
    ((0, 8), 8),
    ((1, 0), 9),
    ((1, 4), 13),
    ((2, 15), len(TEXT)),
])
def test_location_offset_conversion(location, offset):
    assert location_to_offset(TEXT, location) == offset
    assert offset_to_location(TEXT, offset) == location


def test_offset_past_end_is_clamped():
    assert location_to_offset("abc", (5, 5)) == 3


def test_execution_status_after_success(fake_gateway):
    controller = ConsoleController(fake_gateway(default=[{"id": 1}, {"id": 2}]))
    controller.set_sql("SELECT id FROM t")
    controller.execute()

    assert execution_status(controller) == "[green]✓ 2 rows in 3ms[/green]"


def test_execution_status_after_failure(fake_gateway):
    controller = ConsoleController(fake_gateway(default=QueryRejected("nope")))
    controller.set_sql("SELECT 1")
    controller.execute()

    assert controller.state is ConsoleState.FAILED
    assert execution_status(controller) == "[red]✗ Query failed[/red]"


def test_execution_status_never_reports_executing_when_idle(fake_gateway):
    controller = ConsoleController(fake_gateway())
    status = execution_status(controller)
    assert status == "[dim]idle[/dim]"
    assert "Executing" not in status
