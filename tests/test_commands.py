import pytest

from laterlist import Command, CommandKind, ValidationError
from conftest import link_ids


def test_every_kind_has_a_handler(laterlist):
	assert set(laterlist._handlers()) == set(CommandKind)


def test_move_to_trash(laterlist):
	result = laterlist.dispatch(Command(CommandKind.MOVE_TO_TRASH, "link-1"))
	assert result.ok
	assert [l.id for l in laterlist.document.trash] == ["link-1"]


@pytest.mark.parametrize("kind", [
	CommandKind.DELETE_LINK,
	CommandKind.MOVE_TO_TRASH,
	CommandKind.RESTORE_FROM_TRASH,
	CommandKind.PERMANENT_DELETE,
])
def test_vanished_ids_are_silent_noops(laterlist, kind):
	before = laterlist.document.to_dict()
	result = laterlist.dispatch(Command(kind, "ghost"))
	assert not result.ok
	assert result.silent
	assert result.error_type == "NotFound"
	assert laterlist.document.to_dict() == before


def test_missing_tab_is_reported(laterlist):
	result = laterlist.dispatch(Command(CommandKind.RENAME_TAB, "ghost", {"name": "x"}))
	assert not result.ok
	assert not result.silent
	assert result.error_type == "NotFound"


def test_blank_name_is_silent(laterlist):
	result = laterlist.dispatch(Command(CommandKind.ADD_TAB, args={"name": "   "}))
	assert not result.ok
	assert result.silent
	assert result.error_type == "EmptyInputRejected"
	assert len(laterlist.document.tabs) == 2


def test_last_tab_protected(laterlist):
	assert laterlist.dispatch(Command(CommandKind.DELETE_TAB, "tab-2")).ok
	result = laterlist.dispatch(Command(CommandKind.DELETE_TAB, "tab-1"))
	assert not result.ok
	assert result.error_type == "LastTabProtected"
	assert [t.id for t in laterlist.document.tabs] == ["tab-1"]


def test_add_tab_result_serialises_value(laterlist):
	result = laterlist.dispatch(Command(CommandKind.ADD_TAB, args={"name": "Later"}))
	body = result.to_dict()
	assert body["ok"] and body["kind"] == "addTab"
	assert body["value"]["name"] == "Later"
	assert body["value"]["containers"] == []


def test_move_link_from_wire_format(laterlist):
	command = Command.from_dict({
		"kind": "moveLink",
		"targetId": "link-3",
		"fromTabId": "tab-1",
		"fromContainerId": "container-2",
		"toTabId": "tab-2",
		"toContainerId": "container-3",
		"destIndex": 0,
	})
	assert laterlist.dispatch(command).ok
	assert link_ids(laterlist.find_container("tab-2", "container-3")) == ["link-3", "link-4"]


def test_command_round_trip():
	data = {"kind": "moveTab", "targetId": "tab-2", "newIndex": 0}
	assert Command.from_dict(data).to_dict() == data


@pytest.mark.parametrize("data", [None, {}, {"kind": "explode"}])
def test_unknown_commands_rejected(data):
	with pytest.raises(ValidationError):
		Command.from_dict(data)


@pytest.mark.parametrize("command", [
	Command(CommandKind.MOVE_TAB, "tab-2", {"newIndex": "x"}),
	Command(CommandKind.MOVE_TAB, "tab-2", {"newIndex": True}),
	Command(CommandKind.MOVE_LINK, "link-1", {
		"fromTabId": "tab-1", "fromContainerId": "container-1",
		"toTabId": "tab-1", "toContainerId": "container-2", "destIndex": None,
	}),
])
def test_bad_index_is_reported(laterlist, command):
	before = laterlist.document.to_dict()
	result = laterlist.dispatch(command)
	assert not result.ok
	assert not result.silent
	assert result.error_type == "ValidationError"
	assert laterlist.document.to_dict() == before


def test_numeric_string_index_is_accepted(laterlist):
	assert laterlist.dispatch(Command(CommandKind.MOVE_TAB, "tab-2", {"newIndex": "0"})).ok
	assert [t.id for t in laterlist.document.tabs] == ["tab-2", "tab-1"]
