"""
Tagged command objects produced by the presentation layer.

A command names what the user did (``deleteTab``, ``moveToTrash``...) and carries the
ids it targets; ``LaterList.dispatch`` is the single place that turns it into a
mutation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ValidationError


class CommandKind(Enum):
	ADD_TAB = "addTab"
	DELETE_TAB = "deleteTab"
	RENAME_TAB = "renameTab"
	SWITCH_TAB = "switchTab"
	MOVE_TAB = "moveTab"
	ADD_CONTAINER = "addContainer"
	RENAME_CONTAINER = "renameContainer"
	DELETE_CONTAINER = "deleteContainer"
	TRASH_ALL_IN_CONTAINER = "trashAllInContainer"
	MOVE_CONTAINER = "moveContainer"
	ADD_LINK = "addLink"
	RENAME_LINK = "renameLink"
	DELETE_LINK = "deleteLink"
	MOVE_TO_TRASH = "moveToTrash"
	RESTORE_FROM_TRASH = "restoreFromTrash"
	PERMANENT_DELETE = "permanentDelete"
	EMPTY_TRASH = "emptyTrash"
	MOVE_LINK = "moveLink"


# Kinds for which a vanished id is a silent no-op rather than a reported failure
NOOP_ON_MISSING = frozenset({
	CommandKind.DELETE_LINK,
	CommandKind.MOVE_TO_TRASH,
	CommandKind.RESTORE_FROM_TRASH,
	CommandKind.PERMANENT_DELETE,
})


@dataclass
class Command:
	kind: CommandKind
	target_id: Optional[str] = None
	args: Dict[str, Any] = field(default_factory=dict)

	@classmethod
	def from_dict(cls, data: dict) -> 'Command':
		"""Build from ``{"kind": "deleteTab", "targetId": "...", ...extra args}``."""
		if not isinstance(data, dict):
			raise ValidationError("command must be an object")
		raw_kind = data.get("kind")
		try:
			kind = CommandKind(raw_kind)
		except ValueError:
			raise ValidationError(f"unknown command kind '{raw_kind}'", "kind")
		args = {k: v for k, v in data.items() if k not in ("kind", "targetId")}
		return cls(kind=kind, target_id=data.get("targetId"), args=args)

	def to_dict(self) -> dict:
		data = {"kind": self.kind.value}
		if self.target_id is not None:
			data["targetId"] = self.target_id
		data.update(self.args)
		return data


@dataclass
class CommandResult:
	kind: CommandKind
	ok: bool
	value: Any = None
	error: Optional[str] = None
	error_type: Optional[str] = None
	silent: bool = False  # Failure the UI should not announce

	def to_dict(self) -> dict:
		value = self.value
		if hasattr(value, "to_dict"):
			value = value.to_dict()
		return {
			"kind": self.kind.value,
			"ok": self.ok,
			"value": value,
			"error": self.error,
			"errorType": self.error_type,
			"silent": self.silent,
		}
