import logging
from functools import wraps
from flask import Blueprint, request, jsonify, current_app, Response

from laterlist import Command, CommandKind, CommandResult, LaterListError, ValidationError

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

ERROR_STATUS = {
	"NotFound": 404,
	"ValidationError": 400,
	"EmptyInputRejected": 400,
	"LastTabProtected": 409,
	"StorageError": 500,
}


def get_laterlist():
	"""Get the LaterList instance serving this app."""
	return current_app.config["LATERLIST_INSTANCE"]


def error_status(error: LaterListError) -> int:
	return ERROR_STATUS.get(type(error).__name__, 400)


def handle_errors(f):
	"""Decorator turning domain errors into JSON error responses."""
	@wraps(f)
	def decorated(*args, **kwargs):
		try:
			return f(*args, **kwargs)
		except LaterListError as e:
			logger.warning(f"{request.method} {request.path} failed: {e}")
			return jsonify({"error": str(e), "errorType": type(e).__name__}), error_status(e)
	return decorated


def command_response(result: CommandResult):
	body = result.to_dict()
	if result.ok or result.silent:
		return jsonify(body)
	return jsonify(body), ERROR_STATUS.get(result.error_type, 400)


def run_command(kind: CommandKind, target_id: str = None, **args):
	return command_response(get_laterlist().dispatch(Command(kind, target_id, args)))


# ============ Document ============

@api_bp.route("/document", methods=["GET"])
def get_document():
	"""Whole collection plus the active view."""
	laterlist = get_laterlist()
	return jsonify({
		"document": laterlist.document.to_dict(),
		"activeTabId": laterlist.active_tab_id,
	})


@api_bp.route("/stats", methods=["GET"])
def get_stats():
	return jsonify(get_laterlist().stats())


@api_bp.route("/command", methods=["POST"])
@handle_errors
def post_command():
	"""Apply a tagged command object: ``{"kind": "moveToTrash", "targetId": "..."}``."""
	command = Command.from_dict(request.get_json(silent=True))
	return command_response(get_laterlist().dispatch(command))


# ============ Tabs ============

@api_bp.route("/tabs", methods=["POST"])
def create_tab():
	data = request.get_json(silent=True) or {}
	result = get_laterlist().dispatch(Command(CommandKind.ADD_TAB, args={"name": data.get("name", "")}))
	if result.ok:
		return jsonify(result.to_dict()), 201
	return command_response(result)


@api_bp.route("/tabs/<tab_id>", methods=["PATCH"])
def rename_tab(tab_id: str):
	data = request.get_json(silent=True) or {}
	return run_command(CommandKind.RENAME_TAB, tab_id, name=data.get("name", ""))


@api_bp.route("/tabs/<tab_id>", methods=["DELETE"])
def delete_tab(tab_id: str):
	return run_command(CommandKind.DELETE_TAB, tab_id)


@api_bp.route("/tabs/<tab_id>/activate", methods=["POST"])
def activate_tab(tab_id: str):
	return run_command(CommandKind.SWITCH_TAB, tab_id)


@api_bp.route("/tabs/<tab_id>/move", methods=["POST"])
def move_tab(tab_id: str):
	data = request.get_json(silent=True) or {}
	return run_command(CommandKind.MOVE_TAB, tab_id, newIndex=data.get("index", 0))


@api_bp.route("/tabs/<tab_id>/containers", methods=["POST"])
def create_container(tab_id: str):
	data = request.get_json(silent=True) or {}
	return run_command(CommandKind.ADD_CONTAINER, tab_id, name=data.get("name", ""))


# ============ Containers ============

@api_bp.route("/containers/<container_id>", methods=["PATCH"])
def rename_container(container_id: str):
	data = request.get_json(silent=True) or {}
	return run_command(
		CommandKind.RENAME_CONTAINER, container_id,
		name=data.get("name", ""), tabId=data.get("tabId")
	)


@api_bp.route("/containers/<container_id>", methods=["DELETE"])
def delete_container(container_id: str):
	return run_command(CommandKind.DELETE_CONTAINER, container_id, tabId=request.args.get("tabId"))


@api_bp.route("/containers/<container_id>/trash-all", methods=["POST"])
def trash_all(container_id: str):
	return run_command(CommandKind.TRASH_ALL_IN_CONTAINER, container_id)


@api_bp.route("/containers/<container_id>/move", methods=["POST"])
def move_container(container_id: str):
	data = request.get_json(silent=True) or {}
	return run_command(
		CommandKind.MOVE_CONTAINER, container_id,
		fromTabId=data.get("fromTabId"), toTabId=data.get("toTabId"), newOrder=data.get("newOrder") or []
	)


@api_bp.route("/containers/<container_id>/links", methods=["POST"])
def create_link(container_id: str):
	"""Save a page into a container (the 'read later' popup)."""
	data = request.get_json(silent=True) or {}
	return run_command(
		CommandKind.ADD_LINK, container_id,
		tabId=data.get("tabId"), url=data.get("url", ""), title=data.get("title", "")
	)


# ============ Links ============

@api_bp.route("/links/<link_id>", methods=["PATCH"])
def rename_link(link_id: str):
	data = request.get_json(silent=True) or {}
	return run_command(CommandKind.RENAME_LINK, link_id, title=data.get("title", ""))


@api_bp.route("/links/<link_id>", methods=["DELETE"])
def delete_link(link_id: str):
	"""Move to trash, or delete outright with ``?permanent=1``."""
	if request.args.get("permanent") in ("1", "true", "yes"):
		return run_command(CommandKind.DELETE_LINK, link_id)
	return run_command(CommandKind.MOVE_TO_TRASH, link_id)


@api_bp.route("/links/<link_id>/move", methods=["POST"])
def move_link(link_id: str):
	"""Drag-and-drop result: source/destination containers and the drop index."""
	data = request.get_json(silent=True) or {}
	return run_command(
		CommandKind.MOVE_LINK, link_id,
		fromTabId=data.get("fromTabId"), fromContainerId=data.get("fromContainerId"),
		toTabId=data.get("toTabId"), toContainerId=data.get("toContainerId"),
		destIndex=data.get("destIndex", 0)
	)


# ============ Trash ============

@api_bp.route("/trash", methods=["GET"])
def list_trash():
	laterlist = get_laterlist()
	return jsonify({"trash": [link.to_dict() for link in laterlist.document.trash]})


@api_bp.route("/trash", methods=["DELETE"])
def empty_trash():
	return run_command(CommandKind.EMPTY_TRASH)


@api_bp.route("/trash/<link_id>/restore", methods=["POST"])
def restore_link(link_id: str):
	return run_command(CommandKind.RESTORE_FROM_TRASH, link_id)


@api_bp.route("/trash/<link_id>", methods=["DELETE"])
def purge_link(link_id: str):
	return run_command(CommandKind.PERMANENT_DELETE, link_id)


# ============ Import / Export ============

def _flag(value, default: bool = True) -> bool:
	if value is None:
		return default
	if isinstance(value, bool):
		return value
	return str(value).lower() not in ("0", "false", "no", "off")


@api_bp.route("/import", methods=["POST"])
@handle_errors
def import_data():
	"""
	Import a backup or a tab dump, uploaded as ``file`` or sent as the request body.
	``merge`` (default true) unions with the current collection; false replaces it.
	"""
	laterlist = get_laterlist()
	merge = _flag(request.values.get("merge"))

	if "file" in request.files:
		upload = request.files["file"]
		try:
			text = upload.read().decode("utf-8")
		except UnicodeDecodeError:
			return jsonify({"error": "File is not UTF-8 text"}), 400
		source = upload.filename or "upload"
	else:
		text = request.get_data(as_text=True)
		source = "request body"

	if not text.strip():
		return jsonify({"error": "Nothing to import"}), 400

	logger.info(f"Importing from {source} (merge={merge})")
	added = laterlist.import_text(text, merge=merge)
	return jsonify({"success": True, "links": added, "merge": merge})


@api_bp.route("/export", methods=["GET"])
def export_data():
	filename, payload = get_laterlist().export_document()
	return Response(
		payload,
		mimetype="application/json",
		headers={"Content-Disposition": f"attachment; filename={filename}"}
	)


# ============ Pull open tabs ============

@api_bp.route("/pull", methods=["POST"])
@handle_errors
def pull_tabs():
	data = request.get_json(silent=True) or {}
	timeout = data.get("timeout")
	if timeout is not None:
		try:
			timeout = float(timeout)
		except (TypeError, ValueError):
			raise ValidationError("must be a number of seconds", "timeout")
		if timeout < 0:
			raise ValidationError("cannot be negative", "timeout")
	result = get_laterlist().pull_tabs(timeout)
	if result.no_responders:
		message = "No open tabs responded"
	else:
		message = f"Pulled {len(result.links)} pages from {result.responders} tabs"
	return jsonify({
		"links": len(result.links),
		"responders": result.responders,
		"noResponders": result.no_responders,
		"message": message,
	})
