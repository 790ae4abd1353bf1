import json
import logging
import threading
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .collector import CollectionResult, TabCollector
from .commands import Command, CommandKind, CommandResult, NOOP_ON_MISSING
from .config import AppConfig
from .errors import (
	LaterListError, NotFound, ValidationError, EmptyInputRejected, LastTabProtected, StorageError
)
from .gateway import PersistenceGateway
from .ids import new_id
from .importers import get_importer_for
from .merge import merge as merge_documents
from .models import Document, Tab, Container, Link, TRASH_VIEW
from .storage import KeyValueStore, SqliteStore
from .validation import parse_document

logger = logging.getLogger(__name__)


class _Transaction:
	"""Working copy of the state a single operation is allowed to change."""

	def __init__(self, document: Document, active_tab_id: str):
		self.document = document
		self.active_tab_id = active_tab_id


def _clean_name(name: Optional[str], what: str) -> str:
	cleaned = (name or "").strip()
	if not cleaned:
		raise EmptyInputRejected(f"{what} cannot be empty")
	return cleaned


def _index(value, what: str) -> int:
	if isinstance(value, bool):
		raise ValidationError("must be an integer", what)
	try:
		return int(value)
	except (TypeError, ValueError):
		raise ValidationError("must be an integer", what)


def _clamp(index: int, length: int) -> int:
	return max(0, min(index, length))


class LaterList:
	def __init__(self, store: KeyValueStore, config: Optional[AppConfig] = None):
		"""
		Open a link collection.
		:param store: Key-value store holding the document (shared with other processes).
		:param config: Application settings; defaults are used when omitted.
		"""
		self.config = config if config is not None else AppConfig()
		self.store = store
		self.gateway = PersistenceGateway(store, self.config.storage_key, self.config.active_tab_key)
		self.collector = TabCollector(store, timeout=self.config.pull_timeout)

		# One writer at a time; remote replacements that arrive mid-transaction wait here
		self._lock = threading.RLock()
		self._in_transaction = False
		self._pending_remote: deque = deque()
		self._change_callbacks: List[Callable[[str], None]] = []

		document = self.gateway.load()
		if document is None:
			document = Document.default()
			self.gateway.save(document)
			logger.info("Created document from default seed")
		self.document = document
		self.active_tab_id = self._fallback_active(self.gateway.load_active_tab())

		self._subscription = self.gateway.subscribe(self._on_remote_document)

	@classmethod
	def open(cls, data_dir: str) -> 'LaterList':
		"""Open (or create) a collection stored under ``data_dir``."""
		root = Path(data_dir).resolve()
		root.mkdir(parents=True, exist_ok=True)
		config = AppConfig.load(root / "config.json")
		if not config.validate():
			logger.warning("Invalid config, using defaults")
			config = AppConfig()
		store = SqliteStore(str(root / "laterlist.sqlite"), poll_interval=config.poll_interval)
		logger.info(f"Opened collection at {root}")
		return cls(store, config)

	def close(self):
		self.gateway.unsubscribe(self._subscription)
		self.store.close()

	# --- Change notification ---

	def on_change(self, callback: Callable[[str], None]):
		"""Register ``callback(reason)``, called after every committed change."""
		self._change_callbacks.append(callback)

	def _emit_change(self, reason: str):
		for callback in list(self._change_callbacks):
			try:
				callback(reason)
			except Exception as e:
				logger.error(f"Change callback failed: {e}", exc_info=True)

	def _on_remote_document(self, document: Document):
		with self._lock:
			if self._in_transaction:
				logger.debug("Remote change arrived mid-transaction, queued")
				self._pending_remote.append(document)
				return
			self._apply_remote(document)

	def _apply_remote(self, document: Document):
		self.document = document
		self.active_tab_id = self._fallback_active(self.active_tab_id)
		logger.info("Replaced document with remote change")
		self._emit_change("remote")

	def _drain_remote(self):
		while self._pending_remote:
			self._apply_remote(self._pending_remote.popleft())

	def _fallback_active(self, tab_id: Optional[str], document: Optional[Document] = None) -> str:
		document = document if document is not None else self.document
		if tab_id == TRASH_VIEW:
			return TRASH_VIEW
		if tab_id and document.tab_by_id(tab_id) is not None:
			return tab_id
		return document.tabs[0].id

	# --- Transactions ---

	def _transaction(self, reason: str, operation: Callable[[_Transaction], Any]) -> Any:
		"""
		Run ``operation`` against a copy of the state and commit it only if it succeeds
		and the save goes through. On any failure the live state is left untouched.
		"""
		with self._lock:
			txn = _Transaction(self.document.copy(), self.active_tab_id)
			self._in_transaction = True
			committed = False
			try:
				value = operation(txn)
				if not txn.document.tabs:
					raise LastTabProtected("a collection must keep at least one tab")

				previous_document, previous_active = self.document, self.active_tab_id
				self.document = txn.document
				self.active_tab_id = self._fallback_active(txn.active_tab_id, txn.document)
				try:
					self.gateway.save(self.document)
				except StorageError:
					self.document, self.active_tab_id = previous_document, previous_active
					raise
				if self.active_tab_id != previous_active:
					self.gateway.save_active_tab(self.active_tab_id)
				committed = True
			finally:
				self._in_transaction = False
				if not committed:
					self._drain_remote()

			self._emit_change(reason)
			self._drain_remote()
			return value

	# --- Resolution helpers (run against a transaction's document) ---

	def _tab(self, document: Document, tab_id: str) -> Tab:
		tab = document.tab_by_id(tab_id)
		if tab is None:
			raise NotFound("Tab", tab_id)
		return tab

	def _container_in(self, document: Document, tab_id: str, container_id: str) -> Container:
		container = self._tab(document, tab_id).container_by_id(container_id)
		if container is None:
			raise NotFound("Container", container_id)
		return container

	def _scope_tab(self, txn: _Transaction, tab_id: Optional[str]) -> Tab:
		"""The tab an active-tab-scoped operation works in."""
		if tab_id is None:
			tab_id = txn.active_tab_id
		if tab_id == TRASH_VIEW:
			raise NotFound("Tab", TRASH_VIEW)
		return self._tab(txn.document, tab_id)

	def _import_target(self, txn: _Transaction) -> Tab:
		tab = txn.document.tab_by_id(txn.active_tab_id)
		return tab if tab is not None else txn.document.tabs[0]

	# --- Read accessors ---

	def find_tab(self, tab_id: str) -> Tab:
		"""Live tab object; treat as read-only."""
		with self._lock:
			return self._tab(self.document, tab_id)

	def find_container(self, tab_id: str, container_id: str) -> Container:
		with self._lock:
			return self._container_in(self.document, tab_id, container_id)

	def find_link(self, tab_id: str, container_id: str, link_id: str) -> Link:
		with self._lock:
			container = self._container_in(self.document, tab_id, container_id)
			idx = container.link_index(link_id)
			if idx == -1:
				raise NotFound("Link", link_id)
			return container.links[idx]

	def active_tab(self) -> Tab:
		with self._lock:
			if self.active_tab_id == TRASH_VIEW:
				raise NotFound("Tab", TRASH_VIEW)
			return self._tab(self.document, self.active_tab_id)

	def total_links(self) -> int:
		with self._lock:
			return self.document.total_links()

	def total_links_in_tab(self, tab_id: str) -> int:
		with self._lock:
			return self._tab(self.document, tab_id).link_count()

	def stats(self) -> Dict[str, int]:
		with self._lock:
			doc = self.document
			return {
				"tabs": len(doc.tabs),
				"containers": sum(len(t.containers) for t in doc.tabs),
				"links": doc.total_links() - len(doc.trash),
				"trash": len(doc.trash),
				"total": doc.total_links(),
			}

	# --- Tabs ---

	def add_tab(self, name: str) -> Tab:
		name = _clean_name(name, "Tab name")

		def op(txn: _Transaction) -> Tab:
			tab = Tab(id=new_id("tab"), name=name)
			txn.document.tabs.append(tab)
			txn.active_tab_id = tab.id
			return tab

		tab = self._transaction("add_tab", op)
		logger.info(f"Added tab '{name}' ({tab.id})")
		return tab

	def delete_tab(self, tab_id: str):
		def op(txn: _Transaction):
			idx = txn.document.tab_index(tab_id)
			if idx == -1:
				raise NotFound("Tab", tab_id)
			if len(txn.document.tabs) == 1:
				raise LastTabProtected("Cannot delete the only remaining tab")
			del txn.document.tabs[idx]
			if txn.active_tab_id == tab_id:
				txn.active_tab_id = txn.document.tabs[0].id

		self._transaction("delete_tab", op)
		logger.info(f"Deleted tab {tab_id}")

	def rename_tab(self, tab_id: str, name: str):
		name = _clean_name(name, "Tab name")

		def op(txn: _Transaction):
			self._tab(txn.document, tab_id).name = name

		self._transaction("rename_tab", op)
		logger.info(f"Renamed tab {tab_id} to '{name}'")

	def switch_tab(self, tab_id: str):
		"""Make ``tab_id`` (or ``TRASH_VIEW``) the active view."""
		with self._lock:
			if tab_id != TRASH_VIEW:
				self._tab(self.document, tab_id)
			if tab_id == self.active_tab_id:
				return
			self.active_tab_id = tab_id
			self.gateway.save_active_tab(tab_id)
		logger.debug(f"Switched to {tab_id}")
		self._emit_change("switch_tab")

	def move_tab(self, tab_id: str, new_index: int):
		new_index = _index(new_index, "newIndex")

		def op(txn: _Transaction):
			tabs = txn.document.tabs
			idx = txn.document.tab_index(tab_id)
			if idx == -1:
				raise NotFound("Tab", tab_id)
			tab = tabs.pop(idx)
			tabs.insert(_clamp(new_index, len(tabs)), tab)

		self._transaction("move_tab", op)
		logger.info(f"Moved tab {tab_id} to position {new_index}")

	# --- Containers ---

	def add_container(self, tab_id: str, name: str) -> Container:
		name = _clean_name(name, "Container name")

		def op(txn: _Transaction) -> Container:
			container = Container(id=new_id("container"), name=name)
			self._tab(txn.document, tab_id).containers.append(container)
			return container

		container = self._transaction("add_container", op)
		logger.info(f"Added container '{name}' ({container.id}) to tab {tab_id}")
		return container

	def rename_container(self, container_id: str, name: str, tab_id: Optional[str] = None):
		"""Rename a container of ``tab_id`` (the active tab when omitted)."""
		name = _clean_name(name, "Container name")

		def op(txn: _Transaction):
			container = self._scope_tab(txn, tab_id).container_by_id(container_id)
			if container is None:
				raise NotFound("Container", container_id)
			container.name = name

		self._transaction("rename_container", op)
		logger.info(f"Renamed container {container_id} to '{name}'")

	def delete_container(self, container_id: str, tab_id: Optional[str] = None) -> int:
		"""
		Move every link of the container to the trash, then remove the container.
		Returns the number of links trashed.
		"""
		def op(txn: _Transaction) -> int:
			tab = self._scope_tab(txn, tab_id)
			container = tab.container_by_id(container_id)
			if container is None:
				raise NotFound("Container", container_id)
			txn.document.trash.extend(container.links)
			tab.containers = [c for c in tab.containers if c.id != container_id]
			return len(container.links)

		trashed = self._transaction("delete_container", op)
		logger.info(f"Deleted container {container_id} ({trashed} links to trash)")
		return trashed

	def trash_all_in_container(self, container_id: str) -> int:
		"""Empty a container into the trash; the container itself stays."""
		def op(txn: _Transaction) -> int:
			located = txn.document.locate_container(container_id)
			if located is None:
				raise NotFound("Container", container_id)
			container = located[1]
			moved = len(container.links)
			txn.document.trash.extend(container.links)
			container.links = []
			return moved

		moved = self._transaction("trash_all_in_container", op)
		logger.info(f"Moved {moved} links from container {container_id} to trash")
		return moved

	def move_container(self, container_id: str, from_tab_id: str, to_tab_id: str, new_order: List[str]):
		"""
		Reorder or relocate containers so ``to_tab_id`` lists them as ``new_order``.

		Each id in ``new_order`` is taken from wherever it currently lives. Containers
		already in the destination but missing from ``new_order`` are kept after the
		ordered ones so no links are dropped.
		"""
		order = list(dict.fromkeys(new_order))

		def op(txn: _Transaction):
			doc = txn.document
			self._tab(doc, from_tab_id)
			destination = self._tab(doc, to_tab_id)
			if container_id not in order:
				raise ValidationError(f"new order must include container {container_id}", "newOrder")

			moving = []
			for cid in order:
				located = doc.locate_container(cid)
				if located is None:
					raise NotFound("Container", cid)
				moving.append(located)

			for owner, container in moving:
				owner.containers = [c for c in owner.containers if c.id != container.id]

			leftovers = list(destination.containers)
			if leftovers:
				logger.warning(f"{len(leftovers)} containers of tab {to_tab_id} missing from new order, kept at the end")
			destination.containers = [c for _, c in moving] + leftovers

		self._transaction("move_container", op)
		logger.info(f"Moved container {container_id} from tab {from_tab_id} to tab {to_tab_id}")

	# --- Links ---

	def add_link(self, tab_id: str, container_id: str, url: str, title: str = "") -> Link:
		url = _clean_name(url, "URL")
		title = (title or "").strip()

		def op(txn: _Transaction) -> Link:
			container = self._container_in(txn.document, tab_id, container_id)
			link = Link(id=new_id("link"), title=title, url=url)
			container.links.append(link)
			return link

		link = self._transaction("add_link", op)
		logger.info(f"Saved link {link.url} ({link.id}) to container {container_id}")
		return link

	def rename_link(self, link_id: str, title: str):
		title = _clean_name(title, "Link title")

		def op(txn: _Transaction):
			located = txn.document.locate_link(link_id)
			if located is None:
				raise NotFound("Link", link_id)
			_, container, idx = located
			container.links[idx].title = title

		self._transaction("rename_link", op)
		logger.info(f"Renamed link {link_id} to '{title}'")

	def _take_from_scope(self, txn: _Transaction, link_id: str) -> Link:
		"""Remove a link from any container of the active tab and return it."""
		for container in self._scope_tab(txn, None).containers:
			idx = container.link_index(link_id)
			if idx != -1:
				return container.links.pop(idx)
		raise NotFound("Link", link_id)

	def delete_link(self, link_id: str):
		"""Permanently remove a link of the active tab, bypassing the trash."""
		self._transaction("delete_link", lambda txn: self._take_from_scope(txn, link_id))
		logger.info(f"Deleted link {link_id}")

	def move_to_trash(self, link_id: str):
		def op(txn: _Transaction):
			txn.document.trash.append(self._take_from_scope(txn, link_id))

		self._transaction("move_to_trash", op)
		logger.info(f"Moved link {link_id} to trash")

	def restore_from_trash(self, link_id: str) -> Tuple[str, str]:
		"""
		Put a trashed link back into the first container of the first tab, creating
		that container when the tab has none. Returns ``(tab_id, container_id)``.
		"""
		def op(txn: _Transaction) -> Tuple[str, str]:
			doc = txn.document
			idx = doc.trash_index(link_id)
			if idx == -1:
				raise NotFound("Link", link_id)
			link = doc.trash.pop(idx)
			tab = doc.tabs[0]
			if not tab.containers:
				tab.containers.append(Container(id=new_id("container"), name=self.config.restore_container_name))
			container = tab.containers[0]
			container.links.append(link)
			return tab.id, container.id

		target = self._transaction("restore_from_trash", op)
		logger.info(f"Restored link {link_id} to container {target[1]}")
		return target

	def permanent_delete(self, link_id: str):
		def op(txn: _Transaction):
			idx = txn.document.trash_index(link_id)
			if idx == -1:
				raise NotFound("Link", link_id)
			del txn.document.trash[idx]

		self._transaction("permanent_delete", op)
		logger.info(f"Permanently deleted link {link_id}")

	def empty_trash(self) -> int:
		def op(txn: _Transaction) -> int:
			count = len(txn.document.trash)
			txn.document.trash = []
			return count

		count = self._transaction("empty_trash", op)
		logger.info(f"Emptied trash ({count} links)")
		return count

	def move_link(self, link_id: str, from_tab_id: str, from_container_id: str,
				to_tab_id: str, to_container_id: str, dest_index: int):
		"""
		Move a link between (or within) containers, as reported by a drag-and-drop.
		``dest_index`` is the position in the destination after the link has been
		removed from its source; it is clamped to the valid range.
		"""
		dest_index = _index(dest_index, "destIndex")

		def op(txn: _Transaction):
			source = self._container_in(txn.document, from_tab_id, from_container_id)
			destination = self._container_in(txn.document, to_tab_id, to_container_id)
			idx = source.link_index(link_id)
			if idx == -1:
				raise NotFound("Link", link_id)
			link = source.links.pop(idx)
			destination.links.insert(_clamp(dest_index, len(destination.links)), link)

		self._transaction("move_link", op)
		logger.info(f"Moved link {link_id} from {from_container_id} to {to_container_id}[{dest_index}]")

	# --- Merge / replace / import / export ---

	@staticmethod
	def _coerce_document(incoming: Union[Document, dict], allow_empty_tabs: bool) -> Document:
		if isinstance(incoming, Document):
			return parse_document(incoming.to_dict(), allow_empty_tabs=allow_empty_tabs)
		return parse_document(incoming, allow_empty_tabs=allow_empty_tabs)

	def merge_document(self, incoming: Union[Document, dict]) -> int:
		"""Union ``incoming`` into the collection. Returns the number of links added."""
		incoming_doc = self._coerce_document(incoming, allow_empty_tabs=True)

		def op(txn: _Transaction) -> int:
			before = txn.document.total_links()
			txn.document = merge_documents(txn.document, incoming_doc)
			return txn.document.total_links() - before

		added = self._transaction("merge", op)
		logger.info(f"Merged document ({added} new links)")
		return added

	def replace_document(self, incoming: Union[Document, dict]) -> int:
		"""Swap the whole collection for ``incoming``. Returns its link count."""
		incoming_doc = self._coerce_document(incoming, allow_empty_tabs=False)

		def op(txn: _Transaction) -> int:
			txn.document = incoming_doc
			return incoming_doc.total_links()

		total = self._transaction("replace", op)
		logger.info(f"Replaced document ({total} links)")
		return total

	def _add_links_container(self, links: List[Link], prefix: str) -> Tuple[str, str]:
		name = f"{prefix} {datetime.now():%Y-%m-%d %H:%M}"

		def op(txn: _Transaction) -> Tuple[str, str]:
			tab = self._import_target(txn)
			container = Container(id=new_id("container"), name=name, links=list(links))
			tab.containers.append(container)
			return tab.id, container.id

		return self._transaction("import_links", op)

	def import_text(self, text: str, merge: bool = True) -> int:
		"""
		Import a native backup, a bookmark-board backup or a plain-text tab dump.
		Returns the number of links added (0 when nothing usable was found).
		"""
		try:
			data = json.loads(text)
		except ValueError:
			data = None

		if isinstance(data, dict) and "tabs" in data:
			return self.merge_document(data) if merge else self.replace_document(data)

		importer = get_importer_for(text)
		if importer is None:
			logger.warning("Nothing importable found")
			return 0
		links = importer.parse(text)
		if not links:
			logger.warning(f"[{importer.name}] No links found")
			return 0
		_, container_id = self._add_links_container(links, self.config.import_container_prefix)
		logger.info(f"Imported {len(links)} links with {importer.name} into {container_id}")
		return len(links)

	def import_file(self, path: str, merge: bool = True) -> int:
		file_path = Path(path)
		if not file_path.exists():
			raise FileNotFoundError(f"File not found: {file_path}")
		with open(file_path, 'r', encoding='utf-8') as f:
			text = f.read()
		logger.info(f"Importing {file_path.name}")
		return self.import_text(text, merge=merge)

	def export_document(self) -> Tuple[str, str]:
		"""Return ``(filename, json_text)`` for a backup download."""
		with self._lock:
			payload = json.dumps(self.document.to_dict(), indent=2, ensure_ascii=False)
		filename = f"read-later-backup-{datetime.now():%Y-%m-%d}.json"
		return filename, payload

	def export_to(self, directory: str) -> Path:
		filename, payload = self.export_document()
		target_dir = Path(directory)
		target_dir.mkdir(parents=True, exist_ok=True)
		target = target_dir / filename
		with open(target, 'w', encoding='utf-8') as f:
			f.write(payload)
		logger.info(f"Exported collection to {target}")
		return target

	# --- Cross-process tab collection ---

	def pull_tabs(self, timeout: Optional[float] = None) -> CollectionResult:
		"""
		Ask other processes for their open pages and file them in a new container of
		the active tab. The lock is not held while waiting, so the document may be
		replaced meanwhile; the target is resolved only once the window closes.
		"""
		result = self.collector.collect(timeout)
		if result.links:
			self._add_links_container(result.links, self.config.pull_container_prefix)
		return result

	# --- Command dispatch ---

	def _handlers(self) -> Dict[CommandKind, Callable[[Command], Any]]:
		return {
			CommandKind.ADD_TAB: lambda c: self.add_tab(c.args.get("name")),
			CommandKind.DELETE_TAB: lambda c: self.delete_tab(c.target_id),
			CommandKind.RENAME_TAB: lambda c: self.rename_tab(c.target_id, c.args.get("name")),
			CommandKind.SWITCH_TAB: lambda c: self.switch_tab(c.target_id),
			CommandKind.MOVE_TAB: lambda c: self.move_tab(c.target_id, c.args.get("newIndex", 0)),
			CommandKind.ADD_CONTAINER: lambda c: self.add_container(c.target_id, c.args.get("name")),
			CommandKind.RENAME_CONTAINER: lambda c: self.rename_container(
				c.target_id, c.args.get("name"), c.args.get("tabId")),
			CommandKind.DELETE_CONTAINER: lambda c: self.delete_container(c.target_id, c.args.get("tabId")),
			CommandKind.TRASH_ALL_IN_CONTAINER: lambda c: self.trash_all_in_container(c.target_id),
			CommandKind.MOVE_CONTAINER: lambda c: self.move_container(
				c.target_id, c.args.get("fromTabId"), c.args.get("toTabId"), c.args.get("newOrder") or []),
			CommandKind.ADD_LINK: lambda c: self.add_link(
				c.args.get("tabId"), c.target_id, c.args.get("url"), c.args.get("title", "")),
			CommandKind.RENAME_LINK: lambda c: self.rename_link(c.target_id, c.args.get("title")),
			CommandKind.DELETE_LINK: lambda c: self.delete_link(c.target_id),
			CommandKind.MOVE_TO_TRASH: lambda c: self.move_to_trash(c.target_id),
			CommandKind.RESTORE_FROM_TRASH: lambda c: self.restore_from_trash(c.target_id),
			CommandKind.PERMANENT_DELETE: lambda c: self.permanent_delete(c.target_id),
			CommandKind.EMPTY_TRASH: lambda c: self.empty_trash(),
			CommandKind.MOVE_LINK: lambda c: self.move_link(
				c.target_id, c.args.get("fromTabId"), c.args.get("fromContainerId"),
				c.args.get("toTabId"), c.args.get("toContainerId"), c.args.get("destIndex", 0)),
		}

	def dispatch(self, command: Command) -> CommandResult:
		"""
		Apply a UI command. Domain failures come back in the result instead of being
		raised; vanished ids on trash/delete paths and blank names are silent.
		"""
		handler = self._handlers().get(command.kind)
		if handler is None:
			raise ValueError(f"Unhandled command kind: {command.kind}")

		try:
			value = handler(command)
		except NotFound as e:
			silent = command.kind in NOOP_ON_MISSING
			if silent:
				logger.debug(f"{command.kind.value}: {e} (no-op)")
			else:
				logger.warning(f"{command.kind.value}: {e}")
			return CommandResult(command.kind, ok=False, error=str(e), error_type="NotFound", silent=silent)
		except EmptyInputRejected as e:
			logger.debug(f"{command.kind.value}: {e}")
			return CommandResult(command.kind, ok=False, error=str(e), error_type="EmptyInputRejected", silent=True)
		except LaterListError as e:
			logger.warning(f"{command.kind.value}: {e}")
			return CommandResult(command.kind, ok=False, error=str(e), error_type=type(e).__name__)
		return CommandResult(command.kind, ok=True, value=value)
