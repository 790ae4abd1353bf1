"""
Key-value stores with change notification.

Listeners only hear about values written by *other* store instances, the same way a
browser tab is told about storage changes made by another tab. Values are JSON
serialised on the way in, so callers never share mutable state with the store.
"""

import json
import logging
import sqlite3
import threading
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .errors import StorageError

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


class KeyValueStore(ABC):
	def __init__(self):
		self.instance_id = uuid.uuid4().hex
		self._listeners: List[Listener] = []

	def add_listener(self, callback: Listener):
		self._listeners.append(callback)

	def remove_listener(self, callback: Listener):
		if callback in self._listeners:
			self._listeners.remove(callback)

	def _notify(self, key: str, value: Any):
		for callback in list(self._listeners):
			try:
				callback(key, value)
			except Exception as e:
				logger.error(f"Change listener failed for key '{key}': {e}", exc_info=True)

	@abstractmethod
	def get(self, key: str, default: Any = None) -> Any:
		pass

	@abstractmethod
	def set(self, key: str, value: Any):
		pass

	@abstractmethod
	def delete(self, key: str):
		pass

	@abstractmethod
	def keys(self, prefix: str = "") -> List[str]:
		pass

	def close(self):
		pass


class MemoryBackend:
	"""Shared dictionary behind one or more MemoryStore instances."""

	def __init__(self):
		self.data: Dict[str, str] = {}
		self.stores: List['MemoryStore'] = []
		self.lock = threading.RLock()


class MemoryStore(KeyValueStore):
	"""In-process store; instances attached to the same backend notify each other."""

	def __init__(self, backend: Optional[MemoryBackend] = None):
		super().__init__()
		self.backend = backend if backend is not None else MemoryBackend()
		with self.backend.lock:
			self.backend.stores.append(self)

	def get(self, key: str, default: Any = None) -> Any:
		with self.backend.lock:
			raw = self.backend.data.get(key)
		if raw is None:
			return default
		return json.loads(raw)

	def set(self, key: str, value: Any):
		try:
			raw = json.dumps(value)
		except (TypeError, ValueError) as e:
			raise StorageError(f"Value for '{key}' is not serialisable: {e}")
		with self.backend.lock:
			self.backend.data[key] = raw
			peers = [s for s in self.backend.stores if s is not self]
		for peer in peers:
			peer._notify(key, json.loads(raw))

	def delete(self, key: str):
		with self.backend.lock:
			self.backend.data.pop(key, None)

	def keys(self, prefix: str = "") -> List[str]:
		with self.backend.lock:
			return sorted(k for k in self.backend.data if k.startswith(prefix))

	def close(self):
		with self.backend.lock:
			if self in self.backend.stores:
				self.backend.stores.remove(self)


class SqliteStore(KeyValueStore):
	"""
	SQLite-backed store shared between processes.

	Every write stamps a global revision and the writer's instance id. A daemon thread
	polls for revisions written by other instances and notifies listeners.
	"""

	def __init__(self, db_path: str, poll_interval: float = 0.5):
		super().__init__()
		self.db_path = Path(db_path).resolve()
		self.db_path.parent.mkdir(parents=True, exist_ok=True)
		self.poll_interval = poll_interval
		self._lock = threading.Lock()
		self._stop = threading.Event()
		self._thread: Optional[threading.Thread] = None

		self.conn = self._get_connection()
		self._initialize_schema()
		self._last_revision = self._max_revision()
		logger.info(f"Opened store at {self.db_path}")

	def _get_connection(self) -> sqlite3.Connection:
		"""Returns a tuned SQLite connection (autocommit; transactions are explicit)."""
		conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=10, isolation_level=None)
		conn.execute("PRAGMA journal_mode=WAL;")
		conn.execute("PRAGMA synchronous=NORMAL;")
		return conn

	def _initialize_schema(self):
		with self._lock:
			self.conn.execute("""
				CREATE TABLE IF NOT EXISTS kv (
					key TEXT PRIMARY KEY,
					value TEXT NOT NULL,
					revision INTEGER NOT NULL,
					writer TEXT NOT NULL,
					updated_at REAL
				);
			""")
			self.conn.execute("CREATE INDEX IF NOT EXISTS idx_kv_revision ON kv(revision);")

	def _max_revision(self) -> int:
		with self._lock:
			row = self.conn.execute("SELECT COALESCE(MAX(revision), 0) FROM kv").fetchone()
		return row[0]

	def get(self, key: str, default: Any = None) -> Any:
		try:
			with self._lock:
				row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
		except sqlite3.Error as e:
			raise StorageError(f"Failed to read '{key}': {e}")
		if row is None:
			return default
		return json.loads(row[0])

	def set(self, key: str, value: Any):
		try:
			raw = json.dumps(value)
		except (TypeError, ValueError) as e:
			raise StorageError(f"Value for '{key}' is not serialisable: {e}")

		with self._lock:
			try:
				self.conn.execute("BEGIN IMMEDIATE")
				try:
					revision = self.conn.execute("SELECT COALESCE(MAX(revision), 0) + 1 FROM kv").fetchone()[0]
					self.conn.execute("""
						INSERT OR REPLACE INTO kv (key, value, revision, writer, updated_at)
						VALUES (?, ?, ?, ?, ?)
					""", (key, raw, revision, self.instance_id, time.time()))
					self.conn.execute("COMMIT")
				except sqlite3.Error:
					self.conn.execute("ROLLBACK")
					raise
			except sqlite3.Error as e:
				logger.error(f"Failed to write '{key}': {e}")
				raise StorageError(f"Failed to write '{key}': {e}")

	def delete(self, key: str):
		try:
			with self._lock:
				self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
		except sqlite3.Error as e:
			raise StorageError(f"Failed to delete '{key}': {e}")

	def keys(self, prefix: str = "") -> List[str]:
		with self._lock:
			cursor = self.conn.execute(
				"SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
				(len(prefix), prefix)
			)
			return [row[0] for row in cursor]

	# --- Change notification ---

	def add_listener(self, callback: Listener):
		super().add_listener(callback)
		if self._thread is None and self.poll_interval > 0:
			self._thread = threading.Thread(target=self._watch, name="laterlist-store-watch", daemon=True)
			self._thread.start()

	def poll_changes(self) -> int:
		"""Notify listeners of writes made by other instances since the last poll."""
		with self._lock:
			rows = self.conn.execute(
				"SELECT key, value, revision, writer FROM kv WHERE revision > ? ORDER BY revision",
				(self._last_revision,)
			).fetchall()
		notified = 0
		for key, raw, revision, writer in rows:
			self._last_revision = max(self._last_revision, revision)
			if writer == self.instance_id:
				continue
			self._notify(key, json.loads(raw))
			notified += 1
		return notified

	def _watch(self):
		while not self._stop.wait(self.poll_interval):
			try:
				self.poll_changes()
			except sqlite3.Error as e:
				logger.warning(f"Store poll failed: {e}")

	def close(self):
		self._stop.set()
		if self._thread is not None:
			self._thread.join(timeout=self.poll_interval * 2 + 1)
		with self._lock:
			self.conn.close()
		logger.debug(f"Closed store at {self.db_path}")
