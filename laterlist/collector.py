"""
Pull open pages from other processes over the shared store.

The collector broadcasts a request on a trigger key, waits a bounded window, then reads
and removes every response entry. Responders that answer after the window closes are
lost; an empty window is reported as ``no_responders`` rather than raised.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .ids import new_id
from .importers import title_from_url
from .models import Link
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

TRIGGER_KEY = "pullTabsTrigger"
ENTRY_PREFIX = "tabdump_"
# Recent request ids a responder remembers, so repeated triggers are answered once
ANSWERED_LIMIT = 64

PageProvider = Callable[[], List[Dict[str, str]]]


@dataclass
class CollectionResult:
	request_id: str
	links: List[Link] = field(default_factory=list)
	responders: int = 0

	@property
	def no_responders(self) -> bool:
		return self.responders == 0


class TabCollector:
	def __init__(self, store: KeyValueStore, timeout: float = 1.0,
				trigger_key: str = TRIGGER_KEY, entry_prefix: str = ENTRY_PREFIX,
				wait: Callable[[float], None] = time.sleep):
		self.store = store
		self.timeout = timeout
		self.trigger_key = trigger_key
		self.entry_prefix = entry_prefix
		self._wait = wait

	def _clear_entries(self) -> int:
		keys = self.store.keys(self.entry_prefix)
		for key in keys:
			self.store.delete(key)
		return len(keys)

	def _entry_links(self, key: str, entries, imported_at: int) -> List[Link]:
		if not isinstance(entries, list):
			logger.warning(f"Ignoring malformed response entry {key}")
			return []
		links = []
		for entry in entries:
			if not isinstance(entry, dict):
				continue
			url = entry.get("url")
			if not isinstance(url, str) or not url:
				continue
			title = entry.get("title")
			if not isinstance(title, str) or not title.strip():
				title = title_from_url(url)
			links.append(Link(id=new_id("link"), title=title.strip(), url=url, imported_at=imported_at))
		return links

	def collect(self, timeout: Optional[float] = None) -> CollectionResult:
		"""Broadcast a pull request and gather whatever arrives within ``timeout`` seconds."""
		if timeout is None:
			timeout = self.timeout

		stale = self._clear_entries()
		if stale:
			logger.debug(f"Dropped {stale} stale response entries")

		result = CollectionResult(request_id=new_id("pull"))
		logger.info(f"Broadcasting pull request {result.request_id} (window {timeout}s)")
		self.store.set(self.trigger_key, {"request": result.request_id, "at": int(time.time() * 1000)})

		self._wait(timeout)

		imported_at = int(time.time() * 1000)
		prefix = f"{self.entry_prefix}{result.request_id}_"
		for key in self.store.keys(prefix):
			result.links.extend(self._entry_links(key, self.store.get(key), imported_at))
			result.responders += 1

		self._clear_entries()

		if result.no_responders:
			logger.warning("No open tabs responded to the pull request")
		else:
			logger.info(f"Collected {len(result.links)} pages from {result.responders} responders")
		return result


class TabResponder:
	"""Answers pull requests with the pages reported by ``provider``."""

	def __init__(self, store: KeyValueStore, provider: PageProvider,
				trigger_key: str = TRIGGER_KEY, entry_prefix: str = ENTRY_PREFIX):
		self.store = store
		self.provider = provider
		self.trigger_key = trigger_key
		self.entry_prefix = entry_prefix
		self._lock = threading.Lock()
		self._answered = deque(maxlen=ANSWERED_LIMIT)
		self._started = False

	def start(self):
		if not self._started:
			self.store.add_listener(self._on_change)
			self._started = True

	def stop(self):
		if self._started:
			self.store.remove_listener(self._on_change)
			self._started = False

	def _on_change(self, key: str, value):
		if key != self.trigger_key:
			return
		if not isinstance(value, dict) or not value.get("request"):
			logger.warning("Ignoring malformed pull request")
			return
		self.respond(value["request"])

	def respond(self, request_id: str) -> bool:
		with self._lock:
			if request_id in self._answered:
				return False
			self._answered.append(request_id)

		pages = [
			{"title": p.get("title", ""), "url": p["url"]}
			for p in self.provider()
			if p.get("url")
		]
		key = f"{self.entry_prefix}{request_id}_{self.store.instance_id}"
		self.store.set(key, pages)
		logger.info(f"Answered pull request {request_id} with {len(pages)} pages")
		return True
