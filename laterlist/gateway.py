import logging
from typing import Callable, Optional

from .errors import StorageError, ValidationError
from .models import Document
from .storage import KeyValueStore
from .validation import parse_document

logger = logging.getLogger(__name__)


class PersistenceGateway:
	"""
	Loads and saves the whole document through a key-value store and relays
	documents written by other processes.
	"""

	def __init__(self, store: KeyValueStore, storage_key: str = "readLaterData",
				active_tab_key: str = "activeTab"):
		self.store = store
		self.storage_key = storage_key
		self.active_tab_key = active_tab_key
		self.corrupt_key = f"{storage_key}.corrupt"

	def load(self) -> Optional[Document]:
		"""
		Return the saved document, or None when nothing valid is stored. An invalid value
		is copied to ``corrupt_key`` first so seeding over it loses nothing.
		"""
		data = self.store.get(self.storage_key)
		if data is None:
			logger.info("No saved document found")
			return None
		try:
			return parse_document(data)
		except ValidationError as e:
			logger.warning(f"Saved document is invalid, moving it to '{self.corrupt_key}': {e}")
		# Raises StorageError rather than letting the seed overwrite the only copy
		self.store.set(self.corrupt_key, data)
		return None

	def save(self, document: Document):
		try:
			self.store.set(self.storage_key, document.to_dict())
		except StorageError:
			logger.error("Document save failed")
			raise
		logger.debug(f"Saved document ({document.total_links()} links)")

	def load_active_tab(self) -> Optional[str]:
		value = self.store.get(self.active_tab_key)
		return value if isinstance(value, str) else None

	def save_active_tab(self, tab_id: str):
		try:
			self.store.set(self.active_tab_key, tab_id)
		except StorageError as e:
			# Session state only; the document itself is unaffected
			logger.warning(f"Could not persist active tab: {e}")

	def subscribe(self, callback: Callable[[Document], None]):
		"""Call ``callback(document)`` whenever another process saves a valid document."""
		def on_change(key, value):
			if key != self.storage_key:
				return
			try:
				document = parse_document(value)
			except ValidationError as e:
				logger.warning(f"Ignoring invalid remote document: {e}")
				return
			callback(document)

		self.store.add_listener(on_change)
		return on_change

	def unsubscribe(self, handle):
		self.store.remove_listener(handle)
