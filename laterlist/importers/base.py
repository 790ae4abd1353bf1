import logging
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from laterlist.ids import new_id
from laterlist.models import Link

logger = logging.getLogger(__name__)


class BaseImporter(ABC):
	"""Converts a foreign export format into native links."""

	def make_link(self, url: str, title: str, imported_at: Optional[int] = None) -> Link:
		"""Build a link with a fresh id and an import timestamp."""
		if imported_at is None:
			imported_at = int(time.time() * 1000)
		return Link(id=new_id("link"), title=title, url=url, imported_at=imported_at)

	@property
	@abstractmethod
	def name(self) -> str:
		pass

	@abstractmethod
	def can_handle(self, text: str) -> bool:
		pass

	@abstractmethod
	def parse(self, text: str) -> List[Link]:
		"""
		The main logic. Returns the links found in ``text`` (possibly empty).
		"""
		pass
