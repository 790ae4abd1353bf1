import json
import logging
import time
from typing import List

from laterlist.errors import ValidationError
from laterlist.models import Link
from .base import BaseImporter

logger = logging.getLogger(__name__)


class BookmarkBackupImporter(BaseImporter):
	"""
	Generic bookmark-board backup: ``{"lists": [{"cards": [{"title", "url"}]}]}``.

	Only the first list is read. Structure is checked up front so a bad file is
	rejected as a whole.
	"""

	@property
	def name(self) -> str:
		return "Bookmark backup (JSON)"

	def can_handle(self, text: str) -> bool:
		try:
			data = json.loads(text)
		except ValueError:
			return False
		return isinstance(data, dict) and "lists" in data

	def validate(self, data) -> list:
		if not isinstance(data, dict):
			raise ValidationError("backup must be an object")
		lists = data.get("lists")
		if not isinstance(lists, list) or not lists:
			raise ValidationError("'lists' must be a non-empty list", "backup")
		first = lists[0]
		if not isinstance(first, dict):
			raise ValidationError("list must be an object", "lists[0]")
		cards = first.get("cards")
		if not isinstance(cards, list):
			raise ValidationError("'cards' must be a list", "lists[0]")
		for i, card in enumerate(cards):
			path = f"lists[0].cards[{i}]"
			if not isinstance(card, dict):
				raise ValidationError("card must be an object", path)
			for key in ("title", "url"):
				value = card.get(key)
				if not isinstance(value, str) or not value:
					raise ValidationError(f"'{key}' must be a non-empty string", path)
		return cards

	def parse(self, text: str) -> List[Link]:
		try:
			data = json.loads(text)
		except ValueError as e:
			raise ValidationError(f"invalid JSON: {e}")
		cards = self.validate(data)
		imported_at = int(time.time() * 1000)
		links = [self.make_link(card["url"], card["title"], imported_at) for card in cards]
		logger.info(f"[{self.name}] Parsed {len(links)} cards")
		return links
