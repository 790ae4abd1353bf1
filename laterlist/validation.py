"""
Structural validation for documents coming from storage or from an import file.

Any violation rejects the whole payload; nothing is partially applied.
"""

import logging
from typing import Any, Set

from .errors import ValidationError
from .models import Document

logger = logging.getLogger(__name__)


def _require_text(obj: dict, key: str, path: str):
	value = obj.get(key)
	if not isinstance(value, str) or not value:
		raise ValidationError(f"'{key}' must be a non-empty string", path)


def _require_list(obj: dict, key: str, path: str) -> list:
	value = obj.get(key)
	if not isinstance(value, list):
		raise ValidationError(f"'{key}' must be a list", path)
	return value


def _check_unique(item_id: str, seen: Set[str], path: str):
	if item_id in seen:
		raise ValidationError(f"duplicate id '{item_id}'", path)
	seen.add(item_id)


def _validate_link(link: Any, path: str, seen: Set[str]):
	if not isinstance(link, dict):
		raise ValidationError("link must be an object", path)
	_require_text(link, "id", path)
	_require_text(link, "title", path)
	_require_text(link, "url", path)
	imported_at = link.get("importedAt")
	if imported_at is not None and (isinstance(imported_at, bool) or not isinstance(imported_at, (int, float))):
		raise ValidationError("'importedAt' must be a number", path)
	_check_unique(link["id"], seen, path)


def validate_document(data: Any, allow_empty_tabs: bool = False):
	"""
	Check a raw document dict.

	:param data: Parsed JSON.
	:param allow_empty_tabs: Accept ``"tabs": []`` (fine for a merge source, never for a
		document that will become the live one).
	:raises ValidationError: naming the first offending element.
	"""
	if not isinstance(data, dict):
		raise ValidationError("document must be an object")

	tabs = _require_list(data, "tabs", "document")
	trash = _require_list(data, "trash", "document")
	if not tabs and not allow_empty_tabs:
		raise ValidationError("document must contain at least one tab", "tabs")

	seen: Set[str] = set()
	for t_idx, tab in enumerate(tabs):
		tab_path = f"tabs[{t_idx}]"
		if not isinstance(tab, dict):
			raise ValidationError("tab must be an object", tab_path)
		_require_text(tab, "id", tab_path)
		_require_text(tab, "name", tab_path)
		containers = _require_list(tab, "containers", tab_path)
		_check_unique(tab["id"], seen, tab_path)

		for c_idx, container in enumerate(containers):
			c_path = f"{tab_path}.containers[{c_idx}]"
			if not isinstance(container, dict):
				raise ValidationError("container must be an object", c_path)
			_require_text(container, "id", c_path)
			_require_text(container, "name", c_path)
			links = _require_list(container, "links", c_path)
			_check_unique(container["id"], seen, c_path)

			for l_idx, link in enumerate(links):
				_validate_link(link, f"{c_path}.links[{l_idx}]", seen)

	for l_idx, link in enumerate(trash):
		_validate_link(link, f"trash[{l_idx}]", seen)


def parse_document(data: Any, allow_empty_tabs: bool = False) -> Document:
	"""Validate then build a Document."""
	validate_document(data, allow_empty_tabs=allow_empty_tabs)
	return Document.from_dict(data)
