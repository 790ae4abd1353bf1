"""
Additive, id-based union of two documents.

Nothing in ``current`` is ever removed or overwritten: existing ids keep their current
fields and position, unseen ids are appended. An id that already lives anywhere in
``current`` (another container, another tab, the trash) is not added a second time.
"""

import copy
import logging
from typing import Set

from .ids import new_id
from .models import Document, Tab, Container

logger = logging.getLogger(__name__)


def _unused_id(item_id: str, kind: str, known: Set[str]) -> str:
	"""Keep ``item_id`` unless something of another kind already uses it."""
	if item_id not in known:
		return item_id
	fresh = new_id(kind)
	logger.warning(f"Incoming {kind} id '{item_id}' is taken by another item, renamed to {fresh}")
	return fresh


def merge(current: Document, incoming: Document) -> Document:
	"""Return a new document holding the union of ``current`` and ``incoming``."""
	result = current.copy()
	known = result.all_ids()
	added_tabs = added_containers = added_links = 0

	for incoming_tab in incoming.tabs:
		tab = result.tab_by_id(incoming_tab.id)
		if tab is None:
			tab = Tab(id=_unused_id(incoming_tab.id, "tab", known), name=incoming_tab.name)
			result.tabs.append(tab)
			known.add(tab.id)
			added_tabs += 1

		for incoming_container in incoming_tab.containers:
			located = result.locate_container(incoming_container.id)
			if located is None:
				container = Container(
					id=_unused_id(incoming_container.id, "container", known),
					name=incoming_container.name
				)
				tab.containers.append(container)
				known.add(container.id)
				added_containers += 1
			else:
				container = located[1]

			for link in incoming_container.links:
				if link.id in known:
					continue
				container.links.append(copy.deepcopy(link))
				known.add(link.id)
				added_links += 1

	added_trash = 0
	for link in incoming.trash:
		if link.id in known:
			continue
		result.trash.append(copy.deepcopy(link))
		known.add(link.id)
		added_trash += 1

	logger.debug(
		f"Merge added {added_tabs} tabs, {added_containers} containers, "
		f"{added_links} links, {added_trash} trash items"
	)
	return result
