import copy
from dataclasses import dataclass, field
from typing import List, Dict, Tuple, Optional, Set, Iterator

# Active-tab sentinel meaning "the trash view is showing"
TRASH_VIEW = "__trash__"


@dataclass
class Link:
	"""A saved URL with a display title."""
	id: str
	title: str
	url: str
	imported_at: Optional[int] = None  # epoch milliseconds

	def __post_init__(self):
		if not self.title:
			self.title = self.url

	def to_dict(self) -> dict:
		data = {"id": self.id, "title": self.title, "url": self.url}
		if self.imported_at is not None:
			data["importedAt"] = self.imported_at
		return data

	@classmethod
	def from_dict(cls, data: dict) -> 'Link':
		return cls(
			id=data["id"],
			title=data.get("title", ""),
			url=data["url"],
			imported_at=data.get("importedAt"),
		)


@dataclass
class Container:
	"""Named, ordered group of links inside a tab."""
	id: str
	name: str
	links: List[Link] = field(default_factory=list)

	def link_index(self, link_id: str) -> int:
		for i, link in enumerate(self.links):
			if link.id == link_id:
				return i
		return -1

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"links": [link.to_dict() for link in self.links],
		}

	@classmethod
	def from_dict(cls, data: dict) -> 'Container':
		return cls(
			id=data["id"],
			name=data["name"],
			links=[Link.from_dict(l) for l in data.get("links", [])],
		)


@dataclass
class Tab:
	"""Top-level workspace holding containers."""
	id: str
	name: str
	containers: List[Container] = field(default_factory=list)

	def container_by_id(self, container_id: str) -> Optional[Container]:
		for container in self.containers:
			if container.id == container_id:
				return container
		return None

	def link_count(self) -> int:
		return sum(len(c.links) for c in self.containers)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"containers": [c.to_dict() for c in self.containers],
		}

	@classmethod
	def from_dict(cls, data: dict) -> 'Tab':
		return cls(
			id=data["id"],
			name=data["name"],
			containers=[Container.from_dict(c) for c in data.get("containers", [])],
		)


@dataclass
class Document:
	"""
	The whole saved collection: tabs -> containers -> links, plus the trash.

	Lookup helpers here return None / -1 when an id does not resolve; the controller
	turns absence into NotFound.
	"""
	tabs: List[Tab] = field(default_factory=list)
	trash: List[Link] = field(default_factory=list)

	# --- Lookups ---

	def tab_by_id(self, tab_id: str) -> Optional[Tab]:
		for tab in self.tabs:
			if tab.id == tab_id:
				return tab
		return None

	def tab_index(self, tab_id: str) -> int:
		for i, tab in enumerate(self.tabs):
			if tab.id == tab_id:
				return i
		return -1

	def locate_container(self, container_id: str) -> Optional[Tuple[Tab, Container]]:
		for tab in self.tabs:
			container = tab.container_by_id(container_id)
			if container is not None:
				return tab, container
		return None

	def locate_link(self, link_id: str) -> Optional[Tuple[Tab, Container, int]]:
		"""Find a link in any container (not the trash)."""
		for tab in self.tabs:
			for container in tab.containers:
				idx = container.link_index(link_id)
				if idx != -1:
					return tab, container, idx
		return None

	def trash_index(self, link_id: str) -> int:
		for i, link in enumerate(self.trash):
			if link.id == link_id:
				return i
		return -1

	def iter_links(self) -> Iterator[Link]:
		for tab in self.tabs:
			for container in tab.containers:
				yield from container.links
		yield from self.trash

	def all_ids(self) -> Set[str]:
		ids = set()
		for tab in self.tabs:
			ids.add(tab.id)
			for container in tab.containers:
				ids.add(container.id)
		ids.update(link.id for link in self.iter_links())
		return ids

	def total_links(self) -> int:
		return sum(tab.link_count() for tab in self.tabs) + len(self.trash)

	def copy(self) -> 'Document':
		return copy.deepcopy(self)

	# --- Serialization ---

	def to_dict(self) -> dict:
		return {
			"tabs": [tab.to_dict() for tab in self.tabs],
			"trash": [link.to_dict() for link in self.trash],
		}

	@classmethod
	def from_dict(cls, data: dict) -> 'Document':
		return cls(
			tabs=[Tab.from_dict(t) for t in data.get("tabs", [])],
			trash=[Link.from_dict(l) for l in data.get("trash", [])],
		)

	@classmethod
	def default(cls) -> 'Document':
		"""Seed collection used the first time storage holds nothing."""
		return cls.from_dict(DEFAULT_DATA)


DEFAULT_DATA: Dict = {
	"tabs": [
		{
			"id": "tab-1",
			"name": "Programming",
			"containers": [
				{
					"id": "container-1",
					"name": "JavaScript",
					"links": [
						{"id": "link-1", "title": "MDN Web Docs", "url": "https://developer.mozilla.org"},
						{"id": "link-2", "title": "JavaScript.info", "url": "https://javascript.info"},
					],
				},
				{
					"id": "container-2",
					"name": "Python",
					"links": [
						{"id": "link-3", "title": "Python Documentation", "url": "https://docs.python.org"},
					],
				},
			],
		},
		{
			"id": "tab-2",
			"name": "Reading List",
			"containers": [
				{
					"id": "container-3",
					"name": "Articles",
					"links": [
						{"id": "link-4", "title": "Medium", "url": "https://medium.com"},
					],
				},
			],
		},
	],
	"trash": [],
}
