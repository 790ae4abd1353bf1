import pytest

from laterlist import LaterList, MemoryBackend, MemoryStore, SqliteStore


@pytest.fixture
def backend():
	return MemoryBackend()


@pytest.fixture
def store(backend):
	store = MemoryStore(backend)
	yield store
	store.close()


@pytest.fixture
def laterlist(store):
	"""Controller seeded with the default collection (tab-1 active)."""
	return LaterList(store)


@pytest.fixture
def sqlite_path(tmp_path):
	return str(tmp_path / "store.sqlite")


@pytest.fixture
def sqlite_store(sqlite_path):
	# poll_interval=0: no watcher thread, tests call poll_changes() themselves
	store = SqliteStore(sqlite_path, poll_interval=0)
	yield store
	store.close()


def link_ids(container):
	return [link.id for link in container.links]


def all_link_ids(document):
	return [link.id for link in document.iter_links()]
