import pytest

from laterlist import Document, LaterList, MemoryStore, SqliteStore, AppConfig
from laterlist.gateway import PersistenceGateway


def test_memory_store_round_trip(store):
	store.set("k", {"a": [1, 2]})
	value = store.get("k")
	assert value == {"a": [1, 2]}
	value["a"].append(3)
	# stored values are copies
	assert store.get("k") == {"a": [1, 2]}
	assert store.get("missing", "default") == "default"


def test_memory_store_notifies_peers_only(backend, store):
	peer = MemoryStore(backend)
	heard_self, heard_peer = [], []
	store.add_listener(lambda k, v: heard_self.append((k, v)))
	peer.add_listener(lambda k, v: heard_peer.append((k, v)))
	store.set("k", 1)
	assert heard_self == []
	assert heard_peer == [("k", 1)]


def test_memory_store_keys_and_delete(store):
	store.set("tabdump_1", [])
	store.set("tabdump_2", [])
	store.set("other", 0)
	assert store.keys("tabdump_") == ["tabdump_1", "tabdump_2"]
	store.delete("tabdump_1")
	store.delete("never-there")
	assert store.keys("tabdump_") == ["tabdump_2"]


def test_listener_errors_do_not_break_writes(backend, store):
	peer = MemoryStore(backend)

	def broken(key, value):
		raise RuntimeError("boom")

	peer.add_listener(broken)
	store.set("k", 1)
	assert peer.get("k") == 1


def test_sqlite_store_round_trip(sqlite_store):
	sqlite_store.set("doc", {"tabs": []})
	assert sqlite_store.get("doc") == {"tabs": []}
	sqlite_store.set("doc", {"tabs": [1]})
	assert sqlite_store.get("doc") == {"tabs": [1]}
	assert sqlite_store.get("nope") is None


def test_sqlite_keys_prefix_is_literal(sqlite_store):
	sqlite_store.set("tabdump_a", 1)
	sqlite_store.set("tabdumpXa", 2)
	assert sqlite_store.keys("tabdump_") == ["tabdump_a"]
	sqlite_store.delete("tabdump_a")
	assert sqlite_store.keys("tabdump_") == []


def test_sqlite_cross_instance_notification(sqlite_path, sqlite_store):
	other = SqliteStore(sqlite_path, poll_interval=0)
	try:
		heard = []
		sqlite_store.add_listener(lambda k, v: heard.append((k, v)))
		sqlite_store.set("own", 1)
		other.set("shared", {"x": 1})
		assert sqlite_store.poll_changes() == 1
		assert heard == [("shared", {"x": 1})]
		# already seen
		assert sqlite_store.poll_changes() == 0
	finally:
		other.close()


def test_two_controllers_over_sqlite(sqlite_path):
	first = LaterList(SqliteStore(sqlite_path, poll_interval=0))
	second = LaterList(SqliteStore(sqlite_path, poll_interval=0))
	try:
		second.add_tab("From second")
		first.store.poll_changes()
		assert first.document.tabs[-1].name == "From second"
	finally:
		first.close()
		second.close()


def test_open_uses_data_directory(tmp_path):
	AppConfig(poll_interval=0, restore_container_name="Back").save(tmp_path / "config.json")
	laterlist = LaterList.open(str(tmp_path))
	try:
		assert laterlist.config.restore_container_name == "Back"
		assert (tmp_path / "laterlist.sqlite").exists()
		laterlist.add_tab("Saved")
	finally:
		laterlist.close()

	reopened = LaterList.open(str(tmp_path))
	try:
		assert reopened.document.tabs[-1].name == "Saved"
	finally:
		reopened.close()


def test_gateway_ignores_invalid_remote_documents(backend, store):
	gateway = PersistenceGateway(store)
	received = []
	gateway.subscribe(received.append)
	peer = MemoryStore(backend)
	peer.set("readLaterData", {"tabs": "broken", "trash": []})
	peer.set("unrelated", 1)
	peer.set("readLaterData", Document.default().to_dict())
	assert len(received) == 1
	assert received[0].to_dict() == Document.default().to_dict()


def test_gateway_active_tab(store):
	gateway = PersistenceGateway(store)
	assert gateway.load_active_tab() is None
	gateway.save_active_tab("tab-2")
	assert gateway.load_active_tab() == "tab-2"
