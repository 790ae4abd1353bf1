import json

import pytest

from laterlist import Document, LaterList, MemoryStore, ValidationError, merge
from conftest import link_ids


def doc(data):
	return Document.from_dict(data)


def single(links):
	return {
		"tabs": [{"id": "T1", "name": "One", "containers": [{"id": "C1", "name": "Box", "links": links}]}],
		"trash": [],
	}


A = {"id": "A", "title": "Alpha", "url": "https://a.example"}
B = {"id": "B", "title": "Beta", "url": "https://b.example"}


def test_merge_with_itself_is_identity():
	d = Document.default()
	d.trash.append(doc(single([A])).tabs[0].containers[0].links[0])
	assert merge(d, d).to_dict() == d.to_dict()


def test_merge_appends_new_links_and_keeps_existing():
	current = doc(single([A]))
	incoming = doc(single([dict(A, title="Changed"), B]))
	result = merge(current, incoming)
	container = result.tabs[0].containers[0]
	assert link_ids(container) == ["A", "B"]
	# current data wins for shared ids
	assert container.links[0].title == "Alpha"


def test_merge_does_not_mutate_inputs():
	current = doc(single([A]))
	incoming = doc(single([B]))
	result = merge(current, incoming)
	result.tabs[0].containers[0].links[1].title = "edited"
	assert link_ids(current.tabs[0].containers[0]) == ["A"]
	assert incoming.tabs[0].containers[0].links[0].title == "Beta"


def test_merge_appends_new_tabs_and_containers_wholesale():
	current = doc(single([A]))
	incoming = doc({
		"tabs": [
			{"id": "T1", "name": "Renamed", "containers": [
				{"id": "C2", "name": "Second", "links": [B]},
			]},
			{"id": "T2", "name": "Two", "containers": [
				{"id": "C3", "name": "Third", "links": [{"id": "X", "title": "X", "url": "https://x.example"}]},
			]},
		],
		"trash": [],
	})
	result = merge(current, incoming)
	assert [t.id for t in result.tabs] == ["T1", "T2"]
	assert result.tabs[0].name == "One"
	assert [c.id for c in result.tabs[0].containers] == ["C1", "C2"]
	assert link_ids(result.tabs[0].containers[1]) == ["B"]
	assert link_ids(result.tabs[1].containers[0]) == ["X"]


def test_merge_trash_union():
	current = doc(dict(single([]), trash=[A]))
	incoming = doc(dict(single([]), trash=[A, B]))
	result = merge(current, incoming)
	assert [l.id for l in result.trash] == ["A", "B"]


def test_merge_never_duplicates_ids_living_elsewhere():
	# A was moved to the trash locally; the incoming copy still has it in C1
	current = doc(dict(single([]), trash=[A]))
	incoming = doc(single([A]))
	result = merge(current, incoming)
	assert link_ids(result.tabs[0].containers[0]) == []
	assert [l.id for l in result.trash] == ["A"]


def test_merge_renames_tabs_and_containers_clashing_with_other_kinds():
	current = Document.default()
	incoming = doc({
		"tabs": [{"id": "container-2", "name": "Clash", "containers": [
			{"id": "link-1", "name": "Also clash", "links": [B]},
		]}],
		"trash": [],
	})
	result = merge(current, incoming)
	ids = [t.id for t in result.tabs]
	ids += [c.id for t in result.tabs for c in t.containers]
	ids += [l.id for l in result.iter_links()]
	assert len(ids) == len(set(ids))

	added = result.tabs[-1]
	assert added.name == "Clash" and added.id != "container-2"
	assert added.containers[0].name == "Also clash" and added.containers[0].id != "link-1"
	assert link_ids(added.containers[0]) == ["B"]


def test_clashing_merge_survives_reopen(backend, store):
	laterlist = LaterList(store)
	laterlist.add_link("tab-1", "container-1", "https://keep.me")
	laterlist.merge_document({
		"tabs": [{"id": "container-2", "name": "Clash", "containers": [
			{"id": "link-1", "name": "Also clash", "links": []},
		]}],
		"trash": [],
	})
	reopened = LaterList(MemoryStore(backend))
	assert "https://keep.me" in [l.url for l in reopened.document.iter_links()]
	assert reopened.document.tabs[-1].name == "Clash"


def test_merge_document_through_controller(store):
	laterlist = LaterList(store)
	before = laterlist.total_links()
	incoming = Document.default().to_dict()
	incoming["tabs"][0]["containers"][0]["links"].append(
		{"id": "link-9", "title": "Rust Book", "url": "https://doc.rust-lang.org/book"}
	)
	added = laterlist.merge_document(incoming)
	assert added == 1
	assert laterlist.total_links() == before + 1
	assert link_ids(laterlist.find_container("tab-1", "container-1"))[-1] == "link-9"


def test_malformed_import_leaves_document_untouched(store):
	laterlist = LaterList(store)
	before = laterlist.document.to_dict()
	bad = {"tabs": [{"id": "t1", "containers": []}], "trash": []}
	with pytest.raises(ValidationError):
		laterlist.merge_document(bad)
	with pytest.raises(ValidationError):
		laterlist.replace_document(bad)
	with pytest.raises(ValidationError):
		laterlist.import_text(json.dumps(bad))
	assert laterlist.document.to_dict() == before
	assert store.get("readLaterData") == before


def test_replace_document(store):
	laterlist = LaterList(store)
	laterlist.switch_tab("tab-2")
	total = laterlist.replace_document(single([A, B]))
	assert total == 2
	assert [t.id for t in laterlist.document.tabs] == ["T1"]
	assert laterlist.active_tab_id == "T1"


def test_replace_rejects_empty_tabs(store):
	laterlist = LaterList(store)
	with pytest.raises(ValidationError):
		laterlist.replace_document({"tabs": [], "trash": []})
	# an empty merge source is fine
	assert laterlist.merge_document({"tabs": [], "trash": [A]}) == 1
