import pytest

from laterlist import Document, Link, ValidationError
from laterlist.ids import new_id
from laterlist.validation import parse_document


def test_ids_are_unique_and_prefixed():
	ids = [new_id("link") for _ in range(2000)]
	assert len(set(ids)) == len(ids)
	assert all(i.startswith("link-") for i in ids)


def test_blank_title_falls_back_to_url():
	assert Link(id="l", title="", url="https://a.example").title == "https://a.example"


def test_imported_at_survives_serialisation():
	link = Link(id="l", title="A", url="https://a.example", imported_at=1700000000000)
	assert link.to_dict()["importedAt"] == 1700000000000
	assert Link.from_dict(link.to_dict()) == link
	assert "importedAt" not in Link(id="m", title="B", url="https://b.example").to_dict()


def test_default_document():
	doc = Document.default()
	assert [t.name for t in doc.tabs] == ["Programming", "Reading List"]
	assert doc.total_links() == 4
	assert doc.trash == []
	# each call gets its own copy
	doc.tabs.pop()
	assert len(Document.default().tabs) == 2


def test_locate_link():
	doc = Document.default()
	tab, container, idx = doc.locate_link("link-2")
	assert (tab.id, container.id, idx) == ("tab-1", "container-1", 1)


def _doc(**overrides):
	data = Document.default().to_dict()
	data.update(overrides)
	return data


@pytest.mark.parametrize("data, path", [
	({"tabs": "nope", "trash": []}, "document"),
	({"tabs": [], "trash": []}, "tabs"),
	({"tabs": [{"id": "t", "name": "", "containers": []}], "trash": []}, "tabs[0]"),
	({"tabs": [{"id": "t", "name": "T", "containers": [{"id": "c", "name": "C", "links": [{"id": "l", "title": "x"}]}]}], "trash": []},
		"tabs[0].containers[0].links[0]"),
	({"tabs": [{"id": "t", "name": "T", "containers": []}], "trash": [{"id": "t", "title": "x", "url": "https://x"}]},
		"trash[0]"),
])
def test_validation_names_the_offending_element(data, path):
	with pytest.raises(ValidationError) as exc:
		parse_document(data)
	assert exc.value.path == path


def test_imported_at_must_be_numeric():
	data = _doc(trash=[{"id": "z", "title": "Z", "url": "https://z.example", "importedAt": "yesterday"}])
	with pytest.raises(ValidationError):
		parse_document(data)


def test_empty_tabs_allowed_for_merge_sources():
	assert parse_document({"tabs": [], "trash": []}, allow_empty_tabs=True).tabs == []
