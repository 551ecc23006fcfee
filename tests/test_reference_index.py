from builders import asset, entry, entry_json, link
from cms.models import Entry, Link, LinkType, QueryResponse
from cms.reference_index import ReferenceIndex


def test_resolves_entries_and_assets_by_id():
    index = ReferenceIndex(entries=[entry("e1", "componentText")], assets=[asset("a1", title="Logo")])
    assert index.resolve_entry("e1").content_type == "componentText"
    assert index.resolve_asset("a1").title == "Logo"
    assert len(index) == 2


def test_missing_ids_resolve_to_none():
    index = ReferenceIndex()
    assert index.resolve_entry("nope") is None
    assert index.resolve_asset("nope") is None


def test_resolve_dispatches_on_link_type():
    index = ReferenceIndex(entries=[entry("x", "componentText")], assets=[asset("x", title="Same id")])
    assert isinstance(index.resolve(Link("x")), Entry)
    assert index.resolve(Link("x", LinkType.ASSET)).title == "Same id"


def test_from_response_indexes_includes_and_items():
    raw = {
        "total": 1,
        "items": [entry_json("page", "article", title="Page", body=[link("acc")])],
        "includes": {
            "Entry": [entry_json("acc", "componentAccordion", title="FAQ")],
            "Asset": [{"sys": {"id": "img"}, "fields": {"title": "Pic", "description": "A pic"}}],
        },
    }
    index = ReferenceIndex.from_response(QueryResponse.from_json(raw))
    assert index.resolve_entry("acc").fields["title"] == "FAQ"
    assert index.resolve_entry("page") is not None
    assert index.resolve_asset("img").placeholder() == "[Image: A pic]"


def test_link_from_json_rejects_non_links():
    assert Link.from_json(None) is None
    assert Link.from_json("plain") is None
    assert Link.from_json({"sys": {}}) is None
    assert Link.from_json({"sys": {"id": "x", "linkType": "Space"}}) is None
    assert Link.from_json(link("a", "Asset")) == Link("a", LinkType.ASSET)


def test_entry_tags_and_prefix_lookup():
    e = Entry.from_json(entry_json("e", "article", tags=["topic:Internet", "group:WiFi"]))
    assert e.tags == ["topic:Internet", "group:WiFi"]
    assert e.tag_with_prefix("group:") == "group:WiFi"
    assert e.tag_with_prefix("brand:") is None


def test_empty_response_body():
    response = QueryResponse.from_json(None)
    assert response.items == []
    assert len(ReferenceIndex.from_response(response)) == 0
