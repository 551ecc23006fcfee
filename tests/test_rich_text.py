from builders import (
    asset,
    document,
    embedded_asset,
    embedded_entry,
    entry,
    heading,
    node,
    paragraph,
    table,
    text,
)
from cms.reference_index import ReferenceIndex
from cms.rich_text import get_text_from_node, render_rich_text


def render(*children, index=None):
    return render_rich_text(document(*children), index or ReferenceIndex())


def test_missing_document_renders_empty():
    assert render_rich_text(None, ReferenceIndex()) == ""
    assert render_rich_text({"nodeType": "document"}, ReferenceIndex()) == ""


def test_text_flattening_skips_non_text_leaves():
    para = node("paragraph", text("Hello "), {"nodeType": "hr", "data": {}}, node("hyperlink", text("world")))
    assert get_text_from_node(para) == "Hello world"


def test_blocks_render_in_document_order():
    out = render(
        heading(1, "Title"),
        paragraph("First."),
        heading(2, "Section"),
        node("unordered-list", node("list-item", paragraph("one")), node("list-item", paragraph("two"))),
        heading(3, "Sub"),
        paragraph("Last."),
    )
    assert out == (
        "# Title\n\n"
        "First.\n\n"
        "## Section\n\n"
        "* one\n* two\n\n"
        "### Sub\n\n"
        "Last.\n\n"
    )


def test_ordered_list_renders_as_bullets():
    out = render(node("ordered-list", node("list-item", paragraph("a")), node("list-item", paragraph("b"))))
    assert out == "* a\n* b\n\n"


def test_hyperlink_on_its_own_line():
    out = render(node("hyperlink", text("docs"), uri="https://example.com"))
    assert out == "[docs](https://example.com)\n"


def test_horizontal_rule():
    assert render(node("hr")) == "---\n\n"


def test_heading_4_is_not_rendered():
    assert render(heading(4, "Deep")) == ""


def test_table_rendering():
    assert render(table(["A", "B"], ["1", "2"])) == "| A | B |\n| --- | --- |\n| 1 | 2 |\n\n"


def test_table_cell_pipes_become_hyphens():
    out = render(table(["A|B", "C"], ["x | y", "z"]))
    assert out == "| A-B | C |\n| --- | --- |\n| x - y | z |\n\n"


def test_ragged_table_rows_are_kept():
    out = render(table(["A", "B"], ["1"], ["1", "2", "3"]))
    assert out == "| A | B |\n| --- | --- |\n| 1 |\n| 1 | 2 | 3 |\n\n"


def test_empty_table_row_renders_as_empty_cell_row():
    out = render(table(["A", "B"], [], ["1", "2"]))
    assert out == "| A | B |\n| --- | --- |\n|  |\n| 1 | 2 |\n\n"


def test_malformed_table_emits_nothing_and_document_continues():
    bad = {"nodeType": "table", "data": {}, "content": "not-a-list"}
    assert render(paragraph("before"), bad, paragraph("after")) == "before\n\nafter\n\n"


def test_empty_table_emits_nothing():
    assert render({"nodeType": "table", "data": {}, "content": []}) == ""


def test_unresolved_embedded_entry_renders_empty():
    assert render(embedded_entry("missing")) == ""
    assert render(embedded_entry("missing", inline=True)) == ""


def test_embedded_entry_dispatches_to_component():
    index = ReferenceIndex(
        entries=[entry("t1", "componentText", title="Tab", text=document(paragraph("Body")))]
    )
    assert render(embedded_entry("t1"), index=index) == "### Tab\n\nBody\n\n\n"


def test_embedded_asset_uses_description_then_title():
    index = ReferenceIndex(
        assets=[asset("a1", title="Router", description="Front panel"), asset("a2", title="Cable")]
    )
    assert render(embedded_asset("a1"), embedded_asset("a2"), index=index) == (
        "[Image: Front panel]\n\n[Image: Cable]\n\n"
    )


def test_unresolved_asset_renders_empty():
    assert render(embedded_asset("nope")) == ""


def test_unknown_container_recurses_into_children():
    out = render(node("blockquote", paragraph("quoted")))
    assert out == "quoted\n\n"
