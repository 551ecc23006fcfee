from builders import asset, document, entry, heading, link, paragraph
from cms.reference_index import ReferenceIndex
from ingestion.assembler import assemble_content_from_entry
from ingestion.chunkers import chunk_with_recursive_splitter


def faq_index():
    return ReferenceIndex(
        entries=[
            entry(
                "accordion1",
                "componentAccordion",
                title="FAQ",
                body=document(heading(2, "Setup"), paragraph("Do X.")),
            )
        ]
    )


def test_modular_page_end_to_end():
    page = entry("page", "article", title="FAQ", body=[link("accordion1")])
    text = assemble_content_from_entry(page, "body", faq_index())
    assert text == "## FAQ\n\n## Setup\n\nDo X.\n\n\n"

    chunks = chunk_with_recursive_splitter(text, "Title: FAQ\n\n", max_chunk_size=10_000)
    assert chunks == ["Title: FAQ\n\n" + text]


def test_components_keep_link_order_and_skip_missing():
    index = ReferenceIndex(
        entries=[
            entry("t1", "componentText", title="One", text=document(paragraph("1"))),
            entry("img", "componentImage", image=link("a1", "Asset")),
        ],
        assets=[asset("a1", description="Shot")],
    )
    page = entry("p", "article", body=[link("img"), "junk", link("gone"), link("t1")])
    assert assemble_content_from_entry(page, "body", index) == "[Image: Shot]\n\n### One\n\n1\n\n\n"


def test_rich_text_field():
    page = entry("p", "article", body=document(paragraph("Plain body.")))
    assert assemble_content_from_entry(page, "body", ReferenceIndex()) == "Plain body.\n\n"


def test_scalar_or_missing_field_contributes_nothing():
    assert assemble_content_from_entry(entry("p", "article", body="text"), "body", ReferenceIndex()) == ""
    assert assemble_content_from_entry(entry("p", "article"), "body", ReferenceIndex()) == ""


def test_sidebar_is_appended_under_heading():
    page = entry(
        "p",
        "article",
        body=document(paragraph("Main.")),
        sidebarContent=document(paragraph("Aside.")),
    )
    assert assemble_content_from_entry(page, "body", ReferenceIndex()) == (
        "Main.\n\n\n## Sidebar Content\n\nAside.\n\n"
    )


def test_sidebar_field_id_is_configurable():
    page = entry("p", "article", aside=document(paragraph("Aside.")))
    out = assemble_content_from_entry(page, "body", ReferenceIndex(), sidebar_field_id="aside")
    assert out == "\n## Sidebar Content\n\nAside.\n\n"


def test_component_that_links_back_to_page_is_skipped():
    page = entry("p", "article", body=[link("p"), link("accordion1")])
    index = ReferenceIndex(entries=[page, faq_index().resolve_entry("accordion1")])
    assert assemble_content_from_entry(page, "body", index) == "## FAQ\n\n## Setup\n\nDo X.\n\n\n"
