from __future__ import annotations

from typing import List

from cms.components import render_component_result
from cms.models import Entry, Link
from cms.reference_index import ReferenceIndex
from cms.rich_text import is_rich_text_document, render_rich_text
from common.logger import get_logger

log = get_logger(__name__)

SIDEBAR_HEADING = "\n## Sidebar Content\n\n"


def _render_linked_components(entry: Entry, links: list, index: ReferenceIndex) -> str:
    parts: List[str] = []
    for value in links:
        link = Link.from_json(value)
        if link is None:
            continue
        component = index.resolve_entry(link.id)
        if component is None:
            log.warning("Entry %s links to missing component %s, skipping", entry.id, link.id)
            continue
        result = render_component_result(component, index, (entry.id,))
        if not result.ok:
            log.error(
                "Failed to render linked component %s of entry %s: %s",
                component.id,
                entry.id,
                result.error,
            )
            continue
        parts.append(result.text)
    return "".join(parts)


def assemble_content_from_entry(
    entry: Entry,
    modules_field_id: str,
    index: ReferenceIndex,
    sidebar_field_id: str = "sidebarContent",
) -> str:
    """
    Assemble all text of one entry into a single Markdown string.

    The modular field is either a list of component links or a rich-text
    document; anything else contributes nothing. A rich-text sidebar field
    is appended under its own heading. The result is not trimmed: an empty
    or whitespace-only string means there is nothing to chunk.
    """
    main = entry.fields.get(modules_field_id)
    sidebar = entry.fields.get(sidebar_field_id)
    combined = ""

    if isinstance(main, list):
        combined += _render_linked_components(entry, main, index)
    elif is_rich_text_document(main):
        combined += render_rich_text(main, index, (entry.id,))

    if is_rich_text_document(sidebar):
        combined += SIDEBAR_HEADING
        combined += render_rich_text(sidebar, index, (entry.id,))
    return combined
