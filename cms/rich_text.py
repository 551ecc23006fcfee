"""
Render the CMS rich-text JSON tree into the Markdown shape the knowledge
chunks are built from.

Consumers downstream are LLMs, so the output shape is fixed: every block is
terminated by a blank line, lists are always ``*`` bullets, hyperlinks sit on
their own line and tables are pipe tables with a ``---`` separator row.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Tuple

from cms.models import Link
from cms.reference_index import ReferenceIndex
from common.logger import get_logger

log = get_logger(__name__)


class NodeType(str, Enum):
    DOCUMENT = "document"
    TEXT = "text"
    PARAGRAPH = "paragraph"
    HEADING_1 = "heading-1"
    HEADING_2 = "heading-2"
    HEADING_3 = "heading-3"
    UNORDERED_LIST = "unordered-list"
    ORDERED_LIST = "ordered-list"
    LIST_ITEM = "list-item"
    HYPERLINK = "hyperlink"
    HR = "hr"
    TABLE = "table"
    TABLE_ROW = "table-row"
    EMBEDDED_ENTRY_INLINE = "embedded-entry-inline"
    EMBEDDED_ENTRY_BLOCK = "embedded-entry-block"
    EMBEDDED_ASSET_BLOCK = "embedded-asset-block"
    UNKNOWN = ""

    @classmethod
    def of(cls, node: Any) -> "NodeType":
        if not isinstance(node, dict):
            return cls.UNKNOWN
        try:
            return cls(node.get("nodeType", ""))
        except ValueError:
            return cls.UNKNOWN


_HEADING_MARKS = {
    NodeType.HEADING_1: "#",
    NodeType.HEADING_2: "##",
    NodeType.HEADING_3: "###",
}


def is_rich_text_document(value: Any) -> bool:
    return isinstance(value, dict) and value.get("nodeType") == NodeType.DOCUMENT.value


def get_text_from_node(node: Any) -> str:
    """In-order concatenation of every text leaf below ``node``."""
    if not isinstance(node, dict):
        return ""
    if node.get("nodeType") == NodeType.TEXT.value:
        return node.get("value") or ""
    content = node.get("content")
    if isinstance(content, list):
        return "".join(get_text_from_node(child) for child in content)
    return ""


def _target_link(node: dict) -> Optional[Link]:
    data = node.get("data") or {}
    return Link.from_json(data.get("target"))


def _cell_text(cell: Any) -> str:
    return get_text_from_node(cell).strip().replace("|", "-")


def render_table(node: dict) -> str:
    """
    First row is the header and fixes the separator width; later rows are
    emitted as-is, ragged or not. Raises on a malformed table.
    """
    rows = node["content"]
    header = [_cell_text(cell) for cell in rows[0]["content"]]
    lines = [
        f"| {' | '.join(header)} |",
        f"| {' | '.join('---' for _ in header)} |",
    ]
    for row in rows[1:]:
        if isinstance(row, dict) and isinstance(row.get("content"), list):
            lines.append(f"| {' | '.join(_cell_text(cell) for cell in row['content'])} |")
    return "\n".join(lines) + "\n\n"


def render_rich_text(
    document: Any,
    index: ReferenceIndex,
    _chain: Tuple[str, ...] = (),
) -> str:
    """
    Render a rich-text document to Markdown. A missing document, or one
    without content, renders as an empty string.

    ``_chain`` holds the ids of the entries currently being rendered so an
    embedded entry that links back to one of them renders nothing.
    """
    if not isinstance(document, dict) or not document.get("content"):
        return ""

    out: List[str] = []

    def render_node(node: Any) -> None:
        kind = NodeType.of(node)

        if kind is NodeType.PARAGRAPH:
            out.append(get_text_from_node(node) + "\n\n")
        elif kind in _HEADING_MARKS:
            out.append(f"{_HEADING_MARKS[kind]} {get_text_from_node(node)}\n\n")
        elif kind in (NodeType.UNORDERED_LIST, NodeType.ORDERED_LIST):
            for item in node.get("content") or []:
                if item:
                    out.append(f"* {get_text_from_node(item)}\n")
            out.append("\n")
        elif kind is NodeType.HYPERLINK:
            uri = (node.get("data") or {}).get("uri", "")
            out.append(f"[{get_text_from_node(node)}]({uri})\n")
        elif kind is NodeType.HR:
            out.append("---\n\n")
        elif kind is NodeType.TABLE:
            try:
                out.append(render_table(node))
            except (KeyError, IndexError, TypeError, AttributeError) as e:
                log.error("Failed to parse table: %s", e)
        elif kind in (NodeType.EMBEDDED_ENTRY_INLINE, NodeType.EMBEDDED_ENTRY_BLOCK):
            out.append(_render_embedded_entry(node, index, _chain))
        elif kind is NodeType.EMBEDDED_ASSET_BLOCK:
            link = _target_link(node)
            asset = index.resolve_asset(link.id) if link else None
            if asset is not None:
                out.append(asset.placeholder() + "\n\n")
        else:
            content = node.get("content") if isinstance(node, dict) else None
            if isinstance(content, list):
                for child in content:
                    render_node(child)

    for child in document["content"]:
        render_node(child)
    return "".join(out)


def _render_embedded_entry(node: dict, index: ReferenceIndex, chain: Tuple[str, ...]) -> str:
    # components render rich text in turn
    from cms.components import render_component

    link = _target_link(node)
    if link is None:
        return ""
    entry = index.resolve_entry(link.id)
    if entry is None:
        log.info("Unresolved embedded entry %s, skipping", link.id)
        return ""
    return render_component(entry, index, _chain=chain)
