from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from cms.models import Entry, Link
from cms.reference_index import ReferenceIndex
from cms.rich_text import render_rich_text
from common.logger import get_logger

log = get_logger(__name__)


class ComponentType(str, Enum):
    ACCORDION = "componentAccordion"
    TABS = "componentTabs"
    TEXT = "componentText"
    IMAGE = "componentImage"
    UNKNOWN = ""

    @classmethod
    def of(cls, entry: Entry) -> "ComponentType":
        try:
            return cls(entry.content_type)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class RenderResult:
    text: str = ""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _render_tabs(entry: Entry, index: ReferenceIndex, chain: Tuple[str, ...]) -> str:
    tabs = entry.fields.get("tabs")
    if not isinstance(tabs, list):
        return ""
    parts = []
    for value in tabs:
        link = Link.from_json(value)
        tab = index.resolve_entry(link.id) if link else None
        if tab is not None:
            parts.append(render_component(tab, index, _chain=chain))
    return "".join(parts)


def _render_image(entry: Entry, index: ReferenceIndex) -> str:
    link = Link.from_json(entry.fields.get("image"))
    asset = index.resolve_asset(link.id) if link else None
    if asset is None:
        return ""
    return asset.placeholder() + "\n\n"


def _render(entry: Entry, index: ReferenceIndex, chain: Tuple[str, ...]) -> str:
    kind = ComponentType.of(entry)
    fields = entry.fields

    if kind is ComponentType.ACCORDION:
        body = render_rich_text(fields.get("body"), index, chain)
        return f"## {fields.get('title') or ''}\n\n{body}\n"
    if kind is ComponentType.TABS:
        # tabs normally hold text components; dispatch on whatever they resolve to
        return _render_tabs(entry, index, chain)
    if kind is ComponentType.TEXT:
        text = render_rich_text(fields.get("text"), index, chain)
        return f"### {fields.get('title') or ''}\n\n{text}\n"
    if kind is ComponentType.IMAGE:
        return _render_image(entry, index)
    return ""


def render_component_result(
    entry: Entry,
    index: ReferenceIndex,
    _chain: Tuple[str, ...] = (),
) -> RenderResult:
    """
    Render one component entry, capturing any failure in the result rather
    than raising it.
    """
    if entry.id in _chain:
        log.warning(
            "Component %s links back to itself via %s, skipping",
            entry.id,
            " -> ".join(_chain),
        )
        return RenderResult()
    try:
        return RenderResult(text=_render(entry, index, (*_chain, entry.id)))
    except Exception as e:
        return RenderResult(error=e)


def render_component(
    entry: Entry,
    index: ReferenceIndex,
    _chain: Tuple[str, ...] = (),
) -> str:
    """Render one component entry; a failing component contributes nothing."""
    result = render_component_result(entry, index, _chain)
    if not result.ok:
        log.error(
            "Error rendering component %s (type %s): %s",
            entry.id,
            entry.content_type,
            result.error,
        )
    return result.text
