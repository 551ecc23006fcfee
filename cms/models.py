"""Typed views over the CMS delivery API's JSON (``sys`` / ``fields`` / ``metadata``)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class LinkType(str, Enum):
    ENTRY = "Entry"
    ASSET = "Asset"


@dataclass(frozen=True)
class Link:
    """Weak reference to an entry or asset, resolved through the include side-load."""

    id: str
    link_type: LinkType = LinkType.ENTRY

    @classmethod
    def from_json(cls, value: Any) -> Optional["Link"]:
        """Return the link carried by ``value``, or None when it is not one."""
        if not isinstance(value, dict):
            return None
        sys = value.get("sys")
        if not isinstance(sys, dict) or not sys.get("id"):
            return None
        try:
            link_type = LinkType(sys.get("linkType", LinkType.ENTRY.value))
        except ValueError:
            return None
        return cls(id=sys["id"], link_type=link_type)


@dataclass(frozen=True)
class Entry:
    id: str
    content_type: str
    fields: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "Entry":
        sys = raw.get("sys") or {}
        content_type = ((sys.get("contentType") or {}).get("sys") or {}).get("id", "")
        tags = [
            t["sys"]["id"]
            for t in (raw.get("metadata") or {}).get("tags") or []
            if isinstance(t, dict) and (t.get("sys") or {}).get("id")
        ]
        return cls(
            id=sys.get("id", ""),
            content_type=content_type,
            fields=dict(raw.get("fields") or {}),
            tags=tags,
        )

    def tag_with_prefix(self, prefix: str) -> Optional[str]:
        """First tag id starting with ``prefix`` (e.g. ``group:WiFi``), or None."""
        for tag in self.tags:
            if tag.startswith(prefix):
                return tag
        return None


@dataclass(frozen=True)
class Asset:
    id: str
    title: str = ""
    description: str = ""

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "Asset":
        fields = raw.get("fields") or {}
        return cls(
            id=(raw.get("sys") or {}).get("id", ""),
            title=fields.get("title") or "",
            description=fields.get("description") or "",
        )

    def placeholder(self) -> str:
        return f"[Image: {self.description or self.title or ''}]"


@dataclass
class QueryResponse:
    items: List[Entry] = field(default_factory=list)
    included_entries: List[Entry] = field(default_factory=list)
    included_assets: List[Asset] = field(default_factory=list)
    total: int = 0

    @classmethod
    def from_json(cls, raw: Optional[Dict[str, Any]]) -> "QueryResponse":
        if not raw:
            return cls()
        includes = raw.get("includes") or {}
        items = [Entry.from_json(e) for e in raw.get("items") or []]
        return cls(
            items=items,
            included_entries=[Entry.from_json(e) for e in includes.get("Entry") or []],
            included_assets=[Asset.from_json(a) for a in includes.get("Asset") or []],
            total=raw.get("total", len(items)),
        )

    def merge(self, other: "QueryResponse") -> "QueryResponse":
        """Combine two result pages; the later page's total wins."""
        return QueryResponse(
            items=self.items + other.items,
            included_entries=self.included_entries + other.included_entries,
            included_assets=self.included_assets + other.included_assets,
            total=other.total,
        )
