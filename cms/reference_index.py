from __future__ import annotations

from typing import Dict, Iterable, Optional

from cms.models import Asset, Entry, Link, LinkType, QueryResponse


class ReferenceIndex:
    """
    Read-only id -> entity lookup over one query response's include side-load.

    Top-level items are indexed too, so an entry embedding another fetched
    entry resolves even when the API did not repeat it under ``includes``.
    Missing ids resolve to None; callers decide how to degrade.
    """

    def __init__(self, entries: Iterable[Entry] = (), assets: Iterable[Asset] = ()):
        self._entries: Dict[str, Entry] = {e.id: e for e in entries}
        self._assets: Dict[str, Asset] = {a.id: a for a in assets}

    @classmethod
    def from_response(cls, response: QueryResponse) -> "ReferenceIndex":
        return cls(
            entries=[*response.items, *response.included_entries],
            assets=response.included_assets,
        )

    def resolve_entry(self, entry_id: str) -> Optional[Entry]:
        return self._entries.get(entry_id)

    def resolve_asset(self, asset_id: str) -> Optional[Asset]:
        return self._assets.get(asset_id)

    def resolve(self, link: Link) -> Entry | Asset | None:
        if link.link_type is LinkType.ASSET:
            return self.resolve_asset(link.id)
        return self.resolve_entry(link.id)

    def __len__(self) -> int:
        return len(self._entries) + len(self._assets)
