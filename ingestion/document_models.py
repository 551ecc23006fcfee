from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class Chunk:
    text: str  # title prefix + chunk body
    index: int  # 1-based position within the source entry
    entry_id: str
    title: str

    @property
    def metadata(self) -> Dict[str, Any]:
        return {"entry_id": self.entry_id, "title": self.title, "chunk": self.index}
