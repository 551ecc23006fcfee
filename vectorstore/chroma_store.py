from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Dict, List, Protocol

from langchain_chroma.vectorstores import Chroma
from langchain_core.embeddings import Embeddings

from common.config import yaml_config
from common.logger import get_logger

log = get_logger(__name__)


class KnowledgeSink(Protocol):
    def create_source(
        self, name: str, description: str, tags: List[str], chunk_count: int
    ) -> str: ...

    def create_chunk(self, source_id: str, text: str, metadata: Dict[str, Any]) -> None: ...


def _sha1(s: str) -> str:
    return hashlib.sha1(s.encode("utf-8")).hexdigest()


class ChromaStore:
    def __init__(
        self,
        persist_dir: Path | str | None = None,
        collection_name: str | None = None,
        embeddings: Embeddings | None = None,
    ):
        """
        Knowledge store backed by a Chroma collection.
        Sources are tracked in memory; their chunks carry the source id and
        name in their metadata.
        """
        self.persist_dir = str(persist_dir or yaml_config.app.persist_dir)
        self.collection_name = collection_name or yaml_config.app.collection
        if embeddings is None:
            from langchain_huggingface.embeddings import HuggingFaceEmbeddings

            embeddings = HuggingFaceEmbeddings(
                model_name=yaml_config.vectorstore.embedding_model
            )
        self.embeddings = embeddings
        self._db = Chroma(
            collection_name=self.collection_name,
            embedding_function=self.embeddings,
            persist_directory=self.persist_dir,
        )
        self._sources: Dict[str, Dict[str, Any]] = {}

    @property
    def db(self) -> Chroma:
        return self._db

    @property
    def sources(self) -> List[Dict[str, Any]]:
        return list(self._sources.values())

    def create_source(
        self, name: str, description: str, tags: List[str], chunk_count: int
    ) -> str:
        """
        Register a knowledge source. The id is derived from the collection
        and the source name, so importing the same group again replaces the
        chunks stored by the previous import.
        """
        source_id = _sha1(f"{self.collection_name}::{name}")
        self.delete_source(source_id)
        self._sources[source_id] = {
            "source_id": source_id,
            "name": name,
            "description": description,
            "tags": list(tags),
            "chunk_count": chunk_count,
        }
        log.info("Created source '%s' (%s) for %d chunks", name, source_id, chunk_count)
        return source_id

    def create_chunk(self, source_id: str, text: str, metadata: Dict[str, Any]) -> None:
        source = self._sources.get(source_id)
        if source is None:
            raise KeyError(f"Unknown knowledge source: {source_id}")
        chunk_id = _sha1(
            f"{source_id}::{metadata.get('entry_id', '')}::{metadata.get('chunk', '')}"
        )
        self._db.add_texts(
            texts=[text],
            metadatas=[
                {
                    **metadata,
                    "source_id": source_id,
                    "source_name": source["name"],
                    "tags": ",".join(source["tags"]),
                }
            ],
            ids=[chunk_id],
        )

    def chunks_for_source(self, source_id: str) -> List[Dict[str, Any]]:
        res = self._db.get(where={"source_id": source_id})
        return [
            {"id": i, "text": doc, "metadata": meta}
            for i, doc, meta in zip(res["ids"], res["documents"], res["metadatas"])
        ]

    def delete_source(self, source_id: str) -> int:
        """
        Delete all chunks stored under the given source id.
        """
        ids = self._db.get(where={"source_id": source_id}).get("ids", [])
        if ids:
            self._db.delete(ids=ids)
        log.info("Deleted %d chunks for source '%s'", len(ids), source_id)
        return len(ids)
