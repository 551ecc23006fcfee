import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from vectorstore.chroma_store import ChromaStore


@pytest.fixture
def store(tmp_path):
    return ChromaStore(
        persist_dir=tmp_path / "chroma",
        collection_name="test_kb",
        embeddings=DeterministicFakeEmbedding(size=16),
    )


def test_chunks_are_stored_under_their_source(store):
    source_id = store.create_source("WiFi", "Contentful group: WiFi.", ["contentful", "article"], 2)
    store.create_chunk(source_id, "Title: A\n\nfirst", {"entry_id": "e1", "title": "A", "chunk": 1})
    store.create_chunk(source_id, "Title: A\n\nsecond", {"entry_id": "e1", "title": "A", "chunk": 2})

    chunks = sorted(store.chunks_for_source(source_id), key=lambda c: c["metadata"]["chunk"])
    assert [c["text"] for c in chunks] == ["Title: A\n\nfirst", "Title: A\n\nsecond"]
    assert chunks[0]["metadata"]["source_name"] == "WiFi"
    assert chunks[0]["metadata"]["tags"] == "contentful,article"
    assert store.sources[0]["chunk_count"] == 2


def test_recreating_a_source_replaces_its_chunks(store):
    source_id = store.create_source("Billing", "", [], 1)
    store.create_chunk(source_id, "old", {"entry_id": "e1", "title": "T", "chunk": 1})
    store.create_chunk(source_id, "stale", {"entry_id": "e1", "title": "T", "chunk": 2})

    again = store.create_source("Billing", "", [], 1)
    store.create_chunk(again, "new", {"entry_id": "e1", "title": "T", "chunk": 1})

    assert again == source_id
    assert [c["text"] for c in store.chunks_for_source(source_id)] == ["new"]


def test_chunk_for_unknown_source_fails(store):
    with pytest.raises(KeyError):
        store.create_chunk("missing", "text", {"entry_id": "e", "title": "T", "chunk": 1})
