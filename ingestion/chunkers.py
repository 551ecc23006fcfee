from __future__ import annotations

from functools import partial
from typing import Callable, List

from langchain_text_splitters import RecursiveCharacterTextSplitter

from common.config import ConfigurationError, yaml_config
from ingestion.semantic_chunker import AzureChatCompletion, Completion, chunk_with_llm

SEPARATORS = ["\n\n", "\n", " ", ""]

# (full_text, text_prefix) -> prefixed chunk strings
Chunker = Callable[[str, str], List[str]]


def chunk_with_recursive_splitter(
    full_text: str,
    text_prefix: str,
    max_chunk_size: int | None = None,
    chunk_overlap: int | None = None,
) -> List[str]:
    """
    Split text with LangChain's RecursiveCharacterTextSplitter so that every
    prefixed chunk stays within ``max_chunk_size`` characters. Consecutive
    chunks share up to ``chunk_overlap`` characters, capped below the room
    the prefix leaves. Whitespace-only pieces are dropped.
    """
    if not full_text.strip():
        return []
    max_chunk_size = max_chunk_size or yaml_config.chunking.max_chunk_size
    if chunk_overlap is None:
        chunk_overlap = yaml_config.chunking.chunk_overlap

    chunk_size = max_chunk_size - len(text_prefix)
    if chunk_size < 1:
        raise ValueError(
            f"Chunk prefix of {len(text_prefix)} characters leaves no room "
            f"within max_chunk_size={max_chunk_size}"
        )
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=min(chunk_overlap, chunk_size - 1),
        separators=SEPARATORS,
        strip_whitespace=False,
    )
    return [
        f"{text_prefix}{piece}"
        for piece in splitter.split_text(full_text)
        if piece.strip()
    ]


def build_chunker(strategy: str | None = None, complete: Completion | None = None) -> Chunker:
    """
    Return the chunk function for the configured strategy. The ``llm``
    strategy checks its endpoint configuration up front.
    """
    strategy = strategy or yaml_config.chunking.strategy
    if strategy == "llm":
        if complete is None:
            complete = AzureChatCompletion.from_config()
        return partial(
            chunk_with_llm,
            complete=complete,
            prompt_template=yaml_config.llm_chunking.prompt,
        )
    if strategy == "recursive":
        return chunk_with_recursive_splitter
    raise ConfigurationError(f"Unsupported chunking strategy: {strategy}")
