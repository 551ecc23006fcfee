from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

import orjson
from tqdm import tqdm

from cms.client import FetchError, get_entries
from cms.models import Entry, QueryResponse
from cms.reference_index import ReferenceIndex
from common.config import ConfigurationError, ContentfulConfig, secrets, yaml_config
from common.logger import get_logger
from ingestion.assembler import assemble_content_from_entry
from ingestion.chunkers import Chunker, build_chunker
from ingestion.document_models import Chunk
from ingestion.semantic_chunker import Completion
from vectorstore.chroma_store import KnowledgeSink

log = get_logger(__name__)

UNCATEGORIZED = "Uncategorized"
UNTITLED = "Untitled"
UNTITLED_SOURCE = "Untitled Source"

# (content_type_id, main_topic_tag, sub_topic_tag) -> response
Fetcher = Callable[[str, Optional[str], Optional[str]], QueryResponse]


class ImportMode(str, Enum):
    ALL = "all"
    MAIN_TOPIC = "main_topic"
    SUB_TOPIC = "sub_topic"
    UNSTRUCTURED = "unstructured"


@dataclass
class ImportReport:
    entries_found: int = 0
    sources_created: List[str] = field(default_factory=list)
    chunks_created: int = 0
    chunks_failed: int = 0
    entries_skipped: List[str] = field(default_factory=list)
    groups_skipped: List[str] = field(default_factory=list)


def sanitize_source_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9 _-]", "", name).strip() or UNTITLED_SOURCE


def group_by_tag_prefix(entries: Iterable[Entry], prefix: str) -> Dict[str, List[Entry]]:
    """Group entries by their first ``prefix`` tag, with the prefix stripped."""
    groups: Dict[str, List[Entry]] = {}
    for entry in entries:
        tag = entry.tag_with_prefix(prefix)
        name = tag[len(prefix):] if tag else UNCATEGORIZED
        groups.setdefault(name, []).append(entry)
    return groups


def group_by_field(entries: Iterable[Entry], field_id: str) -> Dict[str, List[Entry]]:
    groups: Dict[str, List[Entry]] = {}
    for entry in entries:
        name = entry.fields.get(field_id) or UNCATEGORIZED
        groups.setdefault(str(name), []).append(entry)
    return groups


def chunk_entry(
    entry: Entry,
    index: ReferenceIndex,
    chunker: Chunker,
    cfg: ContentfulConfig,
) -> List[Chunk]:
    """
    Assemble and chunk one entry. Returns no chunks when the entry has no
    content; chunking failures propagate to the caller.
    """
    title = entry.fields.get(cfg.title_field_id) or UNTITLED
    full_text = assemble_content_from_entry(
        entry, cfg.modules_field_id, index, sidebar_field_id=cfg.sidebar_field_id
    )
    if not full_text.strip():
        log.info("No content found for entry: %s, skipping.", title)
        return []

    pieces = chunker(full_text, f"Title: {title}\n\n")
    return [
        Chunk(text=text, index=i + 1, entry_id=entry.id, title=title)
        for i, text in enumerate(pieces)
    ]


def process_group(
    group_name: str,
    entries: List[Entry],
    index: ReferenceIndex,
    sink: KnowledgeSink,
    source_tags: List[str],
    chunker: Chunker,
    report: ImportReport,
    cfg: ContentfulConfig | None = None,
    show_progress: bool = False,
) -> Optional[str]:
    """
    Chunk every entry of a group and persist the chunks under one new
    knowledge source. Returns the source id, or None if the group was skipped.
    """
    cfg = cfg or yaml_config.contentful
    group_chunks: List[Chunk] = []

    for entry in tqdm(entries, desc=f"Chunking {group_name}", disable=not show_progress):
        try:
            chunks = chunk_entry(entry, index, chunker, cfg)
        except Exception as e:
            log.error("Error processing entry %s: %s", entry.id, e, exc_info=True)
            report.entries_skipped.append(entry.id)
            continue
        if not chunks:
            report.entries_skipped.append(entry.id)
        group_chunks.extend(chunks)

    if not group_chunks:
        log.info("No chunks created for group: %s, skipping.", group_name)
        report.groups_skipped.append(group_name)
        return None

    name = sanitize_source_name(group_name)
    log.info("Creating Knowledge Source: '%s' with %d chunks.", name, len(group_chunks))
    try:
        source_id = sink.create_source(
            name=name,
            description=f"Contentful group: {group_name}. Includes {len(entries)} entries.",
            tags=source_tags,
            chunk_count=len(group_chunks),
        )
    except Exception as e:
        log.error('Error creating source "%s". Reason: %s', name, e, exc_info=True)
        report.groups_skipped.append(group_name)
        return None
    report.sources_created.append(source_id)

    for n, chunk in enumerate(group_chunks, start=1):
        try:
            sink.create_chunk(source_id, chunk.text, chunk.metadata)
            report.chunks_created += 1
        except Exception as e:
            log.error('Error creating chunk %d for source "%s". Reason: %s', n, name, e)
            report.chunks_failed += 1
    return source_id


def _default_fetcher(cfg: ContentfulConfig) -> Fetcher:
    if not secrets.contentful_space_id or not secrets.contentful_access_token:
        raise ConfigurationError(
            "Contentful connection details (space id, access token) are missing."
        )

    def fetch(content_type_id, main_topic_tag, sub_topic_tag):
        return get_entries(
            secrets.contentful_space_id,
            secrets.contentful_access_token,
            content_type_id,
            main_topic_tag,
            sub_topic_tag,
            environment=cfg.environment,
        )

    return fetch


def _check_mode_arguments(
    mode: ImportMode, main_topic: Optional[str], sub_topic: Optional[str]
) -> None:
    if mode is ImportMode.MAIN_TOPIC and not main_topic:
        raise ConfigurationError("You must select a Main Topic to import.")
    if mode is ImportMode.SUB_TOPIC and (not main_topic or not sub_topic):
        raise ConfigurationError("You must provide both a Main Topic and a Sub-Topic.")


def _plan_groups(
    mode: ImportMode,
    entries: List[Entry],
    cfg: ContentfulConfig,
    sub_topic: Optional[str],
) -> Dict[str, List[Entry]]:
    if mode is ImportMode.MAIN_TOPIC:
        return group_by_field(entries, cfg.group_field_id)
    if mode is ImportMode.SUB_TOPIC:
        return {sub_topic: list(entries)}
    return group_by_tag_prefix(entries, cfg.sub_topic_tag_prefix)


def _source_tags(
    mode: ImportMode,
    entries: List[Entry],
    cfg: ContentfulConfig,
    main_topic: Optional[str],
) -> List[str]:
    tags = ["contentful", cfg.content_type_id]
    if mode in (ImportMode.MAIN_TOPIC, ImportMode.SUB_TOPIC):
        tags.append(main_topic)
        tags.extend(cfg.additional_tags)
        return tags
    tags.extend(cfg.additional_tags)
    topic_tag = entries[0].tag_with_prefix(cfg.main_topic_tag_prefix) if entries else None
    if topic_tag:
        tags.append(topic_tag)
    return tags


def write_manifest(report: ImportReport, sink: KnowledgeSink, collection: str) -> None:
    sources = getattr(sink, "sources", None)
    if sources is None:
        return
    out = yaml_config.app.cache_dir / f"manifest_{collection}.json"
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(
        orjson.dumps(
            {
                "sources": sources,
                "chunks_created": report.chunks_created,
                "chunks_failed": report.chunks_failed,
                "entries_skipped": report.entries_skipped,
                "groups_skipped": report.groups_skipped,
            },
            option=orjson.OPT_INDENT_2,
        )
    )
    log.info("Wrote manifest to %s", out)


def run_import(
    mode: ImportMode,
    sink: KnowledgeSink,
    *,
    main_topic: str | None = None,
    sub_topic: str | None = None,
    strategy: str | None = None,
    fetch: Fetcher | None = None,
    complete: Completion | None = None,
    cfg: ContentfulConfig | None = None,
    show_progress: bool = True,
) -> ImportReport:
    """
    Import entries of the configured content type into knowledge sources.

    - all: every entry, grouped by the sub-topic tag (``group:WiFi`` -> ``WiFi``)
    - main_topic: entries tagged with ``main_topic``, grouped by the group field
    - sub_topic: entries tagged with both topics, as a single source
    - unstructured: optional tag filters, grouped by the sub-topic tag, and
      the chunking strategy may be ``llm``

    Configuration and fetch errors abort the run; everything after the fetch
    is isolated per entry, per group and per chunk.
    """
    mode = ImportMode(mode)
    cfg = cfg or yaml_config.contentful
    _check_mode_arguments(mode, main_topic, sub_topic)
    if mode is not ImportMode.UNSTRUCTURED:
        strategy = "recursive"
    chunker = build_chunker(strategy, complete=complete)
    fetch = fetch or _default_fetcher(cfg)

    main_tag = main_topic if mode is not ImportMode.ALL else None
    sub_tag = sub_topic if mode in (ImportMode.SUB_TOPIC, ImportMode.UNSTRUCTURED) else None
    log.info(
        "Fetching entries for Content Type '%s' (main topic: %s, sub-topic: %s)",
        cfg.content_type_id,
        main_tag,
        sub_tag,
    )
    try:
        response = fetch(cfg.content_type_id, main_tag, sub_tag)
    except FetchError as e:
        log.error("Failed to import from Contentful: %s", e)
        raise

    report = ImportReport(entries_found=len(response.items))
    if not response.items:
        log.info("No entries found for the specified Content Type and filter(s).")
        return report
    log.info("Found %d entries to process.", len(response.items))

    index = ReferenceIndex.from_response(response)
    groups = _plan_groups(mode, response.items, cfg, sub_topic)
    log.info("Grouped entries into %d Knowledge Sources.", len(groups))

    for group_name, entries in groups.items():
        process_group(
            group_name,
            entries,
            index,
            sink,
            _source_tags(mode, entries, cfg, main_topic),
            chunker,
            report,
            cfg=cfg,
            show_progress=show_progress,
        )

    log.info(
        "Import complete: %d sources, %d chunks (%d failed), %d entries skipped",
        len(report.sources_created),
        report.chunks_created,
        report.chunks_failed,
        len(report.entries_skipped),
    )
    return report
