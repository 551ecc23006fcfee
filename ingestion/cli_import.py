from __future__ import annotations

import argparse

from cms.client import FetchError
from common.config import ConfigurationError, yaml_config
from common.logger import get_logger, set_trace_id
from ingestion.ingest_pipeline import ImportMode, run_import, write_manifest
from vectorstore.chroma_store import ChromaStore

log = get_logger(__name__)

MODES = {
    "all": ImportMode.ALL,
    "main-topic": ImportMode.MAIN_TOPIC,
    "sub-topic": ImportMode.SUB_TOPIC,
    "unstructured": ImportMode.UNSTRUCTURED,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import Contentful entries into a Chroma knowledge store."
    )
    parser.add_argument("mode", choices=sorted(MODES), help="Import mode")
    parser.add_argument(
        "--topic", type=str, default=None, help="Main topic tag (main-topic, sub-topic)"
    )
    parser.add_argument(
        "--group", type=str, default=None, help="Sub-topic tag (sub-topic)"
    )
    parser.add_argument(
        "--main-tag", type=str, default=None, help="Optional main topic tag filter (unstructured)"
    )
    parser.add_argument(
        "--sub-tag", type=str, default=None, help="Optional sub-topic tag filter (unstructured)"
    )
    parser.add_argument(
        "--strategy",
        choices=["recursive", "llm"],
        default=None,
        help="Chunking strategy (unstructured only, defaults to config)",
    )
    parser.add_argument(
        "--collection", type=str, default=None, help="Chroma collection name"
    )
    parser.add_argument(
        "--trace-id", type=str, default=yaml_config.app.trace_id, help="Trace id for log lines"
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    set_trace_id(args.trace_id)
    mode = MODES[args.mode]

    if mode is ImportMode.UNSTRUCTURED:
        main_topic, sub_topic = args.main_tag, args.sub_tag
    else:
        main_topic, sub_topic = args.topic, args.group

    collection = args.collection or yaml_config.app.collection
    try:
        store = ChromaStore(collection_name=collection)
        report = run_import(
            mode,
            store,
            main_topic=main_topic,
            sub_topic=sub_topic,
            strategy=args.strategy,
        )
    except ConfigurationError as e:
        log.error("Configuration error: %s", e)
        raise SystemExit(1)
    except FetchError:
        raise SystemExit(2)

    write_manifest(report, store, collection)


if __name__ == "__main__":
    main()
