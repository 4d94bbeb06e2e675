# =============================================================================
# src/cli/knowledge_base.py -- Knowledge Base CLI
# =============================================================================
#
# Operator CLI for the groundwire knowledge base.  Builds the same
# components as the API (src.components.build_components) and runs one
# command against them:
#
#   ingest file       -- Ingest a single PDF / DOCX / Markdown / text file
#   ingest directory  -- Recursively ingest every supported file in a folder
#   query             -- Hybrid retrieval over the knowledge base (--web adds
#                       DuckDuckGo results)
#   get               -- Print one stored paragraph by key
#
# Usage examples:
#   python -m src.cli ingest file ./docs/handbook.pdf
#   python -m src.cli ingest directory ./docs --collection manuals
#   python -m src.cli query "onboarding checklist 2024" --web --top 5
#   python -m src.cli get 3f2a...:0:9c1d0e4b --json
#
# Exit codes: 0 success, 1 usage or runtime error, 2 nothing found.
# =============================================================================

"""Command-line interface for ingesting into and querying the knowledge base."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.utils.errors import GroundwireError

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2


def _build_components(app_settings: Settings) -> dict[str, Any]:
    """Load config, configure logging and build every component.

    Imports are deferred so ``--help`` stays fast.
    """
    from src.components import build_components
    from src.config.loader import load_config
    from src.utils.logging import configure_logging

    configure_logging(log_level=app_settings.log_level)
    config = load_config(app_settings.config_path, settings=app_settings)
    return build_components(app_settings, config)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Ingest a file or a directory."""
    service = components["ingestion_service"]
    collection = args.collection or components["default_collection"]
    path = Path(args.path)

    if args.target == "directory":
        print(f"Ingesting directory: {path} -> {collection}")
        results = await service.ingest_directory(collection, path, published_at=args.published_at)
    else:
        print(f"Ingesting file: {path} -> {collection}")
        results = [await service.ingest_file(collection, path, published_at=args.published_at)]

    failed = 0
    for result in results:
        if result.error:
            failed += 1
            print(f"  FAILED  {result.document_uri}: {result.error}")
            continue
        print(
            f"  ok      {result.document_uri}: {result.paragraphs_processed} paragraphs"
            f" ({result.paragraphs_skipped} skipped, {result.duplicate_images} duplicate images)"
            f" in {result.ingestion_time:.2f}s"
        )

    print("\nIngestion complete:")
    print(f"  Files:      {len(results)}")
    print(f"  Failed:     {failed}")
    print(f"  Paragraphs: {sum(r.paragraphs_processed for r in results)}")
    return EXIT_ERROR if results and failed == len(results) else EXIT_OK


async def _handle_query(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Run a retrieval query and print the ranked results."""
    service = components["retrieval_service"]
    collection = args.collection or components["default_collection"]
    top = args.top if args.top is not None else components["settings"].retrieval_top_k

    if args.web:
        results = await service.retrieve_with_web(args.query, collection, top)
    else:
        results = await service.retrieve(args.query, collection, top)

    if args.json:
        print(json.dumps([r.model_dump() for r in results], ensure_ascii=False, indent=2))
        return EXIT_OK if results else EXIT_NOT_FOUND

    if not results:
        print("No results.")
        return EXIT_NOT_FOUND

    for rank, result in enumerate(results, start=1):
        snippet = " ".join(result.value.split())
        if len(snippet) > 200:
            snippet = snippet[:197] + "..."
        print(f"{rank:>2}. [{result.source}] {result.name}")
        print(f"    {result.link}")
        print(f"    {snippet}")
    return EXIT_OK


async def _handle_get(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Print the paragraph stored under a key."""
    store = components["vector_store"]
    collection = args.collection or components["default_collection"]

    paragraph = await store.get(collection, args.key)
    if paragraph is None:
        print(f"No paragraph '{args.key}' in collection '{collection}'.", file=sys.stderr)
        return EXIT_NOT_FOUND

    if args.json:
        print(
            json.dumps(
                paragraph.model_dump(mode="json", exclude={"text_embedding", "image_embedding"}),
                ensure_ascii=False,
                indent=2,
            )
        )
        return EXIT_OK

    print(f"Key:        {paragraph.key}")
    print(f"Document:   {paragraph.document_uri}")
    print(f"Paragraph:  {paragraph.paragraph_id} (order {paragraph.order})")
    print(f"Section:    {paragraph.section or '-'}")
    print(f"Kind:       {paragraph.block_kind.name.lower()}")
    if paragraph.image_uri:
        print(f"Image:      {paragraph.image_uri}")
    print()
    print(paragraph.text)
    return EXIT_OK


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the knowledge base CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli",
        description="Ingest documents into and query the groundwire knowledge base.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ingest_parser = subparsers.add_parser("ingest", help="Ingest a file or directory")
    ingest_parser.add_argument("target", choices=["file", "directory"], help="What PATH is")
    ingest_parser.add_argument("path", help="File or directory path")
    ingest_parser.add_argument("--collection", help="Target collection (default: RAG_COLLECTION)")
    ingest_parser.add_argument(
        "--published-at",
        dest="published_at",
        help="ISO-8601 publication time stamped on every paragraph",
    )

    query_parser = subparsers.add_parser("query", help="Query the knowledge base")
    query_parser.add_argument("query", help="Query text")
    query_parser.add_argument("--collection", help="Collection to search")
    query_parser.add_argument("--top", type=int, help="Number of results (default: RETRIEVAL_TOP_K)")
    query_parser.add_argument("--web", action="store_true", help="Blend in web search results")
    query_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    get_parser = subparsers.add_parser("get", help="Fetch one stored paragraph by key")
    get_parser.add_argument("key", help="Paragraph key")
    get_parser.add_argument("--collection", help="Collection to read from")
    get_parser.add_argument("--json", action="store_true", help="Print the paragraph as JSON")

    return parser


_HANDLERS = {
    "ingest": _handle_ingest,
    "query": _handle_query,
    "get": _handle_get,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse, build components, dispatch, exit."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    try:
        components = _build_components(Settings())
        exit_code = asyncio.run(_HANDLERS[args.command](args, components))
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = EXIT_ERROR
    except GroundwireError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        exit_code = EXIT_ERROR

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
