#!/usr/bin/env python
"""Provision the vector index and ingest a directory of documents.

Usage:
    python scripts/ingest.py                      # Ingest the configured documents directory
    python scripts/ingest.py --docs-dir ./docs    # Ingest another directory
    python scripts/ingest.py --index my-index -v  # Other index, verbose logs
"""
import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

import structlog

from askdocs.config import Settings
from askdocs.errors import AskDocsError
from askdocs.log import configure_logging
from askdocs.rag.loader import load_documents
from askdocs.rag.pipeline import RAGPipeline

logger = structlog.get_logger()


def build_settings(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.docs_dir:
        overrides["documents_dir"] = args.docs_dir
    if args.index:
        overrides["index_name"] = args.index
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return Settings(**overrides)


async def run(settings: Settings) -> int:
    print("\nConfiguration:")
    print(f"   Documents directory: {settings.documents_dir}")
    print(f"   Vector backend:      {settings.vector_backend}")
    print(f"   Index:               {settings.index_name}")
    print(f"   Embedding model:     {settings.embedding_model}")
    print(f"   Chunk size:          {settings.chunk_size} chars")
    print(f"   Upsert batch size:   {settings.upsert_batch_size}\n")

    started = datetime.now()
    pipeline = RAGPipeline(settings)

    documents = load_documents(settings.documents_dir)
    if not documents:
        print("No documents found, nothing to ingest.\n")
        return 0

    dimension = await pipeline.setup()
    print(f"Index '{settings.index_name}' ready (dimension {dimension})")

    summaries = await pipeline.ingest(documents)

    elapsed = (datetime.now() - started).total_seconds()
    total_chunks = sum(s.chunk_count for s in summaries)

    print(f"\n{'=' * 60}")
    print(f"  Documents ingested: {len(summaries)}")
    print(f"  Vectors upserted:   {total_chunks}")
    print(f"  Time elapsed:       {elapsed:.1f}s")
    print(f"{'=' * 60}\n")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Ingest documents into the vector index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--docs-dir", type=Path, default=None, help="Documents directory")
    parser.add_argument("--index", default=None, help="Index name")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    settings = build_settings(args)
    configure_logging(settings.log_level)

    try:
        sys.exit(asyncio.run(run(settings)))

    except KeyboardInterrupt:
        print("\n\nIngestion cancelled by user.\n")
        sys.exit(1)

    except (FileNotFoundError, ValueError) as e:
        print(f"\nError: {e}\n")
        sys.exit(1)

    except AskDocsError as e:
        hint = " (safe to retry)" if e.retryable else ""
        print(f"\nError: {e}{hint}\n")
        logger.error("ingest_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)

    except Exception as e:
        print(f"\nError: {e}\n")
        logger.error("ingest_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
