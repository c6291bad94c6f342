"""Ingest runner entry point.

Indexes local files into the vector index without going through the API,
using the same IngestService as POST /rag/upload.

Usage:
    python -m services.rag_pipeline.rag_ingest_runner docs/guideline.pdf notes.txt
"""

import argparse
import asyncio
from pathlib import Path

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.extract.TextExtractor import TextExtractor
from shared.clients.index.VectorIndexStore import VectorIndexStore
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.errors import RagError
from services.rag_pipeline.IngestService import IngestService


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index local documents into the RAG vector index.")
    parser.add_argument("files", nargs="+", type=Path, help="PDF, DOCX or text files to index")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Ingest every given file; returns the number of files that failed."""
    args = _parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    embed_client = EmbedClientManager(helper_config=config).get_client()

    failed = 0
    try:
        # embed client is required, nothing can be indexed without it
        try:
            await embed_client.boot()
            await embed_client.do_healthcheck()
        except Exception as e:
            logger.error(f"Error booting Embed client {embed_client.get_engine_name()}: {e}. Aborting.")
            return len(args.files)

        ingest_service = IngestService(
            helper_config=config,
            embed_client=embed_client,
            index_store=VectorIndexStore(helper_config=config),
            text_extractor=TextExtractor(helper_config=config),
        )

        # files are ingested one after another; a failing file does not stop the rest
        for file_path in args.files:
            if not file_path.is_file():
                logger.error("Skipping %s: not a file.", file_path)
                failed += 1
                continue
            try:
                result = await ingest_service.do_ingest_path(file_path)
                logger.info("%s → %d chunks", result.file_name, result.chunks, color="cyan")
            except (RagError, OSError) as e:
                logger.error("Failed to index %s: %s", file_path, e)
                failed += 1
    finally:
        await embed_client.close()

    logger.info("Ingest finished: %d ok, %d failed.", len(args.files) - failed, failed)
    return failed


def run() -> None:
    """Console-script entry point."""
    raise SystemExit(1 if asyncio.run(main()) else 0)


if __name__ == "__main__":
    run()
