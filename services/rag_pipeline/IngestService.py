"""Ingest service.

Turns one uploaded file into indexed chunks: spool the bytes to a temporary
file, extract text, chunk, embed every chunk, then append the new records to
the vector index in a single write. Nothing is persisted unless every
embedding batch succeeded.
"""

import asyncio
import re
import time
import uuid
from pathlib import Path

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.extract.TextExtractor import TextExtractor
from shared.clients.index.VectorIndexStore import VectorIndexStore
from shared.helper.HelperConfig import HelperConfig
from shared.models.answer import IngestResult
from shared.models.chunk import ChunkRecord
from shared.models.errors import EmptyDocumentError, MissingInputError, UploadTooLargeError
from services.rag_pipeline.Chunker import CHUNK_OVERLAP, CHUNK_SIZE, chunk_text

MAX_UPLOAD_BYTES = 15 * 1024 * 1024
DEFAULT_UPLOAD_DIR = "/tmp/uploads"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_file_name(file_name: str) -> str:
    """Replace every character outside [a-zA-Z0-9._-] with an underscore."""
    return _UNSAFE_NAME_CHARS.sub("_", file_name)


class IngestService:
    """Orchestrates extraction, chunking, embedding and persistence of uploads."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        index_store: VectorIndexStore,
        text_extractor: TextExtractor,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed = embed_client
        self._store = index_store
        self._extractor = text_extractor

        self.chunk_size = int(helper_config.get_number_val("CHUNK_SIZE", default=CHUNK_SIZE))
        self.chunk_overlap = int(helper_config.get_number_val("CHUNK_OVERLAP", default=CHUNK_OVERLAP))
        self.max_upload_bytes = int(helper_config.get_number_val("MAX_UPLOAD_BYTES", default=MAX_UPLOAD_BYTES))
        self.upload_dir = helper_config.get_path_val("UPLOAD_DIR", default=DEFAULT_UPLOAD_DIR)

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_ingest_upload(self, data: bytes | None, file_name: str | None) -> IngestResult:
        """Index an uploaded file.

        The bytes are written to a per-request file in the upload directory,
        which is removed again once extraction has finished, whatever the outcome.

        Args:
            data (bytes | None): Raw file content; None when no file was sent.
            file_name (str | None): Original upload name, kept for citations.

        Returns:
            IngestResult: The file name and the number of chunks indexed.

        Raises:
            MissingInputError: If no file was provided.
            UploadTooLargeError: If the file exceeds the configured size limit.
            EmptyDocumentError: If no text could be extracted.
            EmbeddingError: If any embedding batch fails.
            IndexDimensionError: If the vectors do not fit the existing index.
        """
        if data is None or not file_name:
            raise MissingInputError("No file uploaded")
        self.check_upload_size(len(data))

        self.logging.info("Upload received: file=%r size=%d bytes", file_name, len(data))
        spooled = await self._spool_upload(data, file_name)
        try:
            text = await self._extractor.extract_text(spooled, file_name)
        finally:
            await self._remove_quietly(spooled)

        return await self.do_ingest_text(text, file_name)

    def check_upload_size(self, size: int) -> None:
        """
        Raises:
            UploadTooLargeError: If size exceeds MAX_UPLOAD_BYTES.
        """
        if size > self.max_upload_bytes:
            raise UploadTooLargeError(
                f"File too large. Maximum size: {self.max_upload_bytes // (1024 * 1024)}MB"
            )

    async def do_ingest_path(self, file_path: Path) -> IngestResult:
        """Index a file that already lives on disk (CLI ingest); the file is left in place."""
        file_path = Path(file_path)
        text = await self._extractor.extract_text(file_path, file_path.name)
        return await self.do_ingest_text(text, file_path.name)

    async def do_ingest_text(self, text: str, file_name: str) -> IngestResult:
        """Chunk, embed and persist already extracted text.

        Args:
            text (str): Extracted document text.
            file_name (str): Source name stored with every chunk.

        Returns:
            IngestResult: The file name and the number of chunks indexed.
        """
        if not text or not text.strip():
            raise EmptyDocumentError("Could not extract text from file")

        chunks = chunk_text(text, self.chunk_size, self.chunk_overlap)
        vectors = await self._embed.embed_many(chunks)

        records = [
            ChunkRecord(id=str(uuid.uuid4()), file_name=file_name, chunk=chunk, embedding=vector)
            for chunk, vector in zip(chunks, vectors)
        ]
        await self._store.append(records)

        self.logging.info("Indexed %r: %d chunks.", file_name, len(records), color="green")
        return IngestResult(ok=True, file_name=file_name, chunks=len(records))

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _spool_upload(self, data: bytes, file_name: str) -> Path:
        target = self.upload_dir / f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}_{sanitize_file_name(file_name)}"

        def _write() -> None:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        return target

    async def _remove_quietly(self, path: Path) -> None:
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as exc:
            # cleanup must never mask the request's own outcome
            self.logging.warning("Could not remove upload %s: %s", path, exc)
