"""Single-file vector index.

The whole index is one JSON array of chunk records. Reads are tolerant (a
missing or corrupt file is an empty index); writes replace the file
atomically through a temporary sibling and os.replace(), so readers never
observe a half-written index.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from shared.helper.HelperConfig import HelperConfig
from shared.models.answer import IndexStatus
from shared.models.chunk import ChunkRecord
from shared.models.errors import IndexDimensionError

DEFAULT_INDEX_PATH = "/tmp/rag/index.json"


class VectorIndexStore:
    """Owns the persisted index file; hands out freshly parsed copies only."""

    def __init__(self, helper_config: HelperConfig, index_path: Path | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._index_path = Path(index_path) if index_path else helper_config.get_path_val("RAG_INDEX_PATH", default=DEFAULT_INDEX_PATH)
        # serialises the load-append-save cycle of append()
        self._write_lock = asyncio.Lock()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_index_path(self) -> Path:
        return self._index_path

    ##########################################
    ############### CORE I/O #################
    ##########################################

    async def load(self) -> list[ChunkRecord]:
        """Read the entire index.

        Returns:
            list[ChunkRecord]: All stored records in insertion order. An absent,
                unreadable or malformed index yields an empty list.
        """
        return await asyncio.to_thread(self._read_records)

    async def save(self, records: list[ChunkRecord]) -> None:
        """Atomically replace the index with the given records.

        Creates the index directory (with parents) if needed, writes a temporary
        file next to the index and renames it over the canonical path.

        Args:
            records (list[ChunkRecord]): The complete new index content.

        Raises:
            OSError: If the directory cannot be created or the file cannot be
                written or renamed.
        """
        rows = [record.to_storage() for record in records]
        await asyncio.to_thread(self._write_rows, rows)
        self.logging.debug("Saved %d records to %s", len(rows), self._index_path)

    async def append(self, records: list[ChunkRecord]) -> int:
        """Append records to the index as one load-modify-save cycle.

        Concurrent callers within this process are serialised, so no caller's
        records are lost to an interleaved save.

        Args:
            records (list[ChunkRecord]): New records, all with the same vector length.

        Returns:
            int: Total number of records in the index after the append.

        Raises:
            IndexDimensionError: If the new vectors differ in length from each
                other or from the vectors already stored. Nothing is written.
        """
        async with self._write_lock:
            existing = await self.load()
            if not records:
                return len(existing)
            self._check_dimensions(existing, records)
            await self.save([*existing, *records])
            total = len(existing) + len(records)
        self.logging.info("Index now holds %d chunks (+%d).", total, len(records))
        return total

    async def status(self) -> IndexStatus:
        """Summarise the stored index without exposing its records."""
        records = await self.load()
        files = list(dict.fromkeys(record.file_name for record in records))
        dimension = len(records[0].embedding) if records else None
        return IndexStatus(chunks=len(records), files=files, dimension=dimension)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _read_records(self) -> list[ChunkRecord]:
        try:
            raw = self._index_path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as exc:
            self.logging.warning("Index %s is unreadable (%s); treating as empty.", self._index_path, exc)
            return []

        try:
            # UnicodeDecodeError is a ValueError too
            parsed = json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            self.logging.warning("Index %s is not valid UTF-8 JSON (%s); treating as empty.", self._index_path, exc)
            return []

        if not isinstance(parsed, list):
            self.logging.warning("Index %s does not contain a list; treating as empty.", self._index_path)
            return []

        records: list[ChunkRecord] = []
        for position, row in enumerate(parsed):
            try:
                records.append(ChunkRecord.model_validate(row))
            except ValidationError as exc:
                self.logging.warning("Skipping malformed index row %d: %s", position, exc.errors()[:1])
        return records

    def _write_rows(self, rows: list[dict]) -> None:
        directory = self._index_path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f"{self._index_path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(rows, handle, indent=2, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._index_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _check_dimensions(self, existing: list[ChunkRecord], new_records: list[ChunkRecord]) -> None:
        expected = len(existing[0].embedding) if existing else len(new_records[0].embedding)
        for record in new_records:
            if len(record.embedding) != expected:
                self.logging.error(
                    "Refusing to index '%s': vector length %d does not match index dimension %d.",
                    record.file_name, len(record.embedding), expected,
                )
                raise IndexDimensionError(
                    f"Embedding dimension {len(record.embedding)} does not match index dimension {expected}. "
                    "Clear the index before switching embedding models."
                )
