"""Pydantic models for indexed chunks and retrieval results.

Hierarchy:
  ChunkRecord  - one persisted passage of an uploaded document plus its vector.
  ScoredChunk  - a ChunkRecord ranked against a query vector (transient).
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChunkRecord(BaseModel):
    """A single retrievable passage stored in the vector index.

    The on-disk layout uses the keys id, fileName, chunk and embedding;
    file_name is exposed under its alias so records round-trip unchanged.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    file_name: str = Field(alias="fileName")
    chunk: str
    embedding: list[float]

    @field_validator("chunk")
    @classmethod
    def _chunk_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("chunk text must not be empty")
        return value

    def to_storage(self) -> dict:
        """Return the JSON-serialisable dict written to the index file."""
        return self.model_dump(by_alias=True)


class ScoredChunk(BaseModel):
    """A chunk record with its cosine similarity to a query and its 1-based rank."""

    record: ChunkRecord
    score: float
    rank: int
