"""Pydantic models returned by the ingest and query pipelines."""

from pydantic import BaseModel, ConfigDict, Field


class Citation(BaseModel):
    """One entry of the ranked source list shown next to an answer."""

    model_config = ConfigDict(populate_by_name=True)

    marker: str
    file_name: str = Field(alias="fileName")
    preview: str
    score: float


class AnswerResult(BaseModel):
    """Grounded answer plus the deterministic citation list."""

    model_config = ConfigDict(populate_by_name=True)

    answer: str
    sources: list[Citation]
    used_general_knowledge: bool = Field(alias="usedGeneralKnowledge")


class IngestResult(BaseModel):
    """Outcome of indexing a single uploaded file."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    file_name: str = Field(alias="fileName")
    chunks: int


class IndexStatus(BaseModel):
    """Read-only summary of the persisted index."""

    chunks: int
    files: list[str]
    dimension: int | None = None
