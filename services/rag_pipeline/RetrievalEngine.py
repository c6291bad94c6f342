"""Brute-force cosine retrieval over the loaded index."""

import math

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunk import ChunkRecord, ScoredChunk
from shared.models.errors import EmptyIndexError, IndexDimensionError

MAX_TOP_K = 10                  # upper bound on passages handed to the LLM
CONTEXT_CHAR_BUDGET = 12000     # characters of assembled context, cut after assembly


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    A zero-magnitude vector scores 0 against anything instead of NaN.
    """
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    denom = norm_a * norm_b or 1.0
    return max(-1.0, min(1.0, dot / denom))


def clamp_top_k(top_k: int) -> int:
    return max(1, min(int(top_k), MAX_TOP_K))


def rank_chunks(query_vector: list[float], index: list[ChunkRecord], top_k: int) -> list[ScoredChunk]:
    """Score every record against the query vector and keep the best ones.

    Records are ordered by descending score; equal scores keep their index
    order. At most clamp_top_k(top_k) records are returned.

    Raises:
        EmptyIndexError: If the index holds no records.
        IndexDimensionError: If the query vector length differs from the stored vectors.
    """
    if not index:
        raise EmptyIndexError()

    scored: list[tuple[ChunkRecord, float]] = []
    for record in index:
        if len(record.embedding) != len(query_vector):
            raise IndexDimensionError(
                f"Query embedding has {len(query_vector)} dimensions, index has {len(record.embedding)}."
            )
        scored.append((record, cosine_similarity(query_vector, record.embedding)))

    # list.sort is stable, also with reverse=True
    scored.sort(key=lambda pair: pair[1], reverse=True)
    top = scored[: clamp_top_k(top_k)]
    return [ScoredChunk(record=record, score=score, rank=rank) for rank, (record, score) in enumerate(top, start=1)]


def build_context(scored_chunks: list[ScoredChunk], budget: int = CONTEXT_CHAR_BUDGET) -> str:
    """Join ranked chunks as "[[rank]] text" blocks and cut the result to budget characters.

    The cut happens after joining, so the lowest-ranked chunk may end mid-text.
    """
    blocks = [f"[[{item.rank}]] {item.record.chunk}" for item in scored_chunks]
    return "\n\n".join(blocks)[:budget]


class RetrievalEngine:
    """Embeds questions and ranks indexed chunks against them."""

    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._embed = embed_client

    async def embed_query(self, query: str) -> list[float]:
        return await self._embed.embed_one(query)

    def rank(self, query_vector: list[float], index: list[ChunkRecord], top_k: int) -> list[ScoredChunk]:
        results = rank_chunks(query_vector, index, top_k)
        self.logging.debug(
            "Ranked %d chunks, kept %d (best score %.3f).", len(index), len(results), results[0].score
        )
        return results

    async def retrieve(self, query: str, top_k: int, index: list[ChunkRecord]) -> list[ScoredChunk]:
        """Embed the query and return the top-ranked chunks of the given index.

        Raises:
            EmptyIndexError: If index is empty; checked before any remote call.
        """
        if not index:
            raise EmptyIndexError()
        return self.rank(await self.embed_query(query), index, top_k)
