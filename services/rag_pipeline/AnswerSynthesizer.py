"""Grounded answer synthesis.

Builds a two-part prompt (system rules + context/question user turn), asks
the configured LLM for an answer and pairs it with a citation list derived
from the ranked chunks. The model is asked to cite with [1], [2], …; whether
it actually does so is not checked.
"""

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.answer import AnswerResult, Citation
from shared.models.chunk import ScoredChunk
from services.rag_pipeline.RetrievalEngine import build_context

PREVIEW_CHARS = 180
ELLIPSIS = "…"

PERSONA_RULE = "You are a medical assistant. Answer succinctly and factually in 4–8 sentences."
SOURCE_RULE = "Use the DOCUMENT CONTEXT as the primary source of truth."
GENERAL_ALLOWED_RULE = "You MAY add general medical knowledge if it does not conflict with the documents."
GENERAL_FORBIDDEN_RULE = "Do NOT use any knowledge outside the DOCUMENT CONTEXT."
CITATION_RULE = "Cite statements grounded in the documents with [1], [2], etc."


def build_system_prompt(allow_general_knowledge: bool) -> str:
    return "\n".join([
        PERSONA_RULE,
        SOURCE_RULE,
        GENERAL_ALLOWED_RULE if allow_general_knowledge else GENERAL_FORBIDDEN_RULE,
        CITATION_RULE,
    ])


def build_user_prompt(context: str, question: str) -> str:
    return f"DOCUMENT CONTEXT:\n{context}\n\nQUESTION:\n{question}"


def make_preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text[:limit] + (ELLIPSIS if len(text) > limit else "")


def build_citations(scored_chunks: list[ScoredChunk]) -> list[Citation]:
    """One citation per ranked chunk, marker [n] matching the chunk's rank."""
    return [
        Citation(
            marker=f"[{item.rank}]",
            file_name=item.record.file_name,
            preview=make_preview(item.record.chunk),
            score=round(item.score, 3),
        )
        for item in scored_chunks
    ]


class AnswerSynthesizer:
    """Turns a question plus ranked chunks into a cited answer."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm = llm_client

    async def answer(
        self,
        question: str,
        scored_chunks: list[ScoredChunk],
        allow_general_knowledge: bool = True,
    ) -> AnswerResult:
        """Ask the LLM for a grounded answer.

        Args:
            question (str): The user's question.
            scored_chunks (list[ScoredChunk]): Ranked context passages.
            allow_general_knowledge (bool): Whether the model may add knowledge
                beyond the supplied context.

        Returns:
            AnswerResult: The stripped answer text and the citation list.

        Raises:
            CompletionError: If the completion request fails.
        """
        system_prompt = build_system_prompt(allow_general_knowledge)
        user_prompt = build_user_prompt(build_context(scored_chunks), question)

        reply = await self._llm.do_complete(system_prompt, user_prompt)
        self.logging.debug("Completion returned %d characters.", len(reply))

        return AnswerResult(
            answer=reply.strip(),
            sources=build_citations(scored_chunks),
            used_general_knowledge=bool(allow_general_knowledge),
        )
