"""Query service: answers a question from the indexed documents.

embed question → load index → rank chunks → grounded completion with citations.
"""

from shared.clients.index.VectorIndexStore import VectorIndexStore
from shared.helper.HelperConfig import HelperConfig
from shared.models.answer import AnswerResult
from shared.models.errors import MissingInputError
from services.rag_pipeline.AnswerSynthesizer import AnswerSynthesizer
from services.rag_pipeline.RetrievalEngine import RetrievalEngine

DEFAULT_TOP_K = 5


class QueryService:
    """Orchestrates retrieval and answer synthesis for one question."""

    def __init__(
        self,
        helper_config: HelperConfig,
        index_store: VectorIndexStore,
        retrieval_engine: RetrievalEngine,
        answer_synthesizer: AnswerSynthesizer,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = index_store
        self._retrieval = retrieval_engine
        self._synthesizer = answer_synthesizer

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_ask(
        self,
        question: str | None,
        top_k: int = DEFAULT_TOP_K,
        allow_general_knowledge: bool = True,
    ) -> AnswerResult:
        """Answer a natural language question from the indexed documents.

        Args:
            question (str | None): The user's question.
            top_k (int): Requested number of passages; clamped to [1, 10].
            allow_general_knowledge (bool): Let the model add knowledge that
                does not conflict with the documents.

        Returns:
            AnswerResult: The answer with its ranked sources.

        Raises:
            MissingInputError: If the question is missing or blank.
            EmptyIndexError: If nothing has been indexed yet.
            EmbeddingError | CompletionError: On remote failures.
        """
        if not question or not question.strip():
            raise MissingInputError("Missing question")

        self.logging.info(
            "Question received: query=%r topK=%d general=%s",
            question[:80], top_k, allow_general_knowledge,
        )

        query_vector = await self._retrieval.embed_query(question)
        index = await self._store.load()
        scored = self._retrieval.rank(query_vector, index, top_k)
        result = await self._synthesizer.answer(question, scored, allow_general_knowledge)

        self.logging.info("Answered with %d sources.", len(result.sources))
        return result
