import asyncio
from abc import abstractmethod

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.models.errors import EmbeddingError

from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and batching config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.batch_size = max(1, int(helper_config.get_number_val(f"{self.get_client_type().upper()}_BATCH_SIZE", default=32)))

        # shared by every request using this client; bounds in-flight embedding calls
        max_concurrent = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_CONCURRENT_REQUESTS", default=2))
        self._limiter = asyncio.Semaphore(max(1, max_concurrent))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the embedding model used when EMBED_MODEL is not set.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/v1/embeddings")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}, already ordered
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]}, needs sorting

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        """Send one embedding request for a single batch and return its vectors.

        The call waits for a slot of the client-wide limiter before touching the
        network, so concurrent uploads and queries share a bounded number of
        in-flight requests.

        Args:
            texts (list[str]): The batch of texts to embed.

        Returns:
            list[list[float]]: One vector per input, in input order.

        Raises:
            EmbeddingError: On transport failure, non-200 status, malformed
                response or a vector count that differs from the input count.
        """
        body = self.get_embed_payload(texts)
        async with self._limiter:
            try:
                response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
            except httpx.HTTPError as exc:
                self.logging.error("Embedding request to %s failed: %s", self.get_engine_name(), exc)
                raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise EmbeddingError("Embedding request failed with status %d." % response.status_code)

        try:
            vectors = self.extract_embeddings_from_response(response.json())
        except ValueError as exc:
            raise EmbeddingError(str(exc)) from exc

        if len(vectors) != len(texts):
            raise EmbeddingError(
                "Embedding backend returned %d vectors for %d inputs." % (len(vectors), len(texts))
            )
        return vectors

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts in sequential, fixed-size batches.

        Batches are sent one after another; between batches control is handed
        back to the event loop. Any failing batch aborts the whole call and
        nothing embedded so far is returned.

        Args:
            texts (list[str]): Texts to embed (e.g. all chunks of one upload).

        Returns:
            list[list[float]]: One vector per input, in input order. Empty input
                returns an empty list without a remote call.

        Raises:
            EmbeddingError: If any batch fails.
        """
        if not texts:
            return []

        vectors: list[list[float]] = []
        for batch_start in range(0, len(texts), self.batch_size):
            if batch_start:
                await asyncio.sleep(0)
            batch = list(texts[batch_start: batch_start + self.batch_size])
            vectors.extend(await self.do_embed(batch))

        self.logging.debug("Embedded %d texts in %d batch(es).", len(texts), -(-len(texts) // self.batch_size))
        return vectors

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single text (e.g. a query) through embed_many.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: The embedding vector.
        """
        return (await self.embed_many([text]))[0]
