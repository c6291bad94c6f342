"""
Tests for the HTTP surface: /rag/upload, /rag/ask, /rag/status and /health.

The app is built with a test lifespan that boots the real services against
httpx.MockTransport backends, so requests run through the whole pipeline.
"""

import io
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile

from conftest import FakeChatAPI, FakeEmbeddingAPI
from server.api.api_app import create_app
from server.api.routers.RagRouter import read_upload
from services.rag_pipeline.AnswerSynthesizer import AnswerSynthesizer
from services.rag_pipeline.IngestService import IngestService
from services.rag_pipeline.QueryService import QueryService
from services.rag_pipeline.RetrievalEngine import RetrievalEngine
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.clients.extract.TextExtractor import TextExtractor
from shared.clients.index.VectorIndexStore import VectorIndexStore
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.models.errors import UploadTooLargeError


def _lifespan_with(helper_config, embedding_api, chat_api):
    @asynccontextmanager
    async def lifespan(app):
        embed_client = EmbedClientOpenai(helper_config=helper_config)
        llm_client = LLMClientOpenai(helper_config=helper_config)
        await embed_client.boot(transport=httpx.MockTransport(embedding_api))
        await llm_client.boot(transport=httpx.MockTransport(chat_api))

        index_store = VectorIndexStore(helper_config=helper_config)
        app.state.logging = helper_config.get_logger()
        app.state.index_store = index_store
        app.state.ingest_service = IngestService(
            helper_config=helper_config,
            embed_client=embed_client,
            index_store=index_store,
            text_extractor=TextExtractor(helper_config=helper_config),
        )
        app.state.query_service = QueryService(
            helper_config=helper_config,
            index_store=index_store,
            retrieval_engine=RetrievalEngine(helper_config=helper_config, embed_client=embed_client),
            answer_synthesizer=AnswerSynthesizer(helper_config=helper_config, llm_client=llm_client),
        )
        try:
            yield
        finally:
            await embed_client.close()
            await llm_client.close()

    return lifespan


@pytest.fixture
def embedding_api() -> FakeEmbeddingAPI:
    return FakeEmbeddingAPI()


@pytest.fixture
def chat_api() -> FakeChatAPI:
    return FakeChatAPI()


@pytest.fixture
def client(helper_config, embedding_api, chat_api):
    app = create_app(lifespan_handler=_lifespan_with(helper_config, embedding_api, chat_api))
    with TestClient(app) as test_client:
        yield test_client


def _upload(client: TestClient, name: str = "notes.txt", content: bytes = b"Metformin is first-line therapy for type 2 diabetes."):
    return client.post("/rag/upload", files={"file": (name, content, "text/plain")})


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestUpload:

    def test_upload_indexes_file(self, client):
        response = _upload(client)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "fileName": "notes.txt", "chunks": 1}

    def test_upload_without_file(self, client):
        response = client.post("/rag/upload", data={"comment": "forgot the file"})

        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded"}

    def test_upload_of_blank_file(self, client):
        response = _upload(client, "empty.txt", b"  \n ")

        assert response.status_code == 400
        assert response.json() == {"error": "Could not extract text from file"}

    def test_upload_too_large(self, monkeypatch, helper_config, embedding_api, chat_api):
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "16")
        app = create_app(lifespan_handler=_lifespan_with(helper_config, embedding_api, chat_api))
        with TestClient(app) as client:
            response = _upload(client, content=b"x" * 17)

        assert response.status_code == 413
        assert "too large" in response.json()["error"]

    def test_embedding_backend_failure_is_500(self, helper_config, chat_api):
        app = create_app(lifespan_handler=_lifespan_with(helper_config, FakeEmbeddingAPI(fail_on_call=1), chat_api))
        with TestClient(app) as client:
            response = _upload(client)
            status = client.get("/rag/status").json()

        assert response.status_code == 500
        assert "Embedding request failed" in response.json()["error"]
        assert status["chunks"] == 0

    def test_dimension_mismatch_is_409(self, client, embedding_api):
        assert _upload(client).status_code == 200

        embedding_api.dimension = 4
        response = _upload(client, "other.txt")

        assert response.status_code == 409
        assert "dimension" in response.json()["error"]


class TestAsk:

    def test_ask_before_any_upload(self, client, chat_api):
        response = client.post("/rag/ask", json={"question": "What is first-line therapy?"})

        assert response.status_code == 400
        assert response.json() == {"error": "No documents indexed yet"}
        assert chat_api.requests == []

    @pytest.mark.parametrize("body", [{}, {"question": ""}, {"question": "   "}])
    def test_missing_question(self, client, body):
        response = client.post("/rag/ask", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing question"}

    def test_ask_without_body(self, client):
        response = client.post("/rag/ask")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing question"}

    def test_undecodable_index_counts_as_empty(self, client, index_path):
        index_path.parent.mkdir(parents=True, exist_ok=True)
        index_path.write_bytes(b"[\xff\xfe not utf8]")

        response = client.post("/rag/ask", json={"question": "dose?"})

        assert response.status_code == 400
        assert response.json() == {"error": "No documents indexed yet"}
        assert _upload(client).status_code == 200
        assert client.get("/rag/status").json()["chunks"] == 1

    def test_ask_returns_answer_and_sources(self, client):
        _upload(client)

        response = client.post("/rag/ask", json={"question": "first-line therapy?", "topK": 3})

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "Metformin is first-line therapy [1]."
        assert body["usedGeneralKnowledge"] is True
        assert body["sources"][0]["marker"] == "[1]"
        assert body["sources"][0]["fileName"] == "notes.txt"
        assert -1.0 <= body["sources"][0]["score"] <= 1.0

    @pytest.mark.parametrize("flag", ["allowGeneralKnowledge", "allowGeneral"])
    def test_grounding_switch_aliases(self, client, chat_api, flag):
        _upload(client)

        response = client.post("/rag/ask", json={"question": "dose?", flag: False})

        assert response.json()["usedGeneralKnowledge"] is False
        assert "Do NOT use any knowledge" in chat_api.requests[-1]["messages"][0]["content"]

    def test_completion_failure_is_500(self, client, chat_api):
        _upload(client)
        chat_api.status_code = 502

        response = client.post("/rag/ask", json={"question": "dose?"})

        assert response.status_code == 500
        assert "Completion request failed" in response.json()["error"]

    def test_malformed_body_is_400(self, client):
        response = client.post("/rag/ask", json={"question": "dose?", "topK": "many"})

        assert response.status_code == 400
        assert "topK" in response.json()["error"]

    def test_unexpected_error_is_500(self, client):
        client.app.state.query_service.do_ask = AsyncMock(side_effect=RuntimeError("boom"))

        response = client.post("/rag/ask", json={"question": "dose?"})

        assert response.status_code == 500
        assert response.json() == {"error": "boom"}


class TestStatus:

    def test_status_after_uploads(self, client):
        _upload(client, "a.txt")
        _upload(client, "b.txt", b"Second document about hypertension.")

        status = client.get("/rag/status").json()

        assert status == {"chunks": 2, "files": ["a.txt", "b.txt"], "dimension": 8}


class _CountingStream(io.BytesIO):
    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.bytes_read = 0

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        self.bytes_read += len(chunk)
        return chunk


class TestReadUpload:

    @pytest.fixture
    def ingest_service(self, monkeypatch, helper_config) -> IngestService:
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "10")
        return IngestService(helper_config, MagicMock(), MagicMock(), MagicMock())

    @pytest.mark.asyncio
    async def test_no_file(self, ingest_service):
        assert await read_upload(None, ingest_service) is None

    @pytest.mark.asyncio
    async def test_small_file_read_completely(self, ingest_service):
        upload = UploadFile(file=_CountingStream(b"0123456789"), filename="ok.txt")

        assert await read_upload(upload, ingest_service) == b"0123456789"

    @pytest.mark.asyncio
    async def test_unknown_size_reads_at_most_one_byte_past_limit(self, ingest_service):
        stream = _CountingStream(b"x" * 10_000)
        upload = UploadFile(file=stream, filename="big.txt")

        data = await read_upload(upload, ingest_service)

        assert len(data) == 11
        assert stream.bytes_read == 11
        with pytest.raises(UploadTooLargeError):
            await ingest_service.do_ingest_upload(data, "big.txt")

    @pytest.mark.asyncio
    async def test_declared_size_rejected_before_reading(self, ingest_service):
        stream = _CountingStream(b"x" * 10_000)
        upload = UploadFile(file=stream, filename="big.txt", size=10_000)

        with pytest.raises(UploadTooLargeError):
            await read_upload(upload, ingest_service)

        assert stream.bytes_read == 0

    def test_endpoint_never_buffers_whole_oversized_upload(self, monkeypatch, helper_config, embedding_api, chat_api):
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "16")
        returned: list[int] = []
        original_read = UploadFile.read

        async def counting_read(self, size: int = -1) -> bytes:
            chunk = await original_read(self, size)
            returned.append(len(chunk))
            return chunk

        monkeypatch.setattr(UploadFile, "read", counting_read)
        app = create_app(lifespan_handler=_lifespan_with(helper_config, embedding_api, chat_api))
        with TestClient(app) as client:
            response = _upload(client, content=b"x" * 5000)

        assert response.status_code == 413
        assert sum(returned) <= 17
        assert embedding_api.calls == []
