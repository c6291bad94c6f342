"""
Shared test fixtures.

Remote embedding and completion APIs are replaced by httpx.MockTransport
handlers injected through ClientInterface.boot(transport=...). Fake
embeddings are derived from the text itself, so the same text always maps to
the same vector regardless of how it was batched.
"""

import json
import logging
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.clients.extract.TextExtractor import TextExtractor
from shared.clients.index.VectorIndexStore import VectorIndexStore
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.chunk import ChunkRecord

FAKE_DIMENSION = 8


def fake_vector(text: str, dimension: int = FAKE_DIMENSION) -> list[float]:
    """Character histogram over `dimension` buckets; deterministic per text."""
    vector = [0.0] * dimension
    for char in text:
        vector[ord(char) % dimension] += 1.0
    return vector


class FakeEmbeddingAPI:
    """OpenAI-compatible /v1/embeddings stand-in that records every call."""

    def __init__(self, dimension: int = FAKE_DIMENSION, fail_on_call: int | None = None) -> None:
        self.dimension = dimension
        self.fail_on_call = fail_on_call
        self.calls: list[list[str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/models":
            return httpx.Response(200, json={"data": []})
        body = json.loads(request.content)
        self.calls.append(body["input"])
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            return httpx.Response(500, json={"error": {"message": "upstream exploded"}})
        data = [
            {"object": "embedding", "index": i, "embedding": fake_vector(text, self.dimension)}
            for i, text in enumerate(body["input"])
        ]
        # reversed on purpose: clients must restore order from "index"
        return httpx.Response(200, json={"object": "list", "data": list(reversed(data))})


class FakeChatAPI:
    """OpenAI-compatible /v1/chat/completions stand-in."""

    def __init__(self, reply: str = "  Metformin is first-line therapy [1].  ", status_code: int = 200) -> None:
        self.reply = reply
        self.status_code = status_code
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/models":
            return httpx.Response(200, json={"data": []})
        body = json.loads(request.content)
        self.requests.append(body)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="rate limited")
        return httpx.Response(200, json={
            "choices": [{"index": 0, "message": {"role": "assistant", "content": self.reply}}],
        })


@pytest.fixture(autouse=True)
def client_env(monkeypatch, tmp_path):
    """Minimal environment for the OpenAI engines, isolated paths per test."""
    monkeypatch.setenv("EMBED_OPENAI_API_KEY", "test-embed-key")
    monkeypatch.setenv("LLM_OPENAI_API_KEY", "test-llm-key")
    monkeypatch.setenv("RAG_INDEX_PATH", str(tmp_path / "rag" / "index.json"))
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.delenv("EMBED_BATCH_SIZE", raising=False)
    monkeypatch.delenv("EMBED_ENGINE", raising=False)
    monkeypatch.delenv("LLM_ENGINE", raising=False)
    monkeypatch.delenv("EMBED_MODEL", raising=False)
    monkeypatch.delenv("LLM_CHAT_MODEL", raising=False)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("tests")))


@pytest.fixture
def index_path(tmp_path) -> Path:
    return tmp_path / "rag" / "index.json"


@pytest.fixture
def index_store(helper_config, index_path) -> VectorIndexStore:
    return VectorIndexStore(helper_config=helper_config, index_path=index_path)


@pytest.fixture
def text_extractor(helper_config) -> TextExtractor:
    return TextExtractor(helper_config=helper_config)


@pytest.fixture
def fake_embedding_api() -> FakeEmbeddingAPI:
    return FakeEmbeddingAPI()


@pytest.fixture
def fake_chat_api() -> FakeChatAPI:
    return FakeChatAPI()


@pytest_asyncio.fixture
async def embed_client(helper_config, fake_embedding_api):
    client = EmbedClientOpenai(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(fake_embedding_api))
    yield client
    await client.close()


@pytest_asyncio.fixture
async def llm_client(helper_config, fake_chat_api):
    client = LLMClientOpenai(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(fake_chat_api))
    yield client
    await client.close()


def make_record(chunk: str, file_name: str = "guideline.pdf", embedding: list[float] | None = None, record_id: str | None = None) -> ChunkRecord:
    return ChunkRecord(
        id=record_id or f"id-{abs(hash((chunk, file_name)))}",
        file_name=file_name,
        chunk=chunk,
        embedding=embedding if embedding is not None else fake_vector(chunk),
    )
