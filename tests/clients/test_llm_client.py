"""
Tests for the chat completion clients.
"""

import httpx
import pytest

from conftest import FakeChatAPI
from shared.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.models.errors import CompletionError


class TestOpenaiChat:

    @pytest.mark.asyncio
    async def test_complete_sends_system_and_user_turns(self, llm_client, fake_chat_api):
        reply = await llm_client.do_complete("be brief", "what is sepsis?")

        assert reply == "  Metformin is first-line therapy [1].  "
        body = fake_chat_api.requests[0]
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.2
        assert body["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "what is sepsis?"},
        ]

    @pytest.mark.asyncio
    async def test_non_200_raises_completion_error(self, helper_config):
        client = LLMClientOpenai(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(FakeChatAPI(status_code=429)))
        try:
            with pytest.raises(CompletionError, match="status 429"):
                await client.do_complete("system", "user")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_missing_choices_raises_completion_error(self, helper_config):
        client = LLMClientOpenai(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []})))
        try:
            with pytest.raises(CompletionError):
                await client.do_complete("system", "user")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_null_content_becomes_empty_string(self, helper_config):
        payload = {"choices": [{"message": {"role": "assistant", "content": None}}]}
        client = LLMClientOpenai(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)))
        try:
            assert await client.do_complete("system", "user") == ""
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_request_before_boot_fails(self, helper_config):
        client = LLMClientOpenai(helper_config=helper_config)

        assert not client.is_booted()
        with pytest.raises(Exception, match="not initialised"):
            await client.do_complete("system", "user")

    def test_missing_api_key_fails_at_construction(self, monkeypatch, helper_config):
        monkeypatch.delenv("LLM_OPENAI_API_KEY")

        with pytest.raises(ValueError, match="LLM_OPENAI_API_KEY"):
            LLMClientOpenai(helper_config=helper_config)


class TestOllamaChat:

    @pytest.mark.asyncio
    async def test_payload_disables_streaming(self, monkeypatch, helper_config):
        monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://ollama.local:11434")
        monkeypatch.setenv("LLM_TEMPERATURE", "0.5")
        bodies: list[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request.content)
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "ok"}})

        client = LLMClientOllama(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(handler))
        try:
            assert await client.do_complete("system", "user") == "ok"
        finally:
            await client.close()

        body = httpx.Response(200, content=bodies[0]).json()
        assert body["stream"] is False
        assert body["options"] == {"temperature": 0.5}
        assert body["model"] == "llama3.2"
