"""Tests for the streaming completion client."""

from types import SimpleNamespace

import httpx
import ollama
import pytest
from openai import APIConnectionError, AuthenticationError

from tax_gpt.assistant import CompletionAuthError, CompletionClient, CompletionError
from tax_gpt.assistant.llm_client import AUTH_ERROR_MESSAGE
from tax_gpt.utils.config import LlmConfig

MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]
REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeCompletions:

    def __init__(self, chunks=(), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self._stream()

    async def _stream(self):
        for chunk in self.chunks:
            yield chunk


class FakeOllama:

    def __init__(self, parts=(), error=None):
        self.parts = list(parts)
        self.error = error
        self.kwargs = None

    async def chat(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self._stream()

    async def _stream(self):
        for part in self.parts:
            yield part


def _openrouter(completions: FakeCompletions) -> CompletionClient:
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return CompletionClient(LlmConfig(api_key="key"), client=fake)


async def _collect(deltas):
    return [d async for d in deltas]


@pytest.mark.asyncio
async def test_openrouter_streams_non_empty_deltas():
    completions = FakeCompletions([
        _chunk("Hello"),
        _chunk(None),
        SimpleNamespace(choices=[]),
        _chunk(""),
        _chunk(" world"),
    ])

    deltas = await _openrouter(completions).stream_chat(MESSAGES)

    assert await _collect(deltas) == ["Hello", " world"]
    assert completions.kwargs["messages"] == MESSAGES
    assert completions.kwargs["model"] == "google/gemini-3-flash-preview"
    assert completions.kwargs["temperature"] == 0.2
    assert completions.kwargs["max_tokens"] == 1500
    assert completions.kwargs["stream"] is True


@pytest.mark.asyncio
async def test_openrouter_auth_error():
    error = AuthenticationError("Unauthorized", response=httpx.Response(401, request=REQUEST), body=None)

    with pytest.raises(CompletionAuthError, match="Invalid API key"):
        await _openrouter(FakeCompletions(error=error)).stream_chat(MESSAGES)


@pytest.mark.asyncio
async def test_openrouter_connection_error():
    error = APIConnectionError(request=REQUEST)

    with pytest.raises(CompletionError) as exc_info:
        await _openrouter(FakeCompletions(error=error)).stream_chat(MESSAGES)

    assert not isinstance(exc_info.value, CompletionAuthError)


@pytest.mark.asyncio
async def test_ollama_streams_deltas():
    fake = FakeOllama([
        {"message": {"role": "assistant", "content": "Tax "}},
        {"message": {"role": "assistant", "content": ""}},
        {"message": {"role": "assistant", "content": "time"}},
    ])
    client = CompletionClient(LlmConfig(provider="ollama", model="llama3"), client=fake)

    deltas = await client.stream_chat(MESSAGES)

    assert await _collect(deltas) == ["Tax ", "time"]
    assert fake.kwargs["options"] == {"temperature": 0.2, "num_predict": 1500}
    assert fake.kwargs["model"] == "llama3"


@pytest.mark.asyncio
async def test_ollama_unauthorized_is_auth_error():
    fake = FakeOllama(error=ollama.ResponseError("unauthorized", 401))
    client = CompletionClient(LlmConfig(provider="ollama"), client=fake)

    with pytest.raises(CompletionAuthError) as exc_info:
        await client.stream_chat(MESSAGES)

    assert str(exc_info.value) == AUTH_ERROR_MESSAGE


@pytest.mark.asyncio
async def test_ollama_unreachable():
    fake = FakeOllama(error=ConnectionError("refused"))
    client = CompletionClient(LlmConfig(provider="ollama"), client=fake)

    with pytest.raises(CompletionError, match="Could not reach Ollama"):
        await client.stream_chat(MESSAGES)


def test_openrouter_client_is_built_from_config():
    client = CompletionClient(LlmConfig(api_key="secret"))

    assert str(client.client.base_url).startswith("https://openrouter.ai/api/v1")
    assert client.client.api_key == "secret"
