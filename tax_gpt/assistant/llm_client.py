"""
Streaming chat completion client.
Talks to OpenRouter through the OpenAI SDK, or to a local Ollama server.
"""

from typing import Any, AsyncIterator, Optional

import ollama
from openai import AsyncOpenAI, AuthenticationError, OpenAIError

from tax_gpt.utils import get_logger
from tax_gpt.utils.config import LlmConfig

logger = get_logger(__name__)

AUTH_ERROR_MESSAGE = "Invalid API key. Check OPENROUTER_API_KEY in .env"


class CompletionError(Exception):
    """The completion provider failed to answer."""


class CompletionAuthError(CompletionError):
    """The completion provider rejected the credentials."""


class CompletionClient:
    """
    Streams chat completions as incremental text deltas.
    """

    def __init__(self, config: LlmConfig, client: Optional[Any] = None):
        """
        Initialize the completion client.

        Args:
            config: Provider, model and sampling configuration
            client: Pre-built provider client (AsyncOpenAI or ollama.AsyncClient)
        """
        self.config = config
        self.provider = config.provider
        self.client = client or self._create_client()

    def _create_client(self) -> Any:
        if self.provider == "ollama":
            return ollama.AsyncClient(host=self.config.ollama_host)
        return AsyncOpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key,
            default_headers={
                "HTTP-Referer": self.config.referer,
                "X-Title": self.config.title,
            },
        )

    async def stream_chat(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        """
        Start a streamed completion.

        The request is sent before this returns, so authentication and
        connection failures surface here rather than mid-stream.

        Args:
            messages: System, history and user messages in order

        Returns:
            Async iterator of non-empty text deltas

        Raises:
            CompletionAuthError: The provider returned 401
            CompletionError: Any other provider failure
        """
        logger.debug(f"Requesting completion from {self.provider} ({self.config.model}), {len(messages)} messages")
        if self.provider == "ollama":
            stream = await self._open_ollama(messages)
            return self._ollama_deltas(stream)
        stream = await self._open_openrouter(messages)
        return self._openrouter_deltas(stream)

    async def _open_openrouter(self, messages: list[dict[str, str]]) -> Any:
        try:
            return await self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                stream=True,
            )
        except AuthenticationError as e:
            logger.error(f"Completion request rejected: {e}")
            raise CompletionAuthError(AUTH_ERROR_MESSAGE) from e
        except OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise CompletionError(str(e)) from e

    async def _openrouter_deltas(self, stream: Any) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except OpenAIError as e:
            logger.error(f"Completion stream failed: {e}")
            raise CompletionError(str(e)) from e

    async def _open_ollama(self, messages: list[dict[str, str]]) -> Any:
        try:
            return await self.client.chat(
                model=self.config.model,
                messages=messages,
                stream=True,
                options={
                    "temperature": self.config.temperature,
                    "num_predict": self.config.max_tokens,
                },
            )
        except ollama.ResponseError as e:
            logger.error(f"Completion request failed: {e}")
            if e.status_code == 401:
                raise CompletionAuthError(AUTH_ERROR_MESSAGE) from e
            raise CompletionError(str(e)) from e
        except ConnectionError as e:
            logger.error(f"Could not reach Ollama at {self.config.ollama_host}: {e}")
            raise CompletionError(f"Could not reach Ollama at {self.config.ollama_host}") from e

    async def _ollama_deltas(self, stream: Any) -> AsyncIterator[str]:
        try:
            async for part in stream:
                content = part.get("message", {}).get("content", "")
                if content:
                    yield content
        except ollama.ResponseError as e:
            logger.error(f"Completion stream failed: {e}")
            raise CompletionError(str(e)) from e
