"""Utilities for interacting with LLM providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Literal, Optional, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError

from supportbot.core.config import Settings, settings
from supportbot.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

PROVIDER_FAILURE_MESSAGE = "Failed to get AI response"


@dataclass(frozen=True)
class ChatTurn:
    role: str
    content: str


@dataclass(frozen=True)
class GenerationResult:
    text: str
    tokens_used: int
    model: str


@dataclass(frozen=True)
class ProviderEvent:
    """One element of a streamed generation; the stream ends with `complete` or `error`."""

    type: Literal["chunk", "complete", "error"]
    content: str = ""
    tokens_used: int = 0
    error: Optional[str] = None


class LLMProvider(Protocol):
    model: str

    async def generate(self, system_prompt: str, history: Sequence[ChatTurn], message: str) -> GenerationResult:
        ...

    def generate_stream(
        self, system_prompt: str, history: Sequence[ChatTurn], message: str
    ) -> AsyncIterator[ProviderEvent]:
        ...


def build_messages(system_prompt: str, history: Sequence[ChatTurn], message: str) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": system_prompt}]
    for turn in history:
        role = turn.role if turn.role in {"user", "assistant", "system"} else "user"
        messages.append({"role": role, "content": turn.content})
    messages.append({"role": "user", "content": message})
    return messages


class OpenAIProvider:
    """Chat completions over the OpenAI API (or any compatible endpoint)."""

    def __init__(
        self,
        *,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> None:
        self.client = client or AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=str(settings.OPENAI_BASE_URL) if settings.OPENAI_BASE_URL else None,
        )
        self.model = model or settings.LLM_MODEL
        self.temperature = settings.TEMPERATURE if temperature is None else temperature
        self.top_p = settings.TOP_P if top_p is None else top_p
        self.max_tokens = max_tokens or settings.MAX_OUTPUT_TOKENS

    async def generate(self, system_prompt: str, history: Sequence[ChatTurn], message: str) -> GenerationResult:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=build_messages(system_prompt, history, message),
                temperature=self.temperature,
                top_p=self.top_p,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as exc:
            logger.error("OpenAI chat failed: %s", exc)
            raise ProviderError(PROVIDER_FAILURE_MESSAGE) from exc

        text = (response.choices[0].message.content or "") if response.choices else ""
        tokens = response.usage.total_tokens if response.usage else 0
        return GenerationResult(text=text, tokens_used=tokens, model=self.model)

    async def generate_stream(
        self, system_prompt: str, history: Sequence[ChatTurn], message: str
    ) -> AsyncIterator[ProviderEvent]:
        tokens = 0
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=build_messages(system_prompt, history, message),
                temperature=self.temperature,
                top_p=self.top_p,
                max_tokens=self.max_tokens,
                stream=True,
                stream_options={"include_usage": True},
            )
            async for chunk in stream:
                if chunk.usage is not None:
                    tokens = chunk.usage.total_tokens
                for choice in chunk.choices:
                    text = choice.delta.content if choice.delta else None
                    if text:
                        yield ProviderEvent(type="chunk", content=text)
        except OpenAIError as exc:
            logger.error("OpenAI stream failed: %s", exc)
            yield ProviderEvent(type="error", error=PROVIDER_FAILURE_MESSAGE)
            return

        yield ProviderEvent(type="complete", tokens_used=tokens)


class EchoProvider:
    """Deterministic, offline provider for development without an API key."""

    model = "echo"

    async def generate(self, system_prompt: str, history: Sequence[ChatTurn], message: str) -> GenerationResult:
        text = self._reply(system_prompt, message)
        return GenerationResult(text=text, tokens_used=len(text.split()), model=self.model)

    async def generate_stream(
        self, system_prompt: str, history: Sequence[ChatTurn], message: str
    ) -> AsyncIterator[ProviderEvent]:
        text = self._reply(system_prompt, message)
        words = text.split(" ")
        for index, word in enumerate(words):
            yield ProviderEvent(type="chunk", content=word if index == len(words) - 1 else f"{word} ")
        yield ProviderEvent(type="complete", tokens_used=len(words))

    @staticmethod
    def _reply(system_prompt: str, message: str) -> str:
        grounded = "### Company Knowledge Base:" in system_prompt
        prefix = "Based on our knowledge base" if grounded else "Thanks for reaching out"
        return f"{prefix}, here is what I can tell you about: {message}"


def build_provider(config: Settings = settings) -> LLMProvider:
    if config.LLM_PROVIDER == "echo":
        logger.warning("Using the offline echo provider; responses are not model generated")
        return EchoProvider()
    return OpenAIProvider()
