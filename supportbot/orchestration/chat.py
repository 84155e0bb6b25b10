"""Chat orchestration: one grounded turn, whole or streamed."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from opentelemetry import trace

from supportbot.core.config import settings
from supportbot.core.exceptions import NotFoundError, ProviderError, ValidationError
from supportbot.knowledge.retrieval.citations import CitationBuilder
from supportbot.knowledge.retrieval.engine import RetrievalEngine, RetrievedChunk
from supportbot.knowledge.stores.base import ConversationStore, FAQStore
from supportbot.models import (
    FAQ,
    Conversation,
    ConversationStatus,
    Message,
    MessageMetadata,
    MessageRole,
    SourceReference,
)
from supportbot.orchestration.events import ChunkEvent, CompleteEvent, ErrorEvent, StreamEvent
from supportbot.orchestration.prompt import PromptComposer
from supportbot.utils.llm import ChatTurn, LLMProvider, ProviderEvent
from supportbot.utils.monitoring import record_chat_turn

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SEND_FAILURE_MESSAGE = "failed to send message"
STREAM_FAILURE_MESSAGE = "Failed to stream message"


async def _close_stream(stream: AsyncIterator[ProviderEvent]) -> None:
    # Plain async iterators satisfy the provider protocol but have no aclose().
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


@dataclass
class PreparedTurn:
    """Everything the model call needs; the conversation is not yet persisted."""

    conversation: Conversation
    message: str
    system_prompt: str
    history: List[ChatTurn]
    sources: List[SourceReference] = field(default_factory=list)


class ChatOrchestrator:
    """Coordinate retrieval, prompt composition, the model call and persistence.

    A turn is all-or-nothing: the user message and the assistant reply are
    saved together after the provider succeeds. When the provider fails the
    in-memory conversation (including the appended user message) is dropped.
    """

    def __init__(
        self,
        *,
        conversations: ConversationStore,
        faqs: FAQStore,
        retrieval: RetrievalEngine,
        provider: LLMProvider,
        composer: Optional[PromptComposer] = None,
        citations: Optional[CitationBuilder] = None,
        retrieval_limit: Optional[int] = None,
        faq_limit: Optional[int] = None,
        history_window: Optional[int] = None,
        default_title: Optional[str] = None,
        title_max_length: Optional[int] = None,
    ) -> None:
        self.conversations = conversations
        self.faqs = faqs
        self.retrieval = retrieval
        self.provider = provider
        self.composer = composer or PromptComposer()
        self.citations = citations or CitationBuilder()
        self.retrieval_limit = retrieval_limit or settings.RETRIEVAL_TOP_K
        self.faq_limit = faq_limit or settings.FAQ_CONTEXT_LIMIT
        self.history_window = history_window or settings.HISTORY_WINDOW
        self.default_title = default_title or settings.DEFAULT_CONVERSATION_TITLE
        self.title_max_length = title_max_length or settings.TITLE_MAX_LENGTH

    # ------------------------------------------------------------------
    # Conversation management
    # ------------------------------------------------------------------

    async def create_conversation(self, owner_id: str) -> Conversation:
        conversation = Conversation(user_id=owner_id, title=self.default_title)
        return await self.conversations.save(conversation)

    async def list_conversations(self, owner_id: str) -> List[Conversation]:
        return await self.conversations.list(owner_id)

    async def get_conversation(self, conversation_id: str, owner_id: str) -> Conversation:
        conversation = await self.conversations.get(conversation_id, owner_id)
        if conversation is None or conversation.status == ConversationStatus.DELETED:
            raise NotFoundError("Conversation not found")
        return conversation

    async def delete_conversation(self, conversation_id: str, owner_id: str) -> Conversation:
        conversation = await self.get_conversation(conversation_id, owner_id)
        conversation.status = ConversationStatus.DELETED
        return await self.conversations.save(conversation)

    async def clear_conversation(self, conversation_id: str, owner_id: str) -> Conversation:
        conversation = await self.get_conversation(conversation_id, owner_id)
        conversation.clear(self.default_title)
        return await self.conversations.save(conversation)

    # ------------------------------------------------------------------
    # Chat turns
    # ------------------------------------------------------------------

    async def send_message(self, conversation_id: str, owner_id: str, message: str) -> Message:
        """Run a turn and return the persisted assistant message."""

        turn = await self._prepare_turn(conversation_id, owner_id, message)

        started = time.perf_counter()
        with tracer.start_as_current_span("chat.generate") as span:
            span.set_attribute("chat.mode", "whole")
            try:
                result = await self.provider.generate(turn.system_prompt, turn.history, turn.message)
            except ProviderError as exc:
                logger.error("Provider failed for conversation %s: %s", conversation_id, exc.message)
                record_chat_turn("whole", "error")
                raise ProviderError(SEND_FAILURE_MESSAGE) from exc
            except Exception as exc:
                logger.exception("Unexpected provider failure for conversation %s", conversation_id)
                record_chat_turn("whole", "error")
                raise ProviderError(SEND_FAILURE_MESSAGE) from exc
        elapsed = time.perf_counter() - started

        assistant = await self._finalize(turn, result.text, result.tokens_used, result.model, elapsed)
        record_chat_turn("whole", "ok", elapsed)
        return assistant

    async def stream_message(self, conversation_id: str, owner_id: str, message: str) -> AsyncIterator[StreamEvent]:
        """Prepare a turn and return its event stream.

        Ownership and input validation fail here, before any event is produced;
        provider failures surface as a terminal `ErrorEvent` in the stream.
        """

        turn = await self._prepare_turn(conversation_id, owner_id, message)
        return self._stream_turn(turn)

    async def _stream_turn(self, turn: PreparedTurn) -> AsyncIterator[StreamEvent]:
        fragments: List[str] = []
        tokens_used: Optional[int] = None
        started = time.perf_counter()
        span = tracer.start_span("chat.generate", attributes={"chat.mode": "stream"})

        try:
            stream = self.provider.generate_stream(turn.system_prompt, turn.history, turn.message)
            try:
                async for event in stream:
                    if event.type == "chunk":
                        if not event.content:
                            continue
                        fragments.append(event.content)
                        yield ChunkEvent(content=event.content)
                    elif event.type == "complete":
                        tokens_used = event.tokens_used
                        break
                    else:
                        logger.error(
                            "Provider stream failed for conversation %s: %s", turn.conversation.id, event.error
                        )
                        record_chat_turn("stream", "error")
                        yield ErrorEvent(error=event.error or STREAM_FAILURE_MESSAGE)
                        return
            finally:
                await _close_stream(stream)
        except Exception:
            logger.exception("Provider stream raised for conversation %s", turn.conversation.id)
            record_chat_turn("stream", "error")
            yield ErrorEvent(error=STREAM_FAILURE_MESSAGE)
            return
        finally:
            span.end()

        if tokens_used is None:
            logger.error("Provider stream for conversation %s ended without completing", turn.conversation.id)
            record_chat_turn("stream", "error")
            yield ErrorEvent(error=STREAM_FAILURE_MESSAGE)
            return

        elapsed = time.perf_counter() - started
        try:
            assistant = await self._finalize(turn, "".join(fragments), tokens_used, self.provider.model, elapsed)
        except Exception:
            logger.exception("Failed to persist streamed turn for conversation %s", turn.conversation.id)
            record_chat_turn("stream", "error")
            yield ErrorEvent(error=STREAM_FAILURE_MESSAGE)
            return

        record_chat_turn("stream", "ok", elapsed)
        yield CompleteEvent(message=assistant)

    async def _prepare_turn(self, conversation_id: str, owner_id: str, message: str) -> PreparedTurn:
        if not message or not message.strip():
            raise ValidationError("Message is required")

        conversation = await self.get_conversation(conversation_id, owner_id)
        conversation.append(Message(role=MessageRole.USER, content=message))

        with tracer.start_as_current_span("chat.ground"):
            chunks, faqs = await self._gather_grounding(message)

        system_prompt = self.composer.compose(self.citations.context(chunks), faqs)
        recent = conversation.recent_messages(self.history_window)
        history = [ChatTurn(role=item.role.value, content=item.content) for item in recent[:-1]]

        return PreparedTurn(
            conversation=conversation,
            message=message,
            system_prompt=system_prompt,
            history=history,
            sources=self.citations.sources(chunks),
        )

    async def _gather_grounding(self, message: str) -> Tuple[List[RetrievedChunk], Sequence[FAQ]]:
        chunks, faqs = await asyncio.gather(
            self.retrieval.retrieve(message, self.retrieval_limit),
            self.faqs.list_active(self.faq_limit),
            return_exceptions=True,
        )
        if isinstance(chunks, BaseException):
            logger.error("Retrieval failed; continuing without context: %s", chunks)
            chunks = []
        if isinstance(faqs, BaseException):
            logger.error("FAQ lookup failed; continuing without FAQs: %s", faqs)
            faqs = []
        return chunks, faqs

    async def _finalize(
        self,
        turn: PreparedTurn,
        text: str,
        tokens_used: int,
        model: str,
        elapsed_seconds: float,
    ) -> Message:
        conversation = turn.conversation
        assistant = conversation.append(
            Message(
                role=MessageRole.ASSISTANT,
                content=text,
                metadata=MessageMetadata(
                    tokens_used=tokens_used,
                    model=model,
                    processing_time_ms=int(elapsed_seconds * 1000),
                    sources=turn.sources,
                ),
            )
        )
        conversation.metadata.total_tokens += tokens_used
        if conversation.has_default_title(self.default_title):
            conversation.generate_title(self.title_max_length)

        # A client disconnect must not abort the save half-way.
        await asyncio.shield(self.conversations.save(conversation))
        return assistant
