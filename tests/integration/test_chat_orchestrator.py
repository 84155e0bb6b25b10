import pytest

from conftest import make_document
from supportbot.core.exceptions import NotFoundError, ProviderError, ValidationError
from supportbot.knowledge.retrieval.engine import RetrievalEngine
from supportbot.models import FAQ, Message, MessageRole
from supportbot.orchestration.chat import ChatOrchestrator
from supportbot.orchestration.events import ChunkEvent, CompleteEvent, ErrorEvent
from supportbot.utils.llm import GenerationResult, ProviderEvent

REPLY_FRAGMENTS = ["Refunds ", "take ", "", "five days."]


class StubProvider:
    model = "stub-model"

    def __init__(self):
        self.calls = []

    async def generate(self, system_prompt, history, message):
        self.calls.append((system_prompt, list(history), message))
        return GenerationResult(text="Refunds take five days.", tokens_used=12, model=self.model)

    async def generate_stream(self, system_prompt, history, message):
        self.calls.append((system_prompt, list(history), message))
        for fragment in REPLY_FRAGMENTS:
            yield ProviderEvent(type="chunk", content=fragment)
        yield ProviderEvent(type="complete", tokens_used=9)


class FailingProvider:
    model = "stub-model"

    async def generate(self, system_prompt, history, message):
        raise ProviderError("Failed to get AI response")

    async def generate_stream(self, system_prompt, history, message):
        yield ProviderEvent(type="chunk", content="Partial ")
        yield ProviderEvent(type="error", error="Failed to get AI response")


class RaisingStreamProvider:
    model = "stub-model"

    async def generate(self, system_prompt, history, message):
        raise ProviderError("Failed to get AI response")

    async def generate_stream(self, system_prompt, history, message):
        yield ProviderEvent(type="chunk", content="Partial ")
        raise ProviderError("stream dropped")


class EventIterator:
    """Async iterator without aclose(), as a hand-written provider might return."""

    def __init__(self, events):
        self.events = list(events)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.events:
            raise StopAsyncIteration
        return self.events.pop(0)


class IteratorProvider:
    model = "stub-model"

    async def generate(self, system_prompt, history, message):
        raise ProviderError("unused")

    def generate_stream(self, system_prompt, history, message):
        return EventIterator(
            [ProviderEvent(type="chunk", content="Hi"), ProviderEvent(type="complete", tokens_used=3)]
        )


class TruncatedProvider:
    model = "stub-model"

    async def generate(self, system_prompt, history, message):
        raise RuntimeError("connection reset")

    async def generate_stream(self, system_prompt, history, message):
        yield ProviderEvent(type="chunk", content="Half an ans")


class FailingFAQStore:
    async def list_active(self, limit):
        raise ConnectionError("faq store offline")


def build_orchestrator(conversation_store, document_store, faq_store, provider):
    return ChatOrchestrator(
        conversations=conversation_store,
        faqs=faq_store,
        retrieval=RetrievalEngine(document_store),
        provider=provider,
        retrieval_limit=3,
        faq_limit=5,
        history_window=10,
        default_title="New Conversation",
        title_max_length=50,
    )


async def _collect(events):
    return [event async for event in events]


@pytest.mark.asyncio
async def test_send_message_persists_grounded_turn(conversation_store, document_store, faq_store):
    await document_store.save(make_document("Policies", chunks=["Our refund policy allows returns within 30 days."]))
    await faq_store.save(FAQ(question="Do you ship abroad?", answer="Yes, worldwide.", created_by="admin-1"))
    provider = StubProvider()
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, provider)
    conversation = await orchestrator.create_conversation("user-1")

    reply = await orchestrator.send_message(conversation.id, "user-1", "What is your refund policy?")

    system_prompt, history, message = provider.calls[0]
    assert "Our refund policy allows returns within 30 days." in system_prompt
    assert "Q1: Do you ship abroad?" in system_prompt
    assert history == []
    assert message == "What is your refund policy?"

    assert reply.role == MessageRole.ASSISTANT
    assert reply.content == "Refunds take five days."
    assert reply.metadata.tokens_used == 12
    assert reply.metadata.model == "stub-model"
    assert [source.chunk_index for source in reply.metadata.sources] == [0]

    stored = await conversation_store.get(conversation.id, "user-1")
    assert [m.role for m in stored.messages] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert stored.metadata.message_count == 2
    assert stored.metadata.total_tokens == 12
    assert stored.title == "What is your refund policy?"


@pytest.mark.asyncio
async def test_history_excludes_new_message_and_is_windowed(conversation_store, document_store, faq_store):
    provider = StubProvider()
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, provider)
    conversation = await orchestrator.create_conversation("user-1")
    for index in range(12):
        role = MessageRole.USER if index % 2 == 0 else MessageRole.ASSISTANT
        conversation.append(Message(role=role, content=f"turn {index}"))
    conversation.title = "Ongoing"
    await conversation_store.save(conversation)

    await orchestrator.send_message(conversation.id, "user-1", "latest question")

    _, history, message = provider.calls[0]
    assert message == "latest question"
    assert [turn.content for turn in history] == [f"turn {index}" for index in range(3, 12)]
    stored = await conversation_store.get(conversation.id, "user-1")
    assert stored.title == "Ongoing"


@pytest.mark.asyncio
async def test_provider_failure_leaves_conversation_untouched(conversation_store, document_store, faq_store):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, FailingProvider())
    conversation = await orchestrator.create_conversation("user-1")

    with pytest.raises(ProviderError) as excinfo:
        await orchestrator.send_message(conversation.id, "user-1", "Hello?")

    assert excinfo.value.message == "failed to send message"
    stored = await conversation_store.get(conversation.id, "user-1")
    assert stored.messages == []
    assert stored.metadata.message_count == 0


@pytest.mark.asyncio
async def test_unexpected_provider_exception_is_reported_as_provider_error(
    conversation_store, document_store, faq_store
):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, TruncatedProvider())
    conversation = await orchestrator.create_conversation("user-1")

    with pytest.raises(ProviderError):
        await orchestrator.send_message(conversation.id, "user-1", "Hello?")


@pytest.mark.asyncio
async def test_stream_chunks_match_persisted_reply(conversation_store, document_store, faq_store):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, StubProvider())
    conversation = await orchestrator.create_conversation("user-1")

    events = await _collect(await orchestrator.stream_message(conversation.id, "user-1", "How long do refunds take?"))

    chunks = [event for event in events if isinstance(event, ChunkEvent)]
    assert [chunk.content for chunk in chunks] == ["Refunds ", "take ", "five days."]
    assert isinstance(events[-1], CompleteEvent)
    assert sum(isinstance(event, CompleteEvent) for event in events) == 1

    stored = await conversation_store.get(conversation.id, "user-1")
    assert stored.messages[-1].content == "".join(chunk.content for chunk in chunks)
    assert stored.messages[-1].metadata.tokens_used == 9
    assert stored.metadata.total_tokens == 9
    assert events[-1].message == stored.messages[-1]


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", [FailingProvider(), RaisingStreamProvider()])
async def test_stream_error_emits_single_terminal_error(conversation_store, document_store, faq_store, provider):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, provider)
    conversation = await orchestrator.create_conversation("user-1")

    events = await _collect(await orchestrator.stream_message(conversation.id, "user-1", "Hello?"))

    errors = [event for event in events if isinstance(event, ErrorEvent)]
    assert len(errors) == 1
    assert events[-1] is errors[0]
    assert not any(isinstance(event, CompleteEvent) for event in events)
    stored = await conversation_store.get(conversation.id, "user-1")
    assert stored.metadata.message_count == 0


@pytest.mark.asyncio
async def test_stream_that_never_completes_is_an_error(conversation_store, document_store, faq_store):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, TruncatedProvider())
    conversation = await orchestrator.create_conversation("user-1")

    events = await _collect(await orchestrator.stream_message(conversation.id, "user-1", "Hello?"))

    assert isinstance(events[-1], ErrorEvent)
    stored = await conversation_store.get(conversation.id, "user-1")
    assert stored.messages == []


@pytest.mark.asyncio
async def test_foreign_or_deleted_conversation_is_not_found(conversation_store, document_store, faq_store):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, StubProvider())
    conversation = await orchestrator.create_conversation("user-1")

    with pytest.raises(NotFoundError):
        await orchestrator.send_message(conversation.id, "user-2", "Hello?")
    with pytest.raises(NotFoundError):
        await orchestrator.stream_message(conversation.id, "user-2", "Hello?")

    await orchestrator.delete_conversation(conversation.id, "user-1")
    with pytest.raises(NotFoundError):
        await orchestrator.get_conversation(conversation.id, "user-1")
    assert await orchestrator.list_conversations("user-1") == []


@pytest.mark.asyncio
async def test_blank_message_is_rejected(conversation_store, document_store, faq_store):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, StubProvider())
    conversation = await orchestrator.create_conversation("user-1")

    with pytest.raises(ValidationError):
        await orchestrator.send_message(conversation.id, "user-1", "   ")


@pytest.mark.asyncio
async def test_faq_lookup_failure_does_not_block_reply(conversation_store, document_store):
    provider = StubProvider()
    orchestrator = build_orchestrator(conversation_store, document_store, FailingFAQStore(), provider)
    conversation = await orchestrator.create_conversation("user-1")

    reply = await orchestrator.send_message(conversation.id, "user-1", "Anyone there?")

    assert reply.content == "Refunds take five days."
    assert "### Frequently Asked Questions:" not in provider.calls[0][0]


@pytest.mark.asyncio
async def test_clear_conversation_resets_state(conversation_store, document_store, faq_store):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, StubProvider())
    conversation = await orchestrator.create_conversation("user-1")
    await orchestrator.send_message(conversation.id, "user-1", "Hello there")

    cleared = await orchestrator.clear_conversation(conversation.id, "user-1")

    assert cleared.messages == []
    assert cleared.metadata.total_tokens == 0
    assert cleared.title == "New Conversation"


@pytest.mark.asyncio
async def test_stream_from_plain_async_iterator_completes(conversation_store, document_store, faq_store):
    orchestrator = build_orchestrator(conversation_store, document_store, faq_store, IteratorProvider())
    conversation = await orchestrator.create_conversation("user-1")

    events = await _collect(await orchestrator.stream_message(conversation.id, "user-1", "Hello?"))

    assert [event.content for event in events if isinstance(event, ChunkEvent)] == ["Hi"]
    assert isinstance(events[-1], CompleteEvent)
    assert events[-1].message.content == "Hi"
    stored = await conversation_store.get(conversation.id, "user-1")
    assert [message.content for message in stored.messages] == ["Hello?", "Hi"]
