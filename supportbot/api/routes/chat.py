"""Conversation and chat turn endpoints."""

from __future__ import annotations

import logging
from contextlib import aclosing
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from supportbot.api.dependencies import get_current_user, get_orchestrator
from supportbot.models import Conversation, ConversationStatus, Message, User
from supportbot.orchestration.chat import ChatOrchestrator
from supportbot.orchestration.events import StreamEvent, encode_sse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


class SendMessageRequest(BaseModel):
    message: str = Field(..., description="User message text")


class ConversationSummary(BaseModel):
    id: str
    title: str
    status: ConversationStatus
    message_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationSummary":
        return cls(
            id=conversation.id,
            title=conversation.title,
            status=conversation.status,
            message_count=conversation.metadata.message_count,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class MessageResponse(BaseModel):
    conversation_id: str
    message: Message


@router.post("/conversations", response_model=Conversation, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    current_user: User = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> Conversation:
    return await orchestrator.create_conversation(current_user.id)


@router.get("/conversations", response_model=List[ConversationSummary])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> List[ConversationSummary]:
    conversations = await orchestrator.list_conversations(current_user.id)
    return [ConversationSummary.from_conversation(conversation) for conversation in conversations]


@router.get("/conversations/{conversation_id}", response_model=Conversation)
async def get_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> Conversation:
    return await orchestrator.get_conversation(conversation_id, current_user.id)


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    await orchestrator.delete_conversation(conversation_id, current_user.id)
    return {"detail": "Conversation deleted"}


@router.delete("/conversations/{conversation_id}/messages", response_model=Conversation)
async def clear_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> Conversation:
    return await orchestrator.clear_conversation(conversation_id, current_user.id)


@router.post("/conversations/{conversation_id}/messages", response_model=MessageResponse)
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> MessageResponse:
    message = await orchestrator.send_message(conversation_id, current_user.id, request.message)
    return MessageResponse(conversation_id=conversation_id, message=message)


@router.post("/conversations/{conversation_id}/stream")
async def stream_message(
    conversation_id: str,
    request: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream the assistant reply as server-sent events.

    Ownership and validation errors are returned as regular JSON errors;
    once the stream has started, failures arrive as a final `error` frame.
    """

    events = await orchestrator.stream_message(conversation_id, current_user.id, request.message)
    return StreamingResponse(
        _sse_frames(events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


async def _sse_frames(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    async with aclosing(events):
        async for event in events:
            yield encode_sse(event)
