"""Events emitted by a streaming chat turn and their SSE encoding."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Literal, Union

from supportbot.models import Message


@dataclass(frozen=True)
class ChunkEvent:
    content: str
    type: Literal["chunk"] = "chunk"


@dataclass(frozen=True)
class CompleteEvent:
    message: Message
    type: Literal["complete"] = "complete"


@dataclass(frozen=True)
class ErrorEvent:
    error: str
    type: Literal["error"] = "error"


StreamEvent = Union[ChunkEvent, CompleteEvent, ErrorEvent]


def to_frame(event: StreamEvent) -> Dict[str, Any]:
    if isinstance(event, ChunkEvent):
        return {"type": "chunk", "content": event.content}
    if isinstance(event, CompleteEvent):
        return {"type": "complete"}
    return {"type": "error", "error": event.error}


def encode_sse(event: StreamEvent) -> str:
    """One JSON object per frame, prefixed with `data: ` and blank-line terminated."""

    return f"data: {json.dumps(to_frame(event), ensure_ascii=False)}\n\n"
