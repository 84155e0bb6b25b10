"""MongoDB-backed stores built on motor."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from supportbot.models import FAQ, Conversation, ConversationStatus, Document, DocumentStatus

logger = logging.getLogger(__name__)


def _to_record(model: Any) -> Dict[str, Any]:
    record = model.model_dump(mode="json")
    record["_id"] = record.pop("id")
    return record


def _from_record(record: Dict[str, Any]) -> Dict[str, Any]:
    payload = dict(record)
    payload["id"] = str(payload.pop("_id"))
    return payload


class MongoDocumentStore:
    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self.collection = database["documents"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("status", ASCENDING), ("is_active", ASCENDING)])
        await self.collection.create_index([("created_at", DESCENDING)])

    async def get(self, document_id: str) -> Optional[Document]:
        record = await self.collection.find_one({"_id": document_id})
        return Document.model_validate(_from_record(record)) if record else None

    async def list(self, *, status: Optional[DocumentStatus] = None, active: Optional[bool] = None) -> List[Document]:
        query: Dict[str, Any] = {}
        if status is not None:
            query["status"] = status.value
        if active is not None:
            query["is_active"] = active
        cursor = self.collection.find(query).sort("created_at", ASCENDING)
        return [Document.model_validate(_from_record(record)) async for record in cursor]

    async def save(self, document: Document) -> Document:
        document.sync_counters()
        await self.collection.replace_one({"_id": document.id}, _to_record(document), upsert=True)
        return document

    async def delete(self, document_id: str) -> bool:
        result = await self.collection.delete_one({"_id": document_id})
        return result.deleted_count > 0


class MongoFAQStore:
    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self.collection = database["faqs"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("category", ASCENDING), ("is_active", ASCENDING)])
        await self.collection.create_index([("priority", DESCENDING)])

    async def get(self, faq_id: str) -> Optional[FAQ]:
        record = await self.collection.find_one({"_id": faq_id})
        return FAQ.model_validate(_from_record(record)) if record else None

    async def list(self, *, active: Optional[bool] = True, category: Optional[str] = None) -> List[FAQ]:
        query: Dict[str, Any] = {}
        if active is not None:
            query["is_active"] = active
        if category is not None:
            query["category"] = category
        cursor = self.collection.find(query).sort([("priority", DESCENDING), ("created_at", DESCENDING)])
        return [FAQ.model_validate(_from_record(record)) async for record in cursor]

    async def list_active(self, limit: int) -> List[FAQ]:
        cursor = (
            self.collection.find({"is_active": True})
            .sort([("priority", DESCENDING), ("created_at", DESCENDING)])
            .limit(limit)
        )
        return [FAQ.model_validate(_from_record(record)) async for record in cursor]

    async def save(self, faq: FAQ) -> FAQ:
        await self.collection.replace_one({"_id": faq.id}, _to_record(faq), upsert=True)
        return faq

    async def delete(self, faq_id: str) -> bool:
        result = await self.collection.delete_one({"_id": faq_id})
        return result.deleted_count > 0


class MongoConversationStore:
    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self.collection = database["conversations"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
        await self.collection.create_index([("status", ASCENDING)])

    async def get(self, conversation_id: str, owner_id: str) -> Optional[Conversation]:
        record = await self.collection.find_one({"_id": conversation_id, "user_id": owner_id})
        return Conversation.model_validate(_from_record(record)) if record else None

    async def list(self, owner_id: str) -> List[Conversation]:
        cursor = self.collection.find(
            {"user_id": owner_id, "status": {"$ne": ConversationStatus.DELETED.value}},
            projection={"messages": False},
        ).sort("updated_at", DESCENDING)
        return [Conversation.model_validate(_from_record(record)) async for record in cursor]

    async def save(self, conversation: Conversation) -> Conversation:
        conversation.sync_counters()
        await self.collection.replace_one({"_id": conversation.id}, _to_record(conversation), upsert=True)
        return conversation


async def ensure_indexes(*stores: Any) -> None:
    for store in stores:
        await store.ensure_indexes()
    logger.info("MongoDB indexes ensured for %d collections", len(stores))
