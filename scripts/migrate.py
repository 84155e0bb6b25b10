#!/usr/bin/env python
"""
Database migration script for the support assistant.

Creates the MongoDB indexes the document, FAQ and conversation stores query
by, or lists the indexes and document counts currently present.

Usage:
    STORE_BACKEND=mongo python scripts/migrate.py [migrate|check]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from supportbot.core.config import settings
from supportbot.core.database import database_manager
from supportbot.knowledge.stores import mongo

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

COLLECTIONS = ["documents", "faqs", "conversations"]


async def run_migrations() -> None:
    await database_manager.initialize()
    try:
        database = database_manager.database
        await mongo.ensure_indexes(
            mongo.MongoDocumentStore(database),
            mongo.MongoFAQStore(database),
            mongo.MongoConversationStore(database),
        )
        logger.info("Migrations completed for database %s", settings.MONGODB_DATABASE)
    finally:
        await database_manager.close()


async def check_schema() -> None:
    await database_manager.initialize()
    try:
        database = database_manager.database
        for name in COLLECTIONS:
            collection = database[name]
            indexes = await collection.index_information()
            count = await collection.count_documents({})
            logger.info("%s: %d records, indexes=%s", name, count, ", ".join(sorted(indexes)))
    finally:
        await database_manager.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Support assistant database migration tool")
    parser.add_argument(
        "command",
        nargs="?",
        default="migrate",
        choices=["migrate", "check"],
        help="Command to execute (default: migrate)"
    )
    args = parser.parse_args()

    if settings.STORE_BACKEND != "mongo":
        logger.error("STORE_BACKEND is %s; migrations only apply to the mongo backend", settings.STORE_BACKEND)
        sys.exit(2)

    try:
        if args.command == "migrate":
            asyncio.run(run_migrations())
        else:
            asyncio.run(check_schema())
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user.")
        sys.exit(1)
    except Exception as exc:
        logger.error("Operation failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
