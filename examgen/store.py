from __future__ import annotations

import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as redis

from examgen.config import Settings

logger = logging.getLogger(__name__)

Document = dict[str, Any]


def _matches(document: Document, filters: dict[str, Any]) -> bool:
    return all(document.get(field) == value for field, value in filters.items())


class DocumentStore(ABC):
    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[Document]: ...

    @abstractmethod
    async def put(self, collection: str, key: str, document: Document) -> None: ...

    @abstractmethod
    async def query(self, collection: str, filters: dict[str, Any], limit: int) -> list[Document]: ...

    async def add(self, collection: str, document: Document) -> str:
        key = uuid.uuid4().hex
        await self.put(collection, key, document)
        return key

    async def close(self) -> None:
        return None


class MemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}

    async def get(self, collection: str, key: str) -> Optional[Document]:
        document = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(document) if document is not None else None

    async def put(self, collection: str, key: str, document: Document) -> None:
        self._collections.setdefault(collection, {})[key] = copy.deepcopy(document)

    async def query(self, collection: str, filters: dict[str, Any], limit: int) -> list[Document]:
        found = []
        for document in self._collections.get(collection, {}).values():
            if len(found) >= limit:
                break
            if _matches(document, filters):
                found.append(copy.deepcopy(document))
        return found


class RedisDocumentStore(DocumentStore):
    """JSON documents under ``<collection>:<key>`` string keys."""

    def __init__(self, client: redis.Redis) -> None:
        self.redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisDocumentStore":
        return cls(redis.from_url(url, encoding="utf-8", decode_responses=True))

    @staticmethod
    def _key(collection: str, key: str) -> str:
        return f"{collection}:{key}"

    async def get(self, collection: str, key: str) -> Optional[Document]:
        value = await self.redis.get(self._key(collection, key))
        if value is None:
            return None
        return json.loads(value)

    async def put(self, collection: str, key: str, document: Document) -> None:
        await self.redis.set(self._key(collection, key), json.dumps(document, ensure_ascii=False))

    async def query(self, collection: str, filters: dict[str, Any], limit: int) -> list[Document]:
        found = []
        async for redis_key in self.redis.scan_iter(match=f"{collection}:*"):
            if len(found) >= limit:
                break
            value = await self.redis.get(redis_key)
            if value is None:
                continue
            try:
                document = json.loads(value)
            except json.JSONDecodeError:
                logger.warning("Skipping non-JSON document at %s", redis_key)
                continue
            if _matches(document, filters):
                found.append(document)
        return found

    async def close(self) -> None:
        await self.redis.aclose()


def build_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "redis":
        logger.info("Using Redis document store at %s", settings.redis_url)
        return RedisDocumentStore.from_url(settings.redis_url)
    logger.info("Using in-memory document store")
    return MemoryDocumentStore()
