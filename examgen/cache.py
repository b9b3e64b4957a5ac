from __future__ import annotations

import hashlib
import json
import logging
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from examgen.schemas import GeneratedTest, MockTestRequest
from examgen.store import DocumentStore

logger = logging.getLogger(__name__)

GENERATED_TESTS_COLLECTION = "generated_tests"


def is_cache_eligible(request: MockTestRequest) -> bool:
    """Personalised requests never read from or write to the cache."""
    return not request.weakTopics and not request.practiceWeakTopics


def mock_test_cache_key(request: MockTestRequest) -> Optional[str]:
    if not is_cache_eligible(request):
        return None
    subjects = sorted(request.subjects)
    year = str(request.year) if request.year is not None else "latest"
    canonical = json.dumps([request.exam, subjects, year, request.questionCount], ensure_ascii=False)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:24]
    return f"mock-test-{request.exam}-{year}-{request.questionCount}-{digest}"


def current_affairs_cache_key(date: str) -> str:
    return f"current-affairs-{date}"


class CacheGate:
    def __init__(self, store: DocumentStore, collection: str = GENERATED_TESTS_COLLECTION) -> None:
        self.store = store
        self.collection = collection

    async def read(self, key: str) -> Optional[GeneratedTest]:
        try:
            document = await self.store.get(self.collection, key)
        except Exception as exc:
            logger.error("Error reading cache for key %s, proceeding to generate: %s", key, exc)
            return None
        if document is None:
            return None
        try:
            return GeneratedTest.model_validate(document)
        except ValidationError as exc:
            logger.warning("Ignoring malformed cache entry %s: %s", key, exc.errors()[:3])
            return None

    async def write(self, key: str, test: GeneratedTest) -> None:
        try:
            await self.store.put(self.collection, key, test.model_dump(mode="json"))
        except Exception as exc:
            logger.error("Error saving generated test to cache for key %s: %s", key, exc)
            return
        logger.info("Saved generated test to cache with key %s", key)

    async def fetch(self, key: Optional[str], generate: Callable[[], Awaitable[GeneratedTest]]) -> GeneratedTest:
        """
        Serve ``key`` from the store or run ``generate`` and store its result.

        A ``None`` key bypasses the store in both directions. Only non-empty
        results are written; write failures are logged and the fresh result is
        still returned.
        """
        if key is None:
            logger.info("Generating a personalised test (bypassing cache)")
            return await generate()

        cached = await self.read(key)
        if cached is not None:
            logger.info("Serving generated test from cache with key %s", key)
            return cached

        logger.info("No cache entry for %s, generating", key)
        test = await generate()
        if test.questions:
            await self.write(key, test)
        return test
