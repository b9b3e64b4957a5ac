from __future__ import annotations

import logging
import random
import time
from typing import Optional

from examgen.blueprints import EXAM_BLUEPRINTS, Blueprint, get_blueprint
from examgen.cache import CacheGate, current_affairs_cache_key, mock_test_cache_key
from examgen.composer import BlueprintComposer
from examgen.errors import IncompleteGenerationError
from examgen.flows import (
    AI_MENTOR_FLOW,
    CREATE_QUESTION_FLOW,
    CURRENT_AFFAIRS_FLOW,
    CUSTOM_TEST_FLOW,
    DAILY_MOTIVATION_FLOW,
    EMPTY_QUESTION,
    EMPTY_TEST,
    FALLBACK_ANALYSIS,
    FALLBACK_ANSWER,
    FALLBACK_QUOTE,
    MOCK_TEST_FLOW,
    NCERT_TEST_FLOW,
    TYPING_ANALYSIS_FLOW,
    GenerationFlow,
)
from examgen.invoker import PromptInvoker
from examgen.pyq import PyqResolver
from examgen.schemas import (
    AIMentorAnswer,
    AIMentorRequest,
    CreateQuestionRequest,
    CurrentAffairsRequest,
    CustomTestRequest,
    DailyMotivation,
    DailyMotivationRequest,
    GeneratedTest,
    MockTestRequest,
    NCERTTestRequest,
    PyqTestRequest,
    Question,
    TypingAnalysis,
    TypingAnalysisRequest,
)
from examgen.store import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20


class ExamGenerator:
    def __init__(
        self,
        invoker: PromptInvoker,
        store: DocumentStore,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        blueprints: Optional[dict[str, Blueprint]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.invoker = invoker
        self.store = store
        self.batch_size = batch_size
        self.blueprints = EXAM_BLUEPRINTS if blueprints is None else blueprints
        self.cache = CacheGate(store)

        self.mock_test_flow = GenerationFlow(MOCK_TEST_FLOW, invoker)
        self.custom_test_flow = GenerationFlow(CUSTOM_TEST_FLOW, invoker)
        self.current_affairs_flow = GenerationFlow(CURRENT_AFFAIRS_FLOW, invoker)
        self.ncert_test_flow = GenerationFlow(NCERT_TEST_FLOW, invoker)
        self.create_question_flow = GenerationFlow(CREATE_QUESTION_FLOW, invoker)
        self.motivation_flow = GenerationFlow(DAILY_MOTIVATION_FLOW, invoker)
        self.mentor_flow = GenerationFlow(AI_MENTOR_FLOW, invoker)
        self.typing_analysis_flow = GenerationFlow(TYPING_ANALYSIS_FLOW, invoker)

        self.composer = BlueprintComposer(self.mock_test_flow, rng=rng)
        self.pyq_resolver = PyqResolver(store, self.generate_mock_test)

    async def generate_mock_test(self, request: MockTestRequest) -> GeneratedTest:
        key = mock_test_cache_key(request)
        return await self.cache.fetch(key, lambda: self._generate_mock_test(request))

    async def _generate_mock_test(self, request: MockTestRequest) -> GeneratedTest:
        blueprint = get_blueprint(request.exam, self.blueprints)
        if blueprint is not None and len(request.subjects) > 1:
            return await self.composer.compose(request, blueprint)
        logger.info("No blueprint for '%s' or single-subject test, using batch generation", request.exam)
        return await self._generate_in_batches(request)

    async def _generate_in_batches(self, request: MockTestRequest) -> GeneratedTest:
        # Batches run one after another; each takes a fresh wall-clock seed.
        total = request.questionCount
        num_batches = -(-total // self.batch_size)
        logger.info("Planning to generate %d questions in %d batches", total, num_batches)

        questions: list[Question] = []
        for index in range(num_batches):
            count = min(self.batch_size, total - len(questions))
            if count <= 0:
                break
            logger.info("Generating batch %d/%d with %d questions", index + 1, num_batches, count)
            batch_request = request.model_copy(
                update={"questionCount": count, "seed": time.time() * 1000 + index}
            )
            outcome = await self.mock_test_flow.run(batch_request)
            if not outcome.ok:
                logger.error("Batch %d failed: %s. Aborting generation.", index + 1, outcome.error)
                raise IncompleteGenerationError("AI failed to generate a complete test batch. Please try again.")
            questions.extend(outcome.value.questions)
            logger.info("Batch %d successful. Total questions so far: %d", index + 1, len(questions))

        if len(questions) != total:
            logger.error("Final generated count (%d) does not match requested count (%d)", len(questions), total)
            raise IncompleteGenerationError("Failed to generate the complete set of questions.")
        return GeneratedTest(questions=questions)

    async def generate_custom_test(self, request: CustomTestRequest) -> GeneratedTest:
        outcome = await self.custom_test_flow.run(request)
        return outcome.unwrap_or(EMPTY_TEST)

    async def generate_current_affairs_test(self, date: str) -> GeneratedTest:
        request = CurrentAffairsRequest(date=date)

        async def generate() -> GeneratedTest:
            outcome = await self.current_affairs_flow.run(request)
            return outcome.unwrap_or(EMPTY_TEST)

        return await self.cache.fetch(current_affairs_cache_key(date), generate)

    async def generate_ncert_test(self, request: NCERTTestRequest) -> GeneratedTest:
        outcome = await self.ncert_test_flow.run(request)
        return outcome.unwrap_or(EMPTY_TEST)

    async def create_question_from_user_input(self, text: str, image_data_uri: Optional[str] = None) -> Question:
        request = CreateQuestionRequest(questionText=text, imageDataUri=image_data_uri)
        outcome = await self.create_question_flow.run(request)
        if not outcome.ok:
            logger.warning("Invalid single question structure, using fallback")
        return outcome.unwrap_or(EMPTY_QUESTION)

    async def resolve_pyq_test(self, request: PyqTestRequest) -> GeneratedTest:
        return await self.pyq_resolver.resolve(request)

    async def get_daily_motivation(self, request: DailyMotivationRequest) -> DailyMotivation:
        outcome = await self.motivation_flow.run(request)
        return outcome.unwrap_or(FALLBACK_QUOTE)

    async def get_ai_mentor_response(self, request: AIMentorRequest) -> AIMentorAnswer:
        outcome = await self.mentor_flow.run(request)
        return outcome.unwrap_or(FALLBACK_ANSWER)

    async def get_typing_analysis(self, request: TypingAnalysisRequest) -> TypingAnalysis:
        outcome = await self.typing_analysis_flow.run(request)
        return outcome.unwrap_or(FALLBACK_ANALYSIS)
