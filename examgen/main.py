from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Awaitable, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request

from examgen.completion import CompletionService
from examgen.config import Settings
from examgen.errors import ConfigurationError, GenerationError
from examgen.generator import ExamGenerator
from examgen.invoker import PromptInvoker
from examgen.schemas import (
    AIMentorAnswer,
    AIMentorRequest,
    CreateQuestionRequest,
    CurrentAffairsQuery,
    CustomTestRequest,
    DailyMotivation,
    DailyMotivationRequest,
    GeneratedTest,
    MockTestRequest,
    NCERTTestRequest,
    PyqTestRequest,
    Question,
    QuestionListResponse,
    TypingAnalysis,
    TypingAnalysisRequest,
    first_language,
)
from examgen.store import build_store

logger = logging.getLogger("examgen")

PREPARING_MESSAGE = "Questions are being prepared. Please try again in a moment."
RETRY_MESSAGE = "The AI could not generate a complete set of questions. Please try again."
CONFIG_MESSAGE = "AI configuration error: the completion service API key is missing."


def unique_questions(questions: list[Question]) -> list[Question]:
    seen: set[str] = set()
    unique = []
    for question in questions:
        key = first_language(question.questionText)
        if key in seen:
            continue
        seen.add(key)
        unique.append(question)
    return unique


def _question_list(test: GeneratedTest) -> QuestionListResponse:
    questions = unique_questions(test.questions)
    if not questions:
        return QuestionListResponse(questions=[], message=PREPARING_MESSAGE)
    return QuestionListResponse(questions=questions)


async def _guarded(label: str, work: Awaitable[Any]) -> Any:
    try:
        return await work
    except ConfigurationError as exc:
        logger.error("%s configuration error: %s", label, str(exc))
        raise HTTPException(status_code=500, detail=CONFIG_MESSAGE) from exc
    except GenerationError as exc:
        logger.warning("%s generation failed: %s", label, str(exc))
        raise HTTPException(status_code=503, detail=RETRY_MESSAGE) from exc
    except Exception as exc:
        logger.exception("Unexpected %s error", label)
        raise HTTPException(status_code=500, detail="Internal server error") from exc


def create_app(settings: Optional[Settings] = None, generator: Optional[ExamGenerator] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if generator is not None:
            app.state.generator = generator
            yield
            return

        store = build_store(settings)
        service = CompletionService(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
        )
        app.state.generator = ExamGenerator(PromptInvoker(service), store, batch_size=settings.batch_size)
        try:
            yield
        finally:
            await service.close()
            await store.close()

    docs_url = None if settings.app_env == "production" else "/docs"
    app = FastAPI(title="Exam Practice Generator", version="1.0.0", docs_url=docs_url, lifespan=lifespan)

    def verify_api_key(x_api_key: str = Header(default="")) -> None:
        if not settings.service_api_key:
            raise HTTPException(status_code=500, detail="SERVICE_API_KEY is not configured")
        if x_api_key != settings.service_api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    def get_generator(request: Request) -> ExamGenerator:
        return request.app.state.generator

    protected = [Depends(verify_api_key)]

    @app.get("/health")
    def health() -> dict[str, str | bool]:
        return {
            "ok": True,
            "service": "examgen",
            "env": settings.app_env,
            "openai_enabled": bool(settings.openai_api_key),
            "store": settings.store_backend,
        }

    @app.post("/mock-test", response_model=QuestionListResponse, dependencies=protected)
    async def mock_test_endpoint(payload: MockTestRequest, gen: ExamGenerator = Depends(get_generator)) -> QuestionListResponse:
        test = await _guarded("mock test", gen.generate_mock_test(payload))
        return _question_list(test)

    @app.post("/custom-test", response_model=QuestionListResponse, dependencies=protected)
    async def custom_test_endpoint(payload: CustomTestRequest, gen: ExamGenerator = Depends(get_generator)) -> QuestionListResponse:
        test = await _guarded("custom test", gen.generate_custom_test(payload))
        return _question_list(test)

    @app.post("/current-affairs", response_model=QuestionListResponse, dependencies=protected)
    async def current_affairs_endpoint(
        payload: CurrentAffairsQuery, gen: ExamGenerator = Depends(get_generator)
    ) -> QuestionListResponse:
        target_date = payload.date or date.today().isoformat()
        test = await _guarded("current affairs", gen.generate_current_affairs_test(target_date))
        return _question_list(test)

    @app.post("/ncert-test", response_model=QuestionListResponse, dependencies=protected)
    async def ncert_test_endpoint(payload: NCERTTestRequest, gen: ExamGenerator = Depends(get_generator)) -> QuestionListResponse:
        test = await _guarded("NCERT test", gen.generate_ncert_test(payload))
        return _question_list(test)

    @app.post("/create-question", dependencies=protected)
    async def create_question_endpoint(payload: CreateQuestionRequest, gen: ExamGenerator = Depends(get_generator)) -> dict[str, Any]:
        question = await _guarded(
            "create question", gen.create_question_from_user_input(payload.questionText, payload.imageDataUri)
        )
        return {"question": question.model_dump()}

    @app.post("/pyq-test", response_model=QuestionListResponse, dependencies=protected)
    async def pyq_test_endpoint(payload: PyqTestRequest, gen: ExamGenerator = Depends(get_generator)) -> QuestionListResponse:
        test = await _guarded("PYQ test", gen.resolve_pyq_test(payload))
        return _question_list(test)

    @app.post("/daily-motivation", response_model=DailyMotivation, dependencies=protected)
    async def daily_motivation_endpoint(
        payload: DailyMotivationRequest, gen: ExamGenerator = Depends(get_generator)
    ) -> DailyMotivation:
        return await _guarded("daily motivation", gen.get_daily_motivation(payload))

    @app.post("/ai-mentor", response_model=AIMentorAnswer, dependencies=protected)
    async def ai_mentor_endpoint(payload: AIMentorRequest, gen: ExamGenerator = Depends(get_generator)) -> AIMentorAnswer:
        return await _guarded("AI mentor", gen.get_ai_mentor_response(payload))

    @app.post("/typing-analysis", response_model=TypingAnalysis, dependencies=protected)
    async def typing_analysis_endpoint(
        payload: TypingAnalysisRequest, gen: ExamGenerator = Depends(get_generator)
    ) -> TypingAnalysis:
        return await _guarded("typing analysis", gen.get_typing_analysis(payload))

    return app


app = create_app()


def run() -> None:
    settings = Settings()
    uvicorn.run("examgen.main:app", host=settings.app_host, port=settings.app_port)
