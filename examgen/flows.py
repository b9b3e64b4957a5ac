from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from examgen import prompts
from examgen.errors import IncompleteGenerationError
from examgen.invoker import PromptInvoker
from examgen.schemas import AIMentorAnswer, DailyMotivation, GeneratedTest, Question, TypingAnalysis

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FlowOutcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise IncompleteGenerationError(self.error)
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value if self.error is None else default


@dataclass(frozen=True)
class FlowConfig:
    name: str
    build_prompt: Callable[[Any], prompts.Prompt]
    output_model: type[BaseModel]
    fallback: BaseModel
    temperature: float = 0.5
    expected_count: Optional[Callable[[Any], int]] = None
    prepare: Optional[Callable[[Any, Any], Any]] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Flow name is required")
        if not 0 <= self.temperature <= 2:
            raise ValueError(f"Temperature out of range for flow {self.name}")
        if not isinstance(self.fallback, self.output_model):
            raise ValueError(f"Fallback for flow {self.name} must be a {self.output_model.__name__}")


class GenerationFlow:
    def __init__(self, config: FlowConfig, invoker: PromptInvoker) -> None:
        self.config = config
        self.invoker = invoker

    @property
    def name(self) -> str:
        return self.config.name

    async def run(self, request: Any) -> FlowOutcome:
        config = self.config
        output = await self.invoker.invoke(config, request)

        if config.prepare is not None:
            output = config.prepare(output, request)

        try:
            result = config.output_model.model_validate(output)
        except ValidationError as exc:
            logger.warning("Flow '%s' returned an invalid structure: %s", config.name, exc.errors()[:3])
            return FlowOutcome(error=f"{config.name}: output does not match the expected structure")

        if config.expected_count is not None:
            expected = config.expected_count(request)
            received = len(result.questions)
            if received != expected:
                logger.warning(
                    "Flow '%s' returned %d questions, %d were requested; discarding the answer",
                    config.name,
                    received,
                    expected,
                )
                return FlowOutcome(error=f"{config.name}: expected {expected} questions, got {received}")

        return FlowOutcome(value=result)


def _with_request_subject(output: Any, request: Any) -> Any:
    if not isinstance(output, dict) or not isinstance(output.get("questions"), list):
        return output
    questions = []
    for item in output["questions"]:
        if isinstance(item, dict) and not item.get("subject"):
            item = {**item, "subject": request.subject}
        questions.append(item)
    return {**output, "questions": questions}


def _question_count(request: Any) -> int:
    return request.questionCount


EMPTY_TEST = GeneratedTest(questions=[])

# Returned when a user-submitted question cannot be structured. Built without
# validation: callers treat empty options as the failure marker.
EMPTY_QUESTION = Question.model_construct(
    questionText="",
    options=[],
    answer="",
    explanation="",
    subject="",
    topic="",
    difficulty="Medium",
)

FALLBACK_QUOTE = DailyMotivation(
    quote="Koshish aakhri saans tak karni chahiye, ya toh lakshya haasil hoga ya anubhav. Dono hi cheezein amulya hain."
)

FALLBACK_ANSWER = AIMentorAnswer(
    answer=(
        "Mujhe khed hai, main abhi is sawaal ka jawab nahi de paa raha hoon. "
        "Kripya apne sawaal ko doosre shabdon mein poochne ki koshish karein ya thodi der baad phir se prayas karein."
    )
)

FALLBACK_ANALYSIS = TypingAnalysis(
    feedback="You've completed the test! This is a good start. Consistency is key to improving your speed and accuracy.",
    tips=[
        "Practice for at least 15 minutes every day.",
        "Focus on accuracy first, then speed will follow.",
        "Make sure your posture is correct and your fingers are on the home row (ASDF JKL;).",
    ],
)

MOCK_TEST_FLOW = FlowConfig(
    name="generateMockTestPrompt",
    build_prompt=prompts.build_mock_test_prompt,
    output_model=GeneratedTest,
    fallback=EMPTY_TEST,
    temperature=0.7,
    expected_count=_question_count,
)

CUSTOM_TEST_FLOW = FlowConfig(
    name="generateCustomTestPrompt",
    build_prompt=prompts.build_custom_test_prompt,
    output_model=GeneratedTest,
    fallback=EMPTY_TEST,
    temperature=0.6,
    expected_count=_question_count,
)

CURRENT_AFFAIRS_FLOW = FlowConfig(
    name="generateCurrentAffairsPrompt",
    build_prompt=prompts.build_current_affairs_prompt,
    output_model=GeneratedTest,
    fallback=EMPTY_TEST,
    temperature=0.5,
    expected_count=lambda request: 10,
)

NCERT_TEST_FLOW = FlowConfig(
    name="generateNCERTTestPrompt",
    build_prompt=prompts.build_ncert_prompt,
    output_model=GeneratedTest,
    fallback=EMPTY_TEST,
    temperature=0.5,
    expected_count=lambda request: 15,
    prepare=_with_request_subject,
)

CREATE_QUESTION_FLOW = FlowConfig(
    name="createQuestionPrompt",
    build_prompt=prompts.build_create_question_prompt,
    output_model=Question,
    fallback=EMPTY_QUESTION,
    temperature=0.4,
)

DAILY_MOTIVATION_FLOW = FlowConfig(
    name="dailyMotivationPrompt",
    build_prompt=prompts.build_motivation_prompt,
    output_model=DailyMotivation,
    fallback=FALLBACK_QUOTE,
    temperature=0.9,
)

AI_MENTOR_FLOW = FlowConfig(
    name="aiMentorPrompt",
    build_prompt=prompts.build_ai_mentor_prompt,
    output_model=AIMentorAnswer,
    fallback=FALLBACK_ANSWER,
    temperature=0.5,
)

TYPING_ANALYSIS_FLOW = FlowConfig(
    name="typingAnalysisPrompt",
    build_prompt=prompts.build_typing_analysis_prompt,
    output_model=TypingAnalysis,
    fallback=FALLBACK_ANALYSIS,
    temperature=0.5,
)
