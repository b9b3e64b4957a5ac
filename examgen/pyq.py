from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from examgen.schemas import GeneratedTest, MockTestRequest, PyqTestRequest, Question, bilingual
from examgen.store import DocumentStore

logger = logging.getLogger(__name__)

PYQ_COLLECTION = "pyq_questions"
PYQ_TOPIC = "PYQ"
PYQ_DIFFICULTY = "Medium"


def adapt_pyq_record(record: dict[str, Any]) -> Question:
    """Turn a stored PYQ document into a bilingual ``Question``."""
    question_en = record.get("question_en") or ""
    raw_options = record.get("options") or []
    if not isinstance(raw_options, list):
        raise ValueError(f"PYQ options must be a list, got {type(raw_options).__name__}")
    options = [str(option) for option in raw_options]
    answer = str(record.get("answer") or "")
    solution = record.get("solution") or ""
    return Question(
        questionText=bilingual(question_en, record.get("question_hi")),
        options=[bilingual(option) for option in options],
        answer=bilingual(answer) if answer in options else answer,
        explanation=bilingual(solution) if solution else "",
        subject=record.get("subject") or "",
        topic=PYQ_TOPIC,
        difficulty=PYQ_DIFFICULTY,
    )


class PyqResolver:
    def __init__(
        self,
        store: DocumentStore,
        generate: Callable[[MockTestRequest], Awaitable[GeneratedTest]],
        collection: str = PYQ_COLLECTION,
    ) -> None:
        self.store = store
        self.generate = generate
        self.collection = collection

    def _adapt_all(self, records: list[dict[str, Any]]) -> list[Question]:
        questions = []
        for record in records:
            try:
                questions.append(adapt_pyq_record(record))
            except (ValidationError, TypeError, ValueError) as exc:
                logger.warning("Skipping unusable PYQ record: %s", exc)
        return questions

    async def resolve(self, request: PyqTestRequest) -> GeneratedTest:
        year: Optional[int] = int(request.year) if request.year else None
        filters: dict[str, Any] = {"exam": request.exam, "subject": request.subject}
        if year is not None:
            filters["year"] = year

        logger.info("Checking database for %s - %s - %s", request.exam, request.subject, year or "any year")
        records = await self.store.query(self.collection, filters, request.limit)

        if len(records) >= request.limit:
            questions = self._adapt_all(records)
            if len(questions) >= request.limit:
                logger.info("Found %d questions in database, serving directly", len(questions))
                return GeneratedTest(questions=questions[: request.limit])

        logger.info("Found only %d/%d usable questions in database, falling back to AI", len(records), request.limit)
        ai_request = MockTestRequest(
            subjects=[request.subject],
            exam=request.exam,
            category="General",
            year=year,
            questionCount=request.limit,
            userId=request.userId,
        )
        test = await self.generate(ai_request)
        logger.info("AI generated %d PYQ-style questions", len(test.questions))
        return test
