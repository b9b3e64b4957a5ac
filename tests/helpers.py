from __future__ import annotations

import json
import re
from typing import Any, Callable, Optional

from examgen.invoker import PromptInvoker


def make_question(index: int, subject: str = "Maths", topic: Optional[str] = "Percentage") -> dict[str, Any]:
    options = [f"Option {index}-{letter} / विकल्प {index}-{letter}" for letter in "ABCD"]
    question = {
        "questionText": f"Question {subject} {index} / प्रश्न {subject} {index}",
        "options": options,
        "answer": options[1],
        "explanation": f"Because {index} / क्योंकि {index}",
        "subject": subject,
        "difficulty": "Medium",
    }
    if topic is not None:
        question["topic"] = topic
    return question


def questions_payload(count: int, subject: str = "Maths", start: int = 0) -> str:
    return json.dumps({"questions": [make_question(start + i, subject) for i in range(count)]}, ensure_ascii=False)


class FakeCompletionService:
    """
    Stand-in for ``CompletionService``.

    Answers come from ``responder(system, user)`` when given, otherwise from
    ``responses`` in order. An ``Exception`` instance in either place is raised.
    """

    def __init__(
        self,
        responses: Optional[list[Any]] = None,
        responder: Optional[Callable[[str, str], Any]] = None,
        configured: bool = True,
    ) -> None:
        self.responses = list(responses or [])
        self.responder = responder
        self.configured = configured
        self.calls: list[dict[str, Any]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, system: str, user: str, *, temperature: float = 0.5, image_url: Optional[str] = None) -> Any:
        self.calls.append({"system": system, "user": user, "temperature": temperature, "image_url": image_url})
        if self.responder is not None:
            answer = self.responder(system, user)
        else:
            answer = self.responses.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def close(self) -> None:
        return None


_count_pattern = re.compile(r"exactly (\d+) questions")
_subject_pattern = re.compile(r"Subject\(s\): (.+)")


def mock_test_responder(short_subjects: Optional[dict[str, int]] = None) -> Callable[[str, str], str]:
    """Answer mock-test prompts with the requested count, or a short count for ``short_subjects``."""
    short_subjects = short_subjects or {}

    def respond(system: str, user: str) -> str:
        count = int(_count_pattern.search(user).group(1))
        subject = _subject_pattern.search(system).group(1).strip()
        count = short_subjects.get(subject, count)
        return questions_payload(count, subject=subject)

    return respond


def make_invoker(service: FakeCompletionService) -> PromptInvoker:
    return PromptInvoker(service)
