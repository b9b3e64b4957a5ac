from __future__ import annotations

import random
import time
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


Difficulty = Literal["Easy", "Medium", "Hard"]

BILINGUAL_SEPARATOR = " / "


def new_seed() -> float:
    return time.time() * 1000 + random.random()


def first_language(text: str) -> str:
    return text.split("/")[0].strip()


def bilingual(english: str, hindi: Optional[str] = None) -> str:
    return f"{english}{BILINGUAL_SEPARATOR}{hindi or english}"


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    questionText: str = Field(min_length=1)
    options: list[str] = Field(min_length=4, max_length=4)
    answer: str = Field(min_length=1)
    explanation: str = ""
    subject: str = ""
    topic: Optional[str] = None
    difficulty: Difficulty = "Medium"

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value

    @model_validator(mode="after")
    def check_options(self) -> "Question":
        if len({option.strip().lower() for option in self.options}) != 4:
            raise ValueError("Options must be distinct")
        if self.answer not in self.options:
            raise ValueError("Answer must be one of the options")
        return self


class GeneratedTest(BaseModel):
    model_config = ConfigDict(frozen=True)

    questions: list[Question] = Field(default_factory=list)


class MockTestRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    subjects: list[str] = Field(min_length=1)
    exam: str = Field(min_length=1)
    category: str = "General"
    year: Optional[int] = None
    questionCount: int = Field(ge=1, le=200)
    seed: float = Field(default_factory=new_seed)
    userId: Optional[str] = None
    weakTopics: list[str] = Field(default_factory=list)
    overallAccuracy: Optional[float] = Field(default=None, ge=0, le=100)
    practiceWeakTopics: bool = False

    @field_validator("subjects")
    @classmethod
    def ensure_unique_subjects(cls, subjects: list[str]) -> list[str]:
        cleaned = list(dict.fromkeys([subject.strip() for subject in subjects if subject.strip()]))
        if not cleaned:
            raise ValueError("At least one subject is required")
        return cleaned


class CustomTestRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    questionCount: int = Field(ge=5, le=50)
    seed: float = Field(default_factory=new_seed)


class CurrentAffairsRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    seed: float = Field(default_factory=new_seed)


class NCERTTestRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    selectedClass: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    chapter: str = Field(min_length=1)
    seed: float = Field(default_factory=new_seed)


class CreateQuestionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    questionText: str = Field(min_length=1)
    imageDataUri: Optional[str] = None


class PyqTestRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    exam: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    userId: Optional[str] = None
    year: Optional[str] = Field(default=None, pattern=r"^\d{4}$")
    limit: int = Field(default=20, ge=5, le=50)


class DailyMotivationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None


class DailyMotivation(BaseModel):
    model_config = ConfigDict(frozen=True)

    quote: str = Field(min_length=1)


class CurrentAffairsQuery(BaseModel):
    date: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")


class QuestionListResponse(BaseModel):
    questions: list[Question]
    message: Optional[str] = None


class AIMentorRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str = Field(min_length=1)


class AIMentorAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    answer: str


class TypingAnalysisRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    wpm: float = Field(ge=0)
    accuracy: float = Field(ge=0, le=100)


class TypingAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    feedback: str
    tips: list[str] = Field(min_length=2)
