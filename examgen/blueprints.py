from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Partition:
    subject: str
    count: int


@dataclass(frozen=True)
class Blueprint:
    total_questions: int
    distribution: tuple[Partition, ...]

    def __post_init__(self) -> None:
        if not self.distribution:
            raise ValueError("Blueprint needs at least one partition")
        if any(part.count <= 0 for part in self.distribution):
            raise ValueError("Partition counts must be positive")
        subjects = [part.subject for part in self.distribution]
        if len(set(subjects)) != len(subjects):
            raise ValueError("Blueprint subjects must be unique")
        if sum(part.count for part in self.distribution) != self.total_questions:
            raise ValueError("Partition counts must add up to the blueprint total")


def _blueprint(*parts: tuple[str, int]) -> Blueprint:
    distribution = tuple(Partition(subject, count) for subject, count in parts)
    return Blueprint(total_questions=sum(part.count for part in distribution), distribution=distribution)


EXAM_BLUEPRINTS: dict[str, Blueprint] = {
    "SSC CGL": _blueprint(
        ("Quantitative Aptitude", 25),
        ("Reasoning", 25),
        ("General Awareness", 25),
        ("English Comprehension", 25),
    ),
    "SSC CHSL": _blueprint(
        ("English Language", 30),
        ("Reasoning", 30),
        ("Quantitative Aptitude", 20),
        ("General Awareness", 20),
    ),
    "Railway Group D": _blueprint(
        ("General Science", 40),
        ("Mathematics", 25),
        ("General Intelligence & Reasoning", 25),
        ("General Awareness & Current Affairs", 10),
    ),
}


def get_blueprint(exam: str, registry: Optional[dict[str, Blueprint]] = None) -> Optional[Blueprint]:
    return (EXAM_BLUEPRINTS if registry is None else registry).get(exam)
