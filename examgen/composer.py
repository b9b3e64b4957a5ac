from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from examgen.blueprints import Blueprint, Partition
from examgen.errors import ConfigurationError, IncompleteGenerationError
from examgen.flows import FlowOutcome, GenerationFlow
from examgen.schemas import GeneratedTest, MockTestRequest, Question, new_seed

logger = logging.getLogger(__name__)

INCOMPLETE_MESSAGE = "AI failed to generate a complete test according to the exam blueprint. Please try again."


def partition_request(request: MockTestRequest, part: Partition) -> MockTestRequest:
    return request.model_copy(
        update={
            "subjects": [part.subject],
            "questionCount": part.count,
            "seed": new_seed(),
            "practiceWeakTopics": False,
        }
    )


class BlueprintComposer:
    def __init__(self, flow: GenerationFlow, rng: Optional[random.Random] = None) -> None:
        self.flow = flow
        self.rng = rng or random.Random()

    async def compose(self, request: MockTestRequest, blueprint: Blueprint) -> GeneratedTest:
        logger.info("Using blueprint for '%s', total questions: %d", request.exam, blueprint.total_questions)

        sub_requests = [partition_request(request, part) for part in blueprint.distribution]
        for part in blueprint.distribution:
            logger.info("Requesting %d questions for subject '%s'", part.count, part.subject)

        results = await asyncio.gather(
            *(self.flow.run(sub_request) for sub_request in sub_requests),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, ConfigurationError):
                raise result

        questions: list[Question] = []
        failed = False
        for part, result in zip(blueprint.distribution, results):
            if isinstance(result, BaseException):
                logger.error("Generation failed for subject '%s': %s", part.subject, result)
                failed = True
                continue
            outcome: FlowOutcome = result
            received = len(outcome.value.questions) if outcome.ok else 0
            if not outcome.ok or received != part.count:
                logger.error(
                    "Generation failed for subject '%s'. Expected %d, got %d (%s)",
                    part.subject,
                    part.count,
                    received,
                    outcome.error,
                )
                failed = True
                continue
            questions.extend(outcome.value.questions)

        if failed or len(questions) != blueprint.total_questions:
            logger.error(
                "Assembled %d questions, blueprint total is %d. Aborting.",
                len(questions),
                blueprint.total_questions,
            )
            raise IncompleteGenerationError(INCOMPLETE_MESSAGE)

        self.rng.shuffle(questions)
        logger.info("Generated and assembled %d questions", len(questions))
        return GeneratedTest(questions=questions)
