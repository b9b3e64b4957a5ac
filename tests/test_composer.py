import asyncio
import random
from collections import Counter

import pytest

from examgen.blueprints import Blueprint, Partition
from examgen.composer import BlueprintComposer
from examgen.errors import ConfigurationError, GenerationError, IncompleteGenerationError
from examgen.flows import FlowOutcome
from examgen.generator import ExamGenerator
from examgen.invoker import PromptInvoker
from examgen.schemas import GeneratedTest, MockTestRequest, Question
from examgen.store import MemoryDocumentStore

from tests.helpers import FakeCompletionService, make_question, mock_test_responder

EXAM_A = Blueprint(
    total_questions=100,
    distribution=(Partition("A", 25), Partition("B", 25), Partition("C", 25), Partition("D", 25)),
)

REQUEST = MockTestRequest(
    subjects=["A", "B", "C", "D"],
    exam="Exam-A",
    questionCount=100,
    weakTopics=["Ratios"],
    practiceWeakTopics=True,
)


class StubFlow:
    def __init__(self, counts=None, errors=None):
        self.counts = counts or {}
        self.errors = errors or {}
        self.requests = []

    async def run(self, request):
        self.requests.append(request)
        subject = request.subjects[0]
        if subject in self.errors:
            raise self.errors[subject]
        count = self.counts.get(subject, request.questionCount)
        questions = [Question.model_validate(make_question(i, subject)) for i in range(count)]
        return FlowOutcome(value=GeneratedTest(questions=questions))


def test_sub_requests_follow_partitions():
    flow = StubFlow()
    asyncio.run(BlueprintComposer(flow).compose(REQUEST, EXAM_A))

    assert [r.subjects for r in flow.requests] == [["A"], ["B"], ["C"], ["D"]]
    assert all(r.questionCount == 25 for r in flow.requests)
    assert all(r.practiceWeakTopics is False for r in flow.requests)
    assert len({r.seed for r in flow.requests}) == 4
    assert REQUEST.practiceWeakTopics is True


def test_full_composition_keeps_every_slice():
    test = asyncio.run(BlueprintComposer(StubFlow(), rng=random.Random(7)).compose(REQUEST, EXAM_A))
    assert len(test.questions) == 100
    assert Counter(q.subject for q in test.questions) == {"A": 25, "B": 25, "C": 25, "D": 25}


def test_result_is_shuffled():
    test = asyncio.run(BlueprintComposer(StubFlow(), rng=random.Random(3)).compose(REQUEST, EXAM_A))
    subjects = [q.subject for q in test.questions]
    assert subjects != sorted(subjects)


def test_one_short_partition_discards_everything():
    flow = StubFlow(counts={"C": 24})
    with pytest.raises(IncompleteGenerationError):
        asyncio.run(BlueprintComposer(flow).compose(REQUEST, EXAM_A))
    assert len(flow.requests) == 4


def test_partition_exception_becomes_incomplete_generation():
    flow = StubFlow(errors={"B": GenerationError("model had a bad day")})
    with pytest.raises(IncompleteGenerationError):
        asyncio.run(BlueprintComposer(flow).compose(REQUEST, EXAM_A))


def test_configuration_error_is_not_masked():
    flow = StubFlow(errors={"D": ConfigurationError("no key")})
    with pytest.raises(ConfigurationError):
        asyncio.run(BlueprintComposer(flow).compose(REQUEST, EXAM_A))


def test_partitions_run_concurrently():
    class SlowFlow(StubFlow):
        def __init__(self):
            super().__init__()
            self.in_flight = 0
            self.peak = 0

        async def run(self, request):
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            await asyncio.sleep(0.01)
            self.in_flight -= 1
            return await super().run(request)

    flow = SlowFlow()
    asyncio.run(BlueprintComposer(flow).compose(REQUEST, EXAM_A))
    assert flow.peak == 4


def _generator(service):
    return ExamGenerator(PromptInvoker(service), MemoryDocumentStore(), blueprints={"Exam-A": EXAM_A})


def test_blueprint_exam_end_to_end_short_partition():
    service = FakeCompletionService(responder=mock_test_responder(short_subjects={"C": 24}))
    request = MockTestRequest(subjects=["A", "B", "C", "D"], exam="Exam-A", questionCount=100)
    generator = _generator(service)

    with pytest.raises(IncompleteGenerationError):
        asyncio.run(generator.generate_mock_test(request))

    assert len(service.calls) == 4
    assert generator.store._collections == {}


def test_blueprint_exam_end_to_end_success():
    service = FakeCompletionService(responder=mock_test_responder())
    request = MockTestRequest(subjects=["D", "C", "B", "A"], exam="Exam-A", questionCount=100)
    test = asyncio.run(_generator(service).generate_mock_test(request))
    assert len(test.questions) == 100
    assert len(service.calls) == 4


def test_single_subject_on_blueprint_exam_uses_batches():
    service = FakeCompletionService(responder=mock_test_responder())
    request = MockTestRequest(subjects=["A"], exam="Exam-A", questionCount=45)
    test = asyncio.run(_generator(service).generate_mock_test(request))
    assert len(test.questions) == 45
    assert [int(c["user"].split("exactly ")[1].split()[0]) for c in service.calls] == [20, 20, 5]


def test_short_batch_aborts_generation():
    counts = iter([20, 19])
    service = FakeCompletionService(responder=lambda system, user: mock_test_responder(
        short_subjects={"Maths": next(counts)}
    )(system, user))
    request = MockTestRequest(subjects=["Maths"], exam="Exam-Z", questionCount=40)
    with pytest.raises(IncompleteGenerationError):
        asyncio.run(_generator(service).generate_mock_test(request))
    assert len(service.calls) == 2


def test_blueprint_rejects_inconsistent_total():
    with pytest.raises(ValueError):
        Blueprint(total_questions=10, distribution=(Partition("A", 4), Partition("B", 5)))
    with pytest.raises(ValueError):
        Blueprint(total_questions=10, distribution=(Partition("A", 5), Partition("A", 5)))
