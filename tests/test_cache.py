import asyncio

from examgen.cache import CacheGate, current_affairs_cache_key, is_cache_eligible, mock_test_cache_key
from examgen.generator import ExamGenerator
from examgen.invoker import PromptInvoker
from examgen.schemas import GeneratedTest, MockTestRequest, Question
from examgen.store import MemoryDocumentStore

from tests.helpers import FakeCompletionService, make_question, mock_test_responder, questions_payload


def _request(**overrides):
    fields = {"subjects": ["Reasoning", "Maths"], "exam": "SSC GD", "questionCount": 20}
    fields.update(overrides)
    return MockTestRequest(**fields)


def test_cache_key_ignores_subject_order_and_seed():
    first = _request(seed=1.0)
    second = _request(subjects=["Maths", "Reasoning"], seed=2.0, userId="someone")
    assert mock_test_cache_key(first) == mock_test_cache_key(second)


def test_cache_key_differs_per_field():
    base = mock_test_cache_key(_request())
    variants = [
        _request(exam="SSC CHSL"),
        _request(subjects=["Maths"]),
        _request(year=2019),
        _request(questionCount=25),
        _request(subjects=["Reasoning-Maths"]),
    ]
    keys = {mock_test_cache_key(variant) for variant in variants}
    assert base not in keys
    assert len(keys) == len(variants)


def test_personalised_requests_have_no_key():
    assert is_cache_eligible(_request())
    assert mock_test_cache_key(_request(weakTopics=["Ratios"])) is None
    assert mock_test_cache_key(_request(practiceWeakTopics=True)) is None


def test_current_affairs_key_is_date_scoped():
    assert current_affairs_cache_key("2024-05-01") == "current-affairs-2024-05-01"


def test_same_request_twice_generates_once():
    service = FakeCompletionService(responder=mock_test_responder())
    generator = ExamGenerator(PromptInvoker(service), MemoryDocumentStore())

    first = asyncio.run(generator.generate_mock_test(_request(subjects=["Maths"])))
    second = asyncio.run(generator.generate_mock_test(_request(subjects=["Maths"])))

    assert len(service.calls) == 1
    assert second == first
    assert second.model_dump_json() == first.model_dump_json()


def test_personalised_request_bypasses_store():
    service = FakeCompletionService(responder=mock_test_responder())
    store = MemoryDocumentStore()
    generator = ExamGenerator(PromptInvoker(service), store)
    request = _request(subjects=["Maths"], weakTopics=["Ratios"])

    asyncio.run(generator.generate_mock_test(request))
    asyncio.run(generator.generate_mock_test(request))

    assert len(service.calls) == 2
    assert store._collections == {}


def test_current_affairs_second_call_is_served_from_cache():
    service = FakeCompletionService(responses=[questions_payload(10, subject="Current Affairs")])
    generator = ExamGenerator(PromptInvoker(service), MemoryDocumentStore())

    first = asyncio.run(generator.generate_current_affairs_test("2024-05-01"))
    second = asyncio.run(generator.generate_current_affairs_test("2024-05-01"))

    assert len(service.calls) == 1
    assert len(first.questions) == 10
    assert second.questions == first.questions


def test_failed_current_affairs_is_not_cached():
    service = FakeCompletionService(responses=[questions_payload(9), questions_payload(10)])
    generator = ExamGenerator(PromptInvoker(service), MemoryDocumentStore())

    assert asyncio.run(generator.generate_current_affairs_test("2024-05-02")).questions == []
    assert len(asyncio.run(generator.generate_current_affairs_test("2024-05-02")).questions) == 10
    assert len(service.calls) == 2


class BrokenStore(MemoryDocumentStore):
    async def get(self, collection, key):
        raise ConnectionError("store unavailable")

    async def put(self, collection, key, document):
        raise ConnectionError("store unavailable")


def test_store_errors_do_not_fail_generation():
    test = GeneratedTest(questions=[Question.model_validate(make_question(0))])
    calls = []

    async def generate():
        calls.append(1)
        return test

    result = asyncio.run(CacheGate(BrokenStore()).fetch("some-key", generate))
    assert result == test
    assert calls == [1]


def test_malformed_cache_entry_is_a_miss():
    store = MemoryDocumentStore()
    asyncio.run(store.put("generated_tests", "bad", {"questions": [{"questionText": "x"}]}))
    test = GeneratedTest(questions=[Question.model_validate(make_question(0))])

    async def generate():
        return test

    assert asyncio.run(CacheGate(store).fetch("bad", generate)) == test
    assert asyncio.run(store.get("generated_tests", "bad")) == test.model_dump(mode="json")
