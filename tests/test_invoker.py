import asyncio

import pytest

from examgen.errors import ConfigurationError, GenerationError
from examgen.flows import CUSTOM_TEST_FLOW
from examgen.invoker import MAX_ATTEMPTS, PromptInvoker
from examgen.schemas import CustomTestRequest

from tests.helpers import FakeCompletionService, questions_payload

REQUEST = CustomTestRequest(subject="Maths", topic="Percentage", questionCount=5)


def _invoke(service):
    return asyncio.run(PromptInvoker(service).invoke(CUSTOM_TEST_FLOW, REQUEST))


def test_returns_parsed_output_on_first_attempt():
    service = FakeCompletionService(responses=[questions_payload(5)])
    output = _invoke(service)
    assert len(output["questions"]) == 5
    assert len(service.calls) == 1


def test_retries_once_after_empty_string():
    service = FakeCompletionService(responses=["   ", questions_payload(5)])
    output = _invoke(service)
    assert len(output["questions"]) == 5
    assert len(service.calls) == 2


def test_retries_once_after_upstream_exception():
    service = FakeCompletionService(responses=[RuntimeError("503 from upstream"), '```json\n{"questions": []}\n```'])
    assert _invoke(service) == {"questions": []}
    assert len(service.calls) == 2


def test_raises_generation_error_after_max_attempts():
    service = FakeCompletionService(responses=["", RuntimeError("still down"), questions_payload(5)])
    with pytest.raises(GenerationError, match="still down"):
        _invoke(service)
    assert len(service.calls) == MAX_ATTEMPTS


def test_none_output_is_a_failed_attempt():
    service = FakeCompletionService(responses=[None, None])
    with pytest.raises(GenerationError):
        _invoke(service)
    assert len(service.calls) == 2


def test_unparseable_text_is_returned_raw():
    service = FakeCompletionService(responses=["I cannot do that."])
    assert _invoke(service) == "I cannot do that."


def test_missing_credential_fails_without_calling_the_service():
    service = FakeCompletionService(responses=[questions_payload(5)], configured=False)
    with pytest.raises(ConfigurationError):
        _invoke(service)
    assert service.calls == []


def test_prompt_carries_flow_temperature_and_seed():
    service = FakeCompletionService(responses=[questions_payload(5)])
    _invoke(service)
    call = service.calls[0]
    assert call["temperature"] == CUSTOM_TEST_FLOW.temperature
    assert str(REQUEST.seed) in call["system"]
    assert "Percentage" in call["system"]
