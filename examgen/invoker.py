from __future__ import annotations

import logging
from typing import Any, Protocol

from examgen.completion import CompletionService
from examgen.errors import ConfigurationError, GenerationError
from examgen.extractor import extract_json

logger = logging.getLogger(__name__)

# One initial call plus one retry, no delay between attempts.
MAX_ATTEMPTS = 2


class PromptSpec(Protocol):
    name: str
    temperature: float

    def build_prompt(self, request: Any) -> Any: ...


class PromptInvoker:
    def __init__(self, service: CompletionService, max_attempts: int = MAX_ATTEMPTS) -> None:
        self.service = service
        self.max_attempts = max_attempts

    async def invoke(self, spec: PromptSpec, request: Any) -> Any:
        """
        Run ``spec`` against the completion service and return its output.

        String answers go through ``extract_json``; when nothing parses the raw
        string is returned and shape checks are left to the caller. Raises
        ``ConfigurationError`` straight away when no API key is set and
        ``GenerationError`` once every attempt has failed.
        """
        if not self.service.is_configured:
            message = "OPENAI_API_KEY is not set for the completion service"
            logger.error(message)
            raise ConfigurationError(message)

        prompt = spec.build_prompt(request)
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            logger.info("Running prompt '%s', attempt %d/%d", spec.name, attempt, self.max_attempts)
            try:
                output: Any = await self.service.complete(
                    prompt.system,
                    prompt.user,
                    temperature=spec.temperature,
                    image_url=prompt.image_url,
                )
                if isinstance(output, str):
                    if not output.strip():
                        raise GenerationError("Completion service returned an empty string")
                    parsed = extract_json(output)
                    if parsed is not None:
                        output = parsed
                if output is None:
                    raise GenerationError("Completion service returned no output")
            except Exception as exc:
                last_error = exc
                logger.warning("Attempt %d failed for prompt '%s': %s", attempt, spec.name, exc)
                continue

            logger.info("Prompt '%s' succeeded on attempt %d", spec.name, attempt)
            return output

        logger.error("All %d attempts failed for prompt '%s'", self.max_attempts, spec.name)
        raise GenerationError(f"Prompt '{spec.name}' failed: {last_error}") from last_error
