from __future__ import annotations


class ConfigurationError(RuntimeError):
    """The service is deployed without something it needs, e.g. an API key."""


class GenerationError(RuntimeError):
    """The completion service could not produce a usable answer."""


class IncompleteGenerationError(GenerationError):
    """A composed or batched test came back short and was discarded."""
