"""Pull JSON out of model text: a ```json fence first, else the greedy span from the first bracket to the last."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

_fenced_json = re.compile(r"```json\s*\n(.*?)\n?\s*```", re.DOTALL | re.IGNORECASE)


def _find_span(text: str) -> Optional[str]:
    starts = [index for index in (text.find("{"), text.find("[")) if index != -1]
    if not starts:
        return None
    start = min(starts)
    end = max(text.rfind("}"), text.rfind("]"))
    if end == -1 or end < start:
        return None
    return text[start:end + 1]


def extract_json(text: str) -> Optional[Any]:
    match = _fenced_json.search(text)
    candidate = match.group(1) if match else _find_span(text)
    if not candidate:
        return None

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse extracted JSON (%s): %.200s", exc, candidate)
        return None
