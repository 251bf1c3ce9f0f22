import json
import logging
import re
from typing import Any, Dict, Optional

from ebay_lister.app.core.errors import MalformedResponseError
from ebay_lister.app.schemas.listing import AnalysisResult

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*")


def _strip_invalid_control_chars(s: str) -> str:
    """Remove ASCII control chars that frequently break json.loads (except \n, \r, \t)."""
    return re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F]", "", s)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def find_json_span(text: str) -> Optional[str]:
    """First ``{`` through last ``}`` of the fence-stripped text, or None."""
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return cleaned[start : end + 1]


def extract_json_object(text: str) -> Dict[str, Any]:
    if not isinstance(text, str):
        raise MalformedResponseError("Failed to parse AI response as JSON")
    span = find_json_span(_strip_invalid_control_chars(text))
    if span is None:
        logger.warning("No JSON object found in model output: %s", text[:2000])
        raise MalformedResponseError("No valid JSON found in response")
    try:
        data = json.loads(span)
    except (json.JSONDecodeError, RecursionError) as exc:
        logger.warning("Model output JSON did not parse (%s): %s", exc, text[:2000])
        raise MalformedResponseError("Failed to parse AI response as JSON") from exc
    if not isinstance(data, dict):
        logger.warning("Model output JSON is not an object: %s", text[:2000])
        raise MalformedResponseError("Failed to parse AI response as JSON")
    return data


def extract_analysis(text: str) -> AnalysisResult:
    return AnalysisResult.model_validate(extract_json_object(text))
