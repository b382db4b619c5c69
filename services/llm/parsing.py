import json
import logging
import re
from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from core.exceptions import MalformedLLMOutputError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?|\n?\s*```", re.IGNORECASE)


def clean_json(text: str) -> str:
    """Strip Markdown code fences and any prose around the outermost JSON object."""
    cleaned = _FENCE_PATTERN.sub("", text or "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        return cleaned[start:end + 1]
    return cleaned


def parse_llm_json(text: str, model: Type[T]) -> T:
    """Parse a model reply into `model`, raising MalformedLLMOutputError on any failure."""
    try:
        data = json.loads(clean_json(text))
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedLLMOutputError(f"Reply is not valid JSON: {e}", raw_text=text or "") from e

    if not isinstance(data, dict):
        raise MalformedLLMOutputError("Reply JSON is not an object", raw_text=text or "")

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise MalformedLLMOutputError(
            f"Reply does not match {model.__name__}: {e.error_count()} error(s)",
            raw_text=text or "",
        ) from e
    except (ValueError, OverflowError) as e:
        raise MalformedLLMOutputError(f"Reply has unusable values: {e}", raw_text=text or "") from e


def parse_or_fallback(text: str, model: Type[T], fallback: T) -> T:
    try:
        return parse_llm_json(text, model)
    except MalformedLLMOutputError as e:
        logger.warning(f"Using fallback {model.__name__}: {e.message}. Raw reply: {e.raw_text[:200]!r}")
        return fallback.model_copy(deep=True)
