import json
import logging
from typing import Any

from pydantic import ValidationError

from .errors import InvalidJson, NoArrayFound, SchemaViolation
from .models import NewsItem

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("headline", "summary")

# Python attribute / accepted spellings -> the key we report back to callers
_REPORTED_FIELD = {"source_url": "sourceUrl", "url": "sourceUrl"}


def extract_news_items(raw: str) -> list[NewsItem]:
    """Extract the JSON array of news items from a model response.

    Models wrap their answer in markdown code fences or conversational prose,
    so the array is taken as the span from the first "[" to the last "]" of
    the whole text. Unrelated bracketed prose (e.g. citation markers) widens
    that span; the result then usually fails as InvalidJson.

    Returns the validated items in source order, or raises NoArrayFound,
    InvalidJson or SchemaViolation. Never returns a partial list.
    """
    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise NoArrayFound("Model response contains no JSON array")

    try:
        parsed = json.loads(raw[start : end + 1])
    except json.JSONDecodeError as exc:
        raise InvalidJson(
            f"Model response array is not valid JSON: {exc.msg}",
            position=start + exc.pos,
        ) from exc
    except (ValueError, RecursionError) as exc:
        # Oversized integer literals and runaway nesting carry no position.
        raise InvalidJson(f"Model response array is not valid JSON: {exc}") from exc

    if not isinstance(parsed, list):
        raise SchemaViolation("Model response JSON is not an array")

    items = [_to_news_item(index, entry) for index, entry in enumerate(parsed)]
    logger.info(f"Extracted {len(items)} news items from model response")
    return items


def _to_news_item(index: int, entry: Any) -> NewsItem:
    if not isinstance(entry, dict):
        raise SchemaViolation(f"Item {index} is not a JSON object", index=index)

    for key in REQUIRED_KEYS:
        value = entry.get(key)
        if not isinstance(value, str) or not value.strip():
            raise SchemaViolation(
                f"Item {index} has a missing or empty {key!r}",
                index=index,
                field=key,
            )

    try:
        return NewsItem.model_validate(entry)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = str(first["loc"][0]) if first["loc"] else None
        field = _REPORTED_FIELD.get(loc, loc)
        raise SchemaViolation(
            f"Item {index} has an invalid {field!r}: {first['msg']}",
            index=index,
            field=field,
        ) from exc
