import logging
from abc import ABC, abstractmethod

import anthropic

from .config import Settings
from .errors import (
    ExtractionError,
    InvalidInput,
    MalformedResponse,
    RoundupError,
    UpstreamFailure,
)
from .extractor import extract_news_items
from .models import NewsItem

logger = logging.getLogger(__name__)

GENERATION_PROMPT = """Based on the topic "{topic}", generate a list of {min_items} to {max_items} important and current trends.
For each trend, provide a concise, engaging headline and a short summary (1-2 sentences).
If you know a reputable article covering the trend, include its link.
Return the result as a valid JSON array of at most {max_items} objects, where each object has a "headline" key, a "summary" key and, optionally, a "sourceUrl" key.
Return only the JSON array, with no commentary before or after it."""


class BaseCompleter(ABC):
    """A service that turns a text instruction into free text."""

    @abstractmethod
    def complete(self, instruction: str) -> str:
        """Return the raw text response. No structure is guaranteed."""
        ...


class ClaudeCompleter(BaseCompleter):
    def __init__(self, api_key: str, model: str, max_tokens: int = 2048, client=None):
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or anthropic.Anthropic(api_key=api_key)

    def complete(self, instruction: str) -> str:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": instruction}],
            )
        except anthropic.APIError as exc:
            logger.exception("Claude request failed")
            raise UpstreamFailure(f"Claude request failed: {exc}") from exc

        logger.info(
            f"Tokens: {response.usage.input_tokens} in / {response.usage.output_tokens} out"
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )


def build_completer(settings: Settings) -> ClaudeCompleter | None:
    if not settings.anthropic_api_key:
        return None
    return ClaudeCompleter(
        api_key=settings.anthropic_api_key,
        model=settings.claude_model,
        max_tokens=settings.completion_max_tokens,
    )


def build_generation_prompt(topic: str, min_items: int = 5, max_items: int = 7) -> str:
    if min_items < 1 or max_items < min_items:
        raise ValueError(f"Invalid item bounds: {min_items}..{max_items}")
    return GENERATION_PROMPT.format(
        topic=topic.strip(), min_items=min_items, max_items=max_items
    )


def generate_news(
    topic: str,
    completer: BaseCompleter,
    min_items: int = 5,
    max_items: int = 7,
) -> list[NewsItem]:
    """Ask the model for news items about ``topic``.

    Makes exactly one completion call; retries are left to the caller so a
    bad answer never silently re-spends a model request.
    """
    if not topic or not topic.strip():
        raise InvalidInput("Topic is required.")

    logger.info(f"Generating news for topic: {topic.strip()!r}")
    instruction = build_generation_prompt(topic, min_items, max_items)

    try:
        raw = completer.complete(instruction)
    except RoundupError:
        raise
    except Exception as exc:
        logger.exception("Completion collaborator failed")
        raise UpstreamFailure(f"Completion failed: {exc}") from exc

    try:
        return extract_news_items(raw)
    except ExtractionError as exc:
        logger.warning(f"Malformed model response ({exc.kind}): {exc.message}\n{raw}")
        raise MalformedResponse(
            f"Model response could not be parsed: {exc.message}", raw=raw, reason=exc
        ) from exc
