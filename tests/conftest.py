import pytest

from roundup.config import Settings
from roundup.emailer import BaseMailer
from roundup.generator import BaseCompleter
from roundup.models import NewsItem
from roundup.recipients import RecipientRegistry
from roundup.renderer import TemplateStore


class StubCompleter(BaseCompleter):
    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[str] = []

    def complete(self, instruction: str) -> str:
        self.calls.append(instruction)
        if self.error is not None:
            raise self.error
        return self.response


class StubMailer(BaseMailer):
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent: list[dict] = []

    def send(self, from_email, to, subject, html):
        if self.error is not None:
            raise self.error
        self.sent.append({"from": from_email, "to": to, "subject": subject, "html": html})
        return "msg-1"


def make_items(count: int) -> list[NewsItem]:
    return [
        NewsItem(
            headline=f"Headline {i}",
            summary=f"Summary {i}.",
            source_url=f"https://example.com/story-{i}",
        )
        for i in range(count)
    ]


@pytest.fixture
def items() -> list[NewsItem]:
    return make_items(3)


@pytest.fixture
def store() -> TemplateStore:
    return TemplateStore()


@pytest.fixture
def registry() -> RecipientRegistry:
    return RecipientRegistry(
        {
            "testing-only": "qa@example.com",
            "team": "alice@example.com, bob@example.com",
        }
    )


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        _env_file=None,
        anthropic_api_key="",
        resend_api_key="",
        newsletter_from_email="roundup@example.com",
        default_recipient_group="testing-only",
    )
