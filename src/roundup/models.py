from enum import Enum

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

_HTTP_URL = TypeAdapter(HttpUrl)


class TemplateVariant(str, Enum):
    PLAIN = "plain"
    CREATIVE_FEATURED = "creative-featured"
    CREATIVE_LIST = "creative-list"


class WireModel(BaseModel):
    """Base for JSON payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NewsItem(WireModel):
    """One trend entry. Immutable once extracted."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    headline: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    # Models phrase the link key differently depending on the instruction.
    source_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sourceUrl", "url", "source_url"),
        serialization_alias="sourceUrl",
    )

    @field_validator("source_url", mode="before")
    @classmethod
    def _blank_url_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("source_url")
    @classmethod
    def _check_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            _HTTP_URL.validate_python(value)
        except ValidationError:
            raise ValueError("must be a valid http(s) URL") from None
        return value


class GenerateNewsRequest(WireModel):
    # Older clients post {"prompt": ...}
    topic: str = Field(default="", validation_alias=AliasChoices("topic", "prompt"))


class GenerateNewsResponse(WireModel):
    news_items: list[NewsItem]


class PreviewRequest(WireModel):
    selected_items: list[NewsItem] = []
    template: TemplateVariant | None = None


class PreviewResponse(WireModel):
    preview_html: str


class SendRequest(PreviewRequest):
    recipient_group: str | None = None
    subject: str | None = None


class SendResponse(WireModel):
    message: str
