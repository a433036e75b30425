"""HTML newsletter rendering.

A newsletter template is an opaque HTML document with exactly one
``{{NEWS_ITEMS_PLACEHOLDER}}`` token. The selected items are rendered into
per-item fragments (Jinja2, autoescaped) according to the variant's layout,
concatenated in order, and substituted at the token.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from jinja2 import (
    BaseLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateNotFound,
    TemplateSyntaxError,
)
from markupsafe import Markup, escape

from .errors import InvalidInput, NoItemsSelected, TemplateMalformed, TemplateUnavailable
from .models import NewsItem, TemplateVariant

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
PLACEHOLDER = "{{NEWS_ITEMS_PLACEHOLDER}}"
_MARKER_RE = re.compile(r"\{\{.*?\}\}", re.DOTALL)


@dataclass(frozen=True)
class VariantLayout:
    featured_first: bool
    link_sources: bool


LAYOUTS = {
    TemplateVariant.PLAIN: VariantLayout(featured_first=False, link_sources=False),
    TemplateVariant.CREATIVE_FEATURED: VariantLayout(featured_first=True, link_sources=True),
    TemplateVariant.CREATIVE_LIST: VariantLayout(featured_first=False, link_sources=True),
}

# Which fragment renders the non-featured items of each variant
_LIST_FRAGMENT = {
    TemplateVariant.PLAIN: "plain",
    TemplateVariant.CREATIVE_FEATURED: "list",
    TemplateVariant.CREATIVE_LIST: "list",
}


def inert(value) -> Markup:
    """HTML-escape ``value`` and neutralise curly braces.

    Model text can then neither open a tag or attribute nor form a
    ``{{...}}`` marker in the final document.
    """
    return (
        escape(value)
        .replace("{", Markup("&#123;"))
        .replace("}", Markup("&#125;"))
    )


class TemplateStore:
    """Read-only access to newsletter templates and item fragments.

    Any Jinja2 loader works as the byte source; the default reads the
    package ``templates/`` directory.
    """

    def __init__(self, loader: BaseLoader | None = None):
        self.env = Environment(
            loader=loader or FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=True,
            undefined=StrictUndefined,
        )
        self.env.filters["inert"] = inert

    @classmethod
    def from_directory(cls, path: str | Path) -> "TemplateStore":
        return cls(FileSystemLoader(str(path)))

    def load_template(self, variant: TemplateVariant) -> str:
        name = f"{variant.value}.html"
        try:
            source, _, _ = self.env.loader.get_source(self.env, name)
        except TemplateNotFound as exc:
            raise TemplateUnavailable(f"Template {name!r} not found") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateUnavailable(f"Template {name!r} could not be read: {exc}") from exc
        return source

    def fragment(self, name: str) -> Template:
        path = f"fragments/{name}.html"
        try:
            return self.env.get_template(path)
        except TemplateNotFound as exc:
            raise TemplateUnavailable(f"Fragment {path!r} not found") from exc
        except TemplateSyntaxError as exc:
            raise TemplateMalformed(f"Fragment {path!r} is invalid: {exc}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateUnavailable(f"Fragment {path!r} could not be read: {exc}") from exc


def render_news_items(
    variant: TemplateVariant,
    items: Sequence[NewsItem],
    store: TemplateStore,
) -> str:
    """Render each item with the variant's layout and join them in order."""
    layout = LAYOUTS[variant]
    list_fragment = store.fragment(_LIST_FRAGMENT[variant])
    featured_fragment = store.fragment("featured") if layout.featured_first else None

    parts = []
    for position, item in enumerate(items):
        fragment = featured_fragment if (featured_fragment and position == 0) else list_fragment
        parts.append(
            fragment.render(item=item, position=position, link_sources=layout.link_sources)
        )
    return "".join(parts)


def render_newsletter(
    variant: TemplateVariant,
    items: Sequence[NewsItem],
    store: TemplateStore,
) -> str:
    if not items:
        raise NoItemsSelected("At least one news item must be selected.")

    try:
        variant = TemplateVariant(variant)
    except ValueError:
        raise InvalidInput(f"Unknown template variant {variant!r}") from None
    template = store.load_template(variant)
    occurrences = template.count(PLACEHOLDER)
    if occurrences != 1:
        raise TemplateMalformed(
            f"Template {variant.value!r} must contain {PLACEHOLDER} exactly once "
            f"(found {occurrences})"
        )

    news_html = render_news_items(variant, items, store)
    html = template.replace(PLACEHOLDER, news_html, 1)

    leftover = _MARKER_RE.search(html)
    if leftover:
        raise TemplateMalformed(
            f"Template {variant.value!r} has an unresolved marker {leftover.group(0)!r}"
        )

    logger.info(f"Rendered {len(items)} items with {variant.value!r} ({len(html)} chars)")
    return html


def select_items(items: Sequence[NewsItem], indices: Iterable[int]) -> list[NewsItem]:
    """Pick ``items`` by position, in the order the indices are given."""
    selected = []
    for index in indices:
        if index < 0 or index >= len(items):
            raise InvalidInput(f"Item index {index} is out of range (0..{len(items) - 1})")
        selected.append(items[index])
    if not selected:
        raise NoItemsSelected("At least one news item must be selected.")
    return selected
