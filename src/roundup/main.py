import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .config import settings
from .emailer import build_mailer, format_sender
from .errors import InvalidInput, NotConfigured, RoundupError
from .generator import build_completer, generate_news
from .models import GenerateNewsResponse, NewsItem, TemplateVariant
from .recipients import RecipientRegistry
from .renderer import TemplateStore, render_newsletter, select_items

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def _template_store() -> TemplateStore:
    if settings.templates_dir:
        return TemplateStore.from_directory(settings.templates_dir)
    return TemplateStore()


def _write(text: str, out: Path | None) -> None:
    if out is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    out.write_text(text, encoding="utf-8")
    logger.info(f"Wrote {out}")


def load_items(path: Path) -> list[NewsItem]:
    """Load news items from a JSON file: a bare array or {"newsItems": [...]}."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidInput(f"Could not read news items from {path}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("newsItems", [])
    if not isinstance(data, list):
        raise InvalidInput(f"{path} must contain a JSON array of news items")
    try:
        return [NewsItem.model_validate(entry) for entry in data]
    except ValidationError as exc:
        raise InvalidInput(f"Invalid news item in {path}: {exc}") from exc


def parse_selection(raw: str | None) -> list[int] | None:
    if not raw:
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise InvalidInput(f"--select must be comma-separated indices, got {raw!r}") from exc


def _selected(args: argparse.Namespace) -> list[NewsItem]:
    items = load_items(args.items)
    indices = parse_selection(args.select)
    return select_items(items, indices) if indices is not None else items


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run(
        "roundup.web:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )


def cmd_generate(args: argparse.Namespace) -> None:
    completer = build_completer(settings)
    if completer is None:
        raise NotConfigured("ANTHROPIC_API_KEY is required. Set it in .env or environment.")
    items = generate_news(
        args.topic,
        completer,
        min_items=settings.min_news_items,
        max_items=settings.max_news_items,
    )
    payload = GenerateNewsResponse(news_items=items).model_dump(by_alias=True, exclude_none=True)
    _write(json.dumps(payload, ensure_ascii=False, indent=2), args.out)


def cmd_preview(args: argparse.Namespace) -> None:
    html = render_newsletter(TemplateVariant(args.template), _selected(args), _template_store())
    _write(html, args.out)


def cmd_send(args: argparse.Namespace) -> None:
    mailer = build_mailer(settings)
    if mailer is None:
        raise NotConfigured("RESEND_API_KEY is required. Set it in .env or environment.")
    html = render_newsletter(TemplateVariant(args.template), _selected(args), _template_store())
    recipients = RecipientRegistry.from_settings(settings).resolve(args.group)
    mailer.send(
        format_sender(settings.newsletter_from_name, settings.newsletter_from_email),
        recipients,
        args.subject or settings.newsletter_subject,
        html,
    )
    logger.info(f"Newsletter sent to group {args.group!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="roundup", description="AI Weekly Roundup newsletter")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="")
    serve.add_argument("--port", type=int, default=0)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    generate = sub.add_parser("generate", help="Generate news items for a topic")
    generate.add_argument("topic")
    generate.add_argument("--out", type=Path, default=None)
    generate.set_defaults(func=cmd_generate)

    variants = [v.value for v in TemplateVariant]
    for name, func, help_text in (
        ("preview", cmd_preview, "Render the newsletter HTML"),
        ("send", cmd_send, "Render and email the newsletter"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("items", type=Path, help="JSON file with news items")
        p.add_argument("--template", choices=variants, default=settings.default_template)
        p.add_argument("--select", default=None, help="Comma-separated item indices, e.g. 0,2,4")
        p.set_defaults(func=func)

    sub.choices["preview"].add_argument("--out", type=Path, default=None)
    sub.choices["send"].add_argument("--group", default=settings.default_recipient_group)
    sub.choices["send"].add_argument("--subject", default="")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except RoundupError as exc:
        logger.error(f"{exc.kind}: {exc.message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
