import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .emailer import BaseMailer, build_mailer, format_sender
from .errors import (
    ExtractionError,
    InvalidInput,
    MailFailure,
    MalformedResponse,
    NotConfigured,
    RenderError,
    RoundupError,
    UpstreamFailure,
)
from .generator import BaseCompleter, build_completer, generate_news
from .models import (
    GenerateNewsRequest,
    GenerateNewsResponse,
    PreviewRequest,
    PreviewResponse,
    SendRequest,
    SendResponse,
    TemplateVariant,
)
from .recipients import RecipientRegistry
from .renderer import TemplateStore, render_newsletter

logger = logging.getLogger(__name__)

# Checked in order; the first matching class decides the status code.
ERROR_STATUS: list[tuple[type[RoundupError], int]] = [
    (NotConfigured, 503),
    (InvalidInput, 400),
    (UpstreamFailure, 502),
    (MalformedResponse, 502),
    (ExtractionError, 502),
    (MailFailure, 502),
    (RenderError, 500),
]


def status_for(exc: RoundupError) -> int:
    for cls, status_code in ERROR_STATUS:
        if isinstance(exc, cls):
            return status_code
    return 500


router = APIRouter()


def _render(req: PreviewRequest, request: Request) -> str:
    state = request.app.state
    variant = req.template or state.default_template
    return render_newsletter(variant, req.selected_items, state.template_store)


@router.get("/health")
def health(request: Request):
    state = request.app.state
    return {
        "status": "ok",
        "completion": state.completer is not None,
        "mail": state.mailer is not None,
    }


@router.get("/api/templates")
def list_templates(request: Request):
    return {
        "templates": [variant.value for variant in TemplateVariant],
        "default": request.app.state.default_template.value,
    }


@router.post(
    "/api/generate-news",
    response_model=GenerateNewsResponse,
    response_model_exclude_none=True,
)
def generate(req: GenerateNewsRequest, request: Request):
    state = request.app.state
    if state.completer is None:
        raise NotConfigured("Language model API not configured on the server.")
    items = generate_news(
        req.topic,
        state.completer,
        min_items=state.settings.min_news_items,
        max_items=state.settings.max_news_items,
    )
    return GenerateNewsResponse(news_items=items)


@router.post("/api/preview-newsletter", response_model=PreviewResponse)
def preview_newsletter(req: PreviewRequest, request: Request):
    return PreviewResponse(preview_html=_render(req, request))


@router.post("/api/create-newsletter", response_model=SendResponse)
def create_newsletter(req: SendRequest, request: Request):
    state = request.app.state
    cfg: Settings = state.settings
    if state.mailer is None:
        raise NotConfigured("Email service not configured on the server.")

    html = _render(req, request)
    group = req.recipient_group or cfg.default_recipient_group
    recipients = state.registry.resolve(group)
    subject = (req.subject or "").strip() or cfg.newsletter_subject

    logger.info(
        f"Creating and sending newsletter with {len(req.selected_items)} items "
        f"to group {group!r} ({len(recipients)} recipients)"
    )
    state.mailer.send(
        format_sender(cfg.newsletter_from_name, cfg.newsletter_from_email),
        recipients,
        subject,
        html,
    )
    return SendResponse(message="Newsletter sent successfully!")


async def _handle_roundup_error(request: Request, exc: RoundupError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content=exc.to_dict())


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        location = ".".join(str(piece) for piece in err.get("loc", ())) or "<body>"
        parts.append(f"{location}: {err.get('msg', 'invalid')}")
    return JSONResponse(
        status_code=400,
        content={"error": "; ".join(parts), "kind": InvalidInput.kind},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    if state.completer is None:
        logger.warning("ANTHROPIC_API_KEY not set; /api/generate-news is disabled")
    if state.mailer is None:
        logger.warning("RESEND_API_KEY not set; /api/create-newsletter is disabled")
    logger.info(f"Recipient groups: {', '.join(state.registry.group_names) or '(none)'}")
    yield


def create_app(
    app_settings: Settings | None = None,
    completer: BaseCompleter | None = None,
    mailer: BaseMailer | None = None,
    template_store: TemplateStore | None = None,
    registry: RecipientRegistry | None = None,
) -> FastAPI:
    """Build the API with its collaborators injected once, at startup."""
    cfg = app_settings or settings

    app = FastAPI(title="AI Weekly Roundup", lifespan=lifespan)
    app.state.settings = cfg
    app.state.completer = completer if completer is not None else build_completer(cfg)
    app.state.mailer = mailer if mailer is not None else build_mailer(cfg)
    if template_store is None:
        template_store = (
            TemplateStore.from_directory(cfg.templates_dir) if cfg.templates_dir else TemplateStore()
        )
    app.state.template_store = template_store
    app.state.registry = registry if registry is not None else RecipientRegistry.from_settings(cfg)
    app.state.default_template = TemplateVariant(cfg.default_template)

    origins = cfg.cors_origin_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Starlette disallows wildcard origins with credentials.
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RoundupError, _handle_roundup_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.include_router(router)
    return app


app = create_app()
